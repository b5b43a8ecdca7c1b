"""Unit tests for the contacts service."""

import json

import pytest
from pydantic import ValidationError

from app.config.constants import RECIPIENTS_STORAGE_KEY
from app.services.contacts.contacts_service import Contact, ContactsService
from app.utils.exceptions import StorageCorruptedError
from tests.fakes import RECIPIENT, RECIPIENT_2, SENDER

MIXED_CASE = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"


@pytest.fixture
def contacts(mock_redis_client):
    return ContactsService(mock_redis_client, SENDER)


class TestContactModel:
    """Validation of a single contact."""

    def test_address_lowercased(self):
        contact = Contact(name="Ada", address=MIXED_CASE)
        assert contact.address == MIXED_CASE.lower()

    def test_name_stripped(self):
        assert Contact(name="  Ada  ", address=RECIPIENT).name == "Ada"

    @pytest.mark.parametrize("name,address", [("   ", RECIPIENT), ("Ada", "0x123")])
    def test_invalid(self, name, address):
        with pytest.raises(ValidationError):
            Contact(name=name, address=address)

    def test_serialized_with_camel_case_timestamps(self):
        data = Contact(name="Ada", address=RECIPIENT).model_dump(by_alias=True)
        assert {"id", "name", "address", "createdAt", "updatedAt"} == set(data)


class TestContactsService:
    """CRUD over the Redis-backed list."""

    @pytest.mark.asyncio
    async def test_empty(self, contacts):
        assert await contacts.get_contacts() == []

    @pytest.mark.asyncio
    async def test_create_and_list(self, contacts, mock_redis_client):
        created = await contacts.save_contact("Ada", RECIPIENT)

        listed = await contacts.get_contacts()

        assert [c.id for c in listed] == [created.id]
        assert f"saved_contacts:{SENDER.lower()}" in mock_redis_client.store

    @pytest.mark.asyncio
    async def test_update_keeps_id_and_created_at(self, contacts):
        created = await contacts.save_contact("Ada", RECIPIENT)

        updated = await contacts.save_contact("Ada L.", RECIPIENT_2, contact_id=created.id)

        assert updated.id == created.id
        assert updated.created_at == created.created_at
        assert updated.updated_at >= created.updated_at
        listed = await contacts.get_contacts()
        assert len(listed) == 1
        assert listed[0].name == "Ada L."

    @pytest.mark.asyncio
    async def test_unknown_id_creates(self, contacts):
        created = await contacts.save_contact("Ada", RECIPIENT, contact_id="missing")
        assert created.id != "missing"
        assert len(await contacts.get_contacts()) == 1

    @pytest.mark.asyncio
    async def test_delete(self, contacts):
        created = await contacts.save_contact("Ada", RECIPIENT)
        assert await contacts.delete_contact(created.id)
        assert not await contacts.delete_contact(created.id)
        assert await contacts.get_contacts() == []

    @pytest.mark.asyncio
    async def test_lookup_by_address(self, contacts):
        await contacts.save_contact("Bob", MIXED_CASE)
        found = await contacts.get_contact_by_address(MIXED_CASE.upper().replace("0X", "0x"))
        assert found is not None
        assert found.name == "Bob"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["{not json", json.dumps([{"id": "1"}])])
    async def test_corrupt_data_raises(self, contacts, mock_redis_client, payload):
        mock_redis_client.store[contacts.key] = payload
        with pytest.raises(StorageCorruptedError):
            await contacts.get_contacts()

    @pytest.mark.asyncio
    async def test_corrupt_data_never_overwritten(self, contacts, mock_redis_client):
        """Save and delete refuse to replace a list they could not read."""
        mock_redis_client.store[contacts.key] = "{not json"

        with pytest.raises(StorageCorruptedError):
            await contacts.save_contact("Ada", RECIPIENT)
        with pytest.raises(StorageCorruptedError):
            await contacts.delete_contact("1")

        assert mock_redis_client.store[contacts.key] == "{not json"
        assert mock_redis_client.set.await_count == 0

    @pytest.mark.asyncio
    async def test_invalid_contact_not_stored(self, contacts, mock_redis_client):
        with pytest.raises(ValidationError):
            await contacts.save_contact("", RECIPIENT)
        assert mock_redis_client.set.await_count == 0

    @pytest.mark.asyncio
    async def test_separate_storage_key(self, mock_redis_client):
        recipients = ContactsService(mock_redis_client, SENDER, RECIPIENTS_STORAGE_KEY)
        await recipients.save_contact("Ada", RECIPIENT)

        stored = json.loads(mock_redis_client.store[f"recipients:{SENDER.lower()}"])
        assert stored[0]["address"] == RECIPIENT.lower()
