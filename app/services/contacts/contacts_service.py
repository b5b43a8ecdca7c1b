"""
Contacts service.

Client-local address book kept in Redis as a JSON list per owner. Not
derived from chain state; no schema versioning.
"""

import json
import time
import uuid

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from redis.asyncio import Redis

from app.config.constants import CONTACTS_STORAGE_KEY
from app.utils.exceptions import StorageCorruptedError
from app.utils.security import mask_address
from app.utils.validation import is_valid_address, same_address


def _now_ms() -> int:
    return int(time.time() * 1000)


class Contact(BaseModel):
    """Saved contact (timestamps in epoch milliseconds)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    address: str
    created_at: int = Field(default_factory=_now_ms, alias="createdAt")
    updated_at: int = Field(default_factory=_now_ms, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        v = v.strip()
        if not is_valid_address(v):
            raise ValueError("invalid address")
        # Lower-cased for stable matching
        return v.lower()


class ContactsService:
    """CRUD over one owner's contact list."""

    def __init__(
        self,
        redis: Redis,
        owner: str,
        storage_key: str = CONTACTS_STORAGE_KEY,
    ) -> None:
        """
        Initialize contacts service.

        Args:
            redis: Redis client (decode_responses=True)
            owner: Address owning the list
            storage_key: Key prefix (contacts or saved recipients)
        """
        self.redis = redis
        self.owner = owner.lower()
        self.key = f"{storage_key}:{self.owner}"

    async def get_contacts(self) -> list[Contact]:
        """
        All contacts in insertion order.

        Raises:
            StorageCorruptedError: If the stored list does not parse
        """
        raw = await self.redis.get(self.key)
        if not raw:
            return []
        try:
            return [Contact.model_validate(item) for item in json.loads(raw)]
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Corrupted contact list at {self.key}: {e}")
            raise StorageCorruptedError(
                f"Stored contact list for {mask_address(self.owner)} is unreadable", raw=e
            ) from e

    async def _store(self, contacts: list[Contact]) -> None:
        payload = [c.model_dump(by_alias=True) for c in contacts]
        await self.redis.set(self.key, json.dumps(payload))

    async def save_contact(
        self, name: str, address: str, contact_id: str | None = None
    ) -> Contact:
        """
        Create a contact, or update the one with contact_id.

        An unknown contact_id creates a new contact with a fresh id.

        Raises:
            pydantic.ValidationError: If name or address is invalid
        """
        contacts = await self.get_contacts()

        if contact_id:
            for index, existing in enumerate(contacts):
                if existing.id == contact_id:
                    updated = Contact(
                        id=existing.id,
                        name=name,
                        address=address,
                        created_at=existing.created_at,
                        updated_at=max(_now_ms(), existing.updated_at),
                    )
                    contacts[index] = updated
                    await self._store(contacts)
                    logger.info(f"Contact {updated.id} updated for {mask_address(self.owner)}")
                    return updated

        contact = Contact(name=name, address=address)
        contacts.append(contact)
        await self._store(contacts)
        logger.info(
            f"Contact {contact.id} ({mask_address(contact.address)}) saved for "
            f"{mask_address(self.owner)}"
        )
        return contact

    async def delete_contact(self, contact_id: str) -> bool:
        """Delete by id. Returns True if a contact was removed."""
        contacts = await self.get_contacts()
        remaining = [c for c in contacts if c.id != contact_id]
        if len(remaining) == len(contacts):
            return False
        await self._store(remaining)
        return True

    async def get_contact_by_address(self, address: str) -> Contact | None:
        """Case-insensitive lookup by address."""
        for contact in await self.get_contacts():
            if same_address(contact.address, address):
                return contact
        return None
