"""
Integration tests for the HTTP API.

Real service wiring and handlers; only the chain and Redis are faked.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from api.initialization.services import build_services
from api.server import create_app
from app.config.constants import CONTACTS_STORAGE_KEY
from app.config.settings import settings
from app.services.blockchain.session import WalletSession
from app.utils.exceptions import ChainWriteError, SubmissionFailureReason
from tests.fakes import (
    RECIPIENT,
    RECIPIENT_2,
    SENDER,
    USDC_UNIT,
    FakeChainClient,
    registered_user,
)


@pytest.fixture
def fake_chain() -> FakeChainClient:
    chain = FakeChainClient()
    chain.reads["getUser"] = registered_user(cashback=4 * USDC_UNIT)
    return chain


@pytest.fixture
def services(fake_chain, mock_redis_client):
    return build_services(
        settings,
        chain=fake_chain,
        redis=mock_redis_client,
        sessions=[WalletSession(address=SENDER)],
    )


@pytest_asyncio.fixture
async def client(services):
    test_client = TestClient(TestServer(create_app(services)))
    await test_client.start_server()
    yield test_client
    await test_client.close()


def transfer_body(**overrides):
    body = {
        "sender": SENDER,
        "recipient": RECIPIENT,
        "token": "USDC",
        "amount": "25.5",
        "country": "KE",
    }
    body.update(overrides)
    return body


class TestHealth:
    """Health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        data = await resp.json()

        assert resp.status == 200
        assert data["status"] == "healthy"
        assert data["chain_id"] == settings.chain_id
        assert data["sessions"] == 1

    @pytest.mark.asyncio
    async def test_liveness(self, client):
        resp = await client.get("/liveness")
        assert (await resp.json())["alive"] is True

    @pytest.mark.asyncio
    async def test_readiness(self, client, fake_chain):
        fake_chain.web3.is_connected = AsyncMock(return_value=True)
        resp = await client.get("/readiness")
        assert resp.status == 200

        fake_chain.web3.is_connected = AsyncMock(return_value=False)
        resp = await client.get("/readiness")
        assert resp.status == 503


class TestHistoryEndpoint:
    """GET /transfers/history."""

    @pytest.mark.asyncio
    async def test_history(self, client, fake_chain, make_tx):
        fake_chain.reads["getUserTransactionIds"] = [1]
        fake_chain.reads["getTransaction"] = lambda tx_id: make_tx()
        fake_chain.logs["sender"] = [{"tx_id": 1, "tx_hash": "0x" + "01" * 32, "block_number": 1}]

        resp = await client.get("/transfers/history", params={"address": SENDER})
        data = await resp.json()

        assert resp.status == 200
        assert data["transactions"][0]["txHash"] == "0x" + "01" * 32
        assert data["transactions"][0]["amount"] == "50"
        assert data["transactions"][0]["explorerUrl"].endswith("0x" + "01" * 32)

    @pytest.mark.asyncio
    async def test_out_of_range_window_clamped(self, client):
        resp = await client.get(
            "/transfers/history", params={"address": SENDER, "start": "-4", "count": "1000"}
        )
        data = await resp.json()

        assert resp.status == 200
        assert data["pagination"]["start"] == 0
        assert data["pagination"]["count"] == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {},
            {"address": "0x1234"},
            {"address": SENDER, "start": "abc"},
        ],
    )
    async def test_bad_request(self, client, params):
        resp = await client.get("/transfers/history", params=params)
        assert resp.status == 400
        assert "error" in await resp.json()

    @pytest.mark.asyncio
    async def test_required_read_failure(self, client, fake_chain):
        fake_chain.reads["getUserTransactionIds"] = ConnectionError("rpc down")
        resp = await client.get("/transfers/history", params={"address": SENDER})
        assert resp.status == 502


class TestTransferEndpoints:
    """POST /transfers/create and /transfers/group."""

    @pytest.mark.asyncio
    async def test_create_transfer(self, client, fake_chain):
        resp = await client.post("/transfers/create", json=transfer_body())
        data = await resp.json()

        assert resp.status == 200
        assert data["success"] is True
        assert data["path"] == "sequential"
        assert data["totalCalls"] == 2
        assert data["txHash"] == data["txHashes"][-1]
        assert fake_chain.writes[-1].args[2] == "KE"

    @pytest.mark.asyncio
    async def test_validation_failure_422(self, client, fake_chain):
        fake_chain.reads["balanceOf"] = USDC_UNIT

        resp = await client.post("/transfers/create", json=transfer_body())
        data = await resp.json()

        assert resp.status == 422
        assert data["phase"] == "plan"
        assert data["validation"]["code"] == "INSUFFICIENT_BALANCE"
        assert data["validation"]["required"] == "25500000"

    @pytest.mark.asyncio
    async def test_submission_failure_502(self, client, fake_chain):
        fake_chain.write_errors[1] = ChainWriteError(SubmissionFailureReason.REVERTED)

        resp = await client.post("/transfers/create", json=transfer_body())
        data = await resp.json()

        assert resp.status == 502
        assert data["reason"] == "reverted"
        assert data["partial"] is True
        assert data["failedIndex"] == 1

    @pytest.mark.asyncio
    async def test_no_session_403(self, client):
        resp = await client.post(
            "/transfers/create", json=transfer_body(sender=RECIPIENT, recipient=RECIPIENT_2)
        )
        assert resp.status == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            transfer_body(amount="lots"),
            transfer_body(sender=None),
            transfer_body(recipient=""),
        ],
    )
    async def test_bad_body_400(self, client, body):
        resp = await client.post("/transfers/create", json=body)
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_non_json_body_400(self, client):
        resp = await client.post("/transfers/create", data="not json")
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_concurrent_submission_409(self, client, fake_chain):
        gate = asyncio.Event()
        original = fake_chain.wait_for_receipt

        async def slow_receipt(tx_hash, timeout=120.0):
            await gate.wait()
            return await original(tx_hash, timeout)

        fake_chain.wait_for_receipt = slow_receipt

        first = asyncio.create_task(client.post("/transfers/create", json=transfer_body()))
        while not fake_chain.events:
            await asyncio.sleep(0.01)

        resp = await client.post("/transfers/create", json=transfer_body())
        assert resp.status == 409

        gate.set()
        assert (await first).status == 200

    @pytest.mark.asyncio
    async def test_group_payment(self, client, fake_chain):
        body = {
            "sender": SENDER,
            "token": "USDC",
            "recipients": [
                {"address": RECIPIENT, "amount": "10"},
                {"address": RECIPIENT_2, "amount": 5},
            ],
        }

        resp = await client.post("/transfers/group", json=body)
        data = await resp.json()

        assert resp.status == 200
        assert [c.function for c in fake_chain.writes] == ["approve", "batchTransfer"]
        assert fake_chain.writes[0].args[1] == 15 * USDC_UNIT
        assert data["completedCalls"] == 2

    @pytest.mark.asyncio
    async def test_group_payment_requires_recipients(self, client):
        resp = await client.post("/transfers/group", json={"sender": SENDER, "recipients": []})
        assert resp.status == 400


class TestAccountEndpoints:
    """User stats and rewards."""

    @pytest.mark.asyncio
    async def test_user_stats(self, client):
        resp = await client.get("/user/stats", params={"address": SENDER})
        data = await resp.json()

        assert resp.status == 200
        assert data["isRegistered"] is True
        assert data["tier"] == "Bronze"

    @pytest.mark.asyncio
    async def test_user_stats_read_failure(self, client, fake_chain):
        fake_chain.reads["getUser"] = ConnectionError("rpc down")
        resp = await client.get("/user/stats", params={"address": SENDER})
        assert resp.status == 502

    @pytest.mark.asyncio
    async def test_rewards_data(self, client):
        resp = await client.get("/rewards/data", params={"address": SENDER})
        data = await resp.json()
        assert data["cashbackBalance"] == "4"
        assert data["referrer"] is None

    @pytest.mark.asyncio
    async def test_withdraw(self, client, fake_chain):
        resp = await client.post("/rewards/withdraw", json={"address": SENDER, "amount": "4"})
        data = await resp.json()

        assert resp.status == 200
        assert data["success"] is True
        assert data["message"] == "Withdrawal initiated successfully"
        assert fake_chain.writes[0].function == "withdrawCashback"

    @pytest.mark.asyncio
    async def test_withdraw_more_than_balance(self, client):
        resp = await client.post("/rewards/withdraw", json={"address": SENDER, "amount": "5"})
        assert resp.status == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"address": SENDER},
            {"address": SENDER, "amount": "1", "type": "bonus"},
        ],
    )
    async def test_withdraw_bad_request(self, client, body):
        resp = await client.post("/rewards/withdraw", json=body)
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_countries(self, client):
        resp = await client.get("/countries/list")
        data = await resp.json()

        assert {c["code"] for c in data["countries"]} >= {"NG", "KE", "IN"}
        assert [t["symbol"] for t in data["tokens"]] == ["USDC", "USDT"]


class TestContactsEndpoints:
    """Contacts CRUD."""

    @pytest.mark.asyncio
    async def test_crud(self, client):
        resp = await client.post(
            "/contacts", json={"owner": SENDER, "name": "Ada", "address": RECIPIENT}
        )
        assert resp.status == 200
        contact = await resp.json()

        resp = await client.get("/contacts", params={"owner": SENDER})
        listed = (await resp.json())["contacts"]
        assert [c["id"] for c in listed] == [contact["id"]]

        resp = await client.delete(f"/contacts/{contact['id']}", params={"owner": SENDER})
        assert resp.status == 200

        resp = await client.delete(f"/contacts/{contact['id']}", params={"owner": SENDER})
        assert resp.status == 404

    @pytest.mark.asyncio
    async def test_invalid_contact(self, client):
        resp = await client.post(
            "/contacts", json={"owner": SENDER, "name": "", "address": "0x12"}
        )
        data = await resp.json()

        assert resp.status == 400
        assert {d["field"] for d in data["details"]} == {"name", "address"}

    @pytest.mark.asyncio
    async def test_lookup_by_address(self, client):
        await client.post("/contacts", json={"owner": SENDER, "name": "Ada", "address": RECIPIENT})

        resp = await client.get("/contacts", params={"owner": SENDER, "address": RECIPIENT})
        assert resp.status == 200
        assert (await resp.json())["name"] == "Ada"

        resp = await client.get("/contacts", params={"owner": SENDER, "address": RECIPIENT_2})
        assert resp.status == 404

    @pytest.mark.asyncio
    async def test_recipients_stored_separately(self, client):
        resp = await client.post(
            "/recipients", json={"owner": SENDER, "name": "Mum", "address": RECIPIENT_2}
        )
        assert resp.status == 200

        recipients = await (await client.get("/recipients", params={"owner": SENDER})).json()
        contacts = await (await client.get("/contacts", params={"owner": SENDER})).json()

        assert [r["name"] for r in recipients["contacts"]] == ["Mum"]
        assert contacts["contacts"] == []

    @pytest.mark.asyncio
    async def test_storage_unavailable(self, services, client):
        services.redis = None
        resp = await client.get("/recipients", params={"owner": SENDER})
        assert resp.status == 503

    @pytest.mark.asyncio
    async def test_unreadable_list_left_untouched(self, client, mock_redis_client):
        key = f"{CONTACTS_STORAGE_KEY}:{SENDER.lower()}"
        mock_redis_client.store[key] = "{not json"

        resp = await client.post(
            "/contacts", json={"owner": SENDER, "name": "Ada", "address": RECIPIENT}
        )

        assert resp.status == 500
        assert "unreadable" in (await resp.json())["error"]
        assert mock_redis_client.store[key] == "{not json"
