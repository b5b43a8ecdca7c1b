"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment for Settings()
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RPC_URL", "http://127.0.0.1:8545")
os.environ.setdefault("CHAIN_ID", "84532")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("REDIS_HOST", "localhost")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from collections.abc import Callable  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402

from app.config.settings import settings  # noqa: E402
from app.services.blockchain.session import WalletSession  # noqa: E402
from app.services.blockchain.token_registry import build_token_registry  # noqa: E402
from app.services.remittance.account_cache import ExpiringCache  # noqa: E402
from app.services.remittance.account_service import AccountService  # noqa: E402
from app.services.remittance.history import HistoryReconciler  # noqa: E402
from app.services.remittance.planner import ExecutionPlanner  # noqa: E402
from app.services.remittance.preflight import PreflightValidator  # noqa: E402
from app.services.remittance.submitter import TransferSubmitter  # noqa: E402
from tests.fakes import RECIPIENT, SENDER, USDC_UNIT, FakeChainClient  # noqa: E402


@pytest.fixture
def chain() -> FakeChainClient:
    """Fake chain client with an unregistered sender holding 1000 USDC."""
    return FakeChainClient()


@pytest.fixture
def registry():
    """Static token registry (USDC, USDT)."""
    return build_token_registry(settings)


@pytest.fixture
def accounts(chain, registry) -> AccountService:
    return AccountService(chain, registry, ExpiringCache(ttl=300, name="test_accounts"))


@pytest.fixture
def validator(chain, registry, accounts) -> PreflightValidator:
    return PreflightValidator(chain, registry, accounts)


@pytest.fixture
def planner(chain) -> ExecutionPlanner:
    return ExecutionPlanner(chain)


@pytest.fixture
def history(chain, registry) -> HistoryReconciler:
    return HistoryReconciler(chain, registry, ExpiringCache(ttl=300, name="test_history"))


@pytest.fixture
def submitter(chain, validator, planner, accounts, history) -> TransferSubmitter:
    return TransferSubmitter(
        chain,
        validator,
        planner,
        receipt_timeout=5,
        invalidation_hooks=(accounts.invalidate, history.invalidate),
    )


@pytest.fixture
def eoa_session() -> WalletSession:
    """Sequential-path session for SENDER."""
    return WalletSession(address=SENDER)


@pytest.fixture
def smart_session() -> WalletSession:
    """Batch-path session for SENDER."""
    return WalletSession(address=SENDER, supports_atomic_batch=True)


@pytest.fixture
def mock_redis_client():
    """In-memory Redis mock (get/set/delete over a dict)."""
    store: dict[str, str] = {}

    async def _get(key):
        return store.get(key)

    async def _set(key, value):
        store[key] = value
        return True

    async def _delete(*keys):
        return sum(1 for k in keys if store.pop(k, None) is not None)

    client = AsyncMock()
    client.get = AsyncMock(side_effect=_get)
    client.set = AsyncMock(side_effect=_set)
    client.delete = AsyncMock(side_effect=_delete)
    client.aclose = AsyncMock()
    client.store = store
    return client


@pytest.fixture
def make_tx() -> Callable[..., tuple]:
    """Factory for decoded getTransaction tuples."""

    def _make(
        sender: str = SENDER,
        recipient: str = RECIPIENT,
        amount: int = 50 * USDC_UNIT,
        token: str | None = None,
        completed: bool = True,
        group_id: int = 0,
    ) -> tuple:
        return (
            sender,
            recipient,
            amount,
            amount // 100,
            amount // 200,
            1_700_000_000,
            "NG",
            token or settings.usdc_contract_address,
            group_id,
            completed,
        )

    return _make
