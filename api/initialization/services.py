"""
API Initialization - Services Module.

Module: services.py
Wires chain client, caches and remittance services from settings.
Connects the wallet session once, at startup.
"""

from dataclasses import dataclass, field

from loguru import logger
from redis.asyncio import Redis

from app.config.settings import Settings
from app.services.blockchain.chain_client import ChainClient
from app.services.blockchain.session import WalletSession, connect_session
from app.services.blockchain.token_registry import TokenRegistry, build_token_registry
from app.services.remittance.account_cache import ExpiringCache
from app.services.remittance.account_service import AccountService
from app.services.remittance.history import HistoryReconciler
from app.services.remittance.planner import ApprovalSizing, ExecutionPlanner
from app.services.remittance.preflight import PreflightValidator
from app.services.remittance.submitter import TransferSubmitter
from app.utils.redis_utils import get_redis_client, get_redis_url_masked
from app.utils.security import mask_address


@dataclass
class ServiceContainer:
    """Everything the HTTP handlers need."""

    settings: Settings
    chain: ChainClient
    registry: TokenRegistry
    accounts: AccountService
    validator: PreflightValidator
    planner: ExecutionPlanner
    submitter: TransferSubmitter
    history: HistoryReconciler
    redis: Redis | None = None
    sessions: dict[str, WalletSession] = field(default_factory=dict)

    def session_for(self, address: str) -> WalletSession | None:
        """Connected session able to sign for address, if any."""
        return self.sessions.get(address.lower())


def connect_configured_session(settings: Settings) -> WalletSession | None:
    """
    Connect the wallet session described by settings.

    Returns:
        WalletSession, or None when no wallet is configured
    """
    if not settings.wallet_private_key and not settings.wallet_address:
        logger.warning(
            "No wallet configured (WALLET_PRIVATE_KEY / WALLET_ADDRESS). "
            "Write endpoints will answer 403."
        )
        return None

    try:
        session = connect_session(
            address=settings.wallet_address,
            private_key=settings.wallet_private_key,
            supports_atomic_batch=settings.wallet_supports_atomic_batch,
        )
    except ValueError as e:
        logger.error(f"Failed to connect wallet session: {e}")
        return None

    path = "batch" if session.supports_atomic_batch else "sequential"
    logger.info(f"Wallet session connected: {mask_address(session.address)} ({path} path)")
    return session


def build_services(
    settings: Settings,
    chain: ChainClient | None = None,
    redis: Redis | None = None,
    sessions: list[WalletSession] | None = None,
) -> ServiceContainer:
    """
    Build the service container.

    Args:
        settings: Application settings
        chain: Chain client (default: AsyncHTTPProvider on settings.rpc_url)
        redis: Redis client for contacts (default: from settings)
        sessions: Wallet sessions (default: the one configured in settings)

    Returns:
        ServiceContainer
    """
    if chain is None:
        chain = ChainClient.from_rpc_url(
            settings.rpc_url,
            settings.remittance_contract_address,
            settings.chain_id,
            poll_interval=settings.receipt_poll_interval,
        )
    if redis is None:
        redis = get_redis_client(settings)
        logger.info(f"Contacts storage: {get_redis_url_masked(settings)}")
    if sessions is None:
        configured = connect_configured_session(settings)
        sessions = [configured] if configured else []

    registry = build_token_registry(settings)
    accounts = AccountService(
        chain,
        registry,
        ExpiringCache(ttl=settings.account_cache_ttl_seconds, name="account_cache"),
    )
    history = HistoryReconciler(
        chain,
        registry,
        ExpiringCache(ttl=settings.account_cache_ttl_seconds, name="history_cache"),
        from_block=settings.history_from_block,
    )
    validator = PreflightValidator(chain, registry, accounts)
    planner = ExecutionPlanner(chain, ApprovalSizing(settings.single_transfer_approval))
    submitter = TransferSubmitter(
        chain,
        validator,
        planner,
        receipt_timeout=settings.receipt_timeout_seconds,
        invalidation_hooks=(accounts.invalidate, history.invalidate),
    )

    logger.info(
        f"Remittance services initialized: contract={chain.contract_address}, "
        f"tokens={[t.symbol for t in registry.all()]}"
    )
    return ServiceContainer(
        settings=settings,
        chain=chain,
        registry=registry,
        accounts=accounts,
        validator=validator,
        planner=planner,
        submitter=submitter,
        history=history,
        redis=redis,
        sessions={s.address.lower(): s for s in sessions},
    )
