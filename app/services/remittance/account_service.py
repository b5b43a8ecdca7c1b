"""
Account service.

Cached getUser reads plus the aggregates the HTTP surface shows: user
stats, tier, rewards summary and reward withdrawal through the submitter.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, Any

from loguru import logger

from app.config.constants import (
    REFERRAL_CODE_PREFIX,
    TIER_GOLD_THRESHOLD,
    TIER_SILVER_THRESHOLD,
)
from app.services.blockchain.chain_client import ChainClient
from app.services.blockchain.session import WalletSession
from app.services.blockchain.token_registry import TokenRegistry
from app.services.remittance.account_cache import ExpiringCache
from app.services.remittance.amounts import format_units, from_units
from app.services.remittance.models import (
    CallTag,
    SubmissionOutcome,
    UserAccountState,
    ValidationCode,
    ValidationFailure,
)
from app.utils.exceptions import ChainReadError
from app.utils.security import mask_address
from app.utils.validation import is_zero_address, normalize_address, parse_amount

if TYPE_CHECKING:
    from app.services.remittance.planner import ExecutionPlanner
    from app.services.remittance.submitter import TransferSubmitter


def tier_for(total_transferred: Decimal) -> str:
    """
    Loyalty tier by lifetime volume.

    Examples:
        >>> tier_for(Decimal("9999.99"))
        'Bronze'
        >>> tier_for(Decimal("10000"))
        'Silver'
        >>> tier_for(Decimal("50000"))
        'Gold'
    """
    if total_transferred >= TIER_GOLD_THRESHOLD:
        return "Gold"
    if total_transferred >= TIER_SILVER_THRESHOLD:
        return "Silver"
    return "Bronze"


def referral_code_for(address: str) -> str:
    """Display referral code derived from the address."""
    return f"{REFERRAL_CODE_PREFIX}{address[2:8].upper()}"


class AccountService:
    """Read-through access to on-chain account state."""

    def __init__(
        self,
        chain: ChainClient,
        registry: TokenRegistry,
        cache: ExpiringCache[str, UserAccountState] | None = None,
    ) -> None:
        """
        Initialize account service.

        Args:
            chain: Chain client
            registry: Token registry (default token drives display decimals)
            cache: Account state cache keyed by lower-cased address
        """
        self.chain = chain
        self.registry = registry
        self.cache = cache if cache is not None else ExpiringCache(name="account_cache")

    async def get_account_state(self, address: str) -> UserAccountState:
        """
        Account state for address (cached).

        Raises:
            ChainReadError: If getUser fails or cannot be decoded
        """
        checksum = normalize_address(address)

        async def load() -> UserAccountState:
            raw = await self.chain.read_contract("getUser", (checksum,))
            try:
                return UserAccountState.from_chain(raw)
            except (TypeError, ValueError) as e:
                raise ChainReadError("getUser", f"unexpected result shape: {e}", raw=e) from e

        return await self.cache.get_or_load(checksum.lower(), load)

    async def invalidate(self, addresses: tuple[str, ...]) -> None:
        """Invalidation hook: drop cached state of every affected address."""
        for address in addresses:
            await self.cache.invalidate(address.lower())

    def _display(self, units: int) -> str:
        return format_units(units, self.registry.default.decimals)

    async def get_user_stats(self, address: str) -> dict[str, Any]:
        """
        Aggregate totals and tier.

        Raises:
            ChainReadError: If the account cannot be read
        """
        state = await self.get_account_state(address)
        total = from_units(state.total_transferred, self.registry.default)
        return {
            "address": normalize_address(address),
            "isRegistered": state.is_registered,
            "totalSent": self._display(state.total_transferred),
            "totalReceived": self._display(state.total_received),
            "cashbackBalance": self._display(state.cashback_earned),
            "referralRewards": self._display(state.referral_rewards),
            "referralCount": state.referral_count,
            "lastActivity": state.last_activity,
            "tier": tier_for(total),
        }

    async def get_rewards_data(self, address: str) -> dict[str, Any]:
        """
        Cashback / referral summary.

        Raises:
            ChainReadError: If the account cannot be read
        """
        state = await self.get_account_state(address)
        total = from_units(state.total_transferred, self.registry.default)
        return {
            "cashbackBalance": self._display(state.cashback_earned),
            "referralRewards": self._display(state.referral_rewards),
            "totalEarned": self._display(state.cashback_earned + state.referral_rewards),
            "referralCode": referral_code_for(normalize_address(address)),
            "referralCount": state.referral_count,
            "referrer": None if is_zero_address(state.referrer) else state.referrer,
            "tier": tier_for(total),
        }

    async def check_withdrawal(
        self, address: str, amount: object, kind: CallTag = CallTag.WITHDRAW_CASHBACK
    ) -> ValidationFailure | None:
        """
        Advisory check of a withdrawal against the cached balance.

        Args:
            address: Account address
            amount: Requested amount (decimal, default token units)
            kind: WITHDRAW_CASHBACK or WITHDRAW_REFERRAL_REWARDS

        Returns:
            ValidationFailure or None when the withdrawal may proceed
        """
        value = parse_amount(amount)
        if value is None or value <= 0:
            return ValidationFailure.error(
                ValidationCode.INVALID_AMOUNT, "Amount must be greater than zero", "amount"
            )

        try:
            state = await self.get_account_state(address)
        except ChainReadError as e:
            logger.warning(f"Balance check for withdrawal by {mask_address(address)} skipped: {e}")
            return None

        available_units = (
            state.referral_rewards
            if kind == CallTag.WITHDRAW_REFERRAL_REWARDS
            else state.cashback_earned
        )
        available = from_units(available_units, self.registry.default)
        if value > available:
            return ValidationFailure.error(
                ValidationCode.INSUFFICIENT_BALANCE,
                f"Requested {value} exceeds available {available}",
                "amount",
                available_units=available_units,
            )
        return None

    async def withdraw(
        self,
        session: WalletSession,
        amount: object,
        planner: "ExecutionPlanner",
        submitter: "TransferSubmitter",
        kind: CallTag = CallTag.WITHDRAW_CASHBACK,
    ) -> SubmissionOutcome:
        """
        Withdraw cashback or referral rewards through the submitter.

        The contract pays out the whole balance; amount is checked only.

        Raises:
            SubmissionInProgressError: Sender already has an active submission
        """
        failure = await self.check_withdrawal(session.address, amount, kind)
        if failure is not None:
            return SubmissionOutcome.plan_failed(failure.message, validation=failure)

        plan = planner.plan_withdrawal(session.address, kind)
        return await submitter.submit_plan(plan, session)
