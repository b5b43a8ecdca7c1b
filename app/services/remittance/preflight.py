"""
Preflight Validator.

Decides, before any write, whether a transfer can plausibly succeed and
computes the figures the planner needs. Expected business outcomes are
returned as ValidationFailure; only advisory reads are allowed to fail
silently (logged), and each one fails open in a documented direction.
"""

from collections.abc import Iterable
from decimal import Decimal

from loguru import logger

from app.config.constants import SUPPORTED_COUNTRIES
from app.services.blockchain.chain_client import ChainClient
from app.services.blockchain.token_registry import TokenDescriptor, TokenRegistry
from app.services.remittance.account_service import AccountService
from app.services.remittance.amounts import (
    MAX_UINT256,
    AmountPrecisionError,
    AmountRangeError,
    to_units,
)
from app.services.remittance.models import (
    GroupPaymentRequest,
    GroupQuote,
    Quote,
    TransferRequest,
    ValidationCode,
    ValidationFailure,
)
from app.utils.exceptions import ChainReadError
from app.utils.security import mask_address
from app.utils.validation import normalize_address, parse_amount, same_address


class PreflightValidator:
    """Validator for transfer and group payment requests."""

    def __init__(
        self,
        chain: ChainClient,
        registry: TokenRegistry,
        accounts: AccountService,
        countries: Iterable[str] | None = None,
    ) -> None:
        """
        Initialize validator.

        Args:
            chain: Chain client
            registry: Static token registry
            accounts: Account state service (cached getUser reads)
            countries: Accepted destination country codes
        """
        self.chain = chain
        self.registry = registry
        self.accounts = accounts
        if countries is None:
            countries = (c["code"] for c in SUPPORTED_COUNTRIES)
        self.countries = {c.upper() for c in countries}

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def validate(self, request: TransferRequest) -> Quote | ValidationFailure:
        """
        Validate a single transfer.

        Order: local field checks, registry lookup, contract token support,
        registration, fee, balance.

        Args:
            request: Transfer request

        Returns:
            Quote or ValidationFailure
        """
        failure = self._check_address(request.sender, "sender")
        if failure:
            return failure
        failure = self._check_recipient(request.recipient, request.sender, "recipient")
        if failure:
            return failure

        amount = parse_amount(request.amount)
        if amount is None or amount <= 0:
            return ValidationFailure.error(
                ValidationCode.INVALID_AMOUNT, "Amount must be greater than zero", "amount"
            )

        country = (request.country or "").strip().upper()
        if not country or country not in self.countries:
            return ValidationFailure.error(
                ValidationCode.INVALID_COUNTRY,
                f"Unsupported destination country: {request.country!r}",
                "country",
            )

        token = self.registry.by_symbol(request.token)
        if token is None:
            return self._unsupported_token(request.token)

        principal = self._units(amount, token)
        if isinstance(principal, ValidationFailure):
            return principal

        sender = normalize_address(request.sender)
        failure = await self._check_token_accepted(token)
        if failure:
            return failure

        requires_registration = await self._requires_registration(sender)
        fee_units = await self._read_fee(principal)

        failure = await self._check_balance(sender, token, principal)
        if failure:
            return failure

        quote = Quote(
            principal_units=principal,
            fee_units=fee_units,
            requires_registration=requires_registration,
            token=token,
        )
        logger.debug(
            f"Quote for {mask_address(sender)}: {principal} units {token.symbol}, "
            f"fee={fee_units}, register={requires_registration}"
        )
        return quote

    async def validate_group(
        self, request: GroupPaymentRequest
    ) -> GroupQuote | ValidationFailure:
        """
        Validate a group payment; balance is checked against the total.

        Args:
            request: Group payment request

        Returns:
            GroupQuote or ValidationFailure
        """
        failure = self._check_address(request.sender, "sender")
        if failure:
            return failure
        if not request.recipients:
            return ValidationFailure.error(
                ValidationCode.INVALID_ADDRESS, "At least one recipient is required", "recipients"
            )

        token = self.registry.by_symbol(request.token)
        if token is None:
            return self._unsupported_token(request.token)

        recipients: list[str] = []
        amounts: list[int] = []
        for i, entry in enumerate(request.recipients):
            field_name = f"recipients[{i}]"
            failure = self._check_recipient(entry.address, request.sender, f"{field_name}.address")
            if failure:
                return failure
            amount = parse_amount(entry.amount)
            if amount is None or amount <= 0:
                return ValidationFailure.error(
                    ValidationCode.INVALID_AMOUNT,
                    "Amount must be greater than zero",
                    f"{field_name}.amount",
                )
            units = self._units(amount, token, f"{field_name}.amount")
            if isinstance(units, ValidationFailure):
                return units
            recipients.append(normalize_address(entry.address))
            amounts.append(units)

        if sum(amounts) > MAX_UINT256:
            return ValidationFailure.error(
                ValidationCode.INVALID_AMOUNT, "Total amount exceeds the uint256 range", "recipients"
            )

        sender = normalize_address(request.sender)
        failure = await self._check_token_accepted(token)
        if failure:
            return failure

        requires_registration = await self._requires_registration(sender)

        failure = await self._check_balance(sender, token, sum(amounts))
        if failure:
            return failure

        return GroupQuote(
            recipients=tuple(recipients),
            amounts_units=tuple(amounts),
            requires_registration=requires_registration,
            token=token,
        )

    # ------------------------------------------------------------------
    # Local checks
    # ------------------------------------------------------------------

    @staticmethod
    def _check_address(address: str, field_name: str) -> ValidationFailure | None:
        try:
            normalize_address(address)
        except ValueError as e:
            return ValidationFailure.error(
                ValidationCode.INVALID_ADDRESS, f"Invalid {field_name} address: {e}", field_name
            )
        return None

    def _check_recipient(
        self, recipient: str, sender: str, field_name: str
    ) -> ValidationFailure | None:
        failure = self._check_address(recipient, field_name)
        if failure:
            return failure
        if same_address(recipient, sender):
            return ValidationFailure.error(
                ValidationCode.INVALID_ADDRESS,
                "Recipient must be different from sender",
                field_name,
            )
        return None

    def _unsupported_token(self, symbol: str) -> ValidationFailure:
        known = ", ".join(t.symbol for t in self.registry.all())
        return ValidationFailure.error(
            ValidationCode.UNSUPPORTED_TOKEN,
            f"Unsupported token {symbol!r}; supported: {known}",
            "token",
        )

    @staticmethod
    def _units(
        amount: Decimal, token: TokenDescriptor, field_name: str = "amount"
    ) -> int | ValidationFailure:
        try:
            return to_units(amount, token)
        except (AmountPrecisionError, AmountRangeError) as e:
            return ValidationFailure.error(ValidationCode.INVALID_AMOUNT, str(e), field_name)

    # ------------------------------------------------------------------
    # Chain checks
    # ------------------------------------------------------------------

    async def _check_token_accepted(self, token: TokenDescriptor) -> ValidationFailure | None:
        try:
            accepted = await self.chain.read_contract("supportedStablecoins", (token.address,))
        except ChainReadError as e:
            # Contract stays authoritative and rejects on submit if needed
            logger.warning(f"Token support check for {token.symbol} failed, continuing: {e}")
            return None

        if not accepted:
            return ValidationFailure.error(
                ValidationCode.TOKEN_NOT_ACCEPTED_BY_CONTRACT,
                f"{token.symbol} ({token.address}) is not accepted by the remittance contract",
                "token",
            )
        return None

    async def _requires_registration(self, sender: str) -> bool:
        try:
            state = await self.accounts.get_account_state(sender)
        except ChainReadError as e:
            logger.warning(
                f"Registration check for {mask_address(sender)} failed, "
                f"planning registration: {e}"
            )
            return True
        return not state.is_registered

    async def _read_fee(self, principal: int) -> int | None:
        try:
            fee = int(await self.chain.read_contract("calculateFee", (principal,)))
        except (ChainReadError, TypeError, ValueError) as e:
            logger.warning(f"Fee read for {principal} units failed: {e}")
            return None

        if not 0 <= fee <= principal:
            logger.warning(f"Contract fee {fee} outside [0, {principal}], ignoring")
            return None
        return fee

    async def _check_balance(
        self, sender: str, token: TokenDescriptor, required: int
    ) -> ValidationFailure | None:
        try:
            balance = int(await self.chain.read_token(token.address, "balanceOf", sender))
        except (ChainReadError, TypeError, ValueError) as e:
            logger.warning(f"Balance read for {mask_address(sender)} failed, continuing: {e}")
            return None

        if balance < required:
            return ValidationFailure.error(
                ValidationCode.INSUFFICIENT_BALANCE,
                f"Insufficient token balance. Required: {required} units; "
                f"Available: {balance} units.",
                "amount",
                required_units=required,
                available_units=balance,
            )
        return None
