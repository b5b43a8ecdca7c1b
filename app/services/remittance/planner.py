"""
Execution Planner.

Turns a validated request into an ExecutionPlan. Plans are built completely
before anything is submitted; a required read that fails raises
PlanningBlocked and leaves nothing behind.
"""

from enum import Enum
from typing import Any

from loguru import logger

from app.config.constants import ZERO_ADDRESS
from app.services.blockchain.chain_client import ChainClient
from app.services.blockchain.constants import ERC20_ABI, REMITTANCE_ABI
from app.services.remittance.models import (
    CallTag,
    ExecutionPlan,
    GroupPaymentRequest,
    GroupQuote,
    PlannedCall,
    Quote,
    TransferRequest,
)
from app.utils.exceptions import ChainReadError, PlanningBlocked
from app.utils.security import mask_address
from app.utils.validation import normalize_address


class ApprovalSizing(str, Enum):
    """How much allowance a single transfer approves."""

    PRINCIPAL = "principal"
    PRINCIPAL_PLUS_FEE = "principal_plus_fee"


WITHDRAWAL_FUNCTIONS = {
    CallTag.WITHDRAW_CASHBACK: "withdrawCashback",
    CallTag.WITHDRAW_REFERRAL_REWARDS: "withdrawReferralRewards",
}


class ExecutionPlanner:
    """Builds ordered call plans for the remittance contract."""

    def __init__(
        self,
        chain: ChainClient,
        approval_sizing: ApprovalSizing = ApprovalSizing.PRINCIPAL,
    ) -> None:
        """
        Initialize planner.

        Args:
            chain: Chain client (ABI encoding, allowance reads)
            approval_sizing: Approval size for single transfers
        """
        self.chain = chain
        self.approval_sizing = ApprovalSizing(approval_sizing)

    @property
    def contract_address(self) -> str:
        return self.chain.contract_address

    def plan_transfer(self, request: TransferRequest, quote: Quote) -> ExecutionPlan:
        """
        Plan a single transfer: [register], approve, initiateTransfer.

        Args:
            request: Validated transfer request
            quote: Preflight quote for the request

        Returns:
            ExecutionPlan
        """
        sender = normalize_address(request.sender)
        recipient = normalize_address(request.recipient)
        token = quote.token

        calls: list[PlannedCall] = []
        if quote.requires_registration:
            calls.append(self._register_call())

        calls.append(self._approve_call(token.address, self._approval_units(quote)))
        calls.append(
            self._remittance_call(
                CallTag.TRANSFER,
                "initiateTransfer",
                (recipient, quote.principal_units, request.country.strip().upper(), token.address),
            )
        )

        plan = ExecutionPlan(sender=sender, calls=tuple(calls), affected=(sender, recipient))
        logger.info(
            f"Planned transfer for {mask_address(sender)}: "
            f"{[t.value for t in plan.tags]}"
        )
        return plan

    async def plan_group_payment(
        self, request: GroupPaymentRequest, quote: GroupQuote
    ) -> ExecutionPlan:
        """
        Plan a group payment: [register], [approve(total)], batchTransfer.

        The current allowance is read; approve is only added when it does
        not cover the total.

        Args:
            request: Validated group payment request
            quote: Preflight group quote

        Returns:
            ExecutionPlan

        Raises:
            PlanningBlocked: If the allowance cannot be read
        """
        sender = normalize_address(request.sender)
        token = quote.token
        total = quote.total_units

        try:
            allowance = int(
                await self.chain.read_token(
                    token.address, "allowance", sender, self.contract_address
                )
            )
        except (ChainReadError, TypeError, ValueError) as e:
            logger.error(
                f"Allowance read for {mask_address(sender)} failed, group payment not planned: {e}"
            )
            raise PlanningBlocked(
                f"Could not read current {token.symbol} allowance", raw=e
            ) from e

        calls: list[PlannedCall] = []
        if quote.requires_registration:
            calls.append(self._register_call())
        if allowance < total:
            calls.append(self._approve_call(token.address, total))
        else:
            logger.debug(f"Allowance {allowance} covers total {total}, skipping approve")

        calls.append(
            self._remittance_call(
                CallTag.BATCH_TRANSFER,
                "batchTransfer",
                (quote.recipients, quote.amounts_units, token.address),
            )
        )

        plan = ExecutionPlan(
            sender=sender,
            calls=tuple(calls),
            affected=(sender, *quote.recipients),
        )
        logger.info(
            f"Planned group payment for {mask_address(sender)} "
            f"({len(quote.recipients)} recipients, {total} units): "
            f"{[t.value for t in plan.tags]}"
        )
        return plan

    def plan_withdrawal(self, sender: str, kind: CallTag = CallTag.WITHDRAW_CASHBACK) -> ExecutionPlan:
        """
        Plan a cashback or referral reward withdrawal.

        Raises:
            ValueError: If kind is not a withdrawal tag
        """
        if kind not in WITHDRAWAL_FUNCTIONS:
            raise ValueError(f"Not a withdrawal call: {kind}")
        sender = normalize_address(sender)
        call = self._remittance_call(kind, WITHDRAWAL_FUNCTIONS[kind], ())
        return ExecutionPlan(sender=sender, calls=(call,), affected=(sender,))

    # ------------------------------------------------------------------
    # Call builders
    # ------------------------------------------------------------------

    def _approval_units(self, quote: Quote) -> int:
        if self.approval_sizing == ApprovalSizing.PRINCIPAL_PLUS_FEE and quote.fee is not None:
            return quote.fee.total_units
        return quote.principal_units

    def _register_call(self) -> PlannedCall:
        # Referrer capture happens outside this core
        return self._remittance_call(CallTag.REGISTER, "registerUser", (ZERO_ADDRESS,))

    def _approve_call(self, token_address: str, units: int) -> PlannedCall:
        args = (self.contract_address, units)
        return PlannedCall(
            target=token_address,
            function="approve",
            args=args,
            data=self.chain.encode_call("approve", args, token_address, ERC20_ABI),
            tag=CallTag.APPROVE,
        )

    def _remittance_call(self, tag: CallTag, function: str, args: tuple[Any, ...]) -> PlannedCall:
        encoded_args = [list(a) if isinstance(a, tuple) else a for a in args]
        return PlannedCall(
            target=self.contract_address,
            function=function,
            args=args,
            data=self.chain.encode_call(
                function, encoded_args, self.contract_address, REMITTANCE_ABI
            ),
            tag=tag,
        )
