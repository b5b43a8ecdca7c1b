"""
Remittance core data model.

Requests, quotes, validation failures, execution plans, submission outcomes
and history records. All value objects are frozen: a cached or returned
instance can be shared between concurrent readers.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from app.config.constants import BLOCK_EXPLORER_TX_URL
from app.services.blockchain.token_registry import TokenDescriptor
from app.services.remittance.amounts import format_units
from app.utils.exceptions import FAILURE_MESSAGES, SubmissionFailureReason


# ============================================================================
# REQUESTS
# ============================================================================


@dataclass(frozen=True)
class TransferRequest:
    """Single remittance request."""

    sender: str
    recipient: str
    token: str
    amount: Decimal
    country: str
    memo: str | None = None


@dataclass(frozen=True)
class GroupRecipient:
    """One recipient of a group payment."""

    address: str
    amount: Decimal


@dataclass(frozen=True)
class GroupPaymentRequest:
    """Group payment: one token, many recipients, one batchTransfer."""

    sender: str
    token: str
    recipients: tuple[GroupRecipient, ...]

    @property
    def total_amount(self) -> Decimal:
        return sum((r.amount for r in self.recipients), Decimal(0))


# ============================================================================
# VALIDATION
# ============================================================================


class ValidationCode(str, Enum):
    """Expected business outcomes that stop a request before any write."""

    UNSUPPORTED_TOKEN = "UNSUPPORTED_TOKEN"
    TOKEN_NOT_ACCEPTED_BY_CONTRACT = "TOKEN_NOT_ACCEPTED_BY_CONTRACT"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_COUNTRY = "INVALID_COUNTRY"


@dataclass(frozen=True)
class ValidationFailure:
    """Terminal validation result (returned, not raised)."""

    code: ValidationCode
    message: str
    field: str | None = None
    required_units: int | None = None
    available_units: int | None = None

    @classmethod
    def error(
        cls,
        code: ValidationCode,
        message: str,
        field: str | None = None,
        **kwargs: Any,
    ) -> "ValidationFailure":
        """Create a validation failure."""
        return cls(code=code, message=message, field=field, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "field": self.field,
        }
        if self.required_units is not None:
            data["required"] = str(self.required_units)
        if self.available_units is not None:
            data["available"] = str(self.available_units)
        return data


@dataclass(frozen=True)
class TransferFee:
    """
    Fee for a principal, in raw units.

    Invariant: 0 <= fee_units <= principal_units.
    """

    principal_units: int
    fee_units: int

    def __post_init__(self) -> None:
        if not 0 <= self.fee_units <= self.principal_units:
            raise ValueError(
                f"Fee {self.fee_units} outside [0, {self.principal_units}]"
            )

    @property
    def net_units(self) -> int:
        """Amount the recipient side receives."""
        return self.principal_units - self.fee_units

    @property
    def total_units(self) -> int:
        """Principal plus fee."""
        return self.principal_units + self.fee_units


@dataclass(frozen=True)
class Quote:
    """Preflight result for a single transfer."""

    principal_units: int
    fee_units: int | None
    requires_registration: bool
    token: TokenDescriptor

    @property
    def fee(self) -> TransferFee | None:
        if self.fee_units is None:
            return None
        return TransferFee(self.principal_units, self.fee_units)


@dataclass(frozen=True)
class GroupQuote:
    """Preflight result for a group payment (units in recipient order)."""

    recipients: tuple[str, ...]
    amounts_units: tuple[int, ...]
    requires_registration: bool
    token: TokenDescriptor

    @property
    def total_units(self) -> int:
        return sum(self.amounts_units)


# ============================================================================
# PLANS
# ============================================================================


class CallTag(str, Enum):
    """Role of a planned call."""

    REGISTER = "register"
    APPROVE = "approve"
    TRANSFER = "transfer"
    BATCH_TRANSFER = "batchTransfer"
    WITHDRAW_CASHBACK = "withdrawCashback"
    WITHDRAW_REFERRAL_REWARDS = "withdrawReferralRewards"


SPENDING_TAGS = (CallTag.TRANSFER, CallTag.BATCH_TRANSFER)


@dataclass(frozen=True)
class PlannedCall:
    """One on-chain write: target contract, function, arguments, calldata."""

    target: str
    function: str
    args: tuple[Any, ...]
    data: str
    tag: CallTag


@dataclass(frozen=True)
class ExecutionPlan:
    """
    Ordered, immutable list of calls for one submission.

    Attributes:
        sender: Account that signs every call
        calls: Calls in execution order
        affected: Addresses whose cached state the plan changes
    """

    sender: str
    calls: tuple[PlannedCall, ...]
    affected: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.calls:
            raise ValueError("Execution plan cannot be empty")

        tags = [c.tag for c in self.calls]
        if CallTag.REGISTER in tags:
            first_other = next(
                (i for i, t in enumerate(tags) if t != CallTag.REGISTER), len(tags)
            )
            if tags.index(CallTag.REGISTER) > first_other:
                raise ValueError("register must precede every other call")

        # approve for a token must come before the spend of that token
        for i, call in enumerate(self.calls):
            if call.tag != CallTag.APPROVE:
                continue
            for earlier in self.calls[:i]:
                if earlier.tag in SPENDING_TAGS and _spent_token(earlier) == call.target.lower():
                    raise ValueError("approve must precede the call that spends it")

    def __len__(self) -> int:
        return len(self.calls)

    def __iter__(self):
        return iter(self.calls)

    @property
    def tags(self) -> tuple[CallTag, ...]:
        return tuple(c.tag for c in self.calls)


def _spent_token(call: PlannedCall) -> str:
    """Token address spent by a transfer/batchTransfer (last argument)."""
    return str(call.args[-1]).lower()


# ============================================================================
# SUBMISSION
# ============================================================================


class SubmissionState(str, Enum):
    """States of one submission."""

    IDLE = "idle"
    PLANNING = "planning"
    PLAN_READY = "plan_ready"
    PLAN_FAILED = "plan_failed"
    PATH_SELECTION = "path_selection"
    SEQUENTIAL_SUBMISSION = "sequential_submission"
    BATCH_SUBMISSION = "batch_submission"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class SubmissionPath(str, Enum):
    SEQUENTIAL = "sequential"
    BATCH = "batch"


@dataclass(frozen=True)
class SubmissionOutcome:
    """
    Terminal result of a submission.

    Attributes:
        state: CONFIRMED, FAILED or PLAN_FAILED
        phase: "plan" or "submit" for failures
        path: Execution path taken (None when planning failed)
        tx_hashes: Hashes of dispatched calls (or the bundle transactions)
        completed_calls: Calls confirmed before the failure
        total_calls: Calls in the plan
        failed_index: Index of the failing call (sequential path)
        reason: Classified submission failure
        message: Human-readable reason
        validation: Validation failure when the request was rejected
        bundle_id: wallet_sendCalls id (batch path)
        raw_error: Original provider error
    """

    state: SubmissionState
    phase: str | None = None
    path: SubmissionPath | None = None
    tx_hashes: tuple[str, ...] = ()
    completed_calls: int = 0
    total_calls: int = 0
    failed_index: int | None = None
    reason: SubmissionFailureReason | None = None
    message: str | None = None
    validation: ValidationFailure | None = None
    bundle_id: str | None = None
    raw_error: BaseException | None = field(default=None, repr=False, compare=False)

    @property
    def success(self) -> bool:
        return self.state == SubmissionState.CONFIRMED

    @property
    def partial(self) -> bool:
        """Some calls landed, then the submission failed."""
        return self.state == SubmissionState.FAILED and self.completed_calls > 0

    @property
    def tx_hash(self) -> str | None:
        """Hash of the last dispatched transaction."""
        return self.tx_hashes[-1] if self.tx_hashes else None

    @classmethod
    def plan_failed(
        cls,
        message: str,
        validation: ValidationFailure | None = None,
        raw_error: BaseException | None = None,
    ) -> "SubmissionOutcome":
        return cls(
            state=SubmissionState.PLAN_FAILED,
            phase="plan",
            message=message,
            validation=validation,
            raw_error=raw_error,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "state": self.state.value,
            "txHash": self.tx_hash,
            "txHashes": list(self.tx_hashes),
            "completedCalls": self.completed_calls,
            "totalCalls": self.total_calls,
            "partial": self.partial,
        }
        if self.path is not None:
            data["path"] = self.path.value
        if self.bundle_id is not None:
            data["bundleId"] = self.bundle_id
        if not self.success:
            data["phase"] = self.phase
            data["failedIndex"] = self.failed_index
            data["reason"] = self.reason.value if self.reason else None
            data["error"] = self.message or (
                FAILURE_MESSAGES[self.reason] if self.reason else None
            )
            if self.validation is not None:
                data["validation"] = self.validation.to_dict()
        return data


# ============================================================================
# ACCOUNT STATE / HISTORY
# ============================================================================


@dataclass(frozen=True)
class UserAccountState:
    """On-chain account state (raw units)."""

    is_registered: bool
    referrer: str
    total_transferred: int
    total_received: int
    cashback_earned: int
    referral_rewards: int
    referral_count: int
    last_activity: int

    @classmethod
    def from_chain(cls, raw: Any) -> "UserAccountState":
        """Build from a decoded getUser tuple."""
        (
            is_registered,
            referrer,
            total_transferred,
            total_received,
            cashback_earned,
            referral_rewards,
            referral_count,
            last_activity,
        ) = tuple(raw)
        return cls(
            is_registered=bool(is_registered),
            referrer=str(referrer),
            total_transferred=int(total_transferred),
            total_received=int(total_received),
            cashback_earned=int(cashback_earned),
            referral_rewards=int(referral_rewards),
            referral_count=int(referral_count),
            last_activity=int(last_activity),
        )


@dataclass(frozen=True)
class TransactionRecord:
    """User-facing transfer record; tx_hash is None when unresolved."""

    id: str
    sender: str
    recipient: str
    amount_units: int
    token_symbol: str
    token_decimals: int
    country: str
    fee_units: int
    cashback_units: int
    timestamp: int
    completed: bool
    group_id: int = 0
    tx_hash: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sender": self.sender,
            "recipient": self.recipient,
            "amount": format_units(self.amount_units, self.token_decimals),
            "token": self.token_symbol,
            "country": self.country,
            "fee": format_units(self.fee_units, self.token_decimals),
            "cashback": format_units(self.cashback_units, self.token_decimals),
            "timestamp": self.timestamp,
            "completed": self.completed,
            "status": "completed" if self.completed else "pending",
            "groupId": str(self.group_id),
            "txHash": self.tx_hash,
            "explorerUrl": f"{BLOCK_EXPLORER_TX_URL}/{self.tx_hash}" if self.tx_hash else None,
        }


@dataclass(frozen=True)
class HistoryPage:
    """One page of history with the clamped window it was read with."""

    address: str
    start: int
    count: int
    records: tuple[TransactionRecord, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions": [r.to_dict() for r in self.records],
            "pagination": {
                "start": self.start,
                "count": self.count,
                "returned": len(self.records),
                "hasMore": len(self.records) == self.count,
            },
        }
