"""
Exception handling utilities.

Defines categorized exception types for proper error handling.

Expected business outcomes (insufficient balance, unsupported token) are
returned as ValidationFailure results, not raised. Everything here is for
infrastructure failures and protocol-level errors.
"""

from enum import Enum

from web3.exceptions import Web3Exception


class SubmissionFailureReason(str, Enum):
    """Classified reason of a failed on-chain write."""

    USER_REJECTED = "user_rejected"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    REVERTED = "reverted"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"
    UNKNOWN = "unknown"


FAILURE_MESSAGES = {
    SubmissionFailureReason.USER_REJECTED: "Transaction was rejected by user",
    SubmissionFailureReason.INSUFFICIENT_FUNDS: "Insufficient funds for gas + value",
    SubmissionFailureReason.REVERTED: "Transaction reverted by the contract",
    SubmissionFailureReason.CONFIRMATION_TIMEOUT: (
        "Transaction confirmation timeout - it may still be mined, check status later"
    ),
    SubmissionFailureReason.UNKNOWN: "Transaction failed",
}


class RemittanceError(Exception):
    """Base exception for the remittance core."""

    def __init__(self, message: str, raw: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.raw = raw


class ChainReadError(RemittanceError):
    """Raised when a contract read fails (RPC failure or ABI decode mismatch)."""

    def __init__(
        self,
        function: str,
        message: str,
        raw: BaseException | None = None,
    ) -> None:
        super().__init__(f"{function}: {message}", raw)
        self.function = function


class ChainWriteError(RemittanceError):
    """Raised when a state-changing call cannot be submitted."""

    def __init__(
        self,
        reason: SubmissionFailureReason,
        message: str | None = None,
        raw: BaseException | None = None,
    ) -> None:
        super().__init__(message or FAILURE_MESSAGES[reason], raw)
        self.reason = reason


class ConfirmationTimeout(RemittanceError):
    """
    Raised when a receipt did not arrive in time.

    Not a revert: the transaction may still be mined later.
    """

    def __init__(self, tx_hash: str, timeout: float) -> None:
        super().__init__(
            f"Transaction {tx_hash} not confirmed after {timeout}s"
        )
        self.tx_hash = tx_hash
        self.timeout = timeout
        self.reason = SubmissionFailureReason.CONFIRMATION_TIMEOUT


class PlanningBlocked(RemittanceError):
    """Raised when a read required to build a plan failed. No calls issued."""


class RequiredReadFailed(RemittanceError):
    """Raised when transaction ids or transaction tuples cannot be read."""


class StorageCorruptedError(RemittanceError):
    """Raised when stored data cannot be parsed; the stored value is left as is."""


class SubmissionInProgressError(RemittanceError):
    """Raised when a sender already has a submission that is not terminal."""

    def __init__(self, sender: str) -> None:
        super().__init__(f"Submission already in progress for {sender}")
        self.sender = sender


# Exception categories based on handling strategy

# Must log but can continue - degradable reads (fee, balance, logs)
MUST_LOG = (
    ChainReadError,
    Web3Exception,
)

# Must raise - the caller has to see these
MUST_RAISE = (
    PlanningBlocked,
    RequiredReadFailed,
    StorageCorruptedError,
    SubmissionInProgressError,
)


def must_log(exc: Exception) -> bool:
    """
    Check if exception must be logged.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be logged
    """
    return isinstance(exc, MUST_LOG)


def must_raise(exc: Exception) -> bool:
    """
    Check if exception must be raised.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be raised
    """
    return isinstance(exc, MUST_RAISE)
