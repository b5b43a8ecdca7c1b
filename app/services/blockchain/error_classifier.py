"""
Provider error classification.

Maps raw provider / web3 exceptions to a SubmissionFailureReason.
Provider messages are not standardized, so matching is by code where one
exists and by lower-cased substrings otherwise.
"""

from typing import Any

from web3.exceptions import ContractLogicError, TimeExhausted

from app.utils.exceptions import (
    ChainWriteError,
    ConfirmationTimeout,
    SubmissionFailureReason,
)


# EIP-1193 "User Rejected Request"
USER_REJECTED_CODES = {4001}
# JSON-RPC "execution reverted"
REVERTED_CODES = {3}

USER_REJECTED_PATTERNS = (
    "user rejected",
    "user denied",
    "rejected by user",
    "request rejected",
    "action_rejected",
)
INSUFFICIENT_FUNDS_PATTERNS = (
    "insufficient funds",
    "insufficient balance for transfer",
    "gas required exceeds allowance",
    "intrinsic gas too low",
    "out of gas",
)
REVERTED_PATTERNS = (
    "execution reverted",
    "reverted",
    "revert",
)


def _extract_error_payload(exc: BaseException) -> tuple[int | None, str]:
    """
    Pull (code, message) out of an exception.

    Handles web3 RPC errors that carry the JSON-RPC error dict in args
    and plain exceptions with a string message.
    """
    code: int | None = None
    parts: list[str] = [str(exc)]

    for arg in getattr(exc, "args", ()):
        if isinstance(arg, dict):
            raw_code = arg.get("code")
            if isinstance(raw_code, int):
                code = raw_code
            message = arg.get("message")
            if message:
                parts.append(str(message))

    rpc_response: Any = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, dict):
        error = rpc_response.get("error") or {}
        if isinstance(error, dict):
            if isinstance(error.get("code"), int):
                code = error["code"]
            if error.get("message"):
                parts.append(str(error["message"]))

    raw_code = getattr(exc, "code", None)
    if code is None and isinstance(raw_code, int):
        code = raw_code

    return code, " ".join(parts).lower()


def classify_provider_error(exc: BaseException) -> SubmissionFailureReason:
    """
    Classify a provider error.

    Args:
        exc: Raw exception raised while submitting or confirming

    Returns:
        SubmissionFailureReason
    """
    if isinstance(exc, (ChainWriteError, ConfirmationTimeout)):
        return exc.reason
    if isinstance(exc, TimeExhausted):
        return SubmissionFailureReason.CONFIRMATION_TIMEOUT

    code, text = _extract_error_payload(exc)

    if code in USER_REJECTED_CODES or any(p in text for p in USER_REJECTED_PATTERNS):
        return SubmissionFailureReason.USER_REJECTED
    if any(p in text for p in INSUFFICIENT_FUNDS_PATTERNS):
        return SubmissionFailureReason.INSUFFICIENT_FUNDS
    if (
        isinstance(exc, ContractLogicError)
        or code in REVERTED_CODES
        or any(p in text for p in REVERTED_PATTERNS)
    ):
        return SubmissionFailureReason.REVERTED
    return SubmissionFailureReason.UNKNOWN


def to_write_error(exc: BaseException) -> ChainWriteError:
    """
    Wrap a raw provider exception into ChainWriteError.

    Args:
        exc: Raw exception

    Returns:
        ChainWriteError with classified reason and the raw error attached
    """
    if isinstance(exc, ChainWriteError):
        return exc
    reason = classify_provider_error(exc)
    return ChainWriteError(reason, raw=exc)
