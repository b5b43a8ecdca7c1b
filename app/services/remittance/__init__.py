"""
Remittance core.

Preflight validation, execution planning, submission and history
reconciliation against the remittance contract.
"""

from .account_cache import ExpiringCache
from .account_service import AccountService, tier_for
from .history import HistoryReconciler, clamp_window
from .models import (
    CallTag,
    ExecutionPlan,
    GroupPaymentRequest,
    GroupQuote,
    GroupRecipient,
    HistoryPage,
    PlannedCall,
    Quote,
    SubmissionOutcome,
    SubmissionState,
    TransactionRecord,
    TransferRequest,
    UserAccountState,
    ValidationCode,
    ValidationFailure,
)
from .planner import ApprovalSizing, ExecutionPlanner
from .preflight import PreflightValidator
from .submitter import TransferSubmitter


__all__ = [
    "ExpiringCache",
    "AccountService",
    "tier_for",
    "HistoryReconciler",
    "clamp_window",
    "CallTag",
    "ExecutionPlan",
    "GroupPaymentRequest",
    "GroupQuote",
    "GroupRecipient",
    "HistoryPage",
    "PlannedCall",
    "Quote",
    "SubmissionOutcome",
    "SubmissionState",
    "TransactionRecord",
    "TransferRequest",
    "UserAccountState",
    "ValidationCode",
    "ValidationFailure",
    "ApprovalSizing",
    "ExecutionPlanner",
    "PreflightValidator",
    "TransferSubmitter",
]
