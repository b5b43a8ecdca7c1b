"""
Execution Path Selector & Submitter.

Drives one submission from request to a terminal outcome:

    IDLE -> PLANNING -> PLAN_READY | PLAN_FAILED
    PLAN_READY -> PATH_SELECTION -> SEQUENTIAL_SUBMISSION | BATCH_SUBMISSION
               -> CONFIRMED | FAILED

The path comes from the session capability decided at connect time.
Dispatched writes are never rolled back; a sequential failure reports how
many calls landed before it.
"""

from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass

from loguru import logger

from app.config.constants import RECEIPT_TIMEOUT_SECONDS
from app.services.blockchain.chain_client import ChainClient
from app.services.blockchain.session import WalletSession
from app.services.remittance.models import (
    ExecutionPlan,
    GroupPaymentRequest,
    SubmissionOutcome,
    SubmissionPath,
    SubmissionState,
    TransferRequest,
    ValidationFailure,
)
from app.services.remittance.planner import ExecutionPlanner
from app.services.remittance.preflight import PreflightValidator
from app.utils.exceptions import (
    FAILURE_MESSAGES,
    ChainReadError,
    ChainWriteError,
    ConfirmationTimeout,
    PlanningBlocked,
    SubmissionFailureReason,
    SubmissionInProgressError,
)
from app.utils.security import mask_address, mask_tx_hash
from app.utils.validation import same_address

InvalidationHook = Callable[[tuple[str, ...]], Awaitable[None]]


@dataclass
class _Tracker:
    """Mutable per-submission state, private to the submitter."""

    sender: str
    state: SubmissionState = SubmissionState.IDLE

    def move(self, state: SubmissionState) -> None:
        logger.debug(f"Submission {mask_address(self.sender)}: {self.state.value} -> {state.value}")
        self.state = state


class TransferSubmitter:
    """
    Submits plans through the sequential (EOA) or batch (smart account) path.

    One submission per sender at a time; is_busy() exposes the flag.
    """

    def __init__(
        self,
        chain: ChainClient,
        validator: PreflightValidator,
        planner: ExecutionPlanner,
        receipt_timeout: float = RECEIPT_TIMEOUT_SECONDS,
        confirm_batches: bool = True,
        invalidation_hooks: Iterable[InvalidationHook] = (),
    ) -> None:
        """
        Initialize submitter.

        Args:
            chain: Chain client
            validator: Preflight validator
            planner: Execution planner
            receipt_timeout: Max wait for each intermediate receipt
            confirm_batches: Poll wallet_getCallsStatus after wallet_sendCalls
            invalidation_hooks: Called with affected addresses after writes
        """
        self.chain = chain
        self.validator = validator
        self.planner = planner
        self.receipt_timeout = receipt_timeout
        self.confirm_batches = confirm_batches
        self._hooks: list[InvalidationHook] = list(invalidation_hooks)
        self._active: dict[str, _Tracker] = {}

    def add_invalidation_hook(self, hook: InvalidationHook) -> None:
        self._hooks.append(hook)

    def is_busy(self, sender: str) -> bool:
        """True while a submission for sender has not reached a terminal state."""
        return sender.lower() in self._active

    def state_of(self, sender: str) -> SubmissionState:
        tracker = self._active.get(sender.lower())
        return tracker.state if tracker else SubmissionState.IDLE

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def submit_transfer(
        self, request: TransferRequest, session: WalletSession
    ) -> SubmissionOutcome:
        """
        Validate, plan and submit a single transfer.

        Args:
            request: Transfer request
            session: Wallet session of the sender

        Returns:
            SubmissionOutcome

        Raises:
            SubmissionInProgressError: Sender already has an active submission
        """
        self._check_session(request.sender, session)
        async with self._claim(request.sender) as tracker:
            tracker.move(SubmissionState.PLANNING)
            quote = await self.validator.validate(request)
            if isinstance(quote, ValidationFailure):
                return self._plan_failed(tracker, quote.message, validation=quote)
            plan = self.planner.plan_transfer(request, quote)
            tracker.move(SubmissionState.PLAN_READY)
            return await self._execute(plan, session, tracker)

    async def submit_group_payment(
        self, request: GroupPaymentRequest, session: WalletSession
    ) -> SubmissionOutcome:
        """
        Validate, plan and submit a group payment (one batchTransfer).

        Raises:
            SubmissionInProgressError: Sender already has an active submission
        """
        self._check_session(request.sender, session)
        async with self._claim(request.sender) as tracker:
            tracker.move(SubmissionState.PLANNING)
            quote = await self.validator.validate_group(request)
            if isinstance(quote, ValidationFailure):
                return self._plan_failed(tracker, quote.message, validation=quote)
            try:
                plan = await self.planner.plan_group_payment(request, quote)
            except PlanningBlocked as e:
                return self._plan_failed(tracker, e.message, raw_error=e.raw or e)
            tracker.move(SubmissionState.PLAN_READY)
            return await self._execute(plan, session, tracker)

    async def submit_plan(self, plan: ExecutionPlan, session: WalletSession) -> SubmissionOutcome:
        """
        Submit an already-built plan (e.g. a withdrawal).

        Raises:
            SubmissionInProgressError: Sender already has an active submission
        """
        self._check_session(plan.sender, session)
        async with self._claim(plan.sender) as tracker:
            tracker.move(SubmissionState.PLAN_READY)
            return await self._execute(plan, session, tracker)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _check_session(sender: str, session: WalletSession) -> None:
        if not same_address(sender, session.address):
            raise ValueError(
                f"Session {mask_address(session.address)} cannot sign for {mask_address(sender)}"
            )

    @asynccontextmanager
    async def _claim(self, sender: str) -> AsyncIterator[_Tracker]:
        key = sender.lower()
        if key in self._active:
            raise SubmissionInProgressError(sender)
        tracker = _Tracker(sender=sender)
        self._active[key] = tracker
        try:
            yield tracker
        finally:
            # Released on terminal states and on cancellation alike
            self._active.pop(key, None)

    def _plan_failed(
        self,
        tracker: _Tracker,
        message: str,
        validation: ValidationFailure | None = None,
        raw_error: BaseException | None = None,
    ) -> SubmissionOutcome:
        tracker.move(SubmissionState.PLAN_FAILED)
        logger.warning(f"Planning failed for {mask_address(tracker.sender)}: {message}")
        return SubmissionOutcome.plan_failed(message, validation=validation, raw_error=raw_error)

    async def _execute(
        self, plan: ExecutionPlan, session: WalletSession, tracker: _Tracker
    ) -> SubmissionOutcome:
        tracker.move(SubmissionState.PATH_SELECTION)
        if session.supports_atomic_batch:
            tracker.move(SubmissionState.BATCH_SUBMISSION)
            outcome = await self._submit_batch(plan, session)
        else:
            tracker.move(SubmissionState.SEQUENTIAL_SUBMISSION)
            outcome = await self._submit_sequential(plan, session)
        tracker.move(outcome.state)

        if outcome.success:
            logger.success(
                f"Submission for {mask_address(plan.sender)} confirmed via {outcome.path.value}: "
                f"{[mask_tx_hash(h) for h in outcome.tx_hashes]}"
            )
        else:
            logger.error(
                f"Submission for {mask_address(plan.sender)} failed at call "
                f"{outcome.failed_index} ({outcome.reason.value if outcome.reason else '-'}), "
                f"{outcome.completed_calls}/{outcome.total_calls} calls completed: {outcome.message}"
            )

        if outcome.success or outcome.tx_hashes or outcome.bundle_id:
            await self._notify(plan.affected)
        return outcome

    async def _submit_sequential(
        self, plan: ExecutionPlan, session: WalletSession
    ) -> SubmissionOutcome:
        """Write each call; wait for its receipt before issuing the next."""
        hashes: list[str] = []
        total = len(plan)

        def failed(index: int, reason: SubmissionFailureReason, message: str,
                   raw: BaseException | None) -> SubmissionOutcome:
            return SubmissionOutcome(
                state=SubmissionState.FAILED,
                phase="submit",
                path=SubmissionPath.SEQUENTIAL,
                tx_hashes=tuple(hashes),
                completed_calls=index,
                total_calls=total,
                failed_index=index,
                reason=reason,
                message=f"Call {index + 1}/{total} ({plan.calls[index].function}) failed: {message}",
                raw_error=raw,
            )

        for index, call in enumerate(plan.calls):
            try:
                tx_hash = await self.chain.write_contract(call, session)
            except ChainWriteError as e:
                return failed(index, e.reason, e.message, e.raw or e)
            hashes.append(tx_hash)

            if index == total - 1:
                break

            try:
                receipt = await self.chain.wait_for_receipt(tx_hash, self.receipt_timeout)
            except ConfirmationTimeout as e:
                return failed(index, e.reason, e.message, e)
            except ChainReadError as e:
                return failed(index, SubmissionFailureReason.UNKNOWN, e.message, e.raw or e)

            if not receipt.success:
                return failed(
                    index,
                    SubmissionFailureReason.REVERTED,
                    FAILURE_MESSAGES[SubmissionFailureReason.REVERTED],
                    None,
                )

        return SubmissionOutcome(
            state=SubmissionState.CONFIRMED,
            path=SubmissionPath.SEQUENTIAL,
            tx_hashes=tuple(hashes),
            completed_calls=total,
            total_calls=total,
        )

    async def _submit_batch(self, plan: ExecutionPlan, session: WalletSession) -> SubmissionOutcome:
        """One wallet_sendCalls bundle; all calls land or none do."""
        total = len(plan)
        try:
            bundle_id = await self.chain.send_batch(plan.calls, session)
        except ChainWriteError as e:
            return SubmissionOutcome(
                state=SubmissionState.FAILED,
                phase="submit",
                path=SubmissionPath.BATCH,
                total_calls=total,
                reason=e.reason,
                message=e.message,
                raw_error=e.raw or e,
            )

        if not self.confirm_batches:
            return self._batch_confirmed(bundle_id, (), total)

        try:
            status = await self.chain.wait_for_batch_confirmation(bundle_id)
        except ConfirmationTimeout as e:
            return SubmissionOutcome(
                state=SubmissionState.FAILED,
                phase="submit",
                path=SubmissionPath.BATCH,
                bundle_id=bundle_id,
                total_calls=total,
                reason=e.reason,
                message=e.message,
                raw_error=e,
            )
        except ChainReadError as e:
            # Bundle was accepted; status polling is unsupported or down
            logger.warning(f"Bundle {bundle_id} status unavailable, reporting as sent: {e}")
            return self._batch_confirmed(bundle_id, (), total)

        if status.status == "FAILED":
            return SubmissionOutcome(
                state=SubmissionState.FAILED,
                phase="submit",
                path=SubmissionPath.BATCH,
                bundle_id=bundle_id,
                tx_hashes=status.tx_hashes,
                total_calls=total,
                reason=SubmissionFailureReason.REVERTED,
                message=FAILURE_MESSAGES[SubmissionFailureReason.REVERTED],
            )
        return self._batch_confirmed(bundle_id, status.tx_hashes, total)

    @staticmethod
    def _batch_confirmed(bundle_id: str, tx_hashes: tuple[str, ...], total: int) -> SubmissionOutcome:
        return SubmissionOutcome(
            state=SubmissionState.CONFIRMED,
            path=SubmissionPath.BATCH,
            bundle_id=bundle_id,
            tx_hashes=tx_hashes or (bundle_id,),
            completed_calls=total,
            total_calls=total,
        )

    async def _notify(self, addresses: tuple[str, ...]) -> None:
        for hook in self._hooks:
            try:
                await hook(addresses)
            except Exception as e:
                logger.error(f"Cache invalidation hook failed: {e}")
