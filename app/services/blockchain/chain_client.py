"""
Chain Client.

Single point of contact for the remittance contract and the ERC-20 tokens:
ABI encoding/decoding, reads, writes, receipts, EIP-5792 bundles and event
logs. Writes always take an explicit WalletSession.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract
from web3.exceptions import TimeExhausted

from app.config.constants import (
    BATCH_STATUS_INTERVAL_SECONDS,
    BATCH_STATUS_MAX_ATTEMPTS,
    BLOCKCHAIN_READ_RETRIES,
    BLOCKCHAIN_TIMEOUT,
    RECEIPT_POLL_INTERVAL_SECONDS,
    RECEIPT_TIMEOUT_SECONDS,
)
from app.utils.exceptions import (
    ChainReadError,
    ChainWriteError,
    ConfirmationTimeout,
    SubmissionFailureReason,
)
from app.utils.security import mask_address, mask_tx_hash

from .constants import (
    ERC20_ABI,
    GAS_LIMIT_MULTIPLIER,
    REMITTANCE_ABI,
    WALLET_SEND_CALLS_VERSION,
)
from .error_classifier import to_write_error
from .rpc_wrapper import call_with_timeout, rpc_call_with_retry
from .session import WalletSession

if TYPE_CHECKING:
    from app.services.remittance.models import PlannedCall


@dataclass(frozen=True)
class Receipt:
    """Mined transaction receipt (subset the core needs)."""

    tx_hash: str
    success: bool
    block_number: int | None = None
    gas_used: int | None = None


@dataclass(frozen=True)
class BatchStatus:
    """
    Status of an EIP-5792 bundle.

    Attributes:
        bundle_id: Id returned by wallet_sendCalls
        status: PENDING, CONFIRMED or FAILED
        tx_hashes: Transaction hashes from the bundle receipts
    """

    bundle_id: str
    status: str
    tx_hashes: tuple[str, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_final(self) -> bool:
        return self.status in ("CONFIRMED", "FAILED")


def _normalize_batch_status(value: Any) -> str:
    """Map wallet_getCallsStatus status (v1 strings or v2 codes) to a name."""
    if isinstance(value, int):
        if value < 200:
            return "PENDING"
        if value < 300:
            return "CONFIRMED"
        return "FAILED"
    text = str(value or "").upper()
    if text in ("CONFIRMED", "SUCCESS", "COMPLETED"):
        return "CONFIRMED"
    if text in ("FAILED", "FAILURE", "REVERTED"):
        return "FAILED"
    return "PENDING"


class ChainClient:
    """
    Read/write handle for the remittance contract.

    Features:
    - Lazy contract instances per (address, abi kind)
    - Reads with timeout and retry, wrapped into ChainReadError
    - Writes signed locally (EOA key) or through the wallet node
    - wallet_sendCalls bundles for smart accounts
    """

    def __init__(
        self,
        web3: AsyncWeb3,
        contract_address: str,
        chain_id: int,
        read_retries: int = BLOCKCHAIN_READ_RETRIES,
        rpc_timeout: float = BLOCKCHAIN_TIMEOUT,
        poll_interval: float = RECEIPT_POLL_INTERVAL_SECONDS,
    ) -> None:
        """
        Initialize chain client.

        Args:
            web3: AsyncWeb3 instance
            contract_address: Remittance contract address
            chain_id: Target chain id
            read_retries: Attempts per read
            rpc_timeout: Timeout per RPC call in seconds
            poll_interval: Receipt polling interval in seconds
        """
        self.web3 = web3
        self.contract_address = to_checksum_address(contract_address)
        self.chain_id = chain_id
        self.read_retries = read_retries
        self.rpc_timeout = rpc_timeout
        self.poll_interval = poll_interval

        self._contracts: dict[tuple[str, int], AsyncContract] = {}
        self._nonce_lock = asyncio.Lock()

        logger.debug(
            f"ChainClient initialized: contract={self.contract_address}, "
            f"chain_id={self.chain_id}"
        )

    @classmethod
    def from_rpc_url(
        cls, rpc_url: str, contract_address: str, chain_id: int, **kwargs: Any
    ) -> "ChainClient":
        """Create client with an AsyncHTTPProvider for rpc_url."""
        web3 = AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                rpc_url, request_kwargs={"timeout": BLOCKCHAIN_TIMEOUT}
            )
        )
        return cls(web3, contract_address, chain_id, **kwargs)

    # ------------------------------------------------------------------
    # Contracts and ABI
    # ------------------------------------------------------------------

    def contract(self, address: str | None = None, abi: list | None = None) -> AsyncContract:
        """
        Get contract instance (lazy, cached).

        Args:
            address: Contract address (default: remittance contract)
            abi: Contract ABI (default: remittance ABI)

        Returns:
            AsyncContract
        """
        checksum = to_checksum_address(address) if address else self.contract_address
        abi = abi if abi is not None else REMITTANCE_ABI
        key = (checksum, id(abi))
        if key not in self._contracts:
            self._contracts[key] = self.web3.eth.contract(address=checksum, abi=abi)
        return self._contracts[key]

    def encode_call(
        self,
        function: str,
        args: Sequence[Any],
        contract_address: str | None = None,
        abi: list | None = None,
    ) -> str:
        """
        ABI-encode a call.

        Args:
            function: Function name
            args: Positional arguments
            contract_address: Target contract (default: remittance contract)
            abi: ABI of the target

        Returns:
            0x-prefixed calldata
        """
        contract = self.contract(contract_address, abi)
        return contract.encode_abi(function, args=list(args))

    def decode_call(
        self,
        data: str,
        contract_address: str | None = None,
        abi: list | None = None,
    ) -> tuple[str, dict[str, Any]]:
        """
        Decode calldata back into (function name, named arguments).

        Raises:
            ValueError: If the selector is not in the ABI
        """
        contract = self.contract(contract_address, abi)
        func, params = contract.decode_function_input(data)
        return func.fn_name, dict(params)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_contract(
        self,
        function: str,
        args: Sequence[Any] = (),
        contract_address: str | None = None,
        abi: list | None = None,
    ) -> Any:
        """
        Execute a view call.

        A defined false/zero answer is returned as-is.

        Args:
            function: Function name
            args: Positional arguments
            contract_address: Target contract (default: remittance contract)
            abi: ABI of the target

        Returns:
            Decoded result

        Raises:
            ChainReadError: On RPC failure, timeout or decode mismatch
        """
        contract = self.contract(contract_address, abi)
        try:
            bound = getattr(contract.functions, function)(*args)
            return await rpc_call_with_retry(
                lambda: bound.call(),
                max_retries=self.read_retries,
                timeout=self.rpc_timeout,
                operation_name=f"read {function}",
            )
        except Exception as e:
            logger.warning(f"Contract read {function} failed: {e}")
            raise ChainReadError(function, str(e) or type(e).__name__, raw=e) from e

    async def read_token(self, token_address: str, function: str, *args: Any) -> Any:
        """ERC-20 view call (balanceOf, allowance)."""
        return await self.read_contract(function, args, token_address, ERC20_ABI)

    async def get_transfer_logs(
        self,
        sender: str | None = None,
        recipient: str | None = None,
        from_block: int = 0,
        to_block: int | str = "latest",
    ) -> list[dict[str, Any]]:
        """
        Fetch TransferInitiated logs filtered by indexed sender / recipient.

        Args:
            sender: Indexed sender filter
            recipient: Indexed recipient filter
            from_block: First block
            to_block: Last block

        Returns:
            List of {"tx_id": int, "tx_hash": str, "block_number": int}

        Raises:
            ChainReadError: If the log query fails
        """
        argument_filters: dict[str, str] = {}
        if sender:
            argument_filters["sender"] = to_checksum_address(sender)
        if recipient:
            argument_filters["recipient"] = to_checksum_address(recipient)

        event = self.contract().events.TransferInitiated
        try:
            logs = await rpc_call_with_retry(
                lambda: event.get_logs(
                    from_block=from_block,
                    to_block=to_block,
                    argument_filters=argument_filters,
                ),
                max_retries=self.read_retries,
                timeout=self.rpc_timeout,
                operation_name="get TransferInitiated logs",
            )
        except Exception as e:
            raise ChainReadError("TransferInitiated", str(e) or type(e).__name__, raw=e) from e

        decoded = []
        for log in logs:
            try:
                decoded.append(
                    {
                        "tx_id": int(log["args"]["txId"]),
                        "tx_hash": Web3.to_hex(log["transactionHash"]),
                        "block_number": log.get("blockNumber"),
                    }
                )
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(
                    f"Skipping undecodable TransferInitiated log: {type(e).__name__}: {e}"
                )
        return decoded

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write_contract(self, call: "PlannedCall", session: WalletSession) -> str:
        """
        Submit one state-changing call.

        Args:
            call: Planned call (target + calldata)
            session: Active wallet session

        Returns:
            Transaction hash (0x-prefixed)

        Raises:
            ChainWriteError: Classified submission failure
        """
        tx: dict[str, Any] = {
            "from": session.address,
            "to": to_checksum_address(call.target),
            "data": call.data,
            "value": 0,
            "chainId": self.chain_id,
        }

        try:
            if session.signs_locally:
                tx_hash = await self._send_signed(tx, session)
            else:
                tx_hash = await call_with_timeout(
                    self.web3.eth.send_transaction,
                    tx,
                    timeout=self.rpc_timeout,
                    operation_name=f"send {call.function}",
                )
        except Exception as e:
            error = to_write_error(e)
            logger.error(
                f"Write {call.function} from {mask_address(session.address)} failed: "
                f"{error.reason.value} ({e})"
            )
            raise error from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(
            f"Write {call.function} sent from {mask_address(session.address)}: "
            f"{mask_tx_hash(tx_hash_hex)}"
        )
        return tx_hash_hex

    async def _send_signed(self, tx: dict[str, Any], session: WalletSession) -> bytes:
        """Build, sign locally and broadcast."""
        async with self._nonce_lock:
            tx["nonce"] = await call_with_timeout(
                self.web3.eth.get_transaction_count,
                session.address,
                "pending",
                timeout=self.rpc_timeout,
            )
            gas_estimate = await call_with_timeout(
                self.web3.eth.estimate_gas,
                {k: tx[k] for k in ("from", "to", "data", "value")},
                timeout=self.rpc_timeout,
            )
            tx["gas"] = int(gas_estimate * GAS_LIMIT_MULTIPLIER)
            tx["gasPrice"] = await asyncio.wait_for(
                self.web3.eth.gas_price, timeout=self.rpc_timeout
            )

            signed = session.signer.sign_transaction(tx)
            return await call_with_timeout(
                self.web3.eth.send_raw_transaction,
                signed.raw_transaction,
                timeout=self.rpc_timeout,
            )

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = RECEIPT_TIMEOUT_SECONDS,
    ) -> Receipt:
        """
        Wait (bounded) until tx_hash is mined.

        Args:
            tx_hash: Transaction hash
            timeout: Max wait in seconds

        Returns:
            Receipt (success False means the transaction reverted)

        Raises:
            ConfirmationTimeout: Not mined within timeout; may still be mined
            ChainReadError: Receipt polling itself failed
        """
        try:
            receipt = await self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout, poll_latency=self.poll_interval
            )
        except (TimeExhausted, TimeoutError) as e:
            logger.warning(
                f"Transaction {mask_tx_hash(tx_hash)} not confirmed after {timeout}s - "
                f"it may still be pending"
            )
            raise ConfirmationTimeout(tx_hash, timeout) from e
        except Exception as e:
            raise ChainReadError("eth_getTransactionReceipt", str(e), raw=e) from e

        return Receipt(
            tx_hash=tx_hash,
            success=receipt["status"] == 1,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )

    # ------------------------------------------------------------------
    # EIP-5792 bundles
    # ------------------------------------------------------------------

    async def send_batch(
        self, calls: Sequence["PlannedCall"], session: WalletSession
    ) -> str:
        """
        Submit all calls as one atomic bundle via wallet_sendCalls.

        Args:
            calls: Planned calls in execution order
            session: Smart-account session

        Returns:
            Bundle id

        Raises:
            ChainWriteError: Bundle rejected; no call was executed
        """
        if not session.supports_atomic_batch:
            raise ChainWriteError(
                SubmissionFailureReason.UNKNOWN,
                "Session does not support atomic batch calls",
            )
        if not calls:
            raise ValueError("Cannot send an empty bundle")

        params = {
            "version": WALLET_SEND_CALLS_VERSION,
            "chainId": hex(self.chain_id),
            "from": session.address,
            "atomicRequired": True,
            "calls": [
                {"to": to_checksum_address(c.target), "data": c.data, "value": "0x0"}
                for c in calls
            ],
        }

        try:
            result = await call_with_timeout(
                self.web3.manager.coro_request,
                "wallet_sendCalls",
                [params],
                timeout=self.rpc_timeout,
                operation_name="wallet_sendCalls",
            )
        except Exception as e:
            error = to_write_error(e)
            logger.error(
                f"wallet_sendCalls from {mask_address(session.address)} failed: "
                f"{error.reason.value} ({e})"
            )
            raise error from e

        bundle_id = result.get("id") if isinstance(result, dict) else result
        if not bundle_id:
            raise ChainWriteError(
                SubmissionFailureReason.UNKNOWN,
                f"wallet_sendCalls returned no bundle id: {result!r}",
            )
        logger.info(
            f"Bundle of {len(calls)} calls sent from {mask_address(session.address)}: "
            f"{bundle_id}"
        )
        return str(bundle_id)

    async def get_calls_status(self, bundle_id: str) -> BatchStatus:
        """
        Query wallet_getCallsStatus.

        Raises:
            ChainReadError: If the wallet does not answer
        """
        try:
            raw = await call_with_timeout(
                self.web3.manager.coro_request,
                "wallet_getCallsStatus",
                [bundle_id],
                timeout=self.rpc_timeout,
                operation_name="wallet_getCallsStatus",
            )
        except Exception as e:
            raise ChainReadError("wallet_getCallsStatus", str(e), raw=e) from e

        raw = dict(raw or {})
        receipts = raw.get("receipts") or []
        tx_hashes = tuple(
            h if isinstance(h, str) else Web3.to_hex(h)
            for h in (r.get("transactionHash") for r in receipts)
            if h
        )
        return BatchStatus(
            bundle_id=bundle_id,
            status=_normalize_batch_status(raw.get("status")),
            tx_hashes=tx_hashes,
            raw=raw,
        )

    async def wait_for_batch_confirmation(
        self,
        bundle_id: str,
        max_attempts: int = BATCH_STATUS_MAX_ATTEMPTS,
        interval: float = BATCH_STATUS_INTERVAL_SECONDS,
    ) -> BatchStatus:
        """
        Poll wallet_getCallsStatus until CONFIRMED or FAILED.

        Args:
            bundle_id: Bundle id from send_batch
            max_attempts: Maximum polls
            interval: Seconds between polls

        Returns:
            Final BatchStatus

        Raises:
            ConfirmationTimeout: Still pending after max_attempts
        """
        for attempt in range(max_attempts):
            status = await self.get_calls_status(bundle_id)
            if status.is_final:
                return status
            if attempt < max_attempts - 1:
                await asyncio.sleep(interval)

        raise ConfirmationTimeout(bundle_id, max_attempts * interval)

