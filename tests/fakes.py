"""Test doubles shared by unit and integration tests."""

from collections.abc import Callable
from typing import Any

from web3 import AsyncWeb3

from app.config.constants import ZERO_ADDRESS
from app.config.settings import settings
from app.services.blockchain.chain_client import BatchStatus, ChainClient, Receipt
from app.utils.exceptions import ChainReadError


# Digit-only addresses are already in checksum form
SENDER = "0x" + "11" * 20
RECIPIENT = "0x" + "22" * 20
RECIPIENT_2 = "0x" + "33" * 20
RECIPIENT_3 = "0x" + "44" * 20

USDC_UNIT = 10**6


def unregistered_user() -> tuple:
    return (False, ZERO_ADDRESS, 0, 0, 0, 0, 0, 0)


def registered_user(**overrides: int) -> tuple:
    values = {
        "total_transferred": 0,
        "total_received": 0,
        "cashback": 0,
        "referral_rewards": 0,
        "referral_count": 0,
        "last_activity": 1_700_000_000,
    }
    values.update(overrides)
    return (
        True,
        ZERO_ADDRESS,
        values["total_transferred"],
        values["total_received"],
        values["cashback"],
        values["referral_rewards"],
        values["referral_count"],
        values["last_activity"],
    )


class FakeChainClient(ChainClient):
    """
    ChainClient with scripted reads and writes.

    ABI encoding/decoding is real; nothing touches the network.

    - reads: function name -> value | Exception | callable(*args)
    - write_errors: call index -> exception raised by write_contract
    - reverted: indices whose receipt reports a revert
    - receipt_errors: indices whose receipt wait raises
    - events: ("write", function) / ("wait", tx_hash) in call order
    """

    def __init__(self) -> None:
        web3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider("http://127.0.0.1:8545"))
        super().__init__(
            web3,
            settings.remittance_contract_address,
            settings.chain_id,
        )
        self.reads: dict[str, Any] = {
            "supportedStablecoins": True,
            "getUser": unregistered_user(),
            "calculateFee": lambda amount: amount // 100,
            "balanceOf": 1000 * USDC_UNIT,
            "allowance": 0,
            "getUserTransactionIds": [],
        }
        self.read_calls: list[tuple[str, tuple]] = []
        self.write_errors: dict[int, Exception] = {}
        self.reverted: set[int] = set()
        self.receipt_errors: dict[int, Exception] = {}
        self.writes: list[Any] = []
        self.events: list[tuple[str, str]] = []
        self.batch_error: Exception | None = None
        self.batch_calls: list[tuple] = []
        self.batch_status: str = "CONFIRMED"
        self.logs: dict[str, Any] = {"sender": [], "recipient": []}

    async def read_contract(self, function, args=(), contract_address=None, abi=None):
        self.read_calls.append((function, tuple(args)))
        value = self.reads.get(function)
        if isinstance(value, ChainReadError):
            raise value
        if isinstance(value, Exception):
            raise ChainReadError(function, str(value), raw=value)
        if isinstance(value, Callable):
            return value(*args)
        return value

    async def write_contract(self, call, session):
        index = len(self.writes)
        self.events.append(("write", call.function))
        if index in self.write_errors:
            raise self.write_errors[index]
        self.writes.append(call)
        return f"0x{index + 1:064x}"

    async def wait_for_receipt(self, tx_hash, timeout=120.0):
        self.events.append(("wait", tx_hash))
        index = int(tx_hash, 16) - 1
        if index in self.receipt_errors:
            raise self.receipt_errors[index]
        return Receipt(tx_hash=tx_hash, success=index not in self.reverted, block_number=index + 1)

    async def send_batch(self, calls, session):
        self.events.append(("batch", ",".join(c.function for c in calls)))
        if self.batch_error is not None:
            raise self.batch_error
        self.batch_calls.append(tuple(calls))
        return "0xbundle"

    async def wait_for_batch_confirmation(self, bundle_id, max_attempts=30, interval=2.0):
        return BatchStatus(
            bundle_id=bundle_id,
            status=self.batch_status,
            tx_hashes=("0x" + "ab" * 32,),
        )

    async def get_transfer_logs(self, sender=None, recipient=None, from_block=0, to_block="latest"):
        role = "sender" if sender else "recipient"
        value = self.logs[role]
        if isinstance(value, Exception):
            raise ChainReadError("TransferInitiated", str(value), raw=value)
        return list(value)
