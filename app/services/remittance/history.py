"""
Transaction History Reconciler.

Builds the displayable transaction list for an address from contract reads
(required) joined with TransferInitiated logs (best effort, for hashes).
"""

import asyncio
from typing import Any

from loguru import logger

from app.config.constants import (
    HISTORY_DEFAULT_COUNT,
    HISTORY_MAX_COUNT,
    HISTORY_MIN_COUNT,
)
from app.services.blockchain.chain_client import ChainClient
from app.services.blockchain.token_registry import TokenRegistry
from app.services.remittance.account_cache import ExpiringCache
from app.services.remittance.models import HistoryPage, TransactionRecord
from app.utils.exceptions import ChainReadError, RequiredReadFailed
from app.utils.security import mask_address
from app.utils.validation import normalize_address


def clamp_window(start: int | None, count: int | None) -> tuple[int, int]:
    """
    Clamp a pagination window; never rejects.

    Examples:
        >>> clamp_window(-5, 0)
        (0, 1)
        >>> clamp_window(3, 500)
        (3, 100)
    """
    start = 0 if start is None else max(0, int(start))
    count = HISTORY_DEFAULT_COUNT if count is None else int(count)
    return start, min(HISTORY_MAX_COUNT, max(HISTORY_MIN_COUNT, count))


HistoryKey = tuple[str, int, int]


class HistoryReconciler:
    """Paginated, cached transaction history."""

    def __init__(
        self,
        chain: ChainClient,
        registry: TokenRegistry,
        cache: ExpiringCache[HistoryKey, HistoryPage] | None = None,
        from_block: int = 0,
    ) -> None:
        """
        Initialize reconciler.

        Args:
            chain: Chain client
            registry: Static token registry (address -> symbol)
            cache: Page cache keyed by (address, start, count)
            from_block: First block scanned for TransferInitiated logs
        """
        self.chain = chain
        self.registry = registry
        self.cache = cache if cache is not None else ExpiringCache(name="history_cache")
        self.from_block = from_block

    async def get_history(
        self,
        address: str,
        start: int | None = 0,
        count: int | None = HISTORY_DEFAULT_COUNT,
    ) -> HistoryPage:
        """
        One page of transfer records for address.

        Args:
            address: Account address (sender or recipient side)
            start: First index (clamped to >= 0)
            count: Page size (clamped to [1, 100])

        Returns:
            HistoryPage in contract order

        Raises:
            ValueError: If address is malformed
            RequiredReadFailed: If ids or transaction tuples cannot be read
        """
        checksum = normalize_address(address)
        start, count = clamp_window(start, count)
        key = (checksum.lower(), start, count)
        return await self.cache.get_or_load(key, lambda: self._load(checksum, start, count))

    async def invalidate(self, addresses: tuple[str, ...]) -> None:
        """Invalidation hook: drop every cached page of the affected addresses."""
        lowered = {a.lower() for a in addresses}
        await self.cache.invalidate_where(lambda key: key[0] in lowered)

    async def _load(self, address: str, start: int, count: int) -> HistoryPage:
        try:
            ids = await self.chain.read_contract(
                "getUserTransactionIds", (address, start, count)
            )
        except ChainReadError as e:
            raise RequiredReadFailed("Could not read transaction ids", raw=e) from e

        ids = [int(i) for i in ids]
        try:
            raw_txs = await asyncio.gather(
                *(self.chain.read_contract("getTransaction", (tx_id,)) for tx_id in ids)
            )
        except ChainReadError as e:
            raise RequiredReadFailed("Could not read transaction details", raw=e) from e

        hashes = await self._resolve_hashes(address)

        records = []
        for tx_id, raw in zip(ids, raw_txs):
            try:
                records.append(self._to_record(tx_id, raw, hashes))
            except (TypeError, ValueError) as e:
                raise RequiredReadFailed(
                    f"Unexpected getTransaction({tx_id}) result", raw=e
                ) from e

        logger.debug(
            f"History for {mask_address(address)} [{start}:{start + count}]: "
            f"{len(records)} records, {sum(1 for r in records if r.tx_hash)} with hashes"
        )
        return HistoryPage(address=address, start=start, count=count, records=tuple(records))

    async def _resolve_hashes(self, address: str) -> dict[str, str]:
        """id -> tx hash from logs where address is sender or recipient."""
        lookup: dict[str, str] = {}
        for role in ("sender", "recipient"):
            try:
                logs = await self.chain.get_transfer_logs(
                    from_block=self.from_block, **{role: address}
                )
                found = {str(log["tx_id"]): log["tx_hash"] for log in logs}
            except Exception as e:
                # Hash correlation is best effort; records keep tx_hash=None
                logger.warning(
                    f"TransferInitiated logs ({role}={mask_address(address)}) unavailable: "
                    f"{type(e).__name__}: {e}"
                )
                continue
            lookup.update(found)
        return lookup

    def _to_record(self, tx_id: int, raw: Any, hashes: dict[str, str]) -> TransactionRecord:
        (
            sender,
            recipient,
            amount,
            fee,
            cashback,
            timestamp,
            country,
            token_address,
            group_id,
            completed,
        ) = tuple(raw)
        token = self.registry.by_address(token_address)
        return TransactionRecord(
            id=str(tx_id),
            sender=str(sender),
            recipient=str(recipient),
            amount_units=int(amount),
            token_symbol=self.registry.symbol_for(token_address),
            token_decimals=token.decimals if token else self.registry.default.decimals,
            country=str(country),
            fee_units=int(fee),
            cashback_units=int(cashback),
            timestamp=int(timestamp),
            completed=bool(completed),
            group_id=int(group_id),
            tx_hash=hashes.get(str(tx_id)),
        )
