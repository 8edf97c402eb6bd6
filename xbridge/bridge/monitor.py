"""
xbridge Hash Monitor

Enumerates transfer hashes across every configured ledger and reconciles
them into one entry per hash. A run is bounded by the monitor limits
(EVM block window, Cosmos nonce cap and page cap) and can be repeated at
will; nothing is cached between runs.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

from .adapters import BaseLedgerAdapter, settle
from .ledgers import LedgerSet
from .types import LedgerQuery, MonitorEntry, MonitorReport
from ..config.loader import MonitorConfig
from ..logger import get_logger

logger = get_logger(__name__)


def merge_entries(observations: List[MonitorEntry]) -> List[MonitorEntry]:
    """
    Merge observations by hash and return them in display order.

    Observations are folded in the given order: ``executed`` / ``cancelled``
    are OR-ed, ``approved`` takes the last observed value and ``timestamp``
    is only filled when still unset. Output is sorted by timestamp
    descending (unknown last), ties by hash ascending.
    """
    merged: Dict[str, MonitorEntry] = {}
    for entry in observations:
        current = merged.get(entry.hash)
        if current is None:
            merged[entry.hash] = MonitorEntry(
                hash=entry.hash,
                source=entry.source,
                ledger_key=entry.ledger_key,
                ledger_name=entry.ledger_name,
                timestamp=entry.timestamp,
                approved=entry.approved,
                cancelled=entry.cancelled,
                executed=entry.executed,
                seen_on=list(entry.seen_on),
            )
        else:
            current.merge(entry)
    return sorted(merged.values(), key=lambda e: (-(e.timestamp or 0), e.hash))


class HashMonitor:
    """
    Per-ledger fan-out of deposit and withdraw hash enumeration.

    Example:
        >>> monitor = HashMonitor(ledgers)
        >>> report = await monitor.enumerate_all()
        >>> for entry in report.entries:
        ...     print(entry.hash, entry.executed)
    """

    def __init__(self, ledgers: LedgerSet, options: Optional[MonitorConfig] = None):
        self.ledgers = ledgers
        self.options = options

    async def _collect(
        self, adapter: BaseLedgerAdapter, options: Optional[MonitorConfig],
    ) -> Tuple[BaseLedgerAdapter, LedgerQuery[List[MonitorEntry]], LedgerQuery[List[MonitorEntry]]]:
        deposits, withdraws = await asyncio.gather(
            adapter.list_deposit_hashes(None, options),
            adapter.list_withdraw_hashes(options),
            return_exceptions=True,
        )
        return (
            adapter,
            settle(adapter.key, "deposit enumeration", deposits),
            settle(adapter.key, "withdraw enumeration", withdraws),
        )

    async def enumerate_all(self, options: Optional[MonitorConfig] = None) -> MonitorReport:
        """
        Enumerate every ledger and merge the results.

        Args:
            options: Limits for this run; the monitor's (then each ledger's)
                defaults when None

        Returns:
            MonitorReport; ledgers whose enumeration failed are listed in
            ``failed_ledgers`` and any partial results they produced are kept
        """
        options = options or self.options

        report = MonitorReport()
        results = await asyncio.gather(*(self._collect(adapter, options) for adapter in self.ledgers))

        observations: List[MonitorEntry] = []
        for adapter, deposits, withdraws in results:
            report.queried_ledgers.append(adapter.key)
            errors = deposits.errors + withdraws.errors
            if deposits.failed or withdraws.failed:
                report.failed_ledgers.append(adapter.key)
                report.errors[adapter.key] = errors
            observations.extend(deposits.value or [])
            observations.extend(withdraws.value or [])
            logger.debug(
                f"[{adapter.key}] {len(deposits.value or [])} deposit / "
                f"{len(withdraws.value or [])} withdraw hashes"
            )

        report.entries = merge_entries(observations)
        logger.info(
            f"Monitor run: {len(report.entries)} hashes from {len(report.queried_ledgers)} ledgers"
            + (f", failed: {', '.join(report.failed_ledgers)}" if report.failed_ledgers else "")
        )
        return report
