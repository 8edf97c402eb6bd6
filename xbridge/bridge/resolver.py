"""
xbridge Transfer Resolver

Given one canonical hash, queries every configured ledger concurrently for a
matching deposit and a matching pending withdrawal. Every ledger is asked,
since the true source and destination are exactly what must be discovered.
"""

import asyncio
from typing import List, Tuple

from .adapters import BaseLedgerAdapter, settle
from .ledgers import LedgerSet
from .types import (
    DepositRecord,
    LedgerQuery,
    LookupStatus,
    PendingWithdrawRecord,
    Resolution,
)
from ..crypto.encoding import normalize_hash
from ..exceptions import InvalidHashError
from ..logger import get_logger

logger = get_logger(__name__)


class TransferResolver:
    """
    Resolves a transfer hash to its best available deposit / withdraw pair.

    Unreachable ledgers are listed in ``failed_ledgers`` and never abort the
    lookup of the others. When two ledgers claim the same side of a hash the
    first in configuration order is kept and a warning is attached.
    """

    def __init__(self, ledgers: LedgerSet):
        self.ledgers = ledgers

    async def _query_ledger(
        self, adapter: BaseLedgerAdapter, transfer_hash: str,
    ) -> Tuple[BaseLedgerAdapter, LedgerQuery[DepositRecord], LedgerQuery[PendingWithdrawRecord]]:
        deposit, withdraw = await asyncio.gather(
            adapter.get_deposit(transfer_hash),
            adapter.get_pending_withdraw(transfer_hash),
            return_exceptions=True,
        )
        return (
            adapter,
            settle(adapter.key, "deposit lookup", deposit),
            settle(adapter.key, "withdraw lookup", withdraw),
        )

    async def resolve(self, hash_text) -> Resolution:
        """
        Resolve ``hash_text`` across all ledgers.

        Args:
            hash_text: ``0x`` + 64 hex, bare 64 hex, or 32 raw bytes

        Returns:
            Resolution; status INVALID_INPUT for a malformed hash
        """
        try:
            transfer_hash = normalize_hash(hash_text)
        except InvalidHashError as e:
            logger.info(f"Rejected lookup input: {e}")
            return Resolution(hash=None, status=LookupStatus.INVALID_INPUT, error=str(e))

        resolution = Resolution(hash=transfer_hash, status=LookupStatus.NOT_FOUND)
        results = await asyncio.gather(*(
            self._query_ledger(adapter, transfer_hash) for adapter in self.ledgers
        ))

        for adapter, deposit, withdraw in results:
            resolution.queried_ledgers.append(adapter.key)
            if deposit.failed or withdraw.failed:
                resolution.failed_ledgers.append(adapter.key)

            if deposit.value is not None:
                if resolution.deposit is None:
                    resolution.deposit = deposit.value
                    resolution.deposit_ledger = adapter.key
                else:
                    resolution.warnings.append(
                        f"Deposit for {transfer_hash} also reported by {adapter.key} "
                        f"(kept {resolution.deposit_ledger}); ledgers may share an identifier"
                    )

            if withdraw.value is not None:
                if resolution.withdraw is None:
                    resolution.withdraw = withdraw.value
                    resolution.withdraw_ledger = adapter.key
                else:
                    resolution.warnings.append(
                        f"Withdraw for {transfer_hash} also reported by {adapter.key} "
                        f"(kept {resolution.withdraw_ledger}); ledgers may share an identifier"
                    )

        for warning in resolution.warnings:
            logger.warning(warning)

        if resolution.deposit is not None or resolution.withdraw is not None:
            resolution.status = LookupStatus.FOUND

        logger.info(
            f"Resolved {transfer_hash}: deposit={resolution.deposit_ledger or '-'} "
            f"withdraw={resolution.withdraw_ledger or '-'} "
            f"failed=[{', '.join(resolution.failed_ledgers)}]"
        )
        return resolution

    async def resolve_many(self, hashes: List[str]) -> List[Resolution]:
        """Resolve several hashes concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.resolve(h) for h in hashes)))
