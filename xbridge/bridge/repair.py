"""
xbridge Broken-Transfer Detection and Fix Planning

Detects withdrawals submitted against the wrong ledger: a pending withdraw
exists but no deposit matches its hash. The usual cause is a submitter that
encoded the chain identifiers in the wrong order, so the withdrawal landed
on the ledger that actually holds the deposit.

Hypothesis check:

  W = ledger where the withdraw was found
  S = ledger named by the withdraw's ``src_chain``
  correct_hash = H(src=W, dest=S, src_account=withdraw.dest_account,
                   dest_account=withdraw.src_account, token, amount, nonce)

If W holds a deposit under ``correct_hash`` the real destination is S and a
FixPlan describing the resubmission on S is returned. Nothing is submitted;
signing and broadcast belong to the caller.
"""

from typing import Optional

from .adapters import BaseLedgerAdapter
from .ledgers import LedgerSet
from .resolver import TransferResolver
from .types import (
    DepositRecord,
    FixOutcome,
    FixPlan,
    FixStatus,
    LedgerFamily,
    LookupStatus,
    PendingWithdrawRecord,
    Resolution,
)
from ..crypto.address import match_denom, word_to_cosmos_address
from ..crypto.encoding import ChainIdentifier, bytes_to_hex, hash_to_bytes
from ..crypto.transfer_hash import compute_transfer_hash
from ..exceptions import InvalidAddressError
from ..logger import get_logger

logger = get_logger(__name__)


def is_likely_broken(
    deposit: Optional[DepositRecord],
    withdraw: Optional[PendingWithdrawRecord],
) -> bool:
    """A withdraw exists, is not executed, and no deposit matches it."""
    return withdraw is not None and deposit is None and not withdraw.executed


def swapped_transfer_hash(withdraw: PendingWithdrawRecord, this_chain: ChainIdentifier) -> bytes:
    """
    Hash the deposit would carry if it was made on ``this_chain`` towards the
    withdraw's claimed source, with both chain and account roles swapped.
    """
    return compute_transfer_hash(
        this_chain,
        withdraw.src_chain,
        withdraw.dest_account,
        withdraw.src_account,
        withdraw.token,
        withdraw.amount,
        withdraw.nonce,
    )


class BrokenTransferPlanner:
    """
    Builds fix plans for withdrawals submitted on the wrong ledger.

    Args:
        ledgers: Configured ledger set (chain ids should be discovered)
        resolver: Resolver used by :meth:`detect_and_plan`; built from
            ``ledgers`` when omitted
    """

    def __init__(self, ledgers: LedgerSet, resolver: Optional[TransferResolver] = None):
        self.ledgers = ledgers
        self.resolver = resolver or TransferResolver(ledgers)

    async def detect_and_plan(self, hash_text) -> FixOutcome:
        """Resolve ``hash_text`` and plan a fix when the transfer looks broken."""
        resolution = await self.resolver.resolve(hash_text)
        outcome = await self.plan(resolution)
        outcome.resolution = resolution
        return outcome

    async def plan(self, resolution: Resolution) -> FixOutcome:
        if resolution.status == LookupStatus.INVALID_INPUT:
            return FixOutcome(FixStatus.INVALID_INPUT, reason=resolution.error or "invalid hash")

        withdraw = resolution.withdraw
        if not is_likely_broken(resolution.deposit, withdraw):
            return FixOutcome(FixStatus.NOT_BROKEN, reason=self._not_broken_reason(resolution))

        wrong_ledger = self.ledgers.get(resolution.withdraw_ledger)
        if wrong_ledger is None:
            return FixOutcome(
                FixStatus.UNKNOWN_LEDGER,
                reason=f"withdraw ledger {resolution.withdraw_ledger!r} is not configured",
            )
        wrong_chain = withdraw.dest_chain or await wrong_ledger.resolve_chain_id()
        if wrong_chain is None:
            return FixOutcome(
                FixStatus.UNKNOWN_LEDGER,
                reason=f"chain id of {wrong_ledger.key} is unknown",
            )

        dest_ledger = self.ledgers.by_chain_id(withdraw.src_chain)
        if dest_ledger is None:
            return FixOutcome(
                FixStatus.UNKNOWN_LEDGER,
                reason=f"no configured ledger for source chain {withdraw.src_chain.hex}",
            )
        if dest_ledger.key == wrong_ledger.key:
            return FixOutcome(
                FixStatus.HYPOTHESIS_REJECTED,
                reason=f"withdraw on {wrong_ledger.key} already names its own chain as source",
            )

        correct_hash = swapped_transfer_hash(withdraw, wrong_chain)
        deposit = await wrong_ledger.get_deposit(correct_hash)
        if deposit.value is None:
            reason = f"no deposit on {wrong_ledger.key} under {bytes_to_hex(correct_hash)}; cannot determine fix"
            if deposit.failed:
                reason += " (ledger unreachable)"
            logger.info(f"{resolution.hash}: {reason}")
            return FixOutcome(FixStatus.HYPOTHESIS_REJECTED, reason=reason)

        plan = self._build_plan(resolution, withdraw, wrong_ledger, wrong_chain, dest_ledger, correct_hash)
        logger.info(
            f"{resolution.hash}: withdraw belongs on {dest_ledger.key}, "
            f"resubmit as {bytes_to_hex(correct_hash)}"
        )
        return FixOutcome(
            FixStatus.FIXABLE,
            plan=plan,
            reason=f"deposit found on {wrong_ledger.key}; real destination is {dest_ledger.key}",
        )

    @staticmethod
    def _not_broken_reason(resolution: Resolution) -> str:
        if resolution.withdraw is None:
            return "no pending withdraw for this hash"
        if resolution.withdraw.executed:
            return "withdraw already executed"
        return "matching deposit exists"

    def _build_plan(
        self,
        resolution: Resolution,
        withdraw: PendingWithdrawRecord,
        wrong_ledger: BaseLedgerAdapter,
        wrong_chain: ChainIdentifier,
        dest_ledger: BaseLedgerAdapter,
        correct_hash: bytes,
    ) -> FixPlan:
        plan = FixPlan(
            correct_hash=correct_hash,
            wrong_hash=hash_to_bytes(resolution.hash),
            dest_ledger_key=dest_ledger.key,
            dest_family=dest_ledger.family,
            source_ledger_key=wrong_ledger.key,
            src_chain=ChainIdentifier(wrong_chain),
            dest_chain=ChainIdentifier(withdraw.src_chain),
            src_account=withdraw.dest_account,
            dest_account=withdraw.src_account,
            token=withdraw.token,
            amount=withdraw.amount,
            nonce=withdraw.nonce,
        )
        if dest_ledger.family == LedgerFamily.COSMOS:
            try:
                plan.recipient = word_to_cosmos_address(plan.dest_account, dest_ledger.config.hrp)
            except InvalidAddressError as e:
                logger.warning(f"{resolution.hash}: recipient must be resolved manually ({e})")
            plan.token_denom = match_denom(plan.token, dest_ledger.config.native_denoms)
        return plan
