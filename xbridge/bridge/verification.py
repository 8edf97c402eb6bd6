"""
xbridge Pair Verification

Cross-checks a resolved deposit / withdraw pair: recomputes the canonical
hash from the best available side, compares the two records field by field
and derives the aggregate transfer status.
"""

from typing import Any, List, Optional, Tuple

from .types import (
    FieldComparison,
    LookupStatus,
    Resolution,
    TransferStatus,
    VerificationReport,
)
from ..crypto.encoding import bytes_to_hex
from ..logger import get_logger

logger = get_logger(__name__)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return bytes_to_hex(value)
    return str(value)


def _chain_known(value) -> bool:
    return value is not None and int(value) != 0


# (field, zero-tolerant): chain fields may be unknown on one side
_FIELDS: List[Tuple[str, bool]] = [
    ("src_chain", True),
    ("dest_chain", True),
    ("src_account", False),
    ("dest_account", False),
    ("token", False),
    ("amount", False),
    ("nonce", False),
]


def derive_status(resolution: Resolution) -> TransferStatus:
    """
    Aggregate status of a resolution.

    Withdraw flags decide first (cancelled, then executed); any located
    record that is neither is pending. Nothing located is unknown.
    """
    if resolution.status != LookupStatus.FOUND:
        return TransferStatus.UNKNOWN
    withdraw = resolution.withdraw
    if withdraw is not None:
        if withdraw.cancelled:
            return TransferStatus.CANCELED
        if withdraw.executed:
            return TransferStatus.VERIFIED
        return TransferStatus.PENDING
    if resolution.deposit is not None:
        return TransferStatus.PENDING
    return TransferStatus.UNKNOWN


def compute_best_hash(resolution: Resolution) -> Optional[bytes]:
    """
    Canonical hash recomputed from the resolved records.

    The withdraw side is preferred since it carries both chain ids; a
    deposit is only used when its destination chain is known.
    """
    if resolution.withdraw is not None:
        computed = resolution.withdraw.transfer_hash
        if computed is not None:
            return computed
    deposit = resolution.deposit
    if deposit is not None and _chain_known(deposit.dest_chain):
        return deposit.transfer_hash
    return None


def compare_records(resolution: Resolution) -> List[FieldComparison]:
    """Field-by-field comparison; empty unless both sides were located."""
    deposit, withdraw = resolution.deposit, resolution.withdraw
    if deposit is None or withdraw is None:
        return []

    comparisons = []
    for name, zero_tolerant in _FIELDS:
        left, right = getattr(deposit, name), getattr(withdraw, name)
        if zero_tolerant and not (_chain_known(left) and _chain_known(right)):
            matches = True
        else:
            matches = left == right
        comparisons.append(FieldComparison(name, _text(left), _text(right), matches))
    return comparisons


def verify_resolution(resolution: Resolution) -> VerificationReport:
    """
    Build the verification report for ``resolution``.

    Never raises; an invalid or empty resolution yields an UNKNOWN report.
    """
    report = VerificationReport(
        hash=resolution.hash,
        status=derive_status(resolution),
        warnings=list(resolution.warnings),
    )
    if resolution.status == LookupStatus.INVALID_INPUT:
        report.warnings.append(resolution.error or "invalid hash")
        return report

    computed = compute_best_hash(resolution)
    if computed is not None:
        report.computed_hash = bytes_to_hex(computed)
        report.hash_matches = report.computed_hash == resolution.hash
        if not report.hash_matches:
            report.warnings.append(
                f"recomputed hash {report.computed_hash} differs from queried {resolution.hash}"
            )

    report.fields = compare_records(resolution)
    report.mismatches = [f.name for f in report.fields if not f.matches]

    if resolution.withdraw is not None and resolution.deposit is None:
        report.warnings.append("withdraw found without a matching deposit")
    if resolution.failed_ledgers:
        report.warnings.append(
            f"unreachable ledgers: {', '.join(resolution.failed_ledgers)}; absence is not conclusive"
        )

    if report.mismatches:
        logger.warning(f"{resolution.hash}: field mismatch in {', '.join(report.mismatches)}")
    return report
