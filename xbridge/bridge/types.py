"""
xbridge Bridge Types

Core data structures of the verification engine.

Defines:
  - LedgerFamily tag selecting the query adapter variant
  - DepositRecord / PendingWithdrawRecord observed on source / destination
  - DepositEvent raw deposit observations from bounded scans
  - LedgerQuery envelope carrying a result plus per-endpoint diagnostics
  - MonitorEntry reconciled per-hash view
  - Resolution, FixPlan, FixOutcome, VerificationReport, MonitorReport results
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from ..crypto.encoding import ChainIdentifier, bytes_to_hex
from ..crypto.transfer_hash import compute_transfer_hash

T = TypeVar("T")


def _hex(value: Optional[bytes]) -> Optional[str]:
    return bytes_to_hex(value) if value is not None else None


def _chain_hex(value: Optional[ChainIdentifier]) -> Optional[str]:
    return value.hex if value is not None else None


# ══════════════════════════════════════════════════════════════════════
#  ENUMERATIONS
# ══════════════════════════════════════════════════════════════════════

class LedgerFamily(Enum):
    """Ledger family; selects the adapter implementation."""
    EVM    = "evm"      # JSON-RPC, ABI-encoded contract calls and event logs
    COSMOS = "cosmos"   # LCD REST, CosmWasm smart queries


class WithdrawStatus(IntEnum):
    """Lifecycle of a pending withdrawal on the destination ledger."""
    SUBMITTED = 0
    APPROVED  = 1
    CANCELLED = 2   # terminal unless re-enabled on-ledger
    EXECUTED  = 3   # terminal


class HashSource(Enum):
    DEPOSIT  = "deposit"
    WITHDRAW = "withdraw"


class LookupStatus(Enum):
    """Outcome of resolving a single transfer hash."""
    FOUND         = "found"           # at least one side was located
    NOT_FOUND     = "not_found"       # absent, or every ledger unreachable
    INVALID_INPUT = "invalid_input"


class FixStatus(Enum):
    """Outcome of the broken-transfer planner."""
    FIXABLE             = "fixable"
    NOT_BROKEN          = "not_broken"            # precondition not met
    UNKNOWN_LEDGER      = "unknown_ledger"        # withdraw's source chain not configured
    HYPOTHESIS_REJECTED = "hypothesis_rejected"   # no deposit under the swapped hash
    INVALID_INPUT       = "invalid_input"


class TransferStatus(Enum):
    """Aggregate status shown for a verified hash."""
    UNKNOWN  = "unknown"
    PENDING  = "pending"
    CANCELED = "canceled"
    VERIFIED = "verified"


# ══════════════════════════════════════════════════════════════════════
#  LEDGER RECORDS
# ══════════════════════════════════════════════════════════════════════

@dataclass
class DepositRecord:
    """
    A deposit observed on its source ledger.

    Attributes:
        ledger_key: Configuration key of the ledger the record came from
        src_chain: Source chain identifier (the ledger's own id)
        dest_chain: Destination chain identifier
        src_account: Canonical source account word
        dest_account: Canonical destination account word
        token: Canonical destination token word
        amount: Amount in the destination ledger's decimals
        nonce: Source ledger deposit nonce
        timestamp: Deposit time (unix seconds); never zero for a real record
        fee: Bridge fee charged at deposit (EVM only)
        reported_hash: Hash stored by the ledger alongside the record, if any
    """
    ledger_key: str
    src_chain: Optional[ChainIdentifier]
    dest_chain: ChainIdentifier
    src_account: bytes
    dest_account: bytes
    token: bytes
    amount: int
    nonce: int
    timestamp: int
    fee: int = 0
    token_text: Optional[str] = None
    reported_hash: Optional[bytes] = None

    @property
    def transfer_hash(self) -> Optional[bytes]:
        """Canonical hash recomputed from the record; None without a source id."""
        if self.src_chain is None:
            return None
        return compute_transfer_hash(
            self.src_chain, self.dest_chain, self.src_account, self.dest_account,
            self.token, self.amount, self.nonce,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ledger_key": self.ledger_key,
            "src_chain": _chain_hex(self.src_chain),
            "dest_chain": _chain_hex(self.dest_chain),
            "src_account": _hex(self.src_account),
            "dest_account": _hex(self.dest_account),
            "token": _hex(self.token),
            "token_text": self.token_text,
            "amount": str(self.amount),
            "nonce": str(self.nonce),
            "timestamp": self.timestamp,
            "fee": str(self.fee),
            "reported_hash": _hex(self.reported_hash),
        }


@dataclass
class PendingWithdrawRecord:
    """
    A withdrawal submission observed on its destination ledger.

    ``dest_chain`` is the identifier of the ledger the record was found on;
    the contract does not store it. Flags only ever move forward.
    """
    ledger_key: str
    src_chain: ChainIdentifier
    dest_chain: Optional[ChainIdentifier]
    src_account: bytes
    dest_account: bytes
    token: bytes
    amount: int
    nonce: int
    submitted_at: int
    approved_at: int = 0
    approved: bool = False
    cancelled: bool = False
    executed: bool = False
    token_text: Optional[str] = None
    recipient: Optional[str] = None
    cancel_window_remaining: Optional[int] = None
    operator_gas: int = 0

    @property
    def status(self) -> WithdrawStatus:
        if self.executed:
            return WithdrawStatus.EXECUTED
        if self.cancelled:
            return WithdrawStatus.CANCELLED
        if self.approved:
            return WithdrawStatus.APPROVED
        return WithdrawStatus.SUBMITTED

    @property
    def transfer_hash(self) -> Optional[bytes]:
        if self.dest_chain is None:
            return None
        return compute_transfer_hash(
            self.src_chain, self.dest_chain, self.src_account, self.dest_account,
            self.token, self.amount, self.nonce,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ledger_key": self.ledger_key,
            "src_chain": _chain_hex(self.src_chain),
            "dest_chain": _chain_hex(self.dest_chain),
            "src_account": _hex(self.src_account),
            "dest_account": _hex(self.dest_account),
            "token": _hex(self.token),
            "token_text": self.token_text,
            "recipient": self.recipient,
            "amount": str(self.amount),
            "nonce": str(self.nonce),
            "submitted_at": self.submitted_at,
            "approved_at": self.approved_at,
            "approved": self.approved,
            "cancelled": self.cancelled,
            "executed": self.executed,
            "status": self.status.name,
            "cancel_window_remaining": self.cancel_window_remaining,
        }


@dataclass
class DepositEvent:
    """
    A raw deposit observation from a bounded scan.

    EVM events carry the SOURCE token address; the hash needs the destination
    token word, which is resolved separately. Cosmos entries carry the
    destination token word and the stored hash directly.
    """
    ledger_key: str
    nonce: int
    dest_chain: ChainIdentifier
    src_account: bytes
    dest_account: bytes
    amount: int
    token: bytes = b""
    dest_token: Optional[bytes] = None
    fee: int = 0
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None
    timestamp: Optional[int] = None
    reported_hash: Optional[bytes] = None


@dataclass
class ScanWindow:
    """
    Inclusive scan bounds: block numbers on EVM ledgers, deposit nonces on
    Cosmos ledgers. A None bound is filled from the monitor defaults.
    """
    start: Optional[int] = None
    end: Optional[int] = None

    def __post_init__(self):
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError("scan window start must not exceed end")


@dataclass
class LedgerQuery(Generic[T]):
    """
    Result envelope of one adapter call.

    ``value`` is None both when the record is confirmed absent and when every
    endpoint failed; ``failed`` and ``errors`` tell the two apart.
    """
    value: Optional[T] = None
    failed: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.value is not None

    @classmethod
    def from_exception(cls, ledger_key: str, label: str, error: BaseException) -> "LedgerQuery":
        """A failed query carrying the diagnostic of an unexpected exception."""
        return cls(failed=True, errors=[f"{ledger_key}: {label}: {type(error).__name__}: {error}"])


# ══════════════════════════════════════════════════════════════════════
#  MONITOR
# ══════════════════════════════════════════════════════════════════════

@dataclass
class MonitorEntry:
    """Reconciled view of one hash, rebuilt on every monitor run."""
    hash: str
    source: HashSource
    ledger_key: str
    ledger_name: str
    timestamp: Optional[int] = None
    approved: Optional[bool] = None
    cancelled: Optional[bool] = None
    executed: Optional[bool] = None
    seen_on: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.hash = self.hash.lower()
        if not self.seen_on:
            self.seen_on = [self.ledger_key]

    def merge(self, other: "MonitorEntry") -> None:
        """Fold another observation of the same hash into this entry."""
        if other.executed:
            self.executed = True
        if other.cancelled:
            self.cancelled = True
        if other.approved is not None:
            self.approved = other.approved
        if other.timestamp and not self.timestamp:
            self.timestamp = other.timestamp
        for key in other.seen_on:
            if key not in self.seen_on:
                self.seen_on.append(key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "source": self.source.value,
            "ledger_key": self.ledger_key,
            "ledger_name": self.ledger_name,
            "timestamp": self.timestamp,
            "approved": self.approved,
            "cancelled": self.cancelled,
            "executed": self.executed,
            "seen_on": list(self.seen_on),
        }


@dataclass
class MonitorReport:
    entries: List[MonitorEntry] = field(default_factory=list)
    queried_ledgers: List[str] = field(default_factory=list)
    failed_ledgers: List[str] = field(default_factory=list)
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def hashes(self) -> List[str]:
        return [entry.hash for entry in self.entries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "queried_ledgers": list(self.queried_ledgers),
            "failed_ledgers": list(self.failed_ledgers),
            "errors": {k: list(v) for k, v in self.errors.items()},
        }


# ══════════════════════════════════════════════════════════════════════
#  RESOLUTION / FIX / VERIFICATION
# ══════════════════════════════════════════════════════════════════════

@dataclass
class Resolution:
    """
    Best available deposit / withdraw pair for one hash.

    ``failed_ledgers`` lists ledgers whose endpoints all failed for at least
    one of the two lookups; their absence from the result is not conclusive.
    """
    hash: Optional[str]
    status: LookupStatus
    deposit: Optional[DepositRecord] = None
    withdraw: Optional[PendingWithdrawRecord] = None
    deposit_ledger: Optional[str] = None
    withdraw_ledger: Optional[str] = None
    queried_ledgers: List[str] = field(default_factory=list)
    failed_ledgers: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "status": self.status.value,
            "deposit": self.deposit.to_dict() if self.deposit else None,
            "withdraw": self.withdraw.to_dict() if self.withdraw else None,
            "deposit_ledger": self.deposit_ledger,
            "withdraw_ledger": self.withdraw_ledger,
            "queried_ledgers": list(self.queried_ledgers),
            "failed_ledgers": list(self.failed_ledgers),
            "warnings": list(self.warnings),
            "error": self.error,
        }


@dataclass
class FixPlan:
    """
    Parameters for resubmitting a withdrawal on its real destination ledger.

    A value object only; signing and broadcast belong to the caller.
    ``recipient`` is the destination account in the destination ledger's
    native text form, or None when it has to be resolved manually.
    """
    correct_hash: bytes
    wrong_hash: bytes
    dest_ledger_key: str
    dest_family: LedgerFamily
    source_ledger_key: str
    src_chain: ChainIdentifier
    dest_chain: ChainIdentifier
    src_account: bytes
    dest_account: bytes
    token: bytes
    amount: int
    nonce: int
    recipient: Optional[str] = None
    token_denom: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correct_hash": _hex(self.correct_hash),
            "wrong_hash": _hex(self.wrong_hash),
            "dest_ledger_key": self.dest_ledger_key,
            "dest_family": self.dest_family.value,
            "source_ledger_key": self.source_ledger_key,
            "src_chain": _chain_hex(self.src_chain),
            "dest_chain": _chain_hex(self.dest_chain),
            "src_account": _hex(self.src_account),
            "dest_account": _hex(self.dest_account),
            "token": _hex(self.token),
            "token_denom": self.token_denom,
            "amount": str(self.amount),
            "nonce": str(self.nonce),
            "recipient": self.recipient,
        }


@dataclass
class FixOutcome:
    status: FixStatus
    plan: Optional[FixPlan] = None
    reason: str = ""
    resolution: Optional[Resolution] = None

    @property
    def fixable(self) -> bool:
        return self.status == FixStatus.FIXABLE and self.plan is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "plan": self.plan.to_dict() if self.plan else None,
            "reason": self.reason,
        }


@dataclass
class FieldComparison:
    name: str
    deposit_value: Optional[str]
    withdraw_value: Optional[str]
    matches: bool


@dataclass
class VerificationReport:
    """Field-by-field cross-check of a resolved deposit / withdraw pair."""
    hash: Optional[str]
    status: TransferStatus
    computed_hash: Optional[str] = None
    hash_matches: Optional[bool] = None
    fields: List[FieldComparison] = field(default_factory=list)
    mismatches: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def fields_match(self) -> bool:
        return not self.mismatches

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "status": self.status.value,
            "computed_hash": self.computed_hash,
            "hash_matches": self.hash_matches,
            "fields": [
                {
                    "name": f.name,
                    "deposit": f.deposit_value,
                    "withdraw": f.withdraw_value,
                    "matches": f.matches,
                }
                for f in self.fields
            ],
            "mismatches": list(self.mismatches),
            "warnings": list(self.warnings),
        }
