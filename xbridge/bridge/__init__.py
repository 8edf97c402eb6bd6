"""
xbridge Transfer Verification Engine

Provides:
  - types: Core data structures (DepositRecord, PendingWithdrawRecord, MonitorEntry, etc.)
  - clients: ClientRegistry, EndpointPool with sequential endpoint fallback
  - adapters: Ledger adapters (EVM, Cosmos) sharing one query contract
  - ledgers: LedgerSet built from configuration, chain id discovery
  - resolver: TransferResolver locating both sides of a hash
  - verification: Field-by-field pair verification and status
  - repair: BrokenTransferPlanner for withdrawals submitted on the wrong ledger
  - monitor: HashMonitor enumerating and reconciling hashes across ledgers
"""

from .types import (
    DepositEvent,
    DepositRecord,
    FieldComparison,
    FixOutcome,
    FixPlan,
    FixStatus,
    HashSource,
    LedgerFamily,
    LedgerQuery,
    LookupStatus,
    MonitorEntry,
    MonitorReport,
    PendingWithdrawRecord,
    Resolution,
    ScanWindow,
    TransferStatus,
    VerificationReport,
    WithdrawStatus,
)

from .clients import ClientRegistry, EndpointPool

from .adapters import (
    BaseLedgerAdapter,
    CosmosLedgerAdapter,
    EvmLedgerAdapter,
)

from .ledgers import LedgerSet, create_adapter

from .resolver import TransferResolver

from .verification import verify_resolution

from .repair import BrokenTransferPlanner, is_likely_broken

from .monitor import HashMonitor, merge_entries

__all__ = [
    # Types
    "DepositEvent",
    "DepositRecord",
    "FieldComparison",
    "FixOutcome",
    "FixPlan",
    "FixStatus",
    "HashSource",
    "LedgerFamily",
    "LedgerQuery",
    "LookupStatus",
    "MonitorEntry",
    "MonitorReport",
    "PendingWithdrawRecord",
    "Resolution",
    "ScanWindow",
    "TransferStatus",
    "VerificationReport",
    "WithdrawStatus",
    # Clients
    "ClientRegistry",
    "EndpointPool",
    # Adapters
    "BaseLedgerAdapter",
    "CosmosLedgerAdapter",
    "EvmLedgerAdapter",
    "LedgerSet",
    "create_adapter",
    # Operations
    "TransferResolver",
    "verify_resolution",
    "BrokenTransferPlanner",
    "is_likely_broken",
    "HashMonitor",
    "merge_entries",
]
