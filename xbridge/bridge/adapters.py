"""
xbridge Ledger Adapters: Multi-Ledger Query Layer

Each adapter reads one ledger's bridge contract through a uniform interface:

  - get_deposit(hash)             deposit recorded on the source ledger
  - get_pending_withdraw(hash)    withdrawal submitted on the destination ledger
  - list_withdraw_hashes()        enumerable withdraw hashes (bounded)
  - scan_deposit_events(window)   raw deposit observations (bounded)
  - list_deposit_hashes(window)   deposit observations turned into hashes
  - get_this_chain_id()           the ledger's registered bridge identifier

Two variants share the interface, selected by ``LedgerFamily``:

  - EvmLedgerAdapter:    JSON-RPC ``eth_call`` / ``eth_getLogs`` with ABI coding
  - CosmosLedgerAdapter: LCD ``/cosmwasm/wasm/v1/contract/{addr}/smart/{b64}``

Every call tries the ledger's endpoints in order. When all of them fail the
call returns an empty ``LedgerQuery`` flagged ``failed`` rather than raising.
A record whose defining timestamp is zero is reported as absent.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple, TypeVar

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from .clients import MALFORMED_REPLY_ERRORS, ClientRegistry, EndpointPool, json_rpc, request_json
from .types import (
    DepositEvent,
    DepositRecord,
    HashSource,
    LedgerFamily,
    LedgerQuery,
    MonitorEntry,
    PendingWithdrawRecord,
    ScanWindow,
)
from ..config.loader import LedgerConfig, MonitorConfig
from ..constants import COSMOS_SMART_QUERY_PATH, NANOS_PER_SECOND, ZERO_WORD
from ..crypto.address import evm_address_to_word, token_text_to_word
from ..crypto.encoding import (
    ChainIdentifier,
    base64_to_bytes,
    bytes_to_base64,
    bytes_to_hex,
    hash_to_bytes,
    hex_to_bytes,
)
from ..crypto.hashing import event_topic, keccak256
from ..crypto.transfer_hash import account_to_word, compute_transfer_hash
from ..exceptions import AllEndpointsFailedError, ResponseFormatError
from ..logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def settle(ledger_key: str, label: str, outcome: Any) -> LedgerQuery:
    """
    Normalize one ``gather(..., return_exceptions=True)`` outcome.

    An exception that escaped an adapter call becomes a failed LedgerQuery
    for that ledger only; cancellation is re-raised.
    """
    if isinstance(outcome, Exception):
        logger.error(f"[{ledger_key}] {label} raised {type(outcome).__name__}: {outcome}")
        return LedgerQuery.from_exception(ledger_key, label, outcome)
    if isinstance(outcome, BaseException):
        raise outcome
    return outcome


# ══════════════════════════════════════════════════════════════════════
#  BASE LEDGER ADAPTER  (Abstract)
# ══════════════════════════════════════════════════════════════════════

class BaseLedgerAdapter(ABC):
    """
    Abstract read-only view of one ledger's bridge contract.

    Args:
        config: The ledger's configuration entry
        registry: Shared client registry owned by the caller
        monitor: Enumeration bounds (defaults when None)
        timeout: Per-attempt timeout; the registry default when None
    """

    family: LedgerFamily

    def __init__(
        self,
        config: LedgerConfig,
        registry: ClientRegistry,
        monitor: Optional[MonitorConfig] = None,
        timeout: Optional[float] = None,
    ):
        self.config = config
        self.registry = registry
        self.monitor = monitor or MonitorConfig()
        self.pool = EndpointPool(config.key, config.endpoints, registry, timeout)
        self.chain_id: Optional[ChainIdentifier] = (
            ChainIdentifier(config.chain_id) if config.chain_id else None
        )

    # ── Identity ────────────────────────────────────────────────────

    @property
    def key(self) -> str:
        return self.config.key

    @property
    def name(self) -> str:
        return self.config.name or self.config.key

    @property
    def bridge_address(self) -> str:
        return self.config.bridge_address

    @property
    def is_queryable(self) -> bool:
        """True when the ledger has a bridge address and at least one endpoint."""
        return bool(self.config.bridge_address) and len(self.pool) > 0

    def __repr__(self) -> str:
        chain = self.chain_id.hex if self.chain_id is not None else "?"
        return f"{type(self).__name__}({self.key!r}, chain_id={chain})"

    # ── Plumbing ────────────────────────────────────────────────────

    async def _guard(self, label: str, work: Callable[[], Awaitable[T]]) -> LedgerQuery[T]:
        """
        Run ``work`` and turn its failures into a failed LedgerQuery.

        Covers endpoint exhaustion and replies that decode into the wrong
        shape after the endpoint call returned.
        """
        if not self.is_queryable:
            return self._unconfigured()
        try:
            return LedgerQuery(value=await work())
        except AllEndpointsFailedError as e:
            logger.warning(f"[{self.key}] {label}: all endpoints failed")
            return LedgerQuery(failed=True, errors=e.errors)
        except MALFORMED_REPLY_ERRORS as e:
            logger.warning(f"[{self.key}] {label}: malformed reply ({type(e).__name__}: {e})")
            return LedgerQuery.from_exception(self.key, label, e)

    def _unconfigured(self) -> LedgerQuery:
        return LedgerQuery(failed=True, errors=[f"{self.key}: bridge address or endpoints not configured"])

    async def resolve_chain_id(self) -> Optional[ChainIdentifier]:
        """The configured chain id, discovered from the contract on first use."""
        if self.chain_id is None:
            result = await self.get_this_chain_id()
            if result.value is not None:
                self.chain_id = result.value
                logger.info(f"[{self.key}] discovered chain id {self.chain_id.hex}")
        return self.chain_id

    # ── Queries ─────────────────────────────────────────────────────

    @abstractmethod
    async def get_this_chain_id(self) -> LedgerQuery[ChainIdentifier]:
        """Read the ledger's own registered chain identifier."""
        ...

    @abstractmethod
    async def get_deposit(self, transfer_hash) -> LedgerQuery[DepositRecord]:
        """
        Fetch the deposit stored under ``transfer_hash``.

        Raises:
            InvalidHashError: if the hash is malformed
        """
        ...

    @abstractmethod
    async def get_pending_withdraw(self, transfer_hash) -> LedgerQuery[PendingWithdrawRecord]:
        """Fetch the pending withdrawal stored under ``transfer_hash``."""
        ...

    @abstractmethod
    async def list_withdraw_hashes(self, options: Optional[MonitorConfig] = None) -> LedgerQuery[List[MonitorEntry]]:
        """Enumerate withdraw hashes, bounded by the monitor limits."""
        ...

    @abstractmethod
    async def scan_deposit_events(
        self, window: Optional[ScanWindow] = None, options: Optional[MonitorConfig] = None,
    ) -> LedgerQuery[List[DepositEvent]]:
        """Collect raw deposit observations inside ``window``."""
        ...

    @abstractmethod
    async def list_deposit_hashes(
        self, window: Optional[ScanWindow] = None, options: Optional[MonitorConfig] = None,
    ) -> LedgerQuery[List[MonitorEntry]]:
        """Enumerate deposit hashes inside ``window``."""
        ...

    def _entry(self, transfer_hash: bytes, source: HashSource, **flags) -> MonitorEntry:
        return MonitorEntry(
            hash=bytes_to_hex(transfer_hash),
            source=source,
            ledger_key=self.key,
            ledger_name=self.name,
            **flags,
        )


# ══════════════════════════════════════════════════════════════════════
#  EVM ADAPTER
# ══════════════════════════════════════════════════════════════════════

DEPOSIT_EVENT = "Deposit(bytes4,bytes32,bytes32,address,uint256,uint64,uint256)"
WITHDRAW_SUBMIT_EVENT = "WithdrawSubmit(bytes32,bytes4,bytes32,bytes32,address,uint256,uint64,uint256)"
WITHDRAW_EXECUTE_EVENT = "WithdrawExecute(bytes32,address,uint256)"
WITHDRAW_CANCEL_EVENT = "WithdrawCancel(bytes32,address)"

DEPOSIT_VIEW = "(bytes4,bytes32,bytes32,address,uint256,uint64,uint256,uint256)"
PENDING_WITHDRAW_VIEW = (
    "(bytes4,bytes32,bytes32,address,address,uint256,uint64,uint8,uint8,"
    "uint256,uint256,uint256,bool,bool,bool)"
)


def function_selector(signature: str) -> bytes:
    """First 4 bytes of keccak256 of the function signature."""
    return keccak256(signature)[:4]


def encode_call(signature: str, arg_types: Sequence[str] = (), args: Sequence[Any] = ()) -> bytes:
    """Encode function call data (selector + ABI-encoded arguments)."""
    selector = function_selector(signature)
    if not arg_types:
        return selector
    return selector + encode(list(arg_types), list(args))


def _expect_log_list(result: Any) -> List[Dict[str, Any]]:
    if not isinstance(result, list):
        raise ResponseFormatError("eth_getLogs: expected a list")
    return result


class EvmLedgerAdapter(BaseLedgerAdapter):
    """
    EVM bridge reader over JSON-RPC.

    Event scans run over the most recent ``evm_block_window`` blocks, split in
    ``eth_getLogs`` requests of at most ``evm_log_chunk`` blocks.
    """

    family = LedgerFamily.EVM

    # ── JSON-RPC primitives ─────────────────────────────────────────

    async def _rpc(
        self,
        method: str,
        params: List[Any],
        label: Optional[str] = None,
        parse: Optional[Callable[[Any], T]] = None,
    ) -> Any:
        """JSON-RPC call; ``parse`` runs per endpoint, so a bad reply falls through."""
        async def operation(client: httpx.AsyncClient, url: str) -> Any:
            result = await json_rpc(client, url, method, params)
            return parse(result) if parse is not None else result
        return await self.pool.call(operation, label or method)

    async def _call(
        self,
        signature: str,
        arg_types: Sequence[str],
        args: Sequence[Any],
        output_types: Sequence[str],
        to: Optional[str] = None,
    ) -> Tuple[Any, ...]:
        """``eth_call`` a view function and ABI-decode its return data."""
        data = bytes_to_hex(encode_call(signature, arg_types, args))
        target = to or self.bridge_address

        async def operation(client: httpx.AsyncClient, url: str) -> Tuple[Any, ...]:
            result = await json_rpc(client, url, "eth_call", [{"to": target, "data": data}, "latest"])
            return decode(list(output_types), hex_to_bytes(result))
        return await self.pool.call(operation, signature.split('(')[0])

    async def block_number(self) -> int:
        return await self._rpc("eth_blockNumber", [], parse=lambda result: int(result, 16))

    async def _get_logs(self, signature: str, from_block: int, to_block: int) -> List[Dict[str, Any]]:
        topic = event_topic(signature)
        chunk = max(1, self.monitor.evm_log_chunk)
        logs: List[Dict[str, Any]] = []
        for start in range(from_block, to_block + 1, chunk):
            end = min(start + chunk - 1, to_block)
            params = [{
                "address": self.bridge_address,
                "topics": [topic],
                "fromBlock": hex(start),
                "toBlock": hex(end),
            }]
            logs.extend(await self._rpc(
                "eth_getLogs", params, f"eth_getLogs {signature.split('(')[0]}", parse=_expect_log_list,
            ))
        return logs

    async def _resolve_window(self, window: Optional[ScanWindow], options: Optional[MonitorConfig] = None) -> ScanWindow:
        if window is not None and window.start is not None and window.end is not None:
            return window
        options = options or self.monitor
        latest = await self.block_number()
        end = window.end if window is not None and window.end is not None else latest
        start = (
            window.start if window is not None and window.start is not None
            else max(0, end - options.evm_block_window + 1)
        )
        return ScanWindow(start=start, end=end)

    # ── Records ─────────────────────────────────────────────────────

    async def get_this_chain_id(self) -> LedgerQuery[ChainIdentifier]:
        async def work() -> ChainIdentifier:
            (raw,) = await self._call("getThisChainId()", (), (), ["bytes4"])
            return ChainIdentifier(raw)
        return await self._guard("getThisChainId", work)

    async def get_deposit(self, transfer_hash) -> LedgerQuery[DepositRecord]:
        hash_bytes = hash_to_bytes(transfer_hash)

        async def work() -> Optional[DepositRecord]:
            (view,) = await self._call("getDeposit(bytes32)", ["bytes32"], [hash_bytes], [DEPOSIT_VIEW])
            dest_chain, src_account, dest_account, token, amount, nonce, fee, timestamp = view
            if timestamp == 0:
                return None
            dest_chain = ChainIdentifier(dest_chain)
            return DepositRecord(
                ledger_key=self.key,
                src_chain=await self.resolve_chain_id(),
                dest_chain=dest_chain,
                src_account=src_account,
                dest_account=dest_account,
                token=await self._dest_token_word(token, dest_chain),
                amount=amount,
                nonce=nonce,
                timestamp=timestamp,
                fee=fee,
                token_text=to_checksum_address(token),
            )
        return await self._guard("getDeposit", work)

    async def get_pending_withdraw(self, transfer_hash) -> LedgerQuery[PendingWithdrawRecord]:
        hash_bytes = hash_to_bytes(transfer_hash)

        async def work() -> Optional[PendingWithdrawRecord]:
            (view,) = await self._call(
                "getPendingWithdraw(bytes32)", ["bytes32"], [hash_bytes], [PENDING_WITHDRAW_VIEW],
            )
            (src_chain, src_account, dest_account, token, recipient, amount, nonce,
             _src_decimals, _dest_decimals, operator_gas, submitted_at, approved_at,
             approved, cancelled, executed) = view
            if submitted_at == 0:
                return None
            return PendingWithdrawRecord(
                ledger_key=self.key,
                src_chain=ChainIdentifier(src_chain),
                dest_chain=await self.resolve_chain_id(),
                src_account=src_account,
                dest_account=dest_account,
                token=evm_address_to_word(token),
                amount=amount,
                nonce=nonce,
                submitted_at=submitted_at,
                approved_at=approved_at,
                approved=approved,
                cancelled=cancelled,
                executed=executed,
                token_text=to_checksum_address(token),
                recipient=to_checksum_address(recipient),
                operator_gas=operator_gas,
            )
        return await self._guard("getPendingWithdraw", work)

    # ── Registries ──────────────────────────────────────────────────

    async def get_registered_chains(self) -> LedgerQuery[List[ChainIdentifier]]:
        """Enumerate the chain ids registered in the bridge's chain registry."""
        async def work() -> List[ChainIdentifier]:
            (registry,) = await self._call("chainRegistry()", (), (), ["address"])
            (chain_ids,) = await self._call("getRegisteredChains()", (), (), ["bytes4[]"], to=registry)
            return [ChainIdentifier(raw) for raw in chain_ids]
        return await self._guard("getRegisteredChains", work)

    async def _dest_tokens(self, pairs: Set[Tuple[str, ChainIdentifier]]) -> Dict[Tuple[str, ChainIdentifier], bytes]:
        """Map (source token, destination chain) to destination token words."""
        if not pairs:
            return {}
        (registry,) = await self._call("tokenRegistry()", (), (), ["address"])
        ordered = sorted(pairs)

        async def lookup(token: str, dest_chain: ChainIdentifier) -> Optional[bytes]:
            try:
                (word,) = await self._call(
                    "getDestToken(address,bytes4)", ["address", "bytes4"],
                    [token, dest_chain.to_bytes4()], ["bytes32"], to=registry,
                )
            except AllEndpointsFailedError:
                logger.warning(f"[{self.key}] no destination token for {token} -> {dest_chain.hex}")
                return None
            return word if word != ZERO_WORD else None

        words = await asyncio.gather(*(lookup(token, chain) for token, chain in ordered))
        return {pair: word for pair, word in zip(ordered, words) if word is not None}

    async def _dest_token_word(self, token: str, dest_chain: ChainIdentifier) -> bytes:
        """Destination token word of a deposit; the source token word when unmapped."""
        source_word = evm_address_to_word(token)
        pair = (bytes_to_hex(source_word[12:]), dest_chain)
        try:
            mapped = await self._dest_tokens({pair})
        except AllEndpointsFailedError:
            logger.warning(f"[{self.key}] token registry unavailable, keeping source token word")
            return source_word
        return mapped.get(pair, source_word)

    # ── Enumeration ─────────────────────────────────────────────────

    async def scan_deposit_events(
        self, window: Optional[ScanWindow] = None, options: Optional[MonitorConfig] = None,
    ) -> LedgerQuery[List[DepositEvent]]:
        async def work() -> List[DepositEvent]:
            bounds = await self._resolve_window(window, options)
            events = []
            for log in await self._get_logs(DEPOSIT_EVENT, bounds.start, bounds.end):
                event = self._decode_deposit_log(log)
                if event is not None:
                    events.append(event)
            logger.debug(f"[{self.key}] {len(events)} deposit events in blocks {bounds.start}-{bounds.end}")
            return events
        return await self._guard("scan Deposit", work)

    def _decode_deposit_log(self, log: Dict[str, Any]) -> Optional[DepositEvent]:
        try:
            topics = log["topics"]
            src_account, token, amount, nonce, fee = decode(
                ["bytes32", "address", "uint256", "uint64", "uint256"], hex_to_bytes(log["data"]),
            )
            return DepositEvent(
                ledger_key=self.key,
                nonce=nonce,
                dest_chain=ChainIdentifier(hex_to_bytes(topics[1])),
                src_account=src_account,
                dest_account=hex_to_bytes(topics[2]),
                amount=amount,
                token=evm_address_to_word(token),
                fee=fee,
                block_number=int(log["blockNumber"], 16) if log.get("blockNumber") else None,
                tx_hash=log.get("transactionHash"),
            )
        except (DecodingError, KeyError, IndexError, ValueError, TypeError, AttributeError) as e:
            logger.debug(f"[{self.key}] skipping malformed Deposit log: {e}")
            return None

    async def list_deposit_hashes(
        self, window: Optional[ScanWindow] = None, options: Optional[MonitorConfig] = None,
    ) -> LedgerQuery[List[MonitorEntry]]:
        scan = await self.scan_deposit_events(window, options)
        if scan.failed:
            return LedgerQuery(failed=True, errors=scan.errors)

        async def work() -> List[MonitorEntry]:
            chain_id = await self.resolve_chain_id()
            if chain_id is None:
                raise AllEndpointsFailedError(f"[{self.key}] chain id unavailable", ["getThisChainId failed"])
            events = scan.value or []
            # Deposit events carry the SOURCE token; the hash uses the destination token word
            pairs = {(bytes_to_hex(e.token[12:]), e.dest_chain) for e in events}
            dest_tokens = await self._dest_tokens(pairs)
            entries = []
            for event in events:
                dest_token = dest_tokens.get((bytes_to_hex(event.token[12:]), event.dest_chain))
                if dest_token is None:
                    continue
                event.dest_token = dest_token
                transfer_hash = compute_transfer_hash(
                    chain_id, event.dest_chain, event.src_account, event.dest_account,
                    dest_token, event.amount, event.nonce,
                )
                entries.append(self._entry(transfer_hash, HashSource.DEPOSIT))
            return entries
        return await self._guard("list deposit hashes", work)

    async def list_withdraw_hashes(self, options: Optional[MonitorConfig] = None) -> LedgerQuery[List[MonitorEntry]]:
        async def work() -> List[MonitorEntry]:
            bounds = await self._resolve_window(None, options)
            submit_logs, execute_logs, cancel_logs = await asyncio.gather(
                self._get_logs(WITHDRAW_SUBMIT_EVENT, bounds.start, bounds.end),
                self._get_logs(WITHDRAW_EXECUTE_EVENT, bounds.start, bounds.end),
                self._get_logs(WITHDRAW_CANCEL_EVENT, bounds.start, bounds.end),
            )
            executed = self._indexed_hashes(execute_logs)
            cancelled = self._indexed_hashes(cancel_logs)
            entries = []
            for transfer_hash in self._indexed_hashes(submit_logs, ordered=True):
                entries.append(self._entry(
                    transfer_hash, HashSource.WITHDRAW,
                    executed=transfer_hash in executed,
                    cancelled=transfer_hash in cancelled,
                ))
            return entries
        return await self._guard("list withdraw hashes", work)

    def _indexed_hashes(self, logs: List[Dict[str, Any]], ordered: bool = False):
        """Collect the indexed ``withdrawHash`` topic of each log."""
        hashes = []
        for log in logs:
            try:
                hashes.append(hex_to_bytes(log["topics"][1]))
            except (KeyError, IndexError, ValueError, TypeError):
                logger.debug(f"[{self.key}] skipping malformed withdraw log")
        return hashes if ordered else set(hashes)


# ══════════════════════════════════════════════════════════════════════
#  COSMOS ADAPTER
# ══════════════════════════════════════════════════════════════════════

def smart_query_path(contract: str, query: Dict[str, Any]) -> str:
    """LCD path of a CosmWasm smart query with a base64 JSON payload."""
    payload = bytes_to_base64(json.dumps(query, separators=(',', ':')).encode('utf-8'))
    return COSMOS_SMART_QUERY_PATH.format(contract=contract, query=payload)


def _nanos_to_seconds(value: Any) -> int:
    return int(value or 0) // NANOS_PER_SECOND


class CosmosLedgerAdapter(BaseLedgerAdapter):
    """
    CosmWasm bridge reader over an LCD REST endpoint.

    Deposits are enumerated through ``deposit_by_nonce`` over the nonce range
    ``0 .. min(current_nonce, cosmos_deposit_max_nonce)`` in bounded batches;
    withdrawals through ``pending_withdrawals`` pages (cursor = last hash).
    """

    family = LedgerFamily.COSMOS

    async def _smart(self, query: Dict[str, Any], parse: Callable[[Any], T], label: str) -> T:
        path = smart_query_path(self.bridge_address, query)

        async def operation(client: httpx.AsyncClient, url: str) -> T:
            body = await request_json(client, f"{url}{path}")
            if not isinstance(body, dict):
                raise ResponseFormatError(f"{label}: expected JSON object")
            try:
                return parse(body.get("data"))
            except MALFORMED_REPLY_ERRORS as e:
                raise ResponseFormatError(f"{label}: malformed data ({type(e).__name__}: {e})") from e
        return await self.pool.call(operation, label)

    # ── Records ─────────────────────────────────────────────────────

    async def get_this_chain_id(self) -> LedgerQuery[ChainIdentifier]:
        def parse(data: Any) -> ChainIdentifier:
            return ChainIdentifier(base64_to_bytes(data["chain_id"]))

        async def work() -> ChainIdentifier:
            return await self._smart({"this_chain_id": {}}, parse, "this_chain_id")
        return await self._guard("this_chain_id", work)

    async def current_nonce(self) -> LedgerQuery[int]:
        """Next outgoing deposit nonce; deposits exist at nonces below it."""
        async def work() -> int:
            return await self._smart({"current_nonce": {}}, lambda data: int(data["nonce"]), "current_nonce")
        return await self._guard("current_nonce", work)

    def _parse_deposit(self, data: Any) -> Optional[DepositRecord]:
        if not data:
            return None
        stored = data.get("deposit_hash") or data.get("xchain_hash_id")
        if not stored:
            return None
        timestamp = _nanos_to_seconds(data.get("deposited_at"))
        if timestamp == 0:
            return None
        src_chain = data.get("src_chain")
        dest_chain = data.get("dest_chain")
        return DepositRecord(
            ledger_key=self.key,
            src_chain=ChainIdentifier(base64_to_bytes(src_chain)) if src_chain else self.chain_id,
            dest_chain=ChainIdentifier(base64_to_bytes(dest_chain)) if dest_chain else ChainIdentifier(0),
            src_account=account_to_word(base64_to_bytes(data["src_account"])),
            dest_account=account_to_word(base64_to_bytes(data["dest_account"])),
            token=base64_to_bytes(data["dest_token_address"]),
            amount=int(data["amount"]),
            nonce=int(data["nonce"]),
            timestamp=timestamp,
            reported_hash=base64_to_bytes(stored),
        )

    async def get_deposit(self, transfer_hash) -> LedgerQuery[DepositRecord]:
        query = {"deposit_hash": {"deposit_hash": bytes_to_base64(hash_to_bytes(transfer_hash))}}

        async def work() -> Optional[DepositRecord]:
            await self.resolve_chain_id()
            return await self._smart(query, self._parse_deposit, "deposit_hash")
        return await self._guard("deposit_hash", work)

    def _parse_withdraw(self, data: Any, dest_chain: Optional[ChainIdentifier]) -> Optional[PendingWithdrawRecord]:
        if not data or not data.get("exists"):
            return None
        submitted_at = int(data.get("submitted_at") or 0)
        if submitted_at == 0:
            return None
        token = data["token"]
        remaining = data.get("cancel_window_remaining")
        return PendingWithdrawRecord(
            ledger_key=self.key,
            src_chain=ChainIdentifier(base64_to_bytes(data["src_chain"])),
            dest_chain=dest_chain,
            src_account=account_to_word(base64_to_bytes(data["src_account"])),
            dest_account=account_to_word(base64_to_bytes(data["dest_account"])),
            token=token_text_to_word(token, self.config.hrp),
            amount=int(data["amount"]),
            nonce=int(data["nonce"]),
            submitted_at=submitted_at,
            approved_at=int(data.get("approved_at") or 0),
            approved=bool(data.get("approved")),
            cancelled=bool(data.get("cancelled")),
            executed=bool(data.get("executed")),
            token_text=token,
            recipient=data.get("recipient"),
            cancel_window_remaining=int(remaining) if remaining is not None else None,
        )

    async def get_pending_withdraw(self, transfer_hash) -> LedgerQuery[PendingWithdrawRecord]:
        query = {"pending_withdraw": {"withdraw_hash": bytes_to_base64(hash_to_bytes(transfer_hash))}}

        async def work() -> Optional[PendingWithdrawRecord]:
            dest_chain = await self.resolve_chain_id()
            return await self._smart(query, lambda data: self._parse_withdraw(data, dest_chain), "pending_withdraw")
        return await self._guard("pending_withdraw", work)

    # ── Enumeration ─────────────────────────────────────────────────

    async def list_withdraw_hashes(self, options: Optional[MonitorConfig] = None) -> LedgerQuery[List[MonitorEntry]]:
        """
        Walk ``pending_withdrawals`` pages until a short page or the page cap.

        A page that fails on every endpoint, including one whose rows do not
        decode, ends the walk: entries from earlier pages are kept and the
        query is flagged as failed.
        """
        if not self.is_queryable:
            return self._unconfigured()
        options = options or self.monitor
        entries: List[MonitorEntry] = []
        cursor: Optional[str] = None

        def parse(data: Any) -> Tuple[List[Tuple[str, MonitorEntry]], int]:
            withdrawals = (data or {}).get("withdrawals", [])
            if not isinstance(withdrawals, list):
                raise ResponseFormatError("pending_withdrawals: withdrawals is not a list")
            page_entries = []
            for row in withdrawals:
                stored = row.get("xchain_hash_id") or row.get("withdraw_hash")
                if not stored:
                    continue
                page_entries.append((stored, self._entry(
                    base64_to_bytes(stored), HashSource.WITHDRAW,
                    timestamp=int(row.get("submitted_at") or 0) or None,
                    approved=bool(row.get("approved")),
                    cancelled=bool(row.get("cancelled")),
                    executed=bool(row.get("executed")),
                )))
            return page_entries, len(withdrawals)

        for page in range(options.cosmos_max_pages):
            query: Dict[str, Any] = {"pending_withdrawals": {"limit": options.cosmos_page_size}}
            if cursor is not None:
                query["pending_withdrawals"]["start_after"] = cursor
            try:
                page_entries, row_count = await self._smart(query, parse, "pending_withdrawals")
            except AllEndpointsFailedError as e:
                logger.warning(f"[{self.key}] pending_withdrawals page {page + 1} failed")
                return LedgerQuery(value=entries, failed=True, errors=e.errors)

            for stored, entry in page_entries:
                entries.append(entry)
                cursor = stored
            if row_count < options.cosmos_page_size:
                break
        else:
            logger.info(f"[{self.key}] stopped after {options.cosmos_max_pages} pending_withdrawals pages")
        return LedgerQuery(value=entries)

    async def _resolve_window(
        self, window: Optional[ScanWindow], options: Optional[MonitorConfig] = None,
    ) -> Optional[ScanWindow]:
        if window is not None and window.start is not None and window.end is not None:
            return window
        nonce = await self._smart({"current_nonce": {}}, lambda data: int(data["nonce"]), "current_nonce")
        end = min(nonce, (options or self.monitor).cosmos_deposit_max_nonce) - 1
        if window is not None and window.end is not None:
            end = window.end
        start = window.start if window is not None and window.start is not None else 0
        if end < start:
            return None
        return ScanWindow(start=start, end=end)

    async def scan_deposit_events(
        self, window: Optional[ScanWindow] = None, options: Optional[MonitorConfig] = None,
    ) -> LedgerQuery[List[DepositEvent]]:
        async def work() -> List[DepositEvent]:
            bounds = await self._resolve_window(window, options)
            if bounds is None:
                return []
            events: List[DepositEvent] = []
            errors: List[str] = []
            batch = max(1, (options or self.monitor).cosmos_nonce_batch)
            for first in range(bounds.start, bounds.end + 1, batch):
                nonces = range(first, min(first + batch, bounds.end + 1))
                results = await asyncio.gather(
                    *(self._deposit_by_nonce(n) for n in nonces), return_exceptions=True,
                )
                for nonce, result in zip(nonces, results):
                    if isinstance(result, AllEndpointsFailedError):
                        errors.extend(result.errors)
                    elif isinstance(result, BaseException):
                        raise result
                    elif result is not None:
                        events.append(result)
            if errors and not events:
                raise AllEndpointsFailedError(f"[{self.key}] deposit_by_nonce failed", errors)
            if errors:
                logger.warning(f"[{self.key}] {len(errors)} deposit_by_nonce lookups failed")
            return events
        return await self._guard("deposit_by_nonce", work)

    async def _deposit_by_nonce(self, nonce: int) -> Optional[DepositEvent]:
        def parse(data: Any) -> Optional[DepositEvent]:
            record = self._parse_deposit(data)
            if record is None:
                return None
            return DepositEvent(
                ledger_key=self.key,
                nonce=record.nonce,
                dest_chain=record.dest_chain,
                src_account=record.src_account,
                dest_account=record.dest_account,
                amount=record.amount,
                dest_token=record.token,
                timestamp=record.timestamp,
                reported_hash=record.reported_hash,
            )
        return await self._smart({"deposit_by_nonce": {"nonce": nonce}}, parse, "deposit_by_nonce")

    async def list_deposit_hashes(
        self, window: Optional[ScanWindow] = None, options: Optional[MonitorConfig] = None,
    ) -> LedgerQuery[List[MonitorEntry]]:
        scan = await self.scan_deposit_events(window, options)
        if scan.failed:
            return LedgerQuery(failed=True, errors=scan.errors)

        async def work() -> List[MonitorEntry]:
            entries = []
            for event in scan.value or []:
                transfer_hash = event.reported_hash
                if transfer_hash is None and self.chain_id is not None:
                    transfer_hash = compute_transfer_hash(
                        self.chain_id, event.dest_chain, event.src_account, event.dest_account,
                        event.dest_token, event.amount, event.nonce,
                    )
                if transfer_hash is not None:
                    entries.append(self._entry(transfer_hash, HashSource.DEPOSIT, timestamp=event.timestamp))
            return entries
        return await self._guard("list deposit hashes", work)
