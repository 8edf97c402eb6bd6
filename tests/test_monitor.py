"""
xbridge Hash Monitor Test Suite

Tests for:
- Merge rules (OR-ed executed / cancelled, last approved, first timestamp)
- Deterministic ordering (timestamp descending, hash ascending)
- Fan-out over EVM and Cosmos ledgers with partial failure
- Ledgers that answer with undecodable data

Run with:
    pytest tests/test_monitor.py -v
"""

import pytest

from bridge_fakes import (
    ACCOUNT_A,
    ACCOUNT_B,
    CHAIN_A,
    CHAIN_B,
    DEPOSIT_TIME,
    ERC20_TOKEN,
    ULUNA_WORD,
    FakeCosmosBridge,
    FakeEvmBridge,
    FakeNetwork,
    build_ledgers,
    ledger_entry,
    scenario_hash,
)
from xbridge.bridge.adapters import WITHDRAW_SUBMIT_EVENT
from xbridge.bridge.clients import ClientRegistry
from xbridge.bridge.monitor import HashMonitor, merge_entries
from xbridge.bridge.types import HashSource, MonitorEntry
from xbridge.config.loader import MonitorConfig
from xbridge.crypto.encoding import bytes_to_hex
from xbridge.crypto.hashing import keccak256

EVM_URL = "https://rpc-a.example"
LCD_URL = "https://lcd-b.example"


def entry(hash_text, ledger="evm-a", source=HashSource.WITHDRAW, **flags) -> MonitorEntry:
    return MonitorEntry(hash=hash_text, source=source, ledger_key=ledger, ledger_name=ledger, **flags)


H1 = "0x" + "01" * 32
H2 = "0x" + "02" * 32
H3 = "0x" + "03" * 32


# ============================================================================
# Merge rules
# ============================================================================


class TestMergeEntries:

    def test_one_entry_per_hash(self):
        merged = merge_entries([entry(H1), entry(H1, "terra"), entry(H2)])
        assert sorted(e.hash for e in merged) == [H1, H2]

    def test_executed_and_cancelled_are_ored(self):
        (merged,) = merge_entries([
            entry(H1, executed=True, cancelled=False),
            entry(H1, "terra", executed=False, cancelled=True),
        ])
        assert merged.executed is True
        assert merged.cancelled is True

    def test_approved_takes_last_observation(self):
        (merged,) = merge_entries([entry(H1, approved=True), entry(H1, "terra", approved=False)])
        assert merged.approved is False

    def test_missing_approved_keeps_previous(self):
        (merged,) = merge_entries([entry(H1, approved=True), entry(H1, "terra")])
        assert merged.approved is True

    def test_timestamp_only_filled_when_unset(self):
        (merged,) = merge_entries([
            entry(H1),
            entry(H1, "terra", timestamp=100),
            entry(H1, "other", timestamp=200),
        ])
        assert merged.timestamp == 100

    def test_seen_on_records_every_ledger(self):
        (merged,) = merge_entries([entry(H1), entry(H1, "terra"), entry(H1)])
        assert merged.seen_on == ["evm-a", "terra"]
        assert merged.ledger_key == "evm-a"

    def test_hash_case_folded(self):
        merged = merge_entries([entry("0x" + "ab" * 32), entry("0x" + "AB" * 32, "terra")])
        assert len(merged) == 1

    def test_inputs_not_mutated(self):
        first = entry(H1, executed=False)
        merge_entries([first, entry(H1, "terra", executed=True)])
        assert first.executed is False
        assert first.seen_on == ["evm-a"]

    def test_sorted_by_timestamp_then_hash(self):
        merged = merge_entries([
            entry(H3, timestamp=10),
            entry(H2, timestamp=20),
            entry(H1, timestamp=10),
            entry("0x" + "00" * 32),
        ])
        assert [e.hash for e in merged] == [H2, H1, H3, "0x" + "00" * 32]

    def test_deterministic_for_identical_input(self):
        observations = [entry(H2, timestamp=5), entry(H1, timestamp=5, approved=True), entry(H3)]
        first = [e.to_dict() for e in merge_entries(observations)]
        second = [e.to_dict() for e in merge_entries(list(observations))]
        assert first == second


# ============================================================================
# Fan-out
# ============================================================================


@pytest.fixture
def bridges():
    network = FakeNetwork()
    evm, cosmos = FakeEvmBridge(CHAIN_A), FakeCosmosBridge(CHAIN_B)
    # A -> B deposit seen on A, executed on B
    evm.add_deposit_log(CHAIN_B, ACCOUNT_A, ACCOUNT_B)
    evm.map_token(ERC20_TOKEN, CHAIN_B, ULUNA_WORD)
    cosmos.add_withdraw(scenario_hash(), CHAIN_A, ACCOUNT_A, ACCOUNT_B, approved=True, executed=True)
    # B -> A deposit waiting for submission on A
    cosmos.add_deposit(keccak256("b-to-a"), CHAIN_A, ACCOUNT_B, ACCOUNT_A)
    # withdraw submitted on A, not yet approved
    evm.add_withdraw_log(WITHDRAW_SUBMIT_EVENT, keccak256("incoming"))
    network.add(EVM_URL, evm)
    network.add(LCD_URL, cosmos)
    return network, evm, cosmos


def two_ledgers(registry, monitor=None):
    return build_ledgers(registry, [
        ledger_entry("evm-a", "evm", [EVM_URL], chain_id="0x00000001"),
        ledger_entry("terra", "cosmos", [LCD_URL], chain_id="0x00000002"),
    ], monitor)


class TestEnumerateAll:

    @pytest.mark.asyncio
    async def test_reconciles_all_ledgers(self, bridges):
        network, _, _ = bridges
        async with ClientRegistry(transport=network.transport) as registry:
            report = await HashMonitor(two_ledgers(registry)).enumerate_all()

        assert report.queried_ledgers == ["evm-a", "terra"]
        assert report.failed_ledgers == []
        by_hash = {e.hash: e for e in report.entries}
        assert set(by_hash) == {
            bytes_to_hex(scenario_hash()),
            bytes_to_hex(keccak256("b-to-a")),
            bytes_to_hex(keccak256("incoming")),
        }

        transfer = by_hash[bytes_to_hex(scenario_hash())]
        assert transfer.source == HashSource.DEPOSIT
        assert transfer.seen_on == ["evm-a", "terra"]
        assert transfer.executed is True
        assert transfer.approved is True
        assert transfer.timestamp == DEPOSIT_TIME + 60

    @pytest.mark.asyncio
    async def test_output_order(self, bridges):
        network, _, _ = bridges
        async with ClientRegistry(transport=network.transport) as registry:
            report = await HashMonitor(two_ledgers(registry)).enumerate_all()
        assert report.hashes == [
            bytes_to_hex(scenario_hash()),
            bytes_to_hex(keccak256("b-to-a")),
            bytes_to_hex(keccak256("incoming")),
        ]

    @pytest.mark.asyncio
    async def test_repeated_runs_agree(self, bridges):
        network, _, _ = bridges
        async with ClientRegistry(transport=network.transport) as registry:
            monitor = HashMonitor(two_ledgers(registry))
            first = (await monitor.enumerate_all()).to_dict()
            second = (await monitor.enumerate_all()).to_dict()
        assert first == second

    @pytest.mark.asyncio
    async def test_failed_ledger_reported(self, bridges):
        network, _, _ = bridges
        network.take_down(LCD_URL)
        async with ClientRegistry(transport=network.transport) as registry:
            report = await HashMonitor(two_ledgers(registry)).enumerate_all()
        assert report.failed_ledgers == ["terra"]
        assert report.errors["terra"]
        transfer = {e.hash: e for e in report.entries}[bytes_to_hex(scenario_hash())]
        assert transfer.seen_on == ["evm-a"]
        assert not transfer.executed

    @pytest.mark.asyncio
    async def test_run_options_override_ledger_limits(self, bridges):
        network, _, cosmos = bridges
        async with ClientRegistry(transport=network.transport) as registry:
            report = await HashMonitor(two_ledgers(registry)).enumerate_all(
                MonitorConfig(evm_block_window=5, cosmos_deposit_max_nonce=1),
            )
        # block window 996..1000 misses the deposit (990) and the submit log (995)
        assert report.hashes == [bytes_to_hex(scenario_hash()), bytes_to_hex(keccak256("b-to-a"))]
        assert cosmos.calls.count("deposit_by_nonce") == 1

    @pytest.mark.asyncio
    async def test_no_ledgers(self):
        async with ClientRegistry() as registry:
            report = await HashMonitor(build_ledgers(registry, [])).enumerate_all()
        assert report.entries == []
        assert report.queried_ledgers == []


# ============================================================================
# Malformed replies
# ============================================================================


class TestMalformedReplies:

    @pytest.mark.asyncio
    async def test_undecodable_withdraw_row_fails_only_that_ledger(self, bridges):
        network, _, cosmos = bridges
        cosmos.replies["pending_withdrawals"] = {
            "withdrawals": [{"withdraw_hash": "!!!notbase64", "submitted_at": 1}],
        }
        async with ClientRegistry(transport=network.transport) as registry:
            report = await HashMonitor(two_ledgers(registry)).enumerate_all()
        assert report.failed_ledgers == ["terra"]
        assert report.errors["terra"]
        assert bytes_to_hex(keccak256("incoming")) in report.hashes
        # the Cosmos deposit listing still contributes
        assert bytes_to_hex(keccak256("b-to-a")) in report.hashes

    @pytest.mark.asyncio
    async def test_non_object_withdraw_row(self, bridges):
        network, _, cosmos = bridges
        cosmos.replies["pending_withdrawals"] = {"withdrawals": ["oops"]}
        async with ClientRegistry(transport=network.transport) as registry:
            report = await HashMonitor(two_ledgers(registry)).enumerate_all()
        assert report.failed_ledgers == ["terra"]
        assert bytes_to_hex(scenario_hash()) in report.hashes

    @pytest.mark.asyncio
    async def test_garbled_cosmos_ledger(self, bridges):
        network, _, cosmos = bridges
        cosmos.replies["*"] = ["not", "an", "object"]
        async with ClientRegistry(transport=network.transport) as registry:
            report = await HashMonitor(two_ledgers(registry)).enumerate_all()
        assert report.queried_ledgers == ["evm-a", "terra"]
        assert report.failed_ledgers == ["terra"]
        assert set(report.hashes) == {bytes_to_hex(scenario_hash()), bytes_to_hex(keccak256("incoming"))}

    @pytest.mark.asyncio
    async def test_garbled_block_number(self, bridges):
        network, evm, _ = bridges
        evm.results["eth_blockNumber"] = "zz"
        async with ClientRegistry(transport=network.transport) as registry:
            report = await HashMonitor(two_ledgers(registry)).enumerate_all()
        assert report.failed_ledgers == ["evm-a"]
        assert set(report.hashes) == {bytes_to_hex(scenario_hash()), bytes_to_hex(keccak256("b-to-a"))}
