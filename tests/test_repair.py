"""
xbridge Broken-Transfer Planner Test Suite

A broken transfer: the deposit was made on ledger W towards ledger S, but
the withdrawal was submitted on W itself with the chain roles reversed.
The withdraw found on W names S as its source; W holds the real deposit
under the swapped hash.

Run with:
    pytest tests/test_repair.py -v
"""

import pytest

from bridge_fakes import (
    AMOUNT,
    CHAIN_A,
    CHAIN_B,
    NONCE,
    ULUNA_WORD,
    FakeCosmosBridge,
    FakeEvmBridge,
    FakeNetwork,
    build_ledgers,
    ledger_entry,
    scenario_hash,
)
from xbridge.bridge.clients import ClientRegistry
from xbridge.bridge.repair import BrokenTransferPlanner, is_likely_broken, swapped_transfer_hash
from xbridge.bridge.types import (
    FixStatus,
    LedgerFamily,
    LookupStatus,
    PendingWithdrawRecord,
    Resolution,
)
from xbridge.crypto.address import encode_bech32_account
from xbridge.crypto.encoding import ChainIdentifier, bytes_to_hex
from xbridge.crypto.transfer_hash import account_to_word, compute_transfer_hash

EVM_URL = "https://rpc-a.example"
LCD_URL = "https://lcd-b.example"

SENDER = bytes.fromhex("5a" * 20)
RECEIVER = bytes.fromhex("7e" * 20)

# Deposit on terra (B) towards evm-a (A)
CORRECT_ON_TERRA = compute_transfer_hash(CHAIN_B, CHAIN_A, SENDER, RECEIVER, ULUNA_WORD, AMOUNT, NONCE)
# Withdraw wrongly submitted on terra, claiming A as the source
WRONG_ON_TERRA = compute_transfer_hash(CHAIN_A, CHAIN_B, RECEIVER, SENDER, ULUNA_WORD, AMOUNT, NONCE)


@pytest.fixture
def bridges():
    network = FakeNetwork()
    evm, cosmos = FakeEvmBridge(CHAIN_A), FakeCosmosBridge(CHAIN_B)
    network.add(EVM_URL, evm)
    network.add(LCD_URL, cosmos)
    return network, evm, cosmos


def two_ledgers(registry):
    return build_ledgers(registry, [
        ledger_entry("evm-a", "evm", [EVM_URL], chain_id="0x00000001"),
        ledger_entry("terra", "cosmos", [LCD_URL], chain_id="0x00000002", native_denoms=["uluna"]),
    ])


def withdraw_record(ledger_key, src_chain, dest_chain, src_account, dest_account, token=ULUNA_WORD,
                    executed=False) -> PendingWithdrawRecord:
    return PendingWithdrawRecord(
        ledger_key=ledger_key,
        src_chain=ChainIdentifier(src_chain),
        dest_chain=ChainIdentifier(dest_chain) if dest_chain is not None else None,
        src_account=account_to_word(src_account),
        dest_account=account_to_word(dest_account),
        token=token,
        amount=AMOUNT,
        nonce=NONCE,
        submitted_at=1,
        executed=executed,
    )


def orphan(withdraw: PendingWithdrawRecord, ledger_key: str) -> Resolution:
    return Resolution(
        hash=bytes_to_hex(withdraw.transfer_hash or scenario_hash()),
        status=LookupStatus.FOUND,
        withdraw=withdraw,
        withdraw_ledger=ledger_key,
    )


# ============================================================================
# Precondition
# ============================================================================


class TestIsLikelyBroken:

    def test_orphan_withdraw(self):
        assert is_likely_broken(None, withdraw_record("terra", CHAIN_A, CHAIN_B, RECEIVER, SENDER))

    def test_executed_withdraw_is_not_broken(self):
        assert not is_likely_broken(None, withdraw_record("terra", CHAIN_A, CHAIN_B, RECEIVER, SENDER, executed=True))

    def test_no_withdraw(self):
        assert not is_likely_broken(None, None)

    def test_swapped_hash(self):
        withdraw = withdraw_record("terra", CHAIN_A, CHAIN_B, RECEIVER, SENDER)
        assert withdraw.transfer_hash == WRONG_ON_TERRA
        assert swapped_transfer_hash(withdraw, CHAIN_B) == CORRECT_ON_TERRA


# ============================================================================
# Fixable
# ============================================================================


class TestFixable:

    @pytest.mark.asyncio
    async def test_plan_towards_evm(self, bridges):
        network, _, cosmos = bridges
        cosmos.add_deposit(CORRECT_ON_TERRA, CHAIN_A, SENDER, RECEIVER, nonce=NONCE)
        cosmos.add_withdraw(WRONG_ON_TERRA, CHAIN_A, RECEIVER, SENDER)
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).detect_and_plan(WRONG_ON_TERRA)

        assert outcome.status == FixStatus.FIXABLE
        assert outcome.fixable
        assert outcome.resolution.withdraw_ledger == "terra"
        plan = outcome.plan
        assert plan.correct_hash == CORRECT_ON_TERRA
        assert plan.wrong_hash == WRONG_ON_TERRA
        assert plan.dest_ledger_key == "evm-a"
        assert plan.dest_family == LedgerFamily.EVM
        assert plan.source_ledger_key == "terra"
        assert plan.src_chain == CHAIN_B
        assert plan.dest_chain == CHAIN_A
        assert plan.src_account == account_to_word(SENDER)
        assert plan.dest_account == account_to_word(RECEIVER)
        assert (plan.token, plan.amount, plan.nonce) == (ULUNA_WORD, AMOUNT, NONCE)
        assert plan.recipient is None
        assert plan.token_denom is None

    @pytest.mark.asyncio
    async def test_plan_reproduces_correct_hash(self, bridges):
        network, _, cosmos = bridges
        cosmos.add_deposit(CORRECT_ON_TERRA, CHAIN_A, SENDER, RECEIVER, nonce=NONCE)
        cosmos.add_withdraw(WRONG_ON_TERRA, CHAIN_A, RECEIVER, SENDER)
        async with ClientRegistry(transport=network.transport) as registry:
            plan = (await BrokenTransferPlanner(two_ledgers(registry)).detect_and_plan(WRONG_ON_TERRA)).plan
        recomputed = compute_transfer_hash(
            plan.src_chain, plan.dest_chain, plan.src_account, plan.dest_account,
            plan.token, plan.amount, plan.nonce,
        )
        assert recomputed == plan.correct_hash

    @pytest.mark.asyncio
    async def test_plan_towards_cosmos(self, bridges):
        network, evm, _ = bridges
        withdraw = withdraw_record("evm-a", CHAIN_B, CHAIN_A, RECEIVER, SENDER)
        correct = swapped_transfer_hash(withdraw, CHAIN_A)
        evm.add_deposit(correct, CHAIN_B, SENDER, RECEIVER)
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).plan(orphan(withdraw, "evm-a"))

        assert outcome.status == FixStatus.FIXABLE
        plan = outcome.plan
        assert plan.dest_ledger_key == "terra"
        assert plan.dest_family == LedgerFamily.COSMOS
        assert plan.src_chain == CHAIN_A
        assert plan.dest_chain == CHAIN_B
        assert plan.recipient == encode_bech32_account(RECEIVER, "terra")
        assert plan.token_denom == "uluna"

    @pytest.mark.asyncio
    async def test_wrong_chain_discovered_when_missing(self, bridges):
        network, evm, _ = bridges
        withdraw = withdraw_record("evm-a", CHAIN_B, None, RECEIVER, SENDER)
        evm.add_deposit(swapped_transfer_hash(withdraw, CHAIN_A), CHAIN_B, SENDER, RECEIVER)
        async with ClientRegistry(transport=network.transport) as registry:
            ledgers = build_ledgers(registry, [
                ledger_entry("evm-a", "evm", [EVM_URL]),
                ledger_entry("terra", "cosmos", [LCD_URL], chain_id="0x00000002"),
            ])
            outcome = await BrokenTransferPlanner(ledgers).plan(orphan(withdraw, "evm-a"))
        assert outcome.status == FixStatus.FIXABLE
        assert outcome.plan.src_chain == CHAIN_A


# ============================================================================
# Not fixable
# ============================================================================


class TestNotFixable:

    @pytest.mark.asyncio
    async def test_invalid_input(self, bridges):
        network, _, _ = bridges
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).detect_and_plan("0xnope")
        assert outcome.status == FixStatus.INVALID_INPUT
        assert outcome.plan is None

    @pytest.mark.asyncio
    async def test_nothing_found(self, bridges):
        network, _, _ = bridges
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).detect_and_plan(WRONG_ON_TERRA)
        assert outcome.status == FixStatus.NOT_BROKEN
        assert outcome.reason == "no pending withdraw for this hash"

    @pytest.mark.asyncio
    async def test_executed_withdraw(self, bridges):
        network, _, cosmos = bridges
        cosmos.add_withdraw(WRONG_ON_TERRA, CHAIN_A, RECEIVER, SENDER, executed=True)
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).detect_and_plan(WRONG_ON_TERRA)
        assert outcome.status == FixStatus.NOT_BROKEN
        assert outcome.reason == "withdraw already executed"

    @pytest.mark.asyncio
    async def test_matching_deposit_exists(self, bridges):
        network, evm, cosmos = bridges
        evm.add_deposit(scenario_hash(), CHAIN_B, RECEIVER, SENDER)
        cosmos.add_withdraw(scenario_hash(), CHAIN_A, RECEIVER, SENDER)
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).detect_and_plan(scenario_hash())
        assert outcome.status == FixStatus.NOT_BROKEN
        assert outcome.reason == "matching deposit exists"

    @pytest.mark.asyncio
    async def test_no_deposit_under_swapped_hash(self, bridges):
        network, _, cosmos = bridges
        cosmos.add_withdraw(WRONG_ON_TERRA, CHAIN_A, RECEIVER, SENDER)
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).detect_and_plan(WRONG_ON_TERRA)
        assert outcome.status == FixStatus.HYPOTHESIS_REJECTED
        assert "cannot determine fix" in outcome.reason
        assert bytes_to_hex(CORRECT_ON_TERRA) in outcome.reason
        assert outcome.plan is None

    @pytest.mark.asyncio
    async def test_unreachable_wrong_ledger(self, bridges):
        network, _, _ = bridges
        network.take_down(EVM_URL)
        withdraw = withdraw_record("evm-a", CHAIN_B, CHAIN_A, RECEIVER, SENDER)
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).plan(orphan(withdraw, "evm-a"))
        assert outcome.status == FixStatus.HYPOTHESIS_REJECTED
        assert outcome.reason.endswith("(ledger unreachable)")

    @pytest.mark.asyncio
    async def test_source_chain_not_configured(self, bridges):
        network, _, _ = bridges
        withdraw = withdraw_record("terra", 0x38, CHAIN_B, RECEIVER, SENDER)
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).plan(orphan(withdraw, "terra"))
        assert outcome.status == FixStatus.UNKNOWN_LEDGER
        assert "0x00000038" in outcome.reason

    @pytest.mark.asyncio
    async def test_withdraw_ledger_not_configured(self, bridges):
        network, _, _ = bridges
        withdraw = withdraw_record("gone", CHAIN_A, CHAIN_B, RECEIVER, SENDER)
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).plan(orphan(withdraw, "gone"))
        assert outcome.status == FixStatus.UNKNOWN_LEDGER

    @pytest.mark.asyncio
    async def test_source_is_withdraw_ledger(self, bridges):
        network, _, _ = bridges
        withdraw = withdraw_record("terra", CHAIN_B, CHAIN_B, RECEIVER, SENDER)
        async with ClientRegistry(transport=network.transport) as registry:
            outcome = await BrokenTransferPlanner(two_ledgers(registry)).plan(orphan(withdraw, "terra"))
        assert outcome.status == FixStatus.HYPOTHESIS_REJECTED
        assert network.requests == []
