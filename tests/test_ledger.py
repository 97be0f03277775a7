"""Tests for the coconut ledger — proves queries and transfer atomicity.

Both balance modes are covered: AUDIT_ONLY (transfer counters are an
audit trail only) and TRANSFER_ADJUSTED (transfers move young coconuts).
"""

import pytest
from dataclasses import replace

from coconuts.config import BalanceMode, LedgerPolicy
from coconuts.errors import (
    ArithmeticOverflow,
    InsufficientBalance,
    InvalidAmount,
    RecipientNotRegistered,
    SenderNotRegistered,
    UnknownAccount,
)
from coconuts.ledger import CoconutLedger
from coconuts.models.citizen import U128_MAX, Adjustments


def _ledger(mode: BalanceMode = BalanceMode.TRANSFER_ADJUSTED) -> CoconutLedger:
    ledger = CoconutLedger(LedgerPolicy(balance_mode=mode))
    ledger.register("alice", now=0)
    ledger.register("bob", now=0)
    return ledger


def _counters(ledger: CoconutLedger, key: str) -> Adjustments:
    return ledger.store.load(ledger.citizen_id(key)).adjustments


class TestQueries:
    def test_concrete_balances(self) -> None:
        ledger = _ledger()
        assert (ledger.young_balance("alice", 1), ledger.brown_balance("alice", 1)) == (1, 0)
        assert (ledger.young_balance("alice", 11), ledger.brown_balance("alice", 11)) == (10, 1)
        assert (ledger.young_balance("alice", 20), ledger.brown_balance("alice", 20)) == (10, 10)
        assert ledger.total_balance("alice", 20) == 20

    def test_init_time(self) -> None:
        ledger = CoconutLedger()
        ledger.register("carol", now=17)
        assert ledger.init_time("carol") == 17

    def test_state_composite(self) -> None:
        ledger = _ledger()
        state = ledger.state("bob", 12)
        assert state.citizen_id == 1
        assert state.account_key == "bob"
        assert state.now == 12
        assert state.init_time == 0
        assert state.young_balance == 10
        assert state.brown_balance == 2
        assert state.total_balance == 12
        assert (state.sent, state.received) == (0, 0)

    def test_state_reports_key_as_given(self) -> None:
        ledger = CoconutLedger()
        ledger.register("alice", now=0)
        ledger.register("alice ", now=4)
        state = ledger.state("alice ", 6)
        assert state.account_key == "alice "
        assert state.citizen_id == 1
        assert state.init_time == 4
        assert ledger.init_time("alice") == 0

    def test_state_is_idempotent(self) -> None:
        ledger = _ledger()
        assert ledger.state("alice", 33) == ledger.state("alice", 33)

    @pytest.mark.parametrize(
        "query",
        ["young_balance", "brown_balance", "total_balance", "state"],
    )
    def test_unknown_account(self, query: str) -> None:
        ledger = _ledger()
        with pytest.raises(UnknownAccount):
            getattr(ledger, query)("nobody", 5)

    def test_init_time_unknown_account(self) -> None:
        with pytest.raises(UnknownAccount):
            _ledger().init_time("nobody")


class TestTransferCommon:
    @pytest.mark.parametrize("mode", list(BalanceMode))
    def test_transfer_updates_counters(self, mode: BalanceMode) -> None:
        ledger = _ledger(mode)
        assert ledger.young_balance("alice", 5) == 5
        receipt = ledger.transfer("alice", "bob", 3, now=5)
        assert receipt.sender_id == 0
        assert receipt.recipient_id == 1
        assert _counters(ledger, "alice").sent == 3
        assert _counters(ledger, "bob").received == 3

    @pytest.mark.parametrize("mode", list(BalanceMode))
    def test_insufficient_balance_leaves_counters(self, mode: BalanceMode) -> None:
        ledger = _ledger(mode)
        with pytest.raises(InsufficientBalance):
            ledger.transfer("alice", "bob", 6, now=5)
        assert _counters(ledger, "alice") == Adjustments(0, 0)
        assert _counters(ledger, "bob") == Adjustments(0, 0)

    def test_sender_not_registered(self) -> None:
        ledger = _ledger()
        with pytest.raises(SenderNotRegistered):
            ledger.transfer("mallory", "bob", 1, now=5)

    def test_recipient_not_registered(self) -> None:
        ledger = _ledger()
        with pytest.raises(RecipientNotRegistered):
            ledger.transfer("alice", "mallory", 1, now=5)
        assert _counters(ledger, "alice") == Adjustments(0, 0)

    def test_invalid_amount(self) -> None:
        ledger = _ledger()
        with pytest.raises(InvalidAmount):
            ledger.transfer("alice", "bob", -1, now=5)

    def test_zero_amount_is_allowed(self) -> None:
        ledger = _ledger()
        ledger.transfer("alice", "bob", 0, now=0)
        assert _counters(ledger, "alice") == Adjustments(0, 0)

    def test_received_overflow_leaves_both_records(self) -> None:
        ledger = _ledger()
        bob_id = ledger.citizen_id("bob")
        bob = ledger.store.load(bob_id)
        ledger.store.save(
            bob_id, replace(bob, adjustments=Adjustments(sent=0, received=U128_MAX)),
        )
        with pytest.raises(ArithmeticOverflow):
            ledger.transfer("alice", "bob", 1, now=5)
        assert _counters(ledger, "alice") == Adjustments(0, 0)
        assert _counters(ledger, "bob") == Adjustments(0, U128_MAX)

    def test_self_transfer(self) -> None:
        ledger = _ledger()
        ledger.transfer("alice", "alice", 4, now=5)
        assert _counters(ledger, "alice") == Adjustments(sent=4, received=4)
        assert ledger.young_balance("alice", 5) == 5


class TestAuditOnlyMode:
    def test_balances_unaffected_by_transfer(self) -> None:
        ledger = _ledger(BalanceMode.AUDIT_ONLY)
        ledger.transfer("alice", "bob", 3, now=5)
        assert ledger.young_balance("alice", 5) == 5
        assert ledger.young_balance("bob", 5) == 5

    def test_young_plus_brown_equals_baseline(self) -> None:
        ledger = _ledger(BalanceMode.AUDIT_ONLY)
        ledger.transfer("alice", "bob", 5, now=5)
        for now in (5, 11, 30):
            assert (
                ledger.young_balance("alice", now) + ledger.brown_balance("alice", now)
                == now
            )

    def test_repeat_transfers_not_limited_by_prior_sends(self) -> None:
        ledger = _ledger(BalanceMode.AUDIT_ONLY)
        ledger.transfer("alice", "bob", 5, now=5)
        ledger.transfer("alice", "bob", 5, now=5)
        assert _counters(ledger, "alice").sent == 10


class TestTransferAdjustedMode:
    def test_transfer_moves_young_coconuts(self) -> None:
        ledger = _ledger()
        ledger.transfer("alice", "bob", 3, now=5)
        assert ledger.young_balance("alice", 5) == 2
        assert ledger.young_balance("bob", 5) == 8

    def test_conservation(self) -> None:
        ledger = _ledger()
        ledger.transfer("alice", "bob", 3, now=5)
        ledger.transfer("bob", "alice", 1, now=9)
        for now in (9, 15, 40):
            total = ledger.total_balance("alice", now) + ledger.total_balance("bob", now)
            assert total == 2 * now

    def test_young_plus_brown_tracks_adjustments(self) -> None:
        ledger = _ledger()
        ledger.transfer("alice", "bob", 4, now=6)
        state = ledger.state("alice", 25)
        assert state.young_balance + state.brown_balance == 25 + state.received - state.sent

    def test_cannot_spend_twice(self) -> None:
        ledger = _ledger()
        ledger.transfer("alice", "bob", 5, now=5)
        with pytest.raises(InsufficientBalance):
            ledger.transfer("alice", "bob", 1, now=5)

    def test_brown_unaffected(self) -> None:
        ledger = _ledger()
        ledger.transfer("alice", "bob", 5, now=5)
        assert ledger.brown_balance("alice", 20) == 10
        assert ledger.brown_balance("bob", 20) == 10
