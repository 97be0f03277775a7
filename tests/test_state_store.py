"""Tests for the JSON state store — proves full-width persistence and fail-closed loading."""

import json
import pytest
from pathlib import Path

from coconuts.config import BalanceMode, LedgerPolicy
from coconuts.errors import CorruptLedger, PolicyMismatch
from coconuts.ledger import CoconutLedger
from coconuts.models.citizen import U64_MAX, U128_MAX
from coconuts.persistence.state_store import StateStore


def _saved_ledger(path: Path) -> CoconutLedger:
    ledger = CoconutLedger()
    ledger.register("alice", now=0)
    ledger.register("bob", now=3)
    ledger.transfer("alice", "bob", 4, now=5)
    StateStore(path).save_ledger(ledger)
    return ledger


class TestRoundTrip:
    def test_save_and_load(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        saved = _saved_ledger(path)

        restored = CoconutLedger()
        StateStore(path).load_ledger(restored)
        assert restored.registry.next_citizen_id == 2
        assert restored.citizen_id("bob") == 1
        assert restored.state("alice", 30) == saved.state("alice", 30)
        assert restored.state("bob", 30) == saved.state("bob", 30)

    def test_missing_file_is_empty_ledger(self, tmp_path: Path) -> None:
        ledger = CoconutLedger()
        StateStore(tmp_path / "absent.json").load_ledger(ledger)
        assert ledger.registry.count == 0

    def test_full_width_values_preserved(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        _saved_ledger(path)
        data = json.loads(path.read_text())
        data["citizens"]["0"]["adjustments"]["sent"] = U128_MAX
        data["citizens"]["0"]["init_time"] = U64_MAX
        path.write_text(json.dumps(data))

        ledger = CoconutLedger()
        StateStore(path).load_ledger(ledger)
        citizen = ledger.store.load(0)
        assert citizen.adjustments.sent == U128_MAX
        assert citizen.init_time == U64_MAX

    def test_no_temp_file_left_behind(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        _saved_ledger(path)
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


class TestCorruption:
    def _corrupt(self, tmp_path: Path, mutate) -> Path:
        path = tmp_path / "state.json"
        _saved_ledger(path)
        data = json.loads(path.read_text())
        mutate(data)
        path.write_text(json.dumps(data))
        return path

    def _assert_corrupt(self, path: Path) -> None:
        with pytest.raises(CorruptLedger):
            StateStore(path).load_ledger(CoconutLedger())

    def test_dangling_account(self, tmp_path: Path) -> None:
        self._assert_corrupt(self._corrupt(
            tmp_path, lambda d: d["citizens"].pop("1"),
        ))

    def test_orphan_citizen(self, tmp_path: Path) -> None:
        self._assert_corrupt(self._corrupt(
            tmp_path, lambda d: d["accounts"].pop("bob"),
        ))

    def test_two_keys_one_citizen(self, tmp_path: Path) -> None:
        self._assert_corrupt(self._corrupt(
            tmp_path, lambda d: d["accounts"].update({"bob": 0}),
        ))

    def test_counter_behind_ids(self, tmp_path: Path) -> None:
        self._assert_corrupt(self._corrupt(
            tmp_path, lambda d: d.update({"next_citizen_id": 1}),
        ))

    def test_over_width_counter(self, tmp_path: Path) -> None:
        self._assert_corrupt(self._corrupt(
            tmp_path,
            lambda d: d["citizens"]["0"]["adjustments"].update({"sent": U128_MAX + 1}),
        ))

    def test_negative_init_time(self, tmp_path: Path) -> None:
        self._assert_corrupt(self._corrupt(
            tmp_path, lambda d: d["citizens"]["0"].update({"init_time": -1}),
        ))

    def test_not_json(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text("{not json")
        self._assert_corrupt(path)

    def test_missing_policy(self, tmp_path: Path) -> None:
        self._assert_corrupt(self._corrupt(
            tmp_path, lambda d: d.pop("policy"),
        ))


class TestPolicyBinding:
    def test_policy_written(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        _saved_ledger(path)
        assert json.loads(path.read_text())["policy"] == LedgerPolicy().to_dict()

    def test_audit_only_counters_rejected_under_adjusted_mode(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        ledger = CoconutLedger(LedgerPolicy(balance_mode=BalanceMode.AUDIT_ONLY))
        ledger.register("alice", now=0)
        ledger.register("bob", now=0)
        ledger.transfer("alice", "bob", 5, now=5)
        ledger.transfer("alice", "bob", 5, now=5)
        StateStore(path).save_ledger(ledger)

        restored = CoconutLedger()
        with pytest.raises(PolicyMismatch) as exc_info:
            StateStore(path).load_ledger(restored)
        assert exc_info.value.differing == ["balance_mode"]
        assert exc_info.value.code == "policy_mismatch"
        assert restored.registry.count == 0

    def test_shorter_window_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        ledger = CoconutLedger()
        ledger.register("alice", now=0)
        ledger.register("bob", now=0)
        ledger.transfer("alice", "bob", 10, now=10)
        StateStore(path).save_ledger(ledger)

        with pytest.raises(PolicyMismatch, match="maturation_window"):
            StateStore(path).load_ledger(CoconutLedger(LedgerPolicy(maturation_window=5)))

    def test_matching_policy_loads(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        policy = LedgerPolicy(maturation_window=5, balance_mode=BalanceMode.AUDIT_ONLY)
        ledger = CoconutLedger(policy)
        ledger.register("alice", now=0)
        StateStore(path).save_ledger(ledger)

        restored = CoconutLedger(policy)
        StateStore(path).load_ledger(restored)
        assert restored.young_balance("alice", 20) == 5
