"""State store — durable snapshot of the ledger's two maps and id counter.

Layout of the JSON file:

    {
      "format": 1,
      "policy": {"rate_per_block": ..., "maturation_window": ...,
                 "default_tree_count": ..., "balance_mode": ...},
      "next_citizen_id": <u64>,
      "accounts": {"<account key>": <citizen id>, ...},
      "citizens": {
        "<citizen id>": {
          "init_time": <u64>,
          "tree_count": <u128>,
          "adjustments": {"sent": <u128>, "received": <u128>}
        }, ...
      }
    }

Integers are written as JSON integers, which Python reads back at full
width. Writes go to a temp file that is then renamed over the target,
so a crash mid-write leaves the previous snapshot intact.

Loading is fail-closed: any width violation, dangling id, or broken
1:1 mapping raises CorruptLedger. The sent/received counters only mean
something under the policy they were accumulated with, so a snapshot
whose policy differs from the running ledger's raises PolicyMismatch.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from coconuts.errors import CorruptLedger, PolicyMismatch
from coconuts.ledger import CoconutLedger
from coconuts.models.citizen import U64_MAX, U128_MAX, Adjustments, Citizen


logger = logging.getLogger(__name__)

STATE_FORMAT = 1


def _check_int(value: Any, limit: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not (0 <= value <= limit):
        raise CorruptLedger(f"{what} out of range: {value!r}")
    return value


def _check_policy(stored: Any, active: dict[str, Any]) -> None:
    if not isinstance(stored, dict):
        raise CorruptLedger(f"State file has no ledger policy: {stored!r}")
    differing = sorted(
        key for key in set(stored) | set(active)
        if stored.get(key) != active.get(key)
    )
    if differing:
        raise PolicyMismatch(differing)


class StateStore:
    """JSON-file persistence for a CoconutLedger."""

    def __init__(self, storage_path: Path) -> None:
        self._storage_path = storage_path

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def exists(self) -> bool:
        return self._storage_path.exists()

    def save_ledger(self, ledger: CoconutLedger) -> None:
        """Write the ledger snapshot. Raises OSError on I/O failure."""
        data = {
            "format": STATE_FORMAT,
            "policy": ledger.policy.to_dict(),
            "next_citizen_id": ledger.registry.next_citizen_id,
            "accounts": {key: cid for key, cid in ledger.registry.items()},
            "citizens": {
                str(cid): {
                    "init_time": citizen.init_time,
                    "tree_count": citizen.tree_count,
                    "adjustments": {
                        "sent": citizen.adjustments.sent,
                        "received": citizen.adjustments.received,
                    },
                }
                for cid, citizen in ledger.store.items()
            },
        }
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._storage_path.with_suffix(self._storage_path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, sort_keys=True, indent=2)
        os.replace(tmp_path, self._storage_path)
        logger.debug("Saved ledger snapshot to %s", self._storage_path)

    def load_ledger(self, ledger: CoconutLedger) -> None:
        """Populate an empty ledger from the snapshot file, if present."""
        if not self.exists():
            return
        with self._storage_path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise CorruptLedger(f"State file is not valid JSON: {e}") from e

        if data.get("format") != STATE_FORMAT:
            raise CorruptLedger(f"Unsupported state format: {data.get('format')!r}")

        _check_policy(data.get("policy"), ledger.policy.to_dict())

        next_id = _check_int(data.get("next_citizen_id"), U64_MAX, "next_citizen_id")

        citizens: dict[int, Citizen] = {}
        for raw_id, raw in data.get("citizens", {}).items():
            try:
                cid = int(raw_id)
            except ValueError:
                raise CorruptLedger(f"Citizen id is not an integer: {raw_id!r}")
            _check_int(cid, U64_MAX, "citizen id")
            if cid >= next_id:
                raise CorruptLedger(f"Citizen id {cid} not below next_citizen_id {next_id}")
            try:
                adjustments = raw["adjustments"]
                citizens[cid] = Citizen(
                    init_time=_check_int(raw["init_time"], U64_MAX, "init_time"),
                    tree_count=_check_int(raw["tree_count"], U128_MAX, "tree_count"),
                    adjustments=Adjustments(
                        sent=_check_int(adjustments["sent"], U128_MAX, "sent"),
                        received=_check_int(adjustments["received"], U128_MAX, "received"),
                    ),
                )
            except (KeyError, TypeError) as e:
                raise CorruptLedger(f"Malformed citizen record {raw_id}: {e}") from e
            if citizens[cid].tree_count == 0:
                raise CorruptLedger(f"Citizen {cid} has zero tree_count")

        accounts: dict[str, int] = {}
        seen_ids: set[int] = set()
        for key, cid in data.get("accounts", {}).items():
            _check_int(cid, U64_MAX, "citizen id")
            if cid not in citizens:
                raise CorruptLedger(f"Account {key} points at missing citizen {cid}")
            if cid in seen_ids:
                raise CorruptLedger(f"Citizen {cid} is mapped by more than one account")
            seen_ids.add(cid)
            accounts[key] = cid

        orphans = set(citizens) - seen_ids
        if orphans:
            raise CorruptLedger(
                f"Citizens with no account key: {', '.join(str(c) for c in sorted(orphans))}"
            )

        for cid, citizen in citizens.items():
            ledger.store.save(cid, citizen)
        ledger.registry.restore(accounts, next_id)
        logger.info(
            "Loaded %d citizens from %s", len(citizens), self._storage_path,
        )
