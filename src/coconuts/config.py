"""Ledger policy — the tunable constants of the accrual model.

Policy is loaded from a JSON file in a config directory:

    policy = LedgerPolicy.from_config_dir(Path("config"))

Missing keys fall back to the defaults below. Invalid values are
rejected at load time; a ledger never runs with a policy it could not
validate.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from coconuts.models.citizen import U128_MAX


POLICY_FILENAME = "ledger_policy.json"


class BalanceMode(str, enum.Enum):
    """How transfer counters feed into the displayed young balance.

    AUDIT_ONLY: sent/received are an audit trail; young is pure accrual.
    TRANSFER_ADJUSTED: young = accrual young + received - sent.
    """
    AUDIT_ONLY = "audit_only"
    TRANSFER_ADJUSTED = "transfer_adjusted"


@dataclass(frozen=True)
class LedgerPolicy:
    rate_per_block: int = 1
    maturation_window: int = 10
    default_tree_count: int = 1
    balance_mode: BalanceMode = BalanceMode.TRANSFER_ADJUSTED

    def __post_init__(self) -> None:
        for name in ("rate_per_block", "maturation_window", "default_tree_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if not (1 <= value <= U128_MAX):
                raise ValueError(f"{name} must be in [1, 2**128 - 1], got {value}")
        if not isinstance(self.balance_mode, BalanceMode):
            raise ValueError(f"Unknown balance_mode: {self.balance_mode!r}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerPolicy:
        known = {"rate_per_block", "maturation_window", "default_tree_count", "balance_mode"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown policy keys: {', '.join(sorted(unknown))}")
        kwargs = dict(data)
        if "balance_mode" in kwargs:
            try:
                kwargs["balance_mode"] = BalanceMode(kwargs["balance_mode"])
            except ValueError:
                raise ValueError(f"Unknown balance_mode: {kwargs['balance_mode']!r}")
        return cls(**kwargs)

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> LedgerPolicy:
        """Load policy from config_dir/ledger_policy.json, or defaults if absent."""
        path = config_dir / POLICY_FILENAME
        if not path.exists():
            return cls()
        with path.open("r", encoding="utf-8") as handle:
            return cls.from_dict(json.load(handle))

    def to_dict(self) -> dict[str, Any]:
        return {
            "rate_per_block": self.rate_per_block,
            "maturation_window": self.maturation_window,
            "default_tree_count": self.default_tree_count,
            "balance_mode": self.balance_mode.value,
        }
