"""Policy invariant checks against the executable config artifact."""

from __future__ import annotations

import json
from pathlib import Path

from coconuts.config import POLICY_FILENAME, BalanceMode
from coconuts.models.citizen import U128_MAX


def check_policy_data(policy: dict) -> list[str]:
    """Return a list of invariant violations in a raw policy mapping."""
    errors: list[str] = []

    for name in ("rate_per_block", "maturation_window", "default_tree_count"):
        value = policy.get(name)
        if value is None:
            errors.append(f"{name} is missing")
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{name} must be an integer, got {value!r}")
            continue
        if value < 1:
            errors.append(f"{name} must be >= 1, got {value}")
        if value > U128_MAX:
            errors.append(f"{name} must fit in 128 bits")

    mode = policy.get("balance_mode")
    valid_modes = [m.value for m in BalanceMode]
    if mode not in valid_modes:
        errors.append(
            f"balance_mode must be one of {', '.join(valid_modes)}, got {mode!r}"
        )

    return errors


def check(config_dir: Path) -> int:
    path = config_dir / POLICY_FILENAME
    if not path.exists():
        print(f"Policy file not found: {path}")
        return 1
    with path.open("r", encoding="utf-8") as handle:
        policy = json.load(handle)

    errors = check_policy_data(policy)
    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"  - {err}")
        return 1

    print("Coconuts policy invariant checks passed.")
    return 0
