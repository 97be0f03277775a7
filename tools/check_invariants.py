#!/usr/bin/env python3
"""Coconuts invariant checks against the executable policy artifact."""

import sys
from pathlib import Path

from coconuts.invariants import check


ROOT = Path(__file__).resolve().parents[1]


if __name__ == "__main__":
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else ROOT / "config"
    raise SystemExit(check(config_dir))
