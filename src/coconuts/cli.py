"""Coconuts CLI — command-line interface for the ledger.

The host supplies the caller and the clock value on every mutating or
time-dependent call:

Usage:
    python -m coconuts.cli status
    python -m coconuts.cli register --caller alice --now 0
    python -m coconuts.cli is-registered --account alice
    python -m coconuts.cli balance --account alice --now 12
    python -m coconuts.cli state --account alice --now 12
    python -m coconuts.cli transfer --caller alice --to bob --amount 3 --now 12
    python -m coconuts.cli events --kind coconuts_transferred --since 10 --actor alice
    python -m coconuts.cli check-invariants

Directories default to config/ and data/ at the repository root and can
be overridden with COCONUTS_CONFIG_DIR / COCONUTS_DATA_DIR, read from
the environment or a .env file.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path

from dotenv import load_dotenv

from coconuts.clock import ManualClock
from coconuts.config import LedgerPolicy
from coconuts.errors import CoconutError, UserError
from coconuts.invariants import check
from coconuts.models.citizen import Context
from coconuts.persistence.event_log import EventKind, EventLog
from coconuts.persistence.state_store import StateStore
from coconuts.service import CoconutService


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG = ROOT / "config"
DEFAULT_DATA = ROOT / "data"


def _make_service(config_dir: Path, data_dir: Path) -> CoconutService:
    """Create a CoconutService with durable persistence."""
    data_dir.mkdir(parents=True, exist_ok=True)
    policy = LedgerPolicy.from_config_dir(config_dir)
    event_log = EventLog(storage_path=data_dir / "events.jsonl")
    state_store = StateStore(storage_path=data_dir / "state.json")
    return CoconutService(policy, event_log=event_log, state_store=state_store)


def _context(now: int, caller: str) -> Context:
    """Build the call context from the --now tick. Out-of-range ticks raise."""
    return ManualClock(start=now).context(caller)


def _fail(message: str) -> int:
    print(f"Failed: {message}", file=sys.stderr)
    return 1


def cmd_status(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    print(json.dumps(service.status(), indent=2))
    return 0


def cmd_register(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    result = service.register_self(_context(args.now, args.caller))
    if result.success:
        print(f"Registered citizen {result.data['citizen_id']}: {result.data['account_key']}")
        return 0
    return _fail("; ".join(result.errors))


def cmd_is_registered(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    print(json.dumps(service.is_registered(args.account)))
    return 0


def cmd_balance(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    ctx = _context(args.now, args.account)
    try:
        balances = {
            "young": service.young_balance(args.account, ctx),
            "brown": service.brown_balance(args.account, ctx),
            "total": service.total_balance(args.account, ctx),
        }
    except UserError as e:
        return _fail(str(e))
    print(json.dumps(balances, indent=2))
    return 0


def cmd_state(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    try:
        state = service.state(args.account, _context(args.now, args.account))
    except UserError as e:
        return _fail(str(e))
    print(json.dumps(asdict(state), indent=2))
    return 0


def cmd_transfer(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    result = service.transfer(
        _context(args.now, args.caller), args.to, args.amount,
    )
    if result.success:
        print(json.dumps(result.data, indent=2))
        return 0
    return _fail("; ".join(result.errors))


def cmd_events(args: argparse.Namespace) -> int:
    service = _make_service(args.config, args.data)
    kind = EventKind(args.kind) if args.kind else None
    for event in service.events(kind, since_clock=args.since, actor_id=args.actor):
        print(json.dumps({
            "event_id": event.event_id,
            "event_kind": event.event_kind.value,
            "clock": event.clock,
            "actor_id": event.actor_id,
            "payload": event.payload,
        }, sort_keys=True))
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    """Run policy invariant checks."""
    return check(args.config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coconuts",
        description="Coconuts — time-accrual ledger CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(os.environ.get("COCONUTS_CONFIG_DIR", DEFAULT_CONFIG)),
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=Path(os.environ.get("COCONUTS_DATA_DIR", DEFAULT_DATA)),
        help="Path to data directory (default: data/)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show ledger status")

    # register
    p_reg = sub.add_parser("register", help="Register the caller as a citizen")
    p_reg.add_argument("--caller", required=True, help="Caller account key")
    p_reg.add_argument("--now", required=True, type=int, help="Current clock value")

    # is-registered
    p_is = sub.add_parser("is-registered", help="Check whether an account is registered")
    p_is.add_argument("--account", required=True, help="Account key")

    # balance
    p_bal = sub.add_parser("balance", help="Show young, brown and total balances")
    p_bal.add_argument("--account", required=True, help="Account key")
    p_bal.add_argument("--now", required=True, type=int, help="Current clock value")

    # state
    p_state = sub.add_parser("state", help="Show full citizen state")
    p_state.add_argument("--account", required=True, help="Account key")
    p_state.add_argument("--now", required=True, type=int, help="Current clock value")

    # transfer
    p_tx = sub.add_parser("transfer", help="Transfer young coconuts")
    p_tx.add_argument("--caller", required=True, help="Sender account key")
    p_tx.add_argument("--to", required=True, help="Recipient account key")
    p_tx.add_argument("--amount", required=True, type=int, help="Amount of young coconuts")
    p_tx.add_argument("--now", required=True, type=int, help="Current clock value")

    # events
    p_ev = sub.add_parser("events", help="List audit events")
    p_ev.add_argument("--kind", choices=[k.value for k in EventKind], help="Filter by kind")
    p_ev.add_argument("--since", type=int, help="Only events at or after this clock value")
    p_ev.add_argument("--actor", help="Only events made by this account key")

    # check-invariants
    sub.add_parser("check-invariants", help="Run policy invariant checks")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv(ROOT / ".env")
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "register": cmd_register,
        "is-registered": cmd_is_registered,
        "balance": cmd_balance,
        "state": cmd_state,
        "transfer": cmd_transfer,
        "events": cmd_events,
        "check-invariants": cmd_check_invariants,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except CoconutError as e:
        print(f"Ledger error ({e.code}): {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
