"""Coconut service — unified facade for the ledger.

This is the primary interface for programmatic access. It wraps the
core ledger with:
- Caller context (clock value and caller key supplied per call)
- Typed results for mutations (ServiceResult)
- Audit trail (append-only event log)
- Durable state (JSON state store)
- Logging

Mutations return a ServiceResult. Caller-correctable failures
(UserError) come back as a failed result carrying the error code.
Invariant violations propagate as exceptions: they mean the ledger
cannot safely continue the operation.

Audit-trail events are never silently dropped. If the event cannot be
appended, the in-memory mutation is rolled back and the operation
fails. If the state file cannot be written after the event is durable,
in-memory state is kept (it matches the audit trail) and the service
flags persistence as degraded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from coconuts.config import LedgerPolicy
from coconuts.errors import UserError
from coconuts.identity.registry import validate_key
from coconuts.ledger import CoconutLedger
from coconuts.models.citizen import Citizen, CitizenState, Context
from coconuts.persistence.event_log import EventKind, EventLog, EventRecord
from coconuts.persistence.state_store import StateStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_code: Optional[str] = None


def _failure(exc: UserError) -> ServiceResult:
    return ServiceResult(success=False, errors=[str(exc)], error_code=exc.code)


class CoconutService:
    """Ledger facade.

    Usage:
        service = CoconutService(LedgerPolicy())
        service.register_self(Context(now=0, caller="alice"))
        service.register_self(Context(now=0, caller="bob"))

        service.young_balance("alice", Context(now=5, caller="alice"))  # 5
        result = service.transfer(Context(now=5, caller="alice"), "bob", 3)

    Persistence (optional):
        service = CoconutService(policy, event_log=log, state_store=store)
        # State is loaded on construction and persisted on each mutation.
    """

    def __init__(
        self,
        policy: Optional[LedgerPolicy] = None,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        self._ledger = CoconutLedger(policy)
        self._event_log = event_log
        self._state_store = state_store

        if state_store is not None:
            state_store.load_ledger(self._ledger)

        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = event_log.count if event_log is not None else 0

        # Set when a state write fails after the audit event is durable.
        self._persistence_degraded: bool = False

    @property
    def ledger(self) -> CoconutLedger:
        return self._ledger

    @property
    def policy(self) -> LedgerPolicy:
        return self._ledger.policy

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_self(self, ctx: Context) -> ServiceResult:
        """Register the calling account as a new citizen."""
        try:
            citizen_id = self._ledger.register(ctx.caller, ctx.now)
        except UserError as e:
            logger.warning("Registration rejected for %r: %s", ctx.caller, e)
            return _failure(e)

        key = validate_key(ctx.caller)
        registry = self._ledger.registry

        def _rollback() -> None:
            registry._accounts.pop(key, None)
            self._ledger.store._citizens.pop(citizen_id, None)
            registry._next_citizen_id = citizen_id

        err, warning = self._commit(
            EventKind.CITIZEN_REGISTERED,
            actor_id=key,
            payload={"citizen_id": citizen_id, "init_time": ctx.now},
            now=ctx.now,
            on_rollback=_rollback,
        )
        if err:
            return ServiceResult(success=False, errors=[err], error_code="commit_failed")

        logger.info("Registered citizen %d for %r at t=%d", citizen_id, key, ctx.now)
        data: dict[str, Any] = {
            "citizen_id": citizen_id,
            "account_key": key,
            "init_time": ctx.now,
        }
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    def caller_is_registered(self, ctx: Context) -> bool:
        return self._ledger.is_registered(ctx.caller)

    def is_registered(self, account_key: str) -> bool:
        return self._ledger.is_registered(account_key)

    # ------------------------------------------------------------------
    # Queries (raise UnknownAccount for unregistered keys)
    # ------------------------------------------------------------------

    def young_balance(self, account_key: str, ctx: Context) -> int:
        return self._ledger.young_balance(account_key, ctx.now)

    def brown_balance(self, account_key: str, ctx: Context) -> int:
        return self._ledger.brown_balance(account_key, ctx.now)

    def total_balance(self, account_key: str, ctx: Context) -> int:
        return self._ledger.total_balance(account_key, ctx.now)

    def init_time(self, account_key: str) -> int:
        return self._ledger.init_time(account_key)

    def state(self, account_key: str, ctx: Context) -> CitizenState:
        return self._ledger.state(account_key, ctx.now)

    # ------------------------------------------------------------------
    # Transfer
    # ------------------------------------------------------------------

    def transfer(self, ctx: Context, to_key: str, amount: int) -> ServiceResult:
        """Transfer young coconuts from the caller to to_key."""
        registry = self._ledger.registry
        store = self._ledger.store

        # Snapshot for rollback
        prior: dict[int, Citizen] = {}
        for key in (ctx.caller, to_key):
            cid = registry.find(key)
            if cid is not None and store.contains(cid):
                prior[cid] = store.load(cid)

        try:
            receipt = self._ledger.transfer(ctx.caller, to_key, amount, ctx.now)
        except UserError as e:
            logger.warning(
                "Transfer of %r from %r to %r rejected: %s",
                amount, ctx.caller, to_key, e,
            )
            return _failure(e)

        def _rollback() -> None:
            for cid, citizen in prior.items():
                store.save(cid, citizen)

        payload = {
            "sender_id": receipt.sender_id,
            "recipient_id": receipt.recipient_id,
            "amount": receipt.amount,
        }
        err, warning = self._commit(
            EventKind.COCONUTS_TRANSFERRED,
            actor_id=validate_key(ctx.caller),
            payload=payload,
            now=ctx.now,
            on_rollback=_rollback,
        )
        if err:
            return ServiceResult(success=False, errors=[err], error_code="commit_failed")

        logger.info(
            "Transferred %d coconuts from citizen %d to citizen %d at t=%d",
            receipt.amount, receipt.sender_id, receipt.recipient_id, ctx.now,
        )
        data: dict[str, Any] = {
            **payload,
            "now": receipt.now,
            "sender_sent": receipt.sender_sent,
            "recipient_received": receipt.recipient_received,
        }
        if warning:
            data["warning"] = warning
        return ServiceResult(success=True, data=data)

    # ------------------------------------------------------------------
    # Status and audit
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Return ledger-wide status summary."""
        return {
            "version": "0.1.0",
            "policy": self.policy.to_dict(),
            "citizens": {
                "total": self._ledger.registry.count,
                "next_citizen_id": self._ledger.registry.next_citizen_id,
            },
            "events": self._event_log.count if self._event_log is not None else 0,
            "persistence_degraded": self._persistence_degraded,
        }

    def events(
        self,
        kind: Optional[EventKind] = None,
        since_clock: Optional[int] = None,
        actor_id: Optional[str] = None,
    ) -> list[EventRecord]:
        if self._event_log is None:
            return []
        return self._event_log.events(kind, since_clock=since_clock, actor_id=actor_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _commit(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        now: int,
        on_rollback: Callable[[], None],
    ) -> tuple[Optional[str], Optional[str]]:
        """Record the audit event, then persist. Returns (error, warning).

        Without an event log there is no durable audit record yet, so a
        persist failure rolls back. With an event log, the event is
        appended first; a later persist failure only degrades.
        """
        if self._event_log is None:
            return self._safe_persist(on_rollback=on_rollback), None

        err = self._record_event(kind, actor_id, payload, now)
        if err:
            on_rollback()
            logger.error("Rolled back %s: %s", kind.value, err)
            return err, None
        return None, self._safe_persist_post_audit()

    def _record_event(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        now: int,
    ) -> Optional[str]:
        """Append an audit event. Returns error string or None."""
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                clock=now,
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            return f"Event log failure: {e}"
        return None

    def _persist_state(self) -> None:
        """Persist current state to the state store (if wired).

        NOTE: This method can raise OSError. Mutators should use
        _safe_persist() or _safe_persist_post_audit() instead.
        """
        if self._state_store is None:
            return
        self._state_store.save_ledger(self._ledger)

    def _safe_persist(
        self,
        on_rollback: Optional[Callable[[], None]] = None,
    ) -> Optional[str]:
        """Persist state with fail-closed error handling (pre-audit mode).

        On failure, runs the rollback callback and returns an error
        string. On success, returns None.
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            if on_rollback is not None:
                on_rollback()
            logger.error("Persistence failure, mutation rolled back: %s", e)
            return f"Persistence failure: {e}"

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after the audit event has been committed.

        MUST NOT rollback in-memory state: the audit trail is already
        durable. On failure, sets _persistence_degraded and returns a
        warning string.
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            self._persistence_degraded = True
            logger.error("Persistence degraded: %s", e)
            return f"Persistence degraded: {e}; state committed in audit trail but state store is stale"
