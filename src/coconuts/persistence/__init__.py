"""Persistence layer — citizen store, audit event log, state snapshots.

StateStore is imported from coconuts.persistence.state_store directly;
it depends on the ledger, which itself depends on CitizenStore.
"""

from coconuts.persistence.citizen_store import CitizenStore
from coconuts.persistence.event_log import EventKind, EventLog, EventRecord

__all__ = ["CitizenStore", "EventKind", "EventLog", "EventRecord"]
