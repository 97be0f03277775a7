"""Citizen models — the accrual record, its transfer counters, and query views.

All integers are unbounded Python ints. Width limits are enforced by the
checked arithmetic in coconuts.accrual.arithmetic, not by the types:
- CitizenId and init_time are u64.
- tree_count, sent and received are u128.

Records are frozen. Updates produce a new record via dataclasses.replace,
so a validation failure part-way through a transfer can never leave a
half-updated record behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field


U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1


@dataclass(frozen=True)
class Adjustments:
    """Cumulative young-tranche transfer volume. Never decreases."""
    sent: int = 0
    received: int = 0


@dataclass(frozen=True)
class Citizen:
    """A citizen's accrual state.

    Only init_time and tree_count drive accrual. Balances are never
    stored; they are recomputed from these fields and the clock.
    """
    init_time: int
    tree_count: int = 1
    adjustments: Adjustments = field(default_factory=Adjustments)


@dataclass(frozen=True)
class Context:
    """Per-call execution context supplied by the host.

    The clock value is fixed for the whole operation.
    """
    now: int
    caller: str


@dataclass(frozen=True)
class CitizenState:
    """Composite read-only view of a citizen at a given clock value."""
    citizen_id: int
    account_key: str
    init_time: int
    now: int
    tree_count: int
    young_balance: int
    brown_balance: int
    total_balance: int
    sent: int
    received: int


@dataclass(frozen=True)
class TransferReceipt:
    """Outcome of a successful transfer."""
    sender_id: int
    recipient_id: int
    amount: int
    now: int
    sender_sent: int
    recipient_received: int
