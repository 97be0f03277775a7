"""Manual clock — a monotonic tick counter driven by the host.

The ledger never reads a clock on its own; every operation receives the
current tick through a Context. ManualClock is the convenience used by
the CLI and tests to produce those contexts.
"""

from __future__ import annotations

from coconuts.errors import ArithmeticOverflow, ClockRegression
from coconuts.models.citizen import U64_MAX, Context


class ManualClock:
    """Monotonic non-negative integer counter.

    Usage:
        clock = ManualClock()
        clock.advance(5)
        service.transfer(clock.context("alice"), "bob", 3)
    """

    def __init__(self, start: int = 0) -> None:
        if not (0 <= start <= U64_MAX):
            raise ArithmeticOverflow(f"Clock start out of u64 range: {start}")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, ticks: int = 1) -> int:
        """Move the clock forward by ticks and return the new value."""
        if ticks < 0:
            raise ClockRegression(self._now + ticks, self._now)
        if self._now + ticks > U64_MAX:
            raise ArithmeticOverflow(f"Clock would exceed u64 range: {self._now} + {ticks}")
        self._now += ticks
        return self._now

    def set(self, now: int) -> None:
        """Jump to an absolute tick. Never backwards."""
        if now < self._now:
            raise ClockRegression(now, self._now)
        self.advance(now - self._now)

    def context(self, caller: str) -> Context:
        return Context(now=self._now, caller=caller)
