"""Tests for the manual clock."""

import pytest

from coconuts.clock import ManualClock
from coconuts.errors import ArithmeticOverflow, ClockRegression
from coconuts.models.citizen import U64_MAX


class TestManualClock:
    def test_advance_and_context(self) -> None:
        clock = ManualClock()
        assert clock.advance(3) == 3
        ctx = clock.context("alice")
        assert (ctx.now, ctx.caller) == (3, "alice")

    def test_never_regresses(self) -> None:
        clock = ManualClock(start=5)
        with pytest.raises(ClockRegression):
            clock.set(4)
        with pytest.raises(ClockRegression):
            clock.advance(-1)
        assert clock.now() == 5

    def test_u64_bound(self) -> None:
        clock = ManualClock(start=U64_MAX)
        with pytest.raises(ArithmeticOverflow):
            clock.advance(1)
        with pytest.raises(ArithmeticOverflow):
            ManualClock(start=-1)
