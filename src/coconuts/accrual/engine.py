"""Accrual engine — computes young/brown balances and validates transfers.

Accrual model, for a citizen created at t0 with tree_count r:

    elapsed  = now - t0
    baseline = elapsed * r * rate_per_block
    brown    = max(0, baseline - maturation_window)
    young    = baseline - brown

The most recent maturation_window coconuts are always young; anything
older has matured to brown. Nothing about the split is stored: every
query recomputes it from (init_time, tree_count, now).

In TRANSFER_ADJUSTED mode the displayed young balance also moves with
transfers (young + received - sent). Brown is never affected by
transfers in either mode.

The engine is a pure calculator — no side effects. Loading and saving
records is handled by the ledger.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from coconuts.accrual.arithmetic import checked_add, checked_mul, checked_sub
from coconuts.config import BalanceMode, LedgerPolicy
from coconuts.errors import (
    ArithmeticOverflow,
    ClockRegression,
    InsufficientBalance,
    InvalidAmount,
)
from coconuts.models.citizen import U64_MAX, U128_MAX, Adjustments, Citizen


# Brown is counted one-for-one against baseline.
BROWN_RATE_NORMALIZED = 1


def validate_clock(now: int) -> int:
    if isinstance(now, bool) or not isinstance(now, int) or not (0 <= now <= U64_MAX):
        raise ArithmeticOverflow(f"Clock value out of u64 range: {now!r}")
    return now


def validate_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be an integer, got {amount!r}")
    if not (0 <= amount <= U128_MAX):
        raise InvalidAmount(f"Amount must be in [0, 2**128 - 1], got {amount}")
    return amount


class AccrualEngine:
    """Balance arithmetic for one ledger policy.

    Usage:
        engine = AccrualEngine(LedgerPolicy())
        citizen = engine.new_citizen(now=0)
        engine.young(citizen, now=5)   # 5
        engine.brown(citizen, now=15)  # 5
    """

    def __init__(self, policy: LedgerPolicy) -> None:
        self._policy = policy

    @property
    def policy(self) -> LedgerPolicy:
        return self._policy

    def new_citizen(self, now: int) -> Citizen:
        """Default constructor: created now, default tree count, zero adjustments."""
        return Citizen(
            init_time=validate_clock(now),
            tree_count=self._policy.default_tree_count,
            adjustments=Adjustments(sent=0, received=0),
        )

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def elapsed(self, citizen: Citizen, now: int) -> int:
        validate_clock(now)
        if now < citizen.init_time:
            raise ClockRegression(now, citizen.init_time)
        return now - citizen.init_time

    def baseline(self, citizen: Citizen, now: int) -> int:
        """Total coconuts accrued since creation, before the split."""
        per_tick = checked_mul(citizen.tree_count, self._policy.rate_per_block)
        return checked_mul(self.elapsed(citizen, now), per_tick)

    def brown(self, citizen: Citizen, now: int) -> int:
        """Matured coconuts: everything older than the maturation window."""
        matured = max(0, self.baseline(citizen, now) - self._policy.maturation_window)
        return checked_mul(matured, BROWN_RATE_NORMALIZED)

    def accrued_young(self, citizen: Citizen, now: int) -> int:
        """Young coconuts from accrual alone, ignoring transfers."""
        return checked_sub(self.baseline(citizen, now), self.brown(citizen, now))

    def young(self, citizen: Citizen, now: int) -> int:
        """Displayed young balance under the active balance mode."""
        accrued = self.accrued_young(citizen, now)
        if self._policy.balance_mode == BalanceMode.AUDIT_ONLY:
            return accrued
        adjustments = citizen.adjustments
        # received - sent can dip below zero only if the counters were corrupted
        return checked_sub(checked_add(accrued, adjustments.received), adjustments.sent)

    def total(self, citizen: Citizen, now: int) -> int:
        return checked_add(self.young(citizen, now), self.brown(citizen, now))

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def apply_transfer(
        self,
        sender: Citizen,
        recipient: Citizen,
        amount: int,
        now: int,
    ) -> Tuple[Citizen, Citizen]:
        """Validate a transfer and return the updated (sender, recipient).

        Nothing is written here. Every check runs before the new records
        are built, so a raised error means no state has changed.

        Raises:
            InvalidAmount: amount outside the u128 range.
            InsufficientBalance: amount exceeds the sender's young balance.
            ArithmeticOverflow: a counter would leave the u128 range.
        """
        validate_amount(amount)
        available = self.young(sender, now)
        if amount > available:
            raise InsufficientBalance(amount, available)

        new_received = checked_add(recipient.adjustments.received, amount)
        new_sent = checked_add(sender.adjustments.sent, amount)

        updated_sender = replace(
            sender,
            adjustments=replace(sender.adjustments, sent=new_sent),
        )
        updated_recipient = replace(
            recipient,
            adjustments=replace(recipient.adjustments, received=new_received),
        )
        return updated_sender, updated_recipient

    def apply_self_transfer(self, citizen: Citizen, amount: int, now: int) -> Citizen:
        """Self-transfer: both counter updates land on the one record."""
        validate_amount(amount)
        available = self.young(citizen, now)
        if amount > available:
            raise InsufficientBalance(amount, available)

        new_sent = checked_add(citizen.adjustments.sent, amount)
        new_received = checked_add(citizen.adjustments.received, amount)
        return replace(
            citizen,
            adjustments=Adjustments(sent=new_sent, received=new_received),
        )
