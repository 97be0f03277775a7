"""Coconut ledger — the core operations over registry, store and engine.

Every operation takes the clock value explicitly. Errors are raised as
typed exceptions from coconuts.errors; turning them into caller-facing
results is the service layer's job.

Transfer protocol:
1. Resolve sender and recipient (SenderNotRegistered / RecipientNotRegistered).
2. Load both records (once, for a self-transfer).
3. Validate and build the updated records in the engine.
4. Save.

Steps 1-3 write nothing, so any failure leaves the store untouched.
"""

from __future__ import annotations

from typing import Optional

from coconuts.accrual.engine import AccrualEngine, validate_amount
from coconuts.config import LedgerPolicy
from coconuts.errors import (
    RecipientNotRegistered,
    SenderNotRegistered,
    UnknownAccount,
)
from coconuts.identity.registry import IdentityRegistry, validate_key
from coconuts.models.citizen import CitizenState, TransferReceipt
from coconuts.persistence.citizen_store import CitizenStore


class CoconutLedger:
    """Accrual ledger for one policy.

    Usage:
        ledger = CoconutLedger(LedgerPolicy())
        ledger.register("alice", now=0)
        ledger.register("bob", now=0)
        ledger.young_balance("alice", now=5)   # 5
        ledger.transfer("alice", "bob", 3, now=5)
    """

    def __init__(
        self,
        policy: Optional[LedgerPolicy] = None,
        store: Optional[CitizenStore] = None,
    ) -> None:
        self.engine = AccrualEngine(policy or LedgerPolicy())
        self.store = store if store is not None else CitizenStore()
        self.registry = IdentityRegistry(self.store, self.engine)

    @property
    def policy(self) -> LedgerPolicy:
        return self.engine.policy

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def is_registered(self, account_key: str) -> bool:
        return self.registry.is_registered(account_key)

    def register(self, account_key: str, now: int) -> int:
        return self.registry.register(account_key, now)

    def citizen_id(self, account_key: str) -> int:
        return self.registry.resolve(account_key)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def young_balance(self, account_key: str, now: int) -> int:
        citizen = self.store.load(self.registry.resolve(account_key))
        return self.engine.young(citizen, now)

    def brown_balance(self, account_key: str, now: int) -> int:
        citizen = self.store.load(self.registry.resolve(account_key))
        return self.engine.brown(citizen, now)

    def total_balance(self, account_key: str, now: int) -> int:
        citizen = self.store.load(self.registry.resolve(account_key))
        return self.engine.total(citizen, now)

    def init_time(self, account_key: str) -> int:
        return self.store.load(self.registry.resolve(account_key)).init_time

    def state(self, account_key: str, now: int) -> CitizenState:
        key = validate_key(account_key)
        citizen_id = self.registry.resolve(key)
        citizen = self.store.load(citizen_id)
        young = self.engine.young(citizen, now)
        brown = self.engine.brown(citizen, now)
        return CitizenState(
            citizen_id=citizen_id,
            account_key=key,
            init_time=citizen.init_time,
            now=now,
            tree_count=citizen.tree_count,
            young_balance=young,
            brown_balance=brown,
            total_balance=self.engine.total(citizen, now),
            sent=citizen.adjustments.sent,
            received=citizen.adjustments.received,
        )

    # ------------------------------------------------------------------
    # Transfer
    # ------------------------------------------------------------------

    def transfer(
        self,
        from_key: str,
        to_key: str,
        amount: int,
        now: int,
    ) -> TransferReceipt:
        """Move amount young coconuts from from_key to to_key.

        Either both records are saved or neither is.
        """
        validate_amount(amount)
        try:
            sender_id = self.registry.resolve(from_key)
        except UnknownAccount as e:
            raise SenderNotRegistered(e.account_key) from e
        try:
            recipient_id = self.registry.resolve(to_key)
        except UnknownAccount as e:
            raise RecipientNotRegistered(e.account_key) from e

        if sender_id == recipient_id:
            citizen = self.store.load(sender_id)
            updated = self.engine.apply_self_transfer(citizen, amount, now)
            self.store.save(sender_id, updated)
            return TransferReceipt(
                sender_id=sender_id,
                recipient_id=recipient_id,
                amount=amount,
                now=now,
                sender_sent=updated.adjustments.sent,
                recipient_received=updated.adjustments.received,
            )

        sender = self.store.load(sender_id)
        recipient = self.store.load(recipient_id)
        new_sender, new_recipient = self.engine.apply_transfer(
            sender, recipient, amount, now,
        )
        self.store.save(sender_id, new_sender)
        self.store.save(recipient_id, new_recipient)
        return TransferReceipt(
            sender_id=sender_id,
            recipient_id=recipient_id,
            amount=amount,
            now=now,
            sender_sent=new_sender.adjustments.sent,
            recipient_received=new_recipient.adjustments.received,
        )
