"""Identity registry — maps external account keys to citizen ids.

The registry is the only place new citizens come from. Registration:
1. Rejects blank or already-mapped keys. Keys are stored exactly as given.
2. Checks the id counter has room (u64) before writing anything.
3. Builds the citizen through the accrual engine's default constructor.
4. Saves the record, records the mapping, advances the counter.

Ids are never reused. There is no detach operation, so every id in the
citizen store has exactly one key pointing at it.

Keeping key -> id and id -> record as separate maps leaves room for
key rotation or several keys per citizen later without touching the
citizen store.
"""

from __future__ import annotations

from typing import Iterator, Optional, Tuple

from coconuts.accrual.engine import AccrualEngine
from coconuts.errors import (
    AlreadyRegistered,
    IdSpaceExhausted,
    InvalidAccountKey,
    UnknownAccount,
)
from coconuts.models.citizen import U64_MAX
from coconuts.persistence.citizen_store import CitizenStore


def validate_key(account_key: str) -> str:
    """Return account_key unchanged; reject non-strings and blank keys.

    Keys are opaque: "alice" and "alice " are different accounts.
    """
    if not isinstance(account_key, str):
        raise InvalidAccountKey(f"Account key must be a string, got {account_key!r}")
    if not account_key.strip():
        raise InvalidAccountKey("Account key must not be blank")
    return account_key


class IdentityRegistry:
    """Registry of account keys and the citizen ids they point to.

    Thread-safety: this class is not thread-safe. The caller must
    synchronise access if used from multiple threads.
    """

    def __init__(
        self,
        store: CitizenStore,
        engine: AccrualEngine,
        next_citizen_id: int = 0,
    ) -> None:
        self._store = store
        self._engine = engine
        self._accounts: dict[str, int] = {}
        self._next_citizen_id = next_citizen_id

    def is_registered(self, account_key: str) -> bool:
        try:
            return validate_key(account_key) in self._accounts
        except InvalidAccountKey:
            return False

    def register(self, account_key: str, now: int) -> int:
        """Register account_key and create its citizen record.

        Raises:
            InvalidAccountKey: key is blank.
            AlreadyRegistered: key is already mapped.
            IdSpaceExhausted: the u64 id counter is at its maximum.
        """
        key = validate_key(account_key)
        if key in self._accounts:
            raise AlreadyRegistered(key)
        citizen_id = self._next_citizen_id
        if citizen_id >= U64_MAX:
            raise IdSpaceExhausted(f"Citizen id counter exhausted at {citizen_id}")

        citizen = self._engine.new_citizen(now)
        self._store.save(citizen_id, citizen)
        self._accounts[key] = citizen_id
        self._next_citizen_id = citizen_id + 1
        return citizen_id

    def resolve(self, account_key: str) -> int:
        """Return the citizen id for account_key.

        Raises UnknownAccount if the key is not registered.
        """
        key = validate_key(account_key)
        citizen_id = self._accounts.get(key)
        if citizen_id is None:
            raise UnknownAccount(key)
        return citizen_id

    def find(self, account_key: str) -> Optional[int]:
        """Return the citizen id for account_key, or None."""
        try:
            return self.resolve(account_key)
        except (UnknownAccount, InvalidAccountKey):
            return None

    def restore(self, accounts: dict[str, int], next_citizen_id: int) -> None:
        """Replace the mapping wholesale. Used when loading persisted state."""
        self._accounts = dict(accounts)
        self._next_citizen_id = next_citizen_id

    def items(self) -> Iterator[Tuple[str, int]]:
        """Yield (account_key, citizen_id) in ascending id order."""
        for key, citizen_id in sorted(self._accounts.items(), key=lambda kv: kv[1]):
            yield key, citizen_id

    @property
    def next_citizen_id(self) -> int:
        return self._next_citizen_id

    @property
    def count(self) -> int:
        return len(self._accounts)
