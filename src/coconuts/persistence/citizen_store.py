"""Citizen store — CitizenId to Citizen record.

The store knows nothing about account keys; the identity registry owns
that mapping. A missing id here means the two maps disagree, which is
corruption rather than a caller mistake.

Thread-safety: this class is not thread-safe. The caller must
synchronise access if used from multiple threads.
"""

from __future__ import annotations

from typing import Iterator, Tuple

from coconuts.errors import CorruptLedger
from coconuts.models.citizen import Citizen


class CitizenStore:

    def __init__(self) -> None:
        self._citizens: dict[int, Citizen] = {}

    def load(self, citizen_id: int) -> Citizen:
        """Return the record for citizen_id.

        Raises CorruptLedger if absent.
        """
        citizen = self._citizens.get(citizen_id)
        if citizen is None:
            raise CorruptLedger(f"Citizen record missing for id {citizen_id}")
        return citizen

    def save(self, citizen_id: int, citizen: Citizen) -> None:
        """Store citizen under citizen_id, replacing any previous record."""
        self._citizens[citizen_id] = citizen

    def contains(self, citizen_id: int) -> bool:
        return citizen_id in self._citizens

    def items(self) -> Iterator[Tuple[int, Citizen]]:
        """Yield (citizen_id, citizen) in ascending id order."""
        for citizen_id in sorted(self._citizens):
            yield citizen_id, self._citizens[citizen_id]

    @property
    def count(self) -> int:
        return len(self._citizens)
