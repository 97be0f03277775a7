"""Coconuts: a time-accrual ledger with young and brown coconut tranches."""

from coconuts.config import BalanceMode, LedgerPolicy
from coconuts.ledger import CoconutLedger
from coconuts.models.citizen import Context

__version__ = "0.1.0"

__all__ = [
    "BalanceMode",
    "CoconutLedger",
    "Context",
    "LedgerPolicy",
]
