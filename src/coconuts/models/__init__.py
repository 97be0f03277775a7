"""Core data models for the coconuts ledger."""

from coconuts.models.citizen import (
    U64_MAX,
    U128_MAX,
    Adjustments,
    Citizen,
    CitizenState,
    Context,
    TransferReceipt,
)

__all__ = [
    "U64_MAX",
    "U128_MAX",
    "Adjustments",
    "Citizen",
    "CitizenState",
    "Context",
    "TransferReceipt",
]
