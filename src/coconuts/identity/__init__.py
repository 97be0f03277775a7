"""Identity subsystem — account key to citizen id indirection."""

from coconuts.identity.registry import IdentityRegistry

__all__ = ["IdentityRegistry"]
