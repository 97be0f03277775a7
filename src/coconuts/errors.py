"""Error taxonomy for the coconuts ledger.

Two families, split by who can fix the problem:

- UserError: the caller asked for something the ledger refuses
  (unknown account, insufficient balance, ...). Surfaced verbatim,
  never retried.
- InvariantViolation: the ledger itself would become inconsistent
  (overflow, exhausted id space, corrupt store, clock regression).
  Fatal for the current operation.

Every error carries a stable snake_case ``code`` so that service
results and CLI output can report the failure kind without parsing
messages.
"""

from __future__ import annotations


class CoconutError(Exception):
    """Base class for all ledger errors."""
    code = "coconut_error"


class UserError(CoconutError, ValueError):
    """Caller-correctable failure."""
    code = "user_error"


class InvariantViolation(CoconutError, RuntimeError):
    """Internal-consistency failure. The operation aborts with no writes."""
    code = "invariant_violation"


# ----------------------------------------------------------------------
# User errors
# ----------------------------------------------------------------------

class AlreadyRegistered(UserError):
    code = "already_registered"

    def __init__(self, account_key: str) -> None:
        super().__init__(f"Account already registered: {account_key}")
        self.account_key = account_key


class UnknownAccount(UserError):
    code = "unknown_account"

    def __init__(self, account_key: str) -> None:
        super().__init__(f"Account not registered: {account_key}")
        self.account_key = account_key


class SenderNotRegistered(UserError):
    code = "sender_not_registered"

    def __init__(self, account_key: str) -> None:
        super().__init__(f"Sender not registered: {account_key}")
        self.account_key = account_key


class RecipientNotRegistered(UserError):
    code = "recipient_not_registered"

    def __init__(self, account_key: str) -> None:
        super().__init__(f"Recipient not registered: {account_key}")
        self.account_key = account_key


class InsufficientBalance(UserError):
    code = "insufficient_balance"

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient young balance: requested {requested}, available {available}"
        )
        self.requested = requested
        self.available = available


class InvalidAccountKey(UserError):
    code = "invalid_account_key"


class InvalidAmount(UserError):
    code = "invalid_amount"


# ----------------------------------------------------------------------
# Invariant violations
# ----------------------------------------------------------------------

class ArithmeticOverflow(InvariantViolation):
    code = "arithmetic_overflow"


class IdSpaceExhausted(InvariantViolation):
    code = "id_space_exhausted"


class CorruptLedger(InvariantViolation):
    code = "corrupt_ledger"


class PolicyMismatch(CorruptLedger):
    """Persisted counters were written under a different ledger policy."""
    code = "policy_mismatch"

    def __init__(self, differing: list[str]) -> None:
        super().__init__(
            "State was saved under a different ledger policy "
            f"(differing keys: {', '.join(differing)})"
        )
        self.differing = differing


class ClockRegression(InvariantViolation):
    code = "clock_regression"

    def __init__(self, now: int, init_time: int) -> None:
        super().__init__(
            f"Clock regressed: now={now} is before citizen init_time={init_time}"
        )
        self.now = now
        self.init_time = init_time
