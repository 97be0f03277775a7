"""Checked fixed-width arithmetic.

Python ints never wrap, so overflow has to be detected explicitly.
Every helper raises ArithmeticOverflow instead of returning a value
outside [0, limit].
"""

from __future__ import annotations

from coconuts.errors import ArithmeticOverflow
from coconuts.models.citizen import U128_MAX


def checked_add(a: int, b: int, limit: int = U128_MAX) -> int:
    result = a + b
    if result > limit:
        raise ArithmeticOverflow(f"{a} + {b} exceeds {limit}")
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflow(f"{a} - {b} underflows")
    return a - b


def checked_mul(a: int, b: int, limit: int = U128_MAX) -> int:
    result = a * b
    if result > limit:
        raise ArithmeticOverflow(f"{a} * {b} exceeds {limit}")
    return result
