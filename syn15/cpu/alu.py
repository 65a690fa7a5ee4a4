"""
syn15 - Arithmetic / logic unit

Pure functions over words. Inputs are assumed to be words already (0..32767);
every result is reduced mod 32768 so the closure property holds no matter
what the caller passes in.
"""

from ..config import MODULUS, WORD_MASK
from .faults import DivisionByZero


def add(a: int, b: int) -> int:
    return (a + b) % MODULUS


def mult(a: int, b: int) -> int:
    return (a * b) % MODULUS


def mod(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZero(f"{a} mod 0")
    return (a % b) % MODULUS


def and_(a: int, b: int) -> int:
    return (a & b) & WORD_MASK


def or_(a: int, b: int) -> int:
    return (a | b) & WORD_MASK


def not_(a: int) -> int:
    """15-bit complement; bit 15 never leaks in."""
    return ~a & WORD_MASK


def eq(a: int, b: int) -> int:
    return 1 if a == b else 0


def gt(a: int, b: int) -> int:
    return 1 if a > b else 0
