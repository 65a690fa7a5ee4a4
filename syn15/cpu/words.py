"""
syn15 - Number / Operand Model

Every value the machine computes is a 15-bit word (0..32767). Operand words
in an instruction stream are 16-bit cells read three ways:

  0     .. 32767   literal value
  32768 .. 32775   register R0 .. R7
  32776 .. 65535   illegal as an operand

Address operands share the literal encoding; the "@" the assembler and
disassembler print is only a reading aid.
"""

from typing import Sequence

from ..config import (
    MODULUS, WORD_MASK, REGISTER_BASE, REGISTER_COUNT, MAX_OPERAND,
)
from .faults import InvalidOperand

# Operand roles (also used by the instruction table)
DST = 'dst'     # register only
VAL = 'val'     # literal or register
ADDR = 'addr'   # literal or register, interpreted as a memory address


def normalize(x: int) -> int:
    """Reduce any integer to a word: x mod 32768."""
    return x % MODULUS


def is_literal(word: int) -> bool:
    return 0 <= word <= WORD_MASK


def is_register(word: int) -> bool:
    return REGISTER_BASE <= word <= MAX_OPERAND


def is_valid_operand(word: int) -> bool:
    return 0 <= word <= MAX_OPERAND


def register_index(word: int) -> int:
    if not is_register(word):
        raise InvalidOperand(f"{word} does not encode a register", operand=word)
    return word - REGISTER_BASE


def encode_literal(n: int) -> int:
    if not is_literal(n):
        raise ValueError(f"literal {n} outside 0..{WORD_MASK}")
    return n


def encode_register(i: int) -> int:
    if not 0 <= i < REGISTER_COUNT:
        raise ValueError(f"register index {i} outside 0..{REGISTER_COUNT - 1}")
    return REGISTER_BASE + i


def resolve(word: int, registers: Sequence[int]) -> int:
    """Value of an operand word: the literal itself or the register contents."""
    if word < REGISTER_BASE:
        return word
    if word <= MAX_OPERAND:
        return registers[word - REGISTER_BASE]
    raise InvalidOperand(f"{word} is not a literal or register", operand=word)


def format_operand(word: int, role: str = VAL) -> str:
    """Render an operand word the way the assembler reads it back.

    Registers print as R0..R7, address literals as @N, plain literals as N.
    Anything out of range prints as its raw number.
    """
    if is_register(word):
        return f"R{word - REGISTER_BASE}"
    if role == ADDR and is_literal(word):
        return f"@{word}"
    return str(word)
