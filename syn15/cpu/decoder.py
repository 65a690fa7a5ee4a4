"""
syn15 - Instruction table and opcode decoder

Maps each opcode word (0..21) to its mnemonic and the roles of its operands.
The table is the single source of truth for the VM, the assembler and the
disassembler; instruction width is always 1 + number of operands.

Operand roles:
  DST   destination, must encode a register
  VAL   value, literal or register
  ADDR  address, literal or register (same encoding as VAL)
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .faults import IllegalOpcode
from .words import DST, VAL, ADDR, format_operand

# ──────────────────────────────────────────────
# Opcode table: opcode -> (mnemonic, operand roles)
# ──────────────────────────────────────────────

OPCODES: Dict[int, Tuple[str, Tuple[str, ...]]] = {
    0:  ('HALT', ()),
    1:  ('SET',  (DST, VAL)),
    2:  ('PUSH', (VAL,)),
    3:  ('POP',  (DST,)),
    4:  ('EQ',   (DST, VAL, VAL)),
    5:  ('GT',   (DST, VAL, VAL)),
    6:  ('JMP',  (ADDR,)),
    7:  ('JT',   (VAL, ADDR)),
    8:  ('JF',   (VAL, ADDR)),
    9:  ('ADD',  (DST, VAL, VAL)),
    10: ('MULT', (DST, VAL, VAL)),
    11: ('MOD',  (DST, VAL, VAL)),
    12: ('AND',  (DST, VAL, VAL)),
    13: ('OR',   (DST, VAL, VAL)),
    14: ('NOT',  (DST, VAL)),
    15: ('RMEM', (DST, ADDR)),
    16: ('WMEM', (ADDR, VAL)),
    17: ('CALL', (ADDR,)),
    18: ('RET',  ()),
    19: ('OUT',  (VAL,)),
    20: ('IN',   (DST,)),
    21: ('NOOP', ()),
}

# Reverse map for the assembler
MNEMONICS: Dict[str, int] = {mnem: op for op, (mnem, _) in OPCODES.items()}

MAX_ARITY = max(len(roles) for _, roles in OPCODES.values())


def lookup(opcode: int) -> Optional[Tuple[str, Tuple[str, ...]]]:
    """(mnemonic, roles) for an opcode, or None if unknown."""
    return OPCODES.get(opcode)


def lookup_mnemonic(name: str) -> Optional[int]:
    """Opcode for a mnemonic (case-insensitive), or None if unknown."""
    return MNEMONICS.get(name.upper())


def arity(opcode: int) -> int:
    entry = OPCODES.get(opcode)
    if entry is None:
        raise IllegalOpcode(f"unknown opcode {opcode}", opcode=opcode)
    return len(entry[1])


def width(opcode: int) -> int:
    return arity(opcode) + 1


def decode_opcode(memory, pc: int):
    """Fetch and decode the opcode word at pc.

    Returns: (opcode, mnemonic, roles, operand_pc)
    where operand_pc is the address of the first operand word.
    """
    opcode = memory.read(pc)
    entry = OPCODES.get(opcode)
    if entry is None:
        raise IllegalOpcode(f"unknown opcode {opcode}", opcode=opcode, pc=pc)
    mnem, roles = entry
    return opcode, mnem, roles, pc + 1


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction: opcode plus its raw operand words."""
    opcode: int
    operands: Tuple[int, ...] = ()

    @property
    def mnemonic(self) -> str:
        return OPCODES[self.opcode][0]

    @property
    def roles(self) -> Tuple[str, ...]:
        return OPCODES[self.opcode][1]

    @property
    def width(self) -> int:
        return 1 + len(self.operands)

    @property
    def words(self) -> Tuple[int, ...]:
        return (self.opcode,) + tuple(self.operands)

    def __str__(self) -> str:
        parts = [self.mnemonic]
        parts.extend(format_operand(w, role)
                     for w, role in zip(self.operands, self.roles))
        return ' '.join(parts)
