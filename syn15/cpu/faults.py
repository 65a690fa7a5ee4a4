"""
syn15 - VM fault types

A fault stops the machine for good. Every fault records where it happened:
  opcode   the opcode word at the failing instruction (None if unreadable)
  pc       address of the failing instruction
  operand  the offending raw word, when one operand is to blame
"""

from typing import Optional


class VMFault(Exception):
    """Base class for all execution faults."""

    kind = "fault"

    def __init__(self, message: str, *, opcode: Optional[int] = None,
                 pc: Optional[int] = None, operand: Optional[int] = None):
        self.message = message
        self.opcode = opcode
        self.pc = pc
        self.operand = operand
        super().__init__(self._format())

    def _format(self) -> str:
        where = f"pc={self.pc}" if self.pc is not None else "pc=?"
        parts = [f"{self.kind} at {where}"]
        if self.opcode is not None:
            parts.append(f"opcode={self.opcode}")
        if self.operand is not None:
            parts.append(f"operand={self.operand}")
        return f"{' '.join(parts)}: {self.message}"

    def locate(self, opcode: Optional[int], pc: int) -> "VMFault":
        """Attach the instruction location if the raiser did not know it."""
        if self.opcode is None:
            self.opcode = opcode
        if self.pc is None:
            self.pc = pc
        self.args = (self._format(),)
        return self


class IllegalOpcode(VMFault):
    kind = "illegal opcode"


class InvalidOperand(VMFault):
    kind = "invalid operand"


class InvalidDestination(VMFault):
    kind = "invalid destination"


class StackUnderflow(VMFault):
    kind = "stack underflow"


class DivisionByZero(VMFault):
    kind = "division by zero"


class UnexpectedEndOfInput(VMFault):
    kind = "end of input"


__all__ = [
    'VMFault', 'IllegalOpcode', 'InvalidOperand', 'InvalidDestination',
    'StackUnderflow', 'DivisionByZero', 'UnexpectedEndOfInput',
]
