"""
syn15 - Register file, program counter and stack

  R0..R7  eight general registers, one word each
  PC      program counter (address of the next instruction)
  stack   unbounded LIFO of words
  steps   executed-instruction counter
"""

from typing import List

from ..config import REGISTER_COUNT
from .faults import StackUnderflow
from .words import normalize


class Registers:
    """CPU state that is not memory."""

    __slots__ = ('R', 'PC', 'stack', 'steps')

    def __init__(self):
        self.R: List[int] = [0] * REGISTER_COUNT
        self.PC: int = 0
        self.stack: List[int] = []
        self.steps: int = 0

    def __getitem__(self, index: int) -> int:
        return self.R[index]

    def __setitem__(self, index: int, value: int):
        self.R[index] = normalize(value)

    def __len__(self) -> int:
        return REGISTER_COUNT

    # --- Stack ---

    def push(self, value: int):
        self.stack.append(normalize(value))

    def pop(self) -> int:
        if not self.stack:
            raise StackUnderflow("pop from empty stack")
        return self.stack.pop()

    @property
    def depth(self) -> int:
        return len(self.stack)

    # --- Debug ---

    def display(self) -> str:
        """One-line register dump for traces."""
        regs = ' '.join(f"R{i}={v}" for i, v in enumerate(self.R))
        return f"PC={self.PC} {regs} SP#{len(self.stack)}"

    def snapshot(self) -> dict:
        return {
            'R': list(self.R),
            'PC': self.PC,
            'stack': list(self.stack),
            'steps': self.steps,
        }

    def reset(self):
        self.R = [0] * REGISTER_COUNT
        self.PC = 0
        self.stack = []
        self.steps = 0
