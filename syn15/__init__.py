"""
syn15 - a 15-bit word machine with assembler and disassembler
==============================================================
A small fixed instruction set (22 opcodes, 8 registers, 32768 words of
memory, unbounded stack) plus the two tools that agree with the interpreter
on every encoding detail.

Architecture:
    ┌───────────┐    ┌───────────┐    ┌───────────┐    ┌──────────────┐
    │ .asm text │───>│ Assembler │───>│   Image   │───>│ Syn15Emulator│
    └───────────┘    └───────────┘    │ (.bin LE) │    └──────────────┘
          ^                           └───────────┘
          │          ┌──────────────┐       │
          └──────────│ Disassembler │<──────┘
                     └──────────────┘

    - cpu/words.py:    operand encoding (literal / register / illegal)
    - cpu/decoder.py:  opcode table shared by all three tools
    - emu.py:          fetch / decode / execute loop
    - assembler.py:    address-per-line source -> sparse image
    - disassembler.py: image -> lazily decoded, re-assemblable lines
    - image.py:        16-bit little-endian binary format
"""

__version__ = "0.1.0"

from .assembler import (
    Assembler, AssemblerError, AsmSyntaxError, ArityMismatch,
    InvalidDestinationError, LayoutConflict, assemble, assemble_to_binary,
)
from .cpu.faults import (
    VMFault, IllegalOpcode, InvalidOperand, InvalidDestination,
    StackUnderflow, DivisionByZero, UnexpectedEndOfInput,
)
from .disassembler import Disassembler, DisassembledLine, disassemble
from .emu import Syn15Emulator, StopReason, MachineState
from .image import Image, ImageError, read_image, write_image
from .periph.console import ConsoleDevice


def run_source(source: str, input_text: str = "", *,
               max_steps: int = Syn15Emulator.DEFAULT_MAX_STEPS):
    """Assemble source, run it with the given input, return (reason, output).

    Input is closed after input_text, so a program reading past it faults
    with UnexpectedEndOfInput.
    """
    emu = Syn15Emulator()
    emu.load_image(assemble(source))
    emu.console.feed(input_text)
    emu.console.close()
    reason = emu.run(max_steps)
    return reason, emu.output
