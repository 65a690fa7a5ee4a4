"""
syn15 - Virtual machine

Integrates:
  - register file, PC and stack (cpu/regs.py)
  - 32768-word memory (mem/memory.py)
  - instruction table (cpu/decoder.py)
  - ALU (cpu/alu.py)
  - console device for OUT / IN (periph/console.py)

Execution model, one instruction per step():
  1. Read the opcode word at PC; unknown -> IllegalOpcode
  2. Read the operand words; illegal encoding -> InvalidOperand,
     non-register destination -> InvalidDestination
  3. Apply the instruction, every result reduced mod 32768
  4. PC += 1 + operand count, unless the instruction set PC

Stop reasons:
  HALT     HALT executed, or RET on an empty stack
  ERROR    a fault; details in emu.fault, the machine stays in ERROR
  INPUT    IN found no queued input; PC still points at the IN, feed the
           console and call step()/run() again
  BREAK    PC reached a breakpoint (stops before executing it)
  TIMEOUT  step budget used up; the machine is still runnable
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set, Tuple, Union

from .config import DEFAULT_MAX_STEPS, MAX_ADDRESS, MAX_OPERAND
from .cpu import alu
from .cpu.decoder import decode_opcode, Instruction
from .cpu.faults import (
    VMFault, InvalidOperand, InvalidDestination, UnexpectedEndOfInput,
)
from .cpu.regs import Registers
from .cpu.words import DST, is_register, resolve, register_index
from .image import Image, read_image
from .mem.memory import Memory
from .periph.console import ConsoleDevice, EOF

log = logging.getLogger(__name__)


class StopReason(Enum):
    HALT = 'HALT'
    ERROR = 'ERROR'
    INPUT = 'INPUT'
    BREAK = 'BREAK'
    TIMEOUT = 'TIMEOUT'


class MachineState(Enum):
    RUNNING = 'RUNNING'
    AWAITING_INPUT = 'AWAITING_INPUT'
    HALTED = 'HALTED'
    ERROR = 'ERROR'


class Syn15Emulator:
    """15-bit word machine.

    Usage:
        emu = Syn15Emulator()
        emu.load_image(assemble(source))
        reason = emu.run()
        print(emu.output)
    """

    DEFAULT_MAX_STEPS = DEFAULT_MAX_STEPS

    def __init__(self, console: Optional[ConsoleDevice] = None):
        self.regs = Registers()
        self.mem = Memory()
        self.console = console if console is not None else ConsoleDevice()

        self.state = MachineState.RUNNING
        self.fault: Optional[VMFault] = None

        self._breakpoints: Set[int] = set()
        self._break_skip: Optional[int] = None

        self._trace = False
        self._trace_output: List[str] = []

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_image(self, image: Image, entry: Optional[int] = None):
        """Place an image in memory and point PC at its entry address."""
        self.mem.load_sparse(image.words)
        self.regs.PC = image.entry if entry is None else Memory.check_address(entry)

    def load_binary(self, path_or_data: Union[str, Path, bytes], base_addr: int = 0):
        """Load a raw little-endian word image from a file or bytes."""
        image = read_image(path_or_data)
        self.mem.load_words(image.to_words(), base_addr)

    def load_words(self, words, base_addr: int = 0):
        self.mem.load_words(words, base_addr)

    def feed_input(self, data: Union[str, bytes]):
        """Queue console input; a machine waiting in IN becomes runnable."""
        self.console.feed(data)
        if self.state == MachineState.AWAITING_INPUT:
            self.state = MachineState.RUNNING

    @property
    def output(self) -> str:
        return self.console.output

    @property
    def steps(self) -> int:
        return self.regs.steps

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns a StopReason if stopped, else None."""
        if self.state == MachineState.HALTED:
            return StopReason.HALT
        if self.state == MachineState.ERROR:
            return StopReason.ERROR

        pc = self.regs.PC

        if pc in self._breakpoints and self._break_skip != pc:
            self._break_skip = pc
            return StopReason.BREAK
        self._break_skip = None

        opcode = None
        try:
            opcode, mnem, roles, operand_pc = decode_opcode(self.mem, pc)
            ops = tuple(self.mem.read(operand_pc + i) for i in range(len(roles)))
            self._check_operands(roles, ops)

            if self._trace or log.isEnabledFor(logging.DEBUG):
                self._record(pc, Instruction(opcode, ops))

            next_pc = operand_pc + len(ops)
            target = self._dispatch[mnem](ops, next_pc)
            if target is None and next_pc > MAX_ADDRESS:
                raise InvalidOperand(
                    f"execution runs past the last address {MAX_ADDRESS}", operand=next_pc)
        except _HaltException:
            self.regs.steps += 1
            self.state = MachineState.HALTED
            log.debug("halted at %d after %d steps", pc, self.regs.steps)
            return StopReason.HALT
        except _AwaitInput:
            # IN is retried on resume; a breakpoint here already fired
            if pc in self._breakpoints:
                self._break_skip = pc
            self.state = MachineState.AWAITING_INPUT
            return StopReason.INPUT
        except VMFault as e:
            self.fault = e.locate(opcode, pc)
            self.state = MachineState.ERROR
            if self._trace:
                self._trace_output.append(f"  ERROR: {e}")
            log.warning("%s", e)
            return StopReason.ERROR

        self.regs.PC = target if target is not None else next_pc
        self.regs.steps += 1
        self.state = MachineState.RUNNING
        return None

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """Run until a stop reason or until max_steps instructions have run."""
        if max_steps is None:
            max_steps = self.DEFAULT_MAX_STEPS

        for _ in range(max_steps):
            reason = self.step()
            if reason is not None:
                return reason

        return StopReason.TIMEOUT

    # ══════════════════════════════════════════════
    # Operand handling
    # ══════════════════════════════════════════════

    @staticmethod
    def _check_operands(roles: Tuple[str, ...], ops: Tuple[int, ...]):
        for role, word in zip(roles, ops):
            if word > MAX_OPERAND:
                raise InvalidOperand(f"{word} is not a literal or register",
                                     operand=word)
            if role == DST and not is_register(word):
                raise InvalidDestination(f"destination {word} is not a register",
                                         operand=word)

    def _val(self, word: int) -> int:
        return resolve(word, self.regs.R)

    def _set(self, dst: int, value: int):
        self.regs[register_index(dst)] = value

    def _record(self, pc: int, instr: Instruction):
        line = f"{pc:5d}: {str(instr):<24} | {self.regs.display()}"
        if self._trace:
            self._trace_output.append(line)
        log.debug(line)

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    #
    # Each handler gets the raw operand words and the address of the next
    # instruction, and returns a new PC or None to fall through.

    def _build_dispatch(self) -> dict:
        return {
            # ── Control ──
            'HALT': self._op_halt,
            'NOOP': self._op_noop,
            # ── Data movement ──
            'SET':  self._op_set,
            'PUSH': self._op_push,
            'POP':  self._op_pop,
            'RMEM': self._op_rmem,
            'WMEM': self._op_wmem,
            # ── Compare ──
            'EQ':   self._op_eq,
            'GT':   self._op_gt,
            # ── Arithmetic / logic ──
            'ADD':  self._op_add,
            'MULT': self._op_mult,
            'MOD':  self._op_mod,
            'AND':  self._op_and,
            'OR':   self._op_or,
            'NOT':  self._op_not,
            # ── Jump / call ──
            'JMP':  self._op_jmp,
            'JT':   self._op_jt,
            'JF':   self._op_jf,
            'CALL': self._op_call,
            'RET':  self._op_ret,
            # ── I/O ──
            'OUT':  self._op_out,
            'IN':   self._op_in,
        }

    def _op_halt(self, ops, next_pc):
        raise _HaltException("HALT")

    def _op_noop(self, ops, next_pc):
        return None

    # ── Data movement ──

    def _op_set(self, ops, next_pc):
        self._set(ops[0], self._val(ops[1]))

    def _op_push(self, ops, next_pc):
        self.regs.push(self._val(ops[0]))

    def _op_pop(self, ops, next_pc):
        self._set(ops[0], self.regs.pop())

    def _op_rmem(self, ops, next_pc):
        # raw image cells may exceed 15 bits; registers only ever hold words
        self._set(ops[0], self.mem.read(self._val(ops[1])))

    def _op_wmem(self, ops, next_pc):
        self.mem.write(self._val(ops[0]), self._val(ops[1]))

    # ── Compare ──

    def _op_eq(self, ops, next_pc):
        self._set(ops[0], alu.eq(self._val(ops[1]), self._val(ops[2])))

    def _op_gt(self, ops, next_pc):
        self._set(ops[0], alu.gt(self._val(ops[1]), self._val(ops[2])))

    # ── Arithmetic / logic ──

    def _op_add(self, ops, next_pc):
        self._set(ops[0], alu.add(self._val(ops[1]), self._val(ops[2])))

    def _op_mult(self, ops, next_pc):
        self._set(ops[0], alu.mult(self._val(ops[1]), self._val(ops[2])))

    def _op_mod(self, ops, next_pc):
        self._set(ops[0], alu.mod(self._val(ops[1]), self._val(ops[2])))

    def _op_and(self, ops, next_pc):
        self._set(ops[0], alu.and_(self._val(ops[1]), self._val(ops[2])))

    def _op_or(self, ops, next_pc):
        self._set(ops[0], alu.or_(self._val(ops[1]), self._val(ops[2])))

    def _op_not(self, ops, next_pc):
        self._set(ops[0], alu.not_(self._val(ops[1])))

    # ── Jump / call ──

    def _op_jmp(self, ops, next_pc):
        return self._val(ops[0])

    def _op_jt(self, ops, next_pc):
        if self._val(ops[0]) != 0:
            return self._val(ops[1])
        return None

    def _op_jf(self, ops, next_pc):
        if self._val(ops[0]) == 0:
            return self._val(ops[1])
        return None

    def _op_call(self, ops, next_pc):
        target = self._val(ops[0])
        self.regs.push(next_pc)
        return target

    def _op_ret(self, ops, next_pc):
        if not self.regs.stack:
            raise _HaltException("RET on empty stack")
        return self.regs.pop()

    # ── I/O ──

    def _op_out(self, ops, next_pc):
        self.console.write(self._val(ops[0]))

    def _op_in(self, ops, next_pc):
        code = self.console.poll()
        if code is None:
            raise _AwaitInput()
        if code == EOF:
            raise UnexpectedEndOfInput("input source exhausted", operand=ops[0])
        self._set(ops[0], code)

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Stop before executing the instruction at addr."""
        self._breakpoints.add(Memory.check_address(addr))

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def snapshot(self) -> dict:
        """Registers, stack and state as plain data."""
        snap = self.regs.snapshot()
        snap['state'] = self.state.value
        return snap

    def reset(self):
        """Reset CPU state, console and debug state. Memory is left alone."""
        self.regs.reset()
        self.console.reset()
        self.state = MachineState.RUNNING
        self.fault = None
        self._break_skip = None
        self._breakpoints.clear()
        self._trace_output.clear()


# Internal exceptions for flow control
class _HaltException(Exception):
    pass


class _AwaitInput(Exception):
    pass
