"""
syn15 Assembler - textual source to binary image

Source format (one statement per line):
    ADDRESS [-LABEL]: MNEMONIC [OPERAND ...]
    $START ADDRESS

  ADDRESS   decimal 0..32767, where the instruction's first word goes
  LABEL     identifier, decorative only: never resolved, never emitted
  OPERAND   decimal literal 0..32767, register R0..R7, or @N (an address,
            encoded exactly like the literal N)
  $START    entry address of the program (default 0), takes no memory

Mnemonics and register names are case-insensitive. ';' starts a comment
that runs to the end of the line; blank lines are ignored.

The pseudo-mnemonic DATA places raw 16-bit words (0..65535) verbatim,
so disassembler output assembles back to the same image:
    100: DATA 40000 7

Every statement is placed at its own explicit address, so no symbol pass
is needed. Statements whose word ranges intersect are a LayoutConflict.
The first error stops translation; nothing is produced for a bad source.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .config import MAX_ADDRESS, RAW_WORD_MAX, WORD_MASK, REGISTER_COUNT
from .cpu.decoder import OPCODES, lookup_mnemonic
from .cpu.words import DST, encode_literal, encode_register, is_register
from .image import Image

log = logging.getLogger(__name__)

__all__ = [
    'Assembler', 'AssemblerError', 'AsmSyntaxError', 'ArityMismatch',
    'InvalidDestinationError', 'LayoutConflict', 'assemble',
    'assemble_to_binary',
]


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class AsmSyntaxError(AssemblerError):
    """Malformed line, unknown mnemonic or bad operand token."""


class ArityMismatch(AssemblerError):
    """Operand count differs from the instruction's arity."""


class InvalidDestinationError(AssemblerError):
    """A destination operand that is not a register."""


class LayoutConflict(AssemblerError):
    """Two statements claim the same memory word, or code runs past 32767."""


# ──────────────────────────────────────────────
# Line Parser
# ──────────────────────────────────────────────

DATA = 'DATA'
START = '$START'

_STATEMENT_RE = re.compile(
    r'^(?P<addr>[0-9]+)\s*(?:-\s*(?P<label>[A-Za-z_][A-Za-z0-9_]*))?\s*:\s*(?P<body>.*)$')
_START_RE = re.compile(r'^\$START\s+(?P<addr>[0-9]+)$', re.IGNORECASE)
_REGISTER_RE = re.compile(r'^[Rr]([0-9]+)$')


@dataclass
class AsmLine:
    """Parsed assembly source line."""
    address: Optional[int] = None
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    operands: List[str] = field(default_factory=list)
    comment: Optional[str] = None
    line_num: int = 0
    raw: str = ""

    @property
    def is_blank(self) -> bool:
        return self.mnemonic is None


def _parse_line(line: str, line_num: int) -> AsmLine:
    """Split one line into address, label, mnemonic and operand tokens."""
    result = AsmLine(line_num=line_num, raw=line)

    text = line
    semi_pos = text.find(';')
    if semi_pos >= 0:
        result.comment = text[semi_pos + 1:].strip()
        text = text[:semi_pos]

    text = text.strip()
    if not text:
        return result

    m = _START_RE.match(text)
    if m:
        result.mnemonic = START
        result.operands = [m.group('addr')]
        return result
    if text.upper().startswith(START):
        raise AsmSyntaxError(f"expected '{START} ADDRESS'", line_num, line)

    m = _STATEMENT_RE.match(text)
    if m is None:
        raise AsmSyntaxError("expected 'ADDRESS[-LABEL]: MNEMONIC OPERANDS'",
                             line_num, line)

    result.address = _parse_address(m.group('addr'), line_num, line)
    result.label = m.group('label')

    parts = m.group('body').split()
    if not parts:
        raise AsmSyntaxError("missing mnemonic", line_num, line)
    result.mnemonic = parts[0].upper()
    result.operands = parts[1:]
    return result


# ──────────────────────────────────────────────
# Operand Analysis
# ──────────────────────────────────────────────

def _parse_address(text: str, line_num: int, raw: str) -> int:
    value = int(text)
    if value > MAX_ADDRESS:
        raise AsmSyntaxError(f"address {value} outside 0..{MAX_ADDRESS}",
                             line_num, raw)
    return value


def _parse_operand(token: str, line_num: int, raw: str) -> int:
    """Encode one operand token: N, @N or R0..R7."""
    m = _REGISTER_RE.match(token)
    if m:
        index = int(m.group(1))
        if index >= REGISTER_COUNT:
            raise AsmSyntaxError(f"no register {token!r} (R0..R{REGISTER_COUNT - 1})",
                                 line_num, raw)
        return encode_register(index)

    digits = token[1:] if token.startswith('@') else token
    if not digits.isdigit() or not digits.isascii():
        raise AsmSyntaxError(f"bad operand {token!r}", line_num, raw)
    value = int(digits)
    if value > WORD_MASK:
        raise AsmSyntaxError(f"literal {value} outside 0..{WORD_MASK}",
                             line_num, raw)
    return encode_literal(value)


def _parse_raw_word(token: str, line_num: int, raw: str) -> int:
    if not token.isdigit() or not token.isascii():
        raise AsmSyntaxError(f"bad {DATA} word {token!r}", line_num, raw)
    value = int(token)
    if value > RAW_WORD_MAX:
        raise AsmSyntaxError(f"{DATA} word {value} outside 0..{RAW_WORD_MAX}",
                             line_num, raw)
    return value


# ──────────────────────────────────────────────
# Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Single-pass assembler; every statement carries its own address.

    Usage:
        asm = Assembler()
        image = asm.assemble(source_text)
        data = asm.to_binary()
        print(asm.get_listing())
    """

    def __init__(self):
        self.image: Optional[Image] = None
        self.entry: int = 0
        self._lines: List[AsmLine] = []
        self._statements: List[Tuple[AsmLine, int, Tuple[int, ...]]] = []
        self._owner: Dict[int, int] = {}      # address -> line that wrote it

    def assemble(self, source: str) -> Image:
        """Translate source text into an Image. Raises on the first error."""
        self.image = None
        self.entry = 0
        self._lines = []
        self._statements = []
        self._owner = {}
        start_line = 0

        for i, text in enumerate(source.splitlines(), 1):
            line = _parse_line(text, i)
            self._lines.append(line)
            if line.is_blank:
                continue

            if line.mnemonic == START:
                if start_line:
                    raise AsmSyntaxError(
                        f"duplicate {START} (first on line {start_line})", i, text)
                self.entry = _parse_address(line.operands[0], i, text)
                start_line = i
                continue

            words = self._encode(line)
            self._emit(line, words)

        words: Dict[int, int] = {}
        for _, addr, encoded in self._statements:
            for offset, word in enumerate(encoded):
                words[addr + offset] = word
        self.image = Image(words, self.entry)
        log.debug("assembled %d statements, %d words, entry %d",
                  len(self._statements), len(words), self.entry)
        return self.image

    def _encode(self, line: AsmLine) -> Tuple[int, ...]:
        n, raw = line.line_num, line.raw

        if line.mnemonic == DATA:
            if not line.operands:
                raise ArityMismatch(f"{DATA} needs at least one word", n, raw)
            return tuple(_parse_raw_word(t, n, raw) for t in line.operands)

        opcode = lookup_mnemonic(line.mnemonic)
        if opcode is None:
            raise AsmSyntaxError(f"unknown mnemonic {line.mnemonic!r}", n, raw)
        mnem, roles = OPCODES[opcode]

        operands = [_parse_operand(t, n, raw) for t in line.operands]
        if len(operands) != len(roles):
            raise ArityMismatch(
                f"{mnem} takes {len(roles)} operand(s), got {len(operands)}", n, raw)

        for pos, (role, word, token) in enumerate(zip(roles, operands, line.operands), 1):
            if role == DST and not is_register(word):
                raise InvalidDestinationError(
                    f"{mnem} operand {pos} must be a register, got {token!r}", n, raw)

        return (opcode,) + tuple(operands)

    def _emit(self, line: AsmLine, words: Tuple[int, ...]):
        start = line.address
        end = start + len(words) - 1
        if end > MAX_ADDRESS:
            raise LayoutConflict(
                f"words {start}..{end} run past the last address {MAX_ADDRESS}",
                line.line_num, line.raw)
        for addr in range(start, end + 1):
            owner = self._owner.get(addr)
            if owner is not None:
                raise LayoutConflict(
                    f"address {addr} already used by line {owner}",
                    line.line_num, line.raw)
        for addr in range(start, end + 1):
            self._owner[addr] = line.line_num
        self._statements.append((line, start, words))

    # ──────────────────────────────────────────────
    # Output
    # ──────────────────────────────────────────────

    def to_binary(self) -> bytes:
        if self.image is None:
            raise AssemblerError("nothing assembled yet")
        return self.image.to_bytes()

    def get_listing(self) -> str:
        """Return a human-readable listing showing address, words, and source."""
        lines = [f"{'ADDR':>5}  {'WORDS':<24}  SOURCE", "-" * 60]
        placed = {id(line): (addr, words) for line, addr, words in self._statements}
        for asmline in self._lines:
            raw = asmline.raw.strip()
            if id(asmline) in placed:
                addr, words = placed[id(asmline)]
                cells = ' '.join(str(w) for w in words)
                lines.append(f"{addr:5d}  {cells:<24}  {raw}")
            elif raw:
                lines.append(f"{'':5}  {'':24}  {raw}")
        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str) -> Image:
    """Assemble source text, return the Image."""
    return Assembler().assemble(source)


def assemble_to_binary(source: str) -> bytes:
    """Assemble source text, return the little-endian image bytes."""
    return assemble(source).to_bytes()
