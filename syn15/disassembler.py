"""
syn15 Disassembler - binary image to assembler text

    from syn15.disassembler import Disassembler

    dis = Disassembler()
    for line in dis.disassemble([9, 32768, 32769, 4, 19, 32768]):
        print(line.format())        # "0: ADD R0 R1 4", "4: OUT R0"

Code and data share one untagged address space, so decoding is a policy:
at each address, if the word is a known opcode, all of its operand words
exist and every operand word is a legal operand encoding (<= 32775), one
instruction is produced and the cursor moves past it. Otherwise a one-word
DATA line is produced and the cursor moves by one. Content never raises.

Output lines use the assembler grammar, so a listing assembles back to the
same words, with one exception: a literal in a destination slot (e.g.
[1, 5, 7] -> "0: SET 5 7") decodes, since the VM only rejects it when
executed, but the assembler refuses it with InvalidDestinationError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from .config import MAX_OPERAND
from .cpu.decoder import OPCODES
from .cpu.words import format_operand
from .image import Image, decode_words

DATA = 'DATA'


@dataclass
class DisassembledLine:
    """One decoded instruction, or one DATA word."""
    address: int
    mnemonic: str
    operands: Tuple[int, ...] = ()
    roles: Tuple[str, ...] = ()
    words: Tuple[int, ...] = ()

    @property
    def is_data(self) -> bool:
        return self.mnemonic == DATA

    @property
    def length(self) -> int:
        return len(self.words)

    @property
    def operand_str(self) -> str:
        if self.is_data:
            return ' '.join(str(w) for w in self.operands)
        return ' '.join(format_operand(w, role)
                        for w, role in zip(self.operands, self.roles))

    def format(self, show_words: bool = False) -> str:
        """Format as one assembler line, e.g. "12: SET R0 5".

        show_words appends the raw words as a trailing comment.
        """
        line = f"{self.address}: {self.mnemonic} {self.operand_str}".strip()
        if show_words:
            line = f"{line:<32} ; {' '.join(str(w) for w in self.words)}"
        return line

    def __str__(self) -> str:
        return self.format()


class Disassembler:
    """Lazy, never-failing word-stream decoder."""

    def disassemble(self, source, start: int = 0, end: Optional[int] = None,
                    count: int = 0) -> Iterator[DisassembledLine]:
        """Yield lines from start up to (not including) end.

        source may be a word sequence, an Image, a Memory, or raw image bytes.
        count > 0 stops after that many lines.
        """
        words = _as_words(source)
        stop = len(words) if end is None else min(end, len(words))
        cursor = start
        produced = 0
        while cursor < stop:
            line = self.decode_one(words, cursor, stop)
            yield line
            cursor += line.length
            produced += 1
            if count and produced >= count:
                return

    def decode_one(self, words: Sequence[int], address: int,
                   limit: Optional[int] = None) -> DisassembledLine:
        """Decode the single line at address; words past limit are unavailable."""
        if limit is None:
            limit = len(words)
        opcode = words[address]
        entry = OPCODES.get(opcode)
        if entry is not None:
            mnem, roles = entry
            last = address + len(roles)
            if last < limit:
                operands = tuple(words[address + 1:last + 1])
                if all(w <= MAX_OPERAND for w in operands):
                    return DisassembledLine(address, mnem, operands, roles,
                                            (opcode,) + operands)
        return self._make_data(address, opcode)

    @staticmethod
    def _make_data(address: int, word: int) -> DisassembledLine:
        return DisassembledLine(address, DATA, (word,), (), (word,))


def _as_words(source) -> Sequence[int]:
    if isinstance(source, Image):
        return source.to_words()
    if isinstance(source, (bytes, bytearray)):
        return decode_words(bytes(source))
    return source


def disassemble(source, start: int = 0, end: Optional[int] = None,
                count: int = 0) -> Iterator[DisassembledLine]:
    return Disassembler().disassemble(source, start, end, count)


def disassemble_to_text(source, start: int = 0, end: Optional[int] = None,
                        show_words: bool = False, count: int = 0) -> str:
    """Listing as text, one line per instruction or DATA word."""
    lines: List[str] = [line.format(show_words)
                        for line in disassemble(source, start, end, count)]
    return '\n'.join(lines)
