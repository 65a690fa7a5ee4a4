"""
syn15 - Word-addressed main memory

32768 cells, addresses 0..32767, shared by code and data. Each cell holds a
16-bit value: images may place raw operand words (>= 32768) anywhere, while
everything the running program stores through WMEM is already a 15-bit word.

Addresses outside 0..32767 are an InvalidOperand fault; there is no
wrap-around.
"""

from array import array
from typing import Callable, Dict, Iterable, List, Optional

from ..config import MEMORY_SIZE, MAX_ADDRESS, RAW_WORD_MAX
from ..cpu.faults import InvalidOperand


class Memory:
    """Flat word memory with write watchpoints and snapshots."""

    def __init__(self):
        self._mem = array('H', bytes(2 * MEMORY_SIZE))

        # Watchpoints: addr -> [callback(addr, old_val, new_val)]
        self._watchpoints: Dict[int, List[Callable]] = {}

    @staticmethod
    def check_address(addr: int) -> int:
        if not 0 <= addr <= MAX_ADDRESS:
            raise InvalidOperand(f"address {addr} outside 0..{MAX_ADDRESS}",
                                 operand=addr)
        return addr

    # --- Core read/write ---

    def read(self, addr: int) -> int:
        return self._mem[self.check_address(addr)]

    def write(self, addr: int, value: int):
        """Store a word. Watchpoint callbacks fire before the cell changes."""
        self.check_address(addr)
        old = self._mem[addr]
        for cb in self._watchpoints.get(addr, ()):
            cb(addr, old, value)
        self._mem[addr] = value

    def __getitem__(self, addr):
        return self._mem[addr]

    def __len__(self) -> int:
        return MEMORY_SIZE

    # --- Bulk load ---

    def load_words(self, words: Iterable[int], base_addr: int = 0):
        """Copy raw 16-bit words in starting at base_addr.

        Bypasses watchpoints; used for loading images.
        """
        addr = self.check_address(base_addr)
        for word in words:
            if addr > MAX_ADDRESS:
                raise InvalidOperand(
                    f"image overruns memory end at {MAX_ADDRESS}", operand=addr)
            if not 0 <= word <= RAW_WORD_MAX:
                raise ValueError(f"cell value {word} at {addr} is not 16-bit")
            self._mem[addr] = word
            addr += 1

    def load_sparse(self, cells: Dict[int, int]):
        for addr, word in cells.items():
            self.load_words((word,), addr)

    def clear(self):
        self._mem = array('H', bytes(2 * MEMORY_SIZE))

    # --- Watchpoints ---

    def add_watchpoint(self, addr: int, callback: Callable):
        """callback(addr, old_val, new_val) runs on every program write to addr."""
        self.check_address(addr)
        self._watchpoints.setdefault(addr, []).append(callback)

    def remove_watchpoint(self, addr: int, callback: Optional[Callable] = None):
        """Remove a watchpoint. If callback is None, removes all on that addr."""
        if addr not in self._watchpoints:
            return
        if callback is None:
            del self._watchpoints[addr]
        else:
            self._watchpoints[addr] = [
                cb for cb in self._watchpoints[addr] if cb != callback
            ]

    # --- Snapshots ---

    def snapshot(self, start: int = 0, end: int = MAX_ADDRESS) -> List[int]:
        return self._mem[start:end + 1].tolist()

    @staticmethod
    def diff_snapshots(snap_a: List[int], snap_b: List[int],
                       base_addr: int = 0) -> Dict[int, tuple]:
        """{addr: (old, new)} for every cell that differs."""
        changes = {}
        for i, (a, b) in enumerate(zip(snap_a, snap_b)):
            if a != b:
                changes[base_addr + i] = (a, b)
        return changes

    # --- Dump ---

    def worddump(self, start: int, length: int = 64) -> str:
        """Eight words per line, decimal addresses, printable ASCII at right."""
        lines = []
        for offset in range(0, length, 8):
            addr = start + offset
            if addr > MAX_ADDRESS:
                break
            row = self._mem[addr:min(addr + 8, MEMORY_SIZE)]
            cells = ' '.join(f'{w:5d}' for w in row)
            text = ''.join(chr(w) if 0x20 <= w < 0x7F else '.' for w in row)
            lines.append(f'{addr:5d}  {cells:<47}  {text}')
        return '\n'.join(lines)
