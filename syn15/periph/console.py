"""
syn15 - Console device (output sink + input source for OUT / IN)

OUT hands one character code to write(); codes collect in tx_buffer and are
forwarded to an optional on_output callback (e.g. to echo to a terminal).

IN asks poll() for the next code:
  int    a queued character code
  None   nothing queued yet - the VM suspends and can be resumed after feed()
  EOF    the source is closed and drained - IN faults

Fed input is checked whole before anything is queued. A line from the
backing stream holding a code above 32767 is an InvalidOperand fault.

Input is pushed with feed() and ended with close(). Alternatively a blocking
text stream (sys.stdin) can back the queue: when the queue runs dry one line
is read from it, and reading '' closes the input.
"""

from collections import deque
from typing import Callable, List, Optional, TextIO, Union

from ..config import WORD_MASK
from ..cpu.faults import InvalidOperand

EOF = -1


def _oversized(codes: List[int]) -> Optional[int]:
    return next((c for c in codes if c > WORD_MASK), None)


class ConsoleDevice:
    """Character console attached to the VM."""

    def __init__(self, stream: Optional[TextIO] = None,
                 on_output: Optional[Callable[[int], None]] = None):
        self.tx_buffer: List[int] = []
        self.on_output = on_output
        self._rx_queue: deque = deque()
        self._stream = stream
        self._closed = False

    # --- Output side (OUT) ---

    def write(self, code: int):
        self.tx_buffer.append(code)
        if self.on_output is not None:
            self.on_output(code)

    @property
    def output(self) -> str:
        """Everything written since the last reset, as text."""
        return ''.join(chr(c) for c in self.tx_buffer)

    # --- Input side (IN) ---

    def feed(self, data: Union[str, bytes]):
        """Queue characters for IN. bytes are taken one code per byte."""
        if self._closed:
            raise ValueError("console input already closed")
        codes = list(data) if isinstance(data, (bytes, bytearray)) else [ord(ch) for ch in data]
        bad = _oversized(codes)
        if bad is not None:
            raise ValueError(f"character code {bad} does not fit a word")
        self._rx_queue.extend(codes)

    def close(self):
        """Mark end of input; IN faults once the queue is drained."""
        self._closed = True

    @property
    def pending(self) -> int:
        return len(self._rx_queue)

    def poll(self) -> Optional[int]:
        if not self._rx_queue and self._stream is not None and not self._closed:
            line = self._stream.readline()
            if line == '':
                self._closed = True
            else:
                codes = [ord(ch) for ch in line]
                bad = _oversized(codes)
                if bad is not None:
                    raise InvalidOperand(
                        f"input character code {bad} does not fit a word", operand=bad)
                self._rx_queue.extend(codes)
        if self._rx_queue:
            return self._rx_queue.popleft()
        if self._closed:
            return EOF
        return None

    def reset(self):
        self.tx_buffer.clear()
        self._rx_queue.clear()
        self._closed = False
