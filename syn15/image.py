"""
syn15 - Binary program images

On disk an image is a flat run of 16-bit little-endian words, one per
address starting at 0. There is no header: addresses not written are zero
and the entry address travels separately (assembler $START, CLI --entry).

In memory an Image is sparse (address -> word) plus its entry address, which
is exactly what the assembler produces.
"""

import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Union

from .config import MEMORY_SIZE, MAX_ADDRESS, RAW_WORD_MAX


class ImageError(Exception):
    """Malformed image file or image contents."""


@dataclass
class Image:
    """Sparse program image: {address: raw 16-bit word} plus entry address."""
    words: Dict[int, int] = field(default_factory=dict)
    entry: int = 0

    def __post_init__(self):
        if not 0 <= self.entry <= MAX_ADDRESS:
            raise ImageError(f"entry address {self.entry} outside 0..{MAX_ADDRESS}")
        for addr, word in self.words.items():
            if not 0 <= addr <= MAX_ADDRESS:
                raise ImageError(f"address {addr} outside 0..{MAX_ADDRESS}")
            if not 0 <= word <= RAW_WORD_MAX:
                raise ImageError(f"word {word} at {addr} is not 16-bit")

    @classmethod
    def from_words(cls, words: Iterable[int], base_addr: int = 0,
                   entry: int = 0) -> "Image":
        return cls({base_addr + i: w for i, w in enumerate(words)}, entry)

    @classmethod
    def from_bytes(cls, data: bytes, entry: int = 0) -> "Image":
        return cls.from_words(decode_words(data), entry=entry)

    @property
    def end(self) -> int:
        """One past the highest written address (0 for an empty image)."""
        return max(self.words) + 1 if self.words else 0

    def to_words(self) -> List[int]:
        """Dense word list from address 0 to the highest written address."""
        dense = [0] * self.end
        for addr, word in self.words.items():
            dense[addr] = word
        return dense

    def to_bytes(self) -> bytes:
        return encode_words(self.to_words())

    def __len__(self) -> int:
        return len(self.words)


def encode_words(words: List[int]) -> bytes:
    try:
        return struct.pack(f'<{len(words)}H', *words)
    except struct.error as e:
        raise ImageError(f"cannot encode words: {e}") from e


def decode_words(data: bytes) -> List[int]:
    if len(data) % 2:
        raise ImageError(f"image has odd length {len(data)}; expected 16-bit words")
    count = len(data) // 2
    if count > MEMORY_SIZE:
        raise ImageError(f"image has {count} words; memory holds {MEMORY_SIZE}")
    return list(struct.unpack(f'<{count}H', data))


def read_image(path_or_data: Union[str, Path, bytes], entry: int = 0) -> Image:
    """Load an image from a file path or raw bytes."""
    if isinstance(path_or_data, (str, Path)):
        data = Path(path_or_data).read_bytes()
    else:
        data = bytes(path_or_data)
    return Image.from_bytes(data, entry=entry)


def write_image(image: Union[Image, List[int]], path: Union[str, Path]) -> int:
    """Write an image file. Returns the number of bytes written."""
    if not isinstance(image, Image):
        image = Image.from_words(image)
    data = image.to_bytes()
    Path(path).write_bytes(data)
    return len(data)
