"""
syn15 - Machine constants and run configuration

Architecture constants are fixed by the instruction set and shared by the
VM, assembler and disassembler. RunConfig carries the knobs a host picks
when it runs an image (entry point, step budget, tracing, log level) and
can be loaded from a small JSON file:

    {"entry": 0, "max_steps": 1000000, "trace": false, "log_level": "WARNING"}
"""

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

# Word model
WORD_BITS = 15
MODULUS = 1 << WORD_BITS          # 32768
WORD_MASK = MODULUS - 1           # 0x7FFF
RAW_WORD_MAX = 0xFFFF             # largest value a 16-bit cell can hold

# Address space
MEMORY_SIZE = MODULUS             # 32768 cells
MAX_ADDRESS = MEMORY_SIZE - 1

# Register operands
REGISTER_COUNT = 8
REGISTER_BASE = MODULUS           # 32768 -> R0
MAX_OPERAND = REGISTER_BASE + REGISTER_COUNT - 1   # 32775 -> R7

DEFAULT_MAX_STEPS = 10_000_000


@dataclass
class RunConfig:
    """Settings for a single VM run. entry None keeps the image's own entry."""
    entry: Optional[int] = None
    max_steps: Optional[int] = DEFAULT_MAX_STEPS
    trace: bool = False
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.entry is not None and not 0 <= self.entry <= MAX_ADDRESS:
            raise ValueError(f"entry address {self.entry} outside 0..{MAX_ADDRESS}")
        if self.max_steps is not None and self.max_steps < 0:
            raise ValueError("max_steps must be non-negative")
        self.log_level = str(self.log_level).upper()

    @classmethod
    def from_dict(cls, data: dict) -> "RunConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**data)


def load_config(path: Union[str, Path]) -> RunConfig:
    """Read a RunConfig from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return RunConfig.from_dict(data)
