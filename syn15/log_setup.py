"""
syn15 - Logging setup

Library modules only call logging.getLogger(__name__); handlers are attached
here, once, by whoever hosts the machine (the syn15kit CLI, a test, an
embedding application).

  console  rich.logging.RichHandler, WARNING+ by default
  file     optional, DEBUG+ (instruction traces land here when enabled)
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    name: str = "syn15",
    level: int = logging.DEBUG,
    console_level: Union[int, str] = logging.WARNING,
    log_file: Optional[Path] = None,
    log_dir: Optional[Path] = None,
    rich_console: bool = True,
) -> logging.Logger:
    """
    Configure and return the package logger.

    log_file names the file log directly; log_dir creates
    ``<log_dir>/<name>_YYYYMMDD_HHMMSS.log`` instead. With neither, only the
    console handler is installed. Calling again returns the configured logger.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(level)

    # ── File handler: captures everything (DEBUG+) ──
    if log_file is None and log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_dir / f"{name}_{ts}.log"
    if log_file is not None:
        fh = logging.FileHandler(str(log_file), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(fh)

    # ── Console handler: only important stuff (WARNING+ default) ──
    if rich_console:
        ch = RichHandler(
            level=console_level,
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
    else:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(console_level)
        ch.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S",
        ))
    logger.addHandler(ch)
    logger.propagate = False

    return logger


def set_console_level(level: Union[int, str], name: str = "syn15"):
    """Change the console handler threshold; the file log keeps DEBUG."""
    for handler in logging.getLogger(name).handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)
