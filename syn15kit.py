#!/usr/bin/env python3
"""
syn15kit - command line toolkit for the syn15 machine
=====================================================

    syn15kit asm     Assemble source to a binary image (or print a listing)
    syn15kit disasm  Disassemble a binary image to assembler text
    syn15kit run     Execute an image (or an .asm source) on the VM

Examples:
    syn15kit asm fact.asm -o fact.bin
    syn15kit asm fact.asm --listing
    syn15kit disasm fact.bin --start 0 --count 20
    syn15kit run fact.bin --entry 0 --max-steps 100000
    syn15kit run hello.asm --input "abc" --trace -v

Exit status: 0 on success or clean HALT, 1 on assembly / image errors,
VM faults, or an exhausted step budget.
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from syn15 import __version__
from syn15.assembler import Assembler, AssemblerError
from syn15.config import RunConfig, load_config
from syn15.disassembler import disassemble_to_text
from syn15.emu import Syn15Emulator, StopReason
from syn15.image import ImageError, read_image
from syn15.log_setup import set_console_level, setup_logging
from syn15.periph.console import ConsoleDevice

log = logging.getLogger("syn15.kit")


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...) or decimal."""
    value = value.strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    return int(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="syn15kit",
        description="syn15 toolkit: assemble, disassemble, run",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  asm        Assemble source to a little-endian word image
  disasm     Disassemble an image to re-assemblable text
  run        Execute an image on the virtual machine
""",
    )
    parser.add_argument("--version", action="version", version=f"syn15kit {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More console logging (-v info, -vv debug)")
    parser.add_argument("--log-file", type=Path, default=None,
                        help="Also write a DEBUG log to this file")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── asm ──────────────────────────────────────────────────────────────
    p_asm = sub.add_parser("asm", help="Assemble source to a binary image")
    p_asm.add_argument("input", help="Input .asm file")
    p_asm.add_argument("-o", "--output", help="Output file (.bin, or .lst for a listing)")
    p_asm.add_argument("--listing", action="store_true", help="Print listing to stdout")

    # ── disasm ───────────────────────────────────────────────────────────
    p_dis = sub.add_parser("disasm", help="Disassemble a binary image")
    p_dis.add_argument("input", help="Input .bin file")
    p_dis.add_argument("--start", type=parse_int_arg, default=0,
                       help="First address to decode (default 0)")
    p_dis.add_argument("--end", type=parse_int_arg, default=None,
                       help="Stop before this address")
    p_dis.add_argument("--count", type=parse_int_arg, default=0,
                       help="Stop after this many lines")
    p_dis.add_argument("--words", action="store_true",
                       help="Append raw words as a comment on each line")
    p_dis.add_argument("-o", "--output", help="Output file (default: stdout)")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Execute an image on the VM")
    p_run.add_argument("input", help="Input .bin image or .asm source")
    p_run.add_argument("--config", type=Path, default=None,
                       help="JSON run configuration (entry, max_steps, trace, log_level)")
    p_run.add_argument("--entry", type=parse_int_arg, default=None,
                       help="Entry address (default: $START or 0)")
    p_run.add_argument("--max-steps", type=parse_int_arg, default=None,
                       help="Stop after this many instructions")
    p_run.add_argument("--trace", action="store_true",
                       help="Print an instruction trace to stderr when done")
    p_run.add_argument("--input", dest="input_text", default=None,
                       help="Console input text (default: read stdin)")

    return parser


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

# ── asm ──────────────────────────────────────────────────────────────────
def cmd_asm(args) -> int:
    source = Path(args.input).read_text(encoding="utf-8")

    asm = Assembler()
    try:
        image = asm.assemble(source)
    except AssemblerError as e:
        print(f"Assembly error: {e}", file=sys.stderr)
        return 1

    if args.listing or not args.output:
        print(asm.get_listing())
        return 0

    out = Path(args.output)
    if out.suffix.lower() == ".lst":
        out.write_text(asm.get_listing() + "\n", encoding="utf-8")
        print(f"Listing -> {out}")
    else:
        data = image.to_bytes()
        out.write_bytes(data)
        print(f"Assembled {len(image)} words ({len(data)} bytes, entry {image.entry}) -> {out}")
    return 0


# ── disasm ───────────────────────────────────────────────────────────────
def cmd_disasm(args) -> int:
    try:
        image = read_image(args.input)
    except ImageError as e:
        print(f"Image error: {e}", file=sys.stderr)
        return 1

    text = disassemble_to_text(image, args.start, args.end,
                               show_words=args.words, count=args.count)

    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        print(f"Disassembled {len(image)} words -> {args.output}")
    else:
        print(text)
    return 0


# ── run ──────────────────────────────────────────────────────────────────
def _run_config(args) -> RunConfig:
    config = load_config(args.config) if args.config else RunConfig()
    overrides = {}
    if args.entry is not None:
        overrides["entry"] = args.entry
    if args.max_steps is not None:
        overrides["max_steps"] = args.max_steps
    if args.trace:
        overrides["trace"] = True
    return replace(config, **overrides)


def cmd_run(args) -> int:
    path = Path(args.input)
    try:
        if path.suffix.lower() == ".asm":
            image = Assembler().assemble(path.read_text(encoding="utf-8"))
        else:
            image = read_image(path)
    except (AssemblerError, ImageError) as e:
        print(f"Load error: {e}", file=sys.stderr)
        return 1

    config = _run_config(args)
    if not args.verbose:
        set_console_level(config.log_level)

    def echo(code: int):
        sys.stdout.write(chr(code))
        sys.stdout.flush()

    if args.input_text is not None:
        console = ConsoleDevice(on_output=echo)
        console.feed(args.input_text)
        console.close()
    else:
        console = ConsoleDevice(stream=sys.stdin, on_output=echo)

    emu = Syn15Emulator(console)
    emu.load_image(image, entry=config.entry)
    emu.enable_trace(config.trace)
    log.info("running %s from %d (max %s steps)", path, emu.regs.PC, config.max_steps)

    reason = emu.run(config.max_steps)

    if config.trace:
        print(emu.get_trace(), file=sys.stderr)

    if reason == StopReason.HALT:
        log.info("halted after %d steps", emu.steps)
        return 0
    if reason == StopReason.ERROR:
        print(f"\nVM fault: {emu.fault}", file=sys.stderr)
        return 1
    if reason == StopReason.TIMEOUT:
        print(f"\nStep budget of {config.max_steps} used up at pc={emu.regs.PC}",
              file=sys.stderr)
        return 1
    print(f"\nStopped: {reason.value} at pc={emu.regs.PC}", file=sys.stderr)
    return 1


COMMANDS = {
    "asm": cmd_asm,
    "disasm": cmd_disasm,
    "run": cmd_run,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    console_level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    setup_logging(console_level=console_level, log_file=args.log_file)

    handler = COMMANDS[args.command]
    try:
        return handler(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
