#!/usr/bin/env python3
"""
tiny8vm - tiny8 assembler + virtual machine CLI

Usage:
    python tiny8vm.py <program.asm> [-S [--listing] | -trace] [--origin 0x00]
                      [--profile default|bounded] [--max-cycles N] [-v] [-q]

Modes:
    (default)  assemble, run, print `print` output and the cycle total
    -S         assemble only: dump the encoded bytes as hex, 16 per line
    -S --listing  assemble only: address, bytes and source for each line
    -trace     run, printing one line per executed instruction; the final
               halt gets a line too, so the last total matches the cycle total

Exit status:
    0  halted normally (or -S succeeded)
    1  file or assembly error
    2  runtime fault (unknown opcode, division by zero)
    3  cycle budget exhausted

Examples:
    python tiny8vm.py programs/countdown.asm
    python tiny8vm.py -S programs/countdown.asm
    python tiny8vm.py -trace programs/countdown.asm --max-cycles 500
"""

import argparse
import logging
import sys
from typing import List, Optional

from tiny8 import __version__
from tiny8.assembler import Assembler, AssemblerError, format_hex
from tiny8.config import PROFILES, get_profile, parse_int_arg, setup_logging
from tiny8.emu import MachineState, Tiny8Emulator, TraceEntry
from tiny8.mem.memory import Memory

logger = logging.getLogger('tiny8vm')

EXIT_OK = 0
EXIT_ASM_ERROR = 1
EXIT_FAULT = 2
EXIT_TIMEOUT = 3


def format_trace(entry: TraceEntry) -> str:
    return (f"PC={entry.pc:04X} OP={entry.opcode:02X} "
            f"+{entry.cycles} cycles (total={entry.total})")


def _print_trace(entry: TraceEntry):
    print(format_trace(entry), flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tiny8vm",
        description="tiny8 virtual 8-bit computer: assemble and run a program",
        epilog="Profiles: " + ", ".join(
            f"{name} ({p.description})" for name, p in PROFILES.items()),
    )
    parser.add_argument("program", help="Assembly source file")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-S", dest="dump", action="store_true",
                      help="Assemble only and print the encoded bytes as hex")
    mode.add_argument("-trace", dest="trace", action="store_true",
                      help="Print a trace line for every executed instruction, "
                           "halt included")
    parser.add_argument("--listing", action="store_true",
                        help="With -S, print address, bytes and source per line")
    parser.add_argument("--profile", default="default", choices=list(PROFILES),
                        help="Machine profile (default: default)")
    parser.add_argument("--origin", default=None,
                        help="Load address (decimal, 0x.. or $..)")
    parser.add_argument("--max-cycles", type=int, default=None,
                        help="Stop with exit status 3 after this many cycles")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Log to stderr (-v info, -vv debug)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only log errors")
    parser.add_argument("--version", action="version",
                        version=f"tiny8vm {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    try:
        with open(args.program, "r", encoding="utf-8") as f:
            source = f.read()
    except FileNotFoundError:
        print(f"Error: File not found: {args.program}", file=sys.stderr)
        return EXIT_ASM_ERROR
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading {args.program}: {e}", file=sys.stderr)
        return EXIT_ASM_ERROR

    try:
        origin = parse_int_arg(args.origin) if args.origin else None
    except ValueError:
        print(f"Error: bad --origin value: {args.origin}", file=sys.stderr)
        return EXIT_ASM_ERROR
    profile = get_profile(args.profile).override(origin=origin,
                                                 max_cycles=args.max_cycles)
    logger.debug("profile: %s", profile)

    emu = Tiny8Emulator(Memory(profile.memory_size),
                        max_cycles=profile.max_cycles)
    try:
        size = emu.load_program(source, origin=profile.origin)
    except AssemblerError as e:
        print(f"Assembly failed: {e}", file=sys.stderr)
        return EXIT_ASM_ERROR

    print(f"Loaded {size} bytes")

    if args.dump:
        if args.listing:
            asm = Assembler(profile.origin)
            asm.assemble(source)
            print(asm.get_listing())
        elif size:
            print(format_hex(emu.mem.read_block(profile.origin, size)))
        return EXIT_OK

    if args.trace:
        emu.enable_trace(True, sink=_print_trace)

    state = emu.run()

    if state is MachineState.HALTED:
        print(f"Total cycles: {emu.regs.cycles}")
        return EXIT_OK
    if state is MachineState.FAULTED:
        print(f"Runtime error: {emu.fault}", file=sys.stderr)
        return EXIT_FAULT
    print(f"Stopped: cycle budget of {profile.max_cycles} exhausted "
          f"at PC={emu.regs.PC:04X}", file=sys.stderr)
    return EXIT_TIMEOUT


if __name__ == "__main__":
    sys.exit(main())
