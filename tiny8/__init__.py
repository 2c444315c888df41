"""
tiny8 - A Minimal Virtual 8-bit Computer
========================================
A mnemonic assembly language, a two-pass assembler, and an interpreter
that runs the assembled image against a three-register CPU, counting
cycles as it goes.

Architecture:
    ┌──────────┐    ┌───────────┐    ┌──────────┐    ┌────────────┐
    │  Source  │───>│ Assembler │───>│  Memory  │───>│  Emulator  │
    │  (.asm)  │    │ (2 passes)│    │ (64K)    │    │ (fetch/    │
    └──────────┘    └───────────┘    └──────────┘    │  execute)  │
                          │                          └────────────┘
                          └───────── isa.py ─────────────┘

    - isa.py:           Instruction table shared by both ends
    - assembler.py:     Label resolution + encoding
    - mem/memory.py:    Flat 64K byte store
    - cpu/regs.py:      A, B, C, CMP, PC, cycle counter
    - cpu/alu.py:       Byte-wide arithmetic, wraps modulo 256
    - emu.py:           Dispatch loop, cycle accounting, tracing
    - config.py:        Machine profiles and logging setup
"""

__version__ = "0.1.0"

from typing import Optional

from .isa import InstructionSpec, INSTRUCTIONS, lookup
from .assembler import (
    Assembler, AssemblerError, UnknownInstruction, MalformedOperand,
    AssemblySyntaxError, assemble, load_program, format_hex,
)
from .mem.memory import Memory
from .cpu.regs import Registers
from .emu import (
    Tiny8Emulator, MachineState, TraceEntry,
    MachineFault, UnknownOpcode, DivisionByZero,
)
from .config import MachineProfile, PROFILES, get_profile


def run_source(source: str, *, profile: Optional[MachineProfile] = None,
               trace: bool = False) -> Tiny8Emulator:
    """Assemble and run source to completion.

    Full pipeline: Assembler -> Memory -> Tiny8Emulator.

    Args:
        source: tiny8 assembly text.
        profile: machine profile (default: PROFILES['default']).
        trace: record per-instruction trace entries.

    Returns:
        The emulator after it stopped; inspect .state, .fault, .regs,
        .output and get_trace().
    """
    profile = profile or PROFILES['default']
    emu = Tiny8Emulator(Memory(profile.memory_size), output=lambda v: None,
                        max_cycles=profile.max_cycles)
    emu.load_program(source, origin=profile.origin)
    emu.enable_trace(trace)
    emu.run()
    return emu
