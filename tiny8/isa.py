"""
tiny8 - Instruction Set Table

The single catalogue of mnemonic ↔ opcode ↔ arity ↔ cycle cost.

Both the assembler (to size and validate instructions) and the emulator
(to build its dispatch table) read from INSTRUCTIONS, so the two can never
disagree on how many operand bytes follow an opcode.

Operand encoding (one byte per operand):
  0x00-0x03   register selector (A, B, C, CMP)
  0x80-0xFF   immediate value, low 7 bits carry the literal
  other       raw byte - used for jump targets and label addresses

Jump targets are a single raw byte, so control flow can only reach
$0000-$00FF even though PC is 16 bits wide.
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Optional

__all__ = [
    'InstructionSpec', 'INSTRUCTIONS', 'lookup',
    'REG_A', 'REG_B', 'REG_C', 'REG_CMP', 'REGISTER_NAMES', 'IMMEDIATE_FLAG',
    'IMMEDIATE_MASK', 'BRANCH_TAKEN_PENALTY',
]


# ──────────────────────────────────────────────
# Register selectors
# ──────────────────────────────────────────────

REG_A = 0
REG_B = 1
REG_C = 2
REG_CMP = 3

# Only A/B/C can be named in source; CMP is reachable only by selector value.
REGISTER_NAMES: Dict[str, int] = {'a': REG_A, 'b': REG_B, 'c': REG_C}

IMMEDIATE_FLAG = 0x80
IMMEDIATE_MASK = 0x7F


# ──────────────────────────────────────────────
# Instruction table
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class InstructionSpec:
    """One ISA entry."""
    mnemonic: str
    opcode: int
    operand_count: int
    cycles: int
    description: str = ""

    @property
    def size(self) -> int:
        """Encoded size in bytes: opcode + one byte per operand."""
        return 1 + self.operand_count


_TABLE: Dict[str, InstructionSpec] = {}


def _ins(mnemonic: str, opcode: int, operands: int, cycles: int, desc: str):
    """Register an instruction entry."""
    if mnemonic in _TABLE:
        raise ValueError(f"duplicate mnemonic: {mnemonic}")
    if any(spec.opcode == opcode for spec in _TABLE.values()):
        raise ValueError(f"duplicate opcode ${opcode:02X} for {mnemonic}")
    _TABLE[mnemonic] = InstructionSpec(mnemonic, opcode, operands, cycles, desc)


# ── Data movement ──
_ins('mov',   0x01, 2,  2, "dst <- src")

# ── Arithmetic ──
_ins('inc',   0x06, 1,  2, "dst <- dst + 1")
_ins('dec',   0x07, 1,  2, "dst <- dst - 1")
_ins('div',   0x08, 2, 10, "dst <- dst / src (faults when src is zero)")
_ins('mul',   0x09, 2,  6, "dst <- low byte of dst * src")
_ins('add',   0x10, 2,  3, "dst <- dst + src")
_ins('sub',   0x11, 2,  3, "dst <- dst - src")

# ── Bitwise ──
_ins('and',   0x12, 2,  3, "dst <- dst & src")
_ins('or',    0x13, 2,  3, "dst <- dst | src")
_ins('xor',   0x14, 2,  3, "dst <- dst ^ src")
_ins('not',   0x15, 1,  2, "dst <- ~dst")
_ins('nand',  0x16, 2,  3, "dst <- ~(dst & src)")
_ins('nor',   0x17, 2,  3, "dst <- ~(dst | src)")

# ── Compare ──
_ins('cmp',   0x18, 2,  3, "CMP <- 0 if lhs == rhs else 1")

# ── Control flow (+1 cycle when a conditional branch is taken) ──
_ins('jmp',   0x20, 1,  3, "PC <- target")
_ins('jz',    0x21, 1,  2, "PC <- target if CMP == 0")
_ins('jnz',   0x22, 1,  2, "PC <- target if CMP != 0")

# ── I/O ──
_ins('print', 0x40, 1,  3, "write operand value to output")

# ── Halt ──
_ins('halt',  0xFF, 0,  1, "stop execution")

INSTRUCTIONS = MappingProxyType(_TABLE)

BRANCH_TAKEN_PENALTY = 1


def lookup(mnemonic: str) -> Optional[InstructionSpec]:
    """Case-insensitive exact match on mnemonic. None if unknown."""
    return INSTRUCTIONS.get(mnemonic.lower())
