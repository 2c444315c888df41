"""
tiny8 - CPU Register Set

Register model:
  A    - 8-bit general register  (selector 0)
  B    - 8-bit general register  (selector 1)
  C    - 8-bit general register  (selector 2)
  CMP  - comparison flag         (selector 3), always 0 or 1
  PC   - 16-bit program counter
  cycles - running cycle counter, instrumentation only

A fresh Registers() is all zero. The emulator creates one per run.
"""

from ..isa import REG_A, REG_B, REG_C, REG_CMP, IMMEDIATE_FLAG, IMMEDIATE_MASK


class Registers:
    """tiny8 register file plus the two primitive operand accessors."""

    __slots__ = ('A', 'B', 'C', 'CMP', 'PC', 'cycles')

    def __init__(self):
        self.A: int = 0
        self.B: int = 0
        self.C: int = 0
        self.CMP: int = 0
        self.PC: int = 0
        self.cycles: int = 0

    # --- Operand access ---

    def resolve_operand(self, operand: int) -> int:
        """Decode an operand byte to its value.

        High bit set → 7-bit immediate. Selector 0-3 → register contents.
        Anything else is returned verbatim (a raw address byte).
        """
        if operand & IMMEDIATE_FLAG:
            return operand & IMMEDIATE_MASK
        if operand == REG_A:
            return self.A
        if operand == REG_B:
            return self.B
        if operand == REG_C:
            return self.C
        if operand == REG_CMP:
            return self.CMP
        return operand

    def write_register(self, selector: int, value: int):
        """Store into the register named by selector.

        CMP is normalized to 0/1. Selectors that name no register are
        ignored, matching a write to a nonexistent latch.
        """
        if selector == REG_A:
            self.A = value & 0xFF
        elif selector == REG_B:
            self.B = value & 0xFF
        elif selector == REG_C:
            self.C = value & 0xFF
        elif selector == REG_CMP:
            self.CMP = 1 if value else 0

    @property
    def zero(self) -> bool:
        """True when the last cmp found its operands equal."""
        return self.CMP == 0

    # --- Display ---

    def display(self) -> str:
        return (f"PC={self.PC:04X} A={self.A:02X} B={self.B:02X} "
                f"C={self.C:02X} CMP={self.CMP} CYC={self.cycles}")

    def reset(self, pc: int = 0):
        """Reset to power-on state with PC at the given entry point."""
        self.A = 0
        self.B = 0
        self.C = 0
        self.CMP = 0
        self.PC = pc & 0xFFFF
        self.cycles = 0
