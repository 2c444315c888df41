from .regs import Registers
