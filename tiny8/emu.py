"""
tiny8 - Main Emulator Class

Integrates:
  - CPU registers (cpu/regs.py)
  - Memory (mem/memory.py)
  - Instruction table (isa.py) → opcode dispatch
  - ALU operations (cpu/alu.py)

Execution model, one step:
  1. Fetch opcode at PC, PC += 1
  2. Look up (InstructionSpec, handler) in the dispatch table
  3. Read operand_count operand bytes, PC += operand_count
  4. Execute handler → update registers / PC
  5. Add the instruction's cycle cost (+1 when jz/jnz branch is taken)
  6. If tracing, record (pc, opcode, cost, total)

Machine states:
  RUNNING  - steps may be executed
  HALTED   - halt instruction executed (normal end)
  FAULTED  - unknown opcode or division by zero (abnormal end)
  TIMEOUT  - optional cycle budget exhausted

A faulting instruction changes no register and costs no cycles.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
import logging

from . import isa
from .assembler import load_program
from .cpu import alu
from .cpu.regs import Registers
from .mem.memory import Memory

__all__ = [
    'Tiny8Emulator', 'MachineState', 'TraceEntry',
    'MachineFault', 'UnknownOpcode', 'DivisionByZero',
]

logger = logging.getLogger(__name__)


class MachineState(Enum):
    RUNNING = 'RUNNING'
    HALTED = 'HALTED'
    FAULTED = 'FAULTED'
    TIMEOUT = 'TIMEOUT'


class MachineFault(Exception):
    """Unrecoverable runtime condition; ends the run in FAULTED."""
    def __init__(self, message: str, pc: int):
        self.pc = pc
        super().__init__(message)


class UnknownOpcode(MachineFault):
    def __init__(self, opcode: int, pc: int):
        self.opcode = opcode
        super().__init__(f"unknown opcode ${opcode:02X} at PC=${pc:04X}", pc)


class DivisionByZero(MachineFault):
    def __init__(self, pc: int):
        super().__init__(f"division by zero at PC=${pc:04X}", pc)


@dataclass(frozen=True)
class TraceEntry:
    """One executed instruction as seen by the tracer."""
    pc: int
    opcode: int
    cycles: int
    total: int


Handler = Callable[[Tuple[int, ...]], int]


class Tiny8Emulator:
    """tiny8 virtual computer.

    Usage:
        emu = Tiny8Emulator()
        emu.load_program(source_text)
        state = emu.run()
        print(emu.regs.A, emu.regs.cycles)
    """

    def __init__(self, memory: Optional[Memory] = None,
                 output: Optional[Callable[[int], None]] = None,
                 max_cycles: Optional[int] = None):
        self.regs = Registers()
        self.mem = memory if memory is not None else Memory()
        self.max_cycles = max_cycles

        self.state = MachineState.RUNNING
        self.fault: Optional[MachineFault] = None

        # Values written by `print`, in order
        self.output: List[int] = []
        self._output_sink = output if output is not None else print

        self._trace = False
        self._trace_sink: Optional[Callable[[TraceEntry], None]] = None
        self._trace_output: List[TraceEntry] = []

        # PC of the instruction currently executing
        self._inst_pc = 0

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load_program(self, source: str, origin: int = 0) -> int:
        """Assemble source into memory at origin and point PC at it."""
        size = load_program(source, self.mem, origin)
        self.reset(pc=origin)
        logger.info("loaded %d bytes at $%04X", size, origin)
        return size

    def load_binary(self, data: bytes, base_addr: int = 0) -> int:
        """Load pre-encoded bytes and point PC at base_addr."""
        size = self.mem.load_binary(data, base_addr)
        self.reset(pc=base_addr)
        return size

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> MachineState:
        """Execute one instruction. Returns the machine state afterwards."""
        if self.state is not MachineState.RUNNING:
            return self.state

        pc = self._inst_pc = self.regs.PC
        opcode = self._fetch8()
        try:
            entry = self._dispatch.get(opcode)
            if entry is None:
                raise UnknownOpcode(opcode, pc)
            spec, handler = entry
            operands = tuple(self._fetch8() for _ in range(spec.operand_count))
            try:
                cost = spec.cycles + handler(operands)
            except _HaltException:
                cost = spec.cycles
                self.state = MachineState.HALTED
        except MachineFault as e:
            self.state = MachineState.FAULTED
            self.fault = e
            logger.debug("fault: %s (%s)\n%s", e, self.regs.display(),
                         self.mem.hexdump(pc, 16))
            return self.state

        self.regs.cycles += cost

        if self._trace:
            entry = TraceEntry(pc, opcode, cost, self.regs.cycles)
            self._trace_output.append(entry)
            if self._trace_sink is not None:
                self._trace_sink(entry)

        if self.state is MachineState.HALTED:
            logger.info("halted after %d cycles", self.regs.cycles)
        return self.state

    def run(self, max_cycles: Optional[int] = None) -> MachineState:
        """Run until halt, fault, or the cycle budget is spent.

        Args:
            max_cycles: overrides the budget given at construction.
                        None on both means no budget.
        """
        limit = max_cycles if max_cycles is not None else self.max_cycles
        while self.state is MachineState.RUNNING:
            if limit is not None and self.regs.cycles >= limit:
                self.state = MachineState.TIMEOUT
                logger.warning("cycle budget of %d exhausted at PC=$%04X",
                               limit, self.regs.PC)
                break
            self.step()
        return self.state

    def _fetch8(self) -> int:
        """Fetch 8-bit value at PC, advance PC."""
        val = self.mem.read8(self.regs.PC)
        self.regs.PC = (self.regs.PC + 1) & 0xFFFF
        return val

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Signature: handler(operands) -> extra cycles beyond the table cost.
    # operands are the raw operand bytes in source order.

    def _build_dispatch(self) -> Dict[int, Tuple[isa.InstructionSpec, Handler]]:
        """Build opcode → (spec, handler) from the shared instruction table."""
        return {
            spec.opcode: (spec, getattr(self, f'_op_{spec.mnemonic}'))
            for spec in isa.INSTRUCTIONS.values()
        }

    def _val(self, operand: int) -> int:
        return self.regs.resolve_operand(operand)

    def _apply(self, ops, fn) -> int:
        dst, src = ops
        self.regs.write_register(dst, fn(self._val(dst), self._val(src)))
        return 0

    # ── Data movement ──

    def _op_mov(self, ops):
        dst, src = ops
        self.regs.write_register(dst, self._val(src))
        return 0

    # ── Arithmetic ──

    def _op_add(self, ops):
        return self._apply(ops, alu.add8)

    def _op_sub(self, ops):
        return self._apply(ops, alu.sub8)

    def _op_mul(self, ops):
        return self._apply(ops, alu.mul8)

    def _op_div(self, ops):
        dst, src = ops
        divisor = self._val(src)
        if divisor == 0:
            raise DivisionByZero(self._inst_pc)
        self.regs.write_register(dst, alu.div8(self._val(dst), divisor))
        return 0

    def _op_inc(self, ops):
        (dst,) = ops
        self.regs.write_register(dst, alu.inc8(self._val(dst)))
        return 0

    def _op_dec(self, ops):
        (dst,) = ops
        self.regs.write_register(dst, alu.dec8(self._val(dst)))
        return 0

    # ── Bitwise ──

    def _op_and(self, ops):
        return self._apply(ops, alu.and8)

    def _op_or(self, ops):
        return self._apply(ops, alu.or8)

    def _op_xor(self, ops):
        return self._apply(ops, alu.xor8)

    def _op_not(self, ops):
        (dst,) = ops
        self.regs.write_register(dst, alu.not8(self._val(dst)))
        return 0

    def _op_nand(self, ops):
        return self._apply(ops, alu.nand8)

    def _op_nor(self, ops):
        return self._apply(ops, alu.nor8)

    # ── Compare ──

    def _op_cmp(self, ops):
        lhs, rhs = ops
        self.regs.write_register(isa.REG_CMP, alu.cmp8(self._val(lhs), self._val(rhs)))
        return 0

    # ── Control flow ──
    # Targets are raw bytes, never resolved as register/immediate.

    def _op_jmp(self, ops):
        self.regs.PC = ops[0]
        return 0

    def _op_jz(self, ops):
        if self.regs.zero:
            self.regs.PC = ops[0]
            return isa.BRANCH_TAKEN_PENALTY
        return 0

    def _op_jnz(self, ops):
        if not self.regs.zero:
            self.regs.PC = ops[0]
            return isa.BRANCH_TAKEN_PENALTY
        return 0

    # ── I/O ──

    def _op_print(self, ops):
        value = self._val(ops[0])
        self.output.append(value)
        self._output_sink(value)
        return 0

    # ── Halt ──

    def _op_halt(self, ops):
        raise _HaltException("HALT")

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True,
                     sink: Optional[Callable[[TraceEntry], None]] = None):
        """Enable per-instruction tracing. `sink` sees each entry as it happens."""
        self._trace = enable
        self._trace_sink = sink

    def get_trace(self) -> List[TraceEntry]:
        return list(self._trace_output)

    def reset(self, pc: int = 0):
        """Fresh registers and state; memory is left as loaded."""
        self.regs.reset(pc)
        self.state = MachineState.RUNNING
        self.fault = None
        self.output.clear()
        self._trace_output.clear()


# Internal exception for flow control
class _HaltException(Exception):
    pass
