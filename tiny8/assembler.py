"""
tiny8 Two-Pass Assembler.

Assembles tiny8 assembly text into a flat byte image and loads it into
Memory at a caller-chosen origin.

Source format:
  - one instruction or one label per line
  - a line ending in ':' declares a label       e.g.  loop:
  - '//' starts a comment that runs to end of line
  - tokens are separated by whitespace, commas or semicolons
  - mnemonics, register names and labels are case-insensitive
  - integers are decimal or 0x-prefixed hexadecimal, optionally signed

Operand encoding, resolved in this priority order:
  1. register name a/b/c         → selector byte 0/1/2
  2. label                       → the label's address byte (must be ≤ $FF)
  3. integer literal             → (value & 0x7F) | 0x80

How the two passes work:
  Pass 1: Fold over the lines with a running address starting at the
          origin. Labels bind to the current address; instructions advance
          it by 1 + operand count. The result is a read-only label table.
  Pass 2: A second, independent fold that emits the encoded bytes using
          the finished label table.

  Both passes reject an unknown mnemonic the same way, so a source that
  passes pass 1 never fails pass 2 on a mnemonic.
"""

from __future__ import annotations
from typing import List, Mapping, Optional, Tuple
from dataclasses import dataclass
from types import MappingProxyType
import logging
import re

from . import isa
from .mem.memory import Memory, MEMORY_SIZE

__all__ = [
    'Assembler', 'AssemblerError', 'UnknownInstruction', 'MalformedOperand',
    'AssemblySyntaxError', 'assemble', 'load_program', 'format_hex',
]

logger = logging.getLogger(__name__)


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class UnknownInstruction(AssemblerError):
    """Mnemonic is not in the instruction table."""


class MalformedOperand(AssemblerError):
    """Operand is not a register, a usable label, or an integer literal."""


class AssemblySyntaxError(AssemblerError):
    """Line structure is wrong: operand count, bad or duplicate label."""


# ──────────────────────────────────────────────
# Line Parser
# ──────────────────────────────────────────────

_SEPARATORS = re.compile(r'[\s,;]+')
_LABEL_NAME = re.compile(r'^[A-Za-z_.][A-Za-z0-9_.]*$')
_INT_LITERAL = re.compile(r'^[+-]?(?:0[xX][0-9A-Fa-f]+|[0-9]+)$')


@dataclass
class AsmLine:
    """Parsed assembly source line."""
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    operands: Tuple[str, ...] = ()
    line_num: int = 0
    raw: str = ""


def _parse_line(line: str, line_num: int) -> AsmLine:
    """Split one source line into a label or a mnemonic + operand tokens."""
    result = AsmLine(line_num=line_num, raw=line)

    text = line.split('//', 1)[0].strip()
    if not text:
        return result

    if text.endswith(':'):
        name = text[:-1].strip()
        if not _LABEL_NAME.match(name):
            raise AssemblySyntaxError(f"invalid label name '{name}'", line_num, line)
        result.label = name.lower()
        return result

    tokens = [t for t in _SEPARATORS.split(text) if t]
    if not tokens:
        return result
    result.mnemonic = tokens[0].lower()
    result.operands = tuple(tokens[1:])
    return result


def parse_source(source: str) -> List[AsmLine]:
    return [_parse_line(line, i) for i, line in enumerate(source.splitlines(), 1)]


# ──────────────────────────────────────────────
# Operand Analysis
# ──────────────────────────────────────────────

def _parse_int(token: str, line: AsmLine) -> int:
    """Parse a decimal or 0x-hex literal."""
    if not _INT_LITERAL.match(token):
        raise MalformedOperand(
            f"cannot parse operand '{token}' as register, label or integer",
            line.line_num, line.raw)
    sign = -1 if token.startswith('-') else 1
    digits = token.lstrip('+-')
    if digits[:2] in ('0x', '0X'):
        return sign * int(digits[2:], 16)
    return sign * int(digits, 10)


def encode_operand(token: str, labels: Mapping[str, int], line: AsmLine) -> int:
    """Encode one operand token to its byte. Registers win over labels."""
    key = token.lower()
    if key in isa.REGISTER_NAMES:
        return isa.REGISTER_NAMES[key]
    if key in labels:
        addr = labels[key]
        if addr > 0xFF:
            raise MalformedOperand(
                f"label '{key}' is at ${addr:04X}; operands can only address $00-$FF",
                line.line_num, line.raw)
        return addr
    value = _parse_int(token, line)
    return (value & isa.IMMEDIATE_MASK) | isa.IMMEDIATE_FLAG


def _spec_for(line: AsmLine) -> isa.InstructionSpec:
    spec = isa.lookup(line.mnemonic)
    if spec is None:
        raise UnknownInstruction(f"unknown instruction: {line.mnemonic}",
                                 line.line_num, line.raw)
    return spec


# ──────────────────────────────────────────────
# Passes
# ──────────────────────────────────────────────

def resolve_labels(lines: List[AsmLine], origin: int = 0) -> Mapping[str, int]:
    """Pass 1: compute every label's address. Returns a read-only table."""
    labels = {}
    addr = origin
    for line in lines:
        if line.label is not None:
            if line.label in labels:
                raise AssemblySyntaxError(
                    f"label '{line.label}' already defined at ${labels[line.label]:04X}",
                    line.line_num, line.raw)
            labels[line.label] = addr
        elif line.mnemonic is not None:
            addr += _spec_for(line).size
    if addr > MEMORY_SIZE:
        raise AssemblerError(
            f"program ends at ${addr:X}, past the end of the 64K address space")
    return MappingProxyType(labels)


def encode_line(line: AsmLine, labels: Mapping[str, int]) -> bytes:
    """Pass 2 for a single instruction line."""
    spec = _spec_for(line)
    if len(line.operands) != spec.operand_count:
        raise AssemblySyntaxError(
            f"{spec.mnemonic} takes {spec.operand_count} operand(s), "
            f"got {len(line.operands)}", line.line_num, line.raw)
    data = bytearray([spec.opcode])
    for token in line.operands:
        data.append(encode_operand(token, labels, line))
    return bytes(data)


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass tiny8 assembler.

    Usage:
        asm = Assembler(origin=0)
        binary = asm.assemble(source_text)
        print(asm.get_listing())
    """

    def __init__(self, origin: int = 0):
        if not 0 <= origin < MEMORY_SIZE:
            raise AssemblerError(f"origin ${origin:X} is outside the 64K address space")
        self.origin = origin
        self.labels: Mapping[str, int] = MappingProxyType({})
        self.binary: bytes = b''
        self._lines: List[AsmLine] = []
        self._records: List[Tuple[int, bytes, AsmLine]] = []

    def assemble(self, source: str) -> bytes:
        """Assemble source text and return the encoded bytes.

        Any error aborts the whole run; self.binary is only replaced once
        both passes have succeeded.
        """
        lines = parse_source(source)
        labels = resolve_labels(lines, self.origin)
        logger.debug("pass 1: %d label(s) %s", len(labels), dict(labels))

        out = bytearray()
        records = []
        for line in lines:
            if line.mnemonic is None:
                continue
            data = encode_line(line, labels)
            records.append((self.origin + len(out), data, line))
            out += data
        logger.debug("pass 2: %d instruction(s), %d byte(s) at $%04X",
                     len(records), len(out), self.origin)

        self._lines = lines
        self._records = records
        self.labels = labels
        self.binary = bytes(out)
        return self.binary

    def load(self, memory: Memory, source: str) -> int:
        """Assemble and copy the result into memory at the origin."""
        data = self.assemble(source)
        try:
            return memory.load_binary(data, self.origin)
        except ValueError as e:
            raise AssemblerError(str(e)) from e

    def get_listing(self) -> str:
        """Return a human-readable listing showing address, bytes, and source."""
        lines = [f"{'ADDR':>6}  {'BYTES':<10}  SOURCE", "-" * 50]
        by_line = {rec[2].line_num: rec for rec in self._records}
        for asmline in self._lines:
            raw = asmline.raw.strip()
            if asmline.line_num in by_line:
                addr, data, _ = by_line[asmline.line_num]
                hex_str = ' '.join(f'{b:02X}' for b in data)
                lines.append(f"${addr:04X}  {hex_str:<10}  {raw}")
            elif raw:
                lines.append(f"{'':6}  {'':10}  {raw}")
        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str, origin: int = 0) -> bytes:
    """Assemble source text, return the encoded bytes."""
    return Assembler(origin).assemble(source)


def load_program(source: str, memory: Memory, origin: int = 0) -> int:
    """Assemble source into memory at origin. Returns bytes written."""
    return Assembler(origin).load(memory, source)


def format_hex(data: bytes, per_line: int = 16) -> str:
    """Uppercase hex bytes, space separated, `per_line` to a line."""
    rows = []
    for i in range(0, len(data), per_line):
        rows.append(' '.join(f'{b:02X}' for b in data[i:i + per_line]))
    return '\n'.join(rows)
