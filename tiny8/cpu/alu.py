"""
tiny8 - ALU Operations

Pure byte-wide functions. Every result is reduced modulo 256 (unsigned
byte semantics); there are no carry/overflow flags in this machine, only
the CMP flag that `cmp8` produces.
"""


def add8(a: int, b: int) -> int:
    return (a + b) & 0xFF


def sub8(a: int, b: int) -> int:
    return (a - b) & 0xFF


def mul8(a: int, b: int) -> int:
    """Multiply, keep the low byte of the 16-bit product."""
    return (a * b) & 0xFF


def div8(a: int, b: int) -> int:
    """Unsigned integer division. Caller must reject b == 0 first."""
    return (a // b) & 0xFF


def inc8(a: int) -> int:
    return (a + 1) & 0xFF


def dec8(a: int) -> int:
    return (a - 1) & 0xFF


def and8(a: int, b: int) -> int:
    return a & b & 0xFF


def or8(a: int, b: int) -> int:
    return (a | b) & 0xFF


def xor8(a: int, b: int) -> int:
    return (a ^ b) & 0xFF


def not8(a: int) -> int:
    return ~a & 0xFF


def nand8(a: int, b: int) -> int:
    return ~(a & b) & 0xFF


def nor8(a: int, b: int) -> int:
    return ~(a | b) & 0xFF


def cmp8(a: int, b: int) -> int:
    """0 when equal, 1 otherwise - the value stored in CMP."""
    return 0 if (a & 0xFF) == (b & 0xFF) else 1
