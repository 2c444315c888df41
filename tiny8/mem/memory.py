"""
tiny8 - 64K Flat Memory

One unified code+data store. There are no regions, no I/O windows and no
write protection: the image is Von Neumann style, so nothing distinguishes
code bytes from data bytes.

The assembler writes the encoded program in with load_binary(); the
emulator only reads. A Memory instance is owned by exactly one emulator
for the lifetime of a run.
"""

MEMORY_SIZE = 0x10000


class Memory:
    """64K byte-addressable memory backed by a bytearray."""

    def __init__(self, size: int = MEMORY_SIZE):
        if size <= 0 or size > MEMORY_SIZE:
            raise ValueError(f"memory size must be 1..{MEMORY_SIZE}, got {size}")
        self.size = size
        self._mem = bytearray(size)

    def __len__(self) -> int:
        return self.size

    # --- Core read ---

    def read8(self, addr: int) -> int:
        """Read 8-bit value. Addresses wrap at the 16-bit boundary."""
        return self._mem[(addr & 0xFFFF) % self.size]

    def read_block(self, start: int, length: int) -> bytes:
        """Copy `length` bytes starting at `start` (no wraparound)."""
        if start < 0 or length < 0 or start + length > self.size:
            raise IndexError(
                f"block ${start:04X}+{length} outside memory (size {self.size})")
        return bytes(self._mem[start:start + length])

    # --- Bulk load ---

    def load_binary(self, data: bytes, base_addr: int) -> int:
        """Copy `data` into memory at base_addr. Returns bytes written.

        The whole block must fit; nothing is written if it doesn't.
        """
        end = base_addr + len(data)
        if base_addr < 0 or end > self.size:
            raise ValueError(
                f"{len(data)} bytes at ${base_addr:04X} do not fit in "
                f"{self.size}-byte memory")
        self._mem[base_addr:end] = data
        return len(data)

    # --- Hex dump ---

    def hexdump(self, start: int, length: int = 256) -> str:
        """Produce an addressed hex dump of memory for debugging."""
        lines = []
        for offset in range(0, length, 16):
            addr = start + offset
            row = [self.read8(addr + i) for i in range(min(16, length - offset))]
            hex_bytes = ' '.join(f'{b:02X}' for b in row)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in row)
            lines.append(f'{addr & 0xFFFF:04X}  {hex_bytes:<47}  {ascii_bytes}')
        return '\n'.join(lines)
