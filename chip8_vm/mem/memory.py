"""
CHIP-8 VM — 4K Memory + Font Table + Program Loader

Memory is a flat 4096-byte store with no I/O region and no write
protection: the font table at $000 is only immutable by convention
(programs never write below $200).

The loader copies exactly len(image) bytes to $200 and rejects images
larger than the 3584 bytes available there. Every access is bounds
checked; an address outside $000–$FFF raises MemoryBoundsError, which the
engine reports as a MEMORY_BOUNDS fault.
"""

import logging
from typing import Iterable

from ..config import MEMORY_SIZE, PROGRAM_START, MAX_PROGRAM_SIZE, FONT_BASE
from ..errors import ImageTooLarge, MemoryBoundsError

log = logging.getLogger(__name__)


# Built-in hex digit glyphs 0–F, 5 rows each, MSB = leftmost pixel.
FONTSET = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


class Memory:
    """4096-byte CHIP-8 address space.

    The font table is loaded at construction and on clear(). Program
    images go through load_program(), which validates the image length
    against the space between $200 and $FFF.
    """

    def __init__(self):
        self._mem = bytearray(MEMORY_SIZE)
        self.load_font()

    # --- Core read/write ---

    def _check(self, addr: int, length: int = 1):
        if addr < 0 or addr + length > MEMORY_SIZE:
            raise MemoryBoundsError(addr, length)

    def read8(self, addr: int) -> int:
        """Read one byte."""
        self._check(addr)
        return self._mem[addr]

    def write8(self, addr: int, value: int):
        """Write one byte (value is masked to 8 bits)."""
        self._check(addr)
        self._mem[addr] = value & 0xFF

    def read16(self, addr: int) -> int:
        """Read a big-endian 16-bit word (opcode fetch order)."""
        self._check(addr, 2)
        return (self._mem[addr] << 8) | self._mem[addr + 1]

    def read_block(self, addr: int, length: int) -> bytes:
        """Read length bytes starting at addr."""
        self._check(addr, length)
        return bytes(self._mem[addr:addr + length])

    def write_block(self, addr: int, data: Iterable[int]):
        """Write a sequence of bytes starting at addr."""
        data = bytes(data)
        self._check(addr, len(data))
        self._mem[addr:addr + len(data)] = data

    # --- Loading ---

    def load_font(self):
        """Copy the built-in glyph table to FONT_BASE."""
        self._mem[FONT_BASE:FONT_BASE + len(FONTSET)] = FONTSET

    def load_program(self, image: bytes):
        """Copy a program image to $200.

        Raises ImageTooLarge if the image exceeds 3584 bytes. Memory is
        left untouched when the image is rejected.
        """
        image = bytes(image)
        if len(image) > MAX_PROGRAM_SIZE:
            raise ImageTooLarge(len(image), MAX_PROGRAM_SIZE)
        self._mem[PROGRAM_START:PROGRAM_START + len(image)] = image
        log.info("Loaded %d-byte program at $%03X", len(image), PROGRAM_START)

    def clear(self):
        """Zero all memory and reload the font table."""
        self._mem[:] = bytes(MEMORY_SIZE)
        self.load_font()

    # --- Debugging ---

    def snapshot(self, start: int = 0x000, end: int = MEMORY_SIZE - 1) -> bytes:
        """Return a copy of memory from start to end inclusive."""
        self._check(start, end - start + 1)
        return bytes(self._mem[start:end + 1])

    def hexdump(self, start: int, length: int = 256) -> str:
        """Produce a hex dump of memory for debugging."""
        lines = []
        end = min(start + length, MEMORY_SIZE)
        for addr in range(start, end, 16):
            row = self._mem[addr:min(addr + 16, end)]
            hex_bytes = ' '.join(f'{b:02X}' for b in row)
            ascii_bytes = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in row)
            lines.append(f'{addr:03X}  {hex_bytes:<47}  {ascii_bytes}')
        return '\n'.join(lines)

    def __len__(self) -> int:
        return MEMORY_SIZE
