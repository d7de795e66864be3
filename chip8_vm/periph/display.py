"""
CHIP-8 VM — 64×32 Monochrome Framebuffer

One byte per pixel (0 or 1), row-major, indexed y*64 + x. Sprites are
XOR-composited: each sprite row is one byte read MSB first, and every
pixel coordinate wraps modulo the screen size, so a sprite drawn at
x=60 continues at x=0.

The framebuffer is owned by the emulator; hosts receive read-only
snapshots for rendering.
"""

from typing import Iterable, Tuple

from ..config import SCREEN_WIDTH, SCREEN_HEIGHT, SPRITE_WIDTH


class Framebuffer:
    """Monochrome display with XOR sprite drawing and collision detection."""

    width = SCREEN_WIDTH
    height = SCREEN_HEIGHT

    def __init__(self):
        self._pixels = bytearray(SCREEN_WIDTH * SCREEN_HEIGHT)

    def clear(self):
        self._pixels[:] = bytes(len(self._pixels))

    def pixel(self, x: int, y: int) -> int:
        """Pixel value at (x, y); coordinates wrap."""
        return self._pixels[(y % SCREEN_HEIGHT) * SCREEN_WIDTH + (x % SCREEN_WIDTH)]

    def draw_sprite(self, x: int, y: int, rows: Iterable[int]) -> bool:
        """XOR a sprite onto the screen with its top-left corner at (x, y).

        Returns True if any pixel that was on got turned off (collision).
        """
        collision = False
        pixels = self._pixels
        for row, sprite_byte in enumerate(rows):
            py = (y + row) % SCREEN_HEIGHT
            base = py * SCREEN_WIDTH
            for col in range(SPRITE_WIDTH):
                bit = (sprite_byte >> (7 - col)) & 1
                if not bit:
                    continue
                idx = base + (x + col) % SCREEN_WIDTH
                if pixels[idx]:
                    collision = True
                pixels[idx] ^= 1
        return collision

    def snapshot(self) -> Tuple[bytes, ...]:
        """Immutable copy of the screen: 32 rows of 64 bytes (0/1)."""
        p = self._pixels
        return tuple(bytes(p[r * SCREEN_WIDTH:(r + 1) * SCREEN_WIDTH])
                     for r in range(SCREEN_HEIGHT))

    def lit_count(self) -> int:
        """Number of pixels currently on."""
        return sum(self._pixels)

    def render_text(self, on: str = '█', off: str = ' ') -> str:
        """Text rendering of the screen, one line per row."""
        return '\n'.join(
            ''.join(on if px else off for px in row) for row in self.snapshot())
