"""
CHIP-8 VM — Machine Constants and Host Configuration
=====================================================

Machine constants are fixed by the CHIP-8 architecture and shared by every
module. EmulatorConfig holds the host-side settings (ROM path, RNG seed,
frame pacing) that the command-line host and the cycle driver consume.

Memory map:
  $000–$04F  Built-in font set (16 glyphs × 5 bytes)
  $050–$1FF  Unused (interpreter area on the original hardware)
  $200–$FFF  Program image + work RAM (3584 bytes)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# =============================================================================
#  MEMORY
# =============================================================================
MEMORY_SIZE = 4096
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START   # 3584 bytes
FONT_BASE = 0x000
FONT_GLYPH_SIZE = 5


# =============================================================================
#  CPU
# =============================================================================
REGISTER_COUNT = 16
STACK_DEPTH = 16
FLAG_REGISTER = 0xF


# =============================================================================
#  DISPLAY
# =============================================================================
SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
SPRITE_WIDTH = 8


# =============================================================================
#  TIMERS
# =============================================================================
TIMER_HZ = 60


# =============================================================================
#  KEYPAD
#
#  Logical layout       Physical keys (QWERTY)
#    1 2 3 C              1 2 3 4
#    4 5 6 D              Q W E R
#    7 8 9 E              A S D F
#    A 0 B F              Z X C V
# =============================================================================
KEY_COUNT = 16

DEFAULT_KEYMAP = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}


# =============================================================================
#  HOST CONFIGURATION
# =============================================================================

@dataclass
class EmulatorConfig:
    """Host settings for one emulator run.

    rom_path:  ROM image to load
    seed:      RNG seed for CXKK; None seeds from the OS
    frame_hz:  driver pacing in steps per second; 0 disables pacing
    max_steps: stop after this many steps; None runs until halt/fault
    trace:     record a per-instruction trace
    """
    rom_path: Optional[Path] = None
    seed: Optional[int] = None
    frame_hz: float = 60.0
    max_steps: Optional[int] = None
    trace: bool = False

    def __post_init__(self):
        if self.rom_path is not None:
            self.rom_path = Path(self.rom_path)
        if self.frame_hz < 0:
            raise ValueError(f"frame_hz must be >= 0, got {self.frame_hz}")
        if self.max_steps is not None and self.max_steps < 0:
            raise ValueError(f"max_steps must be >= 0, got {self.max_steps}")
