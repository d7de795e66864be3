"""
chip8_vm — CHIP-8 Virtual Machine
=================================
A CHIP-8 interpreter core with no windowing, audio or keyboard-driver
dependencies. Hosts drive it one step per frame and talk to it through
narrow capabilities:

    ┌───────────┐  elapsed ms  ┌──────────────┐   step()   ┌──────────────────┐
    │ Host loop │─────────────>│ CycleDriver  │───────────>│  Chip8Emulator   │
    │ (render,  │<─────────────│ (driver.py)  │<───────────│  (emu.py)        │
    │  audio)   │   outcome    └──────────────┘  outcome   └──────────────────┘
    └───────────┘                                  │  regs / memory / timers /
          │ press / release                        │  framebuffer / decoder
          └──────────────> Keypad (InputSource) <──┘

    - emu.py:            fetch-decode-execute engine + CycleOutcome
    - cpu/decoder.py:    pure opcode → Instruction decoder
    - cpu/regs.py:       V0–VF, I, PC, call stack
    - mem/memory.py:     4K memory, font table, program loader
    - periph/:           framebuffer, 60 Hz timers, keypad
    - disassembler.py:   ROM listings from the same decoder
"""

__version__ = "1.0.0"
__author__ = "KingAI"

from .config import EmulatorConfig
from .errors import (
    Chip8Error, LoadError, ImageTooLarge, MemoryBoundsError,
    StackOverflowError, StackUnderflowError,
)
from .emu import (
    Chip8Emulator, CycleOutcome, OutcomeKind, FaultReason,
    CONTINUE, HALTED, Fault,
)
from .driver import CycleDriver, RunResult, StopReason
from .periph.keypad import InputSource, Keypad
from .cpu.decoder import Instruction, Op, decode
from .disassembler import Chip8Disassembler, disassemble_bytes
