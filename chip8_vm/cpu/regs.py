"""
CHIP-8 VM — CPU Register Set + Call Stack

Register model:
  V0–VF  — 16 general-purpose 8-bit registers
           VF doubles as carry / NOT-borrow / shifted-bit / collision flag
  I      — 16-bit index register (a 12-bit pointer by convention; not clamped)
  PC     — 16-bit program counter, starts at $200
  stack  — 16 return addresses, SP counts entries in use (0–16)

There are no condition codes: every flag result lands in VF.
"""

from typing import List

from ..config import PROGRAM_START, REGISTER_COUNT, STACK_DEPTH
from ..errors import StackOverflowError, StackUnderflowError


class Registers:
    """CHIP-8 register file."""

    __slots__ = ('V', 'I', 'PC', 'stack')

    def __init__(self):
        self.V = bytearray(REGISTER_COUNT)  # bytearray enforces 0–255 on write
        self.I: int = 0
        self.PC: int = PROGRAM_START
        self.stack = CallStack()

    @property
    def VF(self) -> int:
        return self.V[0xF]

    @VF.setter
    def VF(self, value: int):
        self.V[0xF] = value & 0xFF

    @property
    def SP(self) -> int:
        return self.stack.sp

    def set_V(self, index: int, value: int):
        """Write register VX, wrapping modulo 256."""
        self.V[index] = value & 0xFF

    def set_I(self, value: int):
        """Write I, wrapping modulo $10000."""
        self.I = value & 0xFFFF

    def advance(self, count: int = 1):
        """Step PC past count instructions."""
        self.PC = (self.PC + 2 * count) & 0xFFFF

    # --- Display ---

    def display(self) -> str:
        """Format register state for debugging."""
        vregs = ' '.join(f"V{i:X}={v:02X}" for i, v in enumerate(self.V))
        return f"PC={self.PC:04X} I={self.I:04X} SP={self.SP:X} {vregs}"

    def reset(self):
        """Reset CPU to power-on state."""
        self.V[:] = bytes(REGISTER_COUNT)
        self.I = 0
        self.PC = PROGRAM_START
        self.stack.reset()


class CallStack:
    """Fixed-depth return-address stack.

    push() past the 16th entry raises StackOverflowError; pop() on an
    empty stack raises StackUnderflowError. A failed operation leaves the
    stack unchanged.
    """

    __slots__ = ('_entries', 'depth')

    def __init__(self, depth: int = STACK_DEPTH):
        self.depth = depth
        self._entries: List[int] = []

    @property
    def sp(self) -> int:
        return len(self._entries)

    def push(self, addr: int):
        if len(self._entries) >= self.depth:
            raise StackOverflowError(
                f"Exceeded max subroutine depth of {self.depth}")
        self._entries.append(addr & 0xFFFF)

    def pop(self) -> int:
        if not self._entries:
            raise StackUnderflowError("Cannot return with an empty call stack")
        return self._entries.pop()

    def peek(self) -> List[int]:
        """Copy of the stack, bottom first."""
        return list(self._entries)

    def reset(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
