"""
CHIP-8 VM — Exception Hierarchy

Engine faults (stack and memory bounds) are raised inside instruction
handlers and converted to Fault outcomes by Chip8Emulator.step(). Load
errors propagate to the caller before any instruction runs.
"""


class Chip8Error(Exception):
    """Base class for all emulator errors."""
    pass


class LoadError(Chip8Error):
    """Raised when a program image cannot be loaded."""
    pass


class ImageTooLarge(LoadError):
    """Raised when a program image does not fit in $200–$FFF."""
    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(
            f"Program image is {size} bytes; only {capacity} bytes fit at $200")


class MemoryBoundsError(Chip8Error):
    """Raised on any memory access outside $000–$FFF."""
    def __init__(self, addr: int, length: int = 1):
        self.addr = addr
        self.length = length
        if length == 1:
            msg = f"Memory access out of range: ${addr:04X}"
        else:
            msg = f"Memory access out of range: ${addr:04X} (+{length} bytes)"
        super().__init__(msg)


class StackOverflowError(Chip8Error):
    """Raised when a call would nest deeper than 16 levels."""
    pass


class StackUnderflowError(Chip8Error):
    """Raised on return with an empty call stack."""
    pass
