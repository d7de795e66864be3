"""
CHIP-8 VM — ALU Operations for the 8XYn family

Each function takes unsigned 8-bit operands and returns a tuple
(result_byte, vf_flag). The caller writes the result to VX first and the
flag to VF last, so VF holds the flag even when X is F.

Flag conventions:
  add    VF = 1 if the unsigned sum exceeds 255 (carry)
  sub    VF = 1 if the minuend is strictly greater (NOT borrow)
  shr    VF = bit 0 of the operand before the shift
  shl    VF = bit 7 of the operand before the shift, normalized to 0/1
"""


def add8(a: int, b: int) -> tuple:
    """VX + VY with carry (8XY4)."""
    total = a + b
    return (total & 0xFF, 1 if total > 0xFF else 0)


def sub8(a: int, b: int) -> tuple:
    """a - b with NOT-borrow (8XY5: a=VX, b=VY; 8XY7: a=VY, b=VX)."""
    return ((a - b) & 0xFF, 1 if a > b else 0)


def shr8(a: int) -> tuple:
    """Logical shift right by one (8XY6). No sign extension."""
    return ((a >> 1) & 0x7F, a & 0x01)


def shl8(a: int) -> tuple:
    """Shift left by one (8XYE)."""
    return ((a << 1) & 0xFF, (a >> 7) & 0x01)


def or8(a: int, b: int) -> int:
    return (a | b) & 0xFF


def and8(a: int, b: int) -> int:
    return a & b & 0xFF


def xor8(a: int, b: int) -> int:
    return (a ^ b) & 0xFF


def bcd(value: int) -> tuple:
    """Split a byte into (hundreds, tens, units) decimal digits (FX33)."""
    value &= 0xFF
    return (value // 100, (value // 10) % 10, value % 10)
