"""
CHIP-8 VM — Opcode Decoder

Maps a raw 16-bit opcode to an Instruction: an Op tag plus the operand
fields sliced out of the word. decode() is pure; it never touches memory
or machine state, so the engine, the disassembler and the tests all share
it.

Opcode fields:
  nnn  — low 12 bits (address)
  kk   — low 8 bits (immediate byte)
  x    — bits 8–11 (register VX)
  y    — bits 4–7 (register VY)
  n    — low 4 bits (sprite height / sub-op)

Families:
  The top nibble selects the family. Families $0, $8, $E and $F select the
  operation from a secondary nibble or byte; anything unrecognized there
  decodes to Op.UNKNOWN, which the engine treats as a logged no-op.
  The all-zero word decodes to Op.HALT (end-of-program sentinel).
"""

from dataclasses import dataclass
from enum import Enum


class Op(Enum):
    HALT = 'HALT'           # 0000
    CLS = 'CLS'             # 00E0
    RET = 'RET'             # 00EE
    JP = 'JP'               # 1NNN
    CALL = 'CALL'           # 2NNN
    SE_IMM = 'SE_IMM'       # 3XKK
    SNE_IMM = 'SNE_IMM'     # 4XKK
    SE_REG = 'SE_REG'       # 5XY0
    LD_IMM = 'LD_IMM'       # 6XKK
    ADD_IMM = 'ADD_IMM'     # 7XKK
    LD_REG = 'LD_REG'       # 8XY0
    OR = 'OR'               # 8XY1
    AND = 'AND'             # 8XY2
    XOR = 'XOR'             # 8XY3
    ADD_REG = 'ADD_REG'     # 8XY4
    SUB = 'SUB'             # 8XY5
    SHR = 'SHR'             # 8XY6
    SUBN = 'SUBN'           # 8XY7
    SHL = 'SHL'             # 8XYE
    SNE_REG = 'SNE_REG'     # 9XY0
    LD_I = 'LD_I'           # ANNN
    JP_V0 = 'JP_V0'         # BNNN
    RND = 'RND'             # CXKK
    DRW = 'DRW'             # DXYN
    SKP = 'SKP'             # EX9E
    SKNP = 'SKNP'           # EXA1
    LD_VX_DT = 'LD_VX_DT'   # FX07
    LD_VX_K = 'LD_VX_K'     # FX0A
    LD_DT_VX = 'LD_DT_VX'   # FX15
    LD_ST_VX = 'LD_ST_VX'   # FX18
    ADD_I_VX = 'ADD_I_VX'   # FX1E
    LD_F_VX = 'LD_F_VX'     # FX29
    LD_B_VX = 'LD_B_VX'     # FX33
    LD_MEM_VX = 'LD_MEM_VX' # FX55
    LD_VX_MEM = 'LD_VX_MEM' # FX65
    UNKNOWN = 'UNKNOWN'


# ──────────────────────────────────────────────
# Mnemonic table
# ──────────────────────────────────────────────
# Format: Op -> (mnemonic, operand_template, description)
# Operand templates are str.format() patterns over the Instruction fields.

OP_INFO = {
    Op.HALT:      ('HALT', '',                  'End-of-program sentinel'),
    Op.CLS:       ('CLS',  '',                  'Clear screen'),
    Op.RET:       ('RET',  '',                  'Return from subroutine'),
    Op.JP:        ('JP',   '${nnn:03X}',        'Jump to location NNN'),
    Op.CALL:      ('CALL', '${nnn:03X}',        'Call subroutine at NNN'),
    Op.SE_IMM:    ('SE',   'V{x:X}, #${kk:02X}', 'Skip next if VX == KK'),
    Op.SNE_IMM:   ('SNE',  'V{x:X}, #${kk:02X}', 'Skip next if VX != KK'),
    Op.SE_REG:    ('SE',   'V{x:X}, V{y:X}',    'Skip next if VX == VY'),
    Op.LD_IMM:    ('LD',   'V{x:X}, #${kk:02X}', 'Set VX = KK'),
    Op.ADD_IMM:   ('ADD',  'V{x:X}, #${kk:02X}', 'Set VX = VX + KK (no carry)'),
    Op.LD_REG:    ('LD',   'V{x:X}, V{y:X}',    'Set VX = VY'),
    Op.OR:        ('OR',   'V{x:X}, V{y:X}',    'Set VX = VX OR VY'),
    Op.AND:       ('AND',  'V{x:X}, V{y:X}',    'Set VX = VX AND VY'),
    Op.XOR:       ('XOR',  'V{x:X}, V{y:X}',    'Set VX = VX XOR VY'),
    Op.ADD_REG:   ('ADD',  'V{x:X}, V{y:X}',    'Set VX = VX + VY, VF = carry'),
    Op.SUB:       ('SUB',  'V{x:X}, V{y:X}',    'Set VX = VX - VY, VF = NOT borrow'),
    Op.SHR:       ('SHR',  'V{x:X}',            'Set VX = VX SHR 1, VF = shifted-out bit'),
    Op.SUBN:      ('SUBN', 'V{x:X}, V{y:X}',    'Set VX = VY - VX, VF = NOT borrow'),
    Op.SHL:       ('SHL',  'V{x:X}',            'Set VX = VX SHL 1, VF = shifted-out bit'),
    Op.SNE_REG:   ('SNE',  'V{x:X}, V{y:X}',    'Skip next if VX != VY'),
    Op.LD_I:      ('LD',   'I, ${nnn:03X}',     'Set I = NNN'),
    Op.JP_V0:     ('JP',   'V0, ${nnn:03X}',    'Jump to location NNN + V0'),
    Op.RND:       ('RND',  'V{x:X}, #${kk:02X}', 'Set VX = random byte AND KK'),
    Op.DRW:       ('DRW',  'V{x:X}, V{y:X}, {n}', 'Draw N-byte sprite from I at (VX, VY), VF = collision'),
    Op.SKP:       ('SKP',  'V{x:X}',            'Skip next if key VX is down'),
    Op.SKNP:      ('SKNP', 'V{x:X}',            'Skip next if key VX is up'),
    Op.LD_VX_DT:  ('LD',   'V{x:X}, DT',        'Set VX = delay timer'),
    Op.LD_VX_K:   ('LD',   'V{x:X}, K',         'Wait for a key press, store key in VX'),
    Op.LD_DT_VX:  ('LD',   'DT, V{x:X}',        'Set delay timer = VX'),
    Op.LD_ST_VX:  ('LD',   'ST, V{x:X}',        'Set sound timer = VX'),
    Op.ADD_I_VX:  ('ADD',  'I, V{x:X}',         'Set I = I + VX'),
    Op.LD_F_VX:   ('LD',   'F, V{x:X}',         'Set I = font glyph for digit VX'),
    Op.LD_B_VX:   ('LD',   'B, V{x:X}',         'Store BCD of VX at I, I+1, I+2'),
    Op.LD_MEM_VX: ('LD',   '[I], V{x:X}',       'Store V0..VX at I'),
    Op.LD_VX_MEM: ('LD',   'V{x:X}, [I]',       'Read V0..VX from I'),
    Op.UNKNOWN:   ('DW',   '${opcode:04X}',     'Unknown opcode'),
}


# Single-opcode families: top nibble -> Op
_FAMILY = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_IMM,
    0x4: Op.SNE_IMM,
    0x5: Op.SE_REG,
    0x6: Op.LD_IMM,
    0x7: Op.ADD_IMM,
    0x9: Op.SNE_REG,
    0xA: Op.LD_I,
    0xB: Op.JP_V0,
    0xC: Op.RND,
    0xD: Op.DRW,
}

# $0 family: full word
_SYSTEM = {
    0x00E0: Op.CLS,
    0x00EE: Op.RET,
}

# $8 family: low nibble
_ALU = {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# $E family: low byte
_KEYS = {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
}

# $F family: low byte
_MISC = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I_VX,
    0x29: Op.LD_F_VX,
    0x33: Op.LD_B_VX,
    0x55: Op.LD_MEM_VX,
    0x65: Op.LD_VX_MEM,
}


@dataclass(frozen=True)
class Instruction:
    """One decoded CHIP-8 instruction."""
    op: Op
    opcode: int

    @property
    def x(self) -> int:
        return (self.opcode >> 8) & 0xF

    @property
    def y(self) -> int:
        return (self.opcode >> 4) & 0xF

    @property
    def n(self) -> int:
        return self.opcode & 0xF

    @property
    def kk(self) -> int:
        return self.opcode & 0xFF

    @property
    def nnn(self) -> int:
        return self.opcode & 0xFFF

    @property
    def mnemonic(self) -> str:
        return OP_INFO[self.op][0]

    @property
    def description(self) -> str:
        return OP_INFO[self.op][2]

    def operands(self) -> str:
        """Operand text, e.g. 'VA, #$05'."""
        template = OP_INFO[self.op][1]
        return template.format(x=self.x, y=self.y, n=self.n, kk=self.kk,
                               nnn=self.nnn, opcode=self.opcode)

    def __str__(self) -> str:
        return f"{self.mnemonic:5s} {self.operands()}".rstrip()


def decode(opcode: int) -> Instruction:
    """Decode a 16-bit opcode. Never raises; unknown words give Op.UNKNOWN."""
    opcode &= 0xFFFF
    family = opcode >> 12

    if family == 0x0:
        if opcode == 0x0000:
            op = Op.HALT
        else:
            op = _SYSTEM.get(opcode, Op.UNKNOWN)
    elif family == 0x8:
        op = _ALU.get(opcode & 0x000F, Op.UNKNOWN)
    elif family == 0xE:
        op = _KEYS.get(opcode & 0x00FF, Op.UNKNOWN)
    elif family == 0xF:
        op = _MISC.get(opcode & 0x00FF, Op.UNKNOWN)
    else:
        op = _FAMILY[family]

    return Instruction(op, opcode)
