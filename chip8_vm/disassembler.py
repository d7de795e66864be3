"""
CHIP-8 Disassembler
===================
Turns a ROM image into a listing using the same decode() the engine runs,
so the listing always agrees with execution.

API Usage:
    from chip8_vm.disassembler import Chip8Disassembler

    dis = Chip8Disassembler()
    for r in dis.disassemble(rom_bytes, base_addr=0x200):
        print(r.format())   # "$200: 6A05  LD    VA, #$05"

Unknown words are listed as DW; a trailing odd byte is listed as DB.
"""

from dataclasses import dataclass
from typing import Dict, List

from .config import PROGRAM_START
from .cpu.decoder import Op, decode


@dataclass
class DisassembledInstruction:
    """One decoded word with all formatting data."""
    address: int
    raw_bytes: bytes
    mnemonic: str
    operand_str: str
    description: str
    op: Op = Op.UNKNOWN

    @property
    def hex_str(self) -> str:
        """Hex bytes formatted like '6A05'."""
        return self.raw_bytes.hex().upper()

    def format(self, show_description: bool = False) -> str:
        """Format as a single disassembly line."""
        asm = f"{self.mnemonic:5s} {self.operand_str}".rstrip()
        line = f"${self.address:03X}: {self.hex_str:4s}  {asm}"
        if show_description and self.description:
            line = f"{line:<36s}; {self.description}"
        return line


class Chip8Disassembler:
    """Linear-sweep CHIP-8 disassembler."""

    def __init__(self):
        self._stats: Dict[str, int] = {}

    def disassemble(self, data: bytes, base_addr: int = PROGRAM_START) -> List[DisassembledInstruction]:
        """Disassemble raw bytes, two bytes per instruction."""
        data = bytes(data)
        self._stats = {}
        results = []
        offset = 0
        while offset + 1 < len(data):
            results.append(self.decode_one(data, offset, base_addr))
            offset += 2
        if offset < len(data):
            results.append(DisassembledInstruction(
                address=base_addr + offset,
                raw_bytes=data[offset:offset + 1],
                mnemonic='DB',
                operand_str=f'${data[offset]:02X}',
                description='Trailing byte',
            ))
            self._count('DB')
        return results

    def decode_one(self, data: bytes, offset: int = 0,
                   base_addr: int = PROGRAM_START) -> DisassembledInstruction:
        """Decode the word at data[offset:offset + 2]."""
        opcode = (data[offset] << 8) | data[offset + 1]
        ins = decode(opcode)
        self._count(ins.mnemonic)
        return DisassembledInstruction(
            address=base_addr + offset,
            raw_bytes=bytes(data[offset:offset + 2]),
            mnemonic=ins.mnemonic,
            operand_str=ins.operands(),
            description=ins.description,
            op=ins.op,
        )

    def get_stats(self) -> Dict[str, int]:
        """Mnemonic counts from the last disassemble() call."""
        return dict(self._stats)

    def _count(self, mnemonic: str):
        self._stats[mnemonic] = self._stats.get(mnemonic, 0) + 1


def disassemble_bytes(data: bytes, base_addr: int = PROGRAM_START,
                      show_description: bool = False) -> str:
    """Convenience: full listing as text."""
    dis = Chip8Disassembler()
    return '\n'.join(r.format(show_description)
                     for r in dis.disassemble(data, base_addr))
