"""
CHIP-8 VM — Memory, Loader, Register and Timer Tests
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

import pytest

from chip8_vm.config import MAX_PROGRAM_SIZE, PROGRAM_START, EmulatorConfig
from chip8_vm.cpu import alu
from chip8_vm.cpu.regs import CallStack, Registers
from chip8_vm.emu import Chip8Emulator
from chip8_vm.errors import (
    ImageTooLarge, LoadError, MemoryBoundsError,
    StackOverflowError, StackUnderflowError,
)
from chip8_vm.mem.memory import FONTSET, Memory
from chip8_vm.periph.timer import TimerPeripheral


# ═══════════════════════════════════════════════
# Memory + loader
# ═══════════════════════════════════════════════

class TestMemory:

    def test_font_loaded_at_zero(self):
        mem = Memory()
        assert len(FONTSET) == 80
        assert mem.read_block(0x000, 80) == FONTSET

    def test_largest_image_fits(self):
        image = bytes((i * 7) & 0xFF for i in range(MAX_PROGRAM_SIZE))
        mem = Memory()
        mem.load_program(image)
        assert mem.read_block(PROGRAM_START, MAX_PROGRAM_SIZE) == image
        assert mem.read8(0xFFF) == image[-1]

    def test_oversized_image_rejected_untouched(self):
        mem = Memory()
        with pytest.raises(ImageTooLarge) as exc:
            mem.load_program(b'\x12' * (MAX_PROGRAM_SIZE + 1))
        assert isinstance(exc.value, LoadError)
        assert exc.value.size == MAX_PROGRAM_SIZE + 1
        assert mem.read8(PROGRAM_START) == 0

    def test_short_image_copies_exact_length(self):
        mem = Memory()
        mem.write8(0x203, 0xAA)
        mem.load_program(b'\x60\x01')
        assert mem.read16(0x200) == 0x6001
        assert mem.read8(0x203) == 0xAA

    @pytest.mark.parametrize("addr", [-1, 0x1000, 0xFFFF])
    def test_out_of_range_byte(self, addr):
        mem = Memory()
        with pytest.raises(MemoryBoundsError):
            mem.read8(addr)
        with pytest.raises(MemoryBoundsError):
            mem.write8(addr, 1)

    def test_read16_big_endian_and_bounds(self):
        mem = Memory()
        mem.write_block(0xFFE, [0xAB, 0xCD])
        assert mem.read16(0xFFE) == 0xABCD
        with pytest.raises(MemoryBoundsError):
            mem.read16(0xFFF)

    def test_write_masks_value(self):
        mem = Memory()
        mem.write8(0x300, 0x1FF)
        assert mem.read8(0x300) == 0xFF

    def test_clear_reloads_font(self):
        mem = Memory()
        mem.write8(0x000, 0x00)
        mem.write8(0x300, 0x55)
        mem.clear()
        assert mem.read8(0x000) == 0xF0
        assert mem.read8(0x300) == 0

    def test_hexdump(self):
        mem = Memory()
        mem.write_block(0x200, b'HI')
        line = mem.hexdump(0x200, 16).splitlines()[0]
        assert line.startswith('200  48 49 00')
        assert line.endswith('HI' + '.' * 14)

    def test_emulator_load_too_large(self):
        emu = Chip8Emulator()
        with pytest.raises(ImageTooLarge):
            emu.load_program(bytes(MAX_PROGRAM_SIZE + 1))


# ═══════════════════════════════════════════════
# Registers + call stack
# ═══════════════════════════════════════════════

class TestRegisters:

    def test_power_on_state(self):
        regs = Registers()
        assert regs.PC == 0x200
        assert regs.I == 0
        assert regs.SP == 0
        assert list(regs.V) == [0] * 16

    def test_set_v_wraps(self):
        regs = Registers()
        regs.set_V(3, 0x1FE)
        assert regs.V[3] == 0xFE

    def test_display(self):
        regs = Registers()
        regs.set_V(0xA, 0x05)
        text = regs.display()
        assert text.startswith("PC=0200 I=0000 SP=0")
        assert "VA=05" in text

    def test_stack_depth(self):
        stack = CallStack()
        for i in range(16):
            stack.push(0x200 + 2 * i)
        with pytest.raises(StackOverflowError):
            stack.push(0x300)
        assert len(stack) == 16
        assert stack.pop() == 0x21E

    def test_stack_underflow(self):
        with pytest.raises(StackUnderflowError):
            CallStack().pop()


class TestAlu:

    def test_bcd_digits(self):
        assert alu.bcd(234) == (2, 3, 4)
        assert alu.bcd(7) == (0, 0, 7)
        assert alu.bcd(255) == (2, 5, 5)

    def test_shift_flags(self):
        assert alu.shr8(0x01) == (0x00, 1)
        assert alu.shl8(0x80) == (0x00, 1)


# ═══════════════════════════════════════════════
# 60 Hz timers
# ═══════════════════════════════════════════════

class TestTimer:

    def test_one_second_in_one_call(self):
        t = TimerPeripheral()
        t.delay = 60
        t.sound = 60
        assert t.update(1000) == 60
        assert t.delay == 0
        assert t.sound == 0

    @pytest.mark.parametrize("chunk_ms, count", [(1, 1000), (10, 100), (16, 62.5), (250, 4)])
    def test_one_second_in_many_calls(self, chunk_ms, count):
        t = TimerPeripheral()
        t.delay = 60
        whole = int(count)
        for _ in range(whole):
            t.update(chunk_ms)
        if count != whole:
            t.update(chunk_ms * (count - whole))
        assert t.delay == 0
        assert t.ticks == 60

    def test_partial_period_accumulates(self):
        t = TimerPeripheral()
        t.delay = 10
        assert t.update(16) == 0
        assert t.delay == 10
        assert t.update(1) == 1
        assert t.delay == 9

    def test_never_negative(self):
        t = TimerPeripheral()
        t.delay = 3
        t.update(5000)
        assert t.delay == 0
        assert not t.sound_active

    def test_values_masked_to_byte(self):
        t = TimerPeripheral()
        t.delay = 0x1FF
        assert t.delay == 0xFF

    @pytest.mark.parametrize("bad", [-5, float('nan'), float('inf')])
    def test_invalid_elapsed_clamped(self, bad, caplog):
        t = TimerPeripheral()
        t.delay = 5
        with caplog.at_level(logging.WARNING, logger="chip8_vm.periph.timer"):
            assert t.update(bad) == 0
        assert t.delay == 5
        assert t.pending_ms == 0
        assert "clamped" in caplog.text

    def test_reset(self):
        t = TimerPeripheral()
        t.delay = 5
        t.update(10)
        t.reset()
        assert t.delay == 0
        assert t.pending_ms == 0
        assert t.ticks == 0


class TestConfig:

    def test_defaults(self):
        cfg = EmulatorConfig()
        assert cfg.frame_hz == 60.0
        assert cfg.max_steps is None

    def test_rom_path_normalized(self):
        cfg = EmulatorConfig(rom_path="roms/pong.ch8")
        assert cfg.rom_path.name == "pong.ch8"

    @pytest.mark.parametrize("kwargs", [{"frame_hz": -1}, {"max_steps": -1}])
    def test_rejects_negative(self, kwargs):
        with pytest.raises(ValueError):
            EmulatorConfig(**kwargs)
