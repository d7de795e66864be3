"""
CHIP-8 VM — Cycle Driver and chip8kit CLI Tests

The driver runs against a fake clock so pacing and timer cadence are
deterministic.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

import pytest

import chip8kit
from chip8_vm.driver import CycleDriver, StopReason
from chip8_vm.emu import Chip8Emulator, FaultReason, OutcomeKind
from chip8_vm.log_setup import setup_logging


def _program(*words):
    return b''.join(w.to_bytes(2, 'big') for w in words)


def _emu(*words):
    emu = Chip8Emulator()
    emu.load_program(_program(*words))
    return emu


class FakeClock:
    """Advances by a fixed number of milliseconds on every read."""

    def __init__(self, step_ms):
        self.now = 100.0
        self.step = step_ms / 1000.0
        self.calls = 0

    def __call__(self):
        self.calls += 1
        t = self.now
        self.now += self.step
        return t


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger("chip8_vm")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


# ═══════════════════════════════════════════════
# CycleDriver
# ═══════════════════════════════════════════════

class TestCycleDriver:

    def test_runs_to_halt(self):
        emu = _emu(0x6001, 0x0000)
        result = CycleDriver(emu, clock=FakeClock(1), frame_hz=0).run()
        assert result.reason is StopReason.HALT
        assert result.outcome.kind is OutcomeKind.HALTED
        assert result.steps == 2

    def test_stops_on_fault(self):
        emu = _emu(0x00EE)
        result = CycleDriver(emu, clock=FakeClock(1), frame_hz=0).run()
        assert result.reason is StopReason.FAULT
        assert result.outcome.reason is FaultReason.STACK_UNDERFLOW
        assert result.steps == 1

    def test_step_limit(self):
        emu = _emu(0x1200)
        result = CycleDriver(emu, clock=FakeClock(1), frame_hz=0).run(max_steps=25)
        assert result.reason is StopReason.LIMIT
        assert result.steps == 25
        assert emu.steps == 25

    def test_elapsed_time_feeds_timers(self):
        """603C; F015; spin. 62 steps 10 ms apart → 36 ticks after DT=60"""
        emu = _emu(0x603C, 0xF015, 0x1204)
        driver = CycleDriver(emu, clock=FakeClock(10), frame_hz=0)
        driver.run(max_steps=62)
        assert emu.delay_timer == 24

    def test_first_tick_has_no_elapsed_time(self):
        emu = _emu(0x1200)
        emu.timer.delay = 5
        driver = CycleDriver(emu, clock=FakeClock(1000), frame_hz=0)
        driver.tick()
        assert emu.delay_timer == 5
        driver.tick()
        assert emu.delay_timer == 0

    def test_cancel(self):
        emu = _emu(0x1200)
        polls = []

        def should_stop():
            polls.append(1)
            return len(polls) > 3

        result = CycleDriver(emu, clock=FakeClock(1), frame_hz=0,
                             should_stop=should_stop).run()
        assert result.reason is StopReason.CANCELLED
        assert result.steps == 3

    def test_on_frame_called_every_step(self):
        emu = _emu(0x6001, 0x6102, 0x0000)
        frames = []
        CycleDriver(emu, clock=FakeClock(1), frame_hz=0,
                    on_frame=lambda e: frames.append(e.regs.PC)).run()
        assert frames == [0x202, 0x204, 0x204]

    def test_breakpoint_and_resume(self):
        emu = _emu(0x6001, 0x6102, 0x6203, 0x0000)
        emu.add_breakpoint(0x204)
        driver = CycleDriver(emu, clock=FakeClock(1), frame_hz=0)

        result = driver.run()
        assert result.reason is StopReason.BREAK
        assert result.steps == 2
        assert emu.regs.PC == 0x204

        result = driver.run()
        assert result.reason is StopReason.HALT
        assert emu.regs.V[2] == 3

    def test_pacing_sleeps_remaining_frame_time(self):
        emu = _emu(0x1200)
        sleeps = []
        driver = CycleDriver(emu, clock=FakeClock(1), sleep=sleeps.append, frame_hz=100)
        driver.run(max_steps=3)
        assert len(sleeps) == 3
        assert all(s == pytest.approx(0.009) for s in sleeps)

    def test_rejects_negative_rate(self):
        with pytest.raises(ValueError):
            CycleDriver(_emu(), frame_hz=-1)


# ═══════════════════════════════════════════════
# chip8kit CLI
# ═══════════════════════════════════════════════

@pytest.fixture
def rom(tmp_path):
    """Draws glyph 0 at (0,0), then halts."""
    path = tmp_path / "glyph.ch8"
    path.write_bytes(_program(0x6A05, 0xA000, 0x6000, 0xD005, 0x0000))
    return path


class TestCli:

    def test_run_to_halt(self, rom, capsys):
        assert chip8kit.main(["run", str(rom)]) == 0
        out = capsys.readouterr().out
        assert "HALT" in out
        assert "PC=$208" in out
        assert "█" in out

    def test_run_fault_exit_code(self, tmp_path, capsys):
        path = tmp_path / "bad.ch8"
        path.write_bytes(_program(0x00EE))
        assert chip8kit.main(["run", str(path)]) == 1
        assert "FAULT" in capsys.readouterr().out

    def test_run_step_limit(self, tmp_path, capsys):
        path = tmp_path / "spin.ch8"
        path.write_bytes(_program(0x1200))
        assert chip8kit.main(["run", str(path), "--max-steps", "50"]) == 0
        assert "LIMIT after 50 steps" in capsys.readouterr().out

    def test_run_scripted_key_press(self, tmp_path, capsys):
        path = tmp_path / "key.ch8"
        path.write_bytes(_program(0xF30A, 0x0000))
        assert chip8kit.main(["run", str(path), "--press", "B@3"]) == 0
        out = capsys.readouterr().out
        assert "HALT" in out
        assert "0B" in out

    def test_run_breakpoint(self, rom, capsys):
        assert chip8kit.main(["run", str(rom), "--break", "0x204"]) == 0
        assert "BREAK" in capsys.readouterr().out

    def test_run_trace(self, rom, capsys):
        assert chip8kit.main(["run", str(rom), "--trace"]) == 0
        assert "$200: 6A05  LD    VA, #$05" in capsys.readouterr().out

    def test_run_rejects_oversized_rom(self, tmp_path, capsys):
        path = tmp_path / "big.ch8"
        path.write_bytes(bytes(3585))
        assert chip8kit.main(["run", str(path)]) == 1
        assert "3585" in capsys.readouterr().out

    def test_run_bad_press(self, rom):
        assert chip8kit.main(["run", str(rom), "--press", "G@1"]) == 1

    def test_missing_rom(self, tmp_path):
        assert chip8kit.main(["run", str(tmp_path / "nope.ch8")]) == 1

    def test_disasm_to_file(self, rom, tmp_path):
        out = tmp_path / "glyph.lst"
        assert chip8kit.main(["disasm", str(rom), "-o", str(out)]) == 0
        lines = out.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "$200: 6A05  LD    VA, #$05"
        assert lines[-1] == "$208: 0000  HALT"

    def test_info(self, rom, capsys):
        assert chip8kit.main(["info", str(rom)]) == 0
        out = capsys.readouterr().out
        assert "10 bytes" in out
        assert "yes" in out

    def test_info_oversized(self, tmp_path):
        path = tmp_path / "big.ch8"
        path.write_bytes(bytes(4000))
        assert chip8kit.main(["info", str(path)]) == 1

    def test_no_command_prints_help(self, capsys):
        assert chip8kit.main([]) == 0
        assert "chip8kit" in capsys.readouterr().out

    @pytest.mark.parametrize("text, value", [("0x200", 0x200), ("$2A0", 0x2A0), ("1ff", 0x1FF)])
    def test_parse_hex(self, text, value):
        assert chip8kit._parse_hex(text) == value

    def test_parse_press(self):
        assert chip8kit._parse_press("a@10") == (0xA, 10, 5)
        assert chip8kit._parse_press("3@0:2") == (0x3, 0, 2)
        with pytest.raises(ValueError):
            chip8kit._parse_press("10@5")

    def test_run_writes_log_file(self, rom, tmp_path):
        log_dir = tmp_path / "logs"
        assert chip8kit.main(["run", str(rom), "--log-file", str(log_dir)]) == 0
        logs = list(log_dir.glob("chip8_vm_*.log"))
        assert len(logs) == 1
        text = logs[0].read_text(encoding="utf-8")
        assert "logging to" in text
        assert "Loaded 10-byte program" in text


class TestLogSetup:

    def test_second_call_is_noop(self, tmp_path):
        logger = setup_logging(log_dir=tmp_path, rich_console=False)
        count = len(logger.handlers)
        assert count == 2
        assert setup_logging(log_dir=tmp_path) is logger
        assert len(logger.handlers) == count
        assert len(list(tmp_path.glob("*.log"))) == 1
