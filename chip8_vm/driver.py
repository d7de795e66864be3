"""
CHIP-8 VM — Cycle Driver

Sequences emulation steps against a wall clock. The driver owns no UI:
hosts hand it an on_frame callback (render, audio) and a should_stop
predicate (window closed, Ctrl-C), and it calls step() exactly once per
frame with the real elapsed time since the previous frame.

Termination reasons:
  HALT:      the program reached the $0000 sentinel
  FAULT:     the engine reported a fatal fault
  BREAK:     PC hit a breakpoint before a step
  LIMIT:     max_steps reached
  CANCELLED: should_stop() returned True
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .emu import Chip8Emulator, CycleOutcome, OutcomeKind, CONTINUE

log = logging.getLogger(__name__)


class StopReason(Enum):
    HALT = 'HALT'
    FAULT = 'FAULT'
    BREAK = 'BREAK'
    LIMIT = 'LIMIT'
    CANCELLED = 'CANCELLED'


@dataclass
class RunResult:
    reason: StopReason
    outcome: CycleOutcome
    steps: int


class CycleDriver:
    """Drive a Chip8Emulator from a monotonic clock.

    clock returns seconds (time.perf_counter by default); sleep is used
    for pacing when frame_hz > 0. Both are injectable so tests can run
    against a fake clock.
    """

    def __init__(self, emulator: Chip8Emulator,
                 clock: Callable[[], float] = time.perf_counter,
                 sleep: Callable[[float], None] = time.sleep,
                 frame_hz: float = 60.0,
                 on_frame: Optional[Callable[[Chip8Emulator], None]] = None,
                 should_stop: Optional[Callable[[], bool]] = None):
        if frame_hz < 0:
            raise ValueError(f"frame_hz must be >= 0, got {frame_hz}")
        self.emu = emulator
        self.clock = clock
        self.sleep = sleep
        self.frame_hz = frame_hz
        self.on_frame = on_frame
        self.should_stop = should_stop
        self._last: Optional[float] = None

    def tick(self) -> CycleOutcome:
        """Run one step with the wall time elapsed since the previous tick."""
        now = self.clock()
        elapsed_ms = 0.0 if self._last is None else (now - self._last) * 1000.0
        self._last = now
        outcome = self.emu.step(elapsed_ms)
        if self.on_frame is not None:
            self.on_frame(self.emu)
        return outcome

    def run(self, max_steps: Optional[int] = None) -> RunResult:
        """Tick until halt, fault, breakpoint, cancellation or max_steps."""
        period = 1.0 / self.frame_hz if self.frame_hz else 0.0
        steps = 0
        outcome = CONTINUE

        while True:
            if self.should_stop is not None and self.should_stop():
                reason = StopReason.CANCELLED
                break
            if max_steps is not None and steps >= max_steps:
                reason = StopReason.LIMIT
                break
            # a breakpoint at the starting PC is stepped over so run() can resume
            if steps and self.emu.at_breakpoint() and not self.emu.is_waiting_for_key:
                reason = StopReason.BREAK
                break

            outcome = self.tick()
            frame_start = self._last
            steps += 1

            if outcome.kind is OutcomeKind.HALTED:
                reason = StopReason.HALT
                break
            if outcome.kind is OutcomeKind.FAULT:
                reason = StopReason.FAULT
                break

            if period:
                remaining = period - (self.clock() - frame_start)
                if remaining > 0:
                    self.sleep(remaining)

        log.info("Run stopped: %s after %d steps (%s)", reason.value, steps, outcome)
        return RunResult(reason, outcome, steps)
