"""
CHIP-8 VM — Delay / Sound Timer Peripheral

Two 8-bit countdown timers decremented at a fixed 60 Hz, decoupled from
the host frame rate by a real-time accumulator:

  accumulator += elapsed_ms
  while accumulator >= 1000/60 ms:
      accumulator -= 1000/60 ms
      decrement both timers (floor at 0)

The accumulator is held scaled by TIMER_HZ (units of ms/60) so a whole
number of milliseconds is represented exactly. 1000 ms fed in one call or
in many small calls always produces exactly 60 decrements.
"""

import logging
import math

from ..config import TIMER_HZ

log = logging.getLogger(__name__)

# One timer period expressed in accumulator units (ms × TIMER_HZ)
_PERIOD_UNITS = 1000


class TimerPeripheral:
    """Delay timer (DT) + sound timer (ST)."""

    def __init__(self):
        self._delay = 0
        self._sound = 0
        self._accum = 0.0   # elapsed ms × TIMER_HZ not yet converted to ticks
        self.ticks = 0      # total 60 Hz ticks since reset

    @property
    def delay(self) -> int:
        return self._delay

    @delay.setter
    def delay(self, value: int):
        self._delay = value & 0xFF

    @property
    def sound(self) -> int:
        return self._sound

    @sound.setter
    def sound(self, value: int):
        self._sound = value & 0xFF

    @property
    def sound_active(self) -> bool:
        """True while the host should be producing the buzzer tone."""
        return self._sound > 0

    @property
    def pending_ms(self) -> float:
        """Elapsed time accumulated towards the next tick."""
        return self._accum / TIMER_HZ

    def update(self, elapsed_ms: float) -> int:
        """Advance by elapsed_ms wall-clock milliseconds.

        Negative, NaN and infinite inputs are clamped to zero so a bad
        host clock cannot corrupt the cadence. Returns the number of
        60 Hz ticks that elapsed.
        """
        if not isinstance(elapsed_ms, (int, float)) or not math.isfinite(elapsed_ms) \
                or elapsed_ms < 0:
            log.warning("Ignoring invalid elapsed time %r (clamped to 0)", elapsed_ms)
            elapsed_ms = 0

        self._accum += elapsed_ms * TIMER_HZ
        ticks = 0
        while self._accum >= _PERIOD_UNITS:
            self._accum -= _PERIOD_UNITS
            ticks += 1

        if ticks:
            self.ticks += ticks
            self._delay = max(0, self._delay - ticks)
            self._sound = max(0, self._sound - ticks)
        return ticks

    def reset(self):
        """Reset timer state."""
        self._delay = 0
        self._sound = 0
        self._accum = 0.0
        self.ticks = 0
