"""
CHIP-8 VM — 16-Key Hex Keypad

The engine never talks to a keyboard driver. It consumes the InputSource
capability:

  is_key_down(key)        level query, used by EX9E / EXA1
  poll_key_press_event()  edge-triggered press events, used by FX0A
  clear_events()          drop queued presses when FX0A starts waiting

Keypad is the in-memory implementation. The host (window event loop,
scripted test input, the CLI) calls press()/release() as keys change;
each press that finds the key up queues one event. FX0A clears the queue
when it starts waiting, so only presses made during the wait count.

Physical keys are translated through a host-owned key map
(config.DEFAULT_KEYMAP) by press_physical()/release_physical().
"""

import logging
from collections import deque
from typing import Deque, Dict, Optional, Protocol, Tuple

from ..config import DEFAULT_KEYMAP, KEY_COUNT

log = logging.getLogger(__name__)


class InputSource(Protocol):
    """Input capability injected into the emulator."""

    def is_key_down(self, key: int) -> bool:
        ...

    def poll_key_press_event(self) -> Optional[int]:
        ...

    def clear_events(self):
        ...


class Keypad:
    """Keypad state plus a bounded queue of press events."""

    MAX_PENDING_EVENTS = 16

    def __init__(self, keymap: Optional[Dict[str, int]] = None):
        self._down = [False] * KEY_COUNT
        self._events: Deque[int] = deque(maxlen=self.MAX_PENDING_EVENTS)
        self.keymap = dict(DEFAULT_KEYMAP if keymap is None else keymap)
        for name, key in self.keymap.items():
            self._check(key)

    @staticmethod
    def _check(key: int):
        if not 0 <= key < KEY_COUNT:
            raise ValueError(f"Logical key out of range: {key!r}")

    # --- Host side ---

    def press(self, key: int):
        """Mark key down; queue a press event on the up→down edge."""
        self._check(key)
        if not self._down[key]:
            self._down[key] = True
            self._events.append(key)
            log.debug("Key %X down", key)

    def release(self, key: int):
        self._check(key)
        self._down[key] = False

    def release_all(self):
        self._down = [False] * KEY_COUNT

    def press_physical(self, name: str) -> Optional[int]:
        """Press the logical key bound to a physical key name, if any."""
        key = self.keymap.get(name.lower())
        if key is not None:
            self.press(key)
        return key

    def release_physical(self, name: str) -> Optional[int]:
        key = self.keymap.get(name.lower())
        if key is not None:
            self.release(key)
        return key

    def clear_events(self):
        self._events.clear()

    @property
    def state(self) -> Tuple[bool, ...]:
        return tuple(self._down)

    # --- InputSource ---

    def is_key_down(self, key: int) -> bool:
        return self._down[key & 0xF]

    def poll_key_press_event(self) -> Optional[int]:
        if self._events:
            return self._events.popleft()
        return None

    def reset(self):
        self.release_all()
        self.clear_events()
