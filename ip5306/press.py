"""
KEY button emulation and operating-mode tracking for the IP5306.

The chip is woken by one short press on KEY and shut down by two short
presses. Both are synthesized by pulling the line low for a few times the
chip's short-press threshold and then releasing it. Right after a press the
mode estimate is held for a guard window so the next evaluation does not
read a transition that is still in flight. The window is measured from
the moment the press sequence starts.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from .constants import DOUBLE_CLICK_GAP_MS, PRESS_PULSE_MS, STATE_GUARD_MS
from .platform import LineLevel, LineMode, Platform


class PowerMode(Enum):
    UNKNOWN = "unknown"
    SLEEP = "sleep"
    WORKING = "working"
    WAKING_UP = "waking_up"
    SHUTTING_DOWN = "shutting_down"


TRANSITIONAL = (PowerMode.WAKING_UP, PowerMode.SHUTTING_DOWN)


class PressStateMachine:
    def __init__(
        self,
        platform: Platform,
        probe: Optional[Callable[[], bool]] = None,
        pulse_ms: int = PRESS_PULSE_MS,
        gap_ms: int = DOUBLE_CLICK_GAP_MS,
        guard_ms: int = STATE_GUARD_MS,
    ) -> None:
        self.platform = platform
        # True while the chip is working; IRQ line by default.
        self.probe = probe if probe is not None else platform.interrupt
        self.pulse_ms = pulse_ms
        self.gap_ms = gap_ms
        self.guard_ms = guard_ms
        self.mode = PowerMode.UNKNOWN
        self.changed_at: Optional[float] = None

    def _pulse(self) -> None:
        button = self.platform.button
        button.set_mode(LineMode.OUTPUT)
        button.set_level(LineLevel.LOW)
        self.platform.sleep_ms(self.pulse_ms)
        button.set_mode(LineMode.FLOATING)

    def _enter(self, mode: PowerMode, started_at: float) -> None:
        self.changed_at = started_at
        self.platform.logger.info("IP5306: mode %s -> %s", self.mode.value, mode.value)
        self.mode = mode

    def wake_up(self) -> bool:
        """Single press. Only valid while asleep; blocks for one pulse."""
        if self.mode != PowerMode.SLEEP:
            self.platform.logger.warning("IP5306: wake up ignored in mode %s", self.mode.value)
            return False
        started_at = self.platform.monotonic_ms()
        self._pulse()
        self._enter(PowerMode.WAKING_UP, started_at)
        return True

    def shutdown(self) -> bool:
        """Double press. Only valid while working; blocks for two pulses and the gap."""
        if self.mode != PowerMode.WORKING:
            self.platform.logger.warning("IP5306: shutdown ignored in mode %s", self.mode.value)
            return False
        started_at = self.platform.monotonic_ms()
        self._pulse()
        self.platform.sleep_ms(self.gap_ms)
        self._pulse()
        self._enter(PowerMode.SHUTTING_DOWN, started_at)
        return True

    def in_guard(self, now: float) -> bool:
        return (
            self.mode in TRANSITIONAL
            and self.changed_at is not None
            and now - self.changed_at < self.guard_ms
        )

    def step(self, now: Optional[float] = None) -> PowerMode:
        """Periodic evaluation; call once per control-loop tick."""
        if now is None:
            now = self.platform.monotonic_ms()
        if self.in_guard(now):
            return self.mode

        mode = PowerMode.WORKING if self.probe() else PowerMode.SLEEP
        if mode != self.mode:
            self.platform.logger.info("IP5306: mode %s -> %s", self.mode.value, mode.value)
            self.mode = mode
            self.changed_at = now
        return self.mode
