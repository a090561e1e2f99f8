"""Phantom press classification.

A press observed by the UI layer is suspicious when no matching hardware
press happened recently, focus has not moved for a while, and the same
button keeps repeating.  :class:`HardwarePressCache` is the bounded record
of recent hardware presses that the classification relies on.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Optional

from .events import normalise_button

__all__ = ["HardwarePressCache", "PhantomClassifier", "PressClassification"]


logger = logging.getLogger(__name__)


class HardwarePressCache:
    """Bounded map of ``button -> last hardware press timestamp``."""

    def __init__(self, capacity: int = 64) -> None:
        if capacity <= 0:
            raise ValueError("HardwarePressCache requires a positive capacity")
        self._capacity = capacity
        self._last_down: "OrderedDict[str, float]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_down)

    def mark_down(self, button: str, timestamp: float) -> None:
        key = normalise_button(button)
        with self._lock:
            self._last_down[key] = float(timestamp)
            self._last_down.move_to_end(key)
            while len(self._last_down) > self._capacity:
                self._last_down.popitem(last=False)

    def last_down(self, button: str) -> Optional[float]:
        with self._lock:
            return self._last_down.get(normalise_button(button))

    def recently_pressed(self, button: str, now: float, within: float = 0.20) -> bool:
        last = self.last_down(button)
        return last is not None and now - last < within

    def clear(self) -> None:
        with self._lock:
            self._last_down.clear()


@dataclass(frozen=True, slots=True)
class PressClassification:
    button: str
    is_phantom: bool
    no_hardware: bool
    stale_focus: bool
    rapid_repetition: bool
    repeat_count: int


class PhantomClassifier:
    """Decide whether a UI-level press lacks a plausible hardware origin.

    Repeat counters are not locked; callers serialise :meth:`classify`.
    """

    def __init__(
        self,
        cache: HardwarePressCache,
        *,
        hardware_window: float = 0.20,
        focus_stale_after: float = 0.12,
        repeat_window: float = 2.0,
        rapid_repeat_limit: int = 5,
    ) -> None:
        self._cache = cache
        self._hardware_window = hardware_window
        self._focus_stale_after = focus_stale_after
        self._repeat_window = repeat_window
        self._rapid_repeat_limit = rapid_repeat_limit
        self._repeat_counts: Dict[str, int] = {}
        self._window_started: Optional[float] = None

    def reset(self) -> None:
        self._repeat_counts.clear()
        self._window_started = None

    def classify(
        self,
        button: str,
        now: float,
        last_focus_at: Optional[float],
    ) -> PressClassification:
        if self._window_started is None or now - self._window_started > self._repeat_window:
            self._repeat_counts.clear()
            self._window_started = now

        key = normalise_button(button)
        count = self._repeat_counts.get(key, 0) + 1
        self._repeat_counts[key] = count

        no_hardware = not self._cache.recently_pressed(button, now, self._hardware_window)
        stale = last_focus_at is None or now - last_focus_at > self._focus_stale_after
        rapid = count > self._rapid_repeat_limit
        phantom = no_hardware and stale and rapid
        if phantom:
            logger.warning(
                "Phantom press %s without hardware origin.",
                button,
                extra={
                    "event": "phantom.press",
                    "button": button,
                    "repeat_count": count,
                    "since_focus": None if last_focus_at is None else now - last_focus_at,
                },
            )
        return PressClassification(
            button=button,
            is_phantom=phantom,
            no_hardware=no_hardware,
            stale_focus=stale,
            rapid_repetition=rapid,
            repeat_count=count,
        )
