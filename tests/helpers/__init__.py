"""Shared builders for loopwatch tests."""

from __future__ import annotations

import random
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from loopwatch.detector import RunawayLoopDetector
from loopwatch.events import FOCUS, EventKind, EventRecord, PressKind
from loopwatch.history import HistoryBuffer

__all__ = [
    "NAVIGATION_BUTTONS",
    "build_history",
    "drive_detector",
    "focus_record",
    "loop_scenario",
    "navigation_walk",
    "press_record",
    "press_train",
]


NAVIGATION_BUTTONS: Tuple[str, ...] = ("up", "down", "left", "right", "select")

TimedEvent = Tuple[float, EventKind, Optional[str]]


def press_record(timestamp: float, button: str = "right", identifier: Optional[str] = None) -> EventRecord:
    return EventRecord(PressKind(button), identifier, timestamp)


def focus_record(timestamp: float, identifier: Optional[str] = "cell-0") -> EventRecord:
    return EventRecord(FOCUS, identifier, timestamp)


def build_history(records: Iterable[EventRecord], capacity: int = 100) -> HistoryBuffer:
    history = HistoryBuffer(capacity)
    for record in records:
        history.append(record)
    return history


def press_train(
    intervals: Sequence[float],
    *,
    start: float = 0.0,
    button: str = "right",
) -> List[EventRecord]:
    """Presses separated by ``intervals``; ``len(intervals) + 1`` records."""

    timestamps = [start]
    for interval in intervals:
        timestamps.append(timestamps[-1] + interval)
    return [press_record(timestamp, button) for timestamp in timestamps]


def loop_scenario() -> List[TimedEvent]:
    """Focus ping-pong between two cells interleaved with rapid swipes.

    Twenty focus events alternate strictly between ``cell-a`` and
    ``cell-b``; fifteen directional presses arrive 5 ms apart.
    """

    events: List[TimedEvent] = []
    for index in range(5):
        identifier = "cell-a" if index % 2 == 0 else "cell-b"
        events.append((index * 0.001, FOCUS, identifier))
    for index in range(15):
        at = 0.010 + index * 0.005
        events.append((at, PressKind("right"), None))
        identifier = "cell-a" if (index + 5) % 2 == 0 else "cell-b"
        events.append((at + 0.0025, FOCUS, identifier))
    return events


def navigation_walk(seed: int, count: int, *, start: float = 0.0) -> Iterator[TimedEvent]:
    """Human-paced random navigation: one press then one focus move per step."""

    rng = random.Random(seed)
    now = start
    position = 0
    for _ in range(count):
        now += rng.uniform(0.18, 0.65)
        button = rng.choice(NAVIGATION_BUTTONS)
        yield now, PressKind(button), None
        if button != "select":
            position += 1 if button in ("right", "down") else -1
        now += rng.uniform(0.02, 0.06)
        yield now, FOCUS, f"cell-{position}"


def drive_detector(detector: RunawayLoopDetector, clock, events: Iterable[TimedEvent]) -> None:
    for timestamp, kind, identifier in events:
        clock.set(timestamp)
        detector.process_event(kind, identifier)
