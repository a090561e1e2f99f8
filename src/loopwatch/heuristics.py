"""Heuristics scoring a bounded event history for runaway-loop evidence.

Each heuristic inspects a read-only view of the history and returns a
score in ``[0, 1]``:

``frequency`` ("machine gun")
    Share of recent press intervals that are faster than a human can
    produce.
``divergence`` ("black hole")
    Directional input that does not move focus.
``cadence`` ("metronome")
    Press intervals that are too regular to come from a person.

Insufficient history always yields ``0.0``; none of the heuristics raise
for data conditions.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping as MappingABC
from dataclasses import dataclass, fields
from typing import Any, Mapping, Sequence

import numpy as np

from .events import EventRecord

__all__ = [
    "HeuristicScores",
    "HeuristicThresholds",
    "cadence_score",
    "compute_scores",
    "divergence_score",
    "frequency_score",
    "press_intervals",
]


@dataclass(frozen=True, slots=True)
class HeuristicThresholds:
    """Tuned constants for the three heuristics.

    The divergence bands encode empirically chosen values, they are not
    derived properties of the detector and may be overridden through the
    detection configuration.
    """

    frequency_window: int = 10
    fast_interval: float = 0.025
    divergence_window: int = 20
    min_directional_presses: int = 10
    divergence_band_limits: tuple[int, int, int] = (0, 2, 5)
    divergence_band_scores: tuple[float, float, float] = (1.0, 0.8, 0.6)
    divergence_ratio_limits: tuple[float, float] = (0.10, 0.20)
    divergence_ratio_scores: tuple[float, float] = (0.4, 0.2)
    cadence_window: int = 15
    cadence_floor: float = 0.001
    cadence_ceiling: float = 0.01

    def __post_init__(self) -> None:
        for name in ("frequency_window", "cadence_window"):
            if getattr(self, name) < 2:
                raise ValueError(f"{name} must cover at least two presses")
        if self.divergence_window <= 0:
            raise ValueError("divergence_window must be positive")
        if self.cadence_ceiling <= 0.0:
            raise ValueError("cadence_ceiling must be positive")

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None = None) -> "HeuristicThresholds":
        """Build thresholds from a configuration mapping, ignoring unknown keys.

        Values that cannot be coerced, or that fail validation, keep their
        defaults.
        """

        if not isinstance(config, MappingABC):
            return cls()
        defaults = cls()
        values: dict[str, Any] = {}
        for field in fields(cls):
            if field.name not in config:
                continue
            fallback = getattr(defaults, field.name)
            value = _coerce_like(config[field.name], fallback)
            try:
                cls(**{field.name: value})
            except ValueError:
                continue
            values[field.name] = value
        return cls(**values)


@dataclass(frozen=True, slots=True)
class HeuristicScores:
    frequency: float = 0.0
    divergence: float = 0.0
    cadence: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {
            "frequencyScore": self.frequency,
            "divergenceScore": self.divergence,
            "cadenceScore": self.cadence,
        }


def _coerce_like(value: Any, fallback: Any) -> Any:
    if isinstance(fallback, tuple):
        if not isinstance(value, Iterable) or isinstance(value, (str, bytes)):
            return fallback
        items = list(value)
        if len(items) != len(fallback):
            return fallback
        try:
            return tuple(type(default)(item) for default, item in zip(fallback, items))
        except (TypeError, ValueError):
            return fallback
    if isinstance(fallback, bool) or value is None:
        return fallback
    try:
        return type(fallback)(value)
    except (TypeError, ValueError):
        return fallback


def press_intervals(records: Sequence[EventRecord]) -> np.ndarray:
    """Return consecutive timestamp deltas for ``records``."""

    if len(records) < 2:
        return np.empty(0, dtype=float)
    timestamps = np.fromiter((record.timestamp for record in records), dtype=float)
    return np.diff(timestamps)


def _recent_presses(history: Iterable[EventRecord], window: int) -> tuple[EventRecord, ...] | None:
    presses = tuple(record for record in history if record.is_press)
    if len(presses) < window:
        return None
    return presses[-window:]


def frequency_score(
    history: Iterable[EventRecord],
    thresholds: HeuristicThresholds = HeuristicThresholds(),
) -> float:
    """Share of the most recent press intervals below ``fast_interval``.

    The count is normalised by the number of intervals in the window so a
    fully saturated window scores exactly ``1.0``.
    """

    recent = _recent_presses(history, thresholds.frequency_window)
    if recent is None:
        return 0.0
    deltas = press_intervals(recent)
    fast = int(np.count_nonzero(deltas < thresholds.fast_interval))
    return min(1.0, fast / deltas.size)


def divergence_score(
    history: Iterable[EventRecord],
    thresholds: HeuristicThresholds = HeuristicThresholds(),
) -> float:
    """Score directional input that fails to move focus."""

    records = tuple(history)
    window = thresholds.divergence_window
    if len(records) < window:
        return 0.0
    recent = records[-window:]

    directional = 0
    transitions = 0
    last_identifier = recent[0].identifier
    for record in recent:
        if record.is_directional_press:
            directional += 1
        elif record.is_focus and record.identifier != last_identifier:
            transitions += 1
            last_identifier = record.identifier

    if directional <= thresholds.min_directional_presses:
        return 0.0

    for limit, score in zip(thresholds.divergence_band_limits, thresholds.divergence_band_scores):
        if transitions <= limit:
            return score

    ratio = transitions / directional
    for limit, score in zip(thresholds.divergence_ratio_limits, thresholds.divergence_ratio_scores):
        if ratio < limit:
            return score
    return 0.0


def cadence_score(
    history: Iterable[EventRecord],
    thresholds: HeuristicThresholds = HeuristicThresholds(),
) -> float:
    """Score press intervals by how machine-regular they are."""

    recent = _recent_presses(history, thresholds.cadence_window)
    if recent is None:
        return 0.0
    deltas = press_intervals(recent)
    spread = float(np.std(deltas))
    if spread < thresholds.cadence_floor:
        return 1.0
    return 1.0 - min(1.0, spread / thresholds.cadence_ceiling)


def compute_scores(
    history: Iterable[EventRecord],
    thresholds: HeuristicThresholds = HeuristicThresholds(),
) -> HeuristicScores:
    records = tuple(history)
    return HeuristicScores(
        frequency=frequency_score(records, thresholds),
        divergence=divergence_score(records, thresholds),
        cadence=cadence_score(records, thresholds),
    )
