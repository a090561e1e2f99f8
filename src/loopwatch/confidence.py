"""Confidence aggregation, time decay and the one-shot alert latch."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from .heuristics import HeuristicScores

__all__ = [
    "AlertLatch",
    "AlertState",
    "ConfidenceState",
    "DEFAULT_CRITICAL_THRESHOLD",
    "DEFAULT_DECAY_HORIZON",
    "HeuristicWeights",
    "combine_scores",
    "decay_factor",
    "published_score",
]


DEFAULT_CRITICAL_THRESHOLD = 0.70
DEFAULT_DECAY_HORIZON = 2.0


@dataclass(frozen=True, slots=True)
class HeuristicWeights:
    frequency: float = 0.5
    divergence: float = 0.3
    cadence: float = 0.2

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None = None) -> "HeuristicWeights":
        if not isinstance(config, MappingABC):
            return cls()
        defaults = cls()
        values: dict[str, float] = {}
        for name in ("frequency", "divergence", "cadence"):
            raw = config.get(name)
            if raw is None:
                continue
            try:
                values[name] = max(0.0, float(raw))
            except (TypeError, ValueError):
                values[name] = getattr(defaults, name)
        return cls(**values)


def combine_scores(scores: HeuristicScores, weights: HeuristicWeights = HeuristicWeights()) -> float:
    """Weighted sum of the heuristic sub-scores."""

    total = (
        scores.frequency * weights.frequency
        + scores.divergence * weights.divergence
        + scores.cadence * weights.cadence
    )
    return min(1.0, max(0.0, total))


def decay_factor(
    seconds_since_last_event: Optional[float],
    horizon: float = DEFAULT_DECAY_HORIZON,
) -> float:
    """Linear decay reaching zero ``horizon`` seconds after the last event.

    An empty history has no last event and therefore decays fully.
    """

    if seconds_since_last_event is None:
        return 0.0
    if horizon <= 0.0:
        return 0.0
    elapsed = max(0.0, seconds_since_last_event)
    return 1.0 - min(1.0, elapsed / horizon)


def published_score(
    raw_score: float,
    seconds_since_last_event: Optional[float],
    horizon: float = DEFAULT_DECAY_HORIZON,
) -> float:
    return raw_score * decay_factor(seconds_since_last_event, horizon)


@dataclass(frozen=True, slots=True)
class ConfidenceState:
    """Immutable snapshot published after every processed event.

    ``score`` is the value computed at ``last_event_at``; readers apply
    decay against their own clock through :meth:`decayed`.
    """

    score: float = 0.0
    has_fired: bool = False
    raw_score: float = 0.0
    last_event_at: Optional[float] = None

    def decayed(self, now: float, horizon: float = DEFAULT_DECAY_HORIZON) -> float:
        if self.last_event_at is None:
            return 0.0
        return published_score(self.raw_score, now - self.last_event_at, horizon)


class AlertState(Enum):
    ARMED = "armed"
    FIRED = "fired"


class AlertLatch:
    """Two-state gate that lets the first threshold crossing through.

    Further crossings while ``FIRED`` are silent until :meth:`reset`.
    """

    __slots__ = ("_threshold", "_state")

    def __init__(self, threshold: float = DEFAULT_CRITICAL_THRESHOLD) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("AlertLatch threshold must be within [0, 1]")
        self._threshold = threshold
        self._state = AlertState.ARMED

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def state(self) -> AlertState:
        return self._state

    @property
    def has_fired(self) -> bool:
        return self._state is AlertState.FIRED

    def observe(self, score: float) -> bool:
        """Return ``True`` exactly when ``score`` transitions the latch to ``FIRED``."""

        if self._state is AlertState.FIRED:
            return False
        if score >= self._threshold:
            self._state = AlertState.FIRED
            return True
        return False

    def reset(self) -> None:
        self._state = AlertState.ARMED
