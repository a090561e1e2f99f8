"""FIFO correlation of producer timestamps with consumer completions.

Each category keeps a bounded FIFO of producer timestamps waiting for a
match.  A consumer completion pairs with the oldest outstanding producer
timestamp of the same category, modelling "oldest backlog clears first".
Unmatched producer timestamps are dropped silently once the FIFO is full:
they are evidence of backlog rather than an accounting error.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from statistics import fmean
from typing import Deque, Dict, Mapping, Optional

from .events import Category

__all__ = [
    "DEFAULT_PENDING_CAPACITY",
    "DEFAULT_SAMPLE_CAPACITY",
    "LatencyCorrelator",
    "LatencySample",
]


logger = logging.getLogger(__name__)


DEFAULT_PENDING_CAPACITY = 50
DEFAULT_SAMPLE_CAPACITY = 100

_DEFAULT_WARNING_THRESHOLDS: Mapping[Category, float] = {
    Category.SWIPE: 0.1,
    Category.PRESS: 0.2,
}


@dataclass(frozen=True, slots=True)
class LatencySample:
    category: Category
    value: float
    producer_timestamp: float
    consumer_timestamp: float


class _CategoryLatency:
    __slots__ = ("pending", "samples", "max_seen")

    def __init__(self, pending_capacity: int, sample_capacity: int) -> None:
        self.pending: Deque[float] = deque(maxlen=pending_capacity)
        self.samples: Deque[LatencySample] = deque(maxlen=sample_capacity)
        self.max_seen: Optional[float] = None


class LatencyCorrelator:
    """Pair producer timestamps with consumer completions in strict FIFO order."""

    def __init__(
        self,
        *,
        pending_capacity: int = DEFAULT_PENDING_CAPACITY,
        sample_capacity: int = DEFAULT_SAMPLE_CAPACITY,
        warning_thresholds: Mapping[Category | str, float] | None = None,
    ) -> None:
        if pending_capacity <= 0 or sample_capacity <= 0:
            raise ValueError("LatencyCorrelator requires positive capacities")
        self._pending_capacity = pending_capacity
        self._sample_capacity = sample_capacity
        thresholds = dict(_DEFAULT_WARNING_THRESHOLDS)
        for key, value in (warning_thresholds or {}).items():
            thresholds[_tracked(key)] = float(value)
        self._warning_thresholds = thresholds
        self._lock = threading.Lock()
        self._categories: Dict[Category, _CategoryLatency] = {}
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._categories = {
                category: _CategoryLatency(self._pending_capacity, self._sample_capacity)
                for category in (Category.SWIPE, Category.PRESS)
            }

    def record_producer_timestamp(self, category: Category | str, timestamp: float) -> None:
        resolved = _tracked(category)
        with self._lock:
            self._categories[resolved].pending.append(float(timestamp))

    def record_consumer_completion(
        self, category: Category | str, timestamp: float
    ) -> Optional[LatencySample]:
        """Match the oldest outstanding producer timestamp, if there is one."""

        resolved = _tracked(category)
        with self._lock:
            state = self._categories[resolved]
            if not state.pending:
                return None
            produced_at = state.pending.popleft()
            sample = LatencySample(
                category=resolved,
                value=float(timestamp) - produced_at,
                producer_timestamp=produced_at,
                consumer_timestamp=float(timestamp),
            )
            state.samples.append(sample)
            new_max = state.max_seen is None or sample.value > state.max_seen
            if new_max:
                state.max_seen = sample.value

        if new_max:
            logger.info(
                "New max %s latency: %.0fms.",
                resolved.value.upper(),
                sample.value * 1000.0,
                extra={"event": "latency.new_max", "category": resolved.value, "latency": sample.value},
            )
        if sample.value > self._warning_thresholds[resolved]:
            logger.warning(
                "High %s latency: %.0fms.",
                resolved.value.upper(),
                sample.value * 1000.0,
                extra={"event": "latency.high", "category": resolved.value, "latency": sample.value},
            )
        return sample

    def pending(self, category: Category | str) -> int:
        resolved = _tracked(category)
        with self._lock:
            return len(self._categories[resolved].pending)

    def samples(self, category: Category | str) -> tuple[LatencySample, ...]:
        resolved = _tracked(category)
        with self._lock:
            return tuple(self._categories[resolved].samples)

    def last_latency(self, category: Category | str) -> Optional[float]:
        resolved = _tracked(category)
        with self._lock:
            samples = self._categories[resolved].samples
            return samples[-1].value if samples else None

    def mean_latency(self, category: Category | str) -> Optional[float]:
        """Mean over the retained samples, ``None`` when there are none."""

        resolved = _tracked(category)
        with self._lock:
            samples = self._categories[resolved].samples
            if not samples:
                return None
            return fmean(sample.value for sample in samples)

    def max_latency(self, category: Category | str) -> Optional[float]:
        resolved = _tracked(category)
        with self._lock:
            samples = self._categories[resolved].samples
            if not samples:
                return None
            return max(sample.value for sample in samples)


def _tracked(category: Category | str) -> Category:
    resolved = Category.coerce(category)
    if resolved is Category.TOTAL:
        raise ValueError("Latency is tracked per 'swipe' or 'press' category only")
    return resolved
