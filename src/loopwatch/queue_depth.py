"""Producer/consumer backlog estimation per event category.

Hardware input (the producer) and processed UI events (the consumer) are
counted independently for swipes and presses.  The backlog depth is never
stored: it is always derived as ``producer_count - consumer_count`` so the
two counters remain the single source of truth.  ``total`` is the sum of
both categories.  A negative difference reads as zero and is logged once,
when a consumer event first pushes the counters below zero.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .events import Category

__all__ = ["QueueCounters", "QueueDepthEstimator", "TRACKED_CATEGORIES"]


logger = logging.getLogger(__name__)


TRACKED_CATEGORIES: tuple[Category, ...] = (Category.SWIPE, Category.PRESS)

_BUILDUP_LOG_INTERVAL = 10
_CAUGHT_UP_MIN_DEPTH = 5


@dataclass(frozen=True, slots=True)
class QueueCounters:
    """Snapshot of one category's counters."""

    category: Category
    producer_count: int
    consumer_count: int
    max_observed_depth: int

    @property
    def raw_depth(self) -> int:
        return self.producer_count - self.consumer_count

    @property
    def depth(self) -> int:
        return max(0, self.raw_depth)


class _Counter:
    __slots__ = ("producer", "consumer", "max_depth", "burst", "last_produced_at")

    def __init__(self) -> None:
        self.producer = 0
        self.consumer = 0
        self.max_depth = 0
        self.burst = 0
        self.last_produced_at: Optional[float] = None


class QueueDepthEstimator:
    """Track producer/consumer counts and expose the derived backlog."""

    def __init__(
        self,
        *,
        dominance_ratio: float = 2.0,
        burst_interval: float = 0.1,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if dominance_ratio <= 0.0:
            raise ValueError("dominance_ratio must be positive")
        self._dominance_ratio = dominance_ratio
        self._burst_interval = burst_interval
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._counters: Dict[Category, _Counter] = {}
        self._total_max_depth = 0
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._counters = {category: _Counter() for category in TRACKED_CATEGORIES}
            self._total_max_depth = 0

    def track_producer_event(self, category: Category | str) -> int:
        """Count a hardware-originated event; return the category depth."""

        resolved = _tracked(category)
        with self._lock:
            counter = self._counters[resolved]
            counter.producer += 1
            now = self._clock()
            if (
                counter.last_produced_at is not None
                and now - counter.last_produced_at < self._burst_interval
            ):
                counter.burst += 1
            else:
                counter.burst = 1
            counter.last_produced_at = now

            depth = self._depth_locked(resolved)
            if depth > counter.max_depth:
                counter.max_depth = depth
            total = self._total_depth_locked()
            if total > self._total_max_depth:
                self._total_max_depth = total
                logger.debug(
                    "New maximum queue depth.",
                    extra={"event": "queue.new_max", "depth": total, "category": resolved.value},
                )
            if total > 0 and total % _BUILDUP_LOG_INTERVAL == 0:
                logger.info(
                    "Event queue building: %d events behind.",
                    total,
                    extra={"event": "queue.building", "depth": total, "category": resolved.value},
                )
            return depth

    def track_consumer_event(self, category: Category | str) -> int:
        """Count a processed event; return the category depth."""

        resolved = _tracked(category)
        with self._lock:
            counter = self._counters[resolved]
            was_behind = counter.producer - counter.consumer > 0
            total_before = self._raw_total_locked()
            counter.consumer += 1
            if counter.producer - counter.consumer == -1:
                _log_negative_depth(resolved, counter.producer, counter.consumer)
            if total_before == 0:
                _log_negative_depth(
                    Category.TOTAL,
                    sum(c.producer for c in self._counters.values()),
                    sum(c.consumer for c in self._counters.values()),
                )
            depth = self._depth_locked(resolved)
            if depth == 0 and was_behind and counter.producer > _CAUGHT_UP_MIN_DEPTH:
                logger.info(
                    "%s queue caught up after %d processed events.",
                    resolved.value.upper(),
                    counter.consumer,
                    extra={
                        "event": "queue.caught_up",
                        "category": resolved.value,
                        "processed": counter.consumer,
                        "max_depth": counter.max_depth,
                    },
                )
            return depth

    def depth(self, category: Category | str = Category.TOTAL) -> int:
        resolved = Category.coerce(category)
        with self._lock:
            if resolved is Category.TOTAL:
                return self._total_depth_locked()
            return self._depth_locked(resolved)

    def max_observed_depth(self, category: Category | str = Category.TOTAL) -> int:
        resolved = Category.coerce(category)
        with self._lock:
            if resolved is Category.TOTAL:
                return self._total_max_depth
            return self._counters[resolved].max_depth

    def producer_count(self, category: Category | str = Category.TOTAL) -> int:
        return self.counters(category).producer_count

    def consumer_count(self, category: Category | str = Category.TOTAL) -> int:
        return self.counters(category).consumer_count

    def burst_length(self, category: Category | str) -> int:
        resolved = _tracked(category)
        with self._lock:
            return self._counters[resolved].burst

    def counters(self, category: Category | str = Category.TOTAL) -> QueueCounters:
        resolved = Category.coerce(category)
        with self._lock:
            if resolved is Category.TOTAL:
                return QueueCounters(
                    category=resolved,
                    producer_count=sum(c.producer for c in self._counters.values()),
                    consumer_count=sum(c.consumer for c in self._counters.values()),
                    max_observed_depth=self._total_max_depth,
                )
            counter = self._counters[resolved]
            return QueueCounters(
                category=resolved,
                producer_count=counter.producer,
                consumer_count=counter.consumer,
                max_observed_depth=counter.max_depth,
            )

    def is_swipe_dominant(self) -> bool:
        """Swipe backlog exceeds the press backlog by more than ``dominance_ratio``."""

        with self._lock:
            swipe = self._depth_locked(Category.SWIPE)
            press = self._depth_locked(Category.PRESS)
        return swipe > press * self._dominance_ratio

    @property
    def statistics(self) -> dict[str, int]:
        with self._lock:
            stats: dict[str, int] = {}
            for category, counter in self._counters.items():
                stats[f"{category.value}_produced"] = counter.producer
                stats[f"{category.value}_consumed"] = counter.consumer
                stats[f"{category.value}_depth"] = self._depth_locked(category)
                stats[f"{category.value}_max_depth"] = counter.max_depth
            stats["total_depth"] = self._total_depth_locked()
            stats["total_max_depth"] = self._total_max_depth
        return stats

    def _depth_locked(self, category: Category) -> int:
        counter = self._counters[category]
        return max(counter.producer - counter.consumer, 0)

    def _raw_total_locked(self) -> int:
        return sum(counter.producer - counter.consumer for counter in self._counters.values())

    def _total_depth_locked(self) -> int:
        return max(self._raw_total_locked(), 0)


def _log_negative_depth(category: Category, producer: int, consumer: int) -> None:
    logger.warning(
        "Negative queue depth; producer/consumer accounting is inconsistent.",
        extra={
            "event": "queue.negative_depth",
            "category": category.value,
            "producer_count": producer,
            "consumer_count": consumer,
        },
    )


def _tracked(category: Category | str) -> Category:
    resolved = Category.coerce(category)
    if resolved is Category.TOTAL:
        raise ValueError("The 'total' category is derived and cannot be tracked directly")
    return resolved
