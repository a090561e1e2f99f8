"""Low-level input instrumentation.

:class:`InputInstrumentation` is the seam between the host's input hooks
and the estimators.  Hardware presses feed the producer side of the
backlog estimate; presses delivered by the UI framework feed the consumer
side and start a latency measurement that completes when focus moves.

The optional :class:`~loopwatch.detector.RunawayLoopDetector` receives the
UI-level presses and focus changes so one set of hooks drives both
subsystems.  Events are forwarded while the instrumentation lock is held,
so the detector history follows the same order as the latency FIFO.  The
detector hands alerts to its own delivery thread and never calls back
into the instrumentation.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Mapping, Optional

from .configuration import InstrumentationSettings
from .detector import RunawayLoopDetector
from .events import FOCUS, Category, PressKind, category_for_button
from .latency import LatencyCorrelator, LatencySample
from .phantom import HardwarePressCache, PhantomClassifier, PressClassification
from .queue_depth import QueueDepthEstimator

__all__ = ["InputInstrumentation", "QueueAnalysis"]


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QueueAnalysis:
    """Point-in-time summary of backlog and latency."""

    depths: Mapping[str, int]
    max_depth: int
    produced: Mapping[str, int]
    consumed: Mapping[str, int]
    mean_latency: Mapping[str, Optional[float]]
    max_latency: Mapping[str, Optional[float]]
    swipe_dominant: bool
    phantom_presses: int
    warnings: tuple[str, ...] = field(default=())

    def as_dict(self) -> dict[str, Any]:
        return {
            "depths": dict(self.depths),
            "max_depth": self.max_depth,
            "produced": dict(self.produced),
            "consumed": dict(self.consumed),
            "mean_latency": dict(self.mean_latency),
            "max_latency": dict(self.max_latency),
            "swipe_dominant": self.swipe_dominant,
            "phantom_presses": self.phantom_presses,
            "warnings": list(self.warnings),
        }


class InputInstrumentation:
    """Route hardware, UI-press and focus hooks into the estimators."""

    def __init__(
        self,
        settings: InstrumentationSettings | None = None,
        *,
        detector: RunawayLoopDetector | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._settings = settings or InstrumentationSettings()
        self._clock = clock or time.monotonic
        self._detector = detector
        self._lock = threading.Lock()
        self.queue = QueueDepthEstimator(
            dominance_ratio=self._settings.dominance_ratio,
            burst_interval=self._settings.burst_interval,
            clock=self._clock,
        )
        self.latency = LatencyCorrelator(
            pending_capacity=self._settings.pending_capacity,
            sample_capacity=self._settings.sample_capacity,
            warning_thresholds={
                Category.SWIPE: self._settings.swipe_latency_warning,
                Category.PRESS: self._settings.press_latency_warning,
            },
        )
        self.press_cache = HardwarePressCache(self._settings.press_cache_capacity)
        self._classifier = PhantomClassifier(
            self.press_cache,
            hardware_window=self._settings.hardware_window,
            focus_stale_after=self._settings.focus_stale_after,
            repeat_window=self._settings.repeat_window,
            rapid_repeat_limit=self._settings.rapid_repeat_limit,
        )
        self._awaiting_focus: Deque[Category] = deque(maxlen=self._settings.pending_capacity)
        self._last_focus_at: Optional[float] = None
        self._phantom_presses = 0

    @property
    def detector(self) -> RunawayLoopDetector | None:
        return self._detector

    @property
    def phantom_presses(self) -> int:
        return self._phantom_presses

    def hardware_press(self, button: str) -> int:
        """Record a hardware press; return the category backlog depth."""

        category = category_for_button(button)
        with self._lock:
            now = self._clock()
            self.press_cache.mark_down(button, now)
            depth = self.queue.track_producer_event(category)
            burst = self.queue.burst_length(category)
        if burst == 1 or burst % 10 == 0:
            logger.debug(
                "Hardware %s %s.",
                category.value,
                button,
                extra={"event": "input.hardware", "button": button, "burst": burst, "depth": depth},
            )
        return depth

    def software_press(self, button: str, identifier: Optional[str] = None) -> PressClassification:
        """Record a press delivered by the UI framework."""

        category = category_for_button(button)
        with self._lock:
            now = self._clock()
            classification = self._classifier.classify(button, now, self._last_focus_at)
            if classification.is_phantom:
                self._phantom_presses += 1
            self.queue.track_consumer_event(category)
            self.latency.record_producer_timestamp(category, now)
            self._awaiting_focus.append(category)
            if self._detector is not None:
                self._detector.process_event(PressKind(button), identifier)
        return classification

    def focus_changed(self, identifier: Optional[str]) -> Optional[LatencySample]:
        """Record a focus move and close the oldest open latency measurement."""

        sample: Optional[LatencySample] = None
        with self._lock:
            now = self._clock()
            self._last_focus_at = now
            if self._awaiting_focus:
                category = self._awaiting_focus.popleft()
                sample = self.latency.record_consumer_completion(category, now)
            if self._detector is not None:
                self._detector.process_event(FOCUS, identifier)
        return sample

    def reset(self) -> None:
        with self._lock:
            self.queue.reset()
            self.latency.reset()
            self.press_cache.clear()
            self._classifier.reset()
            self._awaiting_focus.clear()
            self._last_focus_at = None
            self._phantom_presses = 0
        if self._detector is not None:
            self._detector.reset()

    def analysis(self) -> QueueAnalysis:
        settings = self._settings
        categories = (Category.SWIPE, Category.PRESS, Category.TOTAL)
        with self._lock:
            depths = {c.value: self.queue.depth(c) for c in categories}
            produced = {c.value: self.queue.producer_count(c) for c in categories}
            consumed = {c.value: self.queue.consumer_count(c) for c in categories}
            max_depth = self.queue.max_observed_depth(Category.TOTAL)
            mean_latency = {
                c.value: self.latency.mean_latency(c) for c in (Category.SWIPE, Category.PRESS)
            }
            max_latency = {
                c.value: self.latency.max_latency(c) for c in (Category.SWIPE, Category.PRESS)
            }
            swipe_dominant = self.queue.is_swipe_dominant()
            phantoms = self._phantom_presses

        warnings: list[str] = []
        if max_depth > settings.significant_backlog:
            warnings.append("significant_backlog")
        if depths[Category.SWIPE.value] > settings.swipe_backlog:
            warnings.append("swipe_backlog")
        if depths[Category.PRESS.value] > settings.press_backlog:
            warnings.append("press_backlog")
        if swipe_dominant:
            warnings.append("swipe_dominant")
        swipe_mean = mean_latency[Category.SWIPE.value]
        if swipe_mean is not None and swipe_mean > settings.degraded_swipe_latency:
            warnings.append("swipe_latency_degraded")

        return QueueAnalysis(
            depths=depths,
            max_depth=max_depth,
            produced=produced,
            consumed=consumed,
            mean_latency=mean_latency,
            max_latency=max_latency,
            swipe_dominant=swipe_dominant,
            phantom_presses=phantoms,
            warnings=tuple(warnings),
        )

    def log_analysis(self) -> QueueAnalysis:
        report = self.analysis()
        level = logging.WARNING if report.warnings else logging.INFO
        logger.log(
            level,
            "Event queue analysis: depth %d (max %d).",
            report.depths[Category.TOTAL.value],
            report.max_depth,
            extra={"event": "queue.analysis", **report.as_dict()},
        )
        return report
