"""Runaway input-loop detector.

:class:`RunawayLoopDetector` is the single entry point host UI code talks
to.  Every press and focus observation is appended to a bounded history,
the three heuristics are re-evaluated, and the weighted, time-decayed
confidence score is published as an immutable snapshot.  The first time a
session's score crosses the critical threshold an alert payload is handed
to the :class:`~loopwatch.alerts.AlertDispatcher`.

All mutations are serialised by one lock, so history order always matches
the order in which :meth:`RunawayLoopDetector.process_event` calls were
admitted.  :meth:`RunawayLoopDetector.current_confidence` reads the latest
snapshot without taking the lock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable, Optional

from .alerts import AlertDispatcher, AlertPayload, AlertSink
from .configuration import DetectorSettings
from .confidence import AlertLatch, AlertState, ConfidenceState, combine_scores, published_score
from .events import FOCUS, EventKind, EventRecord, FocusKind, PressKind
from .heuristics import HeuristicScores, compute_scores
from .history import HistoryBuffer

__all__ = ["RunawayLoopDetector"]


logger = logging.getLogger(__name__)


Clock = Callable[[], float]


class RunawayLoopDetector:
    """Combine the loop heuristics into a decaying confidence score."""

    def __init__(
        self,
        settings: DetectorSettings | None = None,
        *,
        sinks: Iterable[AlertSink] = (),
        clock: Clock | None = None,
        dispatcher: AlertDispatcher | None = None,
    ) -> None:
        self._settings = settings or DetectorSettings()
        self._clock: Clock = clock or time.monotonic
        self._dispatcher = dispatcher or AlertDispatcher()
        for sink in sinks:
            self._dispatcher.subscribe(sink)
        self._lock = threading.Lock()
        self._history = HistoryBuffer(self._settings.history_capacity)
        self._latch = AlertLatch(self._settings.critical_threshold)
        self._state = ConfidenceState()

    @property
    def settings(self) -> DetectorSettings:
        return self._settings

    @property
    def dispatcher(self) -> AlertDispatcher:
        return self._dispatcher

    @property
    def state(self) -> ConfidenceState:
        """Latest published snapshot (score as computed at the last event)."""

        return self._state

    @property
    def alert_state(self) -> AlertState:
        with self._lock:
            return self._latch.state

    def subscribe(self, sink: AlertSink) -> None:
        self._dispatcher.subscribe(sink)

    def unsubscribe(self, sink: AlertSink) -> None:
        self._dispatcher.unsubscribe(sink)

    def process_event(self, kind: EventKind | str, identifier: Optional[str] = None) -> None:
        """Record a press or focus observation and recompute confidence.

        ``kind`` is a :class:`~loopwatch.events.PressKind`, the
        :data:`~loopwatch.events.FOCUS` marker, or a string shorthand:
        ``"focus"`` or the label of the pressed button.
        """

        resolved = _resolve_kind(kind)
        payload: Optional[AlertPayload] = None
        with self._lock:
            now = self._clock()
            self._history.append(EventRecord(resolved, identifier, now))
            scores = compute_scores(self._history, self._settings.thresholds)
            raw = combine_scores(scores, self._settings.weights)
            last = self._history.last()
            elapsed = None if last is None else now - last.timestamp
            score = published_score(raw, elapsed, self._settings.decay_horizon)
            fired = self._latch.observe(score)
            self._state = ConfidenceState(
                score=score,
                has_fired=self._latch.has_fired,
                raw_score=raw,
                last_event_at=None if last is None else last.timestamp,
            )
            if fired:
                payload = self._build_payload(score)
            logger.debug(
                "Processed input event.",
                extra={
                    "event": "detector.processed",
                    "kind": str(resolved),
                    "identifier": identifier,
                    "score": score,
                },
            )

        if payload is not None:
            logger.critical(
                "Runaway input loop detected with confidence %.2f.",
                payload.confidence_score,
                extra={
                    "event": "detector.alert",
                    "confidence": payload.confidence_score,
                    **payload.scores.as_dict(),
                },
            )
            self._dispatcher.submit(payload)

    def reset(self) -> None:
        """Clear the history and re-arm the alert latch."""

        with self._lock:
            self._history.clear()
            self._latch.reset()
            self._state = ConfidenceState()

    def current_confidence(self) -> float:
        """Return the published score decayed to the current instant."""

        snapshot = self._state
        if snapshot.last_event_at is None:
            return 0.0
        return snapshot.decayed(self._clock(), self._settings.decay_horizon)

    def scores(self) -> HeuristicScores:
        with self._lock:
            return compute_scores(self._history, self._settings.thresholds)

    def history_tail(self, count: Optional[int] = None) -> tuple[EventRecord, ...]:
        with self._lock:
            return self._history.tail(count if count is not None else len(self._history))

    def flush_alerts(self, timeout: Optional[float] = None) -> bool:
        return self._dispatcher.flush(timeout)

    def close(self) -> None:
        self._dispatcher.close()

    def _build_payload(self, score: float) -> AlertPayload:
        scores = compute_scores(self._history, self._settings.thresholds)
        tail = self._history.tail(self._settings.diagnostics_tail)
        return AlertPayload(
            confidence_score=score,
            scores=scores,
            event_history_tail=tuple(record.describe() for record in tail),
        )


def _resolve_kind(kind: EventKind | str) -> EventKind:
    if isinstance(kind, (PressKind, FocusKind)):
        return kind
    label = str(kind)
    if label.strip().lower() == "focus":
        return FOCUS
    return PressKind(label)
