"""Alert payloads and their fire-and-forget delivery.

Detection runs on whatever thread reports input events.  Sinks may be
slow (file writers, network reporters), so delivery happens on a single
background worker and never blocks event ingestion.  Sink failures are
logged and swallowed at the delivery boundary.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

from .heuristics import HeuristicScores

__all__ = ["AlertDispatcher", "AlertPayload", "AlertSink"]


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AlertPayload:
    """Diagnostics captured when confidence first crosses the critical threshold."""

    confidence_score: float
    scores: HeuristicScores
    event_history_tail: tuple[str, ...]

    @property
    def frequency_score(self) -> float:
        return self.scores.frequency

    @property
    def divergence_score(self) -> float:
        return self.scores.divergence

    @property
    def cadence_score(self) -> float:
        return self.scores.cadence

    def as_dict(self) -> Mapping[str, Any]:
        return {
            "confidenceScore": self.confidence_score,
            **self.scores.as_dict(),
            "eventHistoryTail": list(self.event_history_tail),
        }


AlertSink = Callable[[AlertPayload], None]


class AlertDispatcher:
    """Deliver alert payloads to registered sinks on a background thread."""

    def __init__(self, sinks: Iterable[AlertSink] = ()) -> None:
        self._sinks: list[AlertSink] = list(sinks)
        self._lock = threading.Lock()
        self._pending: set[Future[None]] = set()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

    def subscribe(self, sink: AlertSink) -> None:
        with self._lock:
            if sink not in self._sinks:
                self._sinks.append(sink)

    def unsubscribe(self, sink: AlertSink) -> None:
        with self._lock:
            try:
                self._sinks.remove(sink)
            except ValueError:
                pass

    @property
    def sinks(self) -> tuple[AlertSink, ...]:
        with self._lock:
            return tuple(self._sinks)

    def submit(self, payload: AlertPayload) -> None:
        """Queue ``payload`` for delivery and return immediately."""

        with self._lock:
            if self._closed:
                logger.warning(
                    "Alert dropped; dispatcher already closed.",
                    extra={"event": "alerts.dropped", "confidence": payload.confidence_score},
                )
                return
            sinks = tuple(self._sinks)
            if not sinks:
                return
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="loopwatch-alerts"
                )
            future = self._executor.submit(self._deliver, sinks, payload)
            self._pending.add(future)
        future.add_done_callback(self._discard)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued deliveries; return ``True`` when none remain."""

        with self._lock:
            pending = tuple(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, *, wait_for_pending: bool = True) -> None:
        with self._lock:
            self._closed = True
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=wait_for_pending)

    def _discard(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)

    @staticmethod
    def _deliver(sinks: tuple[AlertSink, ...], payload: AlertPayload) -> None:
        for sink in sinks:
            try:
                sink(payload)
            except Exception:
                logger.exception(
                    "Alert sink %r failed", sink, extra={"event": "alerts.sink_failed"}
                )
