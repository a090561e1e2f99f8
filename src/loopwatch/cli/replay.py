"""Offline replay of captured input logs through both detection subsystems."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping

from ..alerts import AlertPayload
from ..configuration import DetectorSettings, InstrumentationSettings
from ..detector import RunawayLoopDetector
from ..instrumentation import InputInstrumentation
from .io import CapturedEvent

__all__ = ["ReplayClock", "replay_events"]


logger = logging.getLogger(__name__)

_ALERT_FLUSH_TIMEOUT = 5.0


class ReplayClock:
    """Clock whose value is advanced explicitly by the replay loop."""

    __slots__ = ("now",)

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now


def replay_events(
    events: Iterable[CapturedEvent],
    *,
    detector_settings: DetectorSettings | None = None,
    instrumentation_settings: InstrumentationSettings | None = None,
) -> Dict[str, Any]:
    """Feed time-ordered ``events`` and return a JSON-serialisable report."""

    clock = ReplayClock()
    alerts: List[Mapping[str, Any]] = []

    def _collect(payload: AlertPayload) -> None:
        alerts.append(payload.as_dict())

    detector = RunawayLoopDetector(detector_settings, sinks=(_collect,), clock=clock)
    instrumentation = InputInstrumentation(
        instrumentation_settings, detector=detector, clock=clock
    )

    processed = 0
    phantoms: List[Dict[str, Any]] = []
    peak = 0.0
    try:
        for event in events:
            clock.now = event.timestamp
            if event.source == "hardware":
                instrumentation.hardware_press(event.button or "")
            elif event.source == "software":
                classification = instrumentation.software_press(
                    event.button or "", event.identifier
                )
                if classification.is_phantom:
                    phantoms.append({"timestamp": event.timestamp, "button": event.button})
            else:
                instrumentation.focus_changed(event.identifier)
            peak = max(peak, detector.state.score)
            processed += 1
        final = detector.current_confidence()
        if not detector.flush_alerts(_ALERT_FLUSH_TIMEOUT):
            logger.warning(
                "Alert delivery did not finish before the replay report was built.",
                extra={"event": "cli.replay.flush_timeout"},
            )
    finally:
        detector.close()

    analysis = instrumentation.analysis()
    logger.info(
        "Replayed %d events.",
        processed,
        extra={"event": "cli.replay.done", "alerts": len(alerts), "peak_confidence": peak},
    )
    return {
        "events": processed,
        "alerts": list(alerts),
        "peak_confidence": peak,
        "final_confidence": final,
        "phantom_presses": phantoms,
        "queue": analysis.as_dict(),
    }
