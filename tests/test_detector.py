from __future__ import annotations

import logging
import threading

import pytest

from loopwatch.alerts import AlertPayload
from loopwatch.configuration import DetectorSettings
from loopwatch.confidence import AlertState
from loopwatch.detector import RunawayLoopDetector
from loopwatch.events import FOCUS, FocusKind, PressKind

from tests.helpers import drive_detector, loop_scenario, navigation_walk


def _detector(clock, **kwargs) -> tuple[RunawayLoopDetector, list[AlertPayload]]:
    alerts: list[AlertPayload] = []
    detector = RunawayLoopDetector(sinks=(alerts.append,), clock=clock, **kwargs)
    return detector, alerts


def test_fresh_detector_reports_zero(clock) -> None:
    detector, _ = _detector(clock)

    assert detector.current_confidence() == 0.0
    assert detector.alert_state is AlertState.ARMED
    assert detector.history_tail() == ()


def test_loop_scenario_fires_exactly_one_alert(clock) -> None:
    detector, alerts = _detector(clock)

    drive_detector(detector, clock, loop_scenario())
    assert detector.flush_alerts(timeout=5.0)
    detector.close()

    scores = detector.scores()
    assert scores.frequency == pytest.approx(1.0)
    assert scores.cadence == pytest.approx(1.0)
    assert scores.divergence <= 0.2
    assert detector.state.score >= 0.70
    assert detector.alert_state is AlertState.FIRED
    assert len(alerts) == 1
    payload = alerts[0]
    assert payload.confidence_score >= 0.70
    assert payload.frequency_score == pytest.approx(1.0)
    assert len(payload.event_history_tail) == 20
    assert payload.event_history_tail[-1].endswith("press(right) on nil")


def test_alert_logged_as_critical(clock, caplog: pytest.LogCaptureFixture) -> None:
    detector, _ = _detector(clock)
    caplog.set_level(logging.CRITICAL, logger="loopwatch.detector")

    drive_detector(detector, clock, loop_scenario())
    detector.close()

    events = [getattr(record, "event", None) for record in caplog.records]
    assert events.count("detector.alert") == 1


def test_human_navigation_never_alerts(clock) -> None:
    detector, alerts = _detector(clock)

    for timestamp, kind, identifier in navigation_walk(seed=7, count=120):
        clock.set(timestamp)
        detector.process_event(kind, identifier)
        assert detector.state.score < 0.70
    detector.flush_alerts(timeout=5.0)
    detector.close()

    assert alerts == []
    assert len(detector.history_tail()) == 100


def test_reset_is_idempotent_and_rearms(clock) -> None:
    detector, alerts = _detector(clock)
    drive_detector(detector, clock, loop_scenario())
    assert detector.flush_alerts(timeout=5.0)

    detector.reset()
    first = (detector.state, detector.alert_state, detector.history_tail())
    detector.reset()
    second = (detector.state, detector.alert_state, detector.history_tail())

    assert first == second
    assert detector.current_confidence() == 0.0
    assert detector.alert_state is AlertState.ARMED

    offset = clock.now + 10.0
    drive_detector(
        detector,
        clock,
        [(offset + at, kind, identifier) for at, kind, identifier in loop_scenario()],
    )
    assert detector.flush_alerts(timeout=5.0)
    detector.close()
    assert len(alerts) == 2


def test_confidence_decays_after_last_event(clock) -> None:
    detector, _ = _detector(clock)
    drive_detector(detector, clock, loop_scenario())
    peak = detector.current_confidence()

    clock.advance(1.0)
    halfway = detector.current_confidence()
    clock.advance(1.5)
    expired = detector.current_confidence()
    detector.close()

    assert peak >= 0.70
    assert halfway == pytest.approx(peak / 2.0)
    assert expired == 0.0


def test_published_score_never_exceeds_weighted_sum(clock) -> None:
    detector, _ = _detector(clock)
    for timestamp, kind, identifier in loop_scenario():
        clock.set(timestamp)
        detector.process_event(kind, identifier)
        state = detector.state
        assert 0.0 <= state.score <= state.raw_score <= 1.0
    detector.close()


def test_string_shorthand_for_event_kinds(clock) -> None:
    detector, _ = _detector(clock)

    detector.process_event("focus", "cell-1")
    clock.advance(0.1)
    detector.process_event("Right", None)
    detector.close()

    first, second = detector.history_tail()
    assert isinstance(first.kind, FocusKind)
    assert first.identifier == "cell-1"
    assert second.kind == PressKind("Right")
    assert second.timestamp == pytest.approx(0.1)


def test_custom_threshold_from_settings(clock) -> None:
    settings = DetectorSettings(critical_threshold=0.45)
    detector, alerts = _detector(clock, settings=settings)

    for index in range(10):
        clock.set(index * 0.01)
        detector.process_event(PressKind("right"))
    assert detector.flush_alerts(timeout=5.0)
    detector.close()

    assert len(alerts) == 1
    assert alerts[0].confidence_score == pytest.approx(0.5)


def test_concurrent_events_keep_history_consistent() -> None:
    detector = RunawayLoopDetector(clock=lambda: 0.0)
    barrier = threading.Barrier(4)

    def worker(index: int) -> None:
        barrier.wait()
        for step in range(50):
            if step % 2:
                detector.process_event(FOCUS, f"worker-{index}")
            else:
                detector.process_event(PressKind("right"))

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    detector.close()

    assert len(detector.history_tail()) == 100
    assert 0.0 <= detector.current_confidence() <= 1.0
