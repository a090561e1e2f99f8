from __future__ import annotations

import logging
import threading

import pytest

from loopwatch.alerts import AlertDispatcher, AlertPayload
from loopwatch.heuristics import HeuristicScores


def _payload(score: float = 0.8) -> AlertPayload:
    return AlertPayload(
        confidence_score=score,
        scores=HeuristicScores(frequency=1.0, divergence=0.2, cadence=0.7),
        event_history_tail=("0.0: press(right) on nil", "0.01: focus on cell-1"),
    )


def test_payload_as_dict_uses_report_keys() -> None:
    payload = _payload()

    assert payload.as_dict() == {
        "confidenceScore": 0.8,
        "frequencyScore": 1.0,
        "divergenceScore": 0.2,
        "cadenceScore": 0.7,
        "eventHistoryTail": ["0.0: press(right) on nil", "0.01: focus on cell-1"],
    }
    assert payload.frequency_score == 1.0
    assert payload.divergence_score == 0.2
    assert payload.cadence_score == 0.7


def test_dispatcher_delivers_off_the_calling_thread() -> None:
    received: list[tuple[AlertPayload, str]] = []
    dispatcher = AlertDispatcher([lambda p: received.append((p, threading.current_thread().name))])

    dispatcher.submit(_payload())

    assert dispatcher.flush(timeout=5.0)
    dispatcher.close()
    assert len(received) == 1
    assert received[0][1].startswith("loopwatch-alerts")
    assert received[0][1] != threading.current_thread().name


def test_failing_sink_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    received: list[AlertPayload] = []

    def broken(_payload: AlertPayload) -> None:
        raise RuntimeError("sink offline")

    dispatcher = AlertDispatcher([broken, received.append])
    caplog.set_level(logging.ERROR, logger="loopwatch.alerts")

    dispatcher.submit(_payload())
    assert dispatcher.flush(timeout=5.0)
    dispatcher.close()

    assert len(received) == 1
    assert any(getattr(record, "event", None) == "alerts.sink_failed" for record in caplog.records)


def test_subscribe_is_idempotent_and_unsubscribe_tolerates_unknown() -> None:
    dispatcher = AlertDispatcher()
    sink = lambda _payload: None  # noqa: E731

    dispatcher.subscribe(sink)
    dispatcher.subscribe(sink)
    assert dispatcher.sinks == (sink,)

    dispatcher.unsubscribe(sink)
    dispatcher.unsubscribe(sink)
    assert dispatcher.sinks == ()


def test_submit_after_close_is_dropped(caplog: pytest.LogCaptureFixture) -> None:
    received: list[AlertPayload] = []
    dispatcher = AlertDispatcher([received.append])
    dispatcher.close()
    caplog.set_level(logging.WARNING, logger="loopwatch.alerts")

    dispatcher.submit(_payload())

    assert dispatcher.flush(timeout=1.0)
    assert received == []
    assert any(getattr(record, "event", None) == "alerts.dropped" for record in caplog.records)


def test_flush_without_pending_work_returns_immediately() -> None:
    assert AlertDispatcher().flush(timeout=0.0)
