from __future__ import annotations

import logging

import pytest

from loopwatch.phantom import HardwarePressCache, PhantomClassifier


def test_cache_tracks_recent_presses_by_normalised_button() -> None:
    cache = HardwarePressCache()
    cache.mark_down("Up Arrow", 1.0)

    assert cache.last_down("uparrow") == 1.0
    assert cache.recently_pressed("UpArrow", 1.15)
    assert not cache.recently_pressed("UpArrow", 1.25)
    assert not cache.recently_pressed("down", 1.0)


def test_cache_evicts_least_recent_button() -> None:
    cache = HardwarePressCache(capacity=2)
    cache.mark_down("up", 0.0)
    cache.mark_down("down", 0.1)
    cache.mark_down("up", 0.2)
    cache.mark_down("left", 0.3)

    assert len(cache) == 2
    assert cache.last_down("down") is None
    assert cache.last_down("up") == 0.2


def test_press_is_phantom_only_when_every_criterion_holds(caplog: pytest.LogCaptureFixture) -> None:
    classifier = PhantomClassifier(HardwarePressCache())
    caplog.set_level(logging.WARNING, logger="loopwatch.phantom")

    results = [classifier.classify("right", 0.5 + 0.05 * index, None) for index in range(6)]

    assert [result.is_phantom for result in results] == [False] * 5 + [True]
    assert results[-1].repeat_count == 6
    assert results[-1].no_hardware and results[-1].stale_focus and results[-1].rapid_repetition
    assert sum(getattr(r, "event", None) == "phantom.press" for r in caplog.records) == 1


def test_recent_hardware_press_clears_suspicion() -> None:
    cache = HardwarePressCache()
    classifier = PhantomClassifier(cache)
    for index in range(6):
        cache.mark_down("right", 0.5 + 0.05 * index - 0.01)
        result = classifier.classify("right", 0.5 + 0.05 * index, None)

    assert not result.no_hardware
    assert not result.is_phantom


def test_fresh_focus_clears_suspicion() -> None:
    classifier = PhantomClassifier(HardwarePressCache())
    for index in range(6):
        now = 0.5 + 0.05 * index
        result = classifier.classify("right", now, now - 0.05)

    assert not result.stale_focus
    assert not result.is_phantom


def test_repeat_window_restarts_counts() -> None:
    classifier = PhantomClassifier(HardwarePressCache())
    for index in range(5):
        classifier.classify("right", 0.1 * index, None)

    result = classifier.classify("right", 3.0, None)

    assert result.repeat_count == 1
    assert not result.is_phantom

    classifier.reset()
    assert classifier.classify("right", 3.1, None).repeat_count == 1
