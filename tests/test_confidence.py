from __future__ import annotations

import pytest

from loopwatch.confidence import (
    AlertLatch,
    AlertState,
    ConfidenceState,
    HeuristicWeights,
    combine_scores,
    decay_factor,
    published_score,
)
from loopwatch.heuristics import HeuristicScores


def test_default_weights_sum_to_one() -> None:
    weights = HeuristicWeights()

    assert weights.frequency + weights.divergence + weights.cadence == pytest.approx(1.0)


def test_combine_scores_is_weighted_sum() -> None:
    scores = HeuristicScores(frequency=1.0, divergence=0.5, cadence=0.25)

    assert combine_scores(scores) == pytest.approx(0.5 + 0.15 + 0.05)


def test_combine_scores_clamps_to_unit_interval() -> None:
    weights = HeuristicWeights(frequency=1.0, divergence=1.0, cadence=1.0)

    assert combine_scores(HeuristicScores(1.0, 1.0, 1.0), weights) == 1.0


@pytest.mark.parametrize(
    ("elapsed", "expected"),
    [(0.0, 1.0), (0.5, 0.75), (1.0, 0.5), (2.0, 0.0), (5.0, 0.0), (None, 0.0), (-1.0, 1.0)],
)
def test_decay_factor_is_linear_over_two_seconds(elapsed, expected) -> None:
    assert decay_factor(elapsed) == pytest.approx(expected)


def test_published_score_never_exceeds_raw() -> None:
    for elapsed in (0.0, 0.3, 1.7, 2.5):
        assert published_score(0.9, elapsed) <= 0.9


def test_confidence_state_decays_from_snapshot() -> None:
    state = ConfidenceState(score=0.8, has_fired=False, raw_score=0.8, last_event_at=10.0)

    assert state.decayed(10.0) == pytest.approx(0.8)
    assert state.decayed(11.0) == pytest.approx(0.4)
    assert state.decayed(12.5) == 0.0
    assert ConfidenceState().decayed(100.0) == 0.0


def test_latch_fires_once_until_reset() -> None:
    latch = AlertLatch(0.7)

    assert latch.state is AlertState.ARMED
    assert not latch.observe(0.69)
    assert latch.observe(0.70)
    assert latch.has_fired
    assert not latch.observe(0.95)
    assert not latch.observe(0.1)
    assert latch.state is AlertState.FIRED

    latch.reset()

    assert latch.state is AlertState.ARMED
    assert latch.observe(0.8)


def test_latch_rejects_threshold_outside_unit_interval() -> None:
    with pytest.raises(ValueError):
        AlertLatch(1.5)


def test_weights_from_config_keeps_defaults_for_bad_values() -> None:
    weights = HeuristicWeights.from_config({"frequency": "0.6", "divergence": "heavy"})

    assert weights.frequency == pytest.approx(0.6)
    assert weights.divergence == pytest.approx(0.3)
    assert weights.cadence == pytest.approx(0.2)
    assert HeuristicWeights.from_config(None) == HeuristicWeights()
