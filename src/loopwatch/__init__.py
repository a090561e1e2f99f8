"""Runaway input-loop detection for focus-driven user interfaces.

The package watches the stream of press and focus events produced by an
interactive system and estimates how likely it is that a backlog of
hardware input is being replayed as phantom events.  Two subsystems are
exposed:

* :class:`RunawayLoopDetector` scores the recent event history and raises
  a one-shot alert when confidence crosses the critical threshold.
* :class:`InputInstrumentation` (built on :class:`QueueDepthEstimator` and
  :class:`LatencyCorrelator`) estimates the hardware/UI backlog and the
  latency between a processed press and its focus effect.
"""

from ._version import __version__
from .alerts import AlertDispatcher, AlertPayload, AlertSink
from .confidence import AlertLatch, AlertState, ConfidenceState, HeuristicWeights
from .configuration import (
    DetectorSettings,
    InstrumentationSettings,
    load_detection_config,
    load_project_config,
)
from .detector import RunawayLoopDetector
from .events import FOCUS, Category, EventRecord, FocusKind, PressKind
from .heuristics import HeuristicScores, HeuristicThresholds
from .history import HistoryBuffer
from .instrumentation import InputInstrumentation, QueueAnalysis
from .latency import LatencyCorrelator, LatencySample
from .phantom import HardwarePressCache, PhantomClassifier, PressClassification
from .queue_depth import QueueCounters, QueueDepthEstimator

__all__ = [
    "AlertDispatcher",
    "AlertLatch",
    "AlertPayload",
    "AlertSink",
    "AlertState",
    "Category",
    "ConfidenceState",
    "DetectorSettings",
    "EventRecord",
    "FOCUS",
    "FocusKind",
    "HardwarePressCache",
    "HeuristicScores",
    "HeuristicThresholds",
    "HeuristicWeights",
    "HistoryBuffer",
    "InputInstrumentation",
    "InstrumentationSettings",
    "LatencyCorrelator",
    "LatencySample",
    "PhantomClassifier",
    "PressClassification",
    "PressKind",
    "QueueAnalysis",
    "QueueCounters",
    "QueueDepthEstimator",
    "RunawayLoopDetector",
    "load_detection_config",
    "load_project_config",
    "__version__",
]
