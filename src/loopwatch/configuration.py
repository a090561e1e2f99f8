"""Helpers to load detection thresholds and project-level configuration.

Two sources are supported:

* ``detection.yaml`` documents carrying the tuned detector and
  instrumentation thresholds.  A copy with the defaults ships inside
  :mod:`loopwatch.resources`.
* The ``[tool.loopwatch]`` table of a ``pyproject.toml`` used by the
  command line tools.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping as ABCMapping
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11 fallback
    import tomli as tomllib  # type: ignore

from .confidence import DEFAULT_CRITICAL_THRESHOLD, DEFAULT_DECAY_HORIZON, HeuristicWeights
from .heuristics import HeuristicThresholds
from .history import DEFAULT_HISTORY_CAPACITY

__all__ = [
    "DetectorSettings",
    "InstrumentationSettings",
    "load_detection_config",
    "load_project_config",
]


_DETECTION_RESOURCE_PACKAGE = "loopwatch.resources"
_DETECTION_RESOURCE_NAME = "detection.yaml"
_PROJECT_FILENAME = "pyproject.toml"


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, ABCMapping):
        return value
    return {}


def _coerce_int(value: Any, fallback: int, *, minimum: int = 1) -> int:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return fallback
    return numeric if numeric >= minimum else fallback


def _coerce_float(value: Any, fallback: float, *, minimum: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return fallback
    return numeric if numeric >= minimum else fallback


@dataclass(frozen=True, slots=True)
class DetectorSettings:
    """Immutable detector configuration parsed from YAML or TOML sources."""

    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    critical_threshold: float = DEFAULT_CRITICAL_THRESHOLD
    decay_horizon: float = DEFAULT_DECAY_HORIZON
    diagnostics_tail: int = 20
    weights: HeuristicWeights = field(default_factory=HeuristicWeights)
    thresholds: HeuristicThresholds = field(default_factory=HeuristicThresholds)

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None = None) -> "DetectorSettings":
        """Coerce a ``detector`` mapping into settings, keeping defaults for bad values."""

        section = _as_mapping(config)
        defaults = cls()
        threshold = _coerce_float(section.get("critical_threshold"), defaults.critical_threshold)
        if threshold > 1.0:
            threshold = defaults.critical_threshold
        return cls(
            history_capacity=_coerce_int(section.get("history_capacity"), defaults.history_capacity),
            critical_threshold=threshold,
            decay_horizon=_coerce_float(
                section.get("decay_horizon"), defaults.decay_horizon, minimum=1e-9
            ),
            diagnostics_tail=_coerce_int(section.get("diagnostics_tail"), defaults.diagnostics_tail),
            weights=HeuristicWeights.from_config(_as_mapping(section.get("weights"))),
            thresholds=HeuristicThresholds.from_config(_as_mapping(section.get("heuristics"))),
        )


@dataclass(frozen=True, slots=True)
class InstrumentationSettings:
    """Thresholds for the queue-depth, latency and phantom-press instrumentation."""

    pending_capacity: int = 50
    sample_capacity: int = 100
    dominance_ratio: float = 2.0
    burst_interval: float = 0.1
    swipe_latency_warning: float = 0.1
    press_latency_warning: float = 0.2
    hardware_window: float = 0.20
    focus_stale_after: float = 0.12
    repeat_window: float = 2.0
    rapid_repeat_limit: int = 5
    press_cache_capacity: int = 64
    significant_backlog: int = 50
    swipe_backlog: int = 10
    press_backlog: int = 5
    degraded_swipe_latency: float = 0.1

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None = None) -> "InstrumentationSettings":
        section = _as_mapping(config)
        defaults = cls()
        values: dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            fallback = getattr(defaults, name)
            raw = section.get(name)
            if isinstance(fallback, int):
                values[name] = _coerce_int(raw, fallback, minimum=0)
            else:
                values[name] = _coerce_float(raw, fallback)
        for name in ("pending_capacity", "sample_capacity", "press_cache_capacity"):
            if values[name] <= 0:
                values[name] = getattr(defaults, name)
        if values["dominance_ratio"] <= 0.0:
            values["dominance_ratio"] = defaults.dominance_ratio
        return cls(**values)


def load_detection_config(
    path: str | Path | None = None,
    *,
    search_paths: Iterable[str | Path] | None = None,
) -> Mapping[str, Any]:
    """Load the detection threshold document.

    Parameters
    ----------
    path:
        Path to a YAML file. When supplied the loader skips the search order
        and reads this file directly.
    search_paths:
        Optional iterable of directories or files to inspect. Directories are
        resolved against ``detection.yaml``. The first existing file wins,
        falling back to the defaults bundled with :mod:`loopwatch`.
    """

    if path is not None:
        candidate = Path(path).expanduser()
        if not candidate.is_file():
            raise FileNotFoundError(candidate)
        return _load_detection_payload(candidate)

    if search_paths is not None:
        for entry in search_paths:
            entry_path = Path(entry).expanduser()
            candidate = entry_path / _DETECTION_RESOURCE_NAME if entry_path.is_dir() else entry_path
            if candidate.is_file():
                return _load_detection_payload(candidate)

    resource = resources.files(_DETECTION_RESOURCE_PACKAGE).joinpath(_DETECTION_RESOURCE_NAME)
    payload = resource.read_text(encoding="utf-8")
    return _load_detection_from_text(payload, source=str(resource))


def _load_detection_payload(path: Path) -> Mapping[str, Any]:
    with path.open("r", encoding="utf-8") as buffer:
        payload = buffer.read()
    return _load_detection_from_text(payload, source=str(path))


def _load_detection_from_text(payload: str, *, source: str) -> Mapping[str, Any]:
    try:
        data = yaml.safe_load(payload)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in detection configuration: {source}") from exc

    if data is None:
        return MappingProxyType({})
    if not isinstance(data, ABCMapping):
        raise TypeError(f"Detection configuration in {source!s} must decode to a mapping")
    return MappingProxyType(_as_dict(data))


def _as_dict(payload: ABCMapping[str, Any]) -> dict[str, Any]:
    """Recursively coerce parsed mappings into regular dictionaries."""

    result: dict[str, Any] = {}
    for key, value in payload.items():
        key_str = str(key)
        if isinstance(value, ABCMapping):
            result[key_str] = _as_dict(value)
        elif isinstance(value, list):
            result[key_str] = [
                _as_dict(item) if isinstance(item, ABCMapping) else item for item in value
            ]
        else:
            result[key_str] = value
    return result


def _resolve_pyproject_path(candidate: Path) -> Path | None:
    candidate = candidate.expanduser()
    if candidate.name == _PROJECT_FILENAME:
        return candidate
    if candidate.suffix:
        return None
    return candidate / _PROJECT_FILENAME


def load_project_config(path: Path) -> tuple[dict[str, Any], Path] | None:
    """Load the ``[tool.loopwatch]`` section from ``pyproject.toml``."""

    pyproject_path = _resolve_pyproject_path(Path(path))
    if pyproject_path is None:
        return None
    pyproject_path = pyproject_path.resolve(strict=False)
    if not pyproject_path.exists():
        return None
    with pyproject_path.open("rb") as handle:
        payload = tomllib.load(handle)

    tool_section = payload.get("tool")
    if not isinstance(tool_section, ABCMapping):
        return None
    section = tool_section.get("loopwatch")
    if not isinstance(section, ABCMapping):
        return None
    return _as_dict(section), pyproject_path
