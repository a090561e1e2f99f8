"""Command handlers for the loopwatch CLI."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from typing import Any, Mapping

from ..configuration import DetectorSettings, InstrumentationSettings, load_detection_config
from .errors import CliError
from .io import read_event_log
from .replay import replay_events

logger = logging.getLogger(__name__)


def _load_settings(
    namespace: argparse.Namespace,
) -> tuple[DetectorSettings, InstrumentationSettings]:
    path = getattr(namespace, "detection_config", None)
    try:
        document = load_detection_config(path)
        return (
            DetectorSettings.from_config(document.get("detector")),
            InstrumentationSettings.from_config(document.get("instrumentation")),
        )
    except FileNotFoundError as exc:
        raise CliError.for_input(
            f"Detection configuration '{path}' does not exist.", path, category="not_found"
        ) from exc
    except (TypeError, ValueError) as exc:
        raise CliError.for_input(str(exc), path if path is not None else "<bundled>") from exc


def _handle_replay(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    detector_settings, instrumentation_settings = _load_settings(namespace)
    events = read_event_log(namespace.events)
    logger.info(
        "Replaying %d events from %s.",
        len(events),
        namespace.events,
        extra={"event": "cli.replay.start", "path": str(namespace.events)},
    )
    report = replay_events(
        events,
        detector_settings=detector_settings,
        instrumentation_settings=instrumentation_settings,
    )
    report["source"] = str(namespace.events)
    return json.dumps(report, indent=namespace.indent, sort_keys=True)


def _handle_thresholds(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    detector_settings, instrumentation_settings = _load_settings(namespace)
    payload = {
        "detector": asdict(detector_settings),
        "instrumentation": asdict(instrumentation_settings),
    }
    return json.dumps(payload, indent=2, sort_keys=True)
