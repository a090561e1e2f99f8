"""Argument parsing helpers for the loopwatch CLI."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Mapping, Optional

from .workflows import _handle_replay, _handle_thresholds


def _detection_config_default(config: Mapping[str, Any]) -> Optional[Path]:
    raw = config.get("detection_config")
    if not raw:
        return None
    candidate = Path(str(raw)).expanduser()
    source = config.get("_config_path")
    if not candidate.is_absolute() and source:
        candidate = Path(str(source)).parent / candidate
    return candidate


def build_parser(config: Optional[Mapping[str, Any]] = None) -> argparse.ArgumentParser:
    config = dict(config or {})
    logging_cfg = config.get("logging", {})
    if not isinstance(logging_cfg, Mapping):
        logging_cfg = {}

    parser = argparse.ArgumentParser(
        prog="loopwatch",
        description="Detect runaway input loops in captured focus and press logs.",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        default=None,
        help="Path to the pyproject.toml carrying a [tool.loopwatch] table.",
    )
    parser.add_argument(
        "--detection-config",
        dest="detection_config",
        type=Path,
        default=_detection_config_default(config),
        help="YAML file with detector and instrumentation thresholds.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=logging_cfg.get("level", "info"),
        help="Logging level (e.g. debug, info, warning).",
    )
    parser.add_argument(
        "--log-output",
        dest="log_output",
        default=logging_cfg.get("output", "stderr"),
        help="Logging destination (stdout, stderr or a file path).",
    )
    parser.add_argument(
        "--log-format",
        dest="log_format",
        choices=("json", "text"),
        default=logging_cfg.get("format", "json"),
        help="Logging formatter (json or text).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    replay_parser = subparsers.add_parser(
        "replay",
        help="Replay a captured event log and report detector and queue state.",
    )
    replay_parser.add_argument(
        "events",
        type=Path,
        help="CSV (timestamp,source,button,identifier) or JSON lines capture.",
    )
    replay_parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="Indentation of the JSON report (default: 2).",
    )
    replay_parser.set_defaults(handler=_handle_replay)

    thresholds_parser = subparsers.add_parser(
        "thresholds",
        help="Print the effective detection thresholds.",
    )
    thresholds_parser.set_defaults(handler=_handle_thresholds)

    return parser
