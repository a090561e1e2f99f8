"""Input/output helpers for the loopwatch command line tools."""

from __future__ import annotations

import csv
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..configuration import load_project_config
from .errors import CliError

__all__ = [
    "CONFIG_ENV_VAR",
    "CapturedEvent",
    "EVENT_SOURCES",
    "load_cli_config",
    "read_event_log",
]


CONFIG_ENV_VAR = "LOOPWATCH_CONFIG"
EVENT_SOURCES = frozenset({"hardware", "software", "focus"})
_REQUIRED_COLUMNS = ("timestamp", "source")


@dataclass(frozen=True, slots=True)
class CapturedEvent:
    """One line of a captured input log."""

    timestamp: float
    source: str
    button: Optional[str] = None
    identifier: Optional[str] = None


def load_cli_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load CLI defaults from ``pyproject.toml`` files."""

    env_config = os.environ.get(CONFIG_ENV_VAR)
    bases: List[Path] = []
    if path is not None:
        bases.append(Path(path))
    if env_config:
        bases.append(Path(env_config))
    bases.append(Path.cwd())

    for base in bases:
        try:
            loaded = load_project_config(base)
        except ValueError as exc:
            raise CliError.for_input(
                f"Invalid TOML configuration in '{base}'.", base
            ) from exc
        if not loaded:
            continue
        payload, resolved = loaded
        payload["_config_path"] = str(resolved)
        return payload
    return {"_config_path": None}


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in {"nil", "none", "null"}:
        return None
    return text


def _parse_event(row: Mapping[str, Any], *, source_path: Path, line: int) -> CapturedEvent:
    missing = [column for column in _REQUIRED_COLUMNS if _blank_to_none(row.get(column)) is None]
    if missing:
        raise CliError.for_input(
            f"Event on line {line} is missing required fields: {', '.join(missing)}.",
            source_path,
            line=line,
            missing=",".join(missing),
        )
    try:
        timestamp = float(row["timestamp"])
    except (TypeError, ValueError):
        raise CliError.for_input(
            f"Event on line {line} has an invalid timestamp {row['timestamp']!r}.",
            source_path,
            line=line,
        ) from None
    source = str(row["source"]).strip().lower()
    if source not in EVENT_SOURCES:
        raise CliError.for_input(
            f"Event on line {line} has unknown source {source!r}.",
            source_path,
            line=line,
            source=source,
        )
    button = _blank_to_none(row.get("button"))
    if source != "focus" and button is None:
        raise CliError.for_input(
            f"{source.capitalize()} event on line {line} does not name a button.",
            source_path,
            line=line,
        )
    return CapturedEvent(
        timestamp=timestamp,
        source=source,
        button=button,
        identifier=_blank_to_none(row.get("identifier")),
    )


def _iter_rows(path: Path) -> Iterable[tuple[int, Mapping[str, Any]]]:
    with path.open("r", encoding="utf-8", newline="") as handle:
        if path.suffix.lower() in {".jsonl", ".ndjson", ".json"}:
            for index, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    row = json.loads(line)
                except json.JSONDecodeError as exc:
                    raise CliError.for_input(
                        f"Invalid JSON on line {index}: {exc.msg}.", path, line=index
                    ) from exc
                if not isinstance(row, Mapping):
                    raise CliError.for_input(
                        f"Line {index} must contain a JSON object.", path, line=index
                    )
                yield index, row
            return
        reader = csv.DictReader(handle)
        for index, row in enumerate(reader, start=2):
            yield index, row


def read_event_log(path: Path) -> List[CapturedEvent]:
    """Parse a CSV or JSON-lines capture into :class:`CapturedEvent` objects.

    Timestamps must be non-decreasing; a capture that steps back in time is
    rejected with the offending line in the error context.
    """

    source_path = Path(path).expanduser()
    if not source_path.is_file():
        raise CliError.for_input(
            f"Event log '{source_path}' does not exist.", source_path, category="not_found"
        )
    events: List[CapturedEvent] = []
    try:
        for line, row in _iter_rows(source_path):
            event = _parse_event(row, source_path=source_path, line=line)
            if events and event.timestamp < events[-1].timestamp:
                raise CliError.for_input(
                    f"Event on line {line} is earlier than the event before it "
                    f"({event.timestamp} < {events[-1].timestamp}).",
                    source_path,
                    line=line,
                )
            events.append(event)
    except (OSError, UnicodeDecodeError) as exc:
        raise CliError.for_input(
            f"Unable to read event log '{source_path}'.", source_path, category="io"
        ) from exc
    return events
