"""Logging configuration shared by the loopwatch command line tools.

Library modules only create module-level loggers and attach structured
context through ``extra={"event": ...}``.  Handlers are installed here, by
the application entry points, never by the library itself.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, TextIO

__all__ = ["JsonFormatter", "setup_logging"]


_ROOT_LOGGER_NAME = "loopwatch"
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_RESERVED_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRIBUTES or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, sort_keys=False)


def _resolve_level(value: Any) -> int:
    if isinstance(value, int):
        return value
    name = str(value or "info").strip().upper()
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level
    raise ValueError(f"Unknown logging level: {value!r}")


def _resolve_stream(output: str) -> Optional[TextIO]:
    if output == "stdout":
        return sys.stdout
    if output == "stderr":
        return sys.stderr
    return None


def setup_logging(config: Optional[Mapping[str, Any]] = None) -> logging.Logger:
    """Configure the ``loopwatch`` logger from ``config["logging"]``.

    Recognised keys are ``level`` (default ``info``), ``output``
    (``stderr``, ``stdout`` or a file path) and ``format`` (``json`` or
    ``text``).  Calling the function again replaces previously installed
    handlers.
    """

    logging_cfg: Mapping[str, Any] = {}
    if config is not None:
        section = config.get("logging", {})
        if isinstance(section, Mapping):
            logging_cfg = section

    level = _resolve_level(logging_cfg.get("level", "info"))
    output = str(logging_cfg.get("output", "stderr") or "stderr")
    fmt = str(logging_cfg.get("format", "json") or "json").lower()

    if fmt not in {"json", "text"}:
        raise ValueError(f"Unknown logging format: {fmt!r}")

    stream = _resolve_stream(output)
    if stream is not None:
        handler: logging.Handler = logging.StreamHandler(stream)
    else:
        path = Path(output).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")

    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    logger = logging.getLogger(_ROOT_LOGGER_NAME)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
