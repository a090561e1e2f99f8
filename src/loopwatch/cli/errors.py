"""Errors raised by the loopwatch command line tools.

Every failure surfaces as a :class:`CliError` whose category selects the
process exit status.  Problems with a particular capture line or
configuration file carry the offending ``path`` (and ``line``) in their
context so the structured log record points at the input to fix.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

__all__ = ["EXIT_STATUS", "CliError", "report_cli_error"]


logger = logging.getLogger(__name__)


EXIT_STATUS: Mapping[str, int] = {
    "runtime": 1,
    "usage": 2,
    "io": 3,
    "not_found": 4,
}


class CliError(RuntimeError):
    """Failure reported to the user with an exit status and log context."""

    def __init__(
        self,
        message: str,
        *,
        category: str = "runtime",
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if category not in EXIT_STATUS:
            raise ValueError(f"Unknown CLI error category: {category!r}")
        super().__init__(message)
        self.message = message
        self.category = category
        self.status_code = EXIT_STATUS[category]
        self.context = {
            key: value if isinstance(value, (str, int, float, bool)) or value is None else str(value)
            for key, value in (context or {}).items()
        }
        self.logged = False

    @classmethod
    def for_input(
        cls,
        message: str,
        path: str | Path,
        *,
        line: Optional[int] = None,
        category: str = "usage",
        **details: Any,
    ) -> "CliError":
        """Build an error about ``path`` (optionally a specific ``line`` of it)."""

        context: dict[str, Any] = {"path": str(path)}
        if line is not None:
            context["line"] = line
        context.update(details)
        return cls(message, category=category, context=context)

    def as_dict(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "category": self.category,
            "message": self.message,
            "context": dict(self.context),
        }


def report_cli_error(error: CliError) -> None:
    """Log ``error`` once at ERROR level with its structured context."""

    if error.logged:
        return
    logger.error(
        error.message,
        extra={
            "event": "cli.error",
            "category": error.category,
            "status_code": error.status_code,
            "context": dict(error.context),
        },
        exc_info=error,
    )
    error.logged = True
