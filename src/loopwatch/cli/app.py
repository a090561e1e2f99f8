"""Command line application entry point for loopwatch."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from ..logging.config import setup_logging
from .errors import CliError, report_cli_error
from .io import load_cli_config
from .parser import build_parser

CommandHandler = Callable[[argparse.Namespace, Mapping[str, Any]], str]


def _write(message: str) -> None:
    sys.stdout.write(message)
    if not message.endswith("\n"):
        sys.stdout.write("\n")


def _fail(exc: CliError) -> SystemExit:
    report_cli_error(exc)
    if exc.message:
        _write(exc.message)
    return SystemExit(exc.status_code)


def run_cli(args: Optional[Sequence[str]] = None) -> str:
    """Execute the loopwatch command line interface."""

    config_parser = argparse.ArgumentParser(add_help=False)
    config_parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        default=None,
        help="Path to the pyproject.toml carrying a [tool.loopwatch] table.",
    )
    config_parser.add_argument(
        "--log-level",
        dest="log_level",
        default=None,
        help="Logging level (default: info).",
    )
    config_parser.add_argument(
        "--log-output",
        dest="log_output",
        default=None,
        help="Logging destination (stdout, stderr or a file path).",
    )
    config_parser.add_argument(
        "--log-format",
        dest="log_format",
        choices=("json", "text"),
        default=None,
        help="Logging formatter (json or text).",
    )
    preliminary, remaining = config_parser.parse_known_args(args)

    try:
        config = load_cli_config(preliminary.config_path)
    except CliError as exc:
        raise _fail(exc) from exc
    logging_config = dict(config.get("logging", {}))
    if preliminary.log_level is not None:
        logging_config["level"] = preliminary.log_level
    if preliminary.log_output is not None:
        logging_config["output"] = preliminary.log_output
    if preliminary.log_format is not None:
        logging_config["format"] = preliminary.log_format
    logging_config.setdefault("level", "info")
    logging_config.setdefault("output", "stderr")
    logging_config.setdefault("format", "json")
    config["logging"] = logging_config
    try:
        setup_logging(config)
    except ValueError as exc:
        raise _fail(CliError(str(exc), category="usage")) from exc

    parser = build_parser(config)
    parser.set_defaults(config_path=preliminary.config_path)
    parser.set_defaults(log_level=logging_config.get("level"))
    parser.set_defaults(log_output=logging_config.get("output"))
    parser.set_defaults(log_format=logging_config.get("format"))
    namespace = parser.parse_args(list(remaining), namespace=preliminary)
    namespace.config = config
    namespace.config_path = (
        getattr(namespace, "config_path", None)
        or preliminary.config_path
        or config.get("_config_path")
    )

    handler: Optional[CommandHandler] = getattr(namespace, "handler", None)
    if handler is None:
        raise _fail(
            CliError(
                f"Unknown command '{getattr(namespace, 'command', None)}'.",
                category="usage",
                context={"command": getattr(namespace, "command", None)},
            )
        )

    try:
        result = handler(namespace, config=config)
    except CliError as exc:
        raise _fail(exc) from exc
    if result:
        _write(result)
    return result


def main() -> None:  # pragma: no cover - thin wrapper
    run_cli()


if __name__ == "__main__":  # pragma: no cover - CLI invocation guard
    main()
