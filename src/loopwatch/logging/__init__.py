"""Logging utilities for loopwatch."""

from loopwatch.logging.config import JsonFormatter, setup_logging

__all__ = ["JsonFormatter", "setup_logging"]
