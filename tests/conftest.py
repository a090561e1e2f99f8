from __future__ import annotations

import logging
import sys
from pathlib import Path
from textwrap import dedent
from typing import Iterator

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


def write_pyproject(directory: Path, contents: str) -> Path:
    """Persist a ``pyproject.toml`` under ``directory`` and return its path."""

    payload = dedent(contents).lstrip()
    target = directory / "pyproject.toml"
    target.write_text(payload, encoding="utf8")
    return target


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now

    def set(self, value: float) -> float:
        self.now = float(value)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _restore_package_logger() -> Iterator[None]:
    """Undo handler changes made by ``setup_logging`` during a test."""

    logger = logging.getLogger("loopwatch")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
