"""Event records consumed by the runaway-loop detector.

Host UI code reports two kinds of observations: presses (a directional
swipe or a discrete button) and focus changes.  Each observation is
stamped with a monotonic timestamp and stored as an immutable
:class:`EventRecord`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

__all__ = [
    "Category",
    "DIRECTIONAL_BUTTONS",
    "EventKind",
    "EventRecord",
    "FOCUS",
    "FocusKind",
    "PressKind",
    "category_for_button",
    "is_directional_button",
    "normalise_button",
]


DIRECTIONAL_BUTTONS: frozenset[str] = frozenset(
    {
        "uparrow",
        "downarrow",
        "leftarrow",
        "rightarrow",
        "up",
        "down",
        "left",
        "right",
    }
)


class Category(str, Enum):
    """Event categories tracked by the queue-depth and latency estimators."""

    SWIPE = "swipe"
    PRESS = "press"
    TOTAL = "total"

    @classmethod
    def coerce(cls, value: "Category | str") -> "Category":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown event category: {value!r}") from None


def normalise_button(value: str) -> str:
    """Return a comparable form of a button label (``"Up Arrow"`` -> ``"uparrow"``)."""

    return "".join(ch for ch in str(value).lower() if ch.isalnum())


def is_directional_button(value: str) -> bool:
    return normalise_button(value) in DIRECTIONAL_BUTTONS


def category_for_button(value: str) -> Category:
    """Directional buttons are swipes, everything else is a discrete press."""

    return Category.SWIPE if is_directional_button(value) else Category.PRESS


@dataclass(frozen=True, slots=True)
class PressKind:
    """A press of ``button`` (a direction or a discrete button)."""

    button: str

    @property
    def is_directional(self) -> bool:
        return is_directional_button(self.button)

    @property
    def category(self) -> Category:
        return category_for_button(self.button)

    def __str__(self) -> str:
        return f"press({self.button})"


@dataclass(frozen=True, slots=True)
class FocusKind:
    """A focus change; the focused element travels as the record identifier."""

    def __str__(self) -> str:
        return "focus"


FOCUS = FocusKind()

EventKind = Union[PressKind, FocusKind]


@dataclass(frozen=True, slots=True)
class EventRecord:
    kind: EventKind
    identifier: str | None
    timestamp: float

    @property
    def is_press(self) -> bool:
        return isinstance(self.kind, PressKind)

    @property
    def is_focus(self) -> bool:
        return isinstance(self.kind, FocusKind)

    @property
    def is_directional_press(self) -> bool:
        return isinstance(self.kind, PressKind) and self.kind.is_directional

    def describe(self) -> str:
        """Format the record as ``"<timestamp>: <kind> on <identifier|nil>"``."""

        identifier = self.identifier if self.identifier is not None else "nil"
        return f"{self.timestamp}: {self.kind} on {identifier}"
