"""Bounded event history shared by every heuristic.

The buffer keeps records in insertion order inside a preallocated ring so
that appends never allocate once the detector is warm.  Once the capacity
is reached the oldest record is evicted first.
"""

from __future__ import annotations

from typing import Iterator, Optional

from .events import EventRecord

__all__ = ["DEFAULT_HISTORY_CAPACITY", "HistoryBuffer"]


DEFAULT_HISTORY_CAPACITY = 100


class HistoryBuffer:
    """Insertion-ordered ring of :class:`EventRecord` objects."""

    __slots__ = ("_capacity", "_records", "_start", "_size")

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("HistoryBuffer requires a positive capacity")
        self._capacity = capacity
        self._records: list[Optional[EventRecord]] = [None] * capacity
        self._start = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __bool__(self) -> bool:
        return self._size > 0

    def __iter__(self) -> Iterator[EventRecord]:
        for offset in range(self._size):
            record = self._records[self._logical_index(offset)]
            if record is None:  # pragma: no cover
                raise RuntimeError("HistoryBuffer stored None record")
            yield record

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, record: EventRecord) -> Optional[EventRecord]:
        """Store ``record`` and return the evicted record when the ring was full."""

        evicted: Optional[EventRecord] = None
        if self._size == self._capacity:
            evicted = self._records[self._start]
            self._records[self._start] = record
            self._start = (self._start + 1) % self._capacity
            return evicted
        self._records[self._logical_index(self._size)] = record
        self._size += 1
        return evicted

    def clear(self) -> None:
        self._records = [None] * self._capacity
        self._start = 0
        self._size = 0

    def last(self) -> Optional[EventRecord]:
        if not self._size:
            return None
        return self._records[self._logical_index(self._size - 1)]

    def tail(self, count: int) -> tuple[EventRecord, ...]:
        """Return the most recent ``count`` records, oldest first."""

        if count <= 0:
            return ()
        records = tuple(self)
        return records[-count:]

    def presses(self) -> tuple[EventRecord, ...]:
        return tuple(record for record in self if record.is_press)

    def _logical_index(self, offset: int) -> int:
        return (self._start + offset) % self._capacity
