"""Entry primitives that make up a Snapshot.

Three variants of measured value:
- CounterEntry: a single number, diffed by subtraction
- ListEntry: an ordered tuple of items, diffed item by item
- RecordEntry: a live mutable object, copied through on diff

Every entry answers ``has_anomaly()`` so a Delta can decide validity
without knowing which variant it is looking at.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class Entry:
    """Base class for all snapshot entries."""

    def diff(self, previous: Optional["Entry"]) -> "Entry":
        raise NotImplementedError

    def has_anomaly(self) -> bool:
        return False


@dataclass(frozen=True)
class CounterEntry(Entry):
    """A single numeric reading.

    Monotonic counters (scan counts, jiffies) must never go backwards within
    a session; a negative diff means the counter was reset. Gauges such as
    temperature or thread count set ``monotonic=False``.
    """

    value: int | float
    monotonic: bool = True

    def get(self) -> int | float:
        return self.value

    def diff(self, previous: Optional[Entry]) -> "CounterEntry":
        if previous is None:
            return self
        if not isinstance(previous, CounterEntry):
            raise TypeError(f"Cannot diff CounterEntry against {type(previous).__name__}")
        return CounterEntry(self.value - previous.value, self.monotonic)

    def has_anomaly(self) -> bool:
        return self.monotonic and self.value < 0

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ThreadJiffiesEntry(Entry):
    """Cumulative CPU jiffies of one thread, identified by ``tid``."""

    tid: int
    name: str
    stat: str
    jiffies: int
    is_new_added: bool = False

    @property
    def key(self) -> int:
        return self.tid

    def get(self) -> int:
        return self.jiffies

    def diff(self, previous: Optional[Entry]) -> "ThreadJiffiesEntry":
        if previous is None:
            # First seen in this window: the whole value counts as increase
            return replace(self, is_new_added=True)
        if not isinstance(previous, ThreadJiffiesEntry):
            raise TypeError(f"Cannot diff ThreadJiffiesEntry against {type(previous).__name__}")
        return replace(self, jiffies=self.jiffies - previous.jiffies, is_new_added=False)

    def has_anomaly(self) -> bool:
        return self.jiffies < 0


@dataclass(frozen=True)
class RecordEntry(Entry, Generic[T]):
    """Reference to a live external object whose state is read, not diffed."""

    record: T

    def get(self) -> T:
        return self.record

    def diff(self, previous: Optional[Entry]) -> "RecordEntry[T]":
        return self


@dataclass(frozen=True)
class ListEntry(Entry, Generic[T]):
    """Ordered collection of entries.

    Items exposing a ``key`` attribute are matched by identity; anything
    else is matched by position. Items missing from the current list are
    dropped from the diff.
    """

    items: tuple = ()

    @classmethod
    def of(cls, items) -> "ListEntry":
        return cls(tuple(items))

    def get_list(self) -> list:
        return list(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def diff(self, previous: Optional[Entry]) -> "ListEntry":
        if previous is None:
            return ListEntry(tuple(item.diff(None) for item in self.items))
        if not isinstance(previous, ListEntry):
            raise TypeError(f"Cannot diff ListEntry against {type(previous).__name__}")

        if self.items and all(hasattr(item, "key") for item in self.items):
            by_key: dict[Any, Entry] = {
                item.key: item for item in previous.items if hasattr(item, "key")
            }
            return ListEntry(tuple(item.diff(by_key.get(item.key)) for item in self.items))

        diffed = []
        for index, item in enumerate(self.items):
            prev_item = previous.items[index] if index < len(previous.items) else None
            diffed.append(item.diff(prev_item))
        return ListEntry(tuple(diffed))

    def has_anomaly(self) -> bool:
        return any(item.has_anomaly() for item in self.items)

    def __str__(self) -> str:
        return "[" + ", ".join(str(item) for item in self.items) + "]"
