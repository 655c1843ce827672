"""Pending task traces reported by instrumented worker threads.

Worker threads insert traces whenever they finish a unit of work; the
session drains the table once per report. Every operation takes the same
lock, and ``drain`` reads and clears under a single acquisition so no
insert can fall between the two.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class TaskTrace:
    """One unit of work executed on a monitored thread."""

    name: str
    jiffies: int = 0
    count: int = 1

    def __str__(self) -> str:
        return f"{self.name}\t{self.jiffies}(jiffies)\tx{self.count}"


class PendingTaskTraces:
    """Thread-safe table of tid -> ordered task traces."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._traces: dict[int, list[TaskTrace]] = {}

    def put(self, tid: int, traces: list[TaskTrace]) -> None:
        """Replace the traces recorded for ``tid``."""
        with self._lock:
            self._traces[tid] = list(traces)

    def get(self, tid: int) -> list[TaskTrace]:
        with self._lock:
            return list(self._traces.get(tid, ()))

    def drain(self) -> dict[int, list[TaskTrace]]:
        """Return every pending trace and empty the table atomically."""
        with self._lock:
            drained = self._traces
            self._traces = {}
        return drained

    def clear(self) -> None:
        with self._lock:
            self._traces.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._traces)
