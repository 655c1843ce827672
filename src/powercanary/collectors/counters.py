"""In-process counters for event-driven subsystems.

Instrumented code bumps these counters as events happen (an alarm is set,
a scan starts, a wake lock is taken); the session reads them as snapshots.
All methods are safe to call from any thread.
"""

from __future__ import annotations

import threading
from typing import Callable

import structlog

from ..snapshot import (
    SNAPSHOT_TYPES,
    CounterEntry,
    Snapshot,
    SubsystemKind,
    WakeLockRecord,
    WakeLockSnapshot,
    uptime_millis,
)

logger = structlog.get_logger(__name__)

COUNTER_FIELDS: dict[SubsystemKind, tuple[str, ...]] = {
    SubsystemKind.ALARM: ("total_count", "tracing_count", "duplicated_group", "duplicated_count"),
    SubsystemKind.BLUETOOTH: ("regs_count", "disc_count", "scan_count"),
    SubsystemKind.WIFI: ("scan_count", "query_count"),
    SubsystemKind.LOCATION: ("scan_count",),
}

MAX_TRACKED_WAKE_LOCKS = 64


class CountingProvider:
    """Monotonic event counters for one counter-only subsystem."""

    def __init__(self, kind: SubsystemKind, clock: Callable[[], int] = uptime_millis):
        if kind not in COUNTER_FIELDS:
            raise ValueError(f"{kind.value} is not a counter-only subsystem")
        self.kind = kind
        self.clock = clock
        self._lock = threading.Lock()
        self._counts = {name: 0 for name in COUNTER_FIELDS[kind]}

    def increment(self, counter: str, amount: int = 1) -> None:
        if amount < 0:
            raise ValueError("Counters only move forward")
        with self._lock:
            if counter not in self._counts:
                raise KeyError(f"Unknown {self.kind.value} counter '{counter}'")
            self._counts[counter] += amount

    def current_snapshot(self) -> Snapshot:
        with self._lock:
            counts = dict(self._counts)
        snapshot_cls = SNAPSHOT_TYPES[self.kind]
        return snapshot_cls(
            timestamp_ms=self.clock(),
            **{name: CounterEntry(value) for name, value in counts.items()},
        )


class WakeLockTracker:
    """Tracks wake locks acquired and released by the app."""

    kind = SubsystemKind.WAKE_LOCK

    def __init__(self, clock: Callable[[], int] = uptime_millis):
        self.clock = clock
        self._lock = threading.Lock()
        self._records: list[WakeLockRecord] = []
        self._total_count = 0
        self._finished_time_ms = 0

    def acquire(self, tag: str, flags: int = 0) -> WakeLockRecord:
        record = WakeLockRecord(tag=tag, flags=flags, time_bgn_ms=self.clock())
        with self._lock:
            self._total_count += 1
            self._records.append(record)
            if len(self._records) > MAX_TRACKED_WAKE_LOCKS:
                self._trim_records()
        return record

    def release(self, record: WakeLockRecord) -> None:
        with self._lock:
            if record.is_finished():
                return
            record.finish(self.clock())
            self._finished_time_ms += max(0, record.time_end_ms - record.time_bgn_ms)

    def _trim_records(self) -> None:
        for index, record in enumerate(self._records):
            if record.is_finished():
                del self._records[index]
                return
        # All held: the oldest one stops being reported, its release still counts
        dropped = self._records.pop(0)
        logger.warning("wake_lock_records_trimmed",
                       tag=dropped.tag,
                       held=len(self._records),
                       limit=MAX_TRACKED_WAKE_LOCKS)

    def current_snapshot(self) -> WakeLockSnapshot:
        now = self.clock()
        with self._lock:
            held_ms = sum(
                max(0, now - record.time_bgn_ms)
                for record in self._records
                if not record.is_finished()
            )
            return WakeLockSnapshot.from_records(
                list(self._records),
                total_count=self._total_count,
                total_time_ms=self._finished_time_ms + held_ms,
                timestamp_ms=now,
            )
