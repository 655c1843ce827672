"""Snapshot variants, one per monitored subsystem.

A Snapshot is an immutable bundle of named entries captured at one instant.
``SubsystemKind`` is the closed set of variants; every concrete Snapshot
class declares exactly one kind.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import ClassVar, Iterator, Optional

from .entries import CounterEntry, Entry, ListEntry, RecordEntry, ThreadJiffiesEntry


def uptime_millis() -> int:
    """Monotonic milliseconds, unaffected by wall-clock changes."""
    return int(time.monotonic() * 1000)


class SubsystemKind(str, Enum):
    """Closed set of monitored subsystems."""

    JIFFIES = "jiffies"
    ALARM = "alarm"
    WAKE_LOCK = "wake_lock"
    BLUETOOTH = "bluetooth"
    WIFI = "wifi"
    LOCATION = "location"
    CPU_FREQ = "cpu_freq"
    BATTERY_TEMP = "battery_temp"
    APP_STAT = "app_stat"


@dataclass(frozen=True, kw_only=True)
class Snapshot:
    """Base snapshot: capture time plus the subsystem's own validity flag."""

    kind: ClassVar[SubsystemKind]

    timestamp_ms: int = field(default_factory=uptime_millis)
    valid: bool = True  # False when the subsystem reports an incomplete window

    def entries(self) -> Iterator[tuple[str, Entry]]:
        """Yield (field_name, entry) for every Entry-valued field."""
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Entry):
                yield f.name, value


@dataclass(frozen=True, kw_only=True)
class JiffiesSnapshot(Snapshot):
    kind: ClassVar[SubsystemKind] = SubsystemKind.JIFFIES

    pid: int
    name: str
    total_jiffies: CounterEntry
    thread_num: CounterEntry
    thread_entries: ListEntry  # ListEntry[ThreadJiffiesEntry]

    @classmethod
    def from_threads(
        cls,
        pid: int,
        name: str,
        threads: list[ThreadJiffiesEntry],
        total_jiffies: Optional[int] = None,
        **kwargs,
    ) -> "JiffiesSnapshot":
        """Build a snapshot from per-thread readings, sorted by jiffies descending."""
        ordered = sorted(threads, key=lambda t: t.jiffies, reverse=True)
        if total_jiffies is None:
            total_jiffies = sum(t.jiffies for t in ordered)
        return cls(
            pid=pid,
            name=name,
            total_jiffies=CounterEntry(total_jiffies),
            thread_num=CounterEntry(len(ordered), monotonic=False),
            thread_entries=ListEntry.of(ordered),
            **kwargs,
        )


@dataclass(frozen=True, kw_only=True)
class AlarmSnapshot(Snapshot):
    kind: ClassVar[SubsystemKind] = SubsystemKind.ALARM

    total_count: CounterEntry
    tracing_count: CounterEntry
    duplicated_group: CounterEntry
    duplicated_count: CounterEntry


@dataclass
class WakeLockRecord:
    """A wake lock acquired by the app; mutated in place when released."""

    tag: str
    flags: int = 0
    time_bgn_ms: int = field(default_factory=uptime_millis)
    time_end_ms: int = 0

    def finish(self, now_ms: Optional[int] = None) -> None:
        self.time_end_ms = now_ms if now_ms is not None else uptime_millis()

    def is_finished(self) -> bool:
        return self.time_end_ms > 0

    def __str__(self) -> str:
        return (
            f"WakeLockRecord{{tag={self.tag}, flags={self.flags}, "
            f"bgn={self.time_bgn_ms}, end={self.time_end_ms}}}"
        )


@dataclass(frozen=True, kw_only=True)
class WakeLockSnapshot(Snapshot):
    kind: ClassVar[SubsystemKind] = SubsystemKind.WAKE_LOCK

    total_count: CounterEntry
    total_time_ms: CounterEntry
    records: ListEntry  # ListEntry[RecordEntry[WakeLockRecord]]

    @classmethod
    def from_records(
        cls, records: list[WakeLockRecord], total_count: int, total_time_ms: int, **kwargs
    ) -> "WakeLockSnapshot":
        return cls(
            total_count=CounterEntry(total_count),
            total_time_ms=CounterEntry(total_time_ms),
            records=ListEntry.of(RecordEntry(r) for r in records),
            **kwargs,
        )


@dataclass(frozen=True, kw_only=True)
class BlueToothSnapshot(Snapshot):
    kind: ClassVar[SubsystemKind] = SubsystemKind.BLUETOOTH

    regs_count: CounterEntry
    disc_count: CounterEntry
    scan_count: CounterEntry


@dataclass(frozen=True, kw_only=True)
class WifiSnapshot(Snapshot):
    kind: ClassVar[SubsystemKind] = SubsystemKind.WIFI

    scan_count: CounterEntry
    query_count: CounterEntry


@dataclass(frozen=True, kw_only=True)
class LocationSnapshot(Snapshot):
    kind: ClassVar[SubsystemKind] = SubsystemKind.LOCATION

    scan_count: CounterEntry


@dataclass(frozen=True, kw_only=True)
class CpuFreqSnapshot(Snapshot):
    kind: ClassVar[SubsystemKind] = SubsystemKind.CPU_FREQ

    cpu_freqs: ListEntry  # ListEntry[CounterEntry], kHz per core

    @classmethod
    def from_freqs(cls, freqs_khz: list[int], **kwargs) -> "CpuFreqSnapshot":
        return cls(
            cpu_freqs=ListEntry.of(CounterEntry(f, monotonic=False) for f in freqs_khz),
            **kwargs,
        )


@dataclass(frozen=True, kw_only=True)
class BatteryTmpSnapshot(Snapshot):
    kind: ClassVar[SubsystemKind] = SubsystemKind.BATTERY_TEMP

    temp: CounterEntry  # gauge


@dataclass(frozen=True, kw_only=True)
class AppStatSnapshot(Snapshot):
    kind: ClassVar[SubsystemKind] = SubsystemKind.APP_STAT

    uptime_ms: CounterEntry
    fg_ratio: CounterEntry
    bg_ratio: CounterEntry
    fg_srv_ratio: CounterEntry

    @classmethod
    def of(
        cls, uptime_ms: int, fg_ratio: int, bg_ratio: int, fg_srv_ratio: int, **kwargs
    ) -> "AppStatSnapshot":
        return cls(
            uptime_ms=CounterEntry(uptime_ms),
            fg_ratio=CounterEntry(fg_ratio, monotonic=False),
            bg_ratio=CounterEntry(bg_ratio, monotonic=False),
            fg_srv_ratio=CounterEntry(fg_srv_ratio, monotonic=False),
            **kwargs,
        )


SNAPSHOT_TYPES: dict[SubsystemKind, type[Snapshot]] = {
    cls.kind: cls
    for cls in (
        JiffiesSnapshot,
        AlarmSnapshot,
        WakeLockSnapshot,
        BlueToothSnapshot,
        WifiSnapshot,
        LocationSnapshot,
        CpuFreqSnapshot,
        BatteryTmpSnapshot,
        AppStatSnapshot,
    )
}
