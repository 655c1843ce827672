"""Snapshot model: entries, subsystem snapshots, deltas and window stats."""

from .app_stats import AppStats, default_app_stats
from .delta import Delta, compute_delta
from .entries import CounterEntry, Entry, ListEntry, RecordEntry, ThreadJiffiesEntry
from .snapshots import (
    SNAPSHOT_TYPES,
    AlarmSnapshot,
    AppStatSnapshot,
    BatteryTmpSnapshot,
    BlueToothSnapshot,
    CpuFreqSnapshot,
    JiffiesSnapshot,
    LocationSnapshot,
    Snapshot,
    SubsystemKind,
    WakeLockRecord,
    WakeLockSnapshot,
    WifiSnapshot,
    uptime_millis,
)
from .traces import PendingTaskTraces, TaskTrace

__all__ = [
    "AppStats",
    "default_app_stats",
    "Delta",
    "compute_delta",
    "CounterEntry",
    "Entry",
    "ListEntry",
    "RecordEntry",
    "ThreadJiffiesEntry",
    "SNAPSHOT_TYPES",
    "AlarmSnapshot",
    "AppStatSnapshot",
    "BatteryTmpSnapshot",
    "BlueToothSnapshot",
    "CpuFreqSnapshot",
    "JiffiesSnapshot",
    "LocationSnapshot",
    "Snapshot",
    "SubsystemKind",
    "WakeLockRecord",
    "WakeLockSnapshot",
    "WifiSnapshot",
    "uptime_millis",
    "PendingTaskTraces",
    "TaskTrace",
]
