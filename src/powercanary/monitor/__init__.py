"""Trace session orchestration, thread watchdog and collaborator plumbing."""

from .events import DeltaComputed, EventBus, ReportEmitted, TaskTraced, ThreadMarked
from .providers import (
    AppStatsProvider,
    NullStackCapture,
    ProviderRegistry,
    ReportSink,
    SnapshotProvider,
    StackCapture,
)
from .session import SessionState, TraceSession
from .watchdog import MIN_WATCH_MINUTES, ThreadWatchdog

__all__ = [
    "DeltaComputed",
    "EventBus",
    "ReportEmitted",
    "TaskTraced",
    "ThreadMarked",
    "AppStatsProvider",
    "NullStackCapture",
    "ProviderRegistry",
    "ReportSink",
    "SnapshotProvider",
    "StackCapture",
    "SessionState",
    "TraceSession",
    "MIN_WATCH_MINUTES",
    "ThreadWatchdog",
]
