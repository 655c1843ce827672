"""Trace session orchestrator.

One session is one observation window:

    session.open()                       # begin snapshots from every provider
    ...                                  # window elapses
    report = session.close(is_foreground)

``close`` diffs a fresh snapshot of every subsystem against its begin
snapshot, runs the thread watchdog, renders one report and returns to idle.
Sessions don't overlap; the caller schedules them one after another.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

import structlog

from ..config import MonitorConfig, current_monitor_config
from ..report import ReportAssembler
from ..report.stacks import ThreadStack, live_thread_stacks
from ..snapshot import (
    AppStats,
    Delta,
    PendingTaskTraces,
    Snapshot,
    SubsystemKind,
    TaskTrace,
    ThreadJiffiesEntry,
    compute_delta,
    default_app_stats,
    uptime_millis,
)
from .events import DeltaComputed, EventBus, ReportEmitted, TaskTraced
from .providers import (
    AppStatsProvider,
    NullStackCapture,
    ProviderRegistry,
    ReportSink,
    StackCapture,
)
from .watchdog import ThreadWatchdog

logger = structlog.get_logger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    OPEN = "open"


class TraceSession:
    """Owns the begin snapshots of one observation window."""

    def __init__(
        self,
        registry: ProviderRegistry,
        stack_capture: Optional[StackCapture] = None,
        config_provider: Callable[[], MonitorConfig] = current_monitor_config,
        sink: Optional[ReportSink] = None,
        app_stats_provider: AppStatsProvider = default_app_stats,
        clock: Callable[[], int] = uptime_millis,
        events: Optional[EventBus] = None,
        stack_source: Callable[[], list[ThreadStack]] = live_thread_stacks,
    ):
        self.registry = registry
        self.config_provider = config_provider
        self.app_stats_provider = app_stats_provider
        self.clock = clock
        self.events = events if events is not None else EventBus()
        self.task_traces = PendingTaskTraces()
        self.watchdog = ThreadWatchdog(
            stack_capture if stack_capture is not None else NullStackCapture(),
            config_provider,
            self.events,
        )
        self.assembler = ReportAssembler(sink, stack_source=stack_source)

        self.state = SessionState.IDLE
        self._begin_ms = 0
        self._begin_snapshots: dict[SubsystemKind, Snapshot] = {}
        self._app_stats: Optional[AppStats] = None

    @property
    def begin_snapshots(self) -> dict[SubsystemKind, Snapshot]:
        return dict(self._begin_snapshots)

    @property
    def app_stats(self) -> Optional[AppStats]:
        """Stats of the window being closed; None outside ``close``."""
        return self._app_stats

    def open(self) -> None:
        """Start a window: record the start time and take begin snapshots."""
        if self.state is SessionState.OPEN:
            logger.warning("trace_session_reopened", begin_ms=self._begin_ms)
            self._reset()

        self._begin_ms = self.clock()
        for provider in self.registry:
            snapshot = self._query(provider.kind)
            if snapshot is not None:
                self._begin_snapshots[provider.kind] = snapshot

        self.state = SessionState.OPEN
        logger.debug("trace_session_opened",
                     begin_ms=self._begin_ms,
                     kinds=[kind.value for kind in self._begin_snapshots])

    def close(self, is_foreground: bool) -> Optional[str]:
        """End the window and emit its report.

        Args:
            is_foreground: Whether the app is in the foreground at window end

        Returns:
            The report text, or None if the window was invalid or rendering failed.
        """
        duration_ms = self.clock() - self._begin_ms
        if self._begin_ms <= 0 or duration_ms <= 0:
            logger.warning("skip_invalid_trace", begin_ms=self._begin_ms, duration_ms=duration_ms)
            self._reset()
            return None

        try:
            self._app_stats = self._build_app_stats(duration_ms, is_foreground)
            deltas = self._compute_deltas()

            jiffies = deltas.get(SubsystemKind.JIFFIES)
            if jiffies is not None:
                try:
                    self.watchdog.inspect(jiffies, self._app_stats)
                except Exception as e:
                    logger.error("thread_watchdog_failed", error=str(e), exc_info=True)

            # Lock is released before rendering starts
            traces = self.task_traces.drain()
            report = self.assembler.write_session_report(deltas, self._app_stats, traces)
            if report is not None:
                logger.info("trace_session_closed",
                            duration_ms=duration_ms,
                            is_foreground=is_foreground,
                            deltas=len(deltas))
                self.events.publish(ReportEmitted(report, duration_ms))
            return report
        finally:
            self._reset()

    def discard(self) -> None:
        """Drop the open window without emitting a report."""
        if self.state is SessionState.OPEN:
            logger.info("trace_session_discarded", begin_ms=self._begin_ms)
        self._reset()

    def on_task_trace(self, tid: int, traces: list[TaskTrace]) -> None:
        """Record task traces for ``tid``; safe to call from any thread."""
        self.task_traces.put(tid, traces)
        self.events.publish(TaskTraced(tid, len(traces)))

    def watch_threads(self, entries: list[ThreadJiffiesEntry]) -> Optional[str]:
        """Emit an on-demand thread watchdog report, independent of any window."""
        return self.assembler.write_thread_watchdog_report(entries, self.config_provider())

    def _build_app_stats(self, duration_ms: int, is_foreground: bool) -> AppStats:
        try:
            return self.app_stats_provider(duration_ms, is_foreground)
        except Exception as e:
            logger.warning("app_stats_unavailable", error=str(e))
            return default_app_stats(duration_ms, is_foreground)

    def _compute_deltas(self) -> dict[SubsystemKind, Delta]:
        deltas: dict[SubsystemKind, Delta] = {}
        for kind, begin in self._begin_snapshots.items():
            current = self._query(kind)
            if current is None:
                continue
            delta = compute_delta(current, begin)
            deltas[kind] = delta
            self.events.publish(DeltaComputed(kind, delta))
        return deltas

    def _query(self, kind: SubsystemKind) -> Optional[Snapshot]:
        provider = self.registry.get(kind)
        if provider is None:
            return None
        try:
            return provider.current_snapshot()
        except Exception as e:
            logger.warning("snapshot_query_failed", kind=kind.value, error=str(e))
            return None

    def _reset(self) -> None:
        self._begin_ms = 0
        self._begin_snapshots.clear()
        self._app_stats = None
        self.task_traces.clear()
        self.state = SessionState.IDLE