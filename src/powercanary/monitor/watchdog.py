"""Thread jiffies watchdog.

Flags threads that stay busy for a whole window. A thread is marked for
stack capture when all of the following hold:
1. its status still contains the running marker ``R``
2. the window lasted more than ``MIN_WATCH_MINUTES``
3. its average jiffies per minute exceeds the foreground or background limit
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from ..config import MonitorConfig
from ..snapshot import AppStats, Delta, JiffiesSnapshot, ThreadJiffiesEntry
from .events import EventBus, ThreadMarked
from .providers import StackCapture

logger = structlog.get_logger(__name__)

MIN_WATCH_MINUTES = 10
RUNNING_STAT = "R"


def is_running(entry: ThreadJiffiesEntry) -> bool:
    return RUNNING_STAT in entry.stat.upper()


class ThreadWatchdog:
    """Decides which threads of a jiffies delta need their stacks captured."""

    def __init__(
        self,
        stack_capture: StackCapture,
        config_provider: Callable[[], MonitorConfig],
        events: Optional[EventBus] = None,
    ):
        self.stack_capture = stack_capture
        self.config_provider = config_provider
        self.events = events

    def inspect(self, delta: Delta[JiffiesSnapshot], app_stats: AppStats) -> list[int]:
        """Mark hot threads of ``delta`` for stack capture.

        Args:
            delta: Jiffies delta for the closed window
            app_stats: Window stats; supplies elapsed minutes and fg/bg state

        Returns:
            Thread ids that were marked, in delta order.
        """
        minute = app_stats.minute
        if minute <= MIN_WATCH_MINUTES:
            return []

        config = self.config_provider()
        if app_stats.is_foreground:
            limit = config.fg_thread_watching_limit
        else:
            limit = config.bg_thread_watching_limit

        pid = delta.diff.pid
        marked: list[int] = []
        for entry in delta.diff.thread_entries:
            if not is_running(entry):
                continue
            avg_jiffies = entry.jiffies // minute
            if avg_jiffies <= limit:
                continue

            logger.info(
                "thread_watchdog_fg_set" if app_stats.is_foreground else "thread_watchdog_bg_set",
                name=delta.diff.name,
                pid=pid,
                tid=entry.tid,
                thread=entry.name,
                avg_jiffies=avg_jiffies,
                limit=limit,
            )
            self.stack_capture.mark_thread_for_stack_capture(app_stats.is_foreground, pid, entry.tid)
            marked.append(entry.tid)
            if self.events is not None:
                self.events.publish(ThreadMarked(app_stats.is_foreground, pid, entry.tid, avg_jiffies))

        return marked
