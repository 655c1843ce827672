"""Assembles the per-session power report and the on-demand thread report.

Section order of a session report is fixed:
1. jiffies
2. awake (alarm, wake lock)
3. scanning (bluetooth, wifi, location)
4. dev_stats (cpu frequency, battery temperature)
5. app_stats (always; ends with the app state run time when it has a delta)

A group is written only when at least one of its subsystems has a delta.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

import structlog

from ..config import MonitorConfig
from ..snapshot import AppStats, Delta, SubsystemKind, ThreadJiffiesEntry
from ..snapshot.traces import TaskTrace
from .printer import ReportPrinter
from .renderers import RenderContext, render_delta
from .stacks import ThreadStack, live_thread_stacks

logger = structlog.get_logger(__name__)

SECTION_GROUPS: tuple[tuple[str, tuple[SubsystemKind, ...]], ...] = (
    ("awake", (SubsystemKind.ALARM, SubsystemKind.WAKE_LOCK)),
    ("scanning", (SubsystemKind.BLUETOOTH, SubsystemKind.WIFI, SubsystemKind.LOCATION)),
    ("dev_stats", (SubsystemKind.CPU_FREQ, SubsystemKind.BATTERY_TEMP)),
)


def matches_watch_list(thread_name: str, watch_list: Iterable[str]) -> bool:
    """True if any watch-list item equals (ignoring case) or is contained in ``thread_name``."""
    return any(
        item.lower() == thread_name.lower() or item in thread_name
        for item in watch_list
    )


class ReportAssembler:
    """Renders deltas into one text report and hands it to the sink."""

    def __init__(self, sink=None, stack_source: Callable[[], list[ThreadStack]] = live_thread_stacks):
        self.printer = ReportPrinter(sink)
        self.stack_source = stack_source

    def write_session_report(
        self,
        deltas: dict[SubsystemKind, Delta],
        app_stats: AppStats,
        task_traces: Optional[dict[int, list[TaskTrace]]] = None,
    ) -> Optional[str]:
        """Render and dump one session report.

        Render failures are logged, never raised.

        Returns:
            The report text, or None if rendering or dumping failed.
        """
        printer = self.printer
        ctx = RenderContext(app_stats=app_stats, task_traces=task_traces or {})
        try:
            printer.clear()
            printer.write_title()

            jiffies = deltas.get(SubsystemKind.JIFFIES)
            if jiffies is not None:
                render_delta(jiffies, ctx, printer)

            for section, kinds in SECTION_GROUPS:
                present = [deltas[kind] for kind in kinds if kind in deltas]
                if not present:
                    continue
                printer.create_section(section)
                for delta in present:
                    render_delta(delta, ctx, printer)

            self._write_app_stats(app_stats)
            app_stat = deltas.get(SubsystemKind.APP_STAT)
            if app_stat is not None:
                render_delta(app_stat, ctx, printer)
            printer.write_ending()
            text = str(printer)
        except Exception as e:
            logger.error("report_render_failed", error=str(e), exc_info=True)
            printer.clear()
            return None

        if not printer.dump():
            return None
        return text

    def _write_app_stats(self, app_stats: AppStats) -> None:
        printer = self.printer
        printer.create_section("app_stats")
        printer.create_subsection("stat_time")
        printer.write_line("time", f"{app_stats.minute}(min)")
        printer.write_line("fg", app_stats.fg_ratio)
        printer.write_line("bg", app_stats.bg_ratio)
        printer.write_line("fgSrv", app_stats.fg_srv_ratio)
        printer.write_line("devCharging", app_stats.dev_charging_ratio)
        printer.write_line("devScreenOff", app_stats.dev_screen_off_ratio)
        if app_stats.scene_top1:
            printer.write_line("sceneTop1", f"{app_stats.scene_top1}/{app_stats.scene_top1_ratio}")
        if app_stats.scene_top2:
            printer.write_line("sceneTop2", f"{app_stats.scene_top2}/{app_stats.scene_top2_ratio}")

    def write_thread_watchdog_report(
        self,
        entries: list[ThreadJiffiesEntry],
        config: MonitorConfig,
    ) -> Optional[str]:
        """Render the on-demand thread watchdog report.

        Uses its own printer so it never disturbs a session report in progress.
        """
        printer = ReportPrinter(self.printer.sink)
        try:
            printer.write_title()
            printer.append("| Thread WatchDog").enter()

            printer.create_section(f"jiffies({len(entries)})")
            printer.write_line("desc", "(status)name(tid)\ttotal")
            for entry in entries:
                printer.append("|   -> (").append("+" if entry.is_new_added else "~").append("/") \
                    .append(entry.stat).append(")").append(entry.name) \
                    .append("(").append(entry.tid).append(")\t") \
                    .append(entry.jiffies).append("\tjiffies").enter()

            printer.create_section("stacks")
            dump_stacks = config.aggressive_mode or any(
                matches_watch_list(entry.name, config.thread_watch_list) for entry in entries
            )
            if dump_stacks:
                stacks = self.stack_source()
                logger.info("thread_watchdog_dump_stacks", threads=len(stacks))
                for stack in stacks:
                    for entry in entries:
                        if entry.name.lower() == stack.name.lower() or entry.name in stack.name:
                            printer.append("|   -> (").append(stack.state).append(")") \
                                .append(stack.name).append("(").append(stack.ident).append(")").enter()
                            for frame in stack.frames:
                                printer.append("|      ").append(frame).enter()
                            break
            else:
                printer.append("|   disabled").enter()

            printer.write_ending()
            text = str(printer)
        except Exception as e:
            logger.error("thread_report_render_failed", error=str(e), exc_info=True)
            return None

        if not printer.dump():
            return None
        return text
