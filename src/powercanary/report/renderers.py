"""Per-subsystem delta renderers.

Each SubsystemKind has exactly one renderer in ``RENDERERS``; ``render_delta``
dispatches on the delta's kind and raises for a kind with no renderer
rather than silently writing nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from ..snapshot import AppStats, Delta, SubsystemKind
from ..snapshot.app_stats import ONE_MIN_MS
from ..snapshot.traces import TaskTrace
from .printer import ReportPrinter

MAX_THREAD_ENTRIES = 8
MAX_TASK_TRACES = 3
ELLIPSIS_LINE = "|\t\t......"
OVERHEAT_JIFFIES_PER_MIN = 1000


@dataclass
class RenderContext:
    """Window-wide facts shared by every renderer of one report."""

    app_stats: AppStats
    task_traces: dict[int, list[TaskTrace]] = field(default_factory=dict)


Renderer = Callable[[Delta, RenderContext, ReportPrinter], None]


def _write_during(delta: Delta, printer: ReportPrinter) -> None:
    printer.write_line(f"{delta.duration_ms}(mls)\t{delta.during_minutes}(min)")


def render_jiffies(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    minute = max(1, delta.during_minutes)
    total = delta.diff.total_jiffies.get()
    avg_jiffies = total // minute

    printer.append("| ").append(f"pid={delta.end.pid}") \
        .tab().tab().append(f"fg={ctx.app_stats.app_stat}") \
        .tab().tab().append(f"during(min)={minute}") \
        .tab().tab().append(f"diff(jiffies)={total}") \
        .tab().tab().append(f"avg(jiffies/min)={avg_jiffies}") \
        .enter()

    threads = sorted(delta.diff.thread_entries, key=lambda t: t.jiffies, reverse=True)
    printer.create_section(f"jiffies({len(threads)})")
    printer.write_line("desc", "(status)name(tid)\tavg/total")
    printer.write_line("inc_thread_num", delta.diff.thread_num.get())
    printer.write_line("cur_thread_num", delta.end.thread_num.get())

    for entry in threads[:MAX_THREAD_ENTRIES]:
        printer.append("|   -> (").append("+" if entry.is_new_added else "~").append("/") \
            .append(entry.stat).append(")").append(entry.name) \
            .append("(").append(entry.tid).append(")\t") \
            .append(entry.jiffies // minute).append("/").append(entry.jiffies) \
            .append("\tjiffies").enter()
        for task in ctx.task_traces.get(entry.tid, [])[:MAX_TASK_TRACES]:
            printer.append("|\t\t").append(task).enter()
    printer.append(ELLIPSIS_LINE).enter()

    overheat = avg_jiffies > OVERHEAT_JIFFIES_PER_MIN
    if overheat or not delta.valid:
        printer.append("|  ") \
            .append(" #overHeat" if overheat else "") \
            .append(" #invalid" if not delta.valid else "") \
            .enter()


def render_alarm(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    printer.create_subsection("alarm")
    _write_during(delta, printer)
    printer.write_line("inc_alarm_count", delta.diff.total_count.get())
    printer.write_line("inc_trace_count", delta.diff.tracing_count.get())
    printer.write_line("inc_dupli_group", delta.diff.duplicated_group.get())
    printer.write_line("inc_dupli_count", delta.diff.duplicated_count.get())


def render_wake_lock(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    printer.create_subsection("wake_lock")
    _write_during(delta, printer)
    printer.write_line("inc_lock_count", delta.diff.total_count.get())
    printer.write_line("inc_time_total", delta.diff.total_time_ms.get())

    records = delta.end.records.get_list()
    if records:
        printer.create_subsection("locking")
        for item in records:
            record = item.get()
            if not record.is_finished():
                printer.write_line(record)


def render_bluetooth(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    printer.create_subsection("bluetooh")
    _write_during(delta, printer)
    printer.write_line("inc_regs_count", delta.diff.regs_count.get())
    printer.write_line("inc_dics_count", delta.diff.disc_count.get())
    printer.write_line("inc_scan_count", delta.diff.scan_count.get())


def render_wifi(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    printer.create_subsection("wifi")
    _write_during(delta, printer)
    printer.write_line("inc_scan_count", delta.diff.scan_count.get())
    printer.write_line("inc_qury_count", delta.diff.query_count.get())


def render_location(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    printer.create_subsection("location")
    _write_during(delta, printer)
    printer.write_line("inc_scan_count", delta.diff.scan_count.get())


def render_cpu_freq(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    printer.create_subsection("cpufreq")
    _write_during(delta, printer)
    printer.write_line("inc", delta.diff.cpu_freqs)
    printer.write_line("cur", delta.end.cpu_freqs)


def render_battery_temp(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    printer.create_subsection("batt_temp")
    _write_during(delta, printer)
    printer.write_line("inc", delta.diff.temp.get())
    printer.write_line("cur", delta.end.temp.get())


def render_app_stat(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    current = delta.end
    printer.create_subsection("run_time")
    printer.write_line("time", f"{current.uptime_ms.get() // ONE_MIN_MS}(min)")
    printer.write_line("fg", current.fg_ratio.get())
    printer.write_line("bg", current.bg_ratio.get())
    printer.write_line("fgSrv", current.fg_srv_ratio.get())


RENDERERS: dict[SubsystemKind, Renderer] = {
    SubsystemKind.JIFFIES: render_jiffies,
    SubsystemKind.ALARM: render_alarm,
    SubsystemKind.WAKE_LOCK: render_wake_lock,
    SubsystemKind.BLUETOOTH: render_bluetooth,
    SubsystemKind.WIFI: render_wifi,
    SubsystemKind.LOCATION: render_location,
    SubsystemKind.CPU_FREQ: render_cpu_freq,
    SubsystemKind.BATTERY_TEMP: render_battery_temp,
    SubsystemKind.APP_STAT: render_app_stat,
}


def render_delta(delta: Delta, ctx: RenderContext, printer: ReportPrinter) -> None:
    """Render ``delta`` with the renderer registered for its kind.

    Raises:
        KeyError: If no renderer is registered for the delta's kind
    """
    try:
        renderer = RENDERERS[delta.kind]
    except KeyError:
        raise KeyError(f"No renderer registered for subsystem '{delta.kind.value}'") from None
    renderer(delta, ctx, printer)
