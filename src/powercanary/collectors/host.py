"""psutil-backed snapshot providers for the local host.

Provides the subsystems a plain process can observe about itself:
- per-thread CPU jiffies of a process
- per-core CPU frequency
- battery temperature (only where the OS exposes it)
- charging state for AppStats

Providers whose sensor is unsupported on this platform report
``available() == False`` and are not registered.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional

import psutil
import structlog

from ..monitor.providers import ProviderRegistry
from ..snapshot import (
    AppStats,
    BatteryTmpSnapshot,
    CounterEntry,
    CpuFreqSnapshot,
    JiffiesSnapshot,
    SubsystemKind,
    ThreadJiffiesEntry,
    uptime_millis,
)

logger = structlog.get_logger(__name__)

UNKNOWN_STAT = "?"


def _clock_ticks() -> int:
    try:
        return int(os.sysconf("SC_CLK_TCK"))
    except (AttributeError, ValueError, OSError):
        return 100


CLK_TCK = _clock_ticks()


def seconds_to_jiffies(seconds: float) -> int:
    return int(round(seconds * CLK_TCK))


def read_task_stat(pid: int, tid: int, proc_root: Path = Path("/proc")) -> Optional[tuple[str, str]]:
    """Read (comm, state) of a thread from ``/proc/<pid>/task/<tid>/stat``.

    Returns:
        Tuple of (name, state letter), or None where /proc is unavailable.
    """
    try:
        raw = (proc_root / str(pid) / "task" / str(tid) / "stat").read_text()
    except OSError:
        return None
    # comm may itself contain spaces or parentheses: "<tid> (<comm>) <state> ..."
    start = raw.find("(")
    end = raw.rfind(")")
    if start < 0 or end < start:
        return None
    rest = raw[end + 1:].split()
    state = rest[0] if rest else UNKNOWN_STAT
    return raw[start + 1:end], state


class ProcessJiffiesProvider:
    """Thread jiffies of one process (defaults to the current one)."""

    kind = SubsystemKind.JIFFIES

    def __init__(self, pid: Optional[int] = None, clock: Callable[[], int] = uptime_millis):
        self.pid = pid if pid is not None else os.getpid()
        self.clock = clock
        self._process = psutil.Process(self.pid)

    @classmethod
    def available(cls) -> bool:
        return True

    def _python_thread_names(self) -> dict[int, str]:
        if self.pid != os.getpid():
            return {}
        return {t.native_id: t.name for t in threading.enumerate() if t.native_id is not None}

    def current_snapshot(self) -> JiffiesSnapshot:
        proc = self._process
        with proc.oneshot():
            name = proc.name()
            cpu = proc.cpu_times()
            threads = proc.threads()

        py_names = self._python_thread_names()
        entries = []
        for thread in threads:
            task = read_task_stat(self.pid, thread.id)
            if task is not None:
                thread_name, stat = task
            else:
                thread_name, stat = py_names.get(thread.id, str(thread.id)), UNKNOWN_STAT
            entries.append(
                ThreadJiffiesEntry(
                    tid=thread.id,
                    name=thread_name,
                    stat=stat,
                    jiffies=seconds_to_jiffies(thread.user_time + thread.system_time),
                )
            )

        return JiffiesSnapshot.from_threads(
            self.pid,
            name,
            entries,
            total_jiffies=seconds_to_jiffies(cpu.user + cpu.system),
            timestamp_ms=self.clock(),
        )


class CpuFreqProvider:
    """Current frequency of every core, in kHz."""

    kind = SubsystemKind.CPU_FREQ

    def __init__(self, clock: Callable[[], int] = uptime_millis):
        self.clock = clock

    @classmethod
    def available(cls) -> bool:
        try:
            return bool(psutil.cpu_freq(percpu=True))
        except (AttributeError, NotImplementedError, OSError):
            return False

    def current_snapshot(self) -> CpuFreqSnapshot:
        freqs = psutil.cpu_freq(percpu=True) or []
        return CpuFreqSnapshot.from_freqs(
            [int(f.current * 1000) for f in freqs],
            timestamp_ms=self.clock(),
        )


def _battery_sensor() -> Optional[str]:
    sensors = getattr(psutil, "sensors_temperatures", None)
    if sensors is None:
        return None
    try:
        readings = sensors()
    except (NotImplementedError, OSError):
        return None
    for name in readings:
        if "bat" in name.lower():
            return name
    return None


class BatteryTemperatureProvider:
    """Battery temperature in whole degrees Celsius."""

    kind = SubsystemKind.BATTERY_TEMP

    def __init__(self, clock: Callable[[], int] = uptime_millis):
        self.clock = clock
        self.sensor = _battery_sensor()

    @classmethod
    def available(cls) -> bool:
        return _battery_sensor() is not None

    def current_snapshot(self) -> BatteryTmpSnapshot:
        readings = psutil.sensors_temperatures().get(self.sensor or "", [])
        if not readings:
            # Sensor disappeared mid-window
            return BatteryTmpSnapshot(
                temp=CounterEntry(0, monotonic=False),
                timestamp_ms=self.clock(),
                valid=False,
            )
        return BatteryTmpSnapshot(
            temp=CounterEntry(int(round(readings[0].current)), monotonic=False),
            timestamp_ms=self.clock(),
        )


def host_app_stats(duration_ms: int, is_foreground: bool) -> AppStats:
    """AppStats using the host's charging state at window end."""
    charging = 0
    sensors_battery = getattr(psutil, "sensors_battery", None)
    if sensors_battery is not None:
        try:
            battery = sensors_battery()
        except (NotImplementedError, OSError):
            battery = None
        if battery is not None and battery.power_plugged:
            charging = 100

    return AppStats(
        duration_ms=duration_ms,
        is_foreground=is_foreground,
        fg_ratio=100 if is_foreground else 0,
        bg_ratio=0 if is_foreground else 100,
        dev_charging_ratio=charging,
    )


HOST_PROVIDERS = {
    SubsystemKind.JIFFIES.value: ProcessJiffiesProvider,
    SubsystemKind.CPU_FREQ.value: CpuFreqProvider,
    SubsystemKind.BATTERY_TEMP.value: BatteryTemperatureProvider,
}


def register_host_providers(
    registry: ProviderRegistry,
    kinds: Iterable[str] = tuple(HOST_PROVIDERS),
    clock: Callable[[], int] = uptime_millis,
) -> list[str]:
    """Register every available host provider named in ``kinds``.

    Returns:
        Names of the kinds that were registered.
    """
    registered = []
    for name in kinds:
        provider_cls = HOST_PROVIDERS.get(name)
        if provider_cls is None:
            logger.warning("unknown_host_provider", kind=name)
            continue
        if not provider_cls.available():
            logger.info("host_provider_unavailable", kind=name)
            continue
        registry.register(provider_cls(clock=clock))
        registered.append(name)
    return registered
