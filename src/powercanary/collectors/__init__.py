"""Snapshot providers: psutil host readers and in-process event counters."""

from .counters import COUNTER_FIELDS, CountingProvider, WakeLockTracker
from .host import (
    HOST_PROVIDERS,
    BatteryTemperatureProvider,
    CpuFreqProvider,
    ProcessJiffiesProvider,
    host_app_stats,
    register_host_providers,
)

__all__ = [
    "COUNTER_FIELDS",
    "CountingProvider",
    "WakeLockTracker",
    "HOST_PROVIDERS",
    "BatteryTemperatureProvider",
    "CpuFreqProvider",
    "ProcessJiffiesProvider",
    "host_app_stats",
    "register_host_providers",
]
