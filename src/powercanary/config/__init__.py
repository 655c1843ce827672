"""Two-tier configuration (static TOML/env settings, hot-reloadable monitor thresholds)."""

from .manager import (
    ConfigManager,
    MonitorConfig,
    current_monitor_config,
    get_config_manager,
    initialize_config,
)

__all__ = [
    "ConfigManager",
    "MonitorConfig",
    "current_monitor_config",
    "get_config_manager",
    "initialize_config",
]
