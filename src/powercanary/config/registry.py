"""Configuration Registry - Defines all configuration keys with tier classification.

This module provides the ConfigKey dataclass and REGISTRY dictionary that defines
all configuration options available in powercanary.

Two-Tier System:
- Static Config (tier="static"): Requires restart to apply changes
  Examples: log format, which subsystems get host providers
- Dynamic Config (tier="dynamic"): Can be hot-reloaded without restart
  Examples: watchdog thresholds, watch list, trace window length
"""

from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

HOST_SUBSYSTEMS = ["jiffies", "cpu_freq", "battery_temp"]


@dataclass
class ConfigKey:
    """Defines a single configuration key with validation and tier classification.

    Attributes:
        tier: "static" (restart required) or "dynamic" (hot-reloadable)
        value_type: Expected Python type (str, int, float, bool, list, dict)
        default: Default value if not specified in config files
        min_value: Minimum value for numeric types (optional)
        max_value: Maximum value for numeric types (optional)
        restart_required: Auto-derived from tier (True for static, False for dynamic)
        validator: Custom validation function (optional)
    """
    tier: Literal["static", "dynamic"]
    value_type: type
    default: Any
    min_value: Optional[Any] = None
    max_value: Optional[Any] = None
    restart_required: bool = False
    validator: Optional[Callable[[Any], bool]] = None

    def __post_init__(self):
        """Auto-derive restart_required from tier."""
        self.restart_required = (self.tier == "static")


# Configuration Registry
# =======================
# All configuration keys must be registered here with their tier classification.

REGISTRY: dict[str, ConfigKey] = {
    # ===== LOGGING (Static format, Dynamic verbosity) =====
    "logging.json": ConfigKey(
        tier="static",
        value_type=bool,
        default=False,
    ),
    "logging.level": ConfigKey(
        tier="dynamic",
        value_type=str,
        default="INFO",
        validator=lambda v: v in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
    ),

    # ===== HOST PROVIDERS (Static - wired once at startup) =====
    "monitor.enabled_subsystems": ConfigKey(
        tier="static",
        value_type=list,
        default=list(HOST_SUBSYSTEMS),
        validator=lambda v: all(item in HOST_SUBSYSTEMS for item in v),
    ),

    # ===== THREAD WATCHDOG (Dynamic - threshold tuning) =====
    "monitor.fg_thread_watching_limit": ConfigKey(
        tier="dynamic",
        value_type=int,
        default=10000,
        min_value=1,
        max_value=1_000_000,
    ),
    "monitor.bg_thread_watching_limit": ConfigKey(
        tier="dynamic",
        value_type=int,
        default=5000,
        min_value=1,
        max_value=1_000_000,
    ),
    "monitor.aggressive_mode": ConfigKey(
        tier="dynamic",
        value_type=bool,
        default=False,
    ),
    "monitor.thread_watch_list": ConfigKey(
        tier="dynamic",
        value_type=list,
        default=[],
        validator=lambda v: all(isinstance(item, str) and item for item in v),
    ),

    # ===== TRACE SCHEDULING (Dynamic - operational tuning) =====
    "monitor.trace_window_seconds": ConfigKey(
        tier="dynamic",
        value_type=int,
        default=600,
        min_value=1,
        max_value=86400,
    ),
}


def get_config_key(key: str) -> ConfigKey:
    """Get configuration key definition from registry.

    Args:
        key: Configuration key path (e.g., "monitor.aggressive_mode")

    Returns:
        ConfigKey definition

    Raises:
        KeyError: If key not found in registry
    """
    if key not in REGISTRY:
        raise KeyError(f"Configuration key '{key}' not found in registry")
    return REGISTRY[key]


def validate_config_value(key: str, value: Any) -> tuple[bool, Optional[str]]:
    """Validate a configuration value against its registered definition.

    Args:
        key: Configuration key path
        value: Value to validate

    Returns:
        Tuple of (is_valid, error_message)
        error_message is None if valid
    """
    try:
        config_key = get_config_key(key)
    except KeyError as e:
        return False, str(e)

    # bool is an int subclass; don't let True pass as a threshold
    if config_key.value_type is int and isinstance(value, bool):
        return False, "Expected type int, got bool"

    # Type validation
    if not isinstance(value, config_key.value_type):
        return False, f"Expected type {config_key.value_type.__name__}, got {type(value).__name__}"

    # Range validation for numeric types
    if isinstance(value, (int, float)):
        if config_key.min_value is not None and value < config_key.min_value:
            return False, f"Value {value} below minimum {config_key.min_value}"
        if config_key.max_value is not None and value > config_key.max_value:
            return False, f"Value {value} above maximum {config_key.max_value}"

    # Custom validator
    if config_key.validator is not None:
        try:
            if not config_key.validator(value):
                return False, f"Custom validation failed for value: {value}"
        except Exception as e:
            return False, f"Validator error: {str(e)}"

    return True, None


def get_default_values() -> dict[str, Any]:
    """Get default values for all configuration keys.

    Returns:
        Dictionary of key -> default_value
    """
    return {key: config_key.default for key, config_key in REGISTRY.items()}


def get_static_keys() -> list[str]:
    """Get list of all static configuration keys (restart required).

    Returns:
        List of static config key paths
    """
    return [key for key, config_key in REGISTRY.items() if config_key.tier == "static"]


def get_dynamic_keys() -> list[str]:
    """Get list of all dynamic configuration keys (hot-reloadable).

    Returns:
        List of dynamic config key paths
    """
    return [key for key, config_key in REGISTRY.items() if config_key.tier == "dynamic"]
