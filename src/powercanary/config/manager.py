"""Configuration Manager - Two-Tier Configuration System.

This module implements the configuration management system for powercanary, providing:
1. Static configuration loading from TOML files and environment variables
2. Dynamic configuration seeding from TOML with in-memory hot updates
3. Hot-reload event system for runtime configuration updates

Design:
- Static Config: Loaded at startup from default.toml + env overrides (restart required)
- Dynamic Config: Seeded from TOML, updated in memory via update_dynamic_config()
- Event System: Subscribers listen for config_updated events to apply changes
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
import asyncio
from collections.abc import Callable

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # type: ignore

from dotenv import load_dotenv
import structlog

from .registry import (
    get_config_key,
    validate_config_value,
    get_default_values,
    get_static_keys,
    get_dynamic_keys,
)

logger = structlog.get_logger()

ENV_PREFIX = "POWERCANARY_"


@dataclass(frozen=True)
class MonitorConfig:
    """Typed view of the settings the monitoring core reads on every session."""

    fg_thread_watching_limit: int = 10000
    bg_thread_watching_limit: int = 5000
    aggressive_mode: bool = False
    thread_watch_list: tuple[str, ...] = field(default_factory=tuple)
    trace_window_seconds: int = 600


class ConfigManager:
    """Manages two-tier configuration system with hot-reload support.

    Attributes:
        static_config: Static configuration (restart required)
        dynamic_config: Dynamic configuration (hot-reloadable)
        _subscribers: Event subscribers for config updates
    """

    def __init__(self, config_file: Optional[Path] = None, env_file: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file (default: config/default.toml)
            env_file: Path to .env file (default: .env in project root)
        """
        self.static_config: dict[str, Any] = {}
        self.dynamic_config: dict[str, Any] = {}
        self._subscribers: list[Callable[[str, Any], None]] = []

        if config_file is None:
            config_file = Path("config/default.toml")
        if env_file is None:
            env_file = Path(".env")

        self.config_file = config_file
        self.env_file = env_file

        logger.info("config_manager_initialized",
                   config_file=str(config_file),
                   env_file=str(env_file))

    def _load_toml(self) -> dict[str, Any]:
        if not self.config_file.exists():
            return {}
        with open(self.config_file, "rb") as f:
            toml_data = tomllib.load(f)
        return self._flatten_toml(toml_data)

    def load_static_config(self) -> dict[str, Any]:
        """Load static configuration from TOML and environment variables.

        Precedence: code defaults < TOML file < environment variables

        Returns:
            Dictionary of static configuration key-value pairs

        Raises:
            ValueError: If configuration validation fails

        Note:
            If config file doesn't exist, defaults are used with a warning.
        """
        logger.info("loading_static_config", config_file=str(self.config_file))

        if self.env_file.exists():
            load_dotenv(self.env_file)
            logger.info("env_file_loaded", env_file=str(self.env_file))

        # Step 1: Start with defaults for static keys
        static_keys = get_static_keys()
        defaults = get_default_values()
        config = {key: defaults[key] for key in static_keys}

        # Step 2: Load from TOML file
        if self.config_file.exists():
            flattened = self._load_toml()
            for key in static_keys:
                if key in flattened:
                    config[key] = flattened[key]
            logger.info("toml_config_loaded", keys_count=len(flattened))
        else:
            logger.warning("config_file_not_found",
                          config_file=str(self.config_file),
                          using_defaults=True)

        # Step 3: Apply environment variable overrides
        # Example: POWERCANARY_LOGGING_JSON overrides logging.json
        config.update(self._env_overrides(static_keys))

        # Step 4: Validate all static config values
        self._validate_all(config, "static")

        self.static_config = config
        logger.info("static_config_loaded", keys_count=len(config))
        return config

    def load_dynamic_config_defaults(self) -> dict[str, Any]:
        """Load dynamic configuration defaults from TOML and environment variables.

        Returns:
            Dictionary of dynamic configuration key-value pairs
        """
        logger.info("loading_dynamic_config_defaults")

        dynamic_keys = get_dynamic_keys()
        defaults = get_default_values()
        config = {key: defaults[key] for key in dynamic_keys}

        flattened = self._load_toml()
        for key in dynamic_keys:
            if key in flattened:
                config[key] = flattened[key]

        config.update(self._env_overrides(dynamic_keys))

        self._validate_all(config, "dynamic")

        self.dynamic_config = config
        logger.info("dynamic_config_defaults_loaded", keys_count=len(config))
        return config

    def _env_overrides(self, keys: list[str]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key in keys:
            env_key = ENV_PREFIX + key.replace(".", "_").upper()
            env_value = os.getenv(env_key)
            if env_value is None:
                continue
            config_key_def = get_config_key(key)
            try:
                overrides[key] = self._parse_env_value(env_value, config_key_def.value_type)
                logger.info("env_override_applied", key=key, env_key=env_key)
            except ValueError as e:
                logger.error("env_parse_error", key=key, env_key=env_key, error=str(e))
                raise ValueError(f"Failed to parse env var {env_key}: {e}")
        return overrides

    def _validate_all(self, config: dict[str, Any], tier: str) -> None:
        for key, value in config.items():
            is_valid, error_msg = validate_config_value(key, value)
            if not is_valid:
                logger.error(f"{tier}_config_validation_failed", key=key, error=error_msg)
                raise ValueError(f"{tier.capitalize()} config validation failed for '{key}': {error_msg}")

    async def update_dynamic_config(self, key: str, value: Any) -> None:
        """Update a dynamic configuration value and notify subscribers.

        Args:
            key: Configuration key path
            value: New value

        Raises:
            KeyError: If key is not a dynamic config key
            ValueError: If value validation fails
        """
        config_key_def = get_config_key(key)

        if config_key_def.tier != "dynamic":
            raise KeyError(f"Cannot hot-update static config key '{key}' - restart required")

        is_valid, error_msg = validate_config_value(key, value)
        if not is_valid:
            raise ValueError(f"Config validation failed for '{key}': {error_msg}")

        old_value = self.dynamic_config.get(key)
        self.dynamic_config[key] = value

        logger.info("dynamic_config_updated",
                   key=key,
                   old_value=old_value,
                   new_value=value)

        await self._notify_subscribers(key, value)

    async def _notify_subscribers(self, key: str, value: Any) -> None:
        """Notify all subscribers of configuration update.

        Args:
            key: Configuration key that was updated
            value: New value
        """
        for subscriber in self._subscribers:
            try:
                # Call subscriber (can be sync or async)
                result = subscriber(key, value)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error("subscriber_notification_failed",
                           key=key,
                           subscriber=getattr(subscriber, "__name__", repr(subscriber)),
                           error=str(e))

    def subscribe(self, callback: Callable[[str, Any], None]) -> None:
        """Subscribe to configuration update events.

        Args:
            callback: Function called when config is updated
                     Signature: (key: str, value: Any) -> None
        """
        self._subscribers.append(callback)
        logger.info("config_subscriber_added",
                    callback=getattr(callback, "__name__", repr(callback)))

    def get(self, key: str) -> Any:
        """Get configuration value (static or dynamic).

        Args:
            key: Configuration key path

        Returns:
            Configuration value

        Raises:
            KeyError: If key not found
        """
        config_key_def = get_config_key(key)

        if config_key_def.tier == "static":
            return self.static_config.get(key, config_key_def.default)
        else:
            return self.dynamic_config.get(key, config_key_def.default)

    def monitor_config(self) -> MonitorConfig:
        """Build the current MonitorConfig from live values."""
        return MonitorConfig(
            fg_thread_watching_limit=self.get("monitor.fg_thread_watching_limit"),
            bg_thread_watching_limit=self.get("monitor.bg_thread_watching_limit"),
            aggressive_mode=self.get("monitor.aggressive_mode"),
            thread_watch_list=tuple(self.get("monitor.thread_watch_list")),
            trace_window_seconds=self.get("monitor.trace_window_seconds"),
        )

    def _flatten_toml(self, data: dict) -> dict[str, Any]:
        """Flatten nested TOML structure to dotted keys.

        Example: {"monitor": {"aggressive_mode": true}} -> {"monitor.aggressive_mode": True}

        Args:
            data: Nested dictionary from TOML file

        Returns:
            Flattened dictionary with dotted keys
        """
        result = {}

        def _flatten(d: dict, prefix: str = ""):
            for key, value in d.items():
                full_key = f"{prefix}.{key}" if prefix else key
                if isinstance(value, dict):
                    _flatten(value, full_key)
                else:
                    result[full_key] = value

        _flatten(data)
        return result

    def _parse_env_value(self, value: str, target_type: type) -> Any:
        """Parse environment variable string to target type.

        Args:
            value: String value from environment variable
            target_type: Target Python type

        Returns:
            Parsed value in target type

        Raises:
            ValueError: If parsing fails
        """
        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")
        elif target_type == int:
            return int(value)
        elif target_type == float:
            return float(value)
        elif target_type == list:
            # Simple comma-separated list parsing
            return [item.strip() for item in value.split(",") if item.strip()]
        elif target_type == str:
            return value
        else:
            raise ValueError(f"Unsupported type for env parsing: {target_type}")


# Global instance (initialized by the CLI)
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global config manager instance.

    Returns:
        ConfigManager instance

    Raises:
        RuntimeError: If config manager not initialized
    """
    if _config_manager is None:
        raise RuntimeError("ConfigManager not initialized. Call initialize_config() first.")
    return _config_manager


def current_monitor_config() -> MonitorConfig:
    """MonitorConfig from the global manager, or defaults if it isn't initialized."""
    try:
        return get_config_manager().monitor_config()
    except RuntimeError:
        return MonitorConfig()


def initialize_config(config_file: Optional[Path] = None,
                     env_file: Optional[Path] = None) -> ConfigManager:
    """Initialize global configuration manager.

    Args:
        config_file: Path to TOML config file
        env_file: Path to .env file

    Returns:
        Initialized ConfigManager instance
    """
    global _config_manager
    _config_manager = ConfigManager(config_file, env_file)
    _config_manager.load_static_config()
    _config_manager.load_dynamic_config_defaults()
    return _config_manager
