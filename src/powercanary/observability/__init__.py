"""Logging setup for powercanary."""

from .logging_setup import apply_log_level, configure_logging

__all__ = ["apply_log_level", "configure_logging"]
