"""powercanary: windowed resource sampling, delta attribution and thread watchdog."""

__version__ = "0.1.0"
