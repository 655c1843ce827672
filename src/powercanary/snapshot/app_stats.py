"""Process-wide facts about one observation window."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

ONE_MIN_MS = 60 * 1000

APP_STAT_FOREGROUND = "fg"
APP_STAT_BACKGROUND = "bg"
APP_STAT_FOREGROUND_SERVICE = "fgSrv"


@dataclass(frozen=True)
class AppStats:
    """Aggregated window statistics, built once when a session closes.

    Ratios are integer percentages (0-100) of the window.
    """

    duration_ms: int
    is_foreground: bool
    fg_ratio: int = 0
    bg_ratio: int = 0
    fg_srv_ratio: int = 0
    dev_charging_ratio: int = 0
    dev_screen_off_ratio: int = 0
    scene_top1: Optional[str] = None
    scene_top1_ratio: int = 0
    scene_top2: Optional[str] = None
    scene_top2_ratio: int = 0
    is_foreground_service: bool = False

    @property
    def minute(self) -> int:
        """Elapsed whole minutes, never less than 1."""
        return max(1, self.duration_ms // ONE_MIN_MS)

    @property
    def app_stat(self) -> str:
        if self.is_foreground:
            return APP_STAT_FOREGROUND
        if self.is_foreground_service:
            return APP_STAT_FOREGROUND_SERVICE
        return APP_STAT_BACKGROUND


def default_app_stats(duration_ms: int, is_foreground: bool) -> AppStats:
    """AppStats with only the caller-supplied facts filled in."""
    if is_foreground:
        return AppStats(duration_ms=duration_ms, is_foreground=True, fg_ratio=100)
    return AppStats(duration_ms=duration_ms, is_foreground=False, bg_ratio=100)
