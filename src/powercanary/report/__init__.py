"""Text report rendering for trace sessions and thread watchdog dumps."""

from .assembler import SECTION_GROUPS, ReportAssembler, matches_watch_list
from .printer import ReportPrinter, log_sink
from .renderers import RENDERERS, RenderContext, render_delta
from .stacks import ThreadStack, live_thread_stacks

__all__ = [
    "SECTION_GROUPS",
    "ReportAssembler",
    "matches_watch_list",
    "ReportPrinter",
    "log_sink",
    "RENDERERS",
    "RenderContext",
    "render_delta",
    "ThreadStack",
    "live_thread_stacks",
]
