"""Stack traces of live Python threads for the thread watchdog report."""

from __future__ import annotations

import os
import sys
import threading
import traceback
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ThreadStack:
    name: str
    ident: int
    state: str
    frames: list[str] = field(default_factory=list)


def _format_frame(frame: traceback.FrameSummary) -> str:
    return f"{frame.name}({os.path.basename(frame.filename)}:{frame.lineno})"


def live_thread_stacks() -> list[ThreadStack]:
    """Capture the current stack of every live thread, innermost frame first."""
    frames = sys._current_frames()
    stacks = []
    for thread in threading.enumerate():
        frame = frames.get(thread.ident)
        if frame is None:
            continue
        summary = traceback.extract_stack(frame)
        summary.reverse()
        state = "RUNNABLE" if thread.is_alive() else "TERMINATED"
        if thread.daemon:
            state += "/daemon"
        stacks.append(
            ThreadStack(
                name=thread.name,
                ident=thread.native_id or thread.ident,
                state=state,
                frames=[_format_frame(f) for f in summary],
            )
        )
    return stacks
