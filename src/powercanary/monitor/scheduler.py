"""Background driver that runs trace sessions back to back.

Runs as an asyncio task: open a window, sleep for the window length, close
it. ``close`` does synchronous provider queries and rendering, so it is
offloaded with ``asyncio.to_thread`` to keep the event loop responsive.

Independent failure domain: errors in one window are logged and the loop
moves on to the next. Cancellation discards the open window.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import structlog

from .session import TraceSession

logger = structlog.get_logger(__name__)


async def trace_loop(
    session: TraceSession,
    window_seconds: Optional[float] = None,
    is_foreground: Callable[[], bool] = lambda: True,
    cycles: Optional[int] = None,
    on_report: Optional[Callable[[str], None]] = None,
) -> int:
    """Run trace windows until cancelled or ``cycles`` windows have closed.

    Args:
        session: Session to drive; must not be driven by anyone else
        window_seconds: Window length; defaults to ``monitor.trace_window_seconds``
        is_foreground: Called at window end to get the app's foreground state
        cycles: Stop after this many windows (None runs forever)
        on_report: Called with each emitted report

    Returns:
        Number of reports emitted.
    """
    emitted = 0
    completed = 0
    logger.info("trace_loop_started", window_seconds=window_seconds, cycles=cycles)

    while cycles is None or completed < cycles:
        seconds = window_seconds
        if seconds is None:
            seconds = session.config_provider().trace_window_seconds
        closing = False
        try:
            session.open()
            await asyncio.sleep(seconds)
            closing = True
            report = await asyncio.to_thread(session.close, is_foreground())
            if report is not None:
                emitted += 1
                if on_report is not None:
                    on_report(report)
        except asyncio.CancelledError:
            logger.info("trace_loop_cancelled", emitted=emitted)
            # A close already handed to the worker thread resets the session itself
            if not closing:
                session.discard()
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("trace_window_failed", error=str(exc), exc_info=True)
        completed += 1

    logger.info("trace_loop_finished", emitted=emitted)
    return emitted
