"""Opt-in event subscriptions for observers of a trace session.

Observers register one handler per event type they care about instead of
implementing a broad listener interface. Handler failures are logged and
never reach the publisher.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import structlog

from ..snapshot import Delta, SubsystemKind

logger = structlog.get_logger(__name__)

E = TypeVar("E")


@dataclass(frozen=True)
class DeltaComputed:
    kind: SubsystemKind
    delta: Delta


@dataclass(frozen=True)
class ThreadMarked:
    is_foreground: bool
    pid: int
    tid: int
    avg_jiffies: int


@dataclass(frozen=True)
class TaskTraced:
    tid: int
    count: int


@dataclass(frozen=True)
class ReportEmitted:
    text: str
    duration_ms: int


class EventBus:
    """Type-keyed registry of single-purpose handlers."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``.

        Returns:
            A callable that removes the subscription.
        """
        self._handlers[event_type].append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def publish(self, event: Any) -> None:
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception as e:
                logger.error("event_handler_failed",
                             event_type=type(event).__name__,
                             handler=getattr(handler, "__name__", repr(handler)),
                             error=str(e))

    def has_subscribers(self, event_type: type) -> bool:
        return bool(self._handlers.get(event_type))
