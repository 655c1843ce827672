"""Collaborator interfaces and the provider registry.

Subsystem pollers, stack capture and report sinks live outside the core.
The session looks pollers up through ``ProviderRegistry``; a kind with no
registered provider is simply skipped.
"""

from __future__ import annotations

from typing import Callable, Iterator, Optional, Protocol, runtime_checkable

import structlog

from ..snapshot import AppStats, Snapshot, SubsystemKind

logger = structlog.get_logger(__name__)


@runtime_checkable
class SnapshotProvider(Protocol):
    """Synchronous, side-effect-free source of one subsystem's snapshots."""

    kind: SubsystemKind

    def current_snapshot(self) -> Snapshot: ...


class StackCapture(Protocol):
    """Receives threads the watchdog wants stack traces for."""

    def mark_thread_for_stack_capture(self, is_foreground: bool, pid: int, tid: int) -> None: ...


ReportSink = Callable[[str], None]
AppStatsProvider = Callable[[int, bool], AppStats]


class ProviderRegistry:
    """Explicit lookup table of snapshot providers keyed by subsystem kind."""

    def __init__(self) -> None:
        self._providers: dict[SubsystemKind, SnapshotProvider] = {}

    def register(self, provider: SnapshotProvider) -> None:
        if provider.kind in self._providers:
            logger.warning("provider_replaced", kind=provider.kind.value)
        self._providers[provider.kind] = provider
        logger.debug("provider_registered", kind=provider.kind.value,
                     provider=type(provider).__name__)

    def unregister(self, kind: SubsystemKind) -> None:
        self._providers.pop(kind, None)

    def get(self, kind: SubsystemKind) -> Optional[SnapshotProvider]:
        return self._providers.get(kind)

    def kinds(self) -> list[SubsystemKind]:
        # Enum declaration order, independent of registration order
        return [kind for kind in SubsystemKind if kind in self._providers]

    def __iter__(self) -> Iterator[SnapshotProvider]:
        return iter(self._providers[kind] for kind in self.kinds())

    def __contains__(self, kind: SubsystemKind) -> bool:
        return kind in self._providers

    def __len__(self) -> int:
        return len(self._providers)


class NullStackCapture:
    """Stack capture that only logs; used when no capturer is wired in."""

    def mark_thread_for_stack_capture(self, is_foreground: bool, pid: int, tid: int) -> None:
        logger.info("stack_capture_unavailable", is_foreground=is_foreground, pid=pid, tid=tid)
