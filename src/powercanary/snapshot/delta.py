"""Delta computation between two snapshots of the same subsystem."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Generic, TypeVar

import structlog

from .entries import Entry
from .snapshots import Snapshot

logger = structlog.get_logger(__name__)

S = TypeVar("S", bound=Snapshot)


@dataclass(frozen=True)
class Delta(Generic[S]):
    """Validated difference between a begin and an end snapshot.

    Attributes:
        begin: Snapshot taken when the window opened
        end: Snapshot taken when the window closed
        diff: Per-entry differences, same variant as ``end``
        duration_ms: ``end.timestamp_ms - begin.timestamp_ms``
        valid: False on variant or entry type mismatch, non-positive
            duration, a backwards counter, or a subsystem-reported
            incomplete window
    """

    begin: Snapshot
    end: S
    diff: S
    duration_ms: int
    valid: bool

    @property
    def kind(self):
        return self.end.kind

    @property
    def during_minutes(self) -> int:
        return self.duration_ms // 60_000


def compute_delta(current: S, previous: Snapshot) -> Delta[S]:
    """Diff ``current`` against ``previous``.

    Never raises for bad input data: every anomaly is folded into
    ``Delta.valid`` so the caller can still render partial results.

    Args:
        current: End-of-window snapshot
        previous: Begin-of-window snapshot

    Returns:
        Delta whose ``diff`` holds one entry per entry of ``current``.
    """
    duration_ms = current.timestamp_ms - previous.timestamp_ms

    if type(current) is not type(previous):
        logger.warning(
            "delta_kind_mismatch",
            current=type(current).__name__,
            previous=type(previous).__name__,
        )
        return Delta(begin=previous, end=current, diff=current, duration_ms=duration_ms, valid=False)

    changes: dict[str, Entry] = {}
    anomalies: list[str] = []
    for name, entry in current.entries():
        try:
            diffed = entry.diff(getattr(previous, name))
        except TypeError as e:
            logger.warning("delta_entry_mismatch", kind=current.kind.value, entry=name, error=str(e))
            return Delta(begin=previous, end=current, diff=current, duration_ms=duration_ms, valid=False)
        changes[name] = diffed
        if diffed.has_anomaly():
            anomalies.append(name)

    diff = replace(current, **changes)

    valid = current.valid and previous.valid and duration_ms > 0 and not anomalies
    if not valid:
        logger.debug(
            "delta_invalid",
            kind=current.kind.value,
            duration_ms=duration_ms,
            anomalies=anomalies,
            begin_valid=previous.valid,
            end_valid=current.valid,
        )

    return Delta(begin=previous, end=current, diff=diff, duration_ms=duration_ms, valid=valid)
