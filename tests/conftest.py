"""Shared fakes for powercanary tests."""

import pytest

import powercanary.config.manager as manager_module
from powercanary.snapshot import JiffiesSnapshot, SubsystemKind, ThreadJiffiesEntry


class FakeClock:
    """Manually advanced millisecond clock, starting above zero."""

    def __init__(self, start: int = 1_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class SequenceProvider:
    """Returns queued snapshots in order, then repeats the last one."""

    def __init__(self, kind: SubsystemKind, *snapshots):
        self.kind = kind
        self._snapshots = list(snapshots)
        self.calls = 0

    def current_snapshot(self):
        self.calls += 1
        if len(self._snapshots) > 1:
            return self._snapshots.pop(0)
        return self._snapshots[0]


class FailingProvider:
    def __init__(self, kind: SubsystemKind):
        self.kind = kind

    def current_snapshot(self):
        raise RuntimeError(f"{self.kind.value} poller crashed")


class RecordingStackCapture:
    def __init__(self):
        self.marks: list[tuple[bool, int, int]] = []

    def mark_thread_for_stack_capture(self, is_foreground, pid, tid):
        self.marks.append((is_foreground, pid, tid))


def make_jiffies(threads, timestamp_ms, pid=100, name="app", valid=True, total=None):
    """Build a JiffiesSnapshot from (tid, name, stat, jiffies) tuples."""
    entries = [ThreadJiffiesEntry(tid=t[0], name=t[1], stat=t[2], jiffies=t[3]) for t in threads]
    return JiffiesSnapshot.from_threads(
        pid, name, entries, total_jiffies=total, timestamp_ms=timestamp_ms, valid=valid
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stack_capture():
    return RecordingStackCapture()


@pytest.fixture
def reports():
    """Report sink that is also the list of reports it received."""

    class _Sink(list):
        def __call__(self, text):
            self.append(text)

    return _Sink()


@pytest.fixture
def jiffies_factory():
    return make_jiffies


@pytest.fixture
def provider_factory():
    return SequenceProvider


@pytest.fixture
def failing_provider_factory():
    return FailingProvider


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the module-level ConfigManager from leaking between tests."""
    manager_module._config_manager = None
    yield
    manager_module._config_manager = None
