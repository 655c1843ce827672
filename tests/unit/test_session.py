"""Unit tests for the trace session orchestrator."""

from structlog.testing import capture_logs

from powercanary.config import MonitorConfig
from powercanary.monitor import (
    DeltaComputed,
    EventBus,
    ProviderRegistry,
    ReportEmitted,
    SessionState,
    TaskTraced,
    TraceSession,
)
from powercanary.report import RENDERERS
from powercanary.snapshot import (
    AppStats,
    CounterEntry,
    SubsystemKind,
    TaskTrace,
    ThreadJiffiesEntry,
    WifiSnapshot,
)

MINUTE_MS = 60_000


def _wifi(ts, scans):
    return WifiSnapshot(timestamp_ms=ts, scan_count=CounterEntry(scans), query_count=CounterEntry(0))


def _session(registry, clock, reports, **kwargs):
    kwargs.setdefault("config_provider", MonitorConfig)
    kwargs.setdefault("stack_source", lambda: [])
    return TraceSession(registry, sink=reports, clock=clock, **kwargs)


class TestSessionLifecycle:
    """Test open/close transitions."""

    def test_discard_drops_open_window(self, clock, reports, provider_factory):
        registry = ProviderRegistry()
        registry.register(provider_factory(SubsystemKind.WIFI, _wifi(1_000, 2)))
        session = _session(registry, clock, reports)
        session.open()
        session.on_task_trace(3, [TaskTrace("a")])

        session.discard()
        clock.advance(MINUTE_MS)

        assert session.state is SessionState.IDLE
        assert session.begin_snapshots == {}
        assert session.task_traces.drain() == {}
        assert session.close(is_foreground=True) is None
        assert reports == []

    def test_close_without_open_is_skipped(self, clock, reports):
        session = _session(ProviderRegistry(), clock, reports)

        with capture_logs() as logs:
            result = session.close(is_foreground=True)

        assert result is None
        assert reports == []
        assert session.state is SessionState.IDLE
        assert [e["log_level"] for e in logs if e["event"] == "skip_invalid_trace"] == ["warning"]

    def test_zero_length_window_is_skipped(self, clock, reports, provider_factory):
        registry = ProviderRegistry()
        registry.register(provider_factory(SubsystemKind.WIFI, _wifi(clock.now, 0)))
        session = _session(registry, clock, reports)

        session.open()
        with capture_logs():
            assert session.close(is_foreground=True) is None
        assert reports == []
        assert session.begin_snapshots == {}

    def test_open_close_emits_one_report(self, clock, reports, provider_factory):
        registry = ProviderRegistry()
        provider = provider_factory(SubsystemKind.WIFI, _wifi(1_000, 2), _wifi(1_000 + MINUTE_MS, 5))
        registry.register(provider)
        session = _session(registry, clock, reports)

        session.open()
        assert session.state is SessionState.OPEN
        assert set(session.begin_snapshots) == {SubsystemKind.WIFI}

        clock.advance(MINUTE_MS)
        report = session.close(is_foreground=True)

        assert report is not None
        assert reports == [report]
        assert "|   -> inc_scan_count\t= 3" in report.splitlines()
        assert session.state is SessionState.IDLE
        assert session.begin_snapshots == {}
        assert session.app_stats is None
        assert provider.calls == 2

    def test_unregistered_kinds_are_skipped(self, clock, reports, provider_factory):
        registry = ProviderRegistry()
        registry.register(provider_factory(SubsystemKind.WIFI, _wifi(1_000, 0), _wifi(2_000, 1)))
        session = _session(registry, clock, reports)

        session.open()
        clock.advance(1_000)
        report = session.close(is_foreground=False)

        assert "| scanning :" in report
        assert "| awake :" not in report
        assert "jiffies(" not in report

    def test_failing_provider_at_close_is_skipped(self, clock, reports, provider_factory):
        class FlakyProvider:
            kind = SubsystemKind.WIFI

            def __init__(self):
                self.calls = 0

            def current_snapshot(self):
                self.calls += 1
                if self.calls > 1:
                    raise OSError("radio off")
                return _wifi(1_000, 0)

        registry = ProviderRegistry()
        registry.register(FlakyProvider())
        session = _session(registry, clock, reports)

        session.open()
        clock.advance(MINUTE_MS)
        with capture_logs() as logs:
            report = session.close(is_foreground=True)

        assert report is not None
        assert "| scanning :" not in report
        assert any(e["event"] == "snapshot_query_failed" and e["kind"] == "wifi" for e in logs)

    def test_failing_provider_at_open_is_skipped(self, clock, reports, failing_provider_factory):
        registry = ProviderRegistry()
        registry.register(failing_provider_factory(SubsystemKind.ALARM))
        session = _session(registry, clock, reports)

        with capture_logs():
            session.open()

        assert session.begin_snapshots == {}
        assert session.state is SessionState.OPEN

    def test_reopen_restarts_window(self, clock, reports, provider_factory):
        registry = ProviderRegistry()
        registry.register(provider_factory(
            SubsystemKind.WIFI, _wifi(1_000, 0), _wifi(5_000, 10), _wifi(6_000, 12)
        ))
        session = _session(registry, clock, reports)

        session.open()
        clock.advance(4_000)
        with capture_logs() as logs:
            session.open()
        clock.advance(1_000)
        report = session.close(is_foreground=True)

        assert any(e["event"] == "trace_session_reopened" for e in logs)
        assert "|   -> 1000(mls)\t0(min)" in report
        assert "|   -> inc_scan_count\t= 2" in report

    def test_render_failure_returns_to_idle(self, clock, reports, provider_factory, monkeypatch):
        def broken(delta, ctx, printer):
            raise RuntimeError("boom")

        monkeypatch.setitem(RENDERERS, SubsystemKind.WIFI, broken)
        registry = ProviderRegistry()
        registry.register(provider_factory(SubsystemKind.WIFI, _wifi(1_000, 0), _wifi(2_000, 1)))
        session = _session(registry, clock, reports)

        session.open()
        clock.advance(1_000)
        with capture_logs():
            assert session.close(is_foreground=True) is None

        assert reports == []
        assert session.state is SessionState.IDLE


class TestSessionAppStats:
    """Test AppStats construction at close."""

    def test_provider_receives_duration_and_state(self, clock, reports):
        seen = []

        def provider(duration_ms, is_foreground):
            seen.append((duration_ms, is_foreground))
            return AppStats(duration_ms=duration_ms, is_foreground=is_foreground, fg_srv_ratio=7)

        session = _session(ProviderRegistry(), clock, reports, app_stats_provider=provider)
        session.open()
        clock.advance(3 * MINUTE_MS)
        report = session.close(is_foreground=False)

        assert seen == [(3 * MINUTE_MS, False)]
        assert "|   -> fgSrv\t= 7" in report
        assert "|   -> time\t= 3(min)" in report

    def test_failing_provider_falls_back_to_defaults(self, clock, reports):
        def provider(duration_ms, is_foreground):
            raise RuntimeError("usage stats unavailable")

        session = _session(ProviderRegistry(), clock, reports, app_stats_provider=provider)
        session.open()
        clock.advance(MINUTE_MS)
        with capture_logs() as logs:
            report = session.close(is_foreground=True)

        assert "|   -> fg\t= 100" in report
        assert any(e["event"] == "app_stats_unavailable" for e in logs)


class TestSessionWatchdog:
    """Test the watchdog step of close."""

    def test_hot_thread_is_marked(self, clock, reports, stack_capture, provider_factory, jiffies_factory):
        begin = jiffies_factory([(7, "render", "R", 0)], clock.now, pid=321)
        end = jiffies_factory([(7, "render", "R", 5_000)], clock.now + 11 * MINUTE_MS, pid=321)
        registry = ProviderRegistry()
        registry.register(provider_factory(SubsystemKind.JIFFIES, begin, end))
        session = _session(
            registry, clock, reports,
            stack_capture=stack_capture,
            config_provider=lambda: MonitorConfig(fg_thread_watching_limit=400),
        )

        session.open()
        clock.advance(11 * MINUTE_MS)
        report = session.close(is_foreground=True)

        assert stack_capture.marks == [(True, 321, 7)]
        assert "pid=321" in report

    def test_watchdog_failure_does_not_block_report(self, clock, reports, provider_factory, jiffies_factory):
        class BrokenCapture:
            def mark_thread_for_stack_capture(self, is_foreground, pid, tid):
                raise RuntimeError("tracer gone")

        begin = jiffies_factory([(7, "render", "R", 0)], clock.now)
        end = jiffies_factory([(7, "render", "R", 50_000)], clock.now + 20 * MINUTE_MS)
        registry = ProviderRegistry()
        registry.register(provider_factory(SubsystemKind.JIFFIES, begin, end))
        session = _session(
            registry, clock, reports,
            stack_capture=BrokenCapture(),
            config_provider=lambda: MonitorConfig(fg_thread_watching_limit=1),
        )

        session.open()
        clock.advance(20 * MINUTE_MS)
        with capture_logs() as logs:
            report = session.close(is_foreground=True)

        assert report is not None
        assert any(e["event"] == "thread_watchdog_failed" for e in logs)

    def test_watch_threads_report(self, clock, reports):
        session = _session(ProviderRegistry(), clock, reports)
        entries = [ThreadJiffiesEntry(tid=1, name="main", stat="S", jiffies=3)]

        text = session.watch_threads(entries)

        assert reports == [text]
        assert "|   -> (~/S)main(1)\t3\tjiffies" in text


class TestSessionTaskTraces:
    """Test task traces flowing into the report."""

    def test_traces_rendered_and_drained(self, clock, reports, provider_factory, jiffies_factory):
        begin = jiffies_factory([(7, "render", "R", 0)], clock.now)
        end = jiffies_factory([(7, "render", "R", 100)], clock.now + MINUTE_MS)
        registry = ProviderRegistry()
        registry.register(provider_factory(SubsystemKind.JIFFIES, begin, end))
        session = _session(registry, clock, reports)

        session.open()
        session.on_task_trace(7, [TaskTrace("decode", jiffies=40, count=3)])
        clock.advance(MINUTE_MS)
        report = session.close(is_foreground=True)

        assert "|\t\tdecode\t40(jiffies)\tx3" in report.splitlines()
        assert len(session.task_traces) == 0

    def test_traces_cleared_by_skipped_close(self, clock, reports):
        session = _session(ProviderRegistry(), clock, reports)
        session.on_task_trace(1, [TaskTrace("job")])

        with capture_logs():
            session.close(is_foreground=True)

        assert len(session.task_traces) == 0


class TestSessionEvents:
    """Test opt-in session events."""

    def test_events_published(self, clock, reports, provider_factory):
        events = EventBus()
        deltas, emitted, traced = [], [], []
        events.subscribe(DeltaComputed, deltas.append)
        events.subscribe(ReportEmitted, emitted.append)
        events.subscribe(TaskTraced, traced.append)

        registry = ProviderRegistry()
        registry.register(provider_factory(SubsystemKind.WIFI, _wifi(1_000, 0), _wifi(2_000, 1)))
        session = _session(registry, clock, reports, events=events)

        session.open()
        session.on_task_trace(5, [TaskTrace("a"), TaskTrace("b")])
        clock.advance(1_000)
        report = session.close(is_foreground=True)

        assert [event.kind for event in deltas] == [SubsystemKind.WIFI]
        assert deltas[0].delta.valid
        assert emitted == [ReportEmitted(report, 1_000)]
        assert traced == [TaskTraced(5, 2)]

    def test_raising_observer_does_not_block_report(self, clock, reports, provider_factory):
        events = EventBus()

        def broken(event):
            raise RuntimeError("observer bug")

        events.subscribe(DeltaComputed, broken)
        events.subscribe(TaskTraced, broken)
        registry = ProviderRegistry()
        registry.register(provider_factory(SubsystemKind.WIFI, _wifi(1_000, 0), _wifi(1_000 + MINUTE_MS, 4)))
        session = _session(registry, clock, reports, events=events)

        with capture_logs() as logs:
            session.open()
            session.on_task_trace(5, [TaskTrace("a")])
            clock.advance(MINUTE_MS)
            report = session.close(is_foreground=True)

        assert reports == [report]
        assert "|   -> inc_scan_count\t= 4" in report.splitlines()
        assert session.state is SessionState.IDLE
        failed = [e["event_type"] for e in logs if e["event"] == "event_handler_failed"]
        assert failed == ["TaskTraced", "DeltaComputed"]
