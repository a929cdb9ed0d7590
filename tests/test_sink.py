"""Tests for the progress sink plumbing."""

import io
import threading

import pytest

from threadbench.sink import (
    ConsoleSink,
    DispatchingSink,
    GuardedSink,
    RecordingSink,
    SinkRejected,
    guard,
)


class ExplodingSink:
    def update_progress(self, progress):
        raise SinkRejected("gone")

    def set_status(self, status):
        raise RuntimeError("widget destroyed")

    def append_result(self, text):
        raise SinkRejected("gone")

    def set_chart_data(self, single_ms, multi_ms):
        raise SinkRejected("gone")


class NoChartSink:
    def __init__(self):
        self.calls = []

    def update_progress(self, progress):
        self.calls.append(("progress", progress))

    def set_status(self, status):
        self.calls.append(("status", status))

    def append_result(self, text):
        self.calls.append(("result", text))


class TestGuardedSink:
    def test_failures_are_dropped(self):
        guarded = GuardedSink(ExplodingSink())
        guarded.update_progress(10)
        guarded.set_status("working")
        guarded.append_result("line")
        guarded.set_chart_data(1.0, 2.0)

    def test_progress_is_clamped(self):
        recorder = RecordingSink()
        guarded = GuardedSink(recorder)
        guarded.update_progress(-5)
        guarded.update_progress(42)
        guarded.update_progress(250)
        assert recorder.progress == [0, 42, 100]

    def test_chart_data_skipped_without_channel(self):
        delegate = NoChartSink()
        guarded = GuardedSink(delegate)
        assert not guarded.has_chart_channel
        guarded.set_chart_data(1.0, 2.0)
        assert delegate.calls == []

    def test_chart_data_forwarded(self):
        recorder = RecordingSink()
        GuardedSink(recorder).set_chart_data(10.0, 5.0)
        assert recorder.chart_data == [(10.0, 5.0)]

    def test_guard_does_not_double_wrap(self):
        guarded = guard(RecordingSink())
        assert guard(guarded) is guarded


class TestDispatchingSink:
    def test_results_delivered_in_call_order(self):
        recorder = RecordingSink()
        with DispatchingSink(recorder) as sink:
            for i in range(200):
                sink.append_result(f"line {i}")
        assert recorder.results == [f"line {i}" for i in range(200)]

    def test_latest_progress_and_status_win(self):
        recorder = RecordingSink()
        with DispatchingSink(recorder) as sink:
            for i in range(101):
                sink.update_progress(i)
                sink.set_status(f"step {i}")
        assert recorder.progress[-1] == 100
        assert recorder.status == "step 100"
        assert len(recorder.progress) <= 101

    def test_delivery_happens_on_dispatcher_thread(self):
        seen = []

        class ThreadNoting(RecordingSink):
            def append_result(self, text):
                seen.append(threading.current_thread().name)
                super().append_result(text)

        with DispatchingSink(ThreadNoting(), name="presentation") as sink:
            sink.append_result("hello")
        assert seen == ["presentation"]

    def test_chart_data_forwarded_when_target_supports_it(self):
        recorder = RecordingSink()
        with DispatchingSink(recorder) as sink:
            sink.set_chart_data(3.0, 1.5)
        assert recorder.chart_data == [(3.0, 1.5)]

    def test_chart_data_ignored_without_channel(self):
        target = NoChartSink()
        with DispatchingSink(target) as sink:
            sink.set_chart_data(3.0, 1.5)
            sink.append_result("done")
        assert target.calls == [("result", "done")]

    def test_calls_after_close_are_rejected(self):
        sink = DispatchingSink(RecordingSink())
        sink.close()
        assert sink.closed
        with pytest.raises(SinkRejected):
            sink.append_result("late")
        # the harness always wraps, so a torn-down presentation is harmless
        guard(sink).append_result("late")

    def test_close_is_idempotent(self):
        sink = DispatchingSink(RecordingSink())
        sink.close()
        sink.close()

    def test_dispatcher_survives_target_failure(self):
        class FlakyTarget(RecordingSink):
            def __init__(self):
                super().__init__()
                self.failed = False

            def append_result(self, text):
                if not self.failed:
                    self.failed = True
                    raise RuntimeError("first delivery fails")
                super().append_result(text)

        target = FlakyTarget()
        with DispatchingSink(target) as sink:
            sink.append_result("lost")
            sink.append_result("kept")
        assert target.results == ["kept"]

    def test_concurrent_producers(self):
        recorder = RecordingSink()
        with DispatchingSink(recorder) as sink:

            def produce(prefix):
                for i in range(50):
                    sink.append_result(f"{prefix}-{i}")

            threads = [threading.Thread(target=produce, args=(f"t{n}",)) for n in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert len(recorder.results) == 200
        for n in range(4):
            own = [line for line in recorder.results if line.startswith(f"t{n}-")]
            assert own == [f"t{n}-{i}" for i in range(50)]


class TestConsoleSink:
    def test_results_written_to_stream(self):
        stream = io.StringIO()
        console = ConsoleSink(stream=stream)
        console.append_result("=== PERFORMANCE TEST ===")
        console.append_result("")
        assert stream.getvalue() == "=== PERFORMANCE TEST ===\n\n"

    def test_status_and_chart_are_kept(self):
        console = ConsoleSink(stream=io.StringIO())
        console.set_status("Single-threaded: 1/10")
        console.set_chart_data(12.0, 4.0)
        assert console.status == "Single-threaded: 1/10"
        assert console.chart_data == (12.0, 4.0)

    def test_progress_logged_per_step(self, caplog):
        console = ConsoleSink(stream=io.StringIO(), progress_step=25)
        with caplog.at_level("INFO", logger="threadbench.sink"):
            for value in range(0, 101):
                console.update_progress(value)
        progress_lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Progress")]
        assert progress_lines == ["Progress 0%", "Progress 25%", "Progress 50%", "Progress 75%", "Progress 100%"]

    def test_invalid_step(self):
        with pytest.raises(ValueError):
            ConsoleSink(progress_step=0)
