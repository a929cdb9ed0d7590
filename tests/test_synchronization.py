"""Tests for the shared-counter stress harness."""

import functools
import threading

import pytest

from threadbench.counter import LockedCounter
from threadbench.harness.config import SynchronizationConfig
from threadbench.harness.diagnostics import JoinInterrupted, WorkerFailure
from threadbench.harness.synchronization import (
    DIVIDER,
    ERROR_LINE,
    HEADER,
    SUCCESS_LINE,
    CounterThread,
    SynchronizationHarness,
)


class DroppingCounter:
    """Counts only every other increment, deterministically."""

    def __init__(self):
        self._calls = 0
        self._value = 0
        self._lock = threading.Lock()

    def increment(self):
        with self._lock:
            self._calls += 1
            if self._calls % 2 == 0:
                self._value += 1

    def read(self):
        with self._lock:
            return self._value


class RaisingCounter:
    def increment(self):
        raise RuntimeError("counter unavailable")

    def read(self):
        return 0


def test_default_stress_run_succeeds(sink):
    report = SynchronizationHarness(SynchronizationConfig()).run(sink)

    assert report.thread_count == 200
    assert report.increments_per_thread == 1000
    assert report.expected == 200000
    assert report.actual == 200000
    assert report.difference == 0
    assert report.ok
    assert sink.results == [
        HEADER,
        "Expected value: 200000",
        "Actual value: 200000",
        "Difference: 0",
        SUCCESS_LINE,
        DIVIDER,
    ]


def test_lost_increments_are_reported(sink, small_synchronization_config):
    report = SynchronizationHarness(small_synchronization_config, counter_factory=DroppingCounter).run(sink)

    assert report.expected == 1000
    assert report.actual == 500
    assert report.counter_kind == "DroppingCounter"
    assert report.difference == 500
    assert not report.ok
    assert sink.results[-2] == ERROR_LINE
    assert "Difference: 500" in sink.results


def test_unsynchronized_counter_loses_updates(sink):
    config = SynchronizationConfig(thread_count=50, increments_per_thread=200, counter_kind="unsynchronized")
    report = SynchronizationHarness(config).run(sink)

    assert report.counter_kind == "unsynchronized"
    assert report.actual < report.expected
    assert sink.results[-2] == ERROR_LINE


def test_progress_phases(sink):
    threads = 20
    config = SynchronizationConfig(thread_count=threads, increments_per_thread=10)
    SynchronizationHarness(config).run(sink)

    construction = sink.progress[:threads]
    launch = sink.progress[threads : 2 * threads]
    assert construction == sorted(construction)
    assert all(0 <= value <= 50 for value in construction)
    assert construction[-1] == 50
    assert launch == sorted(launch)
    assert all(50 <= value <= 100 for value in launch)
    assert launch[-1] == 100
    assert sink.progress[-1] == 0

    assert sink.statuses[0] == "Synchronization test in progress..."
    assert "Creating threads: 1/20" in sink.statuses
    assert "Starting threads: 20/20" in sink.statuses
    assert sink.status == "Synchronization test completed"


def test_worker_errors_become_failures(sink, diagnostics, small_synchronization_config):
    harness = SynchronizationHarness(
        small_synchronization_config, counter_factory=RaisingCounter, diagnostics=diagnostics
    )
    report = harness.run(sink)

    assert len(report.failures) == small_synchronization_config.thread_count
    assert len(diagnostics.failures()) == small_synchronization_config.thread_count
    assert all(isinstance(issue, WorkerFailure) for issue in diagnostics.issues)
    assert report.actual == 0
    assert sink.results[-2] == ERROR_LINE
    assert sink.results[-1] == DIVIDER


def test_interrupted_join_does_not_stop_the_loop(sink, diagnostics, monkeypatch, small_synchronization_config):
    original_join = CounterThread.join
    interrupted = []

    def flaky_join(self, timeout=None):
        if self.name == "counter-worker-1" and not interrupted:
            interrupted.append(self)
            raise RuntimeError("join interrupted")
        return original_join(self, timeout)

    monkeypatch.setattr(CounterThread, "join", flaky_join)
    report = SynchronizationHarness(small_synchronization_config, diagnostics=diagnostics).run(sink)
    for worker in interrupted:
        original_join(worker)

    assert len(report.interruptions) == 1
    assert report.interruptions[0].worker_name == "counter-worker-1"
    assert isinstance(diagnostics.interruptions()[0], JoinInterrupted)
    assert sink.results[0] == HEADER
    assert sink.results[-1] == DIVIDER


def test_counter_thread_increments_exactly():
    counter = LockedCounter()
    worker = CounterThread(counter, 250, name="solo")
    worker.start()
    worker.join()
    assert counter.read() == 250
    assert worker.error is None


def test_counter_thread_makes_no_sink_calls(sink, small_synchronization_config):
    SynchronizationHarness(small_synchronization_config).run(sink)
    threads = small_synchronization_config.thread_count
    # construction + launch + final reset
    assert len(sink.progress) == 2 * threads + 1


@pytest.mark.parametrize(
    "kwargs",
    [{"thread_count": 0}, {"increments_per_thread": 0}, {"counter_kind": "bogus"}],
)
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        SynchronizationConfig(**kwargs)


def test_expected_total():
    assert SynchronizationConfig(thread_count=3, increments_per_thread=7).expected_total == 21


def test_factory_without_name_recorded_as_custom(sink, small_synchronization_config):
    report = SynchronizationHarness(
        small_synchronization_config, counter_factory=functools.partial(LockedCounter)
    ).run(sink)
    assert report.counter_kind == "custom"
    assert report.ok
