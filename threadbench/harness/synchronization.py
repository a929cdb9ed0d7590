from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from ..counter import Counter, CounterFactory, counter_factory_for
from ..sink import ProgressSink, guard
from .config import SynchronizationConfig
from .diagnostics import DiagnosticChannel, JoinInterrupted, WorkerFailure

LOGGER = logging.getLogger("threadbench.harness.synchronization")

HEADER = "=== SYNCHRONIZATION TEST ==="
DIVIDER = "==========================="
SUCCESS_LINE = "SUCCESS: Synchronization works correctly!!!"
ERROR_LINE = "ERROR: Synchronization problem!"
COMPLETED_STATUS = "Synchronization test completed"
CUSTOM_COUNTER_KIND = "custom"

PHASE_SHARE = 50


class CounterThread(threading.Thread):
    """One-shot OS thread that increments the shared counter a fixed number of times.

    It makes no sink calls. An exception raised by the counter ends the
    thread early and is kept on :attr:`error` for the harness to report.
    """

    def __init__(self, counter: Counter, increments: int, name: str | None = None) -> None:
        super().__init__(name=name)
        self._counter = counter
        self._increments = increments
        self.error: BaseException | None = None

    def run(self) -> None:
        try:
            for _ in range(self._increments):
                self._counter.increment()
        except Exception as exc:  # noqa: BLE001
            self.error = exc


@dataclass
class SynchronizationReport:
    thread_count: int
    increments_per_thread: int
    counter_kind: str
    expected: int
    actual: int
    failures: list[WorkerFailure] = field(default_factory=list)
    interruptions: list[JoinInterrupted] = field(default_factory=list)

    @property
    def difference(self) -> int:
        return self.expected - self.actual

    @property
    def ok(self) -> bool:
        return self.difference == 0

    def verdict_line(self) -> str:
        return SUCCESS_LINE if self.ok else ERROR_LINE


def _phase_progress(offset: int, done: int, total: int) -> int:
    return offset + int(done / total * PHASE_SHARE)


class SynchronizationHarness:
    """Stress test: T threads each increment one shared counter I times."""

    def __init__(
        self,
        config: SynchronizationConfig,
        counter_factory: CounterFactory | None = None,
        diagnostics: DiagnosticChannel | None = None,
    ) -> None:
        self._config = config
        if counter_factory is None:
            self._counter_factory = counter_factory_for(config.counter_kind)
            self._counter_kind = config.counter_kind
        else:
            self._counter_factory = counter_factory
            self._counter_kind = getattr(counter_factory, "__name__", CUSTOM_COUNTER_KIND)
        self._diagnostics = diagnostics or DiagnosticChannel()

    def run(self, sink: ProgressSink) -> SynchronizationReport:
        out = guard(sink)
        thread_count = self._config.thread_count
        increments = self._config.increments_per_thread

        out.set_status("Synchronization test in progress...")
        out.append_result(HEADER)

        counter = self._counter_factory()
        failures: list[WorkerFailure] = []
        interruptions: list[JoinInterrupted] = []

        workers: list[CounterThread] = []
        for index in range(thread_count):
            workers.append(CounterThread(counter, increments, name=f"counter-worker-{index}"))
            out.update_progress(_phase_progress(0, index + 1, thread_count))
            out.set_status(f"Creating threads: {index + 1}/{thread_count}")

        started: list[tuple[int, CounterThread]] = []
        for index, worker in enumerate(workers):
            try:
                worker.start()
            except RuntimeError as exc:
                failure = WorkerFailure(task_index=index, error=exc)
                failures.append(failure)
                self._diagnostics.report(failure)
            else:
                started.append((index, worker))
            out.update_progress(_phase_progress(PHASE_SHARE, index + 1, thread_count))
            out.set_status(f"Starting threads: {index + 1}/{thread_count}")

        for index, worker in started:
            try:
                worker.join()
            except RuntimeError as exc:
                interruption = JoinInterrupted(worker_name=worker.name, error=exc)
                interruptions.append(interruption)
                self._diagnostics.report(interruption)
                continue
            if worker.error is not None:
                failure = WorkerFailure(task_index=index, error=worker.error)
                failures.append(failure)
                self._diagnostics.report(failure)

        report = SynchronizationReport(
            thread_count=thread_count,
            increments_per_thread=increments,
            counter_kind=self._counter_kind,
            expected=self._config.expected_total,
            actual=counter.read(),
            failures=failures,
            interruptions=interruptions,
        )
        LOGGER.info(
            "Counter stress: %d threads x %d increments, expected=%d actual=%d",
            thread_count,
            increments,
            report.expected,
            report.actual,
        )

        out.append_result(f"Expected value: {report.expected}")
        out.append_result(f"Actual value: {report.actual}")
        out.append_result(f"Difference: {report.difference}")
        out.append_result(report.verdict_line())
        out.append_result(DIVIDER)

        out.set_status(COMPLETED_STATUS)
        out.update_progress(0)

        LOGGER.debug("Counter: %d", counter.read())
        return report
