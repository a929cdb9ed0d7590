from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from ..processor import ProcessorFactory, build_processor_factory, wrap_int64
from ..sink import GuardedSink, ProgressSink, guard
from .config import PerformanceConfig
from .diagnostics import DiagnosticChannel, WorkerFailure

LOGGER = logging.getLogger("threadbench.harness.performance")

HEADER = "=== PERFORMANCE TEST ==="
DIVIDER = "============================"
COMPLETED_STATUS = "Performance test completed"

SEQUENTIAL_SHARE = 50


@dataclass
class PassTiming:
    started_at: float
    finished_at: float

    @property
    def elapsed_ms(self) -> float:
        return max(self.finished_at - self.started_at, 0.0) * 1000.0


@dataclass
class PerformanceReport:
    unit_count: int
    parallelism: int
    single_sum: int | None
    multi_sum: int | None
    single_timing: PassTiming
    multi_timing: PassTiming
    failures: list[WorkerFailure] = field(default_factory=list)
    sequential_failures: list[WorkerFailure] = field(default_factory=list)

    @property
    def single_elapsed_ms(self) -> float:
        return self.single_timing.elapsed_ms

    @property
    def multi_elapsed_ms(self) -> float:
        return self.multi_timing.elapsed_ms

    @property
    def speedup(self) -> float:
        """Sequential over parallel wall-clock; 0.0 when the parallel pass took no time."""
        if self.multi_elapsed_ms <= 0:
            return 0.0
        return self.single_elapsed_ms / self.multi_elapsed_ms

    @property
    def sums_agree(self) -> bool:
        return self.single_sum is not None and self.multi_sum == self.single_sum


def format_elapsed(elapsed_ms: float) -> str:
    return f"Time: {elapsed_ms:.0f} ms"


def format_speedup(speedup: float) -> str:
    return f"Speedup: {speedup:.2f} times"


def format_sum(label: str, summa: int | None, failures: list[WorkerFailure]) -> str:
    if summa is None:
        return f"{label} result: undefined ({len(failures)} failed task(s))"
    return f"{label} result: {summa}"


def format_multi_result(report: PerformanceReport) -> str:
    return format_sum("Multi-threaded", report.multi_sum, report.failures)


def _pass_progress(offset: int, done: int, total: int) -> int:
    return offset + int(done / total * SEQUENTIAL_SHARE)


class PerformanceHarness:
    """Runs the same N work units sequentially, then on a thread pool."""

    def __init__(
        self,
        config: PerformanceConfig,
        processor_factory: ProcessorFactory | None = None,
        diagnostics: DiagnosticChannel | None = None,
    ) -> None:
        self._config = config
        self._processor_factory = processor_factory or build_processor_factory(
            config.workload,
            matrix_size=config.matrix_size,
            constant_value=config.constant_value,
        )
        self._diagnostics = diagnostics or DiagnosticChannel()

    def run(self, sink: ProgressSink) -> PerformanceReport:
        out = guard(sink)
        total = self._config.unit_count
        parallelism = self._config.resolved_parallelism()

        out.set_status("Performance test in progress...")
        out.append_result(HEADER)
        out.update_progress(0)

        out.set_status("Single-threaded test...")
        single_sum, single_timing, sequential_failures = self._run_sequential(out, total)
        LOGGER.info(
            "Sequential pass: %d units in %.1f ms (sum=%s)",
            total,
            single_timing.elapsed_ms,
            single_sum,
        )
        out.append_result(format_sum("Single-threaded", single_sum, sequential_failures))
        out.append_result(format_elapsed(single_timing.elapsed_ms))
        out.append_result("")

        out.set_status("Multi-threaded test...")
        multi_sum, multi_timing, failures = self._run_parallel(out, total, parallelism)
        report = PerformanceReport(
            unit_count=total,
            parallelism=parallelism,
            single_sum=single_sum,
            multi_sum=multi_sum,
            single_timing=single_timing,
            multi_timing=multi_timing,
            failures=failures,
            sequential_failures=sequential_failures,
        )
        LOGGER.info(
            "Parallel pass: %d units on %d worker(s) in %.1f ms (sum=%s)",
            total,
            parallelism,
            multi_timing.elapsed_ms,
            multi_sum,
        )
        out.append_result(format_multi_result(report))
        out.append_result(format_elapsed(multi_timing.elapsed_ms))
        out.append_result("")

        if report.multi_elapsed_ms <= 0:
            LOGGER.warning("Parallel pass elapsed time is zero; speedup reported as 0.00")
        out.append_result(format_speedup(report.speedup))
        out.append_result(DIVIDER)

        out.set_chart_data(report.single_elapsed_ms, report.multi_elapsed_ms)
        out.set_status(COMPLETED_STATUS)
        out.update_progress(0)
        return report

    def _run_sequential(
        self, out: GuardedSink, total: int
    ) -> tuple[int | None, PassTiming, list[WorkerFailure]]:
        summa = 0
        failures: list[WorkerFailure] = []

        started_at = time.perf_counter()
        for index in range(total):
            try:
                processor = self._processor_factory(index)
                summa = wrap_int64(summa + processor.process())
            except Exception as exc:  # noqa: BLE001
                failure = WorkerFailure(task_index=index, error=exc)
                failures.append(failure)
                self._diagnostics.report(failure)

            out.update_progress(_pass_progress(0, index + 1, total))
            out.set_status(f"Single-threaded: {index + 1}/{total}")
        finished_at = time.perf_counter()

        return (None if failures else summa), PassTiming(started_at, finished_at), failures

    def _run_parallel(
        self, out: GuardedSink, total: int, parallelism: int
    ) -> tuple[int | None, PassTiming, list[WorkerFailure]]:
        summa = 0
        failures: list[WorkerFailure] = []

        started_at = time.perf_counter()
        with ThreadPoolExecutor(
            max_workers=parallelism, thread_name_prefix="performance-worker"
        ) as executor:
            futures: dict[Future[int], int] = {
                executor.submit(self._run_unit, out, index, total): index
                for index in range(total)
            }
            for future in as_completed(futures):
                try:
                    summa = wrap_int64(summa + future.result())
                except Exception as exc:  # noqa: BLE001
                    failure = WorkerFailure(task_index=futures[future], error=exc)
                    failures.append(failure)
                    self._diagnostics.report(failure)
        finished_at = time.perf_counter()

        return (None if failures else summa), PassTiming(started_at, finished_at), failures

    def _run_unit(self, out: GuardedSink, index: int, total: int) -> int:
        processor = self._processor_factory(index)
        result = processor.process()
        # index is the submission slot, not the completion order
        out.update_progress(_pass_progress(SEQUENTIAL_SHARE, index + 1, total))
        out.set_status(f"Multi-threaded: {index + 1}/{total}")
        return result
