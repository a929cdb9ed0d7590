from __future__ import annotations

import collections
import threading
import time
from typing import Any

import pandas as pd

from .performance import PerformanceReport
from .synchronization import SynchronizationReport

PERFORMANCE_COLUMNS = [
    "run",
    "recorded_ts",
    "unit_count",
    "parallelism",
    "single_sum",
    "multi_sum",
    "single_elapsed_ms",
    "multi_elapsed_ms",
    "speedup",
    "failed_tasks",
]

SYNCHRONIZATION_COLUMNS = [
    "run",
    "recorded_ts",
    "counter_kind",
    "thread_count",
    "increments_per_thread",
    "expected",
    "actual",
    "difference",
    "ok",
]


class RunHistory:
    """In-memory record of completed runs, one table per test kind."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._performance: list[dict[str, Any]] = []
        self._synchronization: list[dict[str, Any]] = []

    def record_performance(self, report: PerformanceReport) -> None:
        with self._lock:
            self._performance.append(
                {
                    "run": len(self._performance) + 1,
                    "recorded_ts": time.time(),
                    "unit_count": report.unit_count,
                    "parallelism": report.parallelism,
                    "single_sum": report.single_sum,
                    "multi_sum": report.multi_sum,
                    "single_elapsed_ms": report.single_elapsed_ms,
                    "multi_elapsed_ms": report.multi_elapsed_ms,
                    "speedup": report.speedup,
                    "failed_tasks": len(report.failures) + len(report.sequential_failures),
                }
            )

    def record_synchronization(self, report: SynchronizationReport) -> None:
        with self._lock:
            self._synchronization.append(
                {
                    "run": len(self._synchronization) + 1,
                    "recorded_ts": time.time(),
                    "counter_kind": report.counter_kind,
                    "thread_count": report.thread_count,
                    "increments_per_thread": report.increments_per_thread,
                    "expected": report.expected,
                    "actual": report.actual,
                    "difference": report.difference,
                    "ok": report.ok,
                }
            )

    def record(self, report: PerformanceReport | SynchronizationReport) -> None:
        if isinstance(report, PerformanceReport):
            self.record_performance(report)
        elif isinstance(report, SynchronizationReport):
            self.record_synchronization(report)
        else:
            raise TypeError(f"Unsupported report type: {type(report).__name__}")

    def performance_frame(self) -> pd.DataFrame:
        with self._lock:
            rows = list(self._performance)
        if not rows:
            return pd.DataFrame(columns=PERFORMANCE_COLUMNS)
        return pd.DataFrame(rows, columns=PERFORMANCE_COLUMNS)

    def synchronization_frame(self) -> pd.DataFrame:
        with self._lock:
            rows = list(self._synchronization)
        if not rows:
            return pd.DataFrame(columns=SYNCHRONIZATION_COLUMNS)
        return pd.DataFrame(rows, columns=SYNCHRONIZATION_COLUMNS)

    def summaries(self) -> dict[str, int]:
        """Run counts per test kind, plus synchronization verdict counts."""
        with self._lock:
            counter = collections.Counter(
                "sync-ok" if row["ok"] else "sync-error" for row in self._synchronization
            )
            counter["performance"] = len(self._performance)
            counter["synchronization"] = len(self._synchronization)
        return dict(counter)

    def __len__(self) -> int:
        with self._lock:
            return len(self._performance) + len(self._synchronization)
