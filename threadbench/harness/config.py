from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path

from ..counter import COUNTER_KINDS, DEFAULT_COUNTER_KIND
from ..processor import MATRIX_SIZE_DEFAULT, UNIT_COUNT_DEFAULT, WORKLOADS

THREAD_COUNT_DEFAULT = 200
INCREMENTS_PER_THREAD_DEFAULT = 1000


def available_parallelism() -> int:
    """Logical CPUs this process may run on, never less than one."""
    if hasattr(os, "sched_getaffinity"):
        count = len(os.sched_getaffinity(0))
    else:
        count = os.cpu_count() or 1
    return max(1, count)


@dataclass(frozen=True)
class PerformanceConfig:
    """Workload and pool sizing for one performance run."""

    unit_count: int = UNIT_COUNT_DEFAULT
    parallelism: int | None = None
    workload: str = "matrix"
    matrix_size: int = MATRIX_SIZE_DEFAULT
    constant_value: int = 0

    def __post_init__(self) -> None:
        if self.unit_count <= 0:
            raise ValueError("PerformanceConfig unit_count must be > 0")
        if self.parallelism is not None and self.parallelism <= 0:
            raise ValueError("PerformanceConfig parallelism must be > 0")
        if self.matrix_size <= 0:
            raise ValueError("PerformanceConfig matrix_size must be > 0")
        if self.workload not in WORKLOADS:
            raise ValueError(f"Unknown workload {self.workload!r}")

    def resolved_parallelism(self) -> int:
        if self.parallelism is not None:
            return self.parallelism
        return available_parallelism()


@dataclass(frozen=True)
class SynchronizationConfig:
    """Thread fan-out for one counter stress run."""

    thread_count: int = THREAD_COUNT_DEFAULT
    increments_per_thread: int = INCREMENTS_PER_THREAD_DEFAULT
    counter_kind: str = DEFAULT_COUNTER_KIND

    def __post_init__(self) -> None:
        if self.thread_count <= 0:
            raise ValueError("SynchronizationConfig thread_count must be > 0")
        if self.increments_per_thread <= 0:
            raise ValueError("SynchronizationConfig increments_per_thread must be > 0")
        if self.counter_kind not in COUNTER_KINDS:
            raise ValueError(f"Unknown counter kind {self.counter_kind!r}")

    @property
    def expected_total(self) -> int:
        return self.thread_count * self.increments_per_thread


@dataclass
class DemoConfig:
    """Everything the entry point needs to drive the demo."""

    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    synchronization: SynchronizationConfig = field(default_factory=SynchronizationConfig)
    tests: tuple[str, ...] = ("performance", "synchronization")
    repeat: int = 1
    chart_path: Path | None = None

    def __post_init__(self) -> None:
        if self.repeat <= 0:
            raise ValueError("DemoConfig repeat must be > 0")
        unknown = [name for name in self.tests if name not in ("performance", "synchronization")]
        if unknown:
            raise ValueError(f"Unknown test(s): {', '.join(unknown)}")


def default_demo_config() -> DemoConfig:
    """Return the stock demo: both tests, one run each, default sizes."""
    return DemoConfig()


def with_overrides(config: DemoConfig, **overrides) -> DemoConfig:
    """Copy ``config`` replacing performance_* / synchronization_* fields by name."""
    performance_fields = {}
    synchronization_fields = {}
    demo_fields = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key.startswith("performance_"):
            performance_fields[key[len("performance_"):]] = value
        elif key.startswith("synchronization_"):
            synchronization_fields[key[len("synchronization_"):]] = value
        else:
            demo_fields[key] = value

    return dataclasses.replace(
        config,
        performance=dataclasses.replace(config.performance, **performance_fields),
        synchronization=dataclasses.replace(config.synchronization, **synchronization_fields),
        **demo_fields,
    )
