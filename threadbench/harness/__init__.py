"""
Run harnesses for the threadbench demo.

This package times a fixed workload sequentially and on a thread pool,
stress-tests a shared counter from hundreds of OS threads, and reports
progress and results through a presentation-agnostic progress sink.
"""

from .config import (
    DemoConfig,
    PerformanceConfig,
    SynchronizationConfig,
    available_parallelism,
    default_demo_config,
)
from .controller import DemoController
from .diagnostics import DiagnosticChannel, JoinInterrupted, WorkerFailure
from .performance import PerformanceHarness, PerformanceReport
from .synchronization import CounterThread, SynchronizationHarness, SynchronizationReport

__all__ = [
    "CounterThread",
    "DemoConfig",
    "DemoController",
    "DiagnosticChannel",
    "JoinInterrupted",
    "PerformanceConfig",
    "PerformanceHarness",
    "PerformanceReport",
    "SynchronizationConfig",
    "SynchronizationHarness",
    "SynchronizationReport",
    "WorkerFailure",
    "available_parallelism",
    "default_demo_config",
]
