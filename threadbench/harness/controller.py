from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from ..counter import CounterFactory
from ..processor import ProcessorFactory
from ..sink import ProgressSink
from .collector import RunHistory
from .config import DemoConfig
from .diagnostics import DiagnosticChannel
from .performance import PerformanceHarness
from .synchronization import SynchronizationHarness

LOGGER = logging.getLogger("threadbench.harness.controller")

PERFORMANCE = "performance"
SYNCHRONIZATION = "synchronization"

FinishedCallback = Callable[[Any], None]


class DemoController:
    """Launches harness runs off the presentation thread, one per kind at a time.

    A start request for a kind that is already running is refused, the same
    way a start button stays disabled until its run finishes. The
    ``on_finished`` callback fires once per run, raised or not.
    """

    def __init__(
        self,
        config: DemoConfig,
        processor_factory: ProcessorFactory | None = None,
        counter_factory: CounterFactory | None = None,
        history: RunHistory | None = None,
        diagnostics: DiagnosticChannel | None = None,
    ) -> None:
        self._config = config
        self.history = history if history is not None else RunHistory()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticChannel()
        self._harnesses = {
            PERFORMANCE: PerformanceHarness(
                config.performance,
                processor_factory=processor_factory,
                diagnostics=self.diagnostics,
            ),
            SYNCHRONIZATION: SynchronizationHarness(
                config.synchronization,
                counter_factory=counter_factory,
                diagnostics=self.diagnostics,
            ),
        }
        self._lock = threading.Lock()
        self._active: dict[str, threading.Thread] = {}

    def start_performance(
        self, sink: ProgressSink, on_finished: FinishedCallback | None = None
    ) -> threading.Thread | None:
        return self._launch(PERFORMANCE, sink, on_finished)

    def start_synchronization(
        self, sink: ProgressSink, on_finished: FinishedCallback | None = None
    ) -> threading.Thread | None:
        return self._launch(SYNCHRONIZATION, sink, on_finished)

    def start(
        self, kind: str, sink: ProgressSink, on_finished: FinishedCallback | None = None
    ) -> threading.Thread | None:
        if kind not in self._harnesses:
            raise ValueError(f"Unknown test kind {kind!r}")
        return self._launch(kind, sink, on_finished)

    def is_running(self, kind: str) -> bool:
        with self._lock:
            return kind in self._active

    def _launch(
        self, kind: str, sink: ProgressSink, on_finished: FinishedCallback | None
    ) -> threading.Thread | None:
        with self._lock:
            if kind in self._active:
                LOGGER.info("%s run already in progress; ignoring start request", kind)
                return None
            thread = threading.Thread(
                target=self._run,
                args=(kind, sink, on_finished),
                name=f"{kind}-run",
            )
            self._active[kind] = thread
        thread.start()
        return thread

    def _run(self, kind: str, sink: ProgressSink, on_finished: FinishedCallback | None) -> None:
        report = None
        try:
            report = self._harnesses[kind].run(sink)
            self.history.record(report)
        finally:
            with self._lock:
                self._active.pop(kind, None)
            # report is None when the harness itself raised
            if on_finished is not None:
                on_finished(report)
