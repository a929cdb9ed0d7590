"""Progress reporting between the harnesses and whatever presents their output.

The harnesses only ever see the three-call :class:`ProgressSink` capability
(plus the optional chart channel). Presentation layers implement it; the
:class:`DispatchingSink` marshals calls from worker threads onto a single
presentation thread, the way a GUI toolkit's invoke-later queue would.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from typing import Any, Protocol, TextIO

LOGGER = logging.getLogger("threadbench.sink")

PROGRESS_MIN = 0
PROGRESS_MAX = 100


class ProgressSink(Protocol):
    def update_progress(self, progress: int) -> None:  # pragma: no cover
        ...

    def set_status(self, status: str) -> None:  # pragma: no cover
        ...

    def append_result(self, text: str) -> None:  # pragma: no cover
        ...


class ChartSink(Protocol):
    def set_chart_data(self, single_ms: float, multi_ms: float) -> None:  # pragma: no cover
        ...


class SinkRejected(Exception):
    """Raised by a sink that can no longer deliver events."""


def clamp_progress(progress: int) -> int:
    return min(max(int(progress), PROGRESS_MIN), PROGRESS_MAX)


class GuardedSink:
    """Wraps a sink so a failing presentation layer never aborts a run.

    Every delegate failure is dropped (logged at DEBUG). Progress is clamped
    to the [0, 100] range before delivery.
    """

    def __init__(self, delegate: ProgressSink) -> None:
        self._delegate = delegate

    @property
    def has_chart_channel(self) -> bool:
        return callable(getattr(self._delegate, "set_chart_data", None))

    def update_progress(self, progress: int) -> None:
        self._call("update_progress", clamp_progress(progress))

    def set_status(self, status: str) -> None:
        self._call("set_status", status)

    def append_result(self, text: str) -> None:
        self._call("append_result", text)

    def set_chart_data(self, single_ms: float, multi_ms: float) -> None:
        if not self.has_chart_channel:
            return
        self._call("set_chart_data", single_ms, multi_ms)

    def _call(self, method: str, *args: Any) -> None:
        try:
            getattr(self._delegate, method)(*args)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("dropping %s event: %r", method, exc)


def guard(sink: ProgressSink) -> GuardedSink:
    if isinstance(sink, GuardedSink):
        return sink
    return GuardedSink(sink)


_STOP = "stop"
_LATEST_KINDS = ("progress", "status")


class DispatchingSink:
    """Delivers sink calls to ``target`` from one dispatcher thread.

    Calls return immediately. Result lines and chart data are queued in call
    order; progress and status keep only the latest value until the
    dispatcher gets to them. Calls made after :meth:`close` raise
    :class:`SinkRejected`.
    """

    def __init__(self, target: ProgressSink, name: str = "sink-dispatcher") -> None:
        self._target = target
        self._queue: queue.Queue[tuple[str, Any]] = queue.Queue()
        self._lock = threading.Lock()
        self._latest: dict[str, Any] = {}
        self._closed = False
        self._thread = threading.Thread(target=self._dispatch, name=name, daemon=True)
        self._thread.start()

    def __enter__(self) -> DispatchingSink:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def update_progress(self, progress: int) -> None:
        self._post_latest("progress", progress)

    def set_status(self, status: str) -> None:
        self._post_latest("status", status)

    def append_result(self, text: str) -> None:
        self._post("result", text)

    def set_chart_data(self, single_ms: float, multi_ms: float) -> None:
        self._post("chart", (single_ms, multi_ms))

    def close(self, timeout: float | None = None) -> None:
        """Deliver everything already queued, then stop the dispatcher."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put((_STOP, None))
        self._thread.join(timeout=timeout)

    def _post(self, kind: str, payload: Any) -> None:
        with self._lock:
            self._ensure_open()
            self._queue.put((kind, payload))

    def _post_latest(self, kind: str, value: Any) -> None:
        with self._lock:
            self._ensure_open()
            already_queued = kind in self._latest
            self._latest[kind] = value
            if not already_queued:
                self._queue.put((kind, None))

    def _ensure_open(self) -> None:
        if self._closed:
            raise SinkRejected("dispatching sink is closed")

    def _dispatch(self) -> None:
        while True:
            kind, payload = self._queue.get()
            if kind == _STOP:
                return
            if kind in _LATEST_KINDS:
                with self._lock:
                    payload = self._latest.pop(kind)
            try:
                self._deliver(kind, payload)
            except Exception:  # noqa: BLE001
                LOGGER.exception("presentation layer failed to handle %s event", kind)

    def _deliver(self, kind: str, payload: Any) -> None:
        if kind == "progress":
            self._target.update_progress(payload)
        elif kind == "status":
            self._target.set_status(payload)
        elif kind == "result":
            self._target.append_result(payload)
        elif kind == "chart":
            set_chart_data = getattr(self._target, "set_chart_data", None)
            if set_chart_data is not None:
                set_chart_data(*payload)


class ConsoleSink:
    """Console presentation: result lines to a stream, progress to the log."""

    def __init__(self, stream: TextIO | None = None, progress_step: int = 10) -> None:
        if progress_step <= 0:
            raise ValueError("progress_step must be > 0")
        self._stream = stream if stream is not None else sys.stdout
        self._progress_step = progress_step
        self._lock = threading.Lock()
        self._last_bucket: int | None = None
        self.status: str | None = None
        self.chart_data: tuple[float, float] | None = None

    def update_progress(self, progress: int) -> None:
        bucket = progress // self._progress_step
        with self._lock:
            if bucket == self._last_bucket:
                return
            self._last_bucket = bucket
        LOGGER.info("Progress %d%%", progress)

    def set_status(self, status: str) -> None:
        with self._lock:
            self.status = status
        LOGGER.debug("Status: %s", status)

    def append_result(self, text: str) -> None:
        with self._lock:
            print(text, file=self._stream, flush=True)

    def set_chart_data(self, single_ms: float, multi_ms: float) -> None:
        with self._lock:
            self.chart_data = (single_ms, multi_ms)
        LOGGER.info("Chart data: single=%.1f ms, multi=%.1f ms", single_ms, multi_ms)


class RecordingSink:
    """Keeps every event in memory; safe to share between threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.progress: list[int] = []
        self.statuses: list[str] = []
        self.results: list[str] = []
        self.chart_data: list[tuple[float, float]] = []

    def update_progress(self, progress: int) -> None:
        with self._lock:
            self.progress.append(progress)

    def set_status(self, status: str) -> None:
        with self._lock:
            self.statuses.append(status)

    def append_result(self, text: str) -> None:
        with self._lock:
            self.results.append(text)

    def set_chart_data(self, single_ms: float, multi_ms: float) -> None:
        with self._lock:
            self.chart_data.append((single_ms, multi_ms))

    @property
    def status(self) -> str | None:
        with self._lock:
            return self.statuses[-1] if self.statuses else None


__all__ = [
    "ChartSink",
    "ConsoleSink",
    "DispatchingSink",
    "GuardedSink",
    "ProgressSink",
    "RecordingSink",
    "SinkRejected",
    "clamp_progress",
    "guard",
]
