from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Union

LOGGER = logging.getLogger("threadbench.harness.diagnostics")


@dataclass(frozen=True)
class WorkerFailure:
    """A worker that did not produce its result."""

    task_index: int
    error: BaseException

    def describe(self) -> str:
        return f"worker {self.task_index} failed: {self.error!r}"


@dataclass(frozen=True)
class JoinInterrupted:
    """Joining a worker thread raised instead of returning."""

    worker_name: str
    error: BaseException

    def describe(self) -> str:
        return f"join of {self.worker_name} interrupted: {self.error!r}"


Issue = Union[WorkerFailure, JoinInterrupted]


class DiagnosticChannel:
    """Side channel for harness failures; logs each one and keeps a copy."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or LOGGER
        self._lock = threading.Lock()
        self._issues: list[Issue] = []

    def report(self, issue: Issue) -> None:
        with self._lock:
            self._issues.append(issue)
        self._logger.error(
            "%s",
            issue.describe(),
            exc_info=(type(issue.error), issue.error, issue.error.__traceback__),
        )

    @property
    def issues(self) -> list[Issue]:
        with self._lock:
            return list(self._issues)

    def failures(self) -> list[WorkerFailure]:
        return [issue for issue in self.issues if isinstance(issue, WorkerFailure)]

    def interruptions(self) -> list[JoinInterrupted]:
        return [issue for issue in self.issues if isinstance(issue, JoinInterrupted)]
