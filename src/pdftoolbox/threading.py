"""
Threading system for non-blocking tool jobs.

Each tool page owns one ToolController, which runs at most one ToolWorker
(QThread) at a time. A job is any callable taking a progress callback; the
worker forwards throttled progress and exactly one terminal signal to the
GUI thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from time import monotonic
from typing import Any

from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot

from .errors import BaseAppError, from_exception

logger = logging.getLogger(__name__)

# (percent, message)
JobProgress = Callable[[int, str], None]
Job = Callable[[JobProgress], Any]


class ToolWorker(QThread):
    """
    QThread-based worker that runs one tool job off the GUI thread.

    Signals:
        progressChanged(int, str): Progress percentage (0-100) and status message
        jobCompleted(object): The job's return value
        jobFailed(object): BaseAppError describing the failure
    """

    progressChanged = Signal(int, str)  # percent, message
    jobCompleted = Signal(object)  # job return value
    jobFailed = Signal(object)  # BaseAppError

    def __init__(
        self,
        job: Job,
        *,
        description: str = "job",
        parent: QObject | None = None,
        progress_throttle_ms: int = 50,
    ) -> None:
        """
        Initialize the worker.

        Args:
            job: Callable run in the worker thread; receives a progress callback
            description: Name used in logs
            parent: Parent QObject for lifetime management
            progress_throttle_ms: Minimum milliseconds between progress updates (0 = no throttling)
        """
        super().__init__(parent)

        self._job = job
        self.description = description
        self._throttle_ms = max(0, progress_throttle_ms)
        self._last_progress_emit = 0.0

        self.setObjectName(f"ToolWorker-{description}")

    def _should_emit_progress(self, percent: int) -> bool:
        # the final update always gets through
        if self._throttle_ms == 0 or percent >= 100:
            return True

        now = monotonic()
        if (now - self._last_progress_emit) * 1000 >= self._throttle_ms:
            self._last_progress_emit = now
            return True
        return False

    def _progress_callback(self, percent: int, message: str = "") -> None:
        if self._should_emit_progress(percent):
            self.progressChanged.emit(int(percent), str(message or ""))

    def run(self) -> None:
        """
        Run the job and emit exactly one of jobCompleted or jobFailed.
        """
        try:
            logger.info(f"Starting {self.description}")
            result = self._job(self._progress_callback)
        except BaseAppError as e:
            logger.warning(f"{self.description} failed: [{e.code.value}] {e.user_message}")
            self.jobFailed.emit(e)
        except Exception as e:
            logger.error(f"Unexpected error during {self.description}: {type(e).__name__}: {e}")
            self.jobFailed.emit(from_exception(e, {"job": self.description}))
        else:
            self.jobCompleted.emit(result)


class ToolController(QObject):
    """
    Manages the lifecycle of ToolWorker threads for one tool page.

    Only one job runs at a time; a start request while one is running is
    refused and logged.
    """

    jobStarted = Signal(str)  # job kind
    jobFinished = Signal(str)  # job kind, emitted after cleanup
    progressChanged = Signal(int, str)
    jobCompleted = Signal(str, object)  # job kind, result
    jobFailed = Signal(str, object)  # job kind, BaseAppError

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.current_worker: ToolWorker | None = None
        self._current_kind = ""
        self.setObjectName("ToolController")

    def is_running(self) -> bool:
        return self.current_worker is not None and self.current_worker.isRunning()

    def start(self, kind: str, job: Job) -> bool:
        """
        Start a job in a worker thread.

        Args:
            kind: Job label passed back with every signal, e.g. "add_files"
            job: Callable receiving a progress callback

        Returns:
            False if another job is still running
        """
        if self.current_worker is not None:
            logger.warning(f"Cannot start {kind}: {self._current_kind} is still running")
            return False

        worker = ToolWorker(job, description=kind, parent=self)
        self.current_worker = worker
        self._current_kind = kind

        worker.progressChanged.connect(self.progressChanged, Qt.ConnectionType.QueuedConnection)
        worker.jobCompleted.connect(self._on_completed, Qt.ConnectionType.QueuedConnection)
        worker.jobFailed.connect(self._on_failed, Qt.ConnectionType.QueuedConnection)
        worker.finished.connect(self._cleanup_worker, Qt.ConnectionType.QueuedConnection)

        self.jobStarted.emit(kind)
        worker.start()
        return True

    @Slot(object)
    def _on_completed(self, result: Any) -> None:
        self.jobCompleted.emit(self._current_kind, result)

    @Slot(object)
    def _on_failed(self, error: BaseAppError) -> None:
        self.jobFailed.emit(self._current_kind, error)

    @Slot()
    def _cleanup_worker(self) -> None:
        worker = self.current_worker
        kind = self._current_kind
        self.current_worker = None
        self._current_kind = ""

        if worker is not None:
            try:
                worker.progressChanged.disconnect(self.progressChanged)
                worker.jobCompleted.disconnect(self._on_completed)
                worker.jobFailed.disconnect(self._on_failed)
                worker.finished.disconnect(self._cleanup_worker)
            except (TypeError, RuntimeError):
                logger.debug("Worker signals already disconnected.")

            if worker.isRunning():
                worker.wait(1000)
            worker.deleteLater()

        self.jobFinished.emit(kind)

    def wait_for_completion(self, timeout_ms: int = 0) -> bool:
        """
        Wait for the current worker to finish.

        This should generally only be called during shutdown and in tests.
        """
        if self.current_worker:
            return self.current_worker.wait(timeout_ms) if timeout_ms else self.current_worker.wait()
        return True

    @Slot()
    def shutdown(self, timeout_ms: int = 3000) -> None:
        """Wait for an active job when the application quits; jobs cannot be interrupted."""
        if self.is_running() and not self.wait_for_completion(timeout_ms):
            logger.warning(f"{self._current_kind} did not finish within {timeout_ms}ms during shutdown.")
