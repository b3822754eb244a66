"""
Base worker classes for background operations.

Provides common functionality for all workers:
- Progress reporting
- Cooperative cancellation
- Error handling
- State management
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot, QMutex, QMutexLocker

from diffchecker.core.exceptions import CancelledException


class WorkerState(Enum):
    """State of a worker."""
    PENDING = auto()
    RUNNING = auto()
    CANCELLING = auto()
    CANCELLED = auto()
    COMPLETED = auto()
    FAILED = auto()


@dataclass
class ProgressInfo:
    """Progress information from a worker."""
    fraction: float
    message: str = ""
    request_id: Optional[int] = None

    @property
    def percent(self) -> float:
        return max(0.0, min(1.0, self.fraction)) * 100


class WorkerSignals(QObject):
    """
    Signals for worker communication.

    These signals are used to communicate between
    the worker thread and the thread that owns the dispatcher.
    """
    # Progress update: (fraction, message)
    progress = pyqtSignal(float, str)

    # Detailed progress: ProgressInfo object
    progress_detail = pyqtSignal(object)

    # Worker started
    started = pyqtSignal()

    # Worker finished successfully with result
    finished = pyqtSignal(object)

    # Worker failed with error
    error = pyqtSignal(str, str)  # (error_type, message)

    # Worker was cancelled
    cancelled = pyqtSignal()

    # State changed
    state_changed = pyqtSignal(object)  # WorkerState


class WorkerMeta(type(QObject), type(ABC)):
    pass


class BaseWorker(QObject, ABC, metaclass=WorkerMeta):
    """
    Base class for workers that run in a QThread.

    Subclass and implement the `do_work` method.

    Usage:
        worker = MyWorker(args)
        thread = WorkerThread(worker)
        worker.signals.finished.connect(on_done)
        thread.start()
    """

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.signals = WorkerSignals()
        self._state = WorkerState.PENDING
        self._cancelled = False
        self._mutex = QMutex()
        self._result: Any = None
        self._error: Optional[tuple[str, str]] = None

    @property
    def state(self) -> WorkerState:
        """Current worker state."""
        with QMutexLocker(self._mutex):
            return self._state

    @state.setter
    def state(self, value: WorkerState) -> None:
        with QMutexLocker(self._mutex):
            self._state = value
        self.signals.state_changed.emit(value)

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        with QMutexLocker(self._mutex):
            return self._cancelled

    @property
    def result(self) -> Any:
        """Get the result (after completion)."""
        return self._result

    @property
    def error(self) -> Optional[tuple[str, str]]:
        """Get error info (after failure)."""
        return self._error

    def cancel(self) -> None:
        """Request cancellation; honored at the next check."""
        with QMutexLocker(self._mutex):
            self._cancelled = True
            if self._state == WorkerState.RUNNING:
                self._state = WorkerState.CANCELLING
        self.signals.state_changed.emit(WorkerState.CANCELLING)

    @pyqtSlot()
    def run(self) -> None:
        """
        Main worker execution method.

        Subclasses should not override this directly,
        instead override `do_work`.
        """
        self.state = WorkerState.RUNNING
        self.signals.started.emit()

        try:
            result = self.do_work()

            if self.is_cancelled:
                self.state = WorkerState.CANCELLED
                self.signals.cancelled.emit()
            else:
                self._result = result
                self.state = WorkerState.COMPLETED
                self.signals.finished.emit(result)

        except CancelledException:
            self.state = WorkerState.CANCELLED
            self.signals.cancelled.emit()

        except Exception as e:
            self._error = (type(e).__name__, str(e))
            self.state = WorkerState.FAILED
            self.signals.error.emit(type(e).__name__, str(e))

    @abstractmethod
    def do_work(self) -> Any:
        """
        Perform the actual work.

        Should call `check_cancelled` at safe points.

        Returns:
            The result of the work.
        """
        pass

    def report_progress(self, fraction: float, message: str = "") -> None:
        """Report progress to the owning thread."""
        self.signals.progress.emit(fraction, message)

    def report_progress_detail(self, info: ProgressInfo) -> None:
        """Report detailed progress."""
        self.signals.progress_detail.emit(info)

    def check_cancelled(self) -> bool:
        """
        Check if cancelled and raise if so.

        Convenience method for cleaner cancellation handling.
        """
        if self.is_cancelled:
            raise CancelledException("Operation cancelled")
        return False


class CancellableWorker(BaseWorker):
    """
    Base class for workers with enhanced cancellation support.

    Provides helper methods for periodic cancellation checks.
    """

    def __init__(self, check_interval: int = 1, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._check_interval = max(1, check_interval)
        self._operation_count = 0

    def maybe_check_cancelled(self) -> None:
        """
        Periodically check for cancellation.

        Only actually checks every `check_interval` calls
        to reduce overhead; raises ``CancelledException`` when due.
        """
        self._operation_count += 1
        if self._operation_count >= self._check_interval:
            self._operation_count = 0
            self.check_cancelled()


class WorkerThread(QThread):
    """
    Runs one worker in its own thread without an event loop.

    The thread ends as soon as the worker's `run` returns.

    Usage:
        thread = WorkerThread(my_worker)
        thread.start()
        thread.wait()  # Wait for completion
    """

    def __init__(
        self,
        worker: BaseWorker,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.worker = worker
        self.worker.moveToThread(self)

    def run(self) -> None:
        self.worker.run()

    def cancel(self) -> None:
        """Cancel the worker."""
        self.worker.cancel()

    @property
    def result(self) -> Any:
        """Get the worker's result."""
        return self.worker.result

    @property
    def error(self) -> Optional[tuple[str, str]]:
        """Get error info if failed."""
        return self.worker.error


__all__ = [
    'BaseWorker',
    'CancellableWorker',
    'CancelledException',
    'ProgressInfo',
    'WorkerSignals',
    'WorkerState',
    'WorkerThread',
]
