"""
Workers for running comparisons off the caller's thread.

``ComparisonDispatcher`` is the caller-facing side: every ``submit``
starts a new generation, and responses from older generations are
dropped on arrival. Work already handed to a thread is never
pre-empted; a stale worker finishes (or stops at its next chunk
boundary after ``cancel``) and its output is ignored.
"""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QCoreApplication, QObject, QThread, pyqtSignal, pyqtSlot

from diffchecker.core.dispatch import handle_request
from diffchecker.core.models import (
    ComparisonOptions,
    ComparisonRequest,
    ComparisonResponse,
    ComparisonResult,
    FormatType,
    ResponseType,
)
from diffchecker.services.settings import EngineSettings
from diffchecker.workers.base_worker import (
    CancellableWorker,
    ProgressInfo,
    WorkerSignals,
    WorkerThread,
)


class CompareWorkerSignals(WorkerSignals):
    """Worker signals plus the progress envelopes of one request."""
    response = pyqtSignal(object)  # ComparisonResponse


class CompareWorker(CancellableWorker):
    """
    Worker for one comparison request.

    Emits each progress envelope through ``signals.response`` and the
    terminal envelope through ``signals.finished``.
    """

    def __init__(
        self,
        request: ComparisonRequest,
        settings: Optional[EngineSettings] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent=parent)
        self.signals = CompareWorkerSignals()
        self.request = request
        self.settings = settings or EngineSettings()

    def do_work(self) -> ComparisonResponse:
        """Perform the comparison."""
        self.check_cancelled()
        return handle_request(
            self.request,
            progress_callback=self._on_progress,
            large_input_threshold=self.settings.large_input_threshold,
            chunk_size=self.settings.chunk_size,
        )

    def _on_progress(self, response: ComparisonResponse) -> None:
        self.signals.response.emit(response)
        self.report_progress(response.progress or 0.0, response.message or "")
        self.report_progress_detail(ProgressInfo(
            fraction=response.progress or 0.0,
            message=response.message or "",
            request_id=response.id,
        ))
        self.maybe_check_cancelled()
        QThread.yieldCurrentThread()


class ComparisonObserver:
    """
    Receives the events of the current comparison.

    Subclass and override the callbacks of interest; the defaults do
    nothing. Only events of the latest submitted request are delivered.
    """

    def on_progress(self, request_id: int, fraction: float, message: str) -> None:
        pass

    def on_result(self, request_id: int, result: ComparisonResult) -> None:
        pass

    def on_error(self, request_id: int, message: str) -> None:
        pass


class ComparisonDispatcher(QObject):
    """
    Caller-side entry point for comparisons.

    Owns a monotonically increasing generation counter. Requests run
    on a ``WorkerThread`` when a ``QCoreApplication`` exists and worker
    threads are enabled, and synchronously otherwise.
    """

    # ComparisonResponse of type progress
    progress = pyqtSignal(object)

    # ComparisonResponse of type result
    finished = pyqtSignal(object)

    # (request_id, message)
    failed = pyqtSignal(int, str)

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.settings = settings or EngineSettings()
        self._generation = 0
        self._threads: dict[int, WorkerThread] = {}
        self._observers: dict[int, ComparisonObserver] = {}

    @property
    def current_id(self) -> int:
        """Id of the latest submitted request (0 before the first)."""
        return self._generation

    @property
    def uses_threads(self) -> bool:
        return self.settings.use_worker_threads and QCoreApplication.instance() is not None

    @property
    def active_count(self) -> int:
        """Number of worker threads not yet cleaned up."""
        return len(self._threads)

    def is_current(self, request_id: int) -> bool:
        return request_id == self._generation

    def submit(
        self,
        left: str,
        right: str,
        format_type: FormatType | str,
        options: Optional[ComparisonOptions] = None,
        observer: Optional[ComparisonObserver] = None,
    ) -> int:
        """
        Start a comparison, superseding any earlier one.

        Returns:
            The request id assigned to this comparison
        """
        self._generation += 1
        request = ComparisonRequest(
            id=self._generation,
            left=left,
            right=right,
            format_type=FormatType.from_string(format_type),
            options=options or self.settings.default_options,
        )
        if observer is not None:
            self._observers[request.id] = observer

        if self.uses_threads:
            self._start_thread(request)
        else:
            logging.debug(f"ComparisonDispatcher - Running request {request.id} synchronously")
            response = handle_request(
                request,
                progress_callback=self._deliver,
                large_input_threshold=self.settings.large_input_threshold,
                chunk_size=self.settings.chunk_size,
            )
            self._deliver(response)

        return request.id

    def cancel(self) -> None:
        """
        Supersede the current request without starting a new one.

        Running workers are asked to stop at their next chunk boundary;
        whatever they still emit is dropped.
        """
        self._generation += 1
        self._observers.clear()
        for thread in self._threads.values():
            thread.cancel()

    def wait_for_idle(self, timeout_ms: int = -1) -> bool:
        """
        Block until every worker thread has finished, then deliver
        their queued events.

        Returns:
            False if a thread was still running when ``timeout_ms`` elapsed
        """
        idle = True
        for thread in list(self._threads.values()):
            finished = thread.wait() if timeout_ms < 0 else thread.wait(timeout_ms)
            idle = idle and finished
        app = QCoreApplication.instance()
        if app is not None:
            app.processEvents()
        return idle

    # -------------------------------------------------------------------------
    # Worker plumbing
    # -------------------------------------------------------------------------

    def _start_thread(self, request: ComparisonRequest) -> None:
        worker = CompareWorker(request, self.settings)
        thread = WorkerThread(worker)

        worker.signals.response.connect(self._deliver)
        worker.signals.finished.connect(self._deliver)
        worker.signals.error.connect(self._on_worker_error)
        thread.finished.connect(self._on_thread_finished)

        self._threads[request.id] = thread
        logging.debug(f"ComparisonDispatcher - Starting worker thread for request {request.id}")
        thread.start()

    @pyqtSlot(object)
    def _deliver(self, response: ComparisonResponse) -> None:
        """Route one response to the observer and signals, if still current."""
        if not self.is_current(response.id):
            logging.debug(
                f"ComparisonDispatcher - Dropping stale {response.type.value} "
                f"for request {response.id} (current {self._generation})"
            )
            if response.is_terminal:
                self._observers.pop(response.id, None)
            return

        observer = self._observers.get(response.id)

        if response.type == ResponseType.PROGRESS:
            if observer:
                observer.on_progress(response.id, response.progress or 0.0, response.message or "")
            self.progress.emit(response)
            return

        self._observers.pop(response.id, None)
        if response.type == ResponseType.RESULT:
            if observer:
                observer.on_result(response.id, response.result)
            self.finished.emit(response)
        else:
            logging.error(f"ComparisonDispatcher - Request {response.id} failed: {response.error}")
            if observer:
                observer.on_error(response.id, response.error or "")
            self.failed.emit(response.id, response.error or "")

    @pyqtSlot(str, str)
    def _on_worker_error(self, error_type: str, message: str) -> None:
        request_id = self._request_id_of(self.sender())
        if request_id is None:
            logging.error(f"ComparisonDispatcher - Unknown worker failed: {error_type}: {message}")
            return
        self._deliver(ComparisonResponse.error_event(request_id, f"{error_type}: {message}"))

    @pyqtSlot()
    def _on_thread_finished(self) -> None:
        sender = self.sender()
        for request_id, thread in list(self._threads.items()):
            if thread is sender:
                # finished is emitted just before the thread exits
                thread.wait()
                del self._threads[request_id]
                break

    def _request_id_of(self, signals: Optional[QObject]) -> Optional[int]:
        for request_id, thread in self._threads.items():
            if thread.worker.signals is signals:
                return request_id
        return None
