"""
Background workers for non-blocking comparisons.

Provides QThread-based workers for running comparison requests
with progress reporting and cooperative cancellation.

All workers use Qt signals for thread-safe communication
with the thread that owns the dispatcher.
"""

from diffchecker.workers.base_worker import (
    BaseWorker,
    CancellableWorker,
    CancelledException,
    ProgressInfo,
    WorkerSignals,
    WorkerState,
    WorkerThread,
)
from diffchecker.workers.compare_worker import (
    CompareWorker,
    ComparisonDispatcher,
    ComparisonObserver,
)

__all__ = [
    # Base
    'BaseWorker',
    'CancellableWorker',
    'CancelledException',
    'ProgressInfo',
    'WorkerSignals',
    'WorkerState',
    'WorkerThread',
    # Compare
    'CompareWorker',
    'ComparisonDispatcher',
    'ComparisonObserver',
]
