"""
Offloaded comparison execution.
Single responsibility: run the engine in a worker context with a time bound.
"""

from concurrent.futures import (
    CancelledError,
    Future,
    ThreadPoolExecutor,
    TimeoutError as FuturesTimeoutError,
)
from dataclasses import dataclass, field
from typing import Callable, Optional
import multiprocessing
import time

from ..utils.logger import get_logger
from ..config.manager import CompareOptions, WorkerConfig, EXECUTORS
from .diff_engine import DiffReport, Table, compare_tables


logger = get_logger()


class ComparisonError(Exception):
    """Base class for failures reported by an offloaded comparison."""
    pass


class ComparisonTimeoutError(ComparisonError):
    """The comparison did not finish within the allotted time."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Comparison timed out after {timeout_seconds:g}s")


class ComparisonFailedError(ComparisonError):
    """The comparison raised inside the worker; message is passed through."""
    pass


@dataclass
class ComparisonRequest:
    """Everything a worker needs to run one comparison."""

    old: Table
    new: Table
    options: CompareOptions = field(default_factory=CompareOptions)

    @property
    def largest_table(self) -> int:
        return max(self.old.row_count or 0, self.new.row_count or 0)


def run_comparison(request: ComparisonRequest) -> DiffReport:
    """Worker entry point. Module level so process pools can pickle it."""
    return compare_tables(request.old, request.new, request.options)


Task = Callable[[ComparisonRequest], DiffReport]


def _settle(future: Future, value=None, error: Optional[BaseException] = None):
    """Complete a future from a pool callback unless it was cancelled."""
    if not future.set_running_or_notify_cancel():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(value)


class ComparisonWorker:
    """
    Submit comparisons to a process pool (default) or a thread pool.

    Each request is one unit of work: no partial results and no retries.
    On timeout the process pool is terminated, which stops the running
    comparison. Threads cannot be interrupted: in thread mode a timed-out
    comparison keeps running in the background until it finishes and its
    result is discarded.
    """

    def __init__(self, timeout_seconds: float = 30.0,
                 executor: str = "process",
                 max_workers: int = 1,
                 task: Optional[Task] = None):
        """
        Initialize worker.

        Args:
            timeout_seconds: Upper bound for one comparison
            executor: "process" or "thread"
            max_workers: Pool size
            task: Picklable callable run for each request
                  (run_comparison by default)
        """
        if executor not in EXECUTORS:
            raise ValueError(f"Unsupported executor: {executor}")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.timeout_seconds = timeout_seconds
        self.executor_kind = executor
        self.max_workers = max_workers
        self.task = task
        self._threads: Optional[ThreadPoolExecutor] = None
        self._pool = None

    @classmethod
    def from_config(cls, config: WorkerConfig) -> "ComparisonWorker":
        return cls(timeout_seconds=config.timeout_seconds,
                   executor=config.executor)

    def __enter__(self) -> "ComparisonWorker":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _get_threads(self) -> ThreadPoolExecutor:
        if self._threads is None:
            self._threads = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="table-diff"
            )
        return self._threads

    def _get_pool(self):
        if self._pool is None:
            self._pool = multiprocessing.get_context().Pool(processes=self.max_workers)
        return self._pool

    def submit(self, request: ComparisonRequest) -> Future:
        """
        Queue a comparison.

        Args:
            request: Tables and options to compare

        Returns:
            Future resolving to a DiffReport
        """
        logger.info("worker.submit",
                   executor=self.executor_kind,
                   old_records=request.old.row_count,
                   new_records=request.new.row_count,
                   timeout_seconds=self.timeout_seconds)

        task = self.task or run_comparison
        if self.executor_kind == "thread":
            return self._get_threads().submit(task, request)

        future: Future = Future()
        self._get_pool().apply_async(
            task, (request,),
            callback=lambda report: _settle(future, value=report),
            error_callback=lambda error: _settle(future, error=error)
        )
        return future

    def result(self, future: Future) -> DiffReport:
        """
        Wait for a submitted comparison.

        Args:
            future: Future returned by submit()

        Returns:
            Diff report

        Raises:
            ComparisonTimeoutError: If the time bound is exceeded
            ComparisonFailedError: If the comparison raised
            ComparisonError: If the comparison was cancelled
        """
        start = time.monotonic()
        try:
            report = future.result(timeout=self.timeout_seconds)
        except FuturesTimeoutError:
            future.cancel()
            self._stop_running()
            logger.error("worker.timeout", timeout_seconds=self.timeout_seconds)
            raise ComparisonTimeoutError(self.timeout_seconds) from None
        except CancelledError:
            logger.warning("worker.cancelled")
            raise ComparisonError("Comparison was cancelled") from None
        except Exception as e:
            logger.error("worker.failed", error=str(e))
            raise ComparisonFailedError(str(e)) from e

        logger.info("worker.complete",
                   elapsed=round(time.monotonic() - start, 3),
                   differences=report.stats.total_rows)
        return report

    def _stop_running(self):
        """Kill pool processes so an overdue comparison stops using CPU."""
        if self._pool is not None:
            self._pool.terminate()
            self._pool.join()
            self._pool = None
            logger.warning("worker.pool_terminated")

    def run(self, request: ComparisonRequest) -> DiffReport:
        """Submit a comparison and wait for it."""
        return self.result(self.submit(request))

    def close(self, wait: bool = False):
        """
        Shut the pools down.

        Queued comparisons are dropped. Without ``wait`` pool processes are
        terminated; with it they finish their current comparison first.
        """
        if self._threads is not None:
            self._threads.shutdown(wait=wait, cancel_futures=True)
            self._threads = None
        if self._pool is not None:
            if wait:
                self._pool.close()
            else:
                self._pool.terminate()
            self._pool.join()
            self._pool = None


def compare_auto(old: Table, new: Table,
                 options: Optional[CompareOptions] = None,
                 worker_config: Optional[WorkerConfig] = None) -> DiffReport:
    """
    Compare inline for small tables, through a worker for large ones.

    Args:
        old: Baseline table
        new: Table compared against the baseline
        options: Comparison options
        worker_config: Offload threshold, timeout and executor kind

    Returns:
        Diff report
    """
    config = worker_config or WorkerConfig()
    request = ComparisonRequest(old, new, options or CompareOptions())

    if request.largest_table <= config.offload_threshold:
        return run_comparison(request)

    logger.info("worker.offloading",
                records=request.largest_table,
                threshold=config.offload_threshold,
                executor=config.executor)
    with ComparisonWorker.from_config(config) as worker:
        return worker.run(request)
