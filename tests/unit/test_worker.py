"""
Unit tests for offloaded comparisons.
Timeouts and failures must reach the caller once, as distinct errors.
"""

import os
import threading
import time
import pytest
from functools import partial
from unittest.mock import patch
from pathlib import Path
import sys

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from tablediff.core.diff_engine import Table, compare_tables
from tablediff.core.worker import (
    ComparisonError,
    ComparisonFailedError,
    ComparisonRequest,
    ComparisonTimeoutError,
    ComparisonWorker,
    compare_auto,
    run_comparison,
)
from tablediff.config.manager import CompareOptions, WorkerConfig


def sample_request():
    old = Table(headers=["id", "name"], data=[
        {"id": "1", "name": "A"},
        {"id": "2", "name": "B"},
    ])
    new = Table(headers=["id", "name"], data=[
        {"id": "1", "name": "A"},
        {"id": "2", "name": "C"},
        {"id": "3", "name": "D"},
    ])
    return ComparisonRequest(old, new, CompareOptions(primary_key="id"))


def slow_comparison(pid_file: Path, request):
    """Records the worker pid, then runs far past any test timeout."""
    pid_file.write_text(str(os.getpid()))
    time.sleep(30)
    return run_comparison(request)


def failing_comparison(request):
    raise ValueError("missing column: id")


class TestComparisonWorker:
    """Test cases for ComparisonWorker."""

    def setup_method(self):
        self.request = sample_request()
        self.release = threading.Event()

    def teardown_method(self):
        self.release.set()

    def _blocking(self, request):
        self.release.wait(5)
        return run_comparison(request)

    def test_run_returns_same_report_as_inline_comparison(self):
        with ComparisonWorker(timeout_seconds=5, executor="thread") as worker:
            report = worker.run(self.request)

        expected = compare_tables(self.request.old, self.request.new, self.request.options)
        assert report == expected

    def test_timeout_raises_distinct_error(self):
        with patch("tablediff.core.worker.run_comparison", side_effect=self._blocking):
            with ComparisonWorker(timeout_seconds=0.05, executor="thread") as worker:
                with pytest.raises(ComparisonTimeoutError) as exc_info:
                    worker.run(self.request)

        assert exc_info.value.timeout_seconds == 0.05
        assert "timed out" in str(exc_info.value)

    def test_worker_exception_message_passed_through(self):
        with patch("tablediff.core.worker.run_comparison",
                   side_effect=RuntimeError("headers missing")):
            with ComparisonWorker(timeout_seconds=5, executor="thread") as worker:
                with pytest.raises(ComparisonFailedError) as exc_info:
                    worker.run(self.request)

        assert str(exc_info.value) == "headers missing"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_failure_is_not_retried(self):
        with patch("tablediff.core.worker.run_comparison",
                   side_effect=ValueError("bad input")) as mock_run:
            with ComparisonWorker(timeout_seconds=5, executor="thread") as worker:
                with pytest.raises(ComparisonFailedError):
                    worker.run(self.request)

        assert mock_run.call_count == 1

    def test_queued_comparison_can_be_cancelled(self):
        with patch("tablediff.core.worker.run_comparison", side_effect=self._blocking):
            worker = ComparisonWorker(timeout_seconds=5, executor="thread", max_workers=1)
            try:
                worker.submit(self.request)
                queued = worker.submit(self.request)

                assert queued.cancel()
                with pytest.raises(ComparisonError) as exc_info:
                    worker.result(queued)
                assert not isinstance(exc_info.value, ComparisonTimeoutError)
            finally:
                self.release.set()
                worker.close(wait=True)

    def test_timeout_errors_are_comparison_errors(self):
        assert issubclass(ComparisonTimeoutError, ComparisonError)
        assert issubclass(ComparisonFailedError, ComparisonError)

    def test_invalid_settings_rejected(self):
        with pytest.raises(ValueError):
            ComparisonWorker(executor="gpu")
        with pytest.raises(ValueError):
            ComparisonWorker(timeout_seconds=0)

    def test_from_config(self):
        worker = ComparisonWorker.from_config(WorkerConfig(timeout_seconds=12.5,
                                                           executor="process"))

        assert worker.timeout_seconds == 12.5
        assert worker.executor_kind == "process"


class TestProcessWorker:
    """Test cases for comparisons run in worker processes."""

    def setup_method(self):
        self.request = sample_request()

    def test_process_report_matches_inline_report(self):
        with ComparisonWorker(timeout_seconds=30, executor="process") as worker:
            report = worker.run(self.request)

        assert report == compare_tables(self.request.old, self.request.new,
                                        self.request.options)
        assert report.differences[1].changed_fields == ["name"]

    def test_process_failure_message_passed_through(self):
        with ComparisonWorker(timeout_seconds=30, executor="process",
                              task=failing_comparison) as worker:
            with pytest.raises(ComparisonFailedError) as exc_info:
                worker.run(self.request)

        assert str(exc_info.value) == "missing column: id"

    def _assert_worker_gone(self, pid_file: Path):
        if not pid_file.exists():
            return
        pid = int(pid_file.read_text())
        assert pid != os.getpid()
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)

    def test_timeout_stops_running_comparison(self, tmp_path):
        pid_file = tmp_path / "worker.pid"
        worker = ComparisonWorker(timeout_seconds=1, executor="process",
                                  task=partial(slow_comparison, pid_file))
        start = time.monotonic()
        try:
            with pytest.raises(ComparisonTimeoutError):
                worker.run(self.request)
        finally:
            worker.close(wait=True)

        assert time.monotonic() - start < 15
        self._assert_worker_gone(pid_file)

    def test_compare_auto_timeout_stops_worker(self, tmp_path):
        pid_file = tmp_path / "worker.pid"
        request = self.request
        config = WorkerConfig(timeout_seconds=1, offload_threshold=0, executor="process")

        def slow_worker(cfg):
            return ComparisonWorker(timeout_seconds=cfg.timeout_seconds,
                                    executor=cfg.executor,
                                    task=partial(slow_comparison, pid_file))

        start = time.monotonic()
        with patch.object(ComparisonWorker, "from_config", side_effect=slow_worker):
            with pytest.raises(ComparisonTimeoutError):
                compare_auto(request.old, request.new, request.options, config)

        assert time.monotonic() - start < 15
        self._assert_worker_gone(pid_file)


class TestCompareAuto:
    """Test cases for inline versus offloaded execution."""

    def test_small_tables_run_inline(self):
        request = sample_request()

        with patch("tablediff.core.worker.ComparisonWorker") as mock_worker:
            report = compare_auto(request.old, request.new, request.options,
                                  WorkerConfig(offload_threshold=1000))

        mock_worker.assert_not_called()
        assert report.stats.modified_rows == 1
        assert report.stats.added_rows == 1

    def test_large_tables_run_in_worker(self):
        request = sample_request()

        with patch.object(ComparisonWorker, "run", autospec=True,
                          side_effect=lambda self, req: run_comparison(req)) as mock_run:
            report = compare_auto(request.old, request.new, request.options,
                                  WorkerConfig(offload_threshold=2))

        mock_run.assert_called_once()
        assert report == run_comparison(request)

    def test_worker_timeout_propagates(self):
        request = sample_request()
        release = threading.Event()

        def blocking(req):
            release.wait(5)
            return run_comparison(req)

        try:
            with patch("tablediff.core.worker.run_comparison", side_effect=blocking):
                with pytest.raises(ComparisonTimeoutError):
                    compare_auto(request.old, request.new, request.options,
                                 WorkerConfig(timeout_seconds=0.05, offload_threshold=0,
                                              executor="thread"))
        finally:
            release.set()
