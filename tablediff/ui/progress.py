"""
Progress monitoring and plain console output.
Single responsibility: provide user feedback while a comparison runs.
"""

import sys
import time
from typing import Optional
from contextlib import contextmanager

from ..core.diff_engine import DiffReport, DiffType, changed_cells


class ProgressMonitor:
    """
    Plain-text progress and report output.
    """

    def __init__(self, verbose: bool = True, stream=None):
        """
        Initialize progress monitor.

        Args:
            verbose: Whether to show progress lines
            stream: Output stream (stdout by default)
        """
        self.verbose = verbose
        self.stream = stream or sys.stdout
        self.current_task = None
        self.start_time = None

    def _print(self, text: str = ""):
        print(text, file=self.stream)

    def start_task(self, task_name: str):
        self.current_task = task_name
        self.start_time = time.time()
        if self.verbose:
            self._print(f"[START] {task_name}")

    def complete_task(self, message: Optional[str] = None):
        """
        Mark current task as complete.

        Args:
            message: Optional completion message
        """
        if self.verbose and self.current_task:
            elapsed = time.time() - self.start_time
            status = f"[DONE] {self.current_task} - Time: {self._format_time(elapsed)}"
            if message:
                status += f" - {message}"
            self._print(status)

        self.current_task = None
        self.start_time = None

    @contextmanager
    def task(self, task_name: str):
        """
        Context manager for a named step.

        Example:
            with progress.task("Comparing"):
                report = compare_tables(old, new, options)
        """
        self.start_task(task_name)
        try:
            yield self
        finally:
            self.complete_task()

    def error(self, message: str):
        print(f"[ERROR] {message}", file=sys.stderr)

    def info(self, message: str):
        if self.verbose:
            self._print(f"[INFO] {message}")

    def show_report(self, report: DiffReport, old_name: str = "old",
                    new_name: str = "new", preview_limit: int = 20):
        """
        Print summary statistics and the first changed records.

        Args:
            report: Comparison result
            old_name: Label of the old table
            new_name: Label of the new table
            preview_limit: Maximum changed records listed
        """
        stats = report.stats
        self._print("=" * 60)
        self._print(f"Comparison: {old_name} vs {new_name}")
        self._print("=" * 60)
        self._print(f"Records in {old_name}: {stats.old_file_records:,}")
        self._print(f"Records in {new_name}: {stats.new_file_records:,}")
        self._print(f"Columns compared: {len(report.headers)}")
        self._print(f"Total changes: {stats.total_rows:,}")
        self._print(f"  Modified: {stats.modified_rows:,}")
        self._print(f"  Added:    {stats.added_rows:,}")
        self._print(f"  Deleted:  {stats.deleted_rows:,}")
        self._print(f"Unchanged: {stats.unchanged_rows:,}")

        changes = [d for d in report.differences if d.type != DiffType.UNCHANGED]
        if changes:
            self._print("-" * 60)
        for diff in changes[:preview_limit]:
            line = f"{diff.type.value:<9} row {diff.row_index + 1} key={diff.identity_key}"
            if diff.type == DiffType.MODIFIED:
                details = ", ".join(f"{name}: {old!r} -> {new!r}"
                                    for name, old, new in changed_cells(diff))
                line += f" | {details}"
            self._print(line)
        if len(changes) > preview_limit:
            self._print(f"... and {len(changes) - preview_limit:,} more")
        self._print("=" * 60)

    def _format_time(self, seconds: float) -> str:
        """
        Format time duration.

        Args:
            seconds: Time in seconds

        Returns:
            Formatted time string
        """
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            return f"{seconds / 60:.1f}m"
        return f"{seconds / 3600:.1f}h"


def get_progress_monitor(use_rich: bool = True, verbose: bool = True):
    """
    Get the appropriate progress monitor.

    Args:
        use_rich: Use the Rich monitor instead of plain text
        verbose: Show progress lines

    Returns:
        Progress monitor instance
    """
    if use_rich:
        from .rich_progress import RichProgressMonitor
        return RichProgressMonitor(verbose=verbose)
    return ProgressMonitor(verbose=verbose)
