"""
Rich console output.
Single responsibility: present comparison progress and results with Rich.
"""

from typing import Optional
from contextlib import contextmanager
import time

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text
from rich import box

from ..core.diff_engine import DiffReport, DiffType, changed_cells


TYPE_STYLES = {
    DiffType.MODIFIED: "yellow",
    DiffType.ADDED: "green",
    DiffType.DELETED: "red",
    DiffType.UNCHANGED: "dim",
}


class RichProgressMonitor:
    """
    Progress and report output using Rich.
    """

    def __init__(self, verbose: bool = True, console: Optional[Console] = None):
        """
        Initialize Rich progress monitor.

        Args:
            verbose: Whether to show task status lines
            console: Console to print to (a new stdout console by default)
        """
        self.verbose = verbose
        self.console = console or Console()

    @contextmanager
    def task(self, task_name: str):
        """Show a spinner while a step runs, then a completion line."""
        start = time.time()
        with self.console.status(f"[bold blue]{task_name}"):
            yield self
        if self.verbose:
            self.console.print(f"✓ {task_name} ({time.time() - start:.1f}s)", style="green")

    def info(self, message: str):
        if self.verbose:
            self.console.print(message, style="cyan")

    def error(self, message: str):
        """
        Display error message.

        Args:
            message: Error message
        """
        self.console.print(Panel(Text(f"✗ {message}", style="bold red"),
                                 title="Error", border_style="red", expand=False))

    def show_report(self, report: DiffReport, old_name: str = "old",
                    new_name: str = "new", preview_limit: int = 20):
        """
        Display statistics and a preview of changed records.

        Args:
            report: Comparison result
            old_name: Label of the old table
            new_name: Label of the new table
            preview_limit: Maximum changed records listed
        """
        stats = report.stats

        summary = Table(title=Text(f"{old_name} vs {new_name}"), box=box.ROUNDED)
        summary.add_column("Metric", style="cyan", no_wrap=True)
        summary.add_column("Value", style="magenta", justify="right")

        for metric, value in [
            (f"Records in {old_name}", stats.old_file_records),
            (f"Records in {new_name}", stats.new_file_records),
            ("Columns compared", len(report.headers)),
            ("Total changes", stats.total_rows),
            ("Modified", stats.modified_rows),
            ("Added", stats.added_rows),
            ("Deleted", stats.deleted_rows),
            ("Unchanged", stats.unchanged_rows),
        ]:
            summary.add_row(Text(metric), f"{value:,}")

        self.console.print()
        self.console.print(summary)

        changes = [d for d in report.differences if d.type != DiffType.UNCHANGED]
        if not changes:
            self.console.print("✓ No differences found", style="green")
            return

        detail = Table(title="Changed records", box=box.SIMPLE)
        detail.add_column("Status")
        detail.add_column("Row", justify="right")
        detail.add_column("Key", style="cyan")
        detail.add_column("Changes")

        for diff in changes[:preview_limit]:
            if diff.type == DiffType.MODIFIED:
                details = "; ".join(f"{name}: {old} → {new}"
                                    for name, old, new in changed_cells(diff))
            else:
                details = "-"
            detail.add_row(
                Text(diff.type.value, style=TYPE_STYLES[diff.type]),
                str(diff.row_index + 1),
                Text(diff.identity_key),
                Text(details)
            )

        self.console.print(detail)
        if len(changes) > preview_limit:
            self.console.print(f"... and {len(changes) - preview_limit:,} more", style="dim")
