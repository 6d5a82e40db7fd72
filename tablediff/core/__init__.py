"""Comparison engine and its execution helpers."""

from .diff_engine import (
    DiffEngine,
    DiffReport,
    DiffStats,
    DiffType,
    RecordDiff,
    Table,
    compare_tables,
)
from .report_filter import DiffFilter, filter_differences, filtered_report
from .worker import (
    ComparisonError,
    ComparisonFailedError,
    ComparisonRequest,
    ComparisonTimeoutError,
    ComparisonWorker,
    compare_auto,
)

__all__ = [
    "DiffEngine",
    "DiffReport",
    "DiffStats",
    "DiffType",
    "RecordDiff",
    "Table",
    "compare_tables",
    "DiffFilter",
    "filter_differences",
    "filtered_report",
    "ComparisonError",
    "ComparisonFailedError",
    "ComparisonRequest",
    "ComparisonTimeoutError",
    "ComparisonWorker",
    "compare_auto",
]
