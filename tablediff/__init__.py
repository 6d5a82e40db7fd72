"""
Table Diff - record-level comparison of CSV and spreadsheet tables.
"""

__version__ = "1.0.0"

from .core.diff_engine import (
    DiffEngine,
    DiffReport,
    DiffStats,
    DiffType,
    RecordDiff,
    Table,
    compare_tables,
)
from .core.report_filter import DiffFilter, filter_differences, filtered_report
from .core.worker import (
    ComparisonError,
    ComparisonFailedError,
    ComparisonRequest,
    ComparisonTimeoutError,
    ComparisonWorker,
    compare_auto,
)
from .config.manager import (
    ConfigManager,
    CompareOptions,
    ComparisonConfig,
    ExportConfig,
    WorkerConfig,
)
from .adapters.file_reader import TableFileReader, FileValidationError
from .adapters.report_exporter import ReportExporter
from .ui.progress import ProgressMonitor, get_progress_monitor
from .utils.logger import get_logger, configure_logging

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
    "ConfigManager",
    "CompareOptions",
    "ComparisonConfig",
    "ExportConfig",
    "WorkerConfig",
    "TableFileReader",
    "FileValidationError",
    "ReportExporter",
    "ProgressMonitor",
    "get_progress_monitor",
    "get_logger",
    "configure_logging",
]
