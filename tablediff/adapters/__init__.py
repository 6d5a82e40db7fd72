"""File adapters: reading tables in, writing reports out."""

from .file_reader import TableFileReader, FileValidationError, validate_file
from .report_exporter import ReportExporter

__all__ = [
    "TableFileReader",
    "FileValidationError",
    "validate_file",
    "ReportExporter",
]
