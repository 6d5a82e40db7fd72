"""User interface components."""

from .progress import ProgressMonitor, get_progress_monitor
from .rich_progress import RichProgressMonitor

__all__ = ["ProgressMonitor", "RichProgressMonitor", "get_progress_monitor"]
