"""
Structured logging utility.
Single responsibility: provide consistent event logging across the diff tool.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
import json


LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARN": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class StructuredLogger:
    """
    Structured logger emitting dotted event names with key=value context.
    """

    def __init__(self, name: str = "table-diff",
                 log_file: Optional[Path] = None,
                 level: str = "INFO"):
        """
        Initialize logger.

        Args:
            name: Logger name
            log_file: Optional JSON-lines file that receives every entry
            level: Minimum level written to the console
        """
        self.name = name
        self.log_file = Path(log_file) if log_file else None
        self.level = self._resolve_level(level)

    @staticmethod
    def _resolve_level(level: str) -> int:
        level = level.upper()
        if level == "WARNING":
            level = "WARN"
        if level not in LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        return LEVELS[level]

    def set_level(self, level: str):
        """Change the minimum console level."""
        self.level = self._resolve_level(level)

    def _format_message(self, level: str, event: str,
                       **kwargs) -> Dict[str, Any]:
        """
        Build a log entry.

        Args:
            level: Log level (INFO, DEBUG, ERROR, etc.)
            event: Dotted event name, e.g. ``diff_engine.compare.start``
            **kwargs: Context fields

        Returns:
            Log entry dictionary
        """
        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "logger": self.name,
            "message": event
        }

        if kwargs:
            entry["context"] = kwargs

        return entry

    def _output(self, entry: Dict[str, Any]):
        """
        Write entry to stderr (human readable) and the JSON-lines file.

        Args:
            entry: Log entry dictionary
        """
        if LEVELS[entry["level"]] >= self.level:
            timestamp = entry["timestamp"].split("T")[1][:8]
            print(f"[{timestamp}] {entry['level']:5} | {entry['message']}",
                  file=sys.stderr)
            for key, value in entry.get("context", {}).items():
                print(f"  {key}={value}", file=sys.stderr)

        if self.log_file:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, default=str) + "\n")

    def _log(self, level: str, event: str, **kwargs):
        self._output(self._format_message(level, event, **kwargs))

    def debug(self, event: str, **kwargs):
        """Log debug event."""
        self._log("DEBUG", event, **kwargs)

    def info(self, event: str, **kwargs):
        """Log info event."""
        self._log("INFO", event, **kwargs)

    def warning(self, event: str, **kwargs):
        """Log warning event."""
        self._log("WARN", event, **kwargs)

    def error(self, event: str, **kwargs):
        """Log error event."""
        self._log("ERROR", event, **kwargs)

    def critical(self, event: str, **kwargs):
        """Log critical event."""
        self._log("CRITICAL", event, **kwargs)


# Global logger instance
_logger: Optional[StructuredLogger] = None


def get_logger(name: str = "table-diff") -> StructuredLogger:
    """
    Get or create the process-wide logger.

    Args:
        name: Logger name (used only on first creation)

    Returns:
        Logger instance
    """
    global _logger
    if _logger is None:
        _logger = StructuredLogger(name)
    return _logger


def configure_logging(level: str = "INFO",
                      log_file: Optional[Path] = None) -> StructuredLogger:
    """
    Reconfigure the process-wide logger in place.

    Modules hold a reference obtained at import time, so the existing
    instance is updated instead of replaced.

    Args:
        level: Minimum console level
        log_file: Optional JSON-lines output file

    Returns:
        The configured logger
    """
    logger = get_logger()
    logger.set_level(level)
    logger.log_file = Path(log_file) if log_file else None
    return logger
