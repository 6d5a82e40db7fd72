"""Configuration management."""

from .manager import (
    ConfigManager,
    CompareOptions,
    ComparisonConfig,
    ExportConfig,
    WorkerConfig,
)

__all__ = [
    "ConfigManager",
    "CompareOptions",
    "ComparisonConfig",
    "ExportConfig",
    "WorkerConfig",
]
