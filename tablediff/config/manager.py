"""
Configuration management.
Single responsibility: load, validate, and manage comparison configuration.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field

from ..utils.logger import get_logger


logger = get_logger()


EXPORT_FORMATS = ("csv", "xlsx", "parquet", "pdf")
EXECUTORS = ("thread", "process")


@dataclass
class CompareOptions:
    """Options controlling how two tables are aligned and compared."""

    primary_key: Optional[str] = None
    ignore_case: bool = False
    ignore_whitespace: bool = False
    ignored_columns: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Treat an empty key as "no key" and dedupe ignored columns."""
        if self.primary_key == "":
            self.primary_key = None
        self.ignored_columns = list(dict.fromkeys(self.ignored_columns or []))

    @classmethod
    def interactive(cls, primary_key: Optional[str] = None,
                    ignored_columns: Optional[List[str]] = None) -> "CompareOptions":
        """
        Defaults suggested to a user picking options interactively.

        Args:
            primary_key: Optional identity column
            ignored_columns: Columns to leave out of the comparison

        Returns:
            Options with case and whitespace differences ignored
        """
        return cls(primary_key=primary_key,
                   ignore_case=True,
                   ignore_whitespace=True,
                   ignored_columns=ignored_columns or [])

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "CompareOptions":
        return cls(
            primary_key=cfg.get("primary_key"),
            ignore_case=bool(cfg.get("ignore_case", False)),
            ignore_whitespace=bool(cfg.get("ignore_whitespace", False)),
            ignored_columns=cfg.get("ignored_columns", []) or []
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_key": self.primary_key,
            "ignore_case": self.ignore_case,
            "ignore_whitespace": self.ignore_whitespace,
            "ignored_columns": list(self.ignored_columns)
        }


@dataclass
class WorkerConfig:
    """Configuration for offloaded comparisons."""

    timeout_seconds: float = 30.0
    offload_threshold: int = 1000
    executor: str = "process"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.offload_threshold < 0:
            raise ValueError("offload_threshold cannot be negative")
        if self.executor not in EXECUTORS:
            raise ValueError(f"Unsupported executor: {self.executor}")


@dataclass
class ExportConfig:
    """Configuration for exporting a diff report."""

    format: str = "xlsx"
    output_dir: str = "data/reports"
    include_only_differences: bool = False
    include_stats: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.format = self.format.lower()
        if self.format not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {self.format}")


@dataclass
class ComparisonConfig:
    """A named comparison between two files."""

    name: str
    old_path: str
    new_path: str
    options: CompareOptions = field(default_factory=CompareOptions)
    export: Optional[ExportConfig] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.name:
            raise ValueError("Comparison name is required")
        if not self.old_path:
            raise ValueError(f"Comparison '{self.name}' is missing 'old'")
        if not self.new_path:
            raise ValueError(f"Comparison '{self.name}' is missing 'new'")


class ConfigManager:
    """
    Manage application configuration.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize config manager.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = Path(config_path) if config_path else Path("comparisons.yaml")
        self.config: Dict[str, Any] = {}
        self.worker = WorkerConfig()
        self.comparisons: Dict[str, ComparisonConfig] = {}

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from file.

        Returns:
            Configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If config is invalid YAML
            ValueError: If an entry is invalid
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config not found: {self.config_path}")

        logger.info("config.loading", file=str(self.config_path))

        with open(self.config_path, encoding="utf-8") as f:
            self.config = yaml.safe_load(f) or {}

        if not isinstance(self.config, dict):
            raise ValueError(f"Config root must be a mapping: {self.config_path}")

        self._parse_worker()
        self._parse_comparisons()

        logger.info("config.loaded",
                   comparisons=len(self.comparisons),
                   timeout_seconds=self.worker.timeout_seconds)

        return self.config

    def _parse_worker(self):
        """Parse worker configuration."""
        cfg = self.config.get("worker") or {}
        try:
            self.worker = WorkerConfig(
                timeout_seconds=float(cfg.get("timeout_seconds", 30.0)),
                offload_threshold=int(cfg.get("offload_threshold", 1000)),
                executor=cfg.get("executor", "process")
            )
        except (TypeError, ValueError) as e:
            logger.error("config.worker.invalid", error=str(e))
            raise ValueError(f"Invalid worker configuration: {e}") from e

    def _parse_comparisons(self):
        """Parse comparison configurations."""
        self.comparisons = {}
        for cmp in self.config.get("comparisons") or []:
            try:
                export_cfg = cmp.get("export")
                comparison = ComparisonConfig(
                    name=cmp.get("name", ""),
                    old_path=cmp.get("old", ""),
                    new_path=cmp.get("new", ""),
                    options=CompareOptions.from_dict(cmp),
                    export=ExportConfig(**export_cfg) if export_cfg else None
                )
            except (TypeError, ValueError, AttributeError) as e:
                logger.error("config.comparison.invalid",
                           comparison=cmp,
                           error=str(e))
                raise ValueError(f"Invalid comparison entry {cmp!r}: {e}") from e

            if comparison.name in self.comparisons:
                raise ValueError(f"Duplicate comparison name: {comparison.name}")
            self.comparisons[comparison.name] = comparison

    def get_comparison(self, name: str) -> ComparisonConfig:
        """
        Get comparison configuration by name.

        Args:
            name: Comparison name

        Returns:
            Comparison configuration

        Raises:
            KeyError: If comparison not found
        """
        if name not in self.comparisons:
            raise KeyError(f"Comparison not found: {name}")
        return self.comparisons[name]

    def add_comparison(self, comparison: ComparisonConfig):
        """Register a comparison, replacing one with the same name."""
        self.comparisons[comparison.name] = comparison

    def save(self, path: Optional[Path] = None):
        """
        Save configuration to file.

        Args:
            path: Output path (uses original path if not specified)
        """
        output_path = Path(path) if path else self.config_path

        logger.info("config.saving", file=str(output_path))

        config_dict = {
            "worker": {
                "timeout_seconds": self.worker.timeout_seconds,
                "offload_threshold": self.worker.offload_threshold,
                "executor": self.worker.executor
            },
            "comparisons": []
        }

        for comparison in self.comparisons.values():
            entry = {
                "name": comparison.name,
                "old": comparison.old_path,
                "new": comparison.new_path,
            }
            entry.update(comparison.options.to_dict())
            if comparison.export:
                entry["export"] = {
                    "format": comparison.export.format,
                    "output_dir": comparison.export.output_dir,
                    "include_only_differences": comparison.export.include_only_differences,
                    "include_stats": comparison.export.include_stats
                }
            config_dict["comparisons"].append(entry)

        with open(output_path, 'w', encoding="utf-8") as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

        logger.info("config.saved", file=str(output_path))
