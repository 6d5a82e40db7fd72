#!/usr/bin/env python3
"""
Table Diff - Main Entry Point
Compare two CSV or spreadsheet files record by record.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional
import traceback

from tablediff import (
    ConfigManager,
    CompareOptions,
    ComparisonConfig,
    ExportConfig,
    WorkerConfig,
    TableFileReader,
    ReportExporter,
    compare_auto,
    configure_logging,
    get_logger,
    get_progress_monitor,
    DiffFilter,
    filtered_report,
)
from tablediff.config.manager import EXPORT_FORMATS
from tablediff.core.report_filter import CHANGE_TYPES


logger = get_logger()


class TableDiffRunner:
    """
    Runs one comparison end to end: read, compare, show, export.
    """

    def __init__(self, comparison: ComparisonConfig,
                 worker: Optional[WorkerConfig] = None,
                 use_rich: bool = True,
                 verbose: bool = False,
                 export_path: Optional[Path] = None,
                 diff_filter: Optional[DiffFilter] = None):
        """
        Initialize runner.

        Args:
            comparison: Files and options to compare
            worker: Offload threshold and timeout
            use_rich: Use Rich for console output
            verbose: Show progress lines
            export_path: Explicit report destination
            diff_filter: Records and columns to show and export
        """
        self.comparison = comparison
        self.worker = worker or WorkerConfig()
        self.progress = get_progress_monitor(use_rich, verbose=verbose)
        self.reader = TableFileReader()
        self.export_path = export_path
        self.diff_filter = diff_filter or DiffFilter()

    def run(self) -> bool:
        """
        Run the comparison.

        Returns:
            True if successful, False otherwise
        """
        cmp = self.comparison
        try:
            logger.info("cli.starting",
                       comparison=cmp.name,
                       old=cmp.old_path,
                       new=cmp.new_path)

            with self.progress.task("Reading files"):
                old = self.reader.read(cmp.old_path)
                new = self.reader.read(cmp.new_path)

            with self.progress.task("Comparing"):
                report = compare_auto(old, new, cmp.options, self.worker)

            view = report
            if self.diff_filter.is_active:
                view = filtered_report(report, self.diff_filter)

            self.progress.show_report(view, old.filename, new.filename)

            if cmp.export:
                outputs = ReportExporter(cmp.export).export(
                    view, self.export_path, old.filename, new.filename
                )
                for path in outputs.values():
                    self.progress.info(f"Written: {path}")

            logger.info("cli.completed", differences=report.stats.total_rows)
            return True

        except Exception as e:
            logger.error("cli.failed",
                        error=str(e),
                        traceback=traceback.format_exc())
            self.progress.error(f"Comparison failed: {e}")
            return False


def create_sample_config(output_path: Path):
    """
    Create a sample configuration file.

    Args:
        output_path: Where to save the config
    """
    sample_config = """# Table Diff Configuration
# ========================

worker:
  timeout_seconds: 30      # give up on a comparison after this long
  offload_threshold: 1000  # records above which the comparison runs in a worker
  executor: process        # process (stopped on timeout) or thread

comparisons:
  - name: customers
    old: "data/raw/customers_old.csv"
    new: "data/raw/customers_new.xlsx"
    primary_key: "id"      # omit to match records by position
    ignore_case: false
    ignore_whitespace: false
    ignored_columns: ["updated_at"]
    export:
      format: xlsx         # csv, xlsx, parquet or pdf
      output_dir: "data/reports"
      include_only_differences: false
      include_stats: true
"""

    output_path.write_text(sample_config, encoding="utf-8")
    print(f"Sample configuration created: {output_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Table Diff - compare two CSV or spreadsheet files"
    )

    parser.add_argument("old", nargs="?", help="Old (baseline) file")
    parser.add_argument("new", nargs="?", help="New file")

    parser.add_argument("--key", "-k", help="Column identifying a record")
    parser.add_argument("--ignore-case", action="store_true",
                        help="Treat values differing only in case as equal")
    parser.add_argument("--ignore-whitespace", action="store_true",
                        help="Ignore leading and trailing whitespace")
    parser.add_argument("--ignore-column", action="append", default=[],
                        metavar="COLUMN", help="Leave a column out (repeatable)")
    parser.add_argument("--interactive-defaults", action="store_true",
                        help="Ignore case and whitespace, as suggested interactively")

    parser.add_argument("--export", "-o", metavar="PATH",
                        help="Write the report to PATH")
    parser.add_argument("--format", choices=EXPORT_FORMATS,
                        help="Export format (default: from PATH suffix, else xlsx)")
    parser.add_argument("--only-differences", action="store_true",
                        help="Export changed records only")
    parser.add_argument("--no-stats", action="store_true",
                        help="Do not export summary statistics")

    parser.add_argument("--search", default="", metavar="TEXT",
                        help="Show and export records containing TEXT")
    parser.add_argument("--type", dest="types", action="append",
                        choices=[t.value for t in CHANGE_TYPES],
                        help="Change type to show and export (repeatable)")
    parser.add_argument("--hide-column", action="append", default=[],
                        metavar="COLUMN", help="Leave a column out of the output (repeatable)")

    parser.add_argument("--timeout", type=float, help="Comparison timeout in seconds")
    parser.add_argument("--config", "-c", help="YAML configuration file")
    parser.add_argument("--comparison", help="Comparison name from the config file")

    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose output")
    parser.add_argument("--no-rich", action="store_true",
                        help="Plain text output")
    parser.add_argument("--log-file", help="Append JSON log entries to this file")
    parser.add_argument("--create-sample", action="store_true",
                        help="Create sample configuration file")
    parser.add_argument("--version", action="version", version="Table Diff v1.0.0")
    return parser


def comparison_from_args(args) -> ComparisonConfig:
    """Build a comparison from command line flags."""
    if args.interactive_defaults:
        options = CompareOptions.interactive(args.key, args.ignore_column)
    else:
        options = CompareOptions(
            primary_key=args.key,
            ignore_case=args.ignore_case,
            ignore_whitespace=args.ignore_whitespace,
            ignored_columns=args.ignore_column
        )

    export = None
    if args.export or args.format:
        fmt = args.format
        if not fmt and args.export:
            fmt = Path(args.export).suffix.lstrip(".").lower() or "xlsx"
        export = ExportConfig(
            format=fmt,
            include_only_differences=args.only_differences,
            include_stats=not args.no_stats
        )

    return ComparisonConfig(
        name=f"{Path(args.old).stem}_vs_{Path(args.new).stem}",
        old_path=args.old,
        new_path=args.new,
        options=options,
        export=export
    )


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.create_sample:
        create_sample_config(Path("comparisons_sample.yaml"))
        return 0

    configure_logging("DEBUG" if args.verbose else "WARN", args.log_file)

    worker = WorkerConfig()
    if args.config:
        manager = ConfigManager(Path(args.config))
        try:
            manager.load()
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        if args.comparison:
            try:
                comparison = manager.get_comparison(args.comparison)
            except KeyError as e:
                print(f"Error: {e.args[0]}", file=sys.stderr)
                return 1
        elif len(manager.comparisons) == 1:
            comparison = next(iter(manager.comparisons.values()))
        else:
            print("Error: use --comparison to pick one of: "
                  + ", ".join(manager.comparisons), file=sys.stderr)
            return 1
        worker = manager.worker
    else:
        if not args.old or not args.new:
            parser.error("OLD and NEW files are required without --config")
        try:
            comparison = comparison_from_args(args)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    if args.timeout is not None:
        try:
            worker = WorkerConfig(timeout_seconds=args.timeout,
                                  offload_threshold=worker.offload_threshold,
                                  executor=worker.executor)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    diff_filter = DiffFilter(
        search_term=args.search,
        selected_types=args.types or list(CHANGE_TYPES),
        hidden_columns=args.hide_column
    )

    runner = TableDiffRunner(
        comparison,
        worker=worker,
        use_rich=not args.no_rich,
        verbose=args.verbose,
        export_path=Path(args.export) if args.export else None,
        diff_filter=diff_filter
    )
    return 0 if runner.run() else 1


if __name__ == "__main__":
    sys.exit(main())
