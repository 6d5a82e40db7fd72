"""
Diff report export.
Single responsibility: write a diff report to CSV, Parquet, Excel or PDF files.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any
from xml.sax.saxutils import escape
import duckdb
import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import (
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table as PdfTable,
    TableStyle,
)

from ..utils.logger import get_logger
from ..config.manager import ExportConfig
from ..core.diff_engine import DiffReport, DiffType, RecordDiff
from ..core.report_filter import only_differences


logger = get_logger()


STATUS_LABELS = {
    DiffType.UNCHANGED: "Unchanged",
    DiffType.MODIFIED: "Modified",
    DiffType.ADDED: "Added",
    DiffType.DELETED: "Deleted",
}

ROW_COLORS = {
    DiffType.ADDED: "#D4EDDA",
    DiffType.DELETED: "#F8D7DA",
    DiffType.MODIFIED: "#FFF3CD",
}

FILE_SUFFIXES = {"csv": ".csv", "xlsx": ".xlsx", "parquet": ".parquet", "pdf": ".pdf"}

PDF_ROW_LIMIT = 50
PDF_COLUMN_LIMIT = 5
PDF_CELL_WIDTH = 20
PDF_HEADER_COLOR = "#428BCA"


def qident(name: str) -> str:
    """Quote an identifier for DuckDB, escaping embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def qpath(path: Path) -> str:
    """Quote a file path for DuckDB COPY, normalizing separators."""
    path_str = str(path).replace("\\", "/").replace("'", "''")
    return f"'{path_str}'"


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


class ReportExporter:
    """
    Export a DiffReport to files.
    """

    def __init__(self, config: Optional[ExportConfig] = None):
        """
        Initialize exporter.

        Args:
            config: Export format, destination and content options
        """
        self.config = config or ExportConfig()

    def _rows(self, report: DiffReport) -> List[RecordDiff]:
        if self.config.include_only_differences:
            return only_differences(report)
        return list(report.differences)

    @staticmethod
    def meta_columns(headers: List[str]) -> List[str]:
        """Status and row column names that do not clash with data headers."""
        names = []
        for base in ("Status", "Row"):
            name = base
            while name in headers:
                name = f"_{name}"
            names.append(name)
        return names

    def to_frame(self, report: DiffReport) -> pd.DataFrame:
        """
        Flatten a report: status, 1-based row number, then aligned headers.

        Values come from the new record when present, else the old one.
        """
        status_col, row_col = self.meta_columns(report.headers)
        records = []
        for diff in self._rows(report):
            data = diff.display_data
            record = {status_col: STATUS_LABELS[diff.type], row_col: diff.row_index + 1}
            for header in report.headers:
                record[header] = _cell(data.get(header, ""))
            records.append(record)
        return pd.DataFrame(records, columns=[status_col, row_col] + list(report.headers))

    def default_path(self, old_name: str, new_name: str) -> Path:
        """``<old>_vs_<new>_<timestamp>.<ext>`` inside the output directory."""
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        stem = f"{Path(old_name).stem}_vs_{Path(new_name).stem}_{stamp}"
        return Path(self.config.output_dir) / f"{stem}{FILE_SUFFIXES[self.config.format]}"

    def export(self, report: DiffReport, output_path: Optional[Path] = None,
               old_name: str = "old", new_name: str = "new") -> Dict[str, Path]:
        """
        Export a report in the configured format.

        Args:
            report: Report to export
            output_path: Destination file (default_path() if omitted)
            old_name: Name of the old source, used in file names and summaries
            new_name: Name of the new source

        Returns:
            Dictionary of written file paths ("report", optionally "summary")
        """
        output_path = Path(output_path) if output_path else self.default_path(old_name, new_name)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info("exporter.starting",
                   format=self.config.format,
                   output=str(output_path),
                   only_differences=self.config.include_only_differences)

        frame = self.to_frame(report)
        outputs = {"report": output_path}

        if self.config.format == "xlsx":
            self._export_excel(frame, report, output_path, old_name, new_name)
        elif self.config.format == "pdf":
            self._export_pdf(frame, report, output_path, old_name, new_name)
        else:
            self._export_with_duckdb(frame, output_path, self.config.format)
            if self.config.include_stats:
                summary_path = output_path.with_name(f"{output_path.stem}_summary.txt")
                self._export_summary_report(summary_path, report, old_name, new_name)
                outputs["summary"] = summary_path

        logger.info("exporter.complete",
                   rows=len(frame),
                   files=[str(p) for p in outputs.values()])
        return outputs

    def _export_with_duckdb(self, frame: pd.DataFrame, output_path: Path, fmt: str):
        """
        Write the flattened report through DuckDB COPY.

        Columns are declared explicitly so an empty report still produces a
        file with the full header.
        """
        status_col, row_col = frame.columns[:2]
        columns = [f"{qident(status_col)} VARCHAR", f"{qident(row_col)} INTEGER"]
        columns += [f"{qident(name)} VARCHAR" for name in frame.columns[2:]]

        options = "FORMAT PARQUET" if fmt == "parquet" else "HEADER, DELIMITER ','"

        con = duckdb.connect(":memory:")
        try:
            con.execute(f"CREATE TABLE report_rows ({', '.join(columns)})")
            if len(frame):
                placeholders = ", ".join(["?"] * len(frame.columns))
                con.executemany(
                    f"INSERT INTO report_rows VALUES ({placeholders})",
                    [tuple(row) for row in frame.to_dict(orient="split")["data"]]
                )
            con.execute(f"COPY report_rows TO {qpath(output_path)} ({options})")
        finally:
            con.close()

    def _export_excel(self, frame: pd.DataFrame, report: DiffReport,
                      output_path: Path, old_name: str, new_name: str):
        """Workbook with an optional Summary sheet and a colored Differences sheet."""
        rows = self._rows(report)

        with pd.ExcelWriter(output_path, engine="xlsxwriter") as writer:
            if self.config.include_stats:
                summary = pd.DataFrame(
                    self._summary_rows(report, old_name, new_name),
                    columns=["Metric", "Value"]
                )
                summary.to_excel(writer, sheet_name="Summary", index=False)

            frame.to_excel(writer, sheet_name="Differences", index=False)

            workbook = writer.book
            ws = writer.sheets["Differences"]
            ws.freeze_panes(1, 2)
            ws.autofilter(0, 0, max(len(frame), 1), max(len(frame.columns) - 1, 0))

            row_formats = {diff_type: workbook.add_format({"bg_color": color})
                           for diff_type, color in ROW_COLORS.items()}
            changed_format = workbook.add_format({"bg_color": ROW_COLORS[DiffType.MODIFIED],
                                                  "bold": True})
            header_offset = 2

            for position, diff in enumerate(rows, start=1):
                row_format = row_formats.get(diff.type)
                if row_format is None:
                    continue
                ws.set_row(position, None, row_format)
                for name in diff.changed_fields:
                    if name not in report.headers:
                        continue
                    col = header_offset + report.headers.index(name)
                    ws.write_string(position, col, _cell(diff.display_data.get(name, "")),
                                    changed_format)

    def _export_pdf(self, frame: pd.DataFrame, report: DiffReport,
                    output_path: Path, old_name: str, new_name: str):
        """
        Paginated PDF: title, optional stats table, then a preview table.

        The preview lists the first PDF_ROW_LIMIT records over the first
        PDF_COLUMN_LIMIT headers, each value cut to PDF_CELL_WIDTH characters.
        """
        styles = getSampleStyleSheet()
        header_fill = colors.HexColor(PDF_HEADER_COLOR)
        grid_style = [
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("BACKGROUND", (0, 0), (-1, 0), header_fill),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
        ]

        story = [
            Paragraph("Table Diff Report", styles["Title"]),
            Paragraph(escape(f"{old_name} vs {new_name}"), styles["Heading3"]),
            Paragraph(f"Generated: {datetime.now().isoformat(timespec='seconds')}",
                      styles["Normal"]),
            Spacer(1, 12),
        ]

        if self.config.include_stats:
            stats_rows = [["Metric", "Value"]] + [
                [metric, str(value)]
                for metric, value in self._summary_rows(report, old_name, new_name)[2:-1]
            ]
            stats_table = PdfTable(stats_rows, hAlign="LEFT")
            stats_table.setStyle(TableStyle(grid_style))
            story += [Paragraph("Summary", styles["Heading2"]), stats_table, Spacer(1, 12)]

        rows = self._rows(report)
        if rows:
            shown = frame.iloc[:PDF_ROW_LIMIT, :2 + PDF_COLUMN_LIMIT]
            table_rows = [list(shown.columns)] + [
                [str(value)[:PDF_CELL_WIDTH] for value in record]
                for record in shown.itertuples(index=False, name=None)
            ]
            row_style = list(grid_style)
            for position, diff in enumerate(rows[:PDF_ROW_LIMIT], start=1):
                color = ROW_COLORS.get(diff.type)
                if color:
                    row_style.append(("BACKGROUND", (0, position), (-1, position),
                                      colors.HexColor(color)))
            diff_table = PdfTable(table_rows, repeatRows=1, hAlign="LEFT")
            diff_table.setStyle(TableStyle(row_style))
            story += [Paragraph("Differences", styles["Heading2"]), diff_table]

            if len(rows) > PDF_ROW_LIMIT:
                story += [
                    Spacer(1, 6),
                    Paragraph(f"Showing first {PDF_ROW_LIMIT} of {len(rows):,} records",
                              styles["Italic"]),
                ]

        SimpleDocTemplate(str(output_path), pagesize=landscape(A4),
                          title="Table Diff Report").build(story)

    @staticmethod
    def _summary_rows(report: DiffReport, old_name: str, new_name: str) -> List[List[Any]]:
        stats = report.stats
        return [
            ["Old file", old_name],
            ["New file", new_name],
            ["Old file records", stats.old_file_records],
            ["New file records", stats.new_file_records],
            ["Total changes", stats.total_rows],
            ["Modified", stats.modified_rows],
            ["Added", stats.added_rows],
            ["Deleted", stats.deleted_rows],
            ["Unchanged", stats.unchanged_rows],
            ["Generated", datetime.now().isoformat(timespec="seconds")],
        ]

    def _export_summary_report(self, summary_path: Path, report: DiffReport,
                               old_name: str, new_name: str):
        """Export a human-readable summary report."""
        stats = report.stats
        with open(summary_path, "w", encoding="utf-8") as f:
            f.write("=" * 70 + "\n")
            f.write("TABLE DIFF SUMMARY REPORT\n")
            f.write("=" * 70 + "\n\n")

            f.write(f"Old file: {old_name} ({stats.old_file_records:,} records)\n")
            f.write(f"New file: {new_name} ({stats.new_file_records:,} records)\n")
            f.write(f"Columns compared: {len(report.headers)}\n\n")

            f.write("-" * 70 + "\n")
            f.write("STATISTICS\n")
            f.write("-" * 70 + "\n\n")

            f.write(f"Total changes: {stats.total_rows:,}\n")
            f.write(f"  Modified:    {stats.modified_rows:,}\n")
            f.write(f"  Added:       {stats.added_rows:,}\n")
            f.write(f"  Deleted:     {stats.deleted_rows:,}\n")
            f.write(f"Unchanged:     {stats.unchanged_rows:,}\n\n")

            changed_columns: Dict[str, int] = {}
            for diff in report.differences:
                for name in diff.changed_fields:
                    if name in report.headers:
                        changed_columns[name] = changed_columns.get(name, 0) + 1

            if changed_columns:
                f.write("-" * 70 + "\n")
                f.write("CHANGES BY COLUMN\n")
                f.write("-" * 70 + "\n\n")
                for name, count in sorted(changed_columns.items(),
                                          key=lambda item: (-item[1], item[0])):
                    f.write(f"{name}: {count:,}\n")

        logger.info("exporter.summary_written", file=str(summary_path))
