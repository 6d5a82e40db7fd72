"""
Core record comparison logic.
Single responsibility: align two tables, classify every record and summarize.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Any, Optional, NamedTuple, Tuple
import pandas as pd

from ..utils.logger import get_logger
from ..config.manager import CompareOptions


logger = get_logger()


Record = Dict[str, Any]


class DiffType(str, Enum):
    """Classification of one record in a diff report."""

    UNCHANGED = "unchanged"
    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"


@dataclass
class Table:
    """
    Parsed tabular input: ordered headers plus ordered records.

    The engine only reads tables; callers own them.
    """

    headers: List[str]
    data: List[Record]
    row_count: Optional[int] = None
    filename: Optional[str] = None

    def __post_init__(self):
        if self.row_count is None:
            self.row_count = len(self.data)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame,
                       filename: Optional[str] = None) -> "Table":
        """
        Build a table from a DataFrame, turning nulls into empty strings.

        Args:
            df: Source frame, one record per row
            filename: Optional source name kept for reporting

        Returns:
            Table with stringified column names
        """
        df = df.copy()
        df.columns = [str(col) for col in df.columns]
        df = df.astype(object).where(pd.notna(df), "")
        return cls(
            headers=list(df.columns),
            data=df.to_dict(orient="records"),
            filename=filename
        )


@dataclass(frozen=True)
class RecordDiff:
    """One classified record of the report."""

    row_index: int
    type: DiffType
    identity_key: str
    old_data: Optional[Record] = None
    new_data: Optional[Record] = None
    changed_fields: List[str] = field(default_factory=list)

    @property
    def display_data(self) -> Record:
        """Values shown for the record: new data when present, else old."""
        return self.new_data if self.new_data is not None else (self.old_data or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_index": self.row_index,
            "type": self.type.value,
            "identity_key": self.identity_key,
            "old_data": self.old_data,
            "new_data": self.new_data,
            "changed_fields": list(self.changed_fields),
        }


@dataclass(frozen=True)
class DiffStats:
    """Aggregate counts derived from a diff list."""

    total_rows: int = 0
    modified_rows: int = 0
    added_rows: int = 0
    deleted_rows: int = 0
    unchanged_rows: int = 0
    old_file_records: int = 0
    new_file_records: int = 0
    total_records: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_rows": self.total_rows,
            "modified_rows": self.modified_rows,
            "added_rows": self.added_rows,
            "deleted_rows": self.deleted_rows,
            "unchanged_rows": self.unchanged_rows,
            "old_file_records": self.old_file_records,
            "new_file_records": self.new_file_records,
            "total_records": self.total_records,
        }


@dataclass(frozen=True)
class DiffReport:
    """Engine output handed to rendering and export code."""

    headers: List[str]
    differences: List[RecordDiff]
    stats: DiffStats

    @property
    def has_differences(self) -> bool:
        return self.stats.total_rows > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": list(self.headers),
            "differences": [diff.to_dict() for diff in self.differences],
            "stats": self.stats.to_dict(),
        }


class IndexEntry(NamedTuple):
    """Position of a record in its table plus both views of its values."""

    position: int
    normalized: Dict[str, str]
    original: Record


class DiffEngine:
    """
    Compare two tables record by record.
    """

    def __init__(self, options: Optional[CompareOptions] = None):
        """
        Initialize engine.

        Args:
            options: Comparison options (defaults: exact, positional identity)
        """
        self.options = options or CompareOptions()

    def compare(self, old: Table, new: Table) -> DiffReport:
        """
        Compare two tables.

        Args:
            old: Baseline table
            new: Table compared against the baseline

        Returns:
            Diff report with aligned headers, ordered diffs and stats
        """
        logger.debug("diff_engine.compare.start",
                    old_records=old.row_count,
                    new_records=new.row_count,
                    primary_key=self.options.primary_key)

        headers = self.align_columns(old.headers, new.headers)
        old_index = self.build_index(old.data, headers)
        new_index = self.build_index(new.data, headers)

        differences = self.reconcile(old_index, new_index, headers)
        stats = self.calculate_stats(differences, old.row_count, new.row_count)

        logger.debug("diff_engine.compare.complete",
                    headers=len(headers),
                    modified=stats.modified_rows,
                    added=stats.added_rows,
                    deleted=stats.deleted_rows)

        return DiffReport(headers=headers, differences=differences, stats=stats)

    def align_columns(self, old_headers: List[str],
                      new_headers: List[str]) -> List[str]:
        """
        Union of both header lists minus ignored columns.

        Old headers come first in their order, then new-only headers.
        """
        ignored = set(self.options.ignored_columns)
        union = dict.fromkeys(list(old_headers) + list(new_headers))
        return [header for header in union if header not in ignored]

    def normalize_value(self, value: Any) -> str:
        """
        Comparison form of a cell value.

        Missing values become the empty string, everything else is compared
        as text. Whitespace trimming only touches the ends of the value.
        """
        text = "" if value is None else str(value)
        if self.options.ignore_whitespace:
            text = text.strip()
        if self.options.ignore_case:
            text = text.lower()
        return text

    def normalize_record(self, record: Record,
                         headers: List[str]) -> Dict[str, str]:
        return {header: self.normalize_value(record.get(header))
                for header in headers}

    def identity_key(self, normalized: Dict[str, str], position: int) -> str:
        """
        Key used to match a record across tables.

        Falls back to the record position when no primary key is configured
        or the record has no value for it.
        """
        primary_key = self.options.primary_key
        if primary_key:
            value = normalized.get(primary_key, "")
            if value:
                return value
        return str(position)

    def build_index(self, data: List[Record],
                    headers: List[str]) -> Dict[str, IndexEntry]:
        """
        Index records by identity key.

        A later record with the same key replaces the earlier one.

        Args:
            data: Records in table order
            headers: Aligned headers

        Returns:
            Mapping of identity key to index entry, in first-seen key order
        """
        index: Dict[str, IndexEntry] = {}
        duplicates: List[str] = []

        for position, record in enumerate(data):
            normalized = self.normalize_record(record, headers)
            key = self.identity_key(normalized, position)
            if key in index:
                duplicates.append(key)
            index[key] = IndexEntry(position, normalized, record)

        if duplicates:
            logger.warning("diff_engine.index.duplicate_keys",
                          primary_key=self.options.primary_key,
                          duplicates=len(duplicates),
                          sample=duplicates[:5])

        return index

    @staticmethod
    def find_changed_fields(old_values: Dict[str, str],
                            new_values: Dict[str, str],
                            headers: List[str]) -> List[str]:
        return [header for header in headers
                if old_values.get(header, "") != new_values.get(header, "")]

    @staticmethod
    def original_data(record: Record, headers: List[str]) -> Record:
        """Pre-normalization values for every aligned header."""
        return {header: record.get(header, "") for header in headers}

    def reconcile(self, old_index: Dict[str, IndexEntry],
                  new_index: Dict[str, IndexEntry],
                  headers: List[str]) -> List[RecordDiff]:
        """
        Classify every identity key present in either index.

        Old keys are visited first, then keys only found in the new index.
        The result is sorted by row index; the sort is stable so ties keep
        that visiting order.
        """
        differences: List[RecordDiff] = []

        for key, old_entry in old_index.items():
            new_entry = new_index.get(key)
            old_data = self.original_data(old_entry.original, headers)

            if new_entry is None:
                differences.append(RecordDiff(
                    row_index=old_entry.position,
                    type=DiffType.DELETED,
                    identity_key=key,
                    old_data=old_data
                ))
                continue

            changed = self.find_changed_fields(
                old_entry.normalized, new_entry.normalized, headers
            )
            differences.append(RecordDiff(
                row_index=old_entry.position,
                type=DiffType.MODIFIED if changed else DiffType.UNCHANGED,
                identity_key=key,
                old_data=old_data,
                new_data=self.original_data(new_entry.original, headers),
                changed_fields=changed
            ))

        for key, new_entry in new_index.items():
            if key in old_index:
                continue
            differences.append(RecordDiff(
                row_index=new_entry.position,
                type=DiffType.ADDED,
                identity_key=key,
                new_data=self.original_data(new_entry.original, headers)
            ))

        return sorted(differences, key=lambda diff: diff.row_index)

    @staticmethod
    def calculate_stats(differences: List[RecordDiff],
                        old_records: int = 0,
                        new_records: int = 0) -> DiffStats:
        """
        Count records by type.

        ``total_rows`` only counts modified, added and deleted records.
        """
        counts = {diff_type: 0 for diff_type in DiffType}
        for diff in differences:
            counts[diff.type] += 1

        modified = counts[DiffType.MODIFIED]
        added = counts[DiffType.ADDED]
        deleted = counts[DiffType.DELETED]

        return DiffStats(
            total_rows=modified + added + deleted,
            modified_rows=modified,
            added_rows=added,
            deleted_rows=deleted,
            unchanged_rows=counts[DiffType.UNCHANGED],
            old_file_records=old_records,
            new_file_records=new_records,
            total_records=len(differences)
        )


def compare_tables(old: Table, new: Table,
                   options: Optional[CompareOptions] = None) -> DiffReport:
    """
    Compare two parsed tables.

    Args:
        old: Baseline table
        new: Table compared against the baseline
        options: Comparison options

    Returns:
        Diff report
    """
    return DiffEngine(options).compare(old, new)


def changed_cells(diff: RecordDiff) -> List[Tuple[str, Any, Any]]:
    """(field, old value, new value) for each changed field of a record."""
    old_data = diff.old_data or {}
    new_data = diff.new_data or {}
    return [(name, old_data.get(name, ""), new_data.get(name, ""))
            for name in diff.changed_fields]
