"""
Report filtering.
Single responsibility: select the records and columns of a diff report a reader wants to see.
"""

from dataclasses import dataclass, field
from typing import List, Iterable

from .diff_engine import DiffReport, DiffType, RecordDiff


CHANGE_TYPES = (DiffType.MODIFIED, DiffType.ADDED, DiffType.DELETED)


@dataclass
class DiffFilter:
    """
    View filter over a diff report.

    ``selected_types`` only takes change types. While all three are
    selected it filters nothing, so unchanged records stay visible unless
    ``show_only_differences`` is set. A narrower selection keeps only the
    selected change types.
    """

    show_only_differences: bool = False
    search_term: str = ""
    selected_types: List[DiffType] = field(default_factory=lambda: list(CHANGE_TYPES))
    hidden_columns: List[str] = field(default_factory=list)

    def __post_init__(self):
        types = [DiffType(t) for t in self.selected_types]
        for diff_type in types:
            if diff_type not in CHANGE_TYPES:
                raise ValueError(f"Not a change type: {diff_type.value}")
        self.selected_types = list(dict.fromkeys(types))
        self.hidden_columns = list(dict.fromkeys(self.hidden_columns))

    @property
    def narrows_types(self) -> bool:
        return set(self.selected_types) != set(CHANGE_TYPES)

    @property
    def is_active(self) -> bool:
        return (self.show_only_differences
                or bool(self.search_term)
                or self.narrows_types
                or bool(self.hidden_columns))


def matches_search(diff: RecordDiff, search_term: str) -> bool:
    """Case-insensitive substring match over the displayed values."""
    needle = search_term.lower()
    return any(needle in str(value).lower()
               for value in diff.display_data.values())


def filter_differences(report: DiffReport,
                       diff_filter: DiffFilter) -> List[RecordDiff]:
    """
    Apply a view filter to a report.

    Search looks at every value of the record, hidden columns included.

    Args:
        report: Report to filter (left untouched)
        diff_filter: Filter settings

    Returns:
        Matching records in report order
    """
    rows: Iterable[RecordDiff] = report.differences

    if diff_filter.show_only_differences:
        rows = [diff for diff in rows if diff.type in CHANGE_TYPES]

    if diff_filter.narrows_types:
        allowed = set(diff_filter.selected_types)
        rows = [diff for diff in rows if diff.type in allowed]

    if diff_filter.search_term:
        rows = [diff for diff in rows
                if matches_search(diff, diff_filter.search_term)]

    return list(rows)


def visible_headers(report: DiffReport, diff_filter: DiffFilter) -> List[str]:
    hidden = set(diff_filter.hidden_columns)
    return [header for header in report.headers if header not in hidden]


def filtered_report(report: DiffReport, diff_filter: DiffFilter) -> DiffReport:
    """
    Report view holding the filtered records and the visible headers.

    Stats are those of the full report.
    """
    return DiffReport(
        headers=visible_headers(report, diff_filter),
        differences=filter_differences(report, diff_filter),
        stats=report.stats
    )


def only_differences(report: DiffReport) -> List[RecordDiff]:
    return filter_differences(report, DiffFilter(show_only_differences=True))
