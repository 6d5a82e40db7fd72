"""
Unit tests for report view filters.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from tablediff.core.diff_engine import DiffType, Table, compare_tables
from tablediff.core.report_filter import (
    DiffFilter,
    filter_differences,
    matches_search,
    filtered_report,
    only_differences,
)
from tablediff.config.manager import CompareOptions


class TestFilterDifferences:
    """Test cases for filter_differences."""

    def setup_method(self):
        old = Table(headers=["id", "city"], data=[
            {"id": "1", "city": "Oslo"},
            {"id": "2", "city": "Bergen"},
            {"id": "4", "city": "Tromso"},
        ])
        new = Table(headers=["id", "city"], data=[
            {"id": "1", "city": "Oslo"},
            {"id": "2", "city": "Stavanger"},
            {"id": "3", "city": "Bodo"},
        ])
        self.report = compare_tables(old, new, CompareOptions(primary_key="id"))

    def _types(self, rows):
        return [diff.type for diff in rows]

    def test_default_filter_keeps_everything(self):
        rows = filter_differences(self.report, DiffFilter())

        assert rows == list(self.report.differences)
        assert not DiffFilter().is_active

    def test_only_differences_drops_unchanged(self):
        rows = only_differences(self.report)

        assert self._types(rows) == [DiffType.MODIFIED, DiffType.DELETED, DiffType.ADDED]

    def test_selected_types(self):
        diff_filter = DiffFilter(selected_types=["added", DiffType.DELETED])

        rows = filter_differences(self.report, diff_filter)

        assert self._types(rows) == [DiffType.DELETED, DiffType.ADDED]
        assert diff_filter.is_active

    def test_search_is_case_insensitive_over_displayed_values(self):
        rows = filter_differences(self.report, DiffFilter(search_term="STAV"))

        assert len(rows) == 1
        assert rows[0].identity_key == "2"

    def test_search_does_not_see_replaced_old_values(self):
        rows = filter_differences(self.report, DiffFilter(search_term="bergen"))

        assert rows == []

    def test_combined_filters(self):
        diff_filter = DiffFilter(show_only_differences=True, search_term="o",
                                 selected_types=[DiffType.MODIFIED, DiffType.ADDED])

        rows = filter_differences(self.report, diff_filter)

        assert self._types(rows) == [DiffType.ADDED]

    def test_report_is_not_modified(self):
        before = list(self.report.differences)

        filter_differences(self.report, DiffFilter(show_only_differences=True))

        assert list(self.report.differences) == before

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            DiffFilter(selected_types=["renamed"])

    def test_all_change_types_selected_keeps_unchanged(self):
        diff_filter = DiffFilter(selected_types=[DiffType.DELETED, DiffType.MODIFIED,
                                                 DiffType.ADDED])

        rows = filter_differences(self.report, diff_filter)

        assert DiffType.UNCHANGED in self._types(rows)
        assert rows == list(self.report.differences)
        assert not diff_filter.is_active

    def test_unchanged_is_not_a_selectable_type(self):
        with pytest.raises(ValueError, match="unchanged"):
            DiffFilter(selected_types=[DiffType.UNCHANGED])

    def test_hidden_columns_activate_filter(self):
        assert DiffFilter(hidden_columns=["city"]).is_active


class TestFilteredReport:
    """Test cases for filtered_report."""

    def setup_method(self):
        old = Table(headers=["id", "city", "zip"], data=[
            {"id": "1", "city": "Oslo", "zip": "0150"},
            {"id": "2", "city": "Bergen", "zip": "5003"},
        ])
        new = Table(headers=["id", "city", "zip"], data=[
            {"id": "1", "city": "Oslo", "zip": "0151"},
            {"id": "2", "city": "Bergen", "zip": "5003"},
        ])
        self.report = compare_tables(old, new, CompareOptions(primary_key="id"))

    def test_hidden_columns_removed_from_headers(self):
        view = filtered_report(self.report, DiffFilter(hidden_columns=["zip", "missing"]))

        assert view.headers == ["id", "city"]
        assert len(view.differences) == 2
        assert view.stats == self.report.stats
        assert self.report.headers == ["id", "city", "zip"]

    def test_search_still_sees_hidden_values(self):
        view = filtered_report(self.report, DiffFilter(search_term="0151",
                                                       hidden_columns=["zip"]))

        assert [d.identity_key for d in view.differences] == ["1"]


class TestMatchesSearch:
    """Test cases for matches_search."""

    def test_deleted_records_searched_on_old_values(self):
        old = Table(headers=["id"], data=[{"id": "gone"}])
        new = Table(headers=["id"], data=[])
        report = compare_tables(old, new, CompareOptions(primary_key="id"))

        assert matches_search(report.differences[0], "GON")
