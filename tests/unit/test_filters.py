"""
Unit tests for table name filters.
"""

import pytest

from schemadiff.filters import TableFilter, matches_pattern, sql_like_to_fnmatch


class TestMatchesPattern:
    """Test single pattern matching."""

    @pytest.mark.parametrize("name,pattern,expected", [
        ("users", "users", True),
        ("users", "user*", True),
        ("users", "use?s", True),
        ("Users", "users", False),
        ("tmp_orders", "tmp%", True),
        ("tmpXorders", "tmp_orders", True),
        ("audit_2024", "re:^audit_\\d{4}$", True),
        ("audit_log", "re:^audit_\\d{4}$", False),
    ])
    def test_patterns(self, name, pattern, expected):
        """Test glob, LIKE and regex patterns."""
        assert matches_pattern(name, pattern) is expected

    def test_sql_like_to_fnmatch(self):
        """Test wildcard translation."""
        assert sql_like_to_fnmatch("tmp_%") == "tmp?*"


class TestTableFilter:
    """Test include/exclude filtering."""

    @pytest.fixture
    def tables(self):
        return {"users", "orders", "tmp_import", "tmp_export", "audit_2024"}

    def test_empty_filter_keeps_everything(self, tables):
        """Test that no patterns selects every table."""
        table_filter = TableFilter()

        assert table_filter.is_empty is True
        assert table_filter.apply(tables) == tables

    def test_include(self, tables):
        """Test include patterns."""
        assert TableFilter(include=["tmp_*"]).apply(tables) == {"tmp_import", "tmp_export"}

    def test_exclude(self, tables):
        """Test exclude patterns."""
        assert TableFilter(exclude=["tmp%", "re:^audit"]).apply(tables) == {"users", "orders"}

    def test_exclude_wins_over_include(self, tables):
        """Test a table matched by both lists is skipped."""
        table_filter = TableFilter(include=["tmp_*"], exclude=["*_export"])

        assert table_filter.apply(tables) == {"tmp_import"}
        assert table_filter.is_empty is False
