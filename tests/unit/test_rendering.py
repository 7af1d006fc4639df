"""
Unit tests for report rendering.
"""

import csv
import io
import json

import pytest

from schemadiff.reconciliation.reconciler import Reconciler
from schemadiff.reconciliation.report import ReportBuilder
from schemadiff.rendering import (
    FORMATS,
    render,
    render_csv,
    render_html,
    render_json,
    render_text,
    report_columns,
    report_to_records,
)


@pytest.fixture
def build_report(snapshot_factory, old_tables, new_tables):
    """Build the users/orders/logs report with the given flags."""
    def build(include_row_counts=False, include_datatypes=True):
        old_counts = {"users": 2, "orders": 5} if include_row_counts else None
        new_counts = {"users": 2, "orders": 4, "logs": 0} if include_row_counts else None
        old = snapshot_factory("shop", old_tables, old_counts)
        new = snapshot_factory("shop_v2", dict(new_tables, orders=[
            ("id", "int"), ("user_id", "int"), ("total", "decimal(12,2)")
        ]), new_counts)
        rows = Reconciler(include_row_counts, include_datatypes).reconcile(old, new)
        return ReportBuilder().build(
            rows,
            old_name="shop",
            new_name="shop_v2",
            include_row_counts=include_row_counts,
            include_datatypes=include_datatypes
        )
    return build


class TestReportColumns:
    """Test column layout."""

    def test_schema_only_columns(self, build_report):
        """Test column order without row counts."""
        keys = [key for key, _ in report_columns(build_report())]

        assert keys == [
            "table_name", "old_exists", "new_exists",
            "old_total_columns", "new_total_columns",
            "old_extra_count", "new_extra_count",
            "old_extra_names", "new_extra_names",
            "datatype_changed", "datatype_changed_cols",
        ]

    def test_row_count_columns_appended(self, build_report):
        """Test row count columns follow the datatype columns."""
        keys = [key for key, _ in report_columns(build_report(include_row_counts=True))]

        assert keys[-3:] == ["old_rows", "new_rows", "rows_matched"]

    def test_datatype_columns_omitted(self, build_report):
        """Test datatype columns disappear when types were not compared."""
        keys = [key for key, _ in report_columns(build_report(include_datatypes=False))]

        assert "datatype_changed" not in keys
        assert "datatype_changed_cols" not in keys

    def test_headers_carry_names_and_totals(self, build_report):
        """Test headers include database names and summary counts."""
        headers = dict(report_columns(build_report()))

        assert headers["old_exists"] == "shop Exists (2)"
        assert headers["new_exists"] == "shop_v2 Exists (3)"
        assert headers["new_extra_count"] == "shop_v2 Extra Columns (3)"


class TestRecords:
    """Test record flattening."""

    def test_records(self, build_report):
        """Test Yes/No flags and delimited names."""
        records = {r["table_name"]: r for r in report_to_records(build_report(), delimiter=";")}

        assert records["logs"]["old_exists"] == "No"
        assert records["logs"]["new_exists"] == "Yes"
        assert records["logs"]["old_total_columns"] == 0
        assert records["logs"]["new_extra_names"] == "id;message"
        assert records["users"]["new_extra_names"] == "email"
        assert records["users"]["datatype_changed"] == "No"
        assert records["orders"]["datatype_changed"] == "Yes"
        assert records["orders"]["datatype_changed_cols"] == "total"

    def test_row_count_records(self, build_report):
        """Test row count values."""
        records = {r["table_name"]: r for r in report_to_records(build_report(include_row_counts=True))}

        assert records["users"]["rows_matched"] == "Yes"
        assert records["orders"]["old_rows"] == 5
        assert records["orders"]["rows_matched"] == "No"
        assert records["logs"]["old_rows"] == 0


class TestRenderers:
    """Test output formats."""

    def test_html(self, build_report):
        """Test HTML table structure and title."""
        html = render_html(build_report(include_row_counts=True))

        assert "<h2>Database Schema + Row Comparison Report</h2>" in html
        assert html.count("<tr>") == 3
        assert "<th>shop Exists (2)</th>" in html
        assert "<td>email</td>" in html

    def test_html_escapes_values(self, snapshot_factory):
        """Test table and column names are escaped."""
        old = snapshot_factory("<old>", {"a&b": [("<script>", "int")]})
        new = snapshot_factory("new", {})
        report = ReportBuilder().build(Reconciler().reconcile(old, new), old_name="<old>")

        html = render_html(report)

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "a&amp;b" in html
        assert "&lt;old&gt; Exists (1)" in html

    def test_text(self, build_report):
        """Test console table and summary lines."""
        text = render_text(build_report(include_row_counts=True))
        lines = text.splitlines()

        assert lines[0] == "Database Schema + Row Comparison Report"
        assert lines[2].startswith("Table")
        assert set(lines[3]) <= {"-", "+"}
        assert lines[4].startswith("logs")
        assert "Tables compared: 3" in lines
        assert "Tables with datatype changes: 1" in lines
        assert "Tables with row count mismatches: 1" in lines

    def test_text_without_row_counts(self, build_report):
        text = render_text(build_report())

        assert text.startswith("Database Schema Comparison Report\n")
        assert "row count mismatches" not in text

    def test_csv(self, build_report):
        """Test CSV header and rows."""
        rows = list(csv.reader(io.StringIO(render_csv(build_report()))))

        assert rows[0][0] == "table_name"
        assert [row[0] for row in rows[1:]] == ["logs", "orders", "users"]
        assert rows[1][8] == "id, message"

    def test_json(self, build_report):
        """Test JSON keeps lists and summary."""
        data = json.loads(render_json(build_report()))

        assert data["old_name"] == "shop"
        assert data["summary"]["total_tables"] == 3
        assert data["rows"][0]["new_extra_columns"] == ["id", "message"]

    @pytest.mark.parametrize("fmt", FORMATS)
    def test_render_dispatch(self, build_report, fmt):
        """Test every known format renders."""
        assert render(build_report(), fmt).endswith("\n")

    def test_render_unknown_format(self, build_report):
        with pytest.raises(ValueError, match="Unknown report format"):
            render(build_report(), "xml")

    def test_empty_report(self):
        """Test rendering a report with no tables."""
        report = ReportBuilder().build([])

        assert "Tables compared: 0" in render_text(report)
        assert render_csv(report).count("\n") == 1
