"""
Report rendering.

Turns a ComparisonReport into HTML, console text, CSV or JSON. Column order
is fixed: table name, existence, column counts, extra column counts and
names, datatype changes and, when compared, row counts.

Primary API
-----------
- report_to_records
- render (dispatches on format name)
"""

import csv
import io
import json
from html import escape
from typing import Any, Callable, Dict, List, Tuple

from schemadiff.models import ComparisonReport, TableDiff

DEFAULT_DELIMITER = ", "

FORMATS = ("text", "html", "csv", "json")


def yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def report_columns(report: ComparisonReport) -> List[Tuple[str, str]]:
    """
    Return the ``(key, header)`` pairs for a report, in display order.

    Headers carry the database names and the summary counts.
    """
    old, new = report.old_name, report.new_name
    summary = report.summary

    columns = [
        ("table_name", "Table"),
        ("old_exists", f"{old} Exists ({summary.exists_count_old})"),
        ("new_exists", f"{new} Exists ({summary.exists_count_new})"),
        ("old_total_columns", f"{old} Total Columns"),
        ("new_total_columns", f"{new} Total Columns"),
        ("old_extra_count", f"{old} Extra Columns ({summary.extra_columns_total_old})"),
        ("new_extra_count", f"{new} Extra Columns ({summary.extra_columns_total_new})"),
        ("old_extra_names", f"{old} Extra Column Names"),
        ("new_extra_names", f"{new} Extra Column Names"),
    ]

    if report.include_datatypes:
        columns += [
            ("datatype_changed", "Datatype Changed?"),
            ("datatype_changed_cols", "Datatype Changed Columns"),
        ]

    if report.include_row_counts:
        columns += [
            ("old_rows", f"{old} Rows"),
            ("new_rows", f"{new} Rows"),
            ("rows_matched", "Row Count Matched"),
        ]

    return columns


def row_to_record(
    row: TableDiff,
    include_datatypes: bool = True,
    include_row_counts: bool = False,
    delimiter: str = DEFAULT_DELIMITER
) -> Dict[str, Any]:
    """Flatten one TableDiff into display values."""
    record = {
        "table_name": row.table_name,
        "old_exists": yes_no(row.exists_old),
        "new_exists": yes_no(row.exists_new),
        "old_total_columns": row.old_total_columns,
        "new_total_columns": row.new_total_columns,
        "old_extra_count": row.old_extra_count,
        "new_extra_count": row.new_extra_count,
        "old_extra_names": delimiter.join(row.old_extra_columns),
        "new_extra_names": delimiter.join(row.new_extra_columns),
    }

    if include_datatypes:
        record["datatype_changed"] = yes_no(row.datatype_changed)
        record["datatype_changed_cols"] = delimiter.join(row.datatype_changed_columns)

    if include_row_counts:
        record["old_rows"] = row.old_rows
        record["new_rows"] = row.new_rows
        record["rows_matched"] = yes_no(bool(row.rows_matched))

    return record


def report_to_records(report: ComparisonReport, delimiter: str = DEFAULT_DELIMITER) -> List[Dict[str, Any]]:
    """
    Flatten a report into one dictionary per table, in report order.

    Args:
        report: Comparison report
        delimiter: Separator for column name lists

    Returns:
        List of records keyed like report_columns()
    """
    return [
        row_to_record(row, report.include_datatypes, report.include_row_counts, delimiter)
        for row in report.rows
    ]


def report_title(report: ComparisonReport) -> str:
    if report.include_row_counts:
        return "Database Schema + Row Comparison Report"
    return "Database Schema Comparison Report"


def render_html(report: ComparisonReport, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Render the report as a standalone HTML page."""
    columns = report_columns(report)
    title = escape(report_title(report))

    lines = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{title}</title>",
        "</head>",
        "<body>",
        f"<h2>{title}</h2>",
        "<table border='1' cellpadding='6' cellspacing='0'>",
        "<tr style='background:#f2f2f2'>",
    ]
    lines += [f"    <th>{escape(header)}</th>" for _, header in columns]
    lines.append("</tr>")

    for record in report_to_records(report, delimiter):
        lines.append("<tr>")
        lines += [f"    <td>{escape(str(record[key]))}</td>" for key, _ in columns]
        lines.append("</tr>")

    lines += ["</table>", "</body>", "</html>", ""]
    return "\n".join(lines)


def render_text(report: ComparisonReport, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Render the report as a fixed-width console table followed by a summary."""
    columns = report_columns(report)
    records = report_to_records(report, delimiter)

    table = [[header for _, header in columns]]
    table += [[str(record[key]) for key, _ in columns] for record in records]
    widths = [max(len(line[i]) for line in table) for i in range(len(columns))]

    def format_line(cells: List[str]) -> str:
        return " | ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    lines = [report_title(report), ""]
    lines.append(format_line(table[0]))
    lines.append("-+-".join("-" * width for width in widths))
    lines += [format_line(cells) for cells in table[1:]]

    summary = report.summary
    lines += [
        "",
        f"Tables compared: {summary.total_tables}",
        f"{report.old_name} tables: {summary.exists_count_old}, extra columns: {summary.extra_columns_total_old}",
        f"{report.new_name} tables: {summary.exists_count_new}, extra columns: {summary.extra_columns_total_new}",
    ]
    if report.include_datatypes:
        lines.append(f"Tables with datatype changes: {summary.datatype_changed_tables}")
    if report.include_row_counts:
        lines.append(f"Tables with row count mismatches: {summary.row_mismatch_tables}")

    return "\n".join(lines) + "\n"


def render_csv(report: ComparisonReport, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Render the report as CSV with a machine-friendly header row."""
    columns = report_columns(report)
    output = io.StringIO()

    writer = csv.writer(output, lineterminator="\n")
    writer.writerow([key for key, _ in columns])
    for record in report_to_records(report, delimiter):
        writer.writerow([record[key] for key, _ in columns])

    return output.getvalue()


def render_json(report: ComparisonReport, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Render the full report structure as JSON (column lists stay lists)."""
    return json.dumps(report.to_dict(), indent=2) + "\n"


RENDERERS: Dict[str, Callable[[ComparisonReport, str], str]] = {
    "text": render_text,
    "html": render_html,
    "csv": render_csv,
    "json": render_json,
}


def render(report: ComparisonReport, fmt: str = "text", delimiter: str = DEFAULT_DELIMITER) -> str:
    """
    Render a report in the given format.

    Raises:
        ValueError: If the format is unknown
    """
    renderer = RENDERERS.get(fmt)
    if renderer is None:
        raise ValueError(f"Unknown report format '{fmt}'. Must be one of {list(FORMATS)}")
    return renderer(report, delimiter)
