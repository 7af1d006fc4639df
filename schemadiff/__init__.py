"""
schemadiff - database schema and row count comparison for migration verification.

Usage:
    from schemadiff import ConnectionConfig, CompareOptions, compare
    from schemadiff.rendering import render

    old = ConnectionConfig(host="localhost", user="root", database_name="shop")
    new = ConnectionConfig(host="localhost", user="root", database_name="shop_v2")

    report = compare(old, new, CompareOptions(include_row_counts=True))
    print(render(report, "text"))
"""

from schemadiff.config import CompareOptions, ConnectionConfig, load_config
from schemadiff.errors import (
    ComparisonCancelled,
    ConfigurationError,
    DatabaseConnectionError,
    QueryError,
    SchemaDiffError,
)
from schemadiff.filters import TableFilter
from schemadiff.models import (
    ColumnInfo,
    ComparisonReport,
    DatabaseSnapshot,
    ReportSummary,
    TableDiff,
    TableSnapshot,
)
from schemadiff.pipeline import compare, compare_sources

__all__ = [
    "ColumnInfo",
    "CompareOptions",
    "ComparisonCancelled",
    "ComparisonReport",
    "ConfigurationError",
    "ConnectionConfig",
    "DatabaseConnectionError",
    "DatabaseSnapshot",
    "QueryError",
    "ReportSummary",
    "SchemaDiffError",
    "TableDiff",
    "TableFilter",
    "TableSnapshot",
    "compare",
    "compare_sources",
    "load_config",
]

__version__ = "1.0.0"
