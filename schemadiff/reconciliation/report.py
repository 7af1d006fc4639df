"""
Report Builder for Schema Comparison

Packages reconciled TableDiff rows into a ComparisonReport with summary
counters. Pure and order-preserving; rendering lives in schemadiff.rendering.
"""

import logging
from typing import Iterable

from schemadiff.models import ComparisonReport, ReportSummary, TableDiff

logger = logging.getLogger(__name__)


class ReportBuilder:
    """Builds ComparisonReport objects from reconciler output."""

    def build(
        self,
        rows: Iterable[TableDiff],
        old_name: str = "old",
        new_name: str = "new",
        include_row_counts: bool = False,
        include_datatypes: bool = True
    ) -> ComparisonReport:
        """
        Build a report from TableDiff rows.

        Args:
            rows: Reconciled rows, already sorted by table name
            old_name: Label of the old database
            new_name: Label of the new database
            include_row_counts: Whether rows carry row counts
            include_datatypes: Whether data types were compared

        Returns:
            ComparisonReport with rows in input order and folded summary
        """
        rows = tuple(rows)
        summary = ReportSummary.from_rows(rows)

        logger.info(
            f"Report summary: {old_name} tables={summary.exists_count_old}, "
            f"{new_name} tables={summary.exists_count_new}, "
            f"{old_name} extra columns={summary.extra_columns_total_old}, "
            f"{new_name} extra columns={summary.extra_columns_total_new}"
        )

        return ComparisonReport(
            rows=rows,
            summary=summary,
            old_name=old_name,
            new_name=new_name,
            include_row_counts=include_row_counts,
            include_datatypes=include_datatypes
        )
