"""
Reconciliation Module for Schema Comparison

This module reconciles two database snapshots into a per-table diff report.

Main components:
- comparer: Column-level comparison of one table
- reconciler: Snapshot reconciliation into TableDiff rows
- report: Report building with summary counters

Usage:
    from schemadiff.reconciliation import Reconciler, ReportBuilder

    reconciler = Reconciler(include_row_counts=True)
    rows = reconciler.reconcile(old_snapshot, new_snapshot)

    report = ReportBuilder().build(rows, old_name="shop", new_name="shop_v2")
"""

from schemadiff.reconciliation.comparer import ColumnComparer, ColumnComparison
from schemadiff.reconciliation.reconciler import Reconciler, reconcile
from schemadiff.reconciliation.report import ReportBuilder

__all__ = [
    "ColumnComparer",
    "ColumnComparison",
    "Reconciler",
    "reconcile",
    "ReportBuilder",
]
