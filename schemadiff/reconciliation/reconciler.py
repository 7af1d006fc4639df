"""
Snapshot Reconciler for Schema Comparison

Merges two database snapshots into one TableDiff per table name.
Identifies missing tables, extra columns, changed data types and, optionally,
row count mismatches.
"""

import logging
from typing import List, Optional

from schemadiff.models import DatabaseSnapshot, TableDiff, TableSnapshot
from schemadiff.reconciliation.comparer import ColumnComparer

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Reconciles an old and a new DatabaseSnapshot.

    Produces, for the union of table names (sorted, no case folding):
    - Existence of the table on each side
    - Columns present on only one side
    - Common columns whose data type changed
    - Row counts and whether they match (when enabled)
    """

    def __init__(self, include_row_counts: bool = False, include_datatypes: bool = True):
        """
        Initialize the reconciler.

        Args:
            include_row_counts: Compare row counts between both sides
            include_datatypes: Compare column data types between both sides
        """
        self.include_row_counts = include_row_counts
        self.include_datatypes = include_datatypes
        self.comparer = ColumnComparer()
        logger.debug(
            f"Initialized Reconciler (row_counts={include_row_counts}, "
            f"datatypes={include_datatypes})"
        )

    def all_table_names(
        self,
        old_snapshot: DatabaseSnapshot,
        new_snapshot: DatabaseSnapshot
    ) -> List[str]:
        """
        Get the sorted union of table names from both snapshots.

        Args:
            old_snapshot: Snapshot of the old database
            new_snapshot: Snapshot of the new database

        Returns:
            Sorted list of unique table names
        """
        return sorted(set(old_snapshot.tables) | set(new_snapshot.tables))

    def reconcile(
        self,
        old_snapshot: DatabaseSnapshot,
        new_snapshot: DatabaseSnapshot
    ) -> List[TableDiff]:
        """
        Reconcile two snapshots into per-table diffs.

        Args:
            old_snapshot: Snapshot of the old database
            new_snapshot: Snapshot of the new database

        Returns:
            One TableDiff per table name, sorted by table name

        Raises:
            ValueError: If row counts are requested but a snapshot lacks them
        """
        table_names = self.all_table_names(old_snapshot, new_snapshot)
        logger.info(
            f"Reconciling {len(table_names)} tables "
            f"({old_snapshot.name}: {len(old_snapshot.tables)}, "
            f"{new_snapshot.name}: {len(new_snapshot.tables)})"
        )

        diffs = [
            self.reconcile_table(
                name,
                old_snapshot.tables.get(name),
                new_snapshot.tables.get(name)
            )
            for name in table_names
        ]

        logger.info(
            f"Reconciliation complete: "
            f"{sum(1 for d in diffs if d.has_differences)} of {len(diffs)} tables differ"
        )
        return diffs

    def reconcile_table(
        self,
        table_name: str,
        old_table: Optional[TableSnapshot],
        new_table: Optional[TableSnapshot]
    ) -> TableDiff:
        """
        Reconcile a single table.

        Args:
            table_name: Table name
            old_table: Old side snapshot, or None if the table is absent
            new_table: New side snapshot, or None if the table is absent

        Returns:
            TableDiff for the table
        """
        old_columns = old_table.columns if old_table is not None else ()
        new_columns = new_table.columns if new_table is not None else ()

        comparison = self.comparer.compare_columns(
            old_columns,
            new_columns,
            include_datatypes=self.include_datatypes
        )

        old_rows = new_rows = None
        rows_matched = None
        if self.include_row_counts:
            # A table missing on one side counts as zero rows there.
            old_rows = self._row_count(table_name, old_table, "old")
            new_rows = self._row_count(table_name, new_table, "new")
            rows_matched = old_rows == new_rows

        return TableDiff(
            table_name=table_name,
            exists_old=old_table is not None,
            exists_new=new_table is not None,
            old_total_columns=len(old_columns),
            new_total_columns=len(new_columns),
            old_extra_columns=comparison.old_extra,
            new_extra_columns=comparison.new_extra,
            datatype_changed_columns=comparison.datatype_changed,
            old_rows=old_rows,
            new_rows=new_rows,
            rows_matched=rows_matched
        )

    def _row_count(self, table_name: str, table: Optional[TableSnapshot], side: str) -> int:
        if table is None:
            return 0

        if table.row_count is None:
            raise ValueError(
                f"Row count for table '{table_name}' was not captured on the {side} side. "
                f"Capture snapshots with include_row_counts=True."
            )

        return table.row_count


def reconcile(
    old_snapshot: DatabaseSnapshot,
    new_snapshot: DatabaseSnapshot,
    include_row_counts: bool = False,
    include_datatypes: bool = True
) -> List[TableDiff]:
    """
    Reconcile two snapshots with a one-off Reconciler.

    Args:
        old_snapshot: Snapshot of the old database
        new_snapshot: Snapshot of the new database
        include_row_counts: Compare row counts
        include_datatypes: Compare column data types

    Returns:
        One TableDiff per table name, sorted by table name
    """
    reconciler = Reconciler(
        include_row_counts=include_row_counts,
        include_datatypes=include_datatypes
    )
    return reconciler.reconcile(old_snapshot, new_snapshot)
