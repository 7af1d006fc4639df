"""
Column Comparer for Schema Reconciliation

Provides table-level column comparison between the old and new database.
Column names are compared as opaque strings and data types by exact,
case-sensitive string equality.
"""

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

from schemadiff.models import ColumnInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnComparison:
    """
    Result of comparing two column lists.

    Attributes:
        old_extra: Columns only in the old table (old column order)
        new_extra: Columns only in the new table (new column order)
        common: Columns present on both sides (old column order)
        datatype_changed: Common columns whose type strings differ
    """

    old_extra: Tuple[str, ...] = ()
    new_extra: Tuple[str, ...] = ()
    common: Tuple[str, ...] = ()
    datatype_changed: Tuple[str, ...] = ()

    @property
    def is_equal(self) -> bool:
        return not (self.old_extra or self.new_extra or self.datatype_changed)


class ColumnComparer:
    """
    Compares the column definitions of one table across two databases.

    Duplicate column names cannot occur within a table, so plain set
    semantics apply; output tuples keep each side's natural column order.
    """

    def __init__(self):
        """Initialize the column comparer."""
        logger.debug("Initialized ColumnComparer")

    def compare_columns(
        self,
        old_columns: Sequence[ColumnInfo],
        new_columns: Sequence[ColumnInfo],
        include_datatypes: bool = True
    ) -> ColumnComparison:
        """
        Compare two ordered column lists.

        Args:
            old_columns: Columns of the table in the old database
            new_columns: Columns of the table in the new database
            include_datatypes: Whether to compare column data types

        Returns:
            ColumnComparison with extra, common and datatype-changed columns
        """
        old_types = {column.name: column.data_type for column in old_columns}
        new_types = {column.name: column.data_type for column in new_columns}

        old_extra = tuple(column.name for column in old_columns if column.name not in new_types)
        new_extra = tuple(column.name for column in new_columns if column.name not in old_types)
        common = tuple(column.name for column in old_columns if column.name in new_types)

        datatype_changed: Tuple[str, ...] = ()
        if include_datatypes:
            datatype_changed = tuple(
                name for name in common
                if not self.types_equal(old_types[name], new_types[name])
            )

        for name in datatype_changed:
            logger.debug(
                f"Column {name} type changed: "
                f"old={old_types[name]}, new={new_types[name]}"
            )

        return ColumnComparison(
            old_extra=old_extra,
            new_extra=new_extra,
            common=common,
            datatype_changed=datatype_changed
        )

    def types_equal(self, old_type: str, new_type: str) -> bool:
        """
        Compare two driver-reported type strings.

        No normalization is applied: "INT" and "int" are different types.

        Args:
            old_type: Type string from the old database
            new_type: Type string from the new database

        Returns:
            True if the type strings are identical
        """
        return old_type == new_type
