"""
Data Model for Schema Comparison

Immutable value types shared by metadata sources, the reconciler, the report
builder and the renderers.

Snapshots are captured once per side and never modified afterwards; diffs and
reports are built fresh for every run.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class ColumnInfo:
    """
    A single column as reported by the database driver.

    Attributes:
        name: Column name
        data_type: Driver-native type string (compared verbatim, never parsed)
    """

    name: str
    data_type: str


@dataclass(frozen=True)
class TableSnapshot:
    """
    Metadata captured for one table on one side of the comparison.

    Attributes:
        table_name: Table name
        columns: Columns in the database's natural order
        row_count: Exact row count, or None if counting was not requested
    """

    table_name: str
    columns: Tuple[ColumnInfo, ...] = ()
    row_count: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def column_types(self) -> Dict[str, str]:
        return {column.name: column.data_type for column in self.columns}


@dataclass(frozen=True)
class DatabaseSnapshot:
    """
    Point-in-time capture of one database's tables.

    Attributes:
        name: Database label used in report headers
        tables: Read-only mapping of table name to TableSnapshot
    """

    name: str
    tables: Mapping[str, TableSnapshot] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "tables", MappingProxyType(dict(self.tables)))

    @classmethod
    def from_tables(cls, name: str, tables: Iterable[TableSnapshot]) -> "DatabaseSnapshot":
        return cls(name=name, tables={table.table_name: table for table in tables})

    def has_table(self, table_name: str) -> bool:
        return table_name in self.tables


@dataclass(frozen=True)
class TableDiff:
    """
    One report row: the reconciled state of a single table name.

    Attributes:
        table_name: Table name
        exists_old: Table exists in the old database
        exists_new: Table exists in the new database
        old_total_columns: Column count in the old database (0 if absent)
        new_total_columns: Column count in the new database (0 if absent)
        old_extra_columns: Columns only in the old table, old column order
        new_extra_columns: Columns only in the new table, new column order
        datatype_changed_columns: Common columns whose type strings differ
        old_rows: Old row count (None when row counts were not requested)
        new_rows: New row count (None when row counts were not requested)
        rows_matched: Whether row counts match (None when not requested)
    """

    table_name: str
    exists_old: bool
    exists_new: bool
    old_total_columns: int = 0
    new_total_columns: int = 0
    old_extra_columns: Tuple[str, ...] = ()
    new_extra_columns: Tuple[str, ...] = ()
    datatype_changed_columns: Tuple[str, ...] = ()
    old_rows: Optional[int] = None
    new_rows: Optional[int] = None
    rows_matched: Optional[bool] = None

    @property
    def old_extra_count(self) -> int:
        return len(self.old_extra_columns)

    @property
    def new_extra_count(self) -> int:
        return len(self.new_extra_columns)

    @property
    def datatype_changed(self) -> bool:
        return bool(self.datatype_changed_columns)

    @property
    def has_differences(self) -> bool:
        """True if anything about this table differs between the two sides."""
        return (
            not (self.exists_old and self.exists_new)
            or bool(self.old_extra_columns)
            or bool(self.new_extra_columns)
            or self.datatype_changed
            or self.rows_matched is False
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_name": self.table_name,
            "exists_old": self.exists_old,
            "exists_new": self.exists_new,
            "old_total_columns": self.old_total_columns,
            "new_total_columns": self.new_total_columns,
            "old_extra_count": self.old_extra_count,
            "new_extra_count": self.new_extra_count,
            "old_extra_columns": list(self.old_extra_columns),
            "new_extra_columns": list(self.new_extra_columns),
            "datatype_changed": self.datatype_changed,
            "datatype_changed_columns": list(self.datatype_changed_columns),
            "old_rows": self.old_rows,
            "new_rows": self.new_rows,
            "rows_matched": self.rows_matched,
        }


@dataclass(frozen=True)
class ReportSummary:
    """Aggregate counters derived from the report rows."""

    exists_count_old: int = 0
    exists_count_new: int = 0
    extra_columns_total_old: int = 0
    extra_columns_total_new: int = 0
    total_tables: int = 0
    datatype_changed_tables: int = 0
    row_mismatch_tables: int = 0

    @classmethod
    def from_rows(cls, rows: Iterable[TableDiff]) -> "ReportSummary":
        exists_old = exists_new = extra_old = extra_new = 0
        total = changed = mismatched = 0

        for row in rows:
            total += 1
            if row.exists_old:
                exists_old += 1
            if row.exists_new:
                exists_new += 1
            extra_old += row.old_extra_count
            extra_new += row.new_extra_count
            if row.datatype_changed:
                changed += 1
            if row.rows_matched is False:
                mismatched += 1

        return cls(
            exists_count_old=exists_old,
            exists_count_new=exists_new,
            extra_columns_total_old=extra_old,
            extra_columns_total_new=extra_new,
            total_tables=total,
            datatype_changed_tables=changed,
            row_mismatch_tables=mismatched,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "exists_count_old": self.exists_count_old,
            "exists_count_new": self.exists_count_new,
            "extra_columns_total_old": self.extra_columns_total_old,
            "extra_columns_total_new": self.extra_columns_total_new,
            "total_tables": self.total_tables,
            "datatype_changed_tables": self.datatype_changed_tables,
            "row_mismatch_tables": self.row_mismatch_tables,
        }


@dataclass(frozen=True)
class ComparisonReport:
    """
    Result of one comparison run.

    Attributes:
        rows: TableDiff rows sorted by table name
        summary: Counters folded from rows
        old_name: Label of the old database
        new_name: Label of the new database
        include_row_counts: Whether row counts were compared
        include_datatypes: Whether column data types were compared
    """

    rows: Tuple[TableDiff, ...]
    summary: ReportSummary
    old_name: str = "old"
    new_name: str = "new"
    include_row_counts: bool = False
    include_datatypes: bool = True

    def __post_init__(self):
        object.__setattr__(self, "rows", tuple(self.rows))

    @property
    def has_differences(self) -> bool:
        return any(row.has_differences for row in self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_name": self.old_name,
            "new_name": self.new_name,
            "include_row_counts": self.include_row_counts,
            "include_datatypes": self.include_datatypes,
            "summary": self.summary.to_dict(),
            "rows": [row.to_dict() for row in self.rows],
        }
