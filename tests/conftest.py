"""
Pytest configuration and shared fixtures.

Provides an in-memory MetadataSource so reconciliation, snapshot capture and
the pipeline can be tested without a database.
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence, Set, Tuple

import pytest

from schemadiff.errors import QueryError
from schemadiff.models import ColumnInfo, DatabaseSnapshot, TableSnapshot
from schemadiff.sources.base import MetadataSource


class FakeMetadataSource(MetadataSource):
    """
    MetadataSource backed by dictionaries.

    Args:
        name: Database label
        tables: Table name -> list of (column, type) pairs
        row_counts: Table name -> row count (default 0)
        failures: Operation name ("list_tables", "describe_table",
            "count_rows") -> exception to raise, optionally only for the
            table named in failure_tables
        views: Names in tables that are views
    """

    def __init__(
        self,
        name: str,
        tables: Dict[str, Sequence[Tuple[str, str]]],
        row_counts: Optional[Dict[str, int]] = None,
        failures: Optional[Dict[str, Exception]] = None,
        failure_tables: Optional[Set[str]] = None,
        views: Optional[Set[str]] = None
    ):
        self._name = name
        self.tables = {table: list(columns) for table, columns in tables.items()}
        self.row_counts = row_counts or {}
        self.failures = failures or {}
        self.failure_tables = failure_tables
        self.views = set(views or ())
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.threads: Set[str] = set()
        self.clones: List["FakeMetadataSource"] = []
        self.closed = False
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def _record(self, operation: str, table: Optional[str] = None) -> None:
        with self._lock:
            self.calls.append((operation, table))
            self.threads.add(threading.current_thread().name)

        failure = self.failures.get(operation)
        if failure is not None and (self.failure_tables is None or table in self.failure_tables):
            raise failure

    def list_tables(self, include_views: bool = True) -> Set[str]:
        self._record("list_tables")
        if include_views:
            return set(self.tables)
        return set(self.tables) - self.views

    def describe_table(self, table_name: str) -> List[ColumnInfo]:
        self._record("describe_table", table_name)
        if table_name not in self.tables:
            raise QueryError(f"Table {table_name} does not exist", table=table_name)
        return [ColumnInfo(name=name, data_type=data_type) for name, data_type in self.tables[table_name]]

    def count_rows(self, table_name: str) -> int:
        self._record("count_rows", table_name)
        return self.row_counts.get(table_name, 0)

    def clone(self) -> "FakeMetadataSource":
        clone = FakeMetadataSource(
            self._name,
            self.tables,
            self.row_counts,
            self.failures,
            self.failure_tables,
            self.views
        )
        # Clones share the call log so tests can inspect all queries
        clone.calls = self.calls
        clone.threads = self.threads
        clone._lock = self._lock
        with self._lock:
            self.clones.append(clone)
        return clone

    def close(self) -> None:
        self.closed = True


def make_snapshot(
    name: str,
    tables: Dict[str, Sequence[Tuple[str, str]]],
    row_counts: Optional[Dict[str, int]] = None
) -> DatabaseSnapshot:
    """Build a DatabaseSnapshot directly from (column, type) pairs."""
    return DatabaseSnapshot.from_tables(name, [
        TableSnapshot(
            table_name=table,
            columns=tuple(ColumnInfo(column, data_type) for column, data_type in columns),
            row_count=None if row_counts is None else row_counts.get(table, 0)
        )
        for table, columns in tables.items()
    ])


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo configure_logging() so caplog sees schemadiff records in every test."""
    yield
    logger = logging.getLogger("schemadiff")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_source():
    """Factory fixture for FakeMetadataSource instances."""
    return FakeMetadataSource


@pytest.fixture
def snapshot_factory():
    """Factory fixture for DatabaseSnapshot instances."""
    return make_snapshot


@pytest.fixture
def old_tables():
    """Old database of the users/orders migration scenario."""
    return {
        "users": [("id", "int"), ("name", "varchar")],
        "orders": [("id", "int"), ("user_id", "int"), ("total", "decimal(10,2)")],
    }


@pytest.fixture
def new_tables():
    """New database of the users/orders migration scenario."""
    return {
        "users": [("id", "int"), ("name", "varchar"), ("email", "varchar")],
        "orders": [("id", "int"), ("user_id", "int"), ("total", "decimal(10,2)")],
        "logs": [("id", "int"), ("message", "text")],
    }
