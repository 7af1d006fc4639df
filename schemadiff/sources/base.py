"""
Metadata Source Contract and Snapshot Capture

A MetadataSource wraps one database connection and exposes the three
metadata queries the comparison needs. capture_snapshot() drives a source
into an immutable DatabaseSnapshot.
"""

import contextvars
import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Set

from schemadiff.errors import ComparisonCancelled
from schemadiff.filters import TableFilter
from schemadiff.models import ColumnInfo, DatabaseSnapshot, TableSnapshot

logger = logging.getLogger(__name__)


class MetadataSource(ABC):
    """
    Read-only view of one database's tables, columns and row counts.

    Every call issues a fresh query; nothing is cached. Implementations
    raise DatabaseConnectionError when the connection is unusable and
    QueryError when a specific query fails.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Label of the database, used in reports."""

    @abstractmethod
    def list_tables(self, include_views: bool = True) -> Set[str]:
        """
        List all tables visible in the database.

        Args:
            include_views: Whether views are listed along with base tables

        Returns:
            Set of table names

        Raises:
            DatabaseConnectionError: If the connection cannot be used
            QueryError: If the listing query fails
        """

    @abstractmethod
    def describe_table(self, table_name: str) -> List[ColumnInfo]:
        """
        Describe a table's columns in natural column order.

        Args:
            table_name: Table name

        Returns:
            Ordered list of ColumnInfo

        Raises:
            QueryError: If the table does not exist or the query fails
        """

    @abstractmethod
    def count_rows(self, table_name: str) -> int:
        """
        Count rows exactly with COUNT(*).

        Args:
            table_name: Table name

        Returns:
            Row count

        Raises:
            QueryError: If the count query fails
        """

    def clone(self) -> "MetadataSource":
        """
        Open an independent source on the same database.

        Used to give each worker thread its own connection.
        """
        raise NotImplementedError(f"{type(self).__name__} does not support parallel capture")

    def close(self) -> None:
        """Release the underlying connection."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def capture_table(
    source: MetadataSource,
    table_name: str,
    include_row_counts: bool = False,
    cancel_event: Optional[threading.Event] = None
) -> TableSnapshot:
    """
    Capture one table's metadata.

    Args:
        source: Metadata source
        table_name: Table to capture
        include_row_counts: Whether to count rows
        cancel_event: Aborts the capture when set

    Returns:
        TableSnapshot

    Raises:
        ComparisonCancelled: If cancel_event is set
    """
    if cancel_event is not None and cancel_event.is_set():
        raise ComparisonCancelled(f"Snapshot of {source.name} cancelled before table {table_name}")

    columns = source.describe_table(table_name)
    row_count = source.count_rows(table_name) if include_row_counts else None

    logger.debug(
        f"Captured {source.name}.{table_name}: {len(columns)} columns"
        + (f", {row_count} rows" if row_count is not None else "")
    )
    return TableSnapshot(table_name=table_name, columns=tuple(columns), row_count=row_count)


def capture_snapshot(
    source: MetadataSource,
    include_row_counts: bool = False,
    table_filter: Optional[TableFilter] = None,
    max_workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
    include_views: bool = True
) -> DatabaseSnapshot:
    """
    Capture a full snapshot of one database.

    With max_workers > 1 the per-table queries run on a thread pool, each
    worker on its own cloned source. Results are always assembled in sorted
    table order. Any failure aborts the whole capture.

    Args:
        source: Metadata source
        include_row_counts: Whether to count rows per table
        table_filter: Optional include/exclude table patterns
        max_workers: Worker threads for per-table queries
        cancel_event: Aborts the capture when set
        include_views: Whether views are compared along with base tables

    Returns:
        Immutable DatabaseSnapshot

    Raises:
        DatabaseConnectionError, QueryError: Propagated from the source
        ComparisonCancelled: If cancel_event is set during capture
    """
    start_time = time.time()
    table_names = source.list_tables(include_views=include_views)

    if table_filter is not None and not table_filter.is_empty:
        filtered = table_filter.apply(table_names)
        logger.info(f"Table filter kept {len(filtered)} of {len(table_names)} tables in {source.name}")
        table_names = filtered

    ordered_names = sorted(table_names)
    logger.info(f"Capturing {len(ordered_names)} tables from {source.name}")

    if max_workers > 1 and len(ordered_names) > 1:
        tables = _capture_parallel(source, ordered_names, include_row_counts, max_workers, cancel_event)
    else:
        tables = [
            capture_table(source, name, include_row_counts, cancel_event)
            for name in ordered_names
        ]

    duration = time.time() - start_time
    logger.info(
        f"Captured snapshot of {source.name} in {duration:.2f}s",
        extra={"side": source.name, "duration": duration}
    )
    return DatabaseSnapshot.from_tables(source.name, tables)


def _capture_parallel(
    source: MetadataSource,
    table_names: List[str],
    include_row_counts: bool,
    max_workers: int,
    cancel_event: Optional[threading.Event]
) -> List[TableSnapshot]:
    local = threading.local()
    clones: List[MetadataSource] = []
    clones_lock = threading.Lock()

    def worker_source() -> MetadataSource:
        worker = getattr(local, "source", None)
        if worker is None:
            worker = source.clone()
            local.source = worker
            with clones_lock:
                clones.append(worker)
        return worker

    def task(table_name: str) -> TableSnapshot:
        return capture_table(worker_source(), table_name, include_row_counts, cancel_event)

    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="schemadiff")
    # Each task runs in its own copy of the caller's context so the run ID follows it
    futures = [
        executor.submit(contextvars.copy_context().run, task, name)
        for name in table_names
    ]

    try:
        # Collected in submission order, i.e. sorted table order
        return [future.result() for future in futures]
    except BaseException:
        for future in futures:
            future.cancel()
        raise
    finally:
        executor.shutdown(wait=True)
        for worker in clones:
            worker.close()
