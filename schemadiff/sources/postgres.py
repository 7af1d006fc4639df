"""
PostgreSQL Metadata Source

Reads table, column and row count metadata from one PostgreSQL schema
with psycopg2. Column types are reported the way psql shows them
(format_type), e.g. "character varying(20)" or "numeric(10,2)".
"""

import logging
from typing import Any, List, Optional, Sequence, Set, Tuple

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import QueryCanceledError

from schemadiff.config import ConnectionConfig
from schemadiff.errors import DatabaseConnectionError, QueryError
from schemadiff.models import ColumnInfo
from schemadiff.sources.base import MetadataSource

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"

Q_LIST_TABLES = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s
      AND table_type IN %s
"""

Q_TABLE_EXISTS = """
    SELECT c.oid
    FROM pg_catalog.pg_class c
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s
      AND c.relname = %s
      AND c.relkind IN ('r', 'p', 'v')
"""

TABLE_TYPES = ("BASE TABLE",)
TABLE_TYPES_WITH_VIEWS = ("BASE TABLE", "VIEW")

Q_DESCRIBE_TABLE = """
    SELECT a.attname, pg_catalog.format_type(a.atttypid, a.atttypmod)
    FROM pg_catalog.pg_attribute a
    WHERE a.attrelid = %s
      AND a.attnum > 0
      AND NOT a.attisdropped
    ORDER BY a.attnum
"""


class PostgresMetadataSource(MetadataSource):
    """MetadataSource over a psycopg2 connection."""

    def __init__(self, config: ConnectionConfig):
        """
        Connect to PostgreSQL.

        Args:
            config: Connection configuration (driver "postgresql")

        Raises:
            DatabaseConnectionError: If the connection cannot be established
        """
        self.config = config
        self.schema = config.schema or DEFAULT_SCHEMA

        connect_kwargs = {
            "host": config.host,
            "port": config.resolved_port,
            "dbname": config.database_name,
            "user": config.user,
            "password": config.password,
            "connect_timeout": config.connect_timeout,
            "application_name": "schemadiff",
        }
        if config.query_timeout:
            connect_kwargs["options"] = f"-c statement_timeout={config.query_timeout * 1000}"

        logger.info(f"Connecting to PostgreSQL at {config.host}:{config.resolved_port}/{config.database_name}")

        try:
            self.conn = psycopg2.connect(**connect_kwargs)
            self.conn.set_session(readonly=True, autocommit=True)
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Connection to PostgreSQL database '{config.database_name}' failed: {e}"
            ) from e

    @property
    def name(self) -> str:
        return self.config.name

    def list_tables(self, include_views: bool = True) -> Set[str]:
        table_types = TABLE_TYPES_WITH_VIEWS if include_views else TABLE_TYPES
        rows = self._fetch(Q_LIST_TABLES, (self.schema, table_types))
        tables = {row[0] for row in rows}
        logger.debug(f"Found {len(tables)} tables in {self.name}.{self.schema}")
        return tables

    def describe_table(self, table_name: str) -> List[ColumnInfo]:
        found = self._fetch(Q_TABLE_EXISTS, (self.schema, table_name), table=table_name)
        if not found:
            raise QueryError(
                f"Table {self.schema}.{table_name} does not exist in {self.name}",
                table=table_name
            )

        rows = self._fetch(Q_DESCRIBE_TABLE, (found[0][0],), table=table_name)
        return [ColumnInfo(name=row[0], data_type=row[1]) for row in rows]

    def count_rows(self, table_name: str) -> int:
        query = sql.SQL("SELECT COUNT(*) FROM {}.{}").format(
            sql.Identifier(self.schema),
            sql.Identifier(table_name)
        )
        rows = self._fetch(query, None, table=table_name)
        return int(rows[0][0])

    def clone(self) -> "PostgresMetadataSource":
        return PostgresMetadataSource(self.config)

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
            logger.debug(f"Closed PostgreSQL connection to {self.name}")

    def _fetch(
        self,
        query: Any,
        params: Optional[Sequence[Any]],
        table: Optional[str] = None
    ) -> List[Tuple[Any, ...]]:
        if self.conn is None:
            raise DatabaseConnectionError(f"Connection to {self.name} is closed")

        try:
            with self.conn.cursor() as cursor:
                cursor.execute(query, params)
                return cursor.fetchall()
        except QueryCanceledError as e:
            raise QueryError(f"Query on {self.name} timed out: {e}", table=table) from e
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
            raise DatabaseConnectionError(f"Connection to {self.name} failed: {e}") from e
        except psycopg2.Error as e:
            target = f" for table {table}" if table else ""
            raise QueryError(f"Query on {self.name}{target} failed: {e}", table=table) from e
