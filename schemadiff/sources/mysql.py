"""
MySQL / MariaDB Metadata Source

Reads table, column and row count metadata with PyMySQL using
SHOW FULL TABLES, DESCRIBE and COUNT(*). Views are listed unless excluded. Column types are the DESCRIBE
"Type" strings, e.g. "varchar(255)" or "int(11) unsigned".
"""

import logging
from typing import Any, List, Optional, Set, Tuple

import pymysql

from schemadiff.config import ConnectionConfig
from schemadiff.errors import DatabaseConnectionError, QueryError
from schemadiff.models import ColumnInfo
from schemadiff.sources.base import MetadataSource

logger = logging.getLogger(__name__)

# Client error codes that mean the connection itself is gone
CONNECTION_ERROR_CODES = {
    2002,  # CR_CONNECTION_ERROR
    2003,  # CR_CONN_HOST_ERROR
    2006,  # CR_SERVER_GONE_ERROR
    2013,  # CR_SERVER_LOST
    2055,  # CR_SERVER_LOST_EXTENDED
}


TABLE_TYPES = ("BASE TABLE",)
TABLE_TYPES_WITH_VIEWS = ("BASE TABLE", "VIEW")


def quote_identifier(name: str) -> str:
    """Quote a MySQL identifier with backticks."""
    return "`" + name.replace("`", "``") + "`"


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return str(value)


class MySQLMetadataSource(MetadataSource):
    """MetadataSource over a PyMySQL connection."""

    def __init__(self, config: ConnectionConfig):
        """
        Connect to MySQL.

        Args:
            config: Connection configuration (driver "mysql")

        Raises:
            DatabaseConnectionError: If the connection cannot be established
        """
        self.config = config

        logger.info(f"Connecting to MySQL at {config.host}:{config.resolved_port}/{config.database_name}")

        try:
            self.conn = pymysql.connect(
                host=config.host,
                port=config.resolved_port,
                user=config.user,
                password=config.password,
                database=config.database_name,
                connect_timeout=config.connect_timeout,
                read_timeout=config.query_timeout,
                charset="utf8mb4",
                autocommit=True
            )
        except pymysql.err.MySQLError as e:
            raise DatabaseConnectionError(
                f"Connection to MySQL database '{config.database_name}' failed: {e}"
            ) from e

    @property
    def name(self) -> str:
        return self.config.name

    def list_tables(self, include_views: bool = True) -> Set[str]:
        table_types = TABLE_TYPES_WITH_VIEWS if include_views else TABLE_TYPES
        rows = self._fetch("SHOW FULL TABLES")
        tables = {_text(row[0]) for row in rows if _text(row[1]) in table_types}
        logger.debug(f"Found {len(tables)} tables in {self.name}")
        return tables

    def describe_table(self, table_name: str) -> List[ColumnInfo]:
        rows = self._fetch(f"DESCRIBE {quote_identifier(table_name)}", table=table_name)
        return [ColumnInfo(name=_text(row[0]), data_type=_text(row[1])) for row in rows]

    def count_rows(self, table_name: str) -> int:
        rows = self._fetch(f"SELECT COUNT(*) FROM {quote_identifier(table_name)}", table=table_name)
        return int(rows[0][0])

    def clone(self) -> "MySQLMetadataSource":
        return MySQLMetadataSource(self.config)

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
            logger.debug(f"Closed MySQL connection to {self.name}")

    def _fetch(self, query: str, table: Optional[str] = None) -> List[Tuple[Any, ...]]:
        if self.conn is None:
            raise DatabaseConnectionError(f"Connection to {self.name} is closed")

        try:
            with self.conn.cursor() as cursor:
                cursor.execute(query)
                return list(cursor.fetchall())
        except pymysql.err.InterfaceError as e:
            raise DatabaseConnectionError(f"Connection to {self.name} failed: {e}") from e
        except pymysql.err.OperationalError as e:
            if e.args and e.args[0] in CONNECTION_ERROR_CODES:
                raise DatabaseConnectionError(f"Connection to {self.name} failed: {e}") from e
            raise QueryError(f"Query on {self.name} failed: {e}", table=table) from e
        except pymysql.err.MySQLError as e:
            target = f" for table {table}" if table else ""
            raise QueryError(f"Query on {self.name}{target} failed: {e}", table=table) from e
