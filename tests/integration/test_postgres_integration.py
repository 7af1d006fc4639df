"""
Integration Tests against a live PostgreSQL server

Builds an "old" and a "new" schema in one database and compares them with
the real psycopg2 metadata source.

Connection settings come from SCHEMADIFF_TEST_PG_HOST/PORT/USER/PASSWORD/
DATABASE (defaults: localhost:5432, postgres/postgres, database postgres).
Tests are skipped when the server is not reachable.
"""

import os

import psycopg2
import pytest

from schemadiff.config import CompareOptions, ConnectionConfig
from schemadiff.errors import QueryError
from schemadiff.pipeline import compare
from schemadiff.rendering import render
from schemadiff.sources.postgres import PostgresMetadataSource

pytestmark = pytest.mark.integration

OLD_SCHEMA = "schemadiff_it_old"
NEW_SCHEMA = "schemadiff_it_new"

SETUP_SQL = f"""
    DROP SCHEMA IF EXISTS {OLD_SCHEMA} CASCADE;
    DROP SCHEMA IF EXISTS {NEW_SCHEMA} CASCADE;
    CREATE SCHEMA {OLD_SCHEMA};
    CREATE SCHEMA {NEW_SCHEMA};

    CREATE TABLE {OLD_SCHEMA}.users (id integer PRIMARY KEY, name varchar(50));
    CREATE TABLE {OLD_SCHEMA}.orders (id integer PRIMARY KEY, status varchar(10));
    CREATE TABLE {OLD_SCHEMA}.archive (id integer);
    CREATE TABLE {OLD_SCHEMA}.archive2 (id integer);
    CREATE VIEW {OLD_SCHEMA}.active_users AS SELECT * FROM {OLD_SCHEMA}.users;
    INSERT INTO {OLD_SCHEMA}.users VALUES (1, 'ann'), (2, 'bob');
    INSERT INTO {OLD_SCHEMA}.orders VALUES (1, 'new');
    INSERT INTO {OLD_SCHEMA}.archive2 SELECT generate_series(1, 10);

    CREATE TABLE {NEW_SCHEMA}.users (id integer PRIMARY KEY, name varchar(50), email varchar(255));
    CREATE TABLE {NEW_SCHEMA}.orders (id integer PRIMARY KEY, status varchar(20));
    CREATE TABLE {NEW_SCHEMA}.logs (id integer, message text);
    INSERT INTO {NEW_SCHEMA}.users VALUES (1, 'ann', NULL), (2, 'bob', NULL);
    INSERT INTO {NEW_SCHEMA}.orders VALUES (1, 'new'), (2, 'paid');
"""

TEARDOWN_SQL = f"""
    DROP SCHEMA IF EXISTS {OLD_SCHEMA} CASCADE;
    DROP SCHEMA IF EXISTS {NEW_SCHEMA} CASCADE;
"""


def connection_config(schema: str, label: str) -> ConnectionConfig:
    return ConnectionConfig(
        host=os.getenv("SCHEMADIFF_TEST_PG_HOST", "localhost"),
        port=int(os.getenv("SCHEMADIFF_TEST_PG_PORT", "5432")),
        user=os.getenv("SCHEMADIFF_TEST_PG_USER", "postgres"),
        password=os.getenv("SCHEMADIFF_TEST_PG_PASSWORD", "postgres"),
        database_name=os.getenv("SCHEMADIFF_TEST_PG_DATABASE", "postgres"),
        driver="postgresql",
        schema=schema,
        connect_timeout=3,
        label=label
    )


@pytest.fixture(scope="module")
def schemas():
    """Create the old and new schemas, dropped again after the module."""
    config = connection_config(OLD_SCHEMA, "old")
    try:
        conn = psycopg2.connect(
            host=config.host,
            port=config.resolved_port,
            dbname=config.database_name,
            user=config.user,
            password=config.password,
            connect_timeout=config.connect_timeout
        )
    except psycopg2.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    conn.autocommit = True
    with conn.cursor() as cursor:
        cursor.execute(SETUP_SQL)

    yield connection_config(OLD_SCHEMA, "old"), connection_config(NEW_SCHEMA, "new")

    with conn.cursor() as cursor:
        cursor.execute(TEARDOWN_SQL)
    conn.close()


class TestPostgresComparison:
    """Compare two live schemas."""

    def test_schema_comparison(self, schemas):
        """Test tables, extra columns and format_type datatypes."""
        report = compare(*schemas)
        rows = {row.table_name: row for row in report.rows}

        assert list(rows) == ["active_users", "archive", "archive2", "logs", "orders", "users"]
        assert rows["active_users"].exists_new is False
        assert rows["active_users"].old_total_columns == 2
        assert rows["users"].new_extra_columns == ("email",)
        assert rows["orders"].datatype_changed_columns == ("status",)
        assert rows["logs"].exists_old is False
        assert rows["logs"].new_total_columns == 2

    def test_row_counts(self, schemas):
        """Test row counts and the absent-table-counts-as-zero rule."""
        report = compare(*schemas, CompareOptions(include_row_counts=True, max_workers=3, parallel_sides=True))
        rows = {row.table_name: row for row in report.rows}

        assert rows["users"].rows_matched is True
        assert (rows["orders"].old_rows, rows["orders"].new_rows) == (1, 2)
        assert rows["archive"].rows_matched is True
        assert rows["archive2"].rows_matched is False
        assert (rows["active_users"].old_rows, rows["active_users"].new_rows) == (2, 0)
        assert report.summary.row_mismatch_tables == 3

    def test_without_views(self, schemas):
        report = compare(*schemas, CompareOptions(include_views=False))

        assert [row.table_name for row in report.rows] == ["archive", "archive2", "logs", "orders", "users"]

    def test_describe_reports_format_type(self, schemas):
        """Test column types are reported as psql shows them."""
        old_config, _ = schemas

        with PostgresMetadataSource(old_config) as source:
            columns = source.describe_table("orders")

        assert [(c.name, c.data_type) for c in columns] == [
            ("id", "integer"),
            ("status", "character varying(10)"),
        ]

    def test_missing_table(self, schemas):
        old_config, _ = schemas

        with PostgresMetadataSource(old_config) as source:
            with pytest.raises(QueryError, match="does not exist"):
                source.describe_table("logs")

    def test_html_render(self, schemas):
        html = render(compare(*schemas), "html")

        assert "<td>email</td>" in html
