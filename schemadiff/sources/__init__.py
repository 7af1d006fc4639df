"""
Metadata Sources

Database-specific MetadataSource implementations and snapshot capture.

Usage:
    from schemadiff.sources import create_source, capture_snapshot

    with create_source(config) as source:
        snapshot = capture_snapshot(source, include_row_counts=True)
"""

from schemadiff.config import ConnectionConfig
from schemadiff.errors import ConfigurationError
from schemadiff.sources.base import MetadataSource, capture_snapshot, capture_table
from schemadiff.sources.mysql import MySQLMetadataSource
from schemadiff.sources.postgres import PostgresMetadataSource

SOURCE_TYPES = {
    "mysql": MySQLMetadataSource,
    "postgresql": PostgresMetadataSource,
}


def create_source(config: ConnectionConfig) -> MetadataSource:
    """
    Open a MetadataSource for a connection configuration.

    Args:
        config: Connection configuration

    Returns:
        Connected MetadataSource

    Raises:
        ConfigurationError: If the configuration is invalid
        DatabaseConnectionError: If the connection fails
    """
    config.validate()

    source_type = SOURCE_TYPES.get(config.driver)
    if source_type is None:
        raise ConfigurationError(f"No metadata source for driver '{config.driver}'")

    return source_type(config)


__all__ = [
    "MetadataSource",
    "MySQLMetadataSource",
    "PostgresMetadataSource",
    "capture_snapshot",
    "capture_table",
    "create_source",
]
