"""
Error Types for Schema Comparison

Every failure surfaced by schemadiff derives from SchemaDiffError so callers
can install a single error boundary. Driver exceptions are wrapped, never
swallowed.
"""

from typing import Optional


class SchemaDiffError(Exception):
    """Base class for all schema comparison errors."""
    pass


class DatabaseConnectionError(SchemaDiffError):
    """Raised when a database connection cannot be established or used."""
    pass


class QueryError(SchemaDiffError):
    """Raised when a metadata or row count query fails."""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.table = table


class ConfigurationError(SchemaDiffError):
    """Raised when connection parameters are missing or invalid."""
    pass


class ComparisonCancelled(SchemaDiffError):
    """Raised when a comparison run is cancelled before completion."""
    pass
