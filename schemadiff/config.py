"""
Configuration for Schema Comparison

Connection settings for the old and new database plus comparison options.
Values are merged from a YAML file, SCHEMADIFF_* environment variables and
explicit overrides (CLI flags), in increasing order of precedence.

Example YAML:

    old:
      driver: mysql
      host: localhost
      user: root
      password: ""
      database_name: shopware
    new:
      driver: mysql
      host: localhost
      user: root
      vault_path: shopware-new-credentials
      database_name: shopware_6762
    options:
      include_row_counts: true
      exclude_tables: ["log_%"]
    vault:
      mount_point: secret
"""

import logging
import os
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from hvac.exceptions import VaultError

from schemadiff.errors import ConfigurationError
from schemadiff.filters import TableFilter
from schemadiff.utils.vault_client import VaultClient

logger = logging.getLogger(__name__)

SUPPORTED_DRIVERS = ("mysql", "postgresql")

DEFAULT_PORTS = {
    "mysql": 3306,
    "postgresql": 5432,
}

DRIVER_ALIASES = {
    "mysql": "mysql",
    "mariadb": "mysql",
    "postgresql": "postgresql",
    "postgres": "postgresql",
    "pg": "postgresql",
}

# Accepted spellings of connection keys
KEY_ALIASES = {
    "dbname": "database_name",
    "database": "database_name",
    "db": "database_name",
    "username": "user",
}

CONNECTION_KEYS = (
    "host", "user", "password", "database_name", "driver", "port", "schema",
    "connect_timeout", "query_timeout", "label", "vault_path",
)

ENV_KEYS = {
    "HOST": "host",
    "USER": "user",
    "PASSWORD": "password",
    "DATABASE": "database_name",
    "DRIVER": "driver",
    "PORT": "port",
    "SCHEMA": "schema",
}

ENV_PREFIX = "SCHEMADIFF"


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Connection parameters identifying one database to snapshot.

    Attributes:
        host: Database host
        user: Database user
        password: Database password (may be empty)
        database_name: Database (MySQL) or database (PostgreSQL) name
        driver: "mysql" or "postgresql"
        port: Port, driver default when None
        schema: PostgreSQL schema to inspect (default "public")
        connect_timeout: Connection timeout in seconds
        query_timeout: Per-statement timeout in seconds (None for no limit)
        label: Name shown in reports (defaults to database_name)
        vault_path: Vault secret path holding credentials
    """

    host: str = ""
    user: str = ""
    password: str = ""
    database_name: str = ""
    driver: str = "mysql"
    port: Optional[int] = None
    schema: Optional[str] = None
    connect_timeout: int = 10
    query_timeout: Optional[int] = None
    label: Optional[str] = None
    vault_path: Optional[str] = None

    @property
    def name(self) -> str:
        return self.label or self.database_name

    @property
    def resolved_port(self) -> int:
        return self.port or DEFAULT_PORTS.get(self.driver, 0)

    def validate(self) -> None:
        """
        Check that the configuration can identify a database.

        Raises:
            ConfigurationError: If a required parameter is missing or invalid
        """
        missing = [key for key in ("host", "user", "database_name") if not getattr(self, key)]
        if missing:
            raise ConfigurationError(
                f"Connection '{self.name or '?'}' is missing required parameters: {', '.join(missing)}"
            )

        if self.driver not in SUPPORTED_DRIVERS:
            raise ConfigurationError(
                f"Unsupported driver '{self.driver}'. Must be one of {list(SUPPORTED_DRIVERS)}"
            )

        if self.port is not None and self.port <= 0:
            raise ConfigurationError(f"Invalid port for '{self.name}': {self.port}")

        if self.connect_timeout <= 0:
            raise ConfigurationError(f"Invalid connect_timeout for '{self.name}': {self.connect_timeout}")

        if self.query_timeout is not None and self.query_timeout <= 0:
            raise ConfigurationError(f"Invalid query_timeout for '{self.name}': {self.query_timeout}")

    def describe(self) -> str:
        """Human-readable target without credentials."""
        return f"{self.driver}://{self.user}@{self.host}:{self.resolved_port}/{self.database_name}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConnectionConfig":
        """
        Build a configuration from a plain dictionary.

        Args:
            data: Connection keys (aliases such as dbname are accepted)

        Returns:
            ConnectionConfig (not yet validated)

        Raises:
            ConfigurationError: If keys are unknown or values malformed
        """
        values = normalize_connection_dict(data)

        try:
            for key in ("port", "connect_timeout", "query_timeout"):
                if values.get(key) is not None:
                    values[key] = int(values[key])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid numeric connection parameter: {e}") from e

        for key in ("host", "user", "password", "database_name"):
            if values.get(key) is None:
                values.pop(key, None)
            else:
                values[key] = str(values[key])

        return cls(**values)


@dataclass(frozen=True)
class CompareOptions:
    """
    Switches controlling one comparison run.

    Attributes:
        include_row_counts: Count and compare rows per table
        include_datatypes: Compare column data types
        table_filter: Include/exclude table patterns
        max_workers: Worker threads per side for per-table queries
        parallel_sides: Capture old and new snapshots concurrently
        include_views: List views along with base tables
        cancel_event: Event that aborts the run when set
    """

    include_row_counts: bool = False
    include_datatypes: bool = True
    table_filter: TableFilter = field(default_factory=TableFilter)
    max_workers: int = 1
    parallel_sides: bool = False
    include_views: bool = True
    cancel_event: Optional[threading.Event] = field(default=None, compare=False)

    def validate(self) -> None:
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")


@dataclass(frozen=True)
class ComparisonConfig:
    """Both connection configurations plus run options."""

    old: ConnectionConfig
    new: ConnectionConfig
    options: CompareOptions = field(default_factory=CompareOptions)


def normalize_connection_dict(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map key aliases onto ConnectionConfig field names.

    Raises:
        ConfigurationError: If an unknown key is present
    """
    values: Dict[str, Any] = {}

    for key, value in (data or {}).items():
        key = KEY_ALIASES.get(key, key)
        if key not in CONNECTION_KEYS:
            raise ConfigurationError(f"Unknown connection parameter: {key}")
        values[key] = value

    if values.get("driver") is not None:
        driver = str(values["driver"]).lower()
        values["driver"] = DRIVER_ALIASES.get(driver, driver)

    return values


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML configuration file.

    Args:
        path: File path

    Returns:
        Parsed configuration dictionary

    Raises:
        ConfigurationError: If the file is missing or not valid YAML
    """
    path = Path(path)

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root in {path} must be a mapping")

    logger.debug(f"Loaded configuration file {path}")
    return data


def env_connection_overrides(side: str, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """
    Collect SCHEMADIFF_<SIDE>_* environment variables for one side.

    Args:
        side: "old" or "new"
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Dictionary of connection keys found in the environment
    """
    environ = os.environ if environ is None else environ
    prefix = f"{ENV_PREFIX}_{side.upper()}_"

    return {
        key: environ[prefix + suffix]
        for suffix, key in ENV_KEYS.items()
        if prefix + suffix in environ
    }


def _bool_option(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"Option {key} must be true or false, got {value!r}")
    return value


def build_options(data: Mapping[str, Any]) -> CompareOptions:
    """
    Build CompareOptions from the ``options`` section of a config file.

    Raises:
        ConfigurationError: If an option is unknown or has the wrong type
    """
    known = {
        "include_row_counts", "include_datatypes", "include_tables",
        "exclude_tables", "max_workers", "parallel_sides", "include_views",
    }
    unknown = set(data or {}) - known
    if unknown:
        raise ConfigurationError(f"Unknown options: {', '.join(sorted(unknown))}")

    data = data or {}
    try:
        max_workers = int(data.get("max_workers", 1))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid max_workers: {e}") from e

    return CompareOptions(
        include_row_counts=_bool_option(data, "include_row_counts", False),
        include_datatypes=_bool_option(data, "include_datatypes", True),
        table_filter=TableFilter(
            include=list(data.get("include_tables") or []),
            exclude=list(data.get("exclude_tables") or []),
        ),
        max_workers=max_workers,
        parallel_sides=_bool_option(data, "parallel_sides", False),
        include_views=_bool_option(data, "include_views", True),
    )


def resolve_vault_credentials(
    values: Dict[str, Any],
    vault_settings: Optional[Mapping[str, Any]] = None,
    vault_client: Optional[VaultClient] = None
) -> Dict[str, Any]:
    """
    Fill credentials from Vault when ``vault_path`` is set.

    Values already present in *values* take precedence over the secret.

    Raises:
        ConfigurationError: If Vault is unreachable or the secret is missing
    """
    path = values.get("vault_path")
    if not path:
        return values

    vault_settings = vault_settings or {}

    try:
        client = vault_client or VaultClient(
            vault_url=vault_settings.get("url"),
            vault_token=vault_settings.get("token"),
            verify_ssl=vault_settings.get("verify_ssl", True),
            mount_point=vault_settings.get("mount_point", "secret"),
        )
        credentials = client.get_database_credentials(path)
    except (ValueError, VaultError) as e:
        raise ConfigurationError(f"Could not read credentials from Vault path '{path}': {e}") from e

    merged = dict(credentials)
    merged.update({key: value for key, value in values.items() if value not in (None, "")})
    return merged


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    environ: Optional[Mapping[str, str]] = None,
    vault_client: Optional[VaultClient] = None
) -> ComparisonConfig:
    """
    Load and validate the full comparison configuration.

    Args:
        path: Optional YAML configuration file
        overrides: Per-side overrides, e.g. {"old": {"host": "db1"}, "options": {...}}
        environ: Environment mapping (defaults to os.environ)
        vault_client: Vault client to use instead of building one

    Returns:
        Validated ComparisonConfig

    Raises:
        ConfigurationError: If the configuration is incomplete or invalid
    """
    data = read_config_file(path) if path else {}
    overrides = overrides or {}

    sides = {}
    for side in ("old", "new"):
        section = data.get(side) or {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"Section '{side}' must be a mapping")

        values = normalize_connection_dict(section)
        values.update(normalize_connection_dict(env_connection_overrides(side, environ)))
        values.update(normalize_connection_dict(
            {k: v for k, v in (overrides.get(side) or {}).items() if v is not None}
        ))
        values = resolve_vault_credentials(values, data.get("vault"), vault_client)

        config = ConnectionConfig.from_dict(values)
        if not config.label:
            config = replace(config, label=config.database_name or side)
        config.validate()
        sides[side] = config

    option_values = dict(data.get("options") or {})
    option_values.update({k: v for k, v in (overrides.get("options") or {}).items() if v is not None})
    options = build_options(option_values)
    options.validate()

    logger.info(f"Comparing {sides['old'].describe()} with {sides['new'].describe()}")
    return ComparisonConfig(old=sides["old"], new=sides["new"], options=options)
