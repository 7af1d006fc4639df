"""
Vault Client Utility for Schema Comparison

Resolves database credentials for connection configurations from
HashiCorp Vault (KV v2), so passwords need not live in config files.
"""

import os
from typing import Dict, Any, Optional
import hvac
from hvac.exceptions import VaultError, InvalidPath
import logging

logger = logging.getLogger(__name__)

# Vault secret key -> connection config key
CREDENTIAL_KEYS = {
    "username": "user",
    "user": "user",
    "password": "password",
    "host": "host",
    "port": "port",
    "database": "database_name",
    "dbname": "database_name",
}


class VaultClient:
    """
    Client for reading database credentials from HashiCorp Vault.
    """

    def __init__(
        self,
        vault_url: Optional[str] = None,
        vault_token: Optional[str] = None,
        verify_ssl: bool = True,
        mount_point: str = "secret"
    ):
        """
        Initialize Vault client.

        Args:
            vault_url: Vault server URL (defaults to VAULT_ADDR env var)
            vault_token: Vault authentication token (defaults to VAULT_TOKEN env var)
            verify_ssl: Whether to verify SSL certificates
            mount_point: KV secrets engine mount point

        Raises:
            ValueError: If URL or token are missing
            VaultError: If authentication with Vault fails
        """
        self.vault_url = vault_url or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.mount_point = mount_point

        if not self.vault_url:
            raise ValueError("Vault URL must be provided via parameter or VAULT_ADDR environment variable")

        if not self.vault_token:
            raise ValueError("Vault token must be provided via parameter or VAULT_TOKEN environment variable")

        try:
            self.client = hvac.Client(
                url=self.vault_url,
                token=self.vault_token,
                verify=verify_ssl
            )

            if not self.client.is_authenticated():
                raise VaultError(f"Failed to authenticate with Vault at {self.vault_url}")

        except Exception as e:
            logger.error(f"Failed to initialize Vault client: {e}")
            raise VaultError(f"Vault initialization failed: {e}") from e

        logger.info(f"Connected to Vault at {self.vault_url}")

    def get_secret(self, path: str) -> Dict[str, Any]:
        """
        Read a KV v2 secret.

        Args:
            path: Secret path relative to the mount point

        Returns:
            Secret data dictionary

        Raises:
            InvalidPath: If the secret does not exist or is empty
            VaultError: If the read fails
        """
        logger.debug(f"Reading secret {self.mount_point}/{path}")

        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self.mount_point
            )
        except VaultError:
            raise
        except Exception as e:
            logger.error(f"Failed to read secret {path}: {e}")
            raise VaultError(f"Secret retrieval failed: {e}") from e

        if not response or "data" not in response:
            raise InvalidPath(f"No data found at path: {path}")

        return response["data"].get("data", {})

    def get_database_credentials(self, path: str) -> Dict[str, Any]:
        """
        Read database credentials and map them to connection config keys.

        Recognized secret keys are username/user, password, host, port and
        database/dbname; anything else is ignored.

        Args:
            path: Secret path holding the credentials

        Returns:
            Dictionary keyed like ConnectionConfig fields

        Raises:
            InvalidPath: If the secret does not exist
            VaultError: If the read fails
        """
        secret = self.get_secret(path)

        credentials = {
            CREDENTIAL_KEYS[key]: value
            for key, value in secret.items()
            if key in CREDENTIAL_KEYS
        }

        logger.info(f"Retrieved database credentials from {path} ({', '.join(sorted(credentials))})")
        return credentials

