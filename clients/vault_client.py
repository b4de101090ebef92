"""
Ledger secrets: database and Valkey URLs from HashiCorp Vault.

AppRole authentication, KV v2 secrets under the 'ledger/' prefix only.
Each LEDGER_* environment variable, when set, replaces its Vault lookup
(local development and CI run without a Vault server).
"""

import logging
import os

import hvac
from hvac.exceptions import Forbidden, InvalidPath, Unauthorized

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "ledger"

# Process-wide client and secrets, keyed by path relative to the prefix
_vault_client_instance: "VaultClient | None" = None
_secret_cache: dict[str, dict[str, str]] = {}


class VaultClient:
    """Authenticated reader of the ledger's KV v2 secrets. Fails fast on missing config."""

    def __init__(self, vault_addr: str | None = None, vault_namespace: str | None = None):
        vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        vault_namespace = vault_namespace or os.getenv("VAULT_NAMESPACE")
        role_id = os.getenv("VAULT_ROLE_ID")
        secret_id = os.getenv("VAULT_SECRET_ID")

        if not vault_addr:
            raise ValueError("VAULT_ADDR environment variable is required")
        if not role_id or not secret_id:
            raise ValueError("VAULT_ROLE_ID and VAULT_SECRET_ID environment variables are required")

        self.client = hvac.Client(url=vault_addr, namespace=vault_namespace)
        try:
            response = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except Exception as e:
            logger.error("AppRole authentication failed: %s", e)
            raise PermissionError(f"AppRole authentication failed: {e}") from e
        self.client.token = response["auth"]["client_token"]

        if not self.client.is_authenticated():
            raise PermissionError("Vault authentication failed")

        logger.info("Vault client initialized: %s", vault_addr)

    def read(self, path: str) -> dict[str, str]:
        """
        Every field of the secret at ``ledger/<path>``.

        Raises:
            PermissionError: Path missing or not readable by this role
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath as e:
            raise PermissionError(f"Secret path '{full_path}' not found in Vault") from e
        except (Unauthorized, Forbidden) as e:
            raise PermissionError(f"Access denied to secret '{full_path}': {e}") from e
        return response["data"]["data"]

    def get_secret(self, path: str, field: str) -> str:
        """
        One field of ``ledger/<path>``.

        Raises:
            PermissionError: Path missing or not readable
            KeyError: Field not in the secret
        """
        return _field(self.read(path), path, field)


def _field(secret: dict[str, str], path: str, field: str) -> str:
    if field not in secret:
        raise KeyError(
            f"Field '{field}' not found in secret '{_SECRET_PREFIX}/{path}'. "
            f"Available: {', '.join(secret)}"
        )
    return secret[field]


def _resolve(path: str, field: str, env_override: str) -> str:
    """Environment override if set, else the (cached) Vault secret field."""
    override = os.getenv(env_override)
    if override:
        return override

    global _vault_client_instance
    if path not in _secret_cache:
        if _vault_client_instance is None:
            _vault_client_instance = VaultClient()
        _secret_cache[path] = _vault_client_instance.read(path)
    return _field(_secret_cache[path], path, field)


def get_database_url() -> str:
    """PostgreSQL URL for the application role (RLS enforced)."""
    return _resolve("database", "url", "LEDGER_DATABASE_URL")


def get_admin_database_url() -> str:
    """BYPASSRLS URL used for schema setup and test fixtures."""
    return _resolve("database", "admin_url", "LEDGER_ADMIN_DATABASE_URL")


def get_valkey_url() -> str:
    return _resolve("valkey", "url", "LEDGER_VALKEY_URL")
