"""
Vault provider -- HashiCorp Vault KV v2 over the HTTP API.

Layout under the KV mount:

    <mount>/data/<base>/backups/<name>     backup record (versioned)
    <mount>/metadata/<base>/backups/       listing of backup names
    <mount>/data/<base>/metadata           per-Base-Path metadata index

Every request is bounded by ``request_timeout``. Timeouts and refused
connections surface as StorageConnectivityError so a batch can record
the in-flight backup as failed and move on.

Prerequisites:
- VAULT_ADDR (or vault.address in config.yaml)
- VAULT_TOKEN, or a token file readable only by its owner
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Any, Optional

import requests

from ..errors import (
    BackupNotFoundError,
    ConfigurationError,
    StorageConnectivityError,
    StorageError,
)
from ..models import VaultConfig
from .base import StorageProvider

logger = logging.getLogger("sshsk.storage.vault")


def load_token(token_file: Optional[Path]) -> str:
    """Load a Vault token: VAULT_TOKEN first, then the token file.

    Args:
        token_file: Path to a file holding the token.

    Returns:
        str: The token, stripped of whitespace.

    Raises:
        ConfigurationError: If no token is available, the file is
            group/world accessible, or the file is empty.
    """
    env_token = os.environ.get("VAULT_TOKEN", "").strip()
    if env_token:
        return env_token

    if token_file is None:
        raise ConfigurationError(
            "no Vault token found: VAULT_TOKEN is not set and no token file is configured"
        )

    path = Path(token_file).expanduser()
    try:
        mode = path.stat().st_mode
    except FileNotFoundError:
        raise ConfigurationError(
            f"no Vault token found: VAULT_TOKEN is not set and token file does not exist: {path}"
        ) from None
    except OSError as exc:
        raise ConfigurationError(f"cannot access token file {path}: {exc}") from exc

    perms = stat.S_IMODE(mode)
    if perms & 0o077:
        raise ConfigurationError(
            f"token file has insecure permissions {perms:04o} (should be 0600 or 0400)"
        )

    token = path.read_text(encoding="utf-8").strip()
    if not token:
        raise ConfigurationError(f"token file is empty: {path}")
    return token


class VaultProvider(StorageProvider):
    """Stores backups in a Vault KV v2 mount.

    Args:
        config: Vault connection settings.
        token: Explicit token. Loaded with load_token() when omitted.
        session: Optional requests session (tests, connection reuse).
    """

    def __init__(
        self,
        config: VaultConfig,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self._address = config.address.rstrip("/")
        self._mount = config.mount_path.strip("/")
        self._timeout = config.request_timeout

        self._session = session or requests.Session()
        self._session.headers["X-Vault-Token"] = token or load_token(config.token_file)
        if config.namespace:
            self._session.headers["X-Vault-Namespace"] = config.namespace
        self._session.verify = not config.tls_skip_verify

    @property
    def name(self) -> str:
        return "vault"

    def _api_call(
        self,
        method: str,
        endpoint: str,
        data: Optional[dict] = None,
    ) -> Optional[requests.Response]:
        """Make an authenticated Vault API call.

        Returns:
            The response, or None when Vault answered 404.

        Raises:
            StorageConnectivityError: On timeout or connection failure.
            StorageError: On any other error status or request failure.
        """
        url = f"{self._address}/v1/{endpoint}"
        try:
            resp = self._session.request(method, url, json=data, timeout=self._timeout)
        except requests.Timeout as exc:
            raise StorageConnectivityError(
                f"Vault {method} {endpoint} timed out after {self._timeout}s"
            ) from exc
        except requests.ConnectionError as exc:
            raise StorageConnectivityError(
                f"cannot reach Vault at {self._address}: {exc}"
            ) from exc
        except requests.RequestException as exc:
            raise StorageError(f"Vault {method} {endpoint} failed: {exc}") from exc

        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            raise StorageError(
                f"Vault {method} {endpoint} failed: {resp.status_code} {resp.text}"
            )
        return resp

    def _data(self, resp: requests.Response, endpoint: str) -> dict[str, Any]:
        """Return the top-level ``data`` object of a Vault reply."""
        try:
            body = resp.json()
        except ValueError as exc:
            raise StorageError(f"Vault returned a non-JSON response for {endpoint}: {exc}") from exc
        if not isinstance(body, dict):
            raise StorageError(f"Vault returned an unexpected response for {endpoint}")
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    def _data_path(self, base_path: str, *parts: str) -> str:
        return "/".join((self._mount, "data", base_path, *parts))

    def _metadata_path(self, base_path: str, *parts: str) -> str:
        return "/".join((self._mount, "metadata", base_path, *parts))

    def test_connection(self) -> None:
        try:
            resp = self._api_call("GET", "auth/token/lookup-self")
        except StorageConnectivityError:
            raise
        except StorageError as exc:
            raise StorageConnectivityError(f"token validation failed: {exc}") from exc
        if resp is None:
            raise StorageConnectivityError("token validation failed: lookup-self not found")
        logger.debug("Vault connection test successful")

    def list_backups(self, base_path: str) -> list[str]:
        endpoint = self._metadata_path(base_path, "backups")
        resp = self._api_call("LIST", endpoint)
        if resp is None:
            return []
        keys = self._data(resp, endpoint).get("keys") or []
        if not isinstance(keys, list):
            raise StorageError(f"invalid backup listing for {base_path}")
        backups = [k for k in keys if isinstance(k, str) and not k.endswith("/")]
        logger.debug("Listed %d backups under %s", len(backups), base_path)
        return backups

    def get_backup(self, base_path: str, name: str) -> dict[str, Any]:
        endpoint = self._data_path(base_path, "backups", name)
        resp = self._api_call("GET", endpoint)
        if resp is None:
            raise BackupNotFoundError(name, base_path)
        data = self._data(resp, endpoint).get("data")
        if not isinstance(data, dict):
            raise StorageError(f"invalid backup data format for {name}")
        return data

    def store_backup(self, base_path: str, name: str, record: dict[str, Any]) -> None:
        self._api_call(
            "POST", self._data_path(base_path, "backups", name), data={"data": record}
        )
        logger.info("Backup %s stored under %s", name, base_path)

    def delete_backup(self, base_path: str, name: str) -> None:
        # Removing the metadata entry drops every version, so the name
        # also leaves the listing.
        self._api_call("DELETE", self._metadata_path(base_path, "backups", name))
        logger.info("Backup %s deleted from %s", name, base_path)

    def get_metadata(self, base_path: str) -> dict[str, Any]:
        endpoint = self._data_path(base_path, "metadata")
        resp = self._api_call("GET", endpoint)
        if resp is None:
            return {}
        data = self._data(resp, endpoint).get("data")
        return data if isinstance(data, dict) else {}

    def store_metadata(self, base_path: str, data: dict[str, Any]) -> None:
        self._api_call("POST", self._data_path(base_path, "metadata"), data={"data": data})
        logger.debug("Metadata stored under %s", base_path)

    def close(self) -> None:
        self._session.headers.pop("X-Vault-Token", None)
        self._session.close()
        logger.debug("Vault provider closed")
