"""Shared test fixtures for sshsk."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import pytest

from sshsk.errors import BackupNotFoundError, StorageConnectivityError, StorageError
from sshsk.storage.base import StorageProvider


class FakeProvider(StorageProvider):
    """In-memory storage provider with failure injection.

    Attributes:
        backups: base_path -> {name: record}.
        fail: (operation, name) pairs that raise StorageError.
        list_lag: Number of listings after a delete that still show
            the deleted name (simulates an eventually-consistent index).
        writes, deletes: Every store/delete call, in order.
    """

    def __init__(self, backups: Optional[dict[str, dict[str, dict]]] = None):
        self.backups: dict[str, dict[str, dict]] = {
            base: dict(records) for base, records in (backups or {}).items()
        }
        self.metadata: dict[str, dict] = {}
        self.fail: set[tuple[str, str]] = set()
        self.list_failures: set[str] = set()
        self.list_lag = 0
        self.writes: list[tuple[str, str]] = []
        self.deletes: list[tuple[str, str]] = []
        self._ghosts: dict[tuple[str, str], int] = {}

    @property
    def name(self) -> str:
        return "fake"

    def _check(self, op: str, name: str) -> None:
        if (op, name) in self.fail:
            raise StorageConnectivityError(f"{op} {name}: simulated timeout")

    def test_connection(self) -> None:
        return None

    def list_backups(self, base_path: str) -> list[str]:
        if base_path in self.list_failures:
            raise StorageError(f"permission denied listing {base_path}")
        names = list(self.backups.get(base_path, {}))
        for key in list(self._ghosts):
            ghost_base, ghost_name = key
            if ghost_base != base_path:
                continue
            names.append(ghost_name)
            self._ghosts[key] -= 1
            if self._ghosts[key] <= 0:
                del self._ghosts[key]
        return names

    def get_backup(self, base_path: str, name: str) -> dict[str, Any]:
        self._check("get", name)
        try:
            return self.backups[base_path][name]
        except KeyError:
            raise BackupNotFoundError(name, base_path) from None

    def store_backup(self, base_path: str, name: str, record: dict[str, Any]) -> None:
        self._check("store", name)
        self.writes.append((base_path, name))
        self.backups.setdefault(base_path, {})[name] = record

    def delete_backup(self, base_path: str, name: str) -> None:
        self._check("delete", name)
        self.deletes.append((base_path, name))
        self.backups.get(base_path, {}).pop(name, None)
        if self.list_lag:
            self._ghosts[(base_path, name)] = self.list_lag

    def get_metadata(self, base_path: str) -> dict[str, Any]:
        return self.metadata.get(base_path, {})

    def store_metadata(self, base_path: str, data: dict[str, Any]) -> None:
        self.metadata[base_path] = data


def make_record(name: str, **metadata: Any) -> dict[str, Any]:
    """Build a backup record shaped like what the backup command stores."""
    return {
        "version": "1.0",
        "files": {"id_ed25519": {"content": "ZW5jcnlwdGVk", "permissions": "0600"}},
        "metadata": {"backup_name": name, "hostname": "alice-laptop", **metadata},
    }


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Empty in-memory provider."""
    return FakeProvider()


@pytest.fixture
def tmp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary home directory with a clean environment."""
    home = tmp_path / ".ssh-secret-keeper"
    home.mkdir()
    for var in ("VAULT_ADDR", "VAULT_TOKEN", "SSHSK_VAULT_TOKEN_FILE", "SSHSK_STORAGE_PROVIDER"):
        monkeypatch.delenv(var, raising=False)
    return home
