"""
Local provider -- JSON files on a plain filesystem.

For USB drives, NAS mounts, and machines without a Vault:

    <root>/<base>/backups/<name>.json
    <root>/<base>/metadata.json
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ..errors import BackupNotFoundError, StorageConnectivityError, StorageError
from .base import StorageProvider

logger = logging.getLogger("sshsk.storage.local")


class LocalProvider(StorageProvider):
    """Stores each backup as one JSON file below ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    @property
    def name(self) -> str:
        return "local"

    def _backups_dir(self, base_path: str) -> Path:
        return self.root / base_path / "backups"

    def _backup_file(self, base_path: str, name: str) -> Path:
        return self._backups_dir(base_path) / f"{name}.json"

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"failed to write {path}: {exc}") from exc

    def test_connection(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageConnectivityError(f"local store unavailable at {self.root}: {exc}") from exc

    def list_backups(self, base_path: str) -> list[str]:
        backups_dir = self._backups_dir(base_path)
        if not backups_dir.exists():
            return []
        try:
            return sorted(f.stem for f in backups_dir.glob("*.json"))
        except OSError as exc:
            raise StorageError(f"failed to list backups under {base_path}: {exc}") from exc

    def get_backup(self, base_path: str, name: str) -> dict[str, Any]:
        path = self._backup_file(base_path, name)
        if not path.exists():
            raise BackupNotFoundError(name, base_path)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"failed to read backup {name}: {exc}") from exc

    def store_backup(self, base_path: str, name: str, record: dict[str, Any]) -> None:
        self._write_json(self._backup_file(base_path, name), record)
        logger.info("Backup %s stored under %s", name, base_path)

    def delete_backup(self, base_path: str, name: str) -> None:
        path = self._backup_file(base_path, name)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to delete backup {name}: {exc}") from exc
        logger.info("Backup %s deleted from %s", name, base_path)

    def get_metadata(self, base_path: str) -> dict[str, Any]:
        path = self.root / base_path / "metadata.json"
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable metadata at %s: %s", path, exc)
            return {}

    def store_metadata(self, base_path: str, data: dict[str, Any]) -> None:
        self._write_json(self.root / base_path / "metadata.json", data)
