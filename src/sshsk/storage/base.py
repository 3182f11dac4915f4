"""
Storage provider contract -- the only way the core talks to a secret store.

Every operation takes the Base Path explicitly so one provider instance
can serve both ends of a migration. Backup records are opaque dicts.

Assumed store properties: hierarchical namespace, read-after-write
consistency for reads by name, eventually-consistent prefix listing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StorageProvider(ABC):
    """Abstract secret store backend."""

    @abstractmethod
    def test_connection(self) -> None:
        """Verify the store is reachable and the credentials work.

        Raises:
            StorageConnectivityError: If the store cannot be reached.
        """

    @abstractmethod
    def list_backups(self, base_path: str) -> list[str]:
        """List backup names under ``<base_path>/backups``.

        Returns:
            Backup names; empty if nothing is stored there.
        """

    @abstractmethod
    def get_backup(self, base_path: str, name: str) -> dict[str, Any]:
        """Read one backup record.

        Raises:
            BackupNotFoundError: If no backup of that name exists.
        """

    @abstractmethod
    def store_backup(self, base_path: str, name: str, record: dict[str, Any]) -> None:
        """Write a backup record, replacing any existing one."""

    @abstractmethod
    def delete_backup(self, base_path: str, name: str) -> None:
        """Delete a backup record."""

    @abstractmethod
    def get_metadata(self, base_path: str) -> dict[str, Any]:
        """Read the metadata index of a Base Path ({} if absent)."""

    @abstractmethod
    def store_metadata(self, base_path: str, data: dict[str, Any]) -> None:
        """Write the metadata index of a Base Path."""

    def close(self) -> None:
        """Release any held resources or credentials."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider type name."""
