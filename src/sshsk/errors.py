"""
Error taxonomy for strategy configuration, storage, and migration.

Per-backup failures never escape a batch migration; they are recorded
in the result. Only configuration and precondition problems are raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import MigrationResult


class SSHSKError(Exception):
    """Base class for all SSH Secret Keeper errors."""


class ConfigurationError(SSHSKError):
    """Raised when strategy or provider parameters are missing or invalid."""


class StorageError(SSHSKError):
    """Raised when the backing secret store rejects an operation."""


class StorageConnectivityError(StorageError):
    """Raised when the backing store is unreachable or a call timed out."""


class BackupNotFoundError(StorageError):
    """Raised when a named backup does not exist under a Base Path."""

    def __init__(self, name: str, base_path: str):
        super().__init__(f"backup {name} not found at {base_path}")
        self.name = name
        self.base_path = base_path


class PartialMigrationError(SSHSKError):
    """Raised when a batch migration finished with failed backups."""

    def __init__(self, result: "MigrationResult"):
        failed = ", ".join(result.failed_backups)
        super().__init__(
            f"migration completed with {len(result.failed_backups)} "
            f"failure(s): {failed}"
        )
        self.result = result
