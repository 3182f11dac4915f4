"""
Pydantic models for configuration and migration reporting.

Configuration models mirror config.yaml. Reporting models are built
fresh for every validation, migration and cleanup run.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import PartialMigrationError
from .strategy import StorageStrategy


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class StorageProviderType(str, Enum):
    """Supported secret store backends."""

    VAULT = "vault"
    LOCAL = "local"


class VaultConfig(BaseModel):
    """HashiCorp Vault connection and layout settings."""

    address: str = "http://localhost:8200"
    token_file: Optional[Path] = None
    mount_path: str = "ssh-backups"
    namespace: Optional[str] = None
    tls_skip_verify: bool = False
    request_timeout: float = Field(default=10.0, gt=0)

    storage_strategy: str = StorageStrategy.UNIVERSAL.value
    custom_prefix: str = ""
    backup_namespace: str = ""


class LocalStoreConfig(BaseModel):
    """Filesystem store for USB drives, NAS mounts, and offline use."""

    root: Optional[Path] = None


class StorageConfig(BaseModel):
    """Which backend holds the backups."""

    provider: StorageProviderType = StorageProviderType.VAULT


class MigrationConfig(BaseModel):
    """Delete confirmation polling for eventually-consistent listings."""

    confirm_attempts: int = Field(default=5, ge=1)
    confirm_initial_delay: float = Field(default=0.5, ge=0)
    confirm_backoff: float = Field(default=2.0, ge=1)


class LoggingConfig(BaseModel):
    """Log level for the command line."""

    level: str = "warning"


class AppConfig(BaseModel):
    """Complete SSH Secret Keeper configuration."""

    version: str = "1.0"
    storage: StorageConfig = Field(default_factory=StorageConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    local: LocalStoreConfig = Field(default_factory=LocalStoreConfig)
    migration: MigrationConfig = Field(default_factory=MigrationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# ---------------------------------------------------------------------------
# Migration reporting
# ---------------------------------------------------------------------------


class OutcomeStatus(str, Enum):
    """Per-backup result of a migration or cleanup step."""

    MIGRATED = "migrated"
    WOULD_MIGRATE = "would_migrate"
    DELETED = "deleted"
    WOULD_DELETE = "would_delete"
    UNCONFIRMED = "unconfirmed"
    FAILED = "failed"


class BackupOutcome(BaseModel):
    """What happened to one backup name."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: OutcomeStatus
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.FAILED


class ValidationResult(BaseModel):
    """Pre-flight verdict on a migration.

    Conflicts are advisory: a migration overwrites same-named backups
    at the destination, so they appear as warnings but leave ``valid``
    untouched.
    """

    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    benefits: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    source_backup_count: int = 0


class MigrationResult(BaseModel):
    """Outcome of a batch migration.

    ``migrated_backups`` and ``failed_backups`` partition the names
    listed at the start of the run. In a dry run every listed name is
    reported as migrated.
    """

    from_strategy: StorageStrategy
    to_strategy: StorageStrategy
    from_path: str
    to_path: str
    total_backups: int = 0
    migrated_backups: list[str] = Field(default_factory=list)
    failed_backups: list[str] = Field(default_factory=list)
    outcomes: list[BackupOutcome] = Field(default_factory=list)
    dry_run: bool = False
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: timedelta = timedelta(0)

    @property
    def partial_failure(self) -> bool:
        return bool(self.failed_backups)

    def record(self, outcome: BackupOutcome) -> None:
        """Append a per-backup outcome and keep the name lists in step."""
        self.outcomes.append(outcome)
        if outcome.ok:
            self.migrated_backups.append(outcome.name)
        else:
            self.failed_backups.append(outcome.name)

    def raise_for_failures(self) -> None:
        """Raise PartialMigrationError if any backup failed to migrate."""
        if self.failed_backups:
            raise PartialMigrationError(self)

    def summary(self) -> str:
        """Human-readable multi-line summary."""
        lines = [
            f"Migration from {self.from_strategy.value} to {self.to_strategy.value}:",
            f"  Source path: {self.from_path}",
            f"  Destination path: {self.to_path}",
            f"  Total backups: {self.total_backups}",
            f"  Successfully migrated: {len(self.migrated_backups)}",
            f"  Failed: {len(self.failed_backups)}",
            f"  Duration: {self.duration.total_seconds():.2f}s",
        ]
        if self.dry_run:
            lines.append("  [DRY RUN] - No actual changes made")
        if self.failed_backups:
            lines.append(f"  Failed backups: {', '.join(self.failed_backups)}")
        return "\n".join(lines) + "\n"


class CleanupResult(BaseModel):
    """Outcome of deleting migrated backups from the source Base Path."""

    base_path: str
    dry_run: bool = False
    outcomes: list[BackupOutcome] = Field(default_factory=list)

    def _names(self, *statuses: OutcomeStatus) -> list[str]:
        return [o.name for o in self.outcomes if o.status in statuses]

    @property
    def deleted(self) -> list[str]:
        return self._names(OutcomeStatus.DELETED, OutcomeStatus.WOULD_DELETE)

    @property
    def unconfirmed(self) -> list[str]:
        return self._names(OutcomeStatus.UNCONFIRMED)

    @property
    def failed(self) -> list[str]:
        return self._names(OutcomeStatus.FAILED)
