"""
Migration engine -- move a backup set between storage strategies.

    validate  ->  list source, scan destination for name conflicts,
                  attach strategy guidance
    migrate   ->  copy every backup (or pretend to, in a dry run),
                  annotating each copy with provenance
    cleanup   ->  separate, explicit: delete migrated names at the source
                  and confirm they left the listing

Backups are processed one at a time. A failure on one name is recorded
and the batch carries on; nothing here retries a failed copy. Source
data is never touched unless the caller asks for cleanup.
"""

from __future__ import annotations

import copy
import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from .errors import StorageError
from .models import (
    BackupOutcome,
    CleanupResult,
    MigrationConfig,
    MigrationResult,
    OutcomeStatus,
    ValidationResult,
    VaultConfig,
)
from .storage.base import StorageProvider
from .strategy import (
    IdentityProvider,
    PathGenerator,
    StorageStrategy,
    get_migration_info,
)

logger = logging.getLogger("sshsk.migration")


class MigrationState(str, Enum):
    """Lifecycle of one migration operation."""

    CREATED = "created"
    LISTED = "listed"
    VALIDATED = "validated"
    DRY_RUN = "dry_run"
    MIGRATING = "migrating"
    COMPLETED = "completed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def wait_until_absent(
    list_names: Callable[[], Iterable[str]],
    name: str,
    attempts: int = 5,
    initial_delay: float = 0.5,
    backoff: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll a listing until ``name`` disappears from it.

    Listings may lag behind deletes, so a single re-list proves nothing.
    The listing is checked up to ``attempts`` times, sleeping
    ``initial_delay``, then ``initial_delay * backoff``, ... in between.
    A failing listing counts as an unconfirmed attempt.

    Returns:
        bool: True once the name is gone, False if it was still listed
        after the last attempt.
    """
    delay = initial_delay
    for attempt in range(1, attempts + 1):
        try:
            if name not in set(list_names()):
                return True
        except StorageError as exc:
            logger.debug("Listing failed while confirming %s: %s", name, exc)

        if attempt < attempts:
            logger.debug(
                "%s still listed (attempt %d/%d), retrying in %.2fs",
                name, attempt, attempts, delay,
            )
            sleep(delay)
            delay *= backoff
    return False


class MigrationService:
    """Moves the backups of one Base Path to another.

    Created once per migration. Holds no state across operations besides
    the strategy pair, both paths, and the lifecycle marker.

    Args:
        provider: Storage provider serving both Base Paths.
        from_strategy: Strategy the backups are stored under today.
        to_strategy: Strategy to move them to.
        from_path: Source Base Path.
        to_path: Destination Base Path.
        migration_config: Delete confirmation polling settings.
        clock: Returns the current time; injectable for tests.
        sleep: Sleep function used while confirming deletes.
    """

    def __init__(
        self,
        provider: StorageProvider,
        from_strategy: StorageStrategy,
        to_strategy: StorageStrategy,
        from_path: str,
        to_path: str,
        migration_config: Optional[MigrationConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.from_strategy = from_strategy
        self.to_strategy = to_strategy
        self.from_path = from_path
        self.to_path = to_path
        self.migration_config = migration_config or MigrationConfig()
        self._clock = clock
        self._sleep = sleep
        self.state = MigrationState.CREATED

    @classmethod
    def create(
        cls,
        provider: StorageProvider,
        from_strategy: StorageStrategy,
        to_strategy: StorageStrategy,
        custom_prefix: str = "",
        namespace: str = "",
        identity: Optional[IdentityProvider] = None,
        **kwargs: Any,
    ) -> "MigrationService":
        """Build a service, deriving both Base Paths from their strategies.

        Raises:
            ConfigurationError: If either strategy is misconfigured.
        """
        from_path = PathGenerator(
            from_strategy, custom_prefix, namespace, identity
        ).generate_base_path()
        to_path = PathGenerator(
            to_strategy, custom_prefix, namespace, identity
        ).generate_base_path()
        return cls(provider, from_strategy, to_strategy, from_path, to_path, **kwargs)

    @classmethod
    def from_config(
        cls,
        provider: StorageProvider,
        vault_config: VaultConfig,
        from_strategy: StorageStrategy,
        to_strategy: StorageStrategy,
        identity: Optional[IdentityProvider] = None,
        **kwargs: Any,
    ) -> "MigrationService":
        """Build a service using the configured custom prefix and backup namespace."""
        return cls.create(
            provider,
            from_strategy,
            to_strategy,
            custom_prefix=vault_config.custom_prefix,
            namespace=vault_config.backup_namespace,
            identity=identity,
            **kwargs,
        )

    def list_backups_to_migrate(self) -> list[str]:
        """List every backup name at the source Base Path.

        Raises:
            StorageError: If the source cannot be listed.
        """
        backups = list(self.provider.list_backups(self.from_path))
        self.state = MigrationState.LISTED
        return backups

    def validate_migration(self) -> ValidationResult:
        """Check that the migration is safe and worth doing.

        Never raises for the expected failure modes: they come back as
        ``valid=False`` with an error message.
        """
        if self.from_path == self.to_path:
            return ValidationResult(
                valid=False,
                errors=("Source and destination paths are identical - no migration needed",),
            )

        try:
            source_backups = self.list_backups_to_migrate()
        except StorageError as exc:
            return ValidationResult(
                valid=False,
                errors=(f"Cannot access source location: {exc}",),
            )

        if not source_backups:
            return ValidationResult(
                valid=False,
                errors=("No backups found at source location",),
            )

        warnings: list[str] = []
        conflicts: list[str] = []
        try:
            dest_backups = self.provider.list_backups(self.to_path)
        except StorageError as exc:
            logger.warning("Cannot list destination %s: %s", self.to_path, exc)
            warnings.append(
                f"Cannot list destination location - name conflicts not checked: {exc}"
            )
            dest_backups = []

        if dest_backups:
            warnings.append(
                f"Destination already contains {len(dest_backups)} backups"
                " - potential naming conflicts"
            )
            existing = set(dest_backups)
            conflicts = [name for name in source_backups if name in existing]
            if conflicts:
                warnings.append(
                    f"Backup name conflicts detected: {', '.join(conflicts)}"
                )

        info = get_migration_info(
            self.from_strategy, self.to_strategy, self.from_path, self.to_path
        )
        warnings.extend(info.risks)
        if not info.guidance_available:
            warnings.append(
                f"No migration guidance available for {self.from_strategy.value}"
                f" -> {self.to_strategy.value}; review the destination layout manually"
            )

        self.state = MigrationState.VALIDATED
        return ValidationResult(
            valid=True,
            warnings=tuple(warnings),
            benefits=tuple(info.benefits),
            conflicts=tuple(conflicts),
            source_backup_count=len(source_backups),
        )

    def _annotate(self, record: Any, name: str) -> dict[str, Any]:
        if not isinstance(record, dict):
            raise StorageError(f"invalid backup data format for {name}")

        annotated = copy.deepcopy(record)
        metadata = annotated.setdefault("metadata", {})
        if not isinstance(metadata, dict):
            raise StorageError(f"invalid metadata format for {name}")

        previous = metadata.get("migration")
        if previous is not None:
            metadata.setdefault("migration_history", []).append(previous)

        metadata["migration"] = {
            "migrated_from": self.from_path,
            "migrated_to": self.to_path,
            "migrated_at": self._clock().isoformat(),
            "migration_strategy": f"{self.from_strategy.value}->{self.to_strategy.value}",
        }
        return annotated

    def migrate_backup(self, name: str) -> None:
        """Copy one backup to the destination with provenance attached.

        Overwrites a same-named backup at the destination, so retrying
        is safe.

        Raises:
            BackupNotFoundError: If the backup is absent at the source.
            StorageError: If reading or writing fails.
        """
        logger.info(
            "Migrating backup %s from %s to %s", name, self.from_path, self.to_path
        )
        record = self.provider.get_backup(self.from_path, name)
        self.provider.store_backup(self.to_path, name, self._annotate(record, name))
        logger.info("Backup %s migrated to %s", name, self.to_path)

    def migrate_all_backups(self, dry_run: bool = False) -> MigrationResult:
        """Migrate every backup at the source, one at a time.

        Per-backup failures are recorded in ``failed_backups`` and never
        stop the loop. In a dry run nothing is written and every listed
        name is reported as migrated.

        Raises:
            StorageError: If the source cannot be listed at all.
        """
        backups = self.list_backups_to_migrate()
        result = MigrationResult(
            from_strategy=self.from_strategy,
            to_strategy=self.to_strategy,
            from_path=self.from_path,
            to_path=self.to_path,
            total_backups=len(backups),
            dry_run=dry_run,
            start_time=self._clock(),
        )

        if not backups:
            logger.info("No backups found to migrate at %s", self.from_path)
        else:
            logger.info(
                "Starting migration of %d backups (%s -> %s, dry_run=%s)",
                len(backups), self.from_strategy.value, self.to_strategy.value, dry_run,
            )

        self.state = MigrationState.DRY_RUN if dry_run else MigrationState.MIGRATING
        for name in backups:
            if dry_run:
                logger.info("[DRY RUN] Would migrate backup %s", name)
                result.record(BackupOutcome(name=name, status=OutcomeStatus.WOULD_MIGRATE))
                continue

            try:
                self.migrate_backup(name)
            except StorageError as exc:
                logger.error("Failed to migrate backup %s: %s", name, exc)
                result.record(
                    BackupOutcome(name=name, status=OutcomeStatus.FAILED, error=str(exc))
                )
                continue
            result.record(BackupOutcome(name=name, status=OutcomeStatus.MIGRATED))

        result.end_time = self._clock()
        result.duration = result.end_time - result.start_time
        self.state = MigrationState.COMPLETED

        logger.info(
            "Migration completed: %d migrated, %d failed in %.2fs",
            len(result.migrated_backups),
            len(result.failed_backups),
            result.duration.total_seconds(),
        )
        return result

    def cleanup_source_backups(
        self,
        names: Iterable[str],
        dry_run: bool = False,
        confirm: bool = True,
    ) -> CleanupResult:
        """Delete migrated backups from the source Base Path.

        Call only with names a real (non dry-run) migration reported as
        migrated; the service does not remember them between calls.
        Failures are logged and skipped.

        Args:
            names: Backup names to delete at the source.
            dry_run: Report what would be deleted without deleting.
            confirm: Poll the source listing until each deleted name is gone.

        Returns:
            CleanupResult: One outcome per name.
        """
        result = CleanupResult(base_path=self.from_path, dry_run=dry_run)
        names = list(names)
        if not names:
            return result

        logger.info(
            "Starting cleanup of %d source backups at %s (dry_run=%s)",
            len(names), self.from_path, dry_run,
        )
        cfg = self.migration_config

        for name in names:
            if dry_run:
                logger.info("[DRY RUN] Would delete source backup %s", name)
                result.outcomes.append(
                    BackupOutcome(name=name, status=OutcomeStatus.WOULD_DELETE)
                )
                continue

            try:
                self.provider.delete_backup(self.from_path, name)
            except StorageError as exc:
                logger.error("Failed to delete source backup %s: %s", name, exc)
                result.outcomes.append(
                    BackupOutcome(name=name, status=OutcomeStatus.FAILED, error=str(exc))
                )
                continue

            if confirm and not wait_until_absent(
                lambda: self.provider.list_backups(self.from_path),
                name,
                attempts=cfg.confirm_attempts,
                initial_delay=cfg.confirm_initial_delay,
                backoff=cfg.confirm_backoff,
                sleep=self._sleep,
            ):
                logger.warning("Source backup %s still listed after delete", name)
                result.outcomes.append(
                    BackupOutcome(
                        name=name,
                        status=OutcomeStatus.UNCONFIRMED,
                        error="still listed after delete",
                    )
                )
                continue

            logger.info("Source backup %s deleted", name)
            result.outcomes.append(BackupOutcome(name=name, status=OutcomeStatus.DELETED))

        return result
