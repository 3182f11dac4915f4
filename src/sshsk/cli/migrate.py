"""Migration commands: migrate, migrate-status, migrate-info."""

from __future__ import annotations

import sys
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from ._common import SSHSK_HOME, console, load_cli_config, logger
from ..errors import ConfigurationError, PartialMigrationError, StorageError
from ..migration import MigrationService
from ..models import AppConfig, CleanupResult, OutcomeStatus, ValidationResult
from ..storage import create_provider
from ..strategy import (
    PathGenerator,
    all_strategies,
    cross_machine_restore,
    get_migration_info,
    parse_strategy,
)


def _print_validation(validation: ValidationResult) -> None:
    if not validation.valid:
        console.print("[bold red]Migration validation failed:[/]")
        for err in validation.errors:
            console.print(f"  [red]•[/] {err}")
        return

    console.print("[bold green]Migration validation passed[/]")
    console.print(f"Source backups found: [bold]{validation.source_backup_count}[/]")

    if validation.benefits:
        console.print("\n[bold]Benefits:[/]")
        for benefit in validation.benefits:
            console.print(f"  [green]•[/] {benefit}")

    if validation.warnings:
        console.print("\n[bold yellow]Warnings:[/]")
        for warning in validation.warnings:
            console.print(f"  [yellow]•[/] {warning}")


def _print_cleanup(cleanup: CleanupResult) -> None:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Backup", style="cyan")
    table.add_column("Result")
    table.add_column("Detail", style="dim")

    styles = {
        OutcomeStatus.DELETED: "[green]deleted[/]",
        OutcomeStatus.WOULD_DELETE: "[cyan]would delete[/]",
        OutcomeStatus.UNCONFIRMED: "[yellow]unconfirmed[/]",
        OutcomeStatus.FAILED: "[red]failed[/]",
    }
    for outcome in cleanup.outcomes:
        table.add_row(outcome.name, styles.get(outcome.status, outcome.status.value), outcome.error or "")
    console.print(table)


def _service_paths(config: AppConfig, custom_prefix: Optional[str], namespace: Optional[str]) -> tuple[str, str]:
    prefix = config.vault.custom_prefix if custom_prefix is None else custom_prefix
    ns = config.vault.backup_namespace if namespace is None else namespace
    return prefix, ns


def register_migrate_commands(main: click.Group) -> None:
    """Register the migration commands."""

    @main.command("migrate")
    @click.option("--from", "from_name", required=True, help="Source storage strategy.")
    @click.option("--to", "to_name", required=True, help="Destination storage strategy.")
    @click.option("--dry-run", is_flag=True, help="Show what would be migrated without doing it.")
    @click.option("--cleanup", is_flag=True, help="Remove source backups after a successful migration.")
    @click.option("--force", is_flag=True, help="Skip confirmation prompts.")
    @click.option("--custom-prefix", default=None, help="Prefix for the custom strategy.")
    @click.option("--namespace", default=None, help="Namespace for the universal strategy.")
    @click.option("--home", default=SSHSK_HOME, type=click.Path(), help="SSH Secret Keeper home directory.")
    @click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr.")
    def migrate(
        from_name: str,
        to_name: str,
        dry_run: bool,
        cleanup: bool,
        force: bool,
        custom_prefix: Optional[str],
        namespace: Optional[str],
        home: str,
        verbose: bool,
    ):
        """Migrate backups between storage strategies.

        Strategies: universal (shared), user, machine-user (legacy), custom.

        Examples:

            sshsk migrate --from machine-user --to universal --dry-run

            sshsk migrate --from machine-user --to universal --cleanup
        """
        config = load_cli_config(home, verbose)
        prefix, ns = _service_paths(config, custom_prefix, namespace)

        try:
            from_strategy = parse_strategy(from_name)
            to_strategy = parse_strategy(to_name)
            provider = create_provider(config)
        except ConfigurationError as exc:
            console.print(f"[bold red]Configuration error:[/] {exc}")
            sys.exit(1)

        logger.info(
            "Starting backup migration %s -> %s (dry_run=%s, cleanup=%s)",
            from_strategy.value, to_strategy.value, dry_run, cleanup,
        )

        try:
            try:
                provider.test_connection()
                service = MigrationService.create(
                    provider, from_strategy, to_strategy,
                    custom_prefix=prefix, namespace=ns,
                    migration_config=config.migration,
                )
            except (ConfigurationError, StorageError) as exc:
                console.print(f"[bold red]{exc}[/]")
                sys.exit(1)

            console.print(
                f"\nValidating migration from [cyan]{from_strategy.value}[/] "
                f"([dim]{service.from_path}[/]) to [cyan]{to_strategy.value}[/] "
                f"([dim]{service.to_path}[/])..."
            )
            validation = service.validate_migration()
            _print_validation(validation)
            if not validation.valid:
                sys.exit(1)

            if not force and not dry_run:
                if not click.confirm("\nProceed with migration?", default=False):
                    console.print("Migration cancelled")
                    return

            console.print("\n[cyan]Starting migration...[/]")
            try:
                result = service.migrate_all_backups(dry_run=dry_run)
            except StorageError as exc:
                console.print(f"[bold red]Migration failed:[/] {exc}")
                sys.exit(1)

            console.print(Panel(
                result.summary().rstrip(),
                title="Dry Run" if dry_run else "Migration Result",
                border_style="red" if result.partial_failure else "green",
            ))

            try:
                result.raise_for_failures()
            except PartialMigrationError as exc:
                console.print(f"[bold red]{exc}[/]")
                console.print("[dim]Source backups preserved. Check logs for details.[/]")
                sys.exit(1)

            if dry_run:
                if cleanup:
                    preview = service.cleanup_source_backups(result.migrated_backups, dry_run=True)
                    console.print("\n[bold]Cleanup preview:[/]")
                    _print_cleanup(preview)
                console.print(
                    "[green]Dry run completed.[/] Run without --dry-run to migrate."
                )
                return

            console.print("[bold green]Migration completed successfully![/]")

            if not cleanup or not result.migrated_backups:
                return

            console.print("\n[cyan]Cleaning up source backups...[/]")
            if not force and not click.confirm(
                f"Delete {len(result.migrated_backups)} source backups?", default=False
            ):
                console.print("Cleanup cancelled - source backups preserved")
                return

            cleanup_result = service.cleanup_source_backups(result.migrated_backups)
            _print_cleanup(cleanup_result)
            if cleanup_result.failed or cleanup_result.unconfirmed:
                console.print(
                    "[yellow]Some source backups could not be deleted or confirmed. "
                    "Check logs for details.[/]"
                )
            else:
                console.print("[green]Source backups cleaned up successfully[/]")
        finally:
            provider.close()

    @main.command("migrate-status")
    @click.option("--home", default=SSHSK_HOME, type=click.Path(), help="SSH Secret Keeper home directory.")
    def migrate_status(home: str):
        """Show the current storage strategy and available strategies."""
        config = load_cli_config(home)
        vault = config.vault

        lines = [f"Storage Strategy: [cyan]{vault.storage_strategy}[/]"]
        if vault.backup_namespace:
            lines.append(f"Backup Namespace: {vault.backup_namespace}")
        if vault.custom_prefix:
            lines.append(f"Custom Prefix: {vault.custom_prefix}")

        try:
            strategy = parse_strategy(vault.storage_strategy)
            generator = PathGenerator(strategy, vault.custom_prefix, vault.backup_namespace)
            lines.append(f"Current Storage Path: [bold]{generator.generate_base_path()}[/]")
            lines.append(f"Description: {generator.get_strategy_description()}")
        except ConfigurationError as exc:
            lines.append(f"[yellow]Invalid current strategy: {exc}[/]")

        console.print()
        console.print(Panel("\n".join(lines), title="Current Configuration", border_style="bright_blue"))

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Strategy", style="cyan")
        table.add_column("Cross-machine")
        table.add_column("Description", style="dim")
        for strategy, description in all_strategies().items():
            reachable = "[green]yes[/]" if cross_machine_restore(strategy) else "[red]no[/]"
            table.add_row(strategy.value, reachable, description)
        console.print(table)
        console.print()

    @main.command("migrate-info")
    @click.option("--from", "from_name", required=True, help="Source storage strategy.")
    @click.option("--to", "to_name", required=True, help="Destination storage strategy.")
    @click.option("--home", default=SSHSK_HOME, type=click.Path(), help="SSH Secret Keeper home directory.")
    def migrate_info(from_name: str, to_name: str, home: str):
        """Show benefits and risks of moving between two strategies."""
        config = load_cli_config(home)
        prefix, ns = _service_paths(config, None, None)

        try:
            from_strategy = parse_strategy(from_name)
            to_strategy = parse_strategy(to_name)
            from_path = PathGenerator(from_strategy, prefix, ns).generate_base_path()
            to_path = PathGenerator(to_strategy, prefix, ns).generate_base_path()
        except ConfigurationError as exc:
            console.print(f"[bold red]Configuration error:[/] {exc}")
            sys.exit(1)

        info = get_migration_info(from_strategy, to_strategy, from_path, to_path)
        lines = [
            f"From: [cyan]{from_strategy.value}[/] ({from_path})",
            f"To:   [cyan]{to_strategy.value}[/] ({to_path})",
        ]
        if not info.guidance_available:
            lines.append("[dim]No migration guidance available for this pair.[/]")
        for benefit in info.benefits:
            lines.append(f"[green]+[/] {benefit}")
        for risk in info.risks:
            lines.append(f"[yellow]![/] {risk}")

        console.print()
        console.print(Panel("\n".join(lines), title="Migration Info", border_style="magenta"))
