"""
SSH Secret Keeper CLI.

The main Click group is defined here and each command group registers
itself from its own module.

Entry point: sshsk.cli:main
"""

from __future__ import annotations

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="sshsk")
def main():
    """SSH Secret Keeper: SSH key backups in your secret store.

    Back up once. Restore from any machine.
    """


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .migrate import register_migrate_commands

register_migrate_commands(main)
