"""Shared utilities for all CLI command modules.

Provides the Rich console instance, logging setup, and config loading
used across every command group.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from rich.console import Console

from .. import SSHSK_HOME
from ..config import load_config
from ..errors import ConfigurationError
from ..models import AppConfig

console = Console()
logger = logging.getLogger("sshsk.cli")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(config: AppConfig, verbose: bool = False) -> None:
    """Configure root logging from config, or INFO when verbose."""
    level = logging.INFO if verbose else getattr(
        logging, config.logging.level.upper(), logging.WARNING
    )
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


def load_cli_config(home: str, verbose: bool = False) -> AppConfig:
    """Load config for a command, exiting with a message on bad config."""
    try:
        config = load_config(Path(home))
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/] {exc}")
        sys.exit(1)
    setup_logging(config, verbose)
    return config


__all__ = ["SSHSK_HOME", "console", "load_cli_config", "logger", "setup_logging"]
