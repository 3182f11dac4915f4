"""
Configuration loading -- config.yaml plus environment overrides.

    ~/.ssh-secret-keeper/
    ├── config.yaml      # AppConfig as YAML
    ├── token            # Vault token (0600), unless VAULT_TOKEN is set
    └── store/           # default root of the local provider

Environment overrides win over the file:
    VAULT_ADDR               vault.address
    SSHSK_VAULT_TOKEN_FILE   vault.token_file
    SSHSK_STORAGE_PROVIDER   storage.provider
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from . import SSHSK_HOME
from .errors import ConfigurationError
from .models import AppConfig

logger = logging.getLogger("sshsk.config")

CONFIG_FILENAME = "config.yaml"


def get_home(home: Optional[Path] = None) -> Path:
    """Resolve the SSH Secret Keeper home directory."""
    return (home or Path(SSHSK_HOME)).expanduser()


def get_config_path(home: Optional[Path] = None) -> Path:
    """Path of config.yaml inside the home directory."""
    return get_home(home) / CONFIG_FILENAME


def _apply_env_overrides(data: dict) -> dict:
    vault = data.setdefault("vault", {})
    storage = data.setdefault("storage", {})

    if os.environ.get("VAULT_ADDR"):
        vault["address"] = os.environ["VAULT_ADDR"]
    if os.environ.get("SSHSK_VAULT_TOKEN_FILE"):
        vault["token_file"] = os.environ["SSHSK_VAULT_TOKEN_FILE"]
    if os.environ.get("SSHSK_STORAGE_PROVIDER"):
        storage["provider"] = os.environ["SSHSK_STORAGE_PROVIDER"].strip().lower()
    return data


def load_config(home: Optional[Path] = None) -> AppConfig:
    """Load configuration from disk and the environment.

    A missing config file is not an error; defaults apply.

    Args:
        home: Home directory. Defaults to $SSHSK_HOME or ~/.ssh-secret-keeper.

    Returns:
        AppConfig: Validated configuration with home-relative defaults filled in.

    Raises:
        ConfigurationError: If the file is not valid YAML or holds invalid values.
    """
    home_path = get_home(home)
    config_file = home_path / CONFIG_FILENAME

    data: dict = {}
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"error reading config file {config_file}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"config file {config_file} must contain a mapping")
        logger.debug("Loaded config from %s", config_file)

    try:
        config = AppConfig(**_apply_env_overrides(data))
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc

    if config.vault.token_file is None:
        config.vault.token_file = home_path / "token"
    if config.local.root is None:
        config.local.root = home_path / "store"
    return config


def save_config(config: AppConfig, home: Optional[Path] = None) -> Path:
    """Persist configuration to config.yaml.

    Returns:
        Path: The written config file.
    """
    config_file = get_config_path(home)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json", exclude_none=True)
    config_file.write_text(
        yaml.dump(data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    logger.info("Saved config to %s", config_file)
    return config_file
