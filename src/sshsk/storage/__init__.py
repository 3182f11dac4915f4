"""
Secret store backends.

Vault (KV v2) is the default; the local provider keeps JSON files on
disk. The core only ever sees the StorageProvider contract.
"""

from __future__ import annotations

from ..errors import ConfigurationError
from ..models import AppConfig, StorageProviderType
from .base import StorageProvider
from .local import LocalProvider
from .vault import VaultProvider


def create_provider(config: AppConfig) -> StorageProvider:
    """Factory function to create the configured storage provider.

    Args:
        config: Application configuration.

    Returns:
        Instantiated StorageProvider.

    Raises:
        ConfigurationError: If the provider is unsupported or misconfigured.
    """
    provider = config.storage.provider
    if provider == StorageProviderType.VAULT:
        if not config.vault.address:
            raise ConfigurationError(
                "vault address not configured - set VAULT_ADDR or vault.address"
            )
        return VaultProvider(config.vault)
    if provider == StorageProviderType.LOCAL:
        if config.local.root is None:
            raise ConfigurationError("local store root not configured - set local.root")
        return LocalProvider(config.local.root)
    raise ConfigurationError(f"unsupported storage provider: {provider}")


__all__ = ["LocalProvider", "StorageProvider", "VaultProvider", "create_provider"]
