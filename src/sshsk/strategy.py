"""
Storage strategies -- where a backup set lives in the secret store.

Each strategy derives a Base Path that namespaces every backup and the
metadata index of one backup set:

    universal      shared[/<namespace>]/backups/<name>
    user           users/<username>/backups/<name>
    machine-user   users/<hostname>-<username>/backups/<name>   (legacy)
    custom         <prefix>/backups/<name>

Path generation is a pure function of its inputs. Hostname and username
come from an injected identity provider so the generator never reaches
into global state on its own.
"""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from .errors import ConfigurationError
from .paths import sanitize_path_component

UNKNOWN_HOST = "unknown-host"
UNKNOWN_USER = "unknown-user"


class StorageStrategy(str, Enum):
    """Supported Base Path layouts."""

    UNIVERSAL = "universal"
    USER = "user"
    MACHINE_USER = "machine-user"
    CUSTOM = "custom"


_STRATEGY_ALIASES = {
    "universal": StorageStrategy.UNIVERSAL,
    "shared": StorageStrategy.UNIVERSAL,
    "user": StorageStrategy.USER,
    "machine-user": StorageStrategy.MACHINE_USER,
    "machine_user": StorageStrategy.MACHINE_USER,
    "legacy": StorageStrategy.MACHINE_USER,
    "custom": StorageStrategy.CUSTOM,
}


class IdentityProvider(Protocol):
    """Source of the hostname and username used in Base Paths."""

    def hostname(self) -> str:
        ...

    def username(self) -> str:
        ...


class SystemIdentity:
    """Identity read from the running machine and environment."""

    def hostname(self) -> str:
        try:
            return socket.gethostname() or UNKNOWN_HOST
        except OSError:
            return UNKNOWN_HOST

    def username(self) -> str:
        # USERNAME is the Windows fallback
        return os.environ.get("USER") or os.environ.get("USERNAME") or UNKNOWN_USER


@dataclass(frozen=True)
class StaticIdentity:
    """Identity pinned to explicit values (tests, remote hosts, tooling)."""

    host: str = UNKNOWN_HOST
    user: str = UNKNOWN_USER

    def hostname(self) -> str:
        return self.host

    def username(self) -> str:
        return self.user


def parse_strategy(value: str) -> StorageStrategy:
    """Convert a user-supplied strategy name into a StorageStrategy.

    Args:
        value: Strategy name, case-insensitive. Accepts the aliases
            ``shared`` (universal) and ``machine_user``/``legacy``
            (machine-user).

    Returns:
        StorageStrategy: The parsed strategy.

    Raises:
        ConfigurationError: If the name is not recognized.
    """
    key = (value or "").strip().lower()
    strategy = _STRATEGY_ALIASES.get(key)
    if strategy is None:
        raise ConfigurationError(
            f"invalid storage strategy: {value} "
            "(valid options: universal, user, machine-user, custom)"
        )
    return strategy


def all_strategies() -> dict[StorageStrategy, str]:
    """Describe every available strategy in one line."""
    return {
        StorageStrategy.UNIVERSAL: "Universal storage - shared across machines and users (recommended)",
        StorageStrategy.USER: "User-scoped storage - isolated by username, shared across machines",
        StorageStrategy.MACHINE_USER: "Machine-user scoped storage - isolated by hostname and username (legacy)",
        StorageStrategy.CUSTOM: "Custom storage - user-defined prefix for advanced scenarios",
    }


def cross_machine_restore(strategy: StorageStrategy) -> bool:
    """Whether backups stored under ``strategy`` can be restored on another machine."""
    return strategy != StorageStrategy.MACHINE_USER


class PathGenerator:
    """Derives the Base Path of a backup set from a storage strategy.

    Args:
        strategy: Strategy to apply. Plain strings are accepted so that
            unknown values can be reported as configuration errors.
        custom_prefix: Prefix for the custom strategy.
        namespace: Optional sub-namespace for the universal strategy.
        identity: Hostname/username source. Defaults to SystemIdentity.
    """

    def __init__(
        self,
        strategy: StorageStrategy | str,
        custom_prefix: str = "",
        namespace: str = "",
        identity: Optional[IdentityProvider] = None,
    ):
        self.strategy = strategy
        self.custom_prefix = custom_prefix or ""
        self.namespace = namespace or ""
        self.identity = identity or SystemIdentity()

    def __repr__(self) -> str:
        return (
            f"PathGenerator(strategy={self.strategy!r}, "
            f"custom_prefix={self.custom_prefix!r}, namespace={self.namespace!r})"
        )

    def _known_strategy(self) -> StorageStrategy:
        try:
            return StorageStrategy(self.strategy)
        except ValueError:
            raise ConfigurationError(
                f"unknown storage strategy: {self.strategy}"
            ) from None

    def validate_strategy(self) -> None:
        """Check the strategy configuration without generating a path.

        Raises:
            ConfigurationError: On an unknown strategy, or a custom
                strategy with an empty prefix or a path separator in it.
        """
        strategy = self._known_strategy()
        if strategy != StorageStrategy.CUSTOM:
            return
        if not self.custom_prefix:
            raise ConfigurationError(
                "custom prefix is required for custom storage strategy"
            )
        if "/" in self.custom_prefix:
            raise ConfigurationError(
                "custom prefix cannot contain path separators"
            )

    def generate_base_path(self) -> str:
        """Produce the Base Path for the configured strategy.

        Returns:
            str: Deterministic, path-safe Base Path.

        Raises:
            ConfigurationError: If the strategy configuration is invalid.
        """
        self.validate_strategy()
        strategy = StorageStrategy(self.strategy)

        if strategy == StorageStrategy.UNIVERSAL:
            if self.namespace:
                return f"shared/{sanitize_path_component(self.namespace)}"
            return "shared"

        if strategy == StorageStrategy.USER:
            username = sanitize_path_component(self.identity.username())
            return f"users/{username}"

        if strategy == StorageStrategy.MACHINE_USER:
            hostname = sanitize_path_component(self.identity.hostname())
            username = sanitize_path_component(self.identity.username())
            return f"users/{hostname}-{username}"

        return sanitize_path_component(self.custom_prefix)

    def get_strategy_description(self) -> str:
        """Human-readable description of the strategy. Never raises."""
        if self.strategy == StorageStrategy.UNIVERSAL:
            if self.namespace:
                return (
                    f"Universal storage with namespace '{self.namespace}' "
                    "(shared across machines and users)"
                )
            return "Universal storage (shared across machines and users)"
        if self.strategy == StorageStrategy.USER:
            return "User-scoped storage (isolated by username, shared across machines)"
        if self.strategy == StorageStrategy.MACHINE_USER:
            return "Machine-user scoped storage (isolated by hostname and username)"
        if self.strategy == StorageStrategy.CUSTOM:
            return f"Custom storage with prefix '{self.custom_prefix}'"
        return "Unknown storage strategy"


# ---------------------------------------------------------------------------
# Migration advisor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MigrationInfo:
    """Qualitative guidance for moving between two strategies.

    Attributes:
        compatible: Every pair can be migrated; kept for display.
        guidance_available: False when no advice is known for the pair.
    """

    from_strategy: StorageStrategy
    to_strategy: StorageStrategy
    from_path: str
    to_path: str
    compatible: bool = True
    risks: list[str] = field(default_factory=list)
    benefits: list[str] = field(default_factory=list)
    guidance_available: bool = True


_S = StorageStrategy

# (from, to) -> (benefits, risks)
_MIGRATION_GUIDANCE: dict[tuple[StorageStrategy, StorageStrategy], tuple[list[str], list[str]]] = {
    (_S.MACHINE_USER, _S.UNIVERSAL): (
        [
            "Enables cross-machine backup restore",
            "Simplifies backup management",
            "Reduces storage path complexity",
        ],
        [
            "Backup names must be unique across all machines",
            "Potential conflicts if multiple machines use same backup names",
        ],
    ),
    (_S.MACHINE_USER, _S.USER): (
        [
            "Enables cross-machine backup restore for same user",
            "Maintains user isolation",
        ],
        ["Backup names must be unique across machines for same user"],
    ),
    (_S.UNIVERSAL, _S.USER): (
        ["Adds user isolation for shared Vault instances"],
        ["Reduces sharing capabilities", "May require backup reorganization"],
    ),
}


def get_migration_info(
    from_strategy: StorageStrategy,
    to_strategy: StorageStrategy,
    from_path: str,
    to_path: str,
) -> MigrationInfo:
    """Look up benefits and risks of migrating between two strategies.

    Derived from the strategy pair only, never from live data. Pairs
    without known guidance come back with ``guidance_available=False``
    and empty lists; they are still migratable.
    """
    if from_strategy == to_strategy:
        return MigrationInfo(
            from_strategy=from_strategy,
            to_strategy=to_strategy,
            from_path=from_path,
            to_path=to_path,
            benefits=["No migration needed - same strategy"],
        )

    guidance = _MIGRATION_GUIDANCE.get((from_strategy, to_strategy))
    if guidance is None:
        return MigrationInfo(
            from_strategy=from_strategy,
            to_strategy=to_strategy,
            from_path=from_path,
            to_path=to_path,
            guidance_available=False,
        )

    benefits, risks = guidance
    return MigrationInfo(
        from_strategy=from_strategy,
        to_strategy=to_strategy,
        from_path=from_path,
        to_path=to_path,
        benefits=list(benefits),
        risks=list(risks),
    )
