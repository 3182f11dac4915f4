"""Path segment sanitization for Base Paths.

Hostnames, usernames, prefixes and namespaces come from the environment
or from the user. Before they become part of a secret store path they
are reduced to a single safe segment.
"""

from __future__ import annotations

UNSAFE_CHARS = '/\\:*?"<>| \t\n\r'
STRIP_CHARS = "._-"
FALLBACK_COMPONENT = "unknown"

_TRANSLATION = str.maketrans({ch: "_" for ch in UNSAFE_CHARS})


def sanitize_path_component(component: str) -> str:
    """Turn an arbitrary string into a safe, non-empty path segment.

    Unsafe characters become underscores, then dots, underscores and
    dashes are stripped from both ends. Idempotent.

    Args:
        component: Raw identity string (hostname, username, prefix...).

    Returns:
        str: Sanitized segment, or ``"unknown"`` if nothing is left.
    """
    sanitized = (component or "").translate(_TRANSLATION).strip(STRIP_CHARS)
    return sanitized or FALLBACK_COMPONENT
