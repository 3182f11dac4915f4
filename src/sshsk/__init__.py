"""
SSH Secret Keeper: SSH credential backups in a remote secret store.

Backups live under a Base Path chosen by a storage strategy
(universal, user, machine-user, custom) and can be migrated
between strategies without losing a single key.
"""

import os

__version__ = "0.1.0"
__author__ = "rzago"

SSHSK_HOME = os.environ.get("SSHSK_HOME", "~/.ssh-secret-keeper")
