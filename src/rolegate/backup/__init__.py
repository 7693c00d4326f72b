"""Policy backup and restore."""
from __future__ import annotations

from rolegate.backup.manager import BackupManager, PolicySnapshot

__all__ = ["BackupManager", "PolicySnapshot"]
