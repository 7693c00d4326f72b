"""Policy backups and restore.

BackupManager captures the whole policy store as an immutable
:class:`PolicySnapshot` and can write a snapshot's records back into the
store.  A snapshot holds record values, not references, so later store
writes never change it, and it carries a SHA-256 checksum that is verified
before every restore.

Restore writes the snapshot's value for every key it contains and leaves
keys the snapshot does not know about untouched.

Key classes
-----------
PolicySnapshot : Frozen, checksummed capture of the store.
BackupManager  : Creates, lists and restores snapshots.
"""
from __future__ import annotations

import datetime
import hashlib
import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass

from rolegate.audit.recorder import AuditCategory, AuditRecorder
from rolegate.errors import InvariantViolation, NotFoundError
from rolegate.policies.model import PolicyRecord
from rolegate.policies.store import PolicyStore

logger = logging.getLogger(__name__)

RESTORE_REASON = "restored from backup"


def _checksum(records: tuple[PolicyRecord, ...]) -> str:
    serialised = json.dumps([r.to_dict() for r in records], sort_keys=True, default=str)
    return hashlib.sha256(serialised.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PolicySnapshot:
    """Immutable capture of every policy record at one instant.

    Attributes
    ----------
    backup_id:
        Unique identifier, ``backup_<epoch-millis>_<8 hex>``.
    created_at:
        UTC time of capture.
    created_by:
        Actor that requested the backup.
    policy_count:
        Number of records captured.
    records:
        The captured records in canonical key order.
    store_version:
        Store version the capture was read from.
    checksum:
        SHA-256 of the serialised records.
    """

    backup_id: str
    created_at: datetime.datetime
    created_by: str
    policy_count: int
    records: tuple[PolicyRecord, ...]
    store_version: int
    checksum: str

    def verify_integrity(self) -> bool:
        """Return True when the records still match :attr:`checksum`."""
        try:
            return _checksum(self.records) == self.checksum
        except (TypeError, ValueError):
            return False

    def to_dict(self) -> dict[str, object]:
        return {
            "backup_id": self.backup_id,
            "created_at": self.created_at.isoformat(),
            "created_by": self.created_by,
            "policy_count": self.policy_count,
            "store_version": self.store_version,
            "checksum": self.checksum,
            "policies": [r.to_dict() for r in self.records],
        }


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class BackupManager:
    """Creates and restores snapshots of a :class:`PolicyStore`.

    Parameters
    ----------
    store:
        The store to capture and restore.
    audit:
        Recorder that receives backup and restore entries.
    max_backups:
        Maximum number of snapshots retained.  The oldest are dropped once
        the limit is exceeded (default: 50).

    Example
    -------
    ::

        manager = BackupManager(store, AuditRecorder())
        snapshot = manager.create_backup("admin-1")
        store.upsert(key, allowed=False, reason="temp", system_policy=False)
        manager.restore_backup("admin-1", snapshot.backup_id)
    """

    def __init__(
        self,
        store: PolicyStore,
        audit: AuditRecorder,
        max_backups: int = 50,
    ) -> None:
        self._store = store
        self._audit = audit
        self._max_backups = max_backups
        self._backups: dict[str, PolicySnapshot] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def create_backup(self, actor_id: object) -> PolicySnapshot:
        """Capture the current store as a new snapshot."""
        version, records = self._store.snapshot()
        frozen = tuple(records)
        snapshot = PolicySnapshot(
            backup_id=f"backup_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}",
            created_at=datetime.datetime.now(datetime.timezone.utc),
            created_by=str(actor_id),
            policy_count=len(frozen),
            records=frozen,
            store_version=version,
            checksum=_checksum(frozen),
        )

        with self._lock:
            self._backups[snapshot.backup_id] = snapshot
            while len(self._backups) > self._max_backups:
                evicted = next(iter(self._backups))
                del self._backups[evicted]
                logger.info("Evicted oldest policy backup %s", evicted)

        self._audit.record(
            category=AuditCategory.POLICY_BACKUP_CREATED,
            actor_id=actor_id,
            subject=snapshot.backup_id,
            old_value=None,
            new_value={"backup_id": snapshot.backup_id, "policy_count": snapshot.policy_count},
            reason="policy backup created",
        )
        logger.info(
            "Policy backup created: backup_id=%s policy_count=%d",
            snapshot.backup_id,
            snapshot.policy_count,
        )
        return snapshot

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def list_backups(self) -> list[PolicySnapshot]:
        """Return retained snapshots, most recent first."""
        with self._lock:
            ordered = list(self._backups.values())
        ordered.reverse()
        return ordered

    def get_backup(self, backup_id: str) -> PolicySnapshot:
        """Return the snapshot for *backup_id*.

        Raises
        ------
        NotFoundError
            When no such snapshot is retained.
        """
        with self._lock:
            snapshot = self._backups.get(backup_id)
        if snapshot is None:
            raise NotFoundError("backup", backup_id)
        return snapshot

    def backup_count(self) -> int:
        with self._lock:
            return len(self._backups)

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def restore_backup(self, actor_id: object, backup_id: str) -> PolicySnapshot:
        """Write the snapshot's records back into the store atomically.

        Raises
        ------
        NotFoundError
            When *backup_id* is unknown.  The store is not touched.
        InvariantViolation
            When the snapshot fails its integrity check.
        ConflictError
            When another restore is in flight.
        """
        snapshot = self.get_backup(backup_id)
        if not snapshot.verify_integrity():
            logger.warning("Refusing to restore corrupted backup %s", backup_id)
            raise InvariantViolation(f"backup {backup_id} failed its integrity check")

        restored = self._store.replace_all(snapshot.records)

        self._audit.record(
            category=AuditCategory.ROLE_POLICY_CHANGE,
            actor_id=actor_id,
            subject=backup_id,
            old_value=None,
            new_value={"backup_id": backup_id, "restored_count": restored},
            reason=RESTORE_REASON,
        )
        logger.info("Policy backup restored: backup_id=%s restored=%d", backup_id, restored)
        return snapshot


__all__ = [
    "BackupManager",
    "PolicySnapshot",
    "RESTORE_REASON",
]
