"""Audit trail of administrative changes.

Every successful policy edit, user role change, backup creation and
restore is recorded as an immutable :class:`AuditEntry`.  The recorder
only appends: no API updates or removes an entry.

Entries are kept in memory and, when an :class:`AuditLogger` sink is
configured, mirrored to a JSONL file.  A sink write failure is logged and
does not undo the change that was being audited.

Example
-------
::

    recorder = AuditRecorder()
    recorder.record(
        category=AuditCategory.USER_ROLE_CHANGE,
        actor_id="admin-1",
        subject="user-7",
        old_value="basic",
        new_value="premium",
        reason="upgrade",
    )
    assert recorder.count() == 1
"""
from __future__ import annotations

import datetime
import json
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rolegate.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class AuditCategory(str, Enum):
    """Kind of change an audit entry describes."""

    ROLE_POLICY_CHANGE = "role-policy-change"
    USER_ROLE_CHANGE = "user-role-change"
    POLICY_BACKUP_CREATED = "policy-backup-created"


# ---------------------------------------------------------------------------
# Audit entry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditEntry:
    """A single audit record.

    Attributes
    ----------
    entry_id:
        Sequential identifier, unique within the recorder.
    category:
        What kind of change this is.
    actor_id:
        Identity of the administrator who made the change.
    subject:
        Policy id, target user id or backup id the change applied to.
    old_value:
        Value before the change (``None`` when there was none).
    new_value:
        Value after the change.
    reason:
        Reason stated by the actor.
    timestamp:
        UTC time the entry was recorded.
    """

    entry_id: str
    category: AuditCategory
    actor_id: str
    subject: str
    old_value: object
    new_value: object
    reason: str
    timestamp: datetime.datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "entry_id": self.entry_id,
            "category": self.category.value,
            "actor_id": self.actor_id,
            "subject": self.subject,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_jsonl(self) -> str:
        return json.dumps(self.to_dict(), default=str) + "\n"


# ---------------------------------------------------------------------------
# Recorder
# ---------------------------------------------------------------------------


class AuditRecorder:
    """Append-only, thread-safe audit recorder.

    Parameters
    ----------
    sink:
        Optional :class:`AuditLogger` every entry is mirrored to.
    """

    def __init__(self, sink: AuditLogger | None = None) -> None:
        self._sink = sink
        self._entries: list[AuditEntry] = []
        self._counter: int = 0
        self._lock = threading.Lock()

    def record(
        self,
        category: AuditCategory,
        actor_id: object,
        subject: object,
        old_value: object,
        new_value: object,
        reason: str,
    ) -> AuditEntry:
        """Append a new entry and return it."""
        with self._lock:
            self._counter += 1
            entry = AuditEntry(
                entry_id=f"audit-{self._counter:06d}",
                category=category,
                actor_id=str(actor_id),
                subject=str(subject),
                old_value=old_value,
                new_value=new_value,
                reason=reason,
                timestamp=datetime.datetime.now(datetime.timezone.utc),
            )
            self._entries.append(entry)

        logger.info(
            "Audit %s: actor=%s subject=%s",
            category.value,
            entry.actor_id,
            entry.subject,
        )
        if self._sink is not None:
            try:
                self._sink.append(entry.to_dict())
            except OSError:
                logger.exception("Failed to write audit entry %s to sink", entry.entry_id)
        return entry

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def entries(self) -> list[AuditEntry]:
        """Return every entry in append order."""
        with self._lock:
            return list(self._entries)

    def by_category(self, category: AuditCategory) -> list[AuditEntry]:
        return [e for e in self.entries() if e.category is category]

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def export_jsonl(self) -> str:
        return "".join(e.to_jsonl() for e in self.entries())


__all__ = [
    "AuditCategory",
    "AuditEntry",
    "AuditRecorder",
]
