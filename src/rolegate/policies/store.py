"""In-memory policy store.

PolicyStore holds at most one :class:`PolicyRecord` per :class:`PolicyKey`.
The mapping is copy-on-write: every mutation builds a new mapping under
the writer lock and publishes it, together with a bumped version number,
in a single reference swap.  Readers take that reference without locking,
so a reader always sees one complete version of the store and never
blocks on a writer.

Writers are serialised by one lock for the whole store.  ``replace_all``
additionally holds a non-blocking restore lock; a second restore started
while one is in flight fails with :class:`ConflictError` instead of
waiting.

Example
-------
>>> store = PolicyStore()
>>> key = PolicyKey.parse("basic", "project", "create", "pro")
>>> record = store.upsert(key, allowed=True, reason="promo", system_policy=False)
>>> store.get(key).allowed
True
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Callable

from rolegate.errors import ConflictError, InvariantViolation, ValidationError
from rolegate.policies.model import PolicyKey, PolicyRecord

logger = logging.getLogger(__name__)

StoreListener = Callable[[int], None]


class PolicyStore:
    """Authoritative, mutable set of policy records keyed by :class:`PolicyKey`."""

    def __init__(self, records: Iterable[PolicyRecord] | None = None) -> None:
        initial: dict[PolicyKey, PolicyRecord] = {}
        for record in records or []:
            if record.key in initial:
                raise InvariantViolation(
                    f"duplicate policy record for {record.key}", key=record.key
                )
            initial[record.key] = record
        self._state: tuple[int, Mapping[PolicyKey, PolicyRecord]] = (
            0,
            MappingProxyType(initial),
        )
        self._write_lock = threading.Lock()
        self._restore_lock = threading.Lock()
        self._listeners: list[StoreListener] = []

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get(self, key: PolicyKey) -> PolicyRecord | None:
        """Return the record for *key*, or ``None`` when absent."""
        _, records = self._state
        return records.get(key)

    def exists_for_key(self, key: PolicyKey) -> bool:
        _, records = self._state
        return key in records

    def list_all(self) -> list[PolicyRecord]:
        """Return every record ordered by Role, Resource, Action, then Plan."""
        _, records = self._state
        return sorted(records.values(), key=lambda r: r.key.sort_key())

    def snapshot(self) -> tuple[int, list[PolicyRecord]]:
        """Return ``(version, records)`` read from one published state."""
        version, records = self._state
        return version, sorted(records.values(), key=lambda r: r.key.sort_key())

    def count(self) -> int:
        _, records = self._state
        return len(records)

    @property
    def version(self) -> int:
        """Monotonic counter bumped by every committed write."""
        return self._state[0]

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def upsert(
        self,
        key: PolicyKey,
        allowed: bool,
        reason: str,
        system_policy: bool,
    ) -> PolicyRecord:
        """Create the record for *key* or overwrite its values in place.

        The existing ``policy_id`` and ``created_at`` are kept; ``allowed``,
        ``reason`` and ``system_policy`` are replaced and ``updated_at`` is
        bumped.

        Raises
        ------
        ValidationError
            When ``allowed`` is not a boolean.
        """
        _, record = self.upsert_with_previous(key, allowed, reason, system_policy)
        return record

    def upsert_with_previous(
        self,
        key: PolicyKey,
        allowed: bool,
        reason: str,
        system_policy: bool,
    ) -> tuple[PolicyRecord | None, PolicyRecord]:
        """Like :meth:`upsert`, also returning the record it replaced.

        The previous record is read under the writer lock, so concurrent
        writers to one key each see the value the other committed.

        Returns
        -------
        tuple[PolicyRecord | None, PolicyRecord]
            ``(previous, record)``; ``previous`` is ``None`` when the key
            had no record.
        """
        if not isinstance(allowed, bool):
            raise ValidationError("must be a boolean", field="allowed", value=allowed)

        with self._write_lock:
            version, records = self._state
            existing = records.get(key)
            if existing is None:
                record = PolicyRecord(
                    key=key,
                    allowed=allowed,
                    reason=reason,
                    system_policy=system_policy,
                )
            else:
                record = existing.with_values(allowed, reason, system_policy)

            updated = dict(records)
            updated[key] = record
            new_version = self._publish(version, updated)

        logger.debug(
            "Policy %s %s: allowed=%s system=%s (version %d)",
            "updated" if existing is not None else "created",
            key,
            allowed,
            system_policy,
            new_version,
        )
        self._notify(new_version)
        return existing, record

    def create_if_absent(
        self,
        key: PolicyKey,
        allowed: bool,
        reason: str,
        system_policy: bool,
    ) -> PolicyRecord | None:
        """Create the record for *key* unless one exists.

        The existence check and the write happen under the writer lock.

        Returns
        -------
        PolicyRecord | None
            The new record, or ``None`` when *key* already had one.
        """
        with self._write_lock:
            version, records = self._state
            if key in records:
                return None
            record = PolicyRecord(
                key=key, allowed=allowed, reason=reason, system_policy=system_policy
            )
            updated = dict(records)
            updated[key] = record
            new_version = self._publish(version, updated)
        self._notify(new_version)
        return record

    def replace_all(self, records: Iterable[PolicyRecord]) -> int:
        """Write every given record in one atomic step.

        Each record replaces the stored record for its key, or is added when
        the key is absent.  Keys not present in *records* are left as they
        are.  Either all records are applied or, on error, none are.

        Returns
        -------
        int
            Number of records written.

        Raises
        ------
        ConflictError
            When another ``replace_all`` is already in flight.
        InvariantViolation
            When *records* holds two records for the same key.
        ValidationError
            When an element is not a :class:`PolicyRecord`.
        """
        if not self._restore_lock.acquire(blocking=False):
            raise ConflictError("a policy restore is already in progress; retry later")
        try:
            incoming: dict[PolicyKey, PolicyRecord] = {}
            for record in records:
                if not isinstance(record, PolicyRecord):
                    raise ValidationError(
                        f"expected PolicyRecord, got {type(record).__name__}",
                        field="records",
                    )
                if record.key in incoming:
                    raise InvariantViolation(
                        f"duplicate policy record for {record.key}", key=record.key
                    )
                incoming[record.key] = record

            with self._write_lock:
                version, current = self._state
                updated = dict(current)
                updated.update(incoming)
                new_version = self._publish(version, updated)
        finally:
            self._restore_lock.release()

        logger.info("Replaced %d policy records (version %d)", len(incoming), new_version)
        self._notify(new_version)
        return len(incoming)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: StoreListener) -> None:
        """Register *listener* to be called with the new version after each write."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _publish(self, version: int, records: dict[PolicyKey, PolicyRecord]) -> int:
        """Swap in *records* as the next version. Caller holds the write lock."""
        new_version = version + 1
        self._state = (new_version, MappingProxyType(records))
        return new_version

    def _notify(self, version: int) -> None:
        for listener in list(self._listeners):
            listener(version)

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"PolicyStore(records={self.count()}, version={self.version})"


__all__ = ["PolicyStore", "StoreListener"]
