"""Effective-decision resolver.

A stored policy for the exact key wins; when the key has no record the
baseline table from :mod:`rolegate.policies.matrix` decides.  A store
failure during lookup never propagates: the tuple is denied and reported
with :attr:`PolicySource.FAIL_CLOSED`.

The optional read-through cache tags every entry with the store version it
was read at and only serves entries whose tag matches the current version.
Every committed ``upsert``/``replace_all`` bumps the version, so cached
decisions are invalidated synchronously by the write itself.

Example
-------
>>> from rolegate.policies.store import PolicyStore
>>> resolver = PolicyResolver(PolicyStore())
>>> resolver.resolve(Role.ADMIN, Resource.PROJECT, Action.DELETE, SubscriptionPlan.BASIC)
Decision(allowed=True, source=<PolicySource.DEFAULT: 'default'>)
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum

from rolegate.policies.matrix import default_decision
from rolegate.policies.model import (
    Action,
    PolicyKey,
    Resource,
    Role,
    SubscriptionPlan,
)
from rolegate.policies.store import PolicyStore

logger = logging.getLogger(__name__)


class PolicySource(str, Enum):
    """Where an effective decision came from."""

    POLICY = "policy"
    DEFAULT = "default"
    FAIL_CLOSED = "fail_closed"


@dataclass(frozen=True)
class Decision:
    """Effective decision for one tuple."""

    allowed: bool
    source: PolicySource

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class PermissionEntry:
    """One row of a user's permission view."""

    resource: Resource
    action: Action
    allowed: bool
    source: PolicySource

    def to_dict(self) -> dict[str, object]:
        return {
            "resource": self.resource.value,
            "action": self.action.value,
            "allowed": self.allowed,
            "source": self.source.value,
        }


_DENIED = Decision(allowed=False, source=PolicySource.FAIL_CLOSED)


class PolicyResolver:
    """Answers authorisation queries against a :class:`PolicyStore`.

    Parameters
    ----------
    store:
        The store holding explicit policies.
    cache_enabled:
        When ``True`` (default), decisions are cached per key and served
        only while the store version they were read at is current.
    """

    def __init__(self, store: PolicyStore, cache_enabled: bool = True) -> None:
        self._store = store
        self._cache_enabled = cache_enabled
        self._cache: dict[PolicyKey, tuple[int, Decision]] = {}
        self._cache_lock = threading.Lock()
        if cache_enabled:
            store.add_listener(self._on_store_write)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(
        self,
        role: Role,
        resource: Resource,
        action: Action,
        plan: SubscriptionPlan,
    ) -> Decision:
        """Return the effective decision for one tuple.

        Never raises for a well-formed tuple; a failing store lookup yields
        a denial.
        """
        return self.resolve_key(PolicyKey(role, resource, action, plan))

    def resolve_key(self, key: PolicyKey) -> Decision:
        try:
            version = self._store.version
            if self._cache_enabled:
                cached = self._cache.get(key)
                if cached is not None and cached[0] == version:
                    return cached[1]
            record = self._store.get(key)
        except Exception:
            logger.exception("Policy lookup failed for %s; denying", key)
            return _DENIED

        if record is not None:
            decision = Decision(allowed=record.allowed, source=PolicySource.POLICY)
        else:
            decision = Decision(
                allowed=default_decision(key.role, key.resource, key.action, key.plan),
                source=PolicySource.DEFAULT,
            )

        logger.debug("Resolved %s -> %s (%s)", key, decision.allowed, decision.source.value)

        if self._cache_enabled:
            with self._cache_lock:
                self._cache[key] = (version, decision)
        return decision

    def is_allowed(
        self,
        role: Role,
        resource: Resource,
        action: Action,
        plan: SubscriptionPlan,
    ) -> bool:
        """Boolean form of :meth:`resolve` for request-authorisation layers."""
        return self.resolve(role, resource, action, plan).allowed

    def resolve_all_for_user(
        self,
        role: Role,
        plan: SubscriptionPlan,
    ) -> list[PermissionEntry]:
        """Resolve every (resource, action) pair for a role/plan combination.

        Returns
        -------
        list[PermissionEntry]
            One entry per pair, ordered by Resource then Action.
        """
        entries: list[PermissionEntry] = []
        for resource in Resource:
            for action in Action:
                decision = self.resolve(role, resource, action, plan)
                entries.append(
                    PermissionEntry(
                        resource=resource,
                        action=action,
                        allowed=decision.allowed,
                        source=decision.source,
                    )
                )
        return entries

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_store_write(self, version: int) -> None:
        # Entries are already unreachable once the version moves; this only
        # releases their memory.
        self.clear_cache()


__all__ = [
    "Decision",
    "PermissionEntry",
    "PolicyResolver",
    "PolicySource",
]
