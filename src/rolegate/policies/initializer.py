"""Startup seeding of the policy store.

PolicyInitializer writes one system policy per key of the full rule space,
computed from the baseline table, but only for keys that have no record
yet.  Running it again is a no-op, and it never touches a key an
administrator has already set.
"""
from __future__ import annotations

import logging

from rolegate.policies.matrix import default_decision, default_reason
from rolegate.policies.model import PolicyKey, all_policy_keys
from rolegate.policies.store import PolicyStore

logger = logging.getLogger(__name__)


class PolicyInitializer:
    """Idempotently seeds a :class:`PolicyStore` with system policies.

    Parameters
    ----------
    store:
        The store to seed.
    """

    def __init__(self, store: PolicyStore) -> None:
        self._store = store

    def run(self) -> int:
        """Seed every missing key.

        Returns
        -------
        int
            Number of records created by this run.
        """
        logger.info("Seeding role policies")
        created = 0
        for key in all_policy_keys():
            if self._seed(key):
                created += 1
        logger.info(
            "Role policy seeding complete: %d created, %d total",
            created,
            self._store.count(),
        )
        return created

    def _seed(self, key: PolicyKey) -> bool:
        if self._store.exists_for_key(key):
            return False
        allowed = default_decision(key.role, key.resource, key.action, key.plan)
        # An admin write may land between the check and here; never overwrite it.
        record = self._store.create_if_absent(
            key,
            allowed=allowed,
            reason=default_reason(key.role, key.resource, key.action, key.plan, allowed),
            system_policy=True,
        )
        return record is not None


__all__ = ["PolicyInitializer"]
