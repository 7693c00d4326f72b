"""Policy model, baseline table, store and resolver.

The YAML pack loader lives in :mod:`rolegate.policies.loader` and is not
re-exported here because it depends on the admin request models.
"""
from __future__ import annotations

from rolegate.policies.initializer import PolicyInitializer
from rolegate.policies.matrix import default_decision, default_reason
from rolegate.policies.model import (
    Action,
    PolicyKey,
    PolicyRecord,
    Resource,
    Role,
    SubscriptionPlan,
    all_policy_keys,
)
from rolegate.policies.resolver import Decision, PermissionEntry, PolicyResolver, PolicySource
from rolegate.policies.store import PolicyStore

__all__ = [
    "Action",
    "Decision",
    "PermissionEntry",
    "PolicyInitializer",
    "PolicyKey",
    "PolicyRecord",
    "PolicyResolver",
    "PolicySource",
    "PolicyStore",
    "Resource",
    "Role",
    "SubscriptionPlan",
    "all_policy_keys",
    "default_decision",
    "default_reason",
]
