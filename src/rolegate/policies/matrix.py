"""Baseline authorisation table.

:func:`default_decision` maps every ``(role, resource, action, plan)`` tuple
to an allow/deny boolean.  It is pure and total: every member of the four
enumerations is matched explicitly, and ``assert_never`` marks the
unreachable branches so a type checker flags any member added later.

Example
-------
>>> from rolegate.policies.model import Action, Resource, Role, SubscriptionPlan
>>> default_decision(Role.BASIC, Resource.PROJECT, Action.CREATE, SubscriptionPlan.PRO)
False
"""
from __future__ import annotations

from typing import assert_never

from rolegate.policies.model import Action, Resource, Role, SubscriptionPlan


def default_decision(
    role: Role,
    resource: Resource,
    action: Action,
    plan: SubscriptionPlan,
) -> bool:
    """Return the baseline decision for one tuple of the rule space."""
    match role:
        case Role.ADMIN:
            return True
        case Role.PREMIUM:
            return _premium(resource, action, plan)
        case Role.STANDARD:
            return _standard(resource, action, plan)
        case Role.BASIC:
            return _basic(resource, action, plan)
        case _:
            assert_never(role)


def _premium(resource: Resource, action: Action, plan: SubscriptionPlan) -> bool:
    match resource:
        case Resource.PROJECT:
            return plan == SubscriptionPlan.PRO
        case Resource.USER:
            return action in (Action.READ, Action.UPDATE)
        case Resource.PERMISSION | Resource.ROLE_POLICY:
            return False
        case Resource.SYSTEM:
            return action == Action.READ
        case _:
            assert_never(resource)


def _standard(resource: Resource, action: Action, plan: SubscriptionPlan) -> bool:
    match resource:
        case Resource.PROJECT:
            if action in (Action.READ, Action.CREATE):
                return True
            return action == Action.UPDATE and plan == SubscriptionPlan.PRO
        case Resource.USER:
            return action in (Action.READ, Action.UPDATE)
        case Resource.PERMISSION | Resource.ROLE_POLICY | Resource.SYSTEM:
            return False
        case _:
            assert_never(resource)


def _basic(resource: Resource, action: Action, plan: SubscriptionPlan) -> bool:
    match resource:
        case Resource.PROJECT:
            if action == Action.READ:
                return True
            return action == Action.CREATE and plan == SubscriptionPlan.BASIC
        case Resource.USER:
            return action in (Action.READ, Action.UPDATE)
        case Resource.PERMISSION | Resource.ROLE_POLICY | Resource.SYSTEM:
            return False
        case _:
            assert_never(resource)


def default_reason(
    role: Role,
    resource: Resource,
    action: Action,
    plan: SubscriptionPlan,
    allowed: bool,
) -> str:
    """Build the human-readable reason attached to a seeded policy."""
    verb = "can" if allowed else "cannot"
    return (
        f"{role.description} {verb} {action.description} "
        f"{resource.description} resources on the {plan.description}"
    )


__all__ = ["default_decision", "default_reason"]
