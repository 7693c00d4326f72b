"""Tests for the baseline authorisation table."""
from __future__ import annotations

import pytest

from rolegate.policies.matrix import default_decision, default_reason
from rolegate.policies.model import (
    Action,
    PolicyKey,
    Resource,
    Role,
    SubscriptionPlan,
    all_policy_keys,
)

C, R, U, D = Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE
BASIC, PRO = SubscriptionPlan.BASIC, SubscriptionPlan.PRO


def _allowed_for(role: Role) -> set[tuple[Resource, Action, SubscriptionPlan]]:
    """Allowed (resource, action, plan) triples per role, listed by hand."""
    if role is Role.ADMIN:
        return {(k.resource, k.action, k.plan) for k in all_policy_keys()}
    user_rows = {(Resource.USER, a, p) for a in (R, U) for p in (BASIC, PRO)}
    if role is Role.PREMIUM:
        return (
            {(Resource.PROJECT, a, PRO) for a in Action}
            | user_rows
            | {(Resource.SYSTEM, R, p) for p in (BASIC, PRO)}
        )
    if role is Role.STANDARD:
        return (
            {(Resource.PROJECT, a, p) for a in (R, C) for p in (BASIC, PRO)}
            | {(Resource.PROJECT, U, PRO)}
            | user_rows
        )
    return (
        {(Resource.PROJECT, R, p) for p in (BASIC, PRO)}
        | {(Resource.PROJECT, C, BASIC)}
        | user_rows
    )


# ---------------------------------------------------------------------------
# Exhaustive check
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("key", all_policy_keys(), ids=str)
def test_every_tuple_matches_table(key: PolicyKey) -> None:
    expected = (key.resource, key.action, key.plan) in _allowed_for(key.role)
    assert default_decision(key.role, key.resource, key.action, key.plan) is expected


def test_allowed_counts_per_role() -> None:
    counts = {role: 0 for role in Role}
    for key in all_policy_keys():
        if default_decision(key.role, key.resource, key.action, key.plan):
            counts[key.role] += 1
    assert counts == {Role.ADMIN: 40, Role.PREMIUM: 10, Role.STANDARD: 9, Role.BASIC: 7}


# ---------------------------------------------------------------------------
# Spot checks
# ---------------------------------------------------------------------------


class TestSpotChecks:
    def test_admin_can_delete_projects_on_basic(self) -> None:
        assert default_decision(Role.ADMIN, Resource.PROJECT, D, BASIC) is True

    def test_basic_create_only_on_basic_plan(self) -> None:
        assert default_decision(Role.BASIC, Resource.PROJECT, C, BASIC) is True
        assert default_decision(Role.BASIC, Resource.PROJECT, C, PRO) is False

    def test_premium_projects_need_pro(self) -> None:
        assert default_decision(Role.PREMIUM, Resource.PROJECT, R, BASIC) is False
        assert default_decision(Role.PREMIUM, Resource.PROJECT, D, PRO) is True

    def test_standard_update_only_on_pro(self) -> None:
        assert default_decision(Role.STANDARD, Resource.PROJECT, U, BASIC) is False
        assert default_decision(Role.STANDARD, Resource.PROJECT, U, PRO) is True

    def test_non_admins_never_touch_role_policies(self) -> None:
        for role in (Role.PREMIUM, Role.STANDARD, Role.BASIC):
            for action in Action:
                for plan in SubscriptionPlan:
                    assert default_decision(role, Resource.ROLE_POLICY, action, plan) is False

    def test_accepts_wire_strings(self) -> None:
        assert default_decision("basic", "project", "create", "basic") is True  # type: ignore[arg-type]


class TestDefaultReason:
    def test_allowed_wording(self) -> None:
        text = default_reason(Role.ADMIN, Resource.SYSTEM, D, PRO, True)
        assert text == "Administrator can delete system resources on the Pro plan"

    def test_denied_wording(self) -> None:
        text = default_reason(Role.BASIC, Resource.PROJECT, C, PRO, False)
        assert text == "Basic user cannot create project resources on the Pro plan"
