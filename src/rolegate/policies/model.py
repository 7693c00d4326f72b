"""Policy domain types.

The rule space is the finite product of four closed enumerations:
``Role × Resource × Action × SubscriptionPlan``.  A :class:`PolicyKey`
names one slot in that product and a :class:`PolicyRecord` holds the
stored decision for it.

Enumerations are ``str``-valued so they serialise to their wire value
directly.  Declaration order is the canonical ordering used when listing
records (Role, then Resource, then Action, then Plan).

Example
-------
>>> key = PolicyKey.parse("basic", "project", "create", "pro")
>>> key.role
<Role.BASIC: 'basic'>
>>> len(all_policy_keys())
160
"""
from __future__ import annotations

import itertools
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import TypeVar

from rolegate.errors import ValidationError

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Role(str, Enum):
    """User role, ordered from most to least privileged."""

    ADMIN = "admin"
    PREMIUM = "premium"
    STANDARD = "standard"
    BASIC = "basic"

    @property
    def description(self) -> str:
        return _ROLE_META[self][0]

    @property
    def level(self) -> int:
        """Privilege level; higher means more privileged."""
        return _ROLE_META[self][1]

    def is_higher_than(self, other: Role) -> bool:
        return self.level > other.level


class Resource(str, Enum):
    """Object class an action targets."""

    PROJECT = "project"
    USER = "user"
    PERMISSION = "permission"
    ROLE_POLICY = "role_policy"
    SYSTEM = "system"

    @property
    def description(self) -> str:
        return _RESOURCE_DESCRIPTIONS[self]


class Action(str, Enum):
    """Operation performed on a resource."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def description(self) -> str:
        return _ACTION_DESCRIPTIONS[self]

    def is_write(self) -> bool:
        return self is not Action.READ


class SubscriptionPlan(str, Enum):
    """Subscription plan of the acting user."""

    BASIC = "basic"
    PRO = "pro"

    @property
    def description(self) -> str:
        return _PLAN_META[self][0]

    @property
    def max_projects(self) -> int:
        return _PLAN_META[self][1]

    @property
    def max_storage_gb(self) -> int:
        return _PLAN_META[self][2]

    def can_create_project(self, current_project_count: int) -> bool:
        return current_project_count < self.max_projects

    def has_storage_headroom(self, current_storage_gb: int) -> bool:
        return current_storage_gb < self.max_storage_gb

    def is_upgrade_from(self, other: SubscriptionPlan) -> bool:
        plans = list(SubscriptionPlan)
        return plans.index(self) > plans.index(other)


_ROLE_META: dict[Role, tuple[str, int]] = {
    Role.ADMIN: ("Administrator", 4),
    Role.PREMIUM: ("Premium user", 3),
    Role.STANDARD: ("Standard user", 2),
    Role.BASIC: ("Basic user", 1),
}

_RESOURCE_DESCRIPTIONS: dict[Resource, str] = {
    Resource.PROJECT: "project",
    Resource.USER: "user",
    Resource.PERMISSION: "permission",
    Resource.ROLE_POLICY: "role policy",
    Resource.SYSTEM: "system",
}

_ACTION_DESCRIPTIONS: dict[Action, str] = {
    Action.CREATE: "create",
    Action.READ: "read",
    Action.UPDATE: "update",
    Action.DELETE: "delete",
}

# description, max projects, max storage (GB)
_PLAN_META: dict[SubscriptionPlan, tuple[str, int, int]] = {
    SubscriptionPlan.BASIC: ("Basic plan", 1, 100),
    SubscriptionPlan.PRO: ("Pro plan", 5, 10000),
}

_E = TypeVar("_E", Role, Resource, Action, SubscriptionPlan)


def coerce_enum(enum_cls: type[_E], value: object, field_name: str) -> _E:
    """Return *value* as a member of *enum_cls*.

    Accepts a member, its value, or its name in any case
    (``"ROLE_POLICY"``, ``"role_policy"``).

    Raises
    ------
    ValidationError
        When *value* is missing, names no member, or is a member of
        another enumeration.
    """
    if value is None:
        raise ValidationError("value is required", field=field_name)
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str) and not isinstance(value, Enum):
        candidate = value.strip().lower()
        for member in enum_cls:
            if member.value == candidate:
                return member
    valid = [m.value for m in enum_cls]
    raise ValidationError(
        f"invalid value {value!r}; expected one of {valid}", field=field_name, value=value
    )


# Keyed per class: str-valued members of different enums compare equal.
_ORDINALS: dict[type, dict[Enum, int]] = {
    enum_cls: {member: index for index, member in enumerate(enum_cls)}
    for enum_cls in (Role, Resource, Action, SubscriptionPlan)
}


# ---------------------------------------------------------------------------
# PolicyKey
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PolicyKey:
    """Identity of one authorisation rule slot."""

    role: Role
    resource: Resource
    action: Action
    plan: SubscriptionPlan

    @classmethod
    def parse(
        cls,
        role: object,
        resource: object,
        action: object,
        plan: object,
    ) -> PolicyKey:
        """Build a key from enum members or their string values.

        Raises
        ------
        ValidationError
            Naming the first missing or invalid component.
        """
        return cls(
            role=coerce_enum(Role, role, "role"),
            resource=coerce_enum(Resource, resource, "resource"),
            action=coerce_enum(Action, action, "action"),
            plan=coerce_enum(SubscriptionPlan, plan, "plan"),
        )

    def sort_key(self) -> tuple[int, int, int, int]:
        return (
            _ORDINALS[Role][self.role],
            _ORDINALS[Resource][self.resource],
            _ORDINALS[Action][self.action],
            _ORDINALS[SubscriptionPlan][self.plan],
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "role": self.role.value,
            "resource": self.resource.value,
            "action": self.action.value,
            "plan": self.plan.value,
        }

    def __str__(self) -> str:
        return f"{self.role.value}:{self.resource.value}:{self.action.value}:{self.plan.value}"


def all_policy_keys() -> list[PolicyKey]:
    """Return every key of the rule space in canonical order."""
    return [
        PolicyKey(role, resource, action, plan)
        for role, resource, action, plan in itertools.product(
            Role, Resource, Action, SubscriptionPlan
        )
    ]


# ---------------------------------------------------------------------------
# PolicyRecord
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class PolicyRecord:
    """Stored decision for one :class:`PolicyKey`.

    Records are values: a change produces a new record that keeps the
    ``policy_id`` and ``created_at`` of the one it replaces.

    Attributes
    ----------
    policy_id:
        Stable identifier assigned when the key was first written.
    key:
        The rule slot this record decides.
    allowed:
        The stored decision.
    reason:
        Human-readable justification.
    system_policy:
        ``True`` while the record is the untouched seed written at
        startup; ``False`` once an administrator has set it.
    created_at:
        UTC time the key was first written.
    updated_at:
        UTC time of the most recent write.
    """

    key: PolicyKey
    allowed: bool
    reason: str
    system_policy: bool = False
    policy_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def role(self) -> Role:
        return self.key.role

    @property
    def resource(self) -> Resource:
        return self.key.resource

    @property
    def action(self) -> Action:
        return self.key.action

    @property
    def plan(self) -> SubscriptionPlan:
        return self.key.plan

    def with_values(self, allowed: bool, reason: str, system_policy: bool) -> PolicyRecord:
        """Return a copy carrying new values and a fresh ``updated_at``."""
        return replace(
            self,
            allowed=allowed,
            reason=reason,
            system_policy=system_policy,
            updated_at=_utcnow(),
        )

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable view of this record."""
        return {
            "policy_id": self.policy_id,
            **self.key.to_dict(),
            "allowed": self.allowed,
            "reason": self.reason,
            "system_policy": self.system_policy,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> PolicyRecord:
        """Rebuild a record from :meth:`to_dict` output."""
        allowed = data.get("allowed")
        if not isinstance(allowed, bool):
            raise ValidationError("must be a boolean", field="allowed", value=allowed)
        return cls(
            key=PolicyKey.parse(
                data.get("role"), data.get("resource"), data.get("action"), data.get("plan")
            ),
            allowed=allowed,
            reason=str(data.get("reason") or ""),
            system_policy=bool(data.get("system_policy", False)),
            policy_id=str(data["policy_id"]),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            updated_at=datetime.fromisoformat(str(data["updated_at"])),
        )


__all__ = [
    "Action",
    "PolicyKey",
    "PolicyRecord",
    "Resource",
    "Role",
    "SubscriptionPlan",
    "all_policy_keys",
    "coerce_enum",
]
