"""Admin command payloads as Pydantic v2 models.

Requests are validated before any store write.  Enum fields accept a
member, its value or its upper-case name; ``allowed`` must be a real
boolean.  :func:`validation_error_from` turns a Pydantic error into a
:class:`rolegate.errors.ValidationError` naming the first offending field.

Example
-------
>>> request = PolicyUpdateRequest.model_validate(
...     {"role": "BASIC", "resource": "project", "action": "create",
...      "plan": "pro", "allowed": True, "reason": "promo"}
... )
>>> request.key.role
<Role.BASIC: 'basic'>
"""
from __future__ import annotations

from enum import Enum

import pydantic
from pydantic import AliasChoices, BaseModel, Field, StrictBool, ValidationInfo, field_validator

from rolegate.errors import ValidationError
from rolegate.policies.model import (
    Action,
    PolicyKey,
    Resource,
    Role,
    SubscriptionPlan,
)

MAX_REASON_LENGTH = 200


_FIELD_ENUMS: dict[str, type[Enum]] = {
    "role": Role,
    "resource": Resource,
    "action": Action,
    "plan": SubscriptionPlan,
    "new_role": Role,
}


def _normalise_enum_input(value: object, info: ValidationInfo) -> object:
    expected = _FIELD_ENUMS[info.field_name]
    if isinstance(value, Enum):
        if not isinstance(value, expected):
            raise ValueError(
                f"expected a {expected.__name__}, got {type(value).__name__}.{value.name}"
            )
        return value
    if isinstance(value, str):
        return value.strip().lower()
    return value


class PolicyUpdateRequest(BaseModel):
    """Full replacement of the decision for one policy key."""

    model_config = {"frozen": True}

    role: Role
    resource: Resource
    action: Action
    plan: SubscriptionPlan = Field(validation_alias=AliasChoices("plan", "subscription_plan"))
    allowed: StrictBool
    reason: str = Field(default="", max_length=MAX_REASON_LENGTH)

    @field_validator("role", "resource", "action", "plan", mode="before")
    @classmethod
    def normalise_enum(cls, value: object, info: ValidationInfo) -> object:
        return _normalise_enum_input(value, info)

    @property
    def key(self) -> PolicyKey:
        return PolicyKey(self.role, self.resource, self.action, self.plan)


class UserRoleUpdateRequest(BaseModel):
    """Change of one user's role."""

    model_config = {"frozen": True}

    new_role: Role
    reason: str = Field(default="", max_length=MAX_REASON_LENGTH)

    @field_validator("new_role", mode="before")
    @classmethod
    def normalise_enum(cls, value: object, info: ValidationInfo) -> object:
        return _normalise_enum_input(value, info)


def validation_error_from(exc: pydantic.ValidationError) -> ValidationError:
    """Convert a Pydantic error into the rolegate taxonomy."""
    errors = exc.errors()
    if not errors:
        return ValidationError(str(exc))
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    return ValidationError(first.get("msg", "invalid value"), field=field, value=first.get("input"))


__all__ = [
    "MAX_REASON_LENGTH",
    "PolicyUpdateRequest",
    "UserRoleUpdateRequest",
    "validation_error_from",
]
