"""Administrative command surface.

AdminService is the only component that mutates policies and user roles
on behalf of an administrator.  Every command follows the same order:

1. validate the request (nothing is written on failure);
2. check the actor's privilege, when a :class:`PrivilegeChecker` is set;
3. commit the change to the authoritative store;
4. append the audit entry;
5. dispatch notifications, best effort.

Notification faults are logged and never undo step 3.

Example
-------
::

    service = AdminService(store, resolver, audit, users, backups)
    service.update_policy(
        "admin-1", role="basic", resource="project", action="create",
        plan="pro", allowed=True, reason="promo",
    )
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Callable, TypeVar

import pydantic

from rolegate.admin.privileges import PrivilegeChecker
from rolegate.admin.requests import (
    PolicyUpdateRequest,
    UserRoleUpdateRequest,
    validation_error_from,
)
from rolegate.audit.recorder import AuditCategory, AuditRecorder
from rolegate.backup.manager import BackupManager, PolicySnapshot
from rolegate.errors import NotFoundError, ValidationError
from rolegate.notifications.notifier import Notifier
from rolegate.policies.matrix import default_decision
from rolegate.policies.model import PolicyKey, PolicyRecord, Role, SubscriptionPlan
from rolegate.policies.resolver import PermissionEntry, PolicyResolver, PolicySource
from rolegate.policies.store import PolicyStore
from rolegate.users.directory import User, UserDirectory

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=pydantic.BaseModel)


# ---------------------------------------------------------------------------
# Permission view
# ---------------------------------------------------------------------------


def role_authorities(role: Role, plan: SubscriptionPlan) -> list[str]:
    """Return the coarse authority strings granted by a role and plan."""
    authorities = [f"ROLE_{role.name}", f"PLAN_{plan.name}"]
    match role:
        case Role.ADMIN:
            authorities += [
                "ADMIN",
                "MANAGE_USERS",
                "MANAGE_PERMISSIONS",
                "MANAGE_POLICIES",
                "SYSTEM_ACCESS",
            ]
        case Role.PREMIUM:
            authorities += ["PREMIUM_USER", "ADVANCED_FEATURES"]
            if plan == SubscriptionPlan.PRO:
                authorities.append("PRO_FEATURES")
        case Role.STANDARD:
            authorities.append("STANDARD_USER")
            if plan == SubscriptionPlan.PRO:
                authorities.append("ENHANCED_FEATURES")
        case Role.BASIC:
            authorities.append("BASIC_USER")
    return authorities


@dataclass(frozen=True)
class UserPermissionView:
    """Derived, non-persisted permission projection for one user."""

    user_id: str
    email: str
    role: Role
    plan: SubscriptionPlan
    permissions: list[PermissionEntry] = field(default_factory=list)
    authorities: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "user": {
                "id": self.user_id,
                "email": self.email,
                "role": self.role.value,
                "plan": self.plan.value,
            },
            "permissions": [p.to_dict() for p in self.permissions],
            "authorities": list(self.authorities),
        }


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AdminService:
    """Policy and role administration with audit and notifications.

    Parameters
    ----------
    store:
        Authoritative policy store.
    resolver:
        Resolver used for permission views.
    audit:
        Recorder receiving one entry per successful mutation.
    users:
        Directory holding users' roles and plans.
    backups:
        Backup manager for the same store.
    notifier:
        Optional notifier; when omitted no notifications are sent.
    privileges:
        Optional privilege checker.  When omitted the caller is trusted to
        have checked the actor already.
    """

    def __init__(
        self,
        store: PolicyStore,
        resolver: PolicyResolver,
        audit: AuditRecorder,
        users: UserDirectory,
        backups: BackupManager,
        notifier: Notifier | None = None,
        privileges: PrivilegeChecker | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._audit = audit
        self._users = users
        self._backups = backups
        self._notifier = notifier
        self._privileges = privileges

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    def list_policies(self, actor_id: str) -> list[PolicyRecord]:
        """Return every stored policy in canonical order."""
        self._require(actor_id, "list_policies")
        return self._store.list_all()

    def update_policy(
        self,
        actor_id: str,
        role: object = None,
        resource: object = None,
        action: object = None,
        plan: object = None,
        allowed: object = None,
        reason: str = "",
    ) -> PolicyRecord:
        """Set the decision for one key, turning it into a custom override.

        Raises
        ------
        ValidationError
            When a key component or ``allowed`` is missing or invalid.
        PermissionDeniedError
            When the actor lacks the ``role_policy:update`` privilege.
        """
        request = _parse(
            PolicyUpdateRequest,
            {
                "role": role,
                "resource": resource,
                "action": action,
                "plan": plan,
                "allowed": allowed,
                "reason": reason,
            },
        )
        return self.apply_policy_update(actor_id, request)

    def apply_policy_update(self, actor_id: str, request: PolicyUpdateRequest) -> PolicyRecord:
        """Apply an already-validated :class:`PolicyUpdateRequest`."""
        self._require(actor_id, "update_policy")
        key = request.key
        logger.info(
            "Policy update requested: actor=%s key=%s allowed=%s",
            actor_id,
            key,
            request.allowed,
        )

        previous, record = self._store.upsert_with_previous(
            key, allowed=request.allowed, reason=request.reason, system_policy=False
        )
        old_value = _policy_value(previous) if previous is not None else _baseline_value(key)

        self._audit.record(
            category=AuditCategory.ROLE_POLICY_CHANGE,
            actor_id=actor_id,
            subject=record.policy_id,
            old_value=old_value,
            new_value=_policy_value(record),
            reason=request.reason,
        )
        self._notify_affected_users(actor_id, record)
        logger.info(
            "Policy updated: policy_id=%s key=%s allowed=%s",
            record.policy_id,
            key,
            record.allowed,
        )
        return record

    def apply_policies(
        self,
        actor_id: str,
        requests: Iterable[PolicyUpdateRequest],
    ) -> list[PolicyRecord]:
        """Apply several updates in order, one audit entry each."""
        return [self.apply_policy_update(actor_id, request) for request in requests]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def change_user_role(
        self,
        actor_id: str,
        target_user_id: str,
        new_role: object = None,
        reason: str = "",
    ) -> User:
        """Change a user's role, audit it and notify the user.

        Raises
        ------
        ValidationError
            When ``new_role`` is missing, invalid or equal to the current role.
        NotFoundError
            When the target user does not exist.
        """
        request = _parse(UserRoleUpdateRequest, {"new_role": new_role, "reason": reason})
        self._require(actor_id, "change_user_role")

        target = self._get_user(target_user_id)
        if target.role == request.new_role:
            raise ValidationError(
                f"user already has role {request.new_role.value}",
                field="new_role",
                value=request.new_role,
            )

        old_role = target.role
        updated = self._users.update_role(target.user_id, request.new_role)

        self._audit.record(
            category=AuditCategory.USER_ROLE_CHANGE,
            actor_id=actor_id,
            subject=target.user_id,
            old_value=old_role.value,
            new_value=request.new_role.value,
            reason=request.reason,
        )
        if self._notifier is not None:
            _best_effort(
                self._notifier.notify_role_changed,
                target.user_id,
                actor_id,
                old_role.value,
                request.new_role.value,
                request.reason,
            )
        logger.info(
            "User role changed: user=%s old=%s new=%s",
            target.user_id,
            old_role.value,
            request.new_role.value,
        )
        return updated

    def get_user_permissions(self, actor_id: str, target_user_id: str) -> UserPermissionView:
        """Return the effective permissions of a user."""
        self._require(actor_id, "get_user_permissions")
        target = self._get_user(target_user_id)
        return UserPermissionView(
            user_id=target.user_id,
            email=target.email,
            role=target.role,
            plan=target.plan,
            permissions=self._resolver.resolve_all_for_user(target.role, target.plan),
            authorities=role_authorities(target.role, target.plan),
        )

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def create_backup(self, actor_id: str) -> PolicySnapshot:
        self._require(actor_id, "create_backup")
        return self._backups.create_backup(actor_id)

    def list_backups(self, actor_id: str) -> list[PolicySnapshot]:
        self._require(actor_id, "list_backups")
        return self._backups.list_backups()

    def restore_backup(self, actor_id: str, backup_id: str) -> PolicySnapshot:
        self._require(actor_id, "restore_backup")
        return self._backups.restore_backup(actor_id, backup_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self, actor_id: str, command: str) -> None:
        if self._privileges is not None:
            self._privileges.require(actor_id, command)

    def _get_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def _notify_affected_users(self, actor_id: str, record: PolicyRecord) -> None:
        if self._notifier is None:
            return
        try:
            affected = self._users.find_by_role_and_plan(record.role, record.plan)
        except Exception:
            logger.exception("Could not load users affected by %s", record.key)
            return
        for user in affected:
            _best_effort(
                self._notifier.notify_permission_changed,
                user.user_id,
                actor_id,
                record.resource.description,
                record.action.description,
                record.allowed,
            )
        logger.info(
            "Permission change notifications sent: affected=%d key=%s",
            len(affected),
            record.key,
        )


def _parse(model: type[_M], data: Mapping[str, object]) -> _M:
    try:
        return model.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        raise validation_error_from(exc) from exc


def _best_effort(func: Callable[..., object], *args: object) -> None:
    try:
        func(*args)
    except Exception:
        logger.exception("Notification dispatch failed")


def _policy_value(record: PolicyRecord) -> dict[str, object]:
    return {
        **record.key.to_dict(),
        "allowed": record.allowed,
        "reason": record.reason,
        "source": PolicySource.POLICY.value,
    }


def _baseline_value(key: PolicyKey) -> dict[str, object]:
    return {
        **key.to_dict(),
        "allowed": default_decision(key.role, key.resource, key.action, key.plan),
        "reason": None,
        "source": PolicySource.DEFAULT.value,
    }


__all__ = ["AdminService", "UserPermissionView", "role_authorities"]
