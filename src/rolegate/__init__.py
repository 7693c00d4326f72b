"""rolegate: policy-driven authorisation for multi-tenant applications.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import rolegate
>>> rolegate.__version__
'0.1.0'
>>> acl = rolegate.AccessControl.bootstrap()
>>> acl.is_allowed("admin", "project", "delete", "basic")
True
"""
from __future__ import annotations

__version__: str = "0.1.0"

from rolegate.convenience import AccessControl

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from rolegate.errors import (
    ConflictError,
    InvariantViolation,
    NotFoundError,
    PermissionDeniedError,
    RolegateError,
    ValidationError,
)

# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------
from rolegate.policies.model import (
    Action,
    PolicyKey,
    PolicyRecord,
    Resource,
    Role,
    SubscriptionPlan,
)
from rolegate.policies.matrix import default_decision
from rolegate.policies.store import PolicyStore
from rolegate.policies.resolver import Decision, PermissionEntry, PolicyResolver, PolicySource
from rolegate.policies.initializer import PolicyInitializer
from rolegate.policies.loader import PolicyConfigError, PolicyLoader

# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------
from rolegate.audit.logger import AuditLogger
from rolegate.audit.recorder import AuditCategory, AuditEntry, AuditRecorder

# ---------------------------------------------------------------------------
# Backup
# ---------------------------------------------------------------------------
from rolegate.backup.manager import BackupManager, PolicySnapshot

# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
from rolegate.admin.privileges import PrivilegeChecker
from rolegate.admin.requests import PolicyUpdateRequest, UserRoleUpdateRequest
from rolegate.admin.service import AdminService, UserPermissionView

# ---------------------------------------------------------------------------
# Users and notifications
# ---------------------------------------------------------------------------
from rolegate.users.directory import InMemoryUserDirectory, User, UserDirectory
from rolegate.notifications.notifier import NotificationType, Notifier, UserNotification

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
from rolegate.config.loader import ConfigLoader, RolegateConfig

__all__ = [
    "__version__",
    "AccessControl",
    # Errors
    "ConflictError",
    "InvariantViolation",
    "NotFoundError",
    "PermissionDeniedError",
    "RolegateError",
    "ValidationError",
    # Policies
    "Action",
    "Decision",
    "PermissionEntry",
    "PolicyConfigError",
    "PolicyInitializer",
    "PolicyKey",
    "PolicyLoader",
    "PolicyRecord",
    "PolicyResolver",
    "PolicySource",
    "PolicyStore",
    "Resource",
    "Role",
    "SubscriptionPlan",
    "default_decision",
    # Audit
    "AuditCategory",
    "AuditEntry",
    "AuditLogger",
    "AuditRecorder",
    # Backup
    "BackupManager",
    "PolicySnapshot",
    # Admin
    "AdminService",
    "PolicyUpdateRequest",
    "PrivilegeChecker",
    "UserPermissionView",
    "UserRoleUpdateRequest",
    # Users and notifications
    "InMemoryUserDirectory",
    "NotificationType",
    "Notifier",
    "User",
    "UserDirectory",
    "UserNotification",
    # Config
    "ConfigLoader",
    "RolegateConfig",
]
