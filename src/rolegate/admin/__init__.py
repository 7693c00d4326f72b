"""Administrative commands: request models, privilege checks and the service."""
from __future__ import annotations

from rolegate.admin.privileges import COMMAND_PRIVILEGES, PrivilegeChecker
from rolegate.admin.requests import PolicyUpdateRequest, UserRoleUpdateRequest
from rolegate.admin.service import AdminService, UserPermissionView

__all__ = [
    "AdminService",
    "COMMAND_PRIVILEGES",
    "PolicyUpdateRequest",
    "PrivilegeChecker",
    "UserPermissionView",
    "UserRoleUpdateRequest",
]
