"""Administrative privilege checks.

Each admin command requires one ``(resource, action)`` privilege.  The
checker loads the acting user and asks the resolver, so admin access
follows the same policies as every other operation.
"""
from __future__ import annotations

import logging

from rolegate.errors import NotFoundError, PermissionDeniedError
from rolegate.policies.model import Action, Resource
from rolegate.policies.resolver import PolicyResolver
from rolegate.users.directory import User, UserDirectory

logger = logging.getLogger(__name__)

# command -> (resource, action) the actor must be allowed
COMMAND_PRIVILEGES: dict[str, tuple[Resource, Action]] = {
    "list_policies": (Resource.ROLE_POLICY, Action.READ),
    "update_policy": (Resource.ROLE_POLICY, Action.UPDATE),
    "change_user_role": (Resource.PERMISSION, Action.UPDATE),
    "get_user_permissions": (Resource.PERMISSION, Action.READ),
    "create_backup": (Resource.ROLE_POLICY, Action.CREATE),
    "list_backups": (Resource.ROLE_POLICY, Action.READ),
    "restore_backup": (Resource.ROLE_POLICY, Action.UPDATE),
}


class PrivilegeChecker:
    """Checks that an actor may run an admin command.

    Parameters
    ----------
    users:
        Directory the actor is loaded from.
    resolver:
        Resolver consulted for the actor's role and plan.
    """

    def __init__(self, users: UserDirectory, resolver: PolicyResolver) -> None:
        self._users = users
        self._resolver = resolver

    def require(self, actor_id: str, command: str) -> User:
        """Return the actor when allowed to run *command*.

        Raises
        ------
        NotFoundError
            When the actor does not exist.
        PermissionDeniedError
            When the actor's effective policy denies the privilege.
        KeyError
            When *command* has no privilege mapping.
        """
        resource, action = COMMAND_PRIVILEGES[command]
        actor = self._users.get(actor_id)
        if actor is None:
            raise NotFoundError("user", actor_id)
        decision = self._resolver.resolve(actor.role, resource, action, actor.plan)
        if not decision.allowed:
            logger.warning(
                "Denied %s to actor=%s (role=%s plan=%s)",
                command,
                actor_id,
                actor.role.value,
                actor.plan.value,
            )
            raise PermissionDeniedError(actor_id, f"{resource.value}:{action.value}")
        return actor


__all__ = ["COMMAND_PRIVILEGES", "PrivilegeChecker"]
