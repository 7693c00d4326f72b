"""User store boundary.

rolegate does not own user accounts; it reads a user's role and plan and
writes the role on a role change.  :class:`UserDirectory` is that
boundary.  :class:`InMemoryUserDirectory` backs tests, the CLI and the
``users`` section of the configuration file.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace

from rolegate.errors import NotFoundError
from rolegate.policies.model import Role, SubscriptionPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    """The parts of a user account that authorisation needs."""

    user_id: str
    email: str
    role: Role
    plan: SubscriptionPlan


class UserDirectory(ABC):
    """Read/write access to users' role and plan."""

    @abstractmethod
    def get(self, user_id: str) -> User | None:
        """Return the user, or ``None`` when unknown."""

    @abstractmethod
    def update_role(self, user_id: str, role: Role) -> User:
        """Persist a new role and return the updated user.

        Raises
        ------
        NotFoundError
            When the user does not exist.
        """

    @abstractmethod
    def find_by_role_and_plan(self, role: Role, plan: SubscriptionPlan) -> list[User]:
        """Return every user holding *role* on *plan*."""


class InMemoryUserDirectory(UserDirectory):
    """Thread-safe dictionary-backed :class:`UserDirectory`."""

    def __init__(self, users: list[User] | None = None) -> None:
        self._users: dict[str, User] = {}
        self._lock = threading.Lock()
        for user in users or []:
            self.add(user)

    def add(self, user: User) -> None:
        with self._lock:
            if user.user_id in self._users:
                raise ValueError(f"duplicate user id {user.user_id!r}")
            self._users[user.user_id] = user

    def get(self, user_id: str) -> User | None:
        with self._lock:
            return self._users.get(str(user_id))

    def update_role(self, user_id: str, role: Role) -> User:
        with self._lock:
            current = self._users.get(str(user_id))
            if current is None:
                raise NotFoundError("user", user_id)
            updated = replace(current, role=role)
            self._users[updated.user_id] = updated
        logger.debug("User %s role set to %s", user_id, role.value)
        return updated

    def find_by_role_and_plan(self, role: Role, plan: SubscriptionPlan) -> list[User]:
        with self._lock:
            return [u for u in self._users.values() if u.role == role and u.plan == plan]

    def all(self) -> list[User]:
        with self._lock:
            return list(self._users.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)


__all__ = ["InMemoryUserDirectory", "User", "UserDirectory"]
