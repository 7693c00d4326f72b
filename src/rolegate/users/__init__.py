"""User directory boundary."""
from __future__ import annotations

from rolegate.users.directory import InMemoryUserDirectory, User, UserDirectory

__all__ = ["InMemoryUserDirectory", "User", "UserDirectory"]
