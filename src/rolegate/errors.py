"""Error taxonomy for rolegate.

Every failure surfaced by the admin surface is one of the kinds below so
callers can branch on the exception type and inspect the offending field,
identifier or key.  A policy denial is never an error: it is a normal
``allowed=False`` decision.

Example
-------
>>> from rolegate.errors import NotFoundError
>>> try:
...     raise NotFoundError("backup", "backup_123")
... except NotFoundError as exc:
...     exc.identifier
'backup_123'
"""
from __future__ import annotations


class RolegateError(Exception):
    """Base class for all rolegate errors."""


class ValidationError(RolegateError, ValueError):
    """Raised when a mutation request is missing a field or carries an invalid value.

    Attributes
    ----------
    field:
        Name of the offending field, or ``None`` when the request as a
        whole is malformed.
    value:
        The rejected value.
    """

    def __init__(self, message: str, field: str | None = None, value: object = None) -> None:
        self.field = field
        self.value = value
        prefix = f"[{field}] " if field else ""
        super().__init__(f"{prefix}{message}")


class NotFoundError(RolegateError, LookupError):
    """Raised when a target user or backup identifier does not exist.

    Attributes
    ----------
    kind:
        What was looked up (``"user"``, ``"backup"``).
    identifier:
        The identifier that could not be resolved.
    """

    def __init__(self, kind: str, identifier: object) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier!r}")


class ConflictError(RolegateError):
    """Raised when a restore is attempted while another restore is in flight.

    The caller is expected to retry; concurrent restores are never merged.
    """


class InvariantViolation(RolegateError):
    """Raised when a write would leave two active records for one policy key.

    Attributes
    ----------
    key:
        The duplicated :class:`~rolegate.policies.model.PolicyKey`, if known.
    """

    def __init__(self, message: str, key: object = None) -> None:
        self.key = key
        super().__init__(message)


class PermissionDeniedError(RolegateError):
    """Raised when an actor lacks the privilege required for an admin command.

    Attributes
    ----------
    actor_id:
        The actor that was refused.
    privilege:
        ``"<resource>:<action>"`` label of the missing privilege.
    """

    def __init__(self, actor_id: object, privilege: str) -> None:
        self.actor_id = actor_id
        self.privilege = privilege
        super().__init__(f"actor {actor_id!r} lacks privilege {privilege}")


__all__ = [
    "ConflictError",
    "InvariantViolation",
    "NotFoundError",
    "PermissionDeniedError",
    "RolegateError",
    "ValidationError",
]
