"""Convenience wiring for rolegate: the 3-line quickstart.

Example
-------
::

    from rolegate import AccessControl
    acl = AccessControl.bootstrap()
    acl.is_allowed("basic", "project", "create", "basic")

"""
from __future__ import annotations

import logging
from pathlib import Path

from rolegate.admin.privileges import PrivilegeChecker
from rolegate.admin.service import AdminService
from rolegate.audit.logger import AuditLogger
from rolegate.audit.recorder import AuditRecorder
from rolegate.backup.manager import BackupManager
from rolegate.config.loader import ConfigLoader, RolegateConfig
from rolegate.notifications.notifier import Notifier
from rolegate.policies.initializer import PolicyInitializer
from rolegate.policies.model import PolicyKey
from rolegate.policies.resolver import Decision, PolicyResolver
from rolegate.policies.store import PolicyStore
from rolegate.users.directory import InMemoryUserDirectory, User, UserDirectory

logger = logging.getLogger(__name__)


class AccessControl:
    """All rolegate components wired around one policy store.

    Build it with :meth:`bootstrap`, which also seeds the store, so the
    instance is ready to answer queries as soon as it is returned.
    """

    def __init__(
        self,
        store: PolicyStore,
        resolver: PolicyResolver,
        audit: AuditRecorder,
        users: UserDirectory,
        backups: BackupManager,
        notifier: Notifier,
        admin: AdminService,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.audit = audit
        self.users = users
        self.backups = backups
        self.notifier = notifier
        self.admin = admin

    @classmethod
    def bootstrap(
        cls,
        config: RolegateConfig | None = None,
        users: UserDirectory | None = None,
    ) -> AccessControl:
        """Wire every component from *config* and seed the policy store.

        Parameters
        ----------
        config:
            Configuration; defaults apply when omitted.
        users:
            User directory to use.  When omitted an in-memory directory is
            seeded from ``config.users``.
        """
        config = config or ConfigLoader().defaults()

        store = PolicyStore()
        PolicyInitializer(store).run()

        resolver = PolicyResolver(store, cache_enabled=config.resolver.cache_enabled)
        sink = AuditLogger(config.audit.log_path) if config.audit.log_path else None
        audit = AuditRecorder(sink=sink)

        if users is None:
            users = InMemoryUserDirectory(
                [User(u.id, u.email, u.role, u.plan) for u in config.users]
            )

        notifier = Notifier(
            webhook_url=config.notifications.webhook_url,
            webhook_format=config.notifications.webhook_format,
            timeout_seconds=config.notifications.timeout_seconds,
        )
        backups = BackupManager(store, audit, max_backups=config.backup.max_backups)
        privileges = PrivilegeChecker(users, resolver) if config.privileges.enforce else None
        admin = AdminService(
            store=store,
            resolver=resolver,
            audit=audit,
            users=users,
            backups=backups,
            notifier=notifier,
            privileges=privileges,
        )
        logger.info("rolegate ready: %d policies", store.count())
        return cls(store, resolver, audit, users, backups, notifier, admin)

    @classmethod
    def from_config_file(cls, config_path: str | Path) -> AccessControl:
        return cls.bootstrap(ConfigLoader().load(Path(config_path)))

    def resolve(self, role: object, resource: object, action: object, plan: object) -> Decision:
        """Resolve a tuple given as enum members or their string values.

        Raises
        ------
        ValidationError
            When a component names no enum member.
        """
        return self.resolver.resolve_key(PolicyKey.parse(role, resource, action, plan))

    def is_allowed(self, role: object, resource: object, action: object, plan: object) -> bool:
        return self.resolve(role, resource, action, plan).allowed

    def close(self) -> None:
        """Wait for queued notification webhooks to finish."""
        self.notifier.close()

    def __repr__(self) -> str:
        return f"AccessControl(store={self.store!r})"


__all__ = ["AccessControl"]
