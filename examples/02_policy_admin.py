#!/usr/bin/env python3
"""Example: Policy administration with rolegate

Shows an administrator overriding a policy, changing a user's role,
taking a backup and rolling the override back, with every step audited.

Usage:
    python examples/02_policy_admin.py
"""
from __future__ import annotations

import rolegate


def main() -> None:
    config = rolegate.RolegateConfig.model_validate(
        {
            "users": [
                {"id": "admin-1", "email": "admin@example.com", "role": "admin", "plan": "pro"},
                {"id": "alice", "email": "alice@example.com", "role": "basic", "plan": "pro"},
            ]
        }
    )
    acl = rolegate.AccessControl.bootstrap(config)

    # Step 1: Back up the seeded policies
    snapshot = acl.admin.create_backup("admin-1")
    print(f"Backup {snapshot.backup_id}: {snapshot.policy_count} policies")

    # Step 2: Open project creation to Basic users on Pro
    print(f"Before promo: {acl.is_allowed('basic', 'project', 'create', 'pro')}")
    acl.admin.update_policy(
        "admin-1",
        role="basic",
        resource="project",
        action="create",
        plan="pro",
        allowed=True,
        reason="spring promotion",
    )
    print(f"After promo:  {acl.is_allowed('basic', 'project', 'create', 'pro')}")

    # Step 3: Upgrade a user; they are notified
    acl.admin.change_user_role("admin-1", "alice", "premium", "annual upgrade")
    for notification in acl.notifier.get_user_notifications("alice"):
        print(f"  alice <- {notification.title}: {notification.message}")

    # Step 4: Roll back the promotion
    acl.admin.restore_backup("admin-1", snapshot.backup_id)
    print(f"After restore: {acl.is_allowed('basic', 'project', 'create', 'pro')}")

    # Step 5: Review the audit trail
    print("\nAudit trail:")
    for entry in acl.audit.entries():
        print(f"  {entry.entry_id} {entry.category.value:<22} {entry.actor_id} -> {entry.subject}")


if __name__ == "__main__":
    main()
