#!/usr/bin/env python3
"""Example: Quickstart for rolegate

Minimal working example: seed the policy store, answer authorisation
queries and inspect where each decision came from.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install rolegate
"""
from __future__ import annotations

import rolegate


def main() -> None:
    print(f"rolegate version: {rolegate.__version__}")

    # Step 1: Wire every component and seed the store
    acl = rolegate.AccessControl.bootstrap()
    print(f"Policy store ready: {acl.store.count()} policies seeded")

    # Step 2: Resolve a few tuples
    queries = [
        ("admin", "project", "delete", "basic"),
        ("basic", "project", "create", "basic"),
        ("basic", "project", "create", "pro"),
        ("premium", "system", "read", "pro"),
        ("standard", "role_policy", "read", "pro"),
    ]

    print("\nAuthorisation checks:")
    for role, resource, action, plan in queries:
        decision = acl.resolve(role, resource, action, plan)
        icon = "ALLOW" if decision.allowed else "DENY"
        print(f"  [{icon}] {role}:{resource}:{action}:{plan} ({decision.source.value})")

    # Step 3: Full permission table for one role and plan
    entries = acl.resolver.resolve_all_for_user(rolegate.Role.STANDARD, rolegate.SubscriptionPlan.PRO)
    allowed = [f"{e.resource.value}:{e.action.value}" for e in entries if e.allowed]
    print(f"\nStandard user on Pro may: {', '.join(allowed)}")


if __name__ == "__main__":
    main()
