"""Tests for PolicyResolver."""
from __future__ import annotations

from unittest.mock import MagicMock, PropertyMock

import pytest

from rolegate.policies.model import Action, PolicyKey, Resource, Role, SubscriptionPlan
from rolegate.policies.resolver import Decision, PolicyResolver, PolicySource
from rolegate.policies.store import PolicyStore

PROMO = (Role.BASIC, Resource.PROJECT, Action.CREATE, SubscriptionPlan.PRO)


@pytest.fixture()
def store() -> PolicyStore:
    return PolicyStore()


@pytest.fixture()
def resolver(store: PolicyStore) -> PolicyResolver:
    return PolicyResolver(store)


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestPrecedence:
    def test_falls_back_to_baseline(self, resolver: PolicyResolver) -> None:
        decision = resolver.resolve(*PROMO)
        assert decision == Decision(allowed=False, source=PolicySource.DEFAULT)

    def test_stored_policy_wins(self, store: PolicyStore, resolver: PolicyResolver) -> None:
        store.upsert(PolicyKey(*PROMO), allowed=True, reason="promo", system_policy=False)
        decision = resolver.resolve(*PROMO)
        assert decision.allowed is True
        assert decision.source is PolicySource.POLICY

    def test_stored_deny_overrides_baseline_allow(
        self, store: PolicyStore, resolver: PolicyResolver
    ) -> None:
        key = PolicyKey(Role.ADMIN, Resource.SYSTEM, Action.DELETE, SubscriptionPlan.PRO)
        store.upsert(key, allowed=False, reason="freeze", system_policy=False)
        assert resolver.resolve_key(key) == Decision(False, PolicySource.POLICY)

    def test_is_allowed_and_bool(self, resolver: PolicyResolver) -> None:
        assert resolver.is_allowed(Role.ADMIN, Resource.PROJECT, Action.DELETE, SubscriptionPlan.BASIC)
        assert not resolver.resolve(*PROMO)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class TestCache:
    def test_repeated_queries_hit_cache(self, store: PolicyStore) -> None:
        resolver = PolicyResolver(store)
        resolver.resolve(*PROMO)
        assert resolver.cache_size == 1
        resolver.resolve(*PROMO)
        assert resolver.cache_size == 1

    def test_write_invalidates_before_next_read(
        self, store: PolicyStore, resolver: PolicyResolver
    ) -> None:
        assert resolver.resolve(*PROMO).allowed is False
        store.upsert(PolicyKey(*PROMO), allowed=True, reason="promo", system_policy=False)
        assert resolver.resolve(*PROMO).allowed is True

    def test_replace_all_invalidates(self, store: PolicyStore, resolver: PolicyResolver) -> None:
        record = store.upsert(PolicyKey(*PROMO), allowed=True, reason="promo", system_policy=False)
        assert resolver.resolve(*PROMO).allowed is True
        store.replace_all([record.with_values(False, "rollback", False)])
        assert resolver.resolve(*PROMO).allowed is False

    def test_cache_disabled(self, store: PolicyStore) -> None:
        resolver = PolicyResolver(store, cache_enabled=False)
        resolver.resolve(*PROMO)
        assert resolver.cache_size == 0

    def test_clear_cache(self, resolver: PolicyResolver) -> None:
        resolver.resolve(*PROMO)
        resolver.clear_cache()
        assert resolver.cache_size == 0


# ---------------------------------------------------------------------------
# Fail closed
# ---------------------------------------------------------------------------


class TestFailClosed:
    def test_lookup_error_denies(self) -> None:
        store = MagicMock()
        store.version = 1
        store.get.side_effect = RuntimeError("backend unavailable")
        resolver = PolicyResolver(store)

        decision = resolver.resolve(Role.ADMIN, Resource.PROJECT, Action.READ, SubscriptionPlan.PRO)
        assert decision == Decision(allowed=False, source=PolicySource.FAIL_CLOSED)

    def test_version_error_denies(self) -> None:
        store = MagicMock()
        type(store).version = PropertyMock(side_effect=RuntimeError("backend unavailable"))
        resolver = PolicyResolver(store)

        assert resolver.resolve(*PROMO).source is PolicySource.FAIL_CLOSED

    def test_denial_is_not_cached(self) -> None:
        store = MagicMock()
        store.version = 1
        store.get.side_effect = [RuntimeError("blip"), None]
        resolver = PolicyResolver(store)

        assert resolver.resolve(*PROMO).source is PolicySource.FAIL_CLOSED
        assert resolver.resolve(*PROMO).source is PolicySource.DEFAULT


# ---------------------------------------------------------------------------
# Bulk resolution
# ---------------------------------------------------------------------------


class TestResolveAllForUser:
    def test_one_entry_per_pair_in_order(self, resolver: PolicyResolver) -> None:
        entries = resolver.resolve_all_for_user(Role.BASIC, SubscriptionPlan.BASIC)
        assert len(entries) == 20
        assert [(e.resource, e.action) for e in entries] == [
            (r, a) for r in Resource for a in Action
        ]

    def test_reflects_overrides(self, store: PolicyStore, resolver: PolicyResolver) -> None:
        store.upsert(PolicyKey(*PROMO), allowed=True, reason="promo", system_policy=False)
        entries = resolver.resolve_all_for_user(Role.BASIC, SubscriptionPlan.PRO)
        create = next(
            e for e in entries if e.resource is Resource.PROJECT and e.action is Action.CREATE
        )
        assert create.allowed is True
        assert create.to_dict() == {
            "resource": "project",
            "action": "create",
            "allowed": True,
            "source": "policy",
        }
