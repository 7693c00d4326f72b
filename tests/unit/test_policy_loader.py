"""Tests for PolicyLoader."""
from __future__ import annotations

from pathlib import Path

import pytest

from rolegate.policies.loader import PolicyConfigError, PolicyLoader
from rolegate.policies.model import Role, SubscriptionPlan

PROMO_YAML = """
version: "1.0"
description: Spring promotion
policies:
  - role: basic
    resource: project
    action: create
    plan: pro
    allowed: true
    reason: promo
  - role: PREMIUM
    resource: system
    action: read
    subscription_plan: basic
    allowed: false
"""


@pytest.fixture()
def loader() -> PolicyLoader:
    return PolicyLoader()


class TestLoad:
    def test_yaml_string(self, loader: PolicyLoader) -> None:
        requests = loader.load_from_yaml_string(PROMO_YAML)
        assert len(requests) == 2
        assert requests[0].role is Role.BASIC
        assert requests[0].allowed is True
        assert requests[1].plan is SubscriptionPlan.BASIC
        assert requests[1].reason == ""

    def test_file(self, loader: PolicyLoader, tmp_path: Path) -> None:
        path = tmp_path / "promo.yaml"
        path.write_text(PROMO_YAML, encoding="utf-8")
        assert len(loader.load(path)) == 2

    def test_missing_file(self, loader: PolicyLoader, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            loader.load(tmp_path / "absent.yaml")

    def test_empty_list_allowed(self, loader: PolicyLoader) -> None:
        assert loader.load_from_dict({"policies": []}) == []


class TestErrors:
    def test_not_a_mapping(self, loader: PolicyLoader) -> None:
        with pytest.raises(PolicyConfigError, match="mapping"):
            loader.load_from_yaml_string("- just\n- a list\n")

    def test_missing_policies(self, loader: PolicyLoader) -> None:
        with pytest.raises(PolicyConfigError, match="'policies'"):
            loader.load_from_dict({"version": "1.0"})

    def test_policies_not_a_list(self, loader: PolicyLoader) -> None:
        with pytest.raises(PolicyConfigError, match="must be a list"):
            loader.load_from_dict({"policies": {"role": "basic"}})

    def test_bad_yaml(self, loader: PolicyLoader) -> None:
        with pytest.raises(PolicyConfigError, match="parse"):
            loader.load_from_yaml_string("policies: [", config_path="broken.yaml")

    def test_unsupported_version(self, loader: PolicyLoader) -> None:
        with pytest.raises(PolicyConfigError, match="version"):
            loader.load_from_dict({"version": "2.0", "policies": []})

    def test_strict_rejects_unknown_keys(self) -> None:
        with pytest.raises(PolicyConfigError, match="Unknown top-level keys"):
            PolicyLoader(strict=True).load_from_dict({"policies": [], "owner": "ops"})

    def test_lenient_ignores_unknown_keys(self, loader: PolicyLoader) -> None:
        assert loader.load_from_dict({"policies": [], "owner": "ops"}) == []

    def test_invalid_entry_names_index(self, loader: PolicyLoader) -> None:
        raw = {
            "policies": [
                {"role": "basic", "resource": "project", "action": "read", "plan": "pro", "allowed": "maybe"}
            ]
        }
        with pytest.raises(PolicyConfigError, match="index 0") as exc_info:
            loader.load_from_dict(raw, config_path="pack.yaml")
        assert exc_info.value.config_path == "pack.yaml"

    def test_duplicate_key_rejected(self, loader: PolicyLoader) -> None:
        entry = {"role": "basic", "resource": "project", "action": "read", "plan": "pro", "allowed": True}
        with pytest.raises(PolicyConfigError, match="Duplicate"):
            loader.load_from_dict({"policies": [entry, dict(entry, allowed=False)]})

    def test_entry_not_a_mapping(self, loader: PolicyLoader) -> None:
        with pytest.raises(PolicyConfigError, match="Entry 0"):
            loader.load_from_dict({"policies": ["basic:project:read:pro"]})
