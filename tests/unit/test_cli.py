"""Tests for the rolegate CLI."""
from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from rolegate.cli.main import cli
from rolegate.config.loader import ConfigLoader
from rolegate.convenience import AccessControl

PROMO_PACK = """
version: "1.0"
policies:
  - role: basic
    resource: project
    action: create
    plan: pro
    allowed: true
    reason: promo
"""


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def no_config(tmp_path: Path) -> str:
    return str(tmp_path / "missing.yaml")


@pytest.fixture()
def promo_pack(tmp_path: Path) -> str:
    path = tmp_path / "promo.yaml"
    path.write_text(PROMO_PACK, encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# version / init
# ---------------------------------------------------------------------------


class TestVersionAndInit:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "rolegate" in result.output

    def test_init_writes_loadable_config(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "rolegate.yaml"
        result = runner.invoke(cli, ["init", "--output", str(path)])

        assert result.exit_code == 0
        config = ConfigLoader().load(path)
        assert {u.id for u in config.users} == {"admin", "premium", "user", "basic"}

    def test_init_refuses_overwrite(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "rolegate.yaml"
        path.write_text("keep: me\n", encoding="utf-8")

        result = runner.invoke(cli, ["init", "--output", str(path)])
        assert result.exit_code == 1
        assert path.read_text(encoding="utf-8") == "keep: me\n"

        result = runner.invoke(cli, ["init", "--output", str(path), "--force"])
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheck:
    def test_allowed_exits_zero(self, runner: CliRunner, no_config: str) -> None:
        result = runner.invoke(
            cli, ["check", "admin", "project", "delete", "basic", "--config", no_config]
        )
        assert result.exit_code == 0
        assert "ALLOWED" in result.output

    def test_denied_exits_one(self, runner: CliRunner, no_config: str) -> None:
        result = runner.invoke(
            cli, ["check", "basic", "project", "create", "pro", "--config", no_config]
        )
        assert result.exit_code == 1
        assert "DENIED" in result.output

    def test_policy_pack_applied(self, runner: CliRunner, no_config: str, promo_pack: str) -> None:
        result = runner.invoke(
            cli,
            ["check", "BASIC", "project", "create", "pro", "--config", no_config, "--policies", promo_pack],
        )
        assert result.exit_code == 0
        assert "policy" in result.output

    def test_invalid_pack_exits_two(
        self, runner: CliRunner, no_config: str, tmp_path: Path
    ) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("policies: {}\n", encoding="utf-8")
        result = runner.invoke(
            cli,
            ["check", "basic", "project", "read", "pro", "--config", no_config, "--policies", str(bad)],
        )
        assert result.exit_code == 2

    def test_unknown_role_is_usage_error(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["check", "owner", "project", "read", "pro"])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# matrix
# ---------------------------------------------------------------------------


class TestMatrix:
    def test_renders_table(self, runner: CliRunner, no_config: str) -> None:
        result = runner.invoke(cli, ["matrix", "--role", "basic", "--plan", "pro", "--config", no_config])
        assert result.exit_code == 0
        assert "project" in result.output
        assert "role_policy" in result.output

    def test_role_required(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["matrix"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# audit show
# ---------------------------------------------------------------------------


class TestAuditShow:
    def test_no_log_configured(self, runner: CliRunner, no_config: str) -> None:
        result = runner.invoke(cli, ["audit", "show", "--config", no_config])
        assert result.exit_code == 0
        assert "No audit log configured" in result.output

    def test_shows_admin_changes(self, runner: CliRunner, tmp_path: Path) -> None:
        config_path = tmp_path / "rolegate.yaml"
        log_path = tmp_path / "audit.jsonl"
        config_path.write_text(
            f"audit:\n  log_path: {log_path}\n"
            "users:\n  - {id: admin-1, email: a@example.com, role: admin, plan: pro}\n",
            encoding="utf-8",
        )

        empty = runner.invoke(cli, ["audit", "show", "--config", str(config_path)])
        assert "No audit entries found" in empty.output

        acl = AccessControl.from_config_file(config_path)
        acl.admin.update_policy(
            "admin-1", role="basic", resource="project", action="create", plan="pro",
            allowed=True, reason="promo",
        )
        result = runner.invoke(cli, ["audit", "show", "--config", str(config_path)])
        assert result.exit_code == 0
        assert "Total audit records: 1" in result.output

    def test_policy_pack_leaves_no_audit_entries(
        self, runner: CliRunner, tmp_path: Path, promo_pack: str
    ) -> None:
        config_path = tmp_path / "rolegate.yaml"
        log_path = tmp_path / "audit.jsonl"
        config_path.write_text(f"audit:\n  log_path: {log_path}\n", encoding="utf-8")

        for args in (
            ["check", "basic", "project", "create", "pro"],
            ["matrix", "--role", "basic", "--plan", "pro"],
        ):
            result = runner.invoke(
                cli, [*args, "--config", str(config_path), "--policies", promo_pack]
            )
            assert result.exit_code == 0

        assert not log_path.exists() or log_path.read_text(encoding="utf-8") == ""
        result = runner.invoke(cli, ["audit", "show", "--config", str(config_path)])
        assert "No audit entries found" in result.output
