"""CLI entry point for rolegate.

Invoked as::

    rolegate [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m rolegate.cli.main

Commands
--------
- init        Write a default rolegate.yaml
- check       Resolve one (role, resource, action, plan) tuple
- matrix      Show the effective permissions of a role on a plan
- audit show  Display recent audit entries
- version     Show version information
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
import yaml
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rolegate.policies.model import Action, PolicyKey, Resource, Role, SubscriptionPlan

if TYPE_CHECKING:
    from rolegate.convenience import AccessControl

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("rolegate.yaml")


def _choices(enum_cls: type) -> click.Choice:
    return click.Choice([m.value for m in enum_cls], case_sensitive=False)


def _build_access_control(config_path: str, policies_path: str | None) -> AccessControl:
    """Bootstrap from the config (when present) and overlay an optional policy pack.

    The pack is written straight to this throwaway store, so read-only
    commands leave no audit entries and send no notifications.
    """
    from rolegate.config.loader import ConfigLoader
    from rolegate.convenience import AccessControl
    from rolegate.policies.loader import PolicyConfigError, PolicyLoader

    loader = ConfigLoader()
    cfg_path = Path(config_path)
    config = loader.load(cfg_path) if cfg_path.exists() else loader.defaults()
    # The CLI runs as a trusted local operator, not as a directory user.
    config.privileges.enforce = False

    acl = AccessControl.bootstrap(config)
    if policies_path:
        try:
            requests = PolicyLoader().load(policies_path)
        except (FileNotFoundError, PolicyConfigError) as exc:
            err_console.print(f"[red]Invalid policy pack:[/red] {exc}")
            sys.exit(2)
        for request in requests:
            acl.store.upsert(
                request.key, allowed=request.allowed, reason=request.reason, system_policy=False
            )
    return acl


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="rolegate")
def cli() -> None:
    """rolegate: role, resource, action and plan authorisation tools."""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from rolegate import __version__

    console.print(
        Panel(
            f"[bold]rolegate[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Policy resolution, audit and backup for multi-tenant authorisation.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


@cli.command(name="init")
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    help="Output config file path.",
)
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
def init_command(output: str, force: bool) -> None:
    """Write a default rolegate configuration file."""
    output_path = Path(output)
    if output_path.exists() and not force:
        err_console.print(f"[red]Refusing to overwrite[/red] {output_path} (use --force).")
        sys.exit(1)

    config: dict[str, object] = {
        "version": "1",
        "audit": {"log_path": "./rolegate_audit.jsonl"},
        "resolver": {"cache_enabled": True},
        "backup": {"max_backups": 50},
        "notifications": {"webhook_format": "generic", "timeout_seconds": 5.0},
        "privileges": {"enforce": True},
        "users": [
            {"id": "admin", "email": "admin@example.com", "role": "admin", "plan": "pro"},
            {"id": "premium", "email": "premium@example.com", "role": "premium", "plan": "pro"},
            {"id": "user", "email": "user@example.com", "role": "standard", "plan": "basic"},
            {"id": "basic", "email": "basic@example.com", "role": "basic", "plan": "basic"},
        ],
    }

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as fh:
        yaml.dump(config, fh, default_flow_style=False, sort_keys=False, allow_unicode=True)

    console.print(f"[green]Initialised[/green] rolegate config: [bold]{output_path}[/bold]")


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@click.argument("role", type=_choices(Role))
@click.argument("resource", type=_choices(Resource))
@click.argument("action", type=_choices(Action))
@click.argument("plan", type=_choices(SubscriptionPlan))
@click.option(
    "--policies",
    "-p",
    "policies_path",
    default=None,
    type=click.Path(),
    help="YAML policy pack applied before resolving.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(),
    help="Path to rolegate.yaml.",
)
def check_command(
    role: str,
    resource: str,
    action: str,
    plan: str,
    policies_path: str | None,
    config_path: str,
) -> None:
    """Resolve ROLE RESOURCE ACTION PLAN; exit 0 when allowed, 1 when denied."""
    acl = _build_access_control(config_path, policies_path)
    decision = acl.resolve(role, resource, action, plan)
    acl.close()

    status_str = "[green]ALLOWED[/green]" if decision.allowed else "[red]DENIED[/red]"
    console.print(Panel(status_str, title="Authorisation Check", border_style="blue"))
    console.print(f"  Tuple:  {role} / {resource} / {action} / {plan}")
    console.print(f"  Source: [cyan]{decision.source.value}[/cyan]")

    sys.exit(0 if decision.allowed else 1)


# ---------------------------------------------------------------------------
# matrix
# ---------------------------------------------------------------------------


@cli.command(name="matrix")
@click.option("--role", "-r", required=True, type=_choices(Role), help="Role to show.")
@click.option(
    "--plan",
    "-P",
    default=SubscriptionPlan.BASIC.value,
    show_default=True,
    type=_choices(SubscriptionPlan),
    help="Subscription plan.",
)
@click.option(
    "--policies",
    "-p",
    "policies_path",
    default=None,
    type=click.Path(),
    help="YAML policy pack applied before resolving.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    type=click.Path(),
    help="Path to rolegate.yaml.",
)
def matrix_command(role: str, plan: str, policies_path: str | None, config_path: str) -> None:
    """Show effective permissions of a role on a plan."""
    acl = _build_access_control(config_path, policies_path)
    role_enum = Role(role.lower())
    plan_enum = SubscriptionPlan(plan.lower())

    table = Table(title=f"{role_enum.description} on the {plan_enum.description}", box=box.SIMPLE)
    table.add_column("Resource", style="cyan")
    for action in Action:
        table.add_column(action.value.upper(), justify="center")

    for resource in Resource:
        cells = []
        for action in Action:
            key = PolicyKey(role_enum, resource, action, plan_enum)
            mark = "[green]yes[/green]" if acl.resolver.resolve_key(key) else "[red]no[/red]"
            record = acl.store.get(key)
            if record is not None and not record.system_policy:
                mark += "*"
            cells.append(mark)
        table.add_row(resource.value, *cells)

    acl.close()
    console.print(table)
    console.print("  * custom override")


# ---------------------------------------------------------------------------
# audit group
# ---------------------------------------------------------------------------


@cli.group(name="audit")
def audit_group() -> None:
    """Audit trail commands."""


@audit_group.command(name="show")
@click.option("--last", "-n", default=20, show_default=True, type=int, help="Number of recent entries to show.")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    type=click.Path(),
    help="Path to rolegate.yaml.",
)
def audit_show_command(last: int, config_path: str) -> None:
    """Show recent audit log entries."""
    from rolegate.audit.logger import AuditLogger
    from rolegate.config.loader import ConfigLoader

    loader = ConfigLoader()
    cfg_path = Path(config_path)
    config = loader.load(cfg_path) if cfg_path.exists() else loader.defaults()

    if config.audit.log_path is None:
        console.print("[yellow]No audit log configured.[/yellow]")
        return

    audit = AuditLogger(log_path=config.audit.log_path)
    records = audit.last_n(last)
    if not records:
        console.print("[yellow]No audit entries found.[/yellow]")
        return

    table = Table(title=f"Last {last} Audit Entries", box=box.SIMPLE)
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column("Category", style="cyan")
    table.add_column("Actor", style="magenta")
    table.add_column("Subject")
    table.add_column("Reason")

    for record in records:
        ts = str(record.get("timestamp", ""))[:19].replace("T", " ")
        table.add_row(
            ts,
            str(record.get("category", "")),
            str(record.get("actor_id", "")),
            str(record.get("subject", "")),
            str(record.get("reason", "")),
        )

    console.print(table)
    console.print(f"  Total audit records: [cyan]{audit.count()}[/cyan]")


if __name__ == "__main__":
    cli()
