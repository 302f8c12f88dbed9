"""Limiter counter CLI commands.

This module provides CLI commands for the compiled limiter counters:
- show: Display the counters a snapshot compiles to
- diff: Compare them with the counters deployed in the snapshot

Rich Table for formatted output, JSON for automation.
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from policy_core.cli.common import get_settings, load_snapshot_or_exit
from policy_core.ratelimit import (
    LimitIndex,
    compile_snapshot,
    limits_changed,
    serialize_artifact,
)

limits_app = typer.Typer(help="Inspect compiled limiter counters")


@limits_app.command("show")
def show_limits(
    snapshot_path: Path = typer.Argument(..., help="Snapshot file (YAML or JSON)"),
    domain: str = typer.Option(None, "--domain", "-d", help="Limits domain"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the limiter counters compiled from a snapshot."""
    snapshot = load_snapshot_or_exit(snapshot_path)
    result = compile_snapshot(snapshot, get_settings(limits_domain=domain))
    limits = result.limits

    if json_output:
        print(serialize_artifact("limits", limits))
        return

    console = Console()
    table = Table(title="Limiter Counters")
    table.add_column("Namespace", style="cyan")
    table.add_column("Max", justify="right")
    table.add_column("Seconds", justify="right")
    table.add_column("Conditions")
    table.add_column("Variables")

    for definition in limits:
        table.add_row(
            definition.namespace,
            str(definition.max_value),
            str(definition.seconds),
            "\n".join(definition.conditions or []),
            "\n".join(definition.variables or []) or "-",
        )

    console.print(table)
    if result.unattached:
        console.print(f"[yellow]Unattached policies:[/yellow] {', '.join(result.unattached)}")


@limits_app.command("diff")
def diff_limits(
    snapshot_path: Path = typer.Argument(..., help="Snapshot file (YAML or JSON)"),
    domain: str = typer.Option(None, "--domain", "-d", help="Limits domain"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """
    Compare compiled counters with the snapshot's deployed counters.

    Exits with status 2 when they differ, so scripts can detect drift.
    """
    snapshot = load_snapshot_or_exit(snapshot_path)
    result = compile_snapshot(snapshot, get_settings(limits_domain=domain))
    deployed = LimitIndex.from_definitions(snapshot.deployed_limits)
    changed = limits_changed(result.index, deployed)

    desired_scopes = set(result.index.scopes())
    deployed_scopes = set(deployed.scopes())
    added = sorted(desired_scopes - deployed_scopes)
    removed = sorted(deployed_scopes - desired_scopes)
    modified = sorted(
        scope
        for scope in desired_scopes & deployed_scopes
        if not _scope_index(result.index, scope).equals(_scope_index(deployed, scope))
    )

    if json_output:
        data = {"changed": changed, "added": added, "removed": removed, "modified": modified}
        print(json.dumps(data, indent=2))
    elif not changed:
        print("Limiter counters up to date")
    else:
        console = Console()
        table = Table(title="Limiter Counter Drift")
        table.add_column("Scope", style="cyan")
        table.add_column("Change")
        for scope in added:
            table.add_row(scope, "[green]added[/green]")
        for scope in removed:
            table.add_row(scope, "[red]removed[/red]")
        for scope in modified:
            table.add_row(scope, "[yellow]modified[/yellow]")
        console.print(table)

    if changed:
        raise typer.Exit(2)


def _scope_index(index: LimitIndex, scope: str) -> LimitIndex:
    """Index restricted to one scope."""
    restricted = LimitIndex.from_definitions(index.to_definitions())
    for other in restricted.scopes():
        if other != scope:
            restricted.delete_scope(other)
    return restricted
