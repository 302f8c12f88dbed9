"""Proxy filter configuration CLI commands."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from policy_core.cli.common import get_settings, load_snapshot_or_exit
from policy_core.ratelimit import compile_snapshot, serialize_artifact
from policy_protocols import ObjectKey

filters_app = typer.Typer(help="Inspect compiled proxy filter configuration")


@filters_app.command("show")
def show_filters(
    snapshot_path: Path = typer.Argument(..., help="Snapshot file (YAML or JSON)"),
    gateway: str = typer.Option(
        None, "--gateway", "-g", help="Only this gateway (namespace/name)"
    ),
    failure_mode: str = typer.Option(
        None, "--failure-mode", help="Failure mode (deny or allow)"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the filter configuration compiled for each gateway."""
    snapshot = load_snapshot_or_exit(snapshot_path)
    result = compile_snapshot(snapshot, get_settings(failure_mode=failure_mode))

    configs = result.filter_configs
    if gateway:
        key = ObjectKey.parse(gateway)
        if key not in configs:
            print(f"Gateway {key} not found")
            raise typer.Exit(1)
        configs = {key: configs[key]}

    if json_output:
        print(serialize_artifact("filter configs", {str(k): v for k, v in configs.items()}))
        return

    console = Console()
    for key, config in configs.items():
        table = Table(title=f"Gateway {key} (failure mode: {config.failure_mode.value})")
        table.add_column("Entry", style="cyan")
        table.add_column("Domain")
        table.add_column("Hostnames")
        table.add_column("Rules", justify="right")
        table.add_column("Identifiers")

        for policy in config.policies:
            identifiers = [
                item.static.key for rule in policy.rules for item in rule.data if item.static
            ]
            table.add_row(
                policy.name,
                policy.domain,
                ", ".join(policy.hostnames) or "*",
                str(len(policy.rules)),
                "\n".join(identifiers),
            )

        console.print(table)
