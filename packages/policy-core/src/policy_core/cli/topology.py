"""Topology CLI commands.

This module provides CLI commands for inspecting the resource graph:
- show: Gateways, listeners, attached routes, and policies without a target
- effective: Effective rules of every request path, with their sources
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from policy_core.cli.common import load_snapshot_or_exit
from policy_core.merge import effective_policies
from policy_core.topology import build_topology
from policy_protocols import PolicyKind

topology_app = typer.Typer(help="Inspect the resource graph and effective policies")


@topology_app.command("show")
def show_topology(
    snapshot_path: Path = typer.Argument(..., help="Snapshot file (YAML or JSON)"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show gateways, their listeners and routes, and unattached policies."""
    snapshot = load_snapshot_or_exit(snapshot_path)
    topology = build_topology(
        gateways=snapshot.gateways,
        routes=snapshot.routes,
        policies=snapshot.policies,
        gateway_classes=snapshot.gateway_classes or None,
    )

    rows = []
    for gateway_key in sorted(topology.gateways):
        gateway_node = topology.gateways[gateway_key]
        untargeted = topology.untargeted_routes(gateway_key, PolicyKind.RATE_LIMIT)
        rows.append(
            {
                "gateway": str(gateway_key),
                "class": gateway_node.gateway.gateway_class_name,
                "listeners": [
                    f"{node.name} ({node.listener.hostname or '*'})"
                    for node in topology.listeners_of(gateway_key)
                ],
                "routes": [str(k) for k in gateway_node.route_keys],
                "untargeted_routes": [str(k) for k in untargeted],
                "policies": [p.locator for p in gateway_node.policies],
            }
        )
    unattached = [p.locator for p in topology.unattached_policies]

    if json_output:
        print(json.dumps({"gateways": rows, "unattached_policies": unattached}, indent=2))
        return

    console = Console()
    table = Table(title="Topology")
    table.add_column("Gateway", style="cyan")
    table.add_column("Class")
    table.add_column("Listeners")
    table.add_column("Routes")
    table.add_column("Policies")

    for row in rows:
        routes = [
            f"{route} [dim](no rate limit)[/dim]" if route in row["untargeted_routes"] else route
            for route in row["routes"]
        ]
        table.add_row(
            row["gateway"],
            row["class"],
            "\n".join(row["listeners"]) or "-",
            "\n".join(routes) or "-",
            "\n".join(row["policies"]) or "-",
        )

    console.print(table)
    if unattached:
        console.print(f"[yellow]Unattached policies:[/yellow] {', '.join(unattached)}")


@topology_app.command("effective")
def show_effective(
    snapshot_path: Path = typer.Argument(..., help="Snapshot file (YAML or JSON)"),
    kind: PolicyKind = typer.Option(
        PolicyKind.RATE_LIMIT, "--kind", "-k", help="Policy kind to merge"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the effective rules of every request path."""
    snapshot = load_snapshot_or_exit(snapshot_path)
    topology = build_topology(
        gateways=snapshot.gateways,
        routes=snapshot.routes,
        policies=snapshot.policies,
        gateway_classes=snapshot.gateway_classes or None,
    )
    effective = effective_policies(topology, kind)

    if json_output:
        data = {
            path_id: {
                "path": [node.locator for node in rule_set.path],
                "rules": {name: rule.source for name, rule in sorted(rule_set.rules.items())},
            }
            for path_id, rule_set in effective.items()
        }
        print(json.dumps(data, indent=2))
        return

    console = Console()
    table = Table(title=f"Effective {kind.value}")
    table.add_column("Path", style="cyan")
    table.add_column("Listener")
    table.add_column("Route Rule")
    table.add_column("Rule")
    table.add_column("Source")

    for path_id, rule_set in effective.items():
        listener, rule_node = rule_set.path[2], rule_set.path[-1]
        if rule_set.empty():
            table.add_row(path_id, listener.locator, rule_node.locator, "[dim]none[/dim]", "-")
            continue
        for name, rule in sorted(rule_set.rules.items()):
            table.add_row(path_id, listener.locator, rule_node.locator, name, rule.source)

    console.print(table)
