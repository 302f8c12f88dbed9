"""Reconcile CLI command.

This module provides the CLI command that writes compiled artifacts:
- run: Compile a snapshot and update sinks where deployed state differs

Filter configs always go to JSON files under the output directory. Limiter
counters go to the same directory, or to the limiter service API when a
URL is given.

asyncio.run() executes the async reconciler from the sync CLI command.
"""

import asyncio
from pathlib import Path

import httpx
import typer

from policy_core.cli.common import get_settings, load_snapshot_or_exit
from policy_core.exceptions import PolicyCompilerError
from policy_core.reconcile import HttpLimiterSink, JsonFileSink, Reconciler, ReconcileResult

reconcile_app = typer.Typer(help="Write compiled artifacts to their sinks")


@reconcile_app.command("run")
def run_reconcile(
    snapshot_path: Path = typer.Argument(..., help="Snapshot file (YAML or JSON)"),
    output_dir: Path = typer.Option(
        None, "--out", "-o", envvar="POLICY_OUTPUT_DIR", help="Directory for JSON artifacts"
    ),
    limiter_url: str = typer.Option(
        None,
        "--limiter-url",
        envvar="POLICY_LIMITER_URL",
        help="Limiter service API URL (e.g., http://ratelimit-service:8080)",
    ),
) -> None:
    """
    Compile a snapshot and write the artifacts that changed.

    Environment variables:
        POLICY_OUTPUT_DIR: Directory for JSON artifacts
        POLICY_LIMITER_URL: Limiter service API URL
        POLICY_FAILURE_MODE: deny (default) or allow
    """
    snapshot = load_snapshot_or_exit(snapshot_path)
    settings = get_settings()
    file_sink = JsonFileSink(output_dir or Path(settings.output_dir))

    async def _run() -> ReconcileResult:
        if not limiter_url:
            return await Reconciler(file_sink, file_sink, settings).reconcile(snapshot)
        async with httpx.AsyncClient(
            base_url=limiter_url, timeout=settings.sink_timeout_seconds
        ) as http:
            reconciler = Reconciler(HttpLimiterSink(http=http), file_sink, settings)
            return await reconciler.reconcile(snapshot)

    try:
        result = asyncio.run(_run())
    except PolicyCompilerError as e:
        print(f"Reconcile failed ({e.kind}): {e}")
        raise typer.Exit(1)

    if not result.changed:
        print("Everything up to date")
        return

    if result.limits_changed:
        print(f"Wrote {len(result.compilation.limits)} limiter counters")
    for gateway_key in result.changed_gateways:
        print(f"Wrote filter config for gateway {gateway_key}")
