"""policyctl - compile gateway policies into enforcement configuration."""

import logging

import typer

from policy_core.cli.filters import filters_app
from policy_core.cli.limits import limits_app
from policy_core.cli.reconcile import reconcile_app
from policy_core.cli.topology import topology_app

app = typer.Typer(
    name="policyctl",
    help="Compile gateway policies into limiter and proxy filter configuration",
    no_args_is_help=True,
)

# Add command groups
app.add_typer(topology_app, name="topology")
app.add_typer(limits_app, name="limits")
app.add_typer(filters_app, name="filters")
app.add_typer(reconcile_app, name="reconcile")


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
