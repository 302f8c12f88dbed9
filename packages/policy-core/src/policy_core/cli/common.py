"""
Helpers shared by CLI command groups.

Loads snapshots and settings, and turns loading failures into a one-line
message and exit code 1 instead of a traceback.
"""

from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from policy_core.config import CompilerSettings
from policy_core.snapshot import Snapshot, load_snapshot


def load_snapshot_or_exit(path: Path) -> Snapshot:
    """Load a snapshot file, exiting with status 1 on failure."""
    try:
        return load_snapshot(path)
    except FileNotFoundError:
        print(f"Snapshot file not found: {path}")
        raise typer.Exit(1)
    except yaml.YAMLError as e:
        print(f"Snapshot file {path} is not valid YAML: {e}")
        raise typer.Exit(1)
    except ValidationError as e:
        print(f"Snapshot file {path} is invalid: {e}")
        raise typer.Exit(1)


def get_settings(
    failure_mode: str | None = None, limits_domain: str | None = None
) -> CompilerSettings:
    """Settings from the environment, with command-line values taking precedence."""
    overrides = {}
    if failure_mode is not None:
        overrides["failure_mode"] = failure_mode
    if limits_domain is not None:
        overrides["limits_domain"] = limits_domain
    return CompilerSettings(**overrides)
