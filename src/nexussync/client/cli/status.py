"""Status command for the nexussync CLI.

Commands:
- status: Report the local state of a target file and whether it drifted
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import click

from nexussync.client.cli.config import build_engine, close_store, connection_options
from nexussync.core.config import ConfigError
from nexussync.core.types import SyncError

# Exit status when the target is out of sync
EXIT_DRIFT = 2


@click.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--ensure", "ensure", default="present", show_default=True,
              help="Desired state: present, absent, latest, or a version.")
@connection_options
def status(path: Path, ensure: str, **options: Any) -> None:
    """Show whether PATH matches the desired artifact state.

    Exits with status 0 when in sync and 2 when the file drifted.
    Nothing is downloaded or changed.
    """
    try:
        engine, store = build_engine(path, ensure, options)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        with engine:
            current = engine.current_state()
            decision = engine.check(current)
    except SyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        close_store(store)

    click.echo(f"Path: {engine.path}")
    click.echo(f"Current: {current}")
    click.echo(f"Desired: {engine.ensure}")
    if decision.in_sync:
        click.echo(f"In sync ({decision.reason})")
        return

    click.echo(f"Out of sync ({decision.reason})")
    sys.exit(EXIT_DRIFT)
