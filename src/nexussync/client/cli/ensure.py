"""Ensure command for the nexussync CLI.

Commands:
- ensure: Reconcile a target file with the desired artifact state
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import click

from nexussync.client.cli.config import build_engine, close_store, connection_options
from nexussync.core.config import ConfigError
from nexussync.core.types import SyncError


@click.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--ensure", "ensure", default="present", show_default=True,
              help="Desired state: present, absent, latest, or a version.")
@click.option("--verify-download", is_flag=True,
              help="Check downloads against the registry checksums.")
@connection_options
def ensure(path: Path, ensure: str, verify_download: bool, **options: Any) -> None:
    """Download, replace or remove PATH so it matches the desired state.

    The registry is only contacted when cached file metadata cannot
    settle the question.
    """
    try:
        engine, store = build_engine(path, ensure, options, verify_download=verify_download)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        with engine:
            result = engine.reconcile()
    except SyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        close_store(store)

    if not result.changed:
        click.echo(f"{result.path}: in sync ({result.reason})")
        return

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    if result.installed is None:
        click.echo(f"{result.path}: removed")
    else:
        click.echo(f"{result.path}: installed version {result.installed.version} (was {result.previous})")
