"""Command-line interface for nexussync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- status: Show whether a file matches the desired artifact state
- ensure: Bring a file to the desired artifact state
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from nexussync.client.cli.config import (
    get_config_dir,
    get_config_file,
    load_config,
)
from nexussync.client.cli.ensure import ensure
from nexussync.client.cli.status import status

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    """Configure the nexussync logger.

    Args:
        verbose: Log debug records instead of warnings only.
        log_file: Optional file receiving the same records.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger("nexussync")
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root_logger.propagate = False

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    root_logger.addHandler(stderr_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


@click.group()
@click.version_option(package_name="nexus-sync")
@click.option("--verbose", "-v", is_flag=True, help="Show debug output.")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Also write log records to this file.")
def cli(verbose: bool, log_file: Path | None) -> None:
    """nexussync - Keep local files in sync with Nexus artifacts."""
    setup_logging(verbose, log_file)


cli.add_command(status)
cli.add_command(ensure)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    "setup_logging",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "load_config",
]
