"""Configuration utilities for the nexussync CLI.

This module provides shared configuration functions used across CLI commands:
the JSON config file, the common connection options, and building an
ArtifactQuery from both.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from nexussync.client.state import STORE_KINDS, MetadataStore, default_metadata_store
from nexussync.client.sync.engine import SyncEngine
from nexussync.core.config import PROTOCOLS, ArtifactQuery, ConfigError
from nexussync.core.types import parse_ensure

# Keys accepted in the config file and as connection options
QUERY_KEYS = (
    "server",
    "repository",
    "artifact",
    "protocol",
    "user",
    "password",
    "proxy",
    "proxy_user",
    "proxy_password",
    "ca_certificate",
    "ssl_verify",
    "connection_timeout",
    "sleep",
)


def get_config_dir() -> Path:
    """Get the configuration directory for nexussync.

    Returns:
        Path to ~/.nexussync or equivalent.
    """
    return Path.home() / ".nexussync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config(config_file: Path | None = None) -> dict[str, Any]:
    """Load configuration from config file.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    config_file = config_file or get_config_file()
    if not config_file.exists():
        return {}
    try:
        data = json.loads(config_file.read_text())
    except ValueError as e:
        raise ConfigError(f"Invalid config file {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file {config_file}: expected a JSON object")
    return data


def parse_ssl_verify(value: Any) -> bool | int:
    """Parse an ssl_verify setting: true, false, or a verification depth."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    if text.isdigit():
        return int(text)
    raise ConfigError(f"Invalid ssl_verify value '{value}' (expected true, false or a depth)")


def build_query(options: dict[str, Any], config: dict[str, Any] | None = None) -> ArtifactQuery:
    """Build an ArtifactQuery from command-line options over config file values.

    Args:
        options: Option values; None means "not given on the command line".
        config: Values loaded from the config file.

    Raises:
        ConfigError: If the resulting configuration is invalid.
    """
    merged: dict[str, Any] = {}
    for key in QUERY_KEYS:
        value = options.get(key)
        if value is None and config:
            value = config.get(key)
        if value is not None:
            merged[key] = value

    if "ssl_verify" in merged:
        merged["ssl_verify"] = parse_ssl_verify(merged["ssl_verify"])
    if "ca_certificate" in merged:
        merged["ca_certificate"] = Path(merged["ca_certificate"]).expanduser()
    try:
        if "connection_timeout" in merged:
            merged["connection_timeout"] = float(merged["connection_timeout"])
        if "sleep" in merged:
            merged["sleep"] = float(merged["sleep"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric setting: {e}") from e

    return ArtifactQuery(
        server=merged.pop("server", ""),
        repository=merged.pop("repository", ""),
        artifact=merged.pop("artifact", ""),
        **merged,
    )


def create_store(kind: str) -> MetadataStore:
    """Create the metadata store selected on the command line."""
    return default_metadata_store(kind, db_path=get_config_dir() / "state.db")


def connection_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the shared connection options to a command."""
    options = [
        click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
                     default=None, help="Config file (default: ~/.nexussync/config.json)."),
        click.option("--server", default=None, help="Nexus server host[:port]."),
        click.option("--protocol", type=click.Choice(PROTOCOLS), default=None,
                     help="Protocol used to reach the server (default: https)."),
        click.option("--repository", default=None, help="Repository to search."),
        click.option("--artifact", default=None, help="Artifact name in the repository (e.g. foo/app)."),
        click.option("--user", default=None, help="User for basic auth."),
        click.option("--password", default=None, envvar="NEXUSSYNC_PASSWORD",
                     help="Password for basic auth."),
        click.option("--proxy", default=None, help="Proxy URL."),
        click.option("--proxy-user", default=None, help="User for the proxy."),
        click.option("--proxy-password", default=None, envvar="NEXUSSYNC_PROXY_PASSWORD",
                     help="Password for the proxy."),
        click.option("--ca-certificate", default=None,
                     help="CA certificate file or directory of CA certificates."),
        click.option("--ssl-verify", default=None,
                     help="Verify the server certificate: true, false, or a depth."),
        click.option("--connection-timeout", type=float, default=None,
                     help="Seconds before a request is aborted."),
        click.option("--sleep", type=float, default=None,
                     help="Seconds to wait between search result pages."),
        click.option("--metadata-store", type=click.Choice(STORE_KINDS), default="auto",
                     show_default=True, help="Where to cache file metadata."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_engine(
    path: Path,
    ensure: str,
    options: dict[str, Any],
    verify_download: bool = False,
) -> tuple[SyncEngine, MetadataStore]:
    """Create a SyncEngine and its metadata store from command options.

    Raises:
        ConfigError: If the configuration is invalid.
    """
    config_file = options.pop("config_file", None)
    store_kind = options.pop("metadata_store", "auto")
    query = build_query(options, load_config(config_file))
    try:
        desired = parse_ensure(ensure)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    store = create_store(store_kind)
    engine = SyncEngine(
        query,
        Path(path).absolute(),
        ensure=desired,
        store=store,
        verify_download=verify_download,
    )
    return engine, store


def close_store(store: MetadataStore) -> None:
    """Close a metadata store that holds resources."""
    close = getattr(store, "close", None)
    if close is not None:
        close()
