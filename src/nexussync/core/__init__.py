"""Core module - Configuration, selectors, version ordering and checksums."""

from nexussync.core.checksums import checksum_matches, compute_checksum, is_supported
from nexussync.core.config import ArtifactQuery, ConfigError
from nexussync.core.types import (
    Desired,
    Ensure,
    SyncError,
    SyncState,
    SyncStateKind,
    is_exact_version,
    parse_ensure,
)
from nexussync.core.versions import compare_versions, version_key

__all__ = [
    # Checksums
    "checksum_matches",
    "compute_checksum",
    "is_supported",
    # Config
    "ArtifactQuery",
    "ConfigError",
    # Types
    "Desired",
    "Ensure",
    "SyncError",
    "SyncState",
    "SyncStateKind",
    "is_exact_version",
    "parse_ensure",
    # Versions
    "compare_versions",
    "version_key",
]
