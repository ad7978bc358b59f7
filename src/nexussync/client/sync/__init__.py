"""Sync package - Artifact resolution, drift detection and installation.

This package provides:
- SyncEngine: Reconciles a target file with a registry artifact
- ArtifactResolver: Picks the asset for a desired state
- Installer: Downloads and installs assets atomically
- evaluate_in_sync: Tiered in-sync decision table
- Error types and result dataclasses
"""

from nexussync.client.sync.domain import (
    IN_SYNC_TIERS,
    Decision,
    InSyncContext,
    evaluate_in_sync,
)
from nexussync.client.sync.download import (
    Installer,
    check_parent_directory,
    remove_target,
    verify_download,
)
from nexussync.client.sync.engine import SyncEngine
from nexussync.client.sync.resolver import (
    ArtifactResolver,
    exact_record,
    latest_record,
    select_record,
)
from nexussync.client.sync.types import (
    ArtifactNotFound,
    ChecksumError,
    ChecksumMismatch,
    InstallResult,
    MissingParentDirectory,
    NoChecksumComputable,
    ReconcileResult,
    ResolvedAsset,
    SyncError,
    TargetIsDirectory,
    TargetNotAFile,
)

__all__ = [
    # Engine
    "SyncEngine",
    # Resolver
    "ArtifactResolver",
    "exact_record",
    "latest_record",
    "select_record",
    # Download
    "Installer",
    "check_parent_directory",
    "remove_target",
    "verify_download",
    # Decisions
    "IN_SYNC_TIERS",
    "Decision",
    "InSyncContext",
    "evaluate_in_sync",
    # Types
    "ArtifactNotFound",
    "ChecksumError",
    "ChecksumMismatch",
    "InstallResult",
    "MissingParentDirectory",
    "NoChecksumComputable",
    "ReconcileResult",
    "ResolvedAsset",
    "SyncError",
    "TargetIsDirectory",
    "TargetNotAFile",
]
