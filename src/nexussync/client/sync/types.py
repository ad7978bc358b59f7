"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError and its subclasses: Resolution, install and verification errors
- ResolvedAsset: The single asset chosen for installation
- InstallResult: Outcome of a download and install
- ReconcileResult: Outcome of a full reconciliation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from nexussync.core.types import Desired, SyncError, SyncState


class ArtifactNotFound(SyncError):
    """No artifact matches the desired selector."""


class MissingParentDirectory(SyncError):
    """The target's parent directory does not exist."""


class TargetNotAFile(SyncError):
    """The target path exists but is not a regular file; it is never removed."""


class TargetIsDirectory(TargetNotAFile):
    """The target path is a directory; it is never removed or replaced."""


class ChecksumError(SyncError):
    """Download verification failed."""


class ChecksumMismatch(ChecksumError):
    """A computed digest differs from the one the registry declared.

    Attributes:
        algorithm: Checksum algorithm that failed.
        expected: Digest declared by the registry.
        actual: Digest of the downloaded file.
    """

    def __init__(self, algorithm: str, expected: str, actual: str) -> None:
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum did not match: {algorithm} expected '{expected}', got '{actual}'"
        )


class NoChecksumComputable(ChecksumError):
    """None of the declared checksum algorithms could be computed."""


@dataclass(frozen=True)
class ResolvedAsset:
    """The asset selected for installation.

    Attributes:
        download_url: Where to fetch the file.
        version: Version of the artifact the asset belongs to.
        checksums: Algorithm name -> digest, as declared by the registry.
    """

    download_url: str
    version: str | None
    checksums: dict[str, str] = field(default_factory=dict)


@dataclass
class InstallResult:
    """Result of a download and install."""

    path: Path
    version: str | None
    size: int
    verified_with: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ReconcileResult:
    """Result of reconciling one target file.

    Attributes:
        path: Target file.
        desired: Desired state that was enforced.
        previous: Local state observed before any change.
        in_sync: Whether the target was already in sync.
        reason: Which decision tier settled the in-sync question.
        changed: Whether the file was installed or removed.
        installed: Install details when a download happened.
        warnings: Non-fatal problems (e.g. metadata could not be saved).
    """

    path: Path
    desired: Desired
    previous: SyncState
    in_sync: bool
    reason: str
    changed: bool = False
    installed: InstallResult | None = None
    warnings: list[str] = field(default_factory=list)


__all__ = [
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
