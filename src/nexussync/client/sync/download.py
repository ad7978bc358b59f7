"""Artifact download and installation.

This module provides:
- Installer: Downloads an asset next to its target and renames it into place
- verify_download: Check a downloaded file against registry checksums
- check_parent_directory: Pre-flight check for the target directory
- remove_target: Delete the target file, never a directory
"""

from __future__ import annotations

import logging
import secrets
from pathlib import Path
from typing import TYPE_CHECKING

from nexussync.client.sync.types import (
    ChecksumMismatch,
    InstallResult,
    MissingParentDirectory,
    NoChecksumComputable,
    ResolvedAsset,
    TargetIsDirectory,
    TargetNotAFile,
)
from nexussync.core.checksums import compute_checksum, normalize_digest

if TYPE_CHECKING:
    from nexussync.client.api import RegistryClient

logger = logging.getLogger(__name__)


def check_parent_directory(path: Path) -> None:
    """Require the target's parent directory to exist; it is never created.

    Raises:
        MissingParentDirectory: If the parent is missing or not a directory.
    """
    parent = Path(path).parent
    if not parent.is_dir():
        raise MissingParentDirectory(f"Target directory '{parent}' does not exist")


def temp_path_for(path: Path) -> Path:
    """Get a unique hidden temporary path in the target's directory.

    Same directory means same filesystem, so the final rename is atomic.
    """
    path = Path(path)
    return path.parent / f".{path.name}.{secrets.token_hex(4)}.tmp"


def remove_target(path: Path) -> bool:
    """Remove the target file.

    Returns:
        True if a file was removed, False if there was nothing to remove.

    Raises:
        TargetIsDirectory: If the target path is a directory.
        TargetNotAFile: If the target path is not a regular file.
    """
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return False
    if path.is_dir():
        raise TargetIsDirectory(f"Refusing to remove directory at {path}")
    if not path.is_file():
        raise TargetNotAFile(f"Refusing to remove {path}: not a regular file")
    path.unlink()
    logger.info(f"Removed {path}")
    return True


def verify_download(path: Path, checksums: dict[str, str]) -> list[str]:
    """Verify a file against the digests declared by the registry.

    Every declared algorithm that can be computed must match; algorithms
    this platform cannot compute are skipped.

    Args:
        path: Downloaded file.
        checksums: Algorithm name -> expected digest.

    Returns:
        Algorithms that were checked (sorted).

    Raises:
        ChecksumMismatch: On the first computed digest that differs.
        NoChecksumComputable: If no algorithm could be computed.
    """
    logger.debug(f"Performing download validation on '{path}'")
    verified: list[str] = []
    for algorithm, expected in sorted(checksums.items()):
        actual = compute_checksum(path, algorithm)
        if actual is None:
            logger.warning(f"Skipping unsupported checksum algorithm {algorithm}")
            continue
        if actual != normalize_digest(expected):
            raise ChecksumMismatch(algorithm, expected, actual)
        verified.append(algorithm)

    if not verified:
        raise NoChecksumComputable(
            f"No checksums could be computed for '{path}' "
            f"(declared: {', '.join(sorted(checksums)) or 'none'})"
        )
    return verified


class Installer:
    """Downloads assets and installs them atomically."""

    def __init__(self, client: RegistryClient) -> None:
        """Initialize the installer.

        Args:
            client: Registry client used to stream asset content.
        """
        self._client = client

    def install(
        self,
        path: Path,
        asset: ResolvedAsset,
        verify: bool = False,
    ) -> InstallResult:
        """Download an asset and atomically replace the target with it.

        The asset is written to a hidden temporary file in the target's
        directory and renamed over the target once complete (and verified,
        if requested). Readers see either the old file or the new one.
        The temporary file is removed on every failure; the existing
        target is then left untouched.

        Args:
            path: Absolute target path.
            asset: Asset to download.
            verify: Check the download against the registry checksums.

        Returns:
            InstallResult for the installed file.

        Raises:
            MissingParentDirectory: If the target directory does not exist.
            TargetIsDirectory: If the target path is a directory.
            DownloadError: If the transfer fails.
            ChecksumError: If verification fails.
        """
        path = Path(path)
        check_parent_directory(path)
        if path.is_dir():
            raise TargetIsDirectory(f"Refusing to replace directory at {path}")

        tmp_path = temp_path_for(path)
        try:
            with open(tmp_path, "xb") as f:
                size = self._client.download(asset.download_url, f)

            verified_with: list[str] = []
            if verify:
                verified_with = verify_download(tmp_path, asset.checksums)

            tmp_path.replace(path)
        finally:
            tmp_path.unlink(missing_ok=True)

        logger.info(f"Installed {asset.download_url} (version {asset.version}) at {path}")
        return InstallResult(
            path=path,
            version=asset.version,
            size=size,
            verified_with=verified_with,
        )
