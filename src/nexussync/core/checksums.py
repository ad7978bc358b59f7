"""File checksums for drift detection and download verification.

This module provides:
- compute_checksum: Digest of a file under a named algorithm
- checksum_matches: Compare a file against an expected digest
- is_supported: Check whether an algorithm can be computed here

Algorithm names are the ones the registry publishes (sha1, sha256, sha512,
md5, ...). An algorithm that the platform cannot compute, for instance md5
on a FIPS-restricted OpenSSL build, yields None instead of an error.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

READ_BLOCK_SIZE = 1024 * 1024


def _new_hasher(algorithm: str) -> hashlib._Hash | None:
    try:
        hasher = hashlib.new(algorithm.lower())
    except (ValueError, TypeError) as e:
        logger.debug(f"Checksum algorithm '{algorithm}' unavailable: {e}")
        return None
    # shake_* digests need an explicit length
    if hasher.name.startswith("shake_"):
        return None
    return hasher


def is_supported(algorithm: str) -> bool:
    """Check whether a digest can be computed for the algorithm."""
    return _new_hasher(algorithm) is not None


def compute_checksum(path: Path, algorithm: str) -> str | None:
    """Compute the hex digest of a file.

    Reads the file in blocks to handle large files efficiently.

    Args:
        path: File to hash.
        algorithm: Registry checksum name (e.g. "sha256").

    Returns:
        Lowercase hex digest, or None if the algorithm is not available.

    Raises:
        OSError: If the file cannot be read.
    """
    hasher = _new_hasher(algorithm)
    if hasher is None:
        return None

    logger.debug(f"Computing {algorithm} checksum of {path}")
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(READ_BLOCK_SIZE), b""):
            hasher.update(block)
    return hasher.hexdigest()


def normalize_digest(digest: str) -> str:
    """Normalize a hex digest for comparison."""
    return digest.strip().lower()


def checksum_matches(path: Path, algorithm: str, expected: str) -> bool:
    """Check a file against an expected digest.

    Returns:
        True only if the digest could be computed and equals `expected`.
    """
    actual = compute_checksum(path, algorithm)
    if actual is None:
        return False
    return actual == normalize_digest(expected)
