"""Shared types for nexussync.

This module defines the desired-state selector and the observed local state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SyncError(Exception):
    """Base exception for nexussync errors."""


class Ensure(str, Enum):
    """Symbolic desired states.

    Any other desired value is an exact version string.
    """

    PRESENT = "present"
    ABSENT = "absent"
    LATEST = "latest"

    def __str__(self) -> str:
        return self.value


# Ensure member or an exact version string
Desired = Ensure | str


def parse_ensure(value: str | bool | Ensure) -> Desired:
    """Parse a user supplied desired state.

    Args:
        value: "present", "absent", "latest", a boolean, or a version string.

    Returns:
        An Ensure member, or the version string unchanged.

    Raises:
        ValueError: If the value is an empty string.
    """
    if isinstance(value, Ensure):
        return value
    if value is True:
        return Ensure.PRESENT
    if value is False:
        return Ensure.ABSENT
    if not value:
        raise ValueError("Desired state must not be empty")
    try:
        return Ensure(value)
    except ValueError:
        return value


def is_exact_version(desired: Desired) -> bool:
    """Check whether the desired state names a specific version."""
    return not isinstance(desired, Ensure)


class SyncStateKind(Enum):
    """Kind of the local state observed for a target file."""

    ABSENT = "absent"  # File does not exist
    PRESENT = "present"  # File exists and only existence was asked for
    VERSION = "version"  # Version known from trusted metadata
    MTIME_CHANGED = "mtime_changed"  # Metadata no longer matches the file
    UNKNOWN_VERSION = "unknown_version"  # No version in metadata


@dataclass(frozen=True)
class SyncState:
    """Observed local state; only VERSION carries a value."""

    kind: SyncStateKind
    version: str | None = None

    @classmethod
    def absent(cls) -> SyncState:
        return cls(SyncStateKind.ABSENT)

    @classmethod
    def present(cls) -> SyncState:
        return cls(SyncStateKind.PRESENT)

    @classmethod
    def at_version(cls, version: str) -> SyncState:
        return cls(SyncStateKind.VERSION, version)

    @classmethod
    def mtime_changed(cls) -> SyncState:
        return cls(SyncStateKind.MTIME_CHANGED)

    @classmethod
    def unknown_version(cls) -> SyncState:
        return cls(SyncStateKind.UNKNOWN_VERSION)

    def __str__(self) -> str:
        if self.kind is SyncStateKind.VERSION:
            return str(self.version)
        return self.kind.value
