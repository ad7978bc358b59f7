"""Local metadata persisted alongside installed artifacts.

This module provides:
- LocalMetadata: Cached facts about an installed file
- MetadataStore: Interface for reading and writing LocalMetadata
- XattrMetadataStore: Extended file attributes (Linux, macOS)
- SidecarMetadataStore: Hidden JSON file next to the target
- SqliteMetadataStore: Central SQLite database keyed by path
- NullMetadataStore: Stores nothing
- default_metadata_store: Pick a store for the current platform

Architecture:
    Metadata is a cache. It is written after a successful install and is
    only trusted while its recorded mtime equals the file's actual mtime.
    A store that cannot read returns None, so the engine falls back to
    comparing full checksums instead of failing.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from nexussync.core.types import SyncError

logger = logging.getLogger(__name__)

ATTRIBUTE_NAMESPACE = "nexussync"
SIDECAR_SUFFIX = ".nexussync.json"

STORE_KINDS = ("auto", "xattr", "sidecar", "sqlite", "none")


class MetadataWriteError(SyncError):
    """Metadata could not be persisted."""


def attribute_prefix() -> str:
    """Get the extended attribute namespace for the current privileges.

    Returns:
        "trusted" when running as root, "user" otherwise.
    """
    geteuid = getattr(os, "geteuid", None)
    if geteuid is not None and geteuid() == 0:
        return "trusted"
    return "user"


def attribute_keys(prefix: str) -> tuple[str, str, str]:
    """Get the (mtime, version, checksum prefix) attribute names for a prefix."""
    base = f"{prefix}.{ATTRIBUTE_NAMESPACE}"
    return f"{base}.mtime", f"{base}.version", f"{base}.cksum."


@dataclass
class LocalMetadata:
    """Cached facts about an installed artifact.

    Attributes:
        mtime: File modification time (whole seconds) when last installed.
        version: Installed artifact version.
        checksums: Algorithm name -> digest declared by the registry at install.
    """

    mtime: int | None = None
    version: str | None = None
    checksums: dict[str, str] = field(default_factory=dict)

    def to_attributes(self, prefix: str) -> dict[str, str]:
        """Flatten into string attributes under the given prefix."""
        mtime_key, version_key, cksum_key = attribute_keys(prefix)
        attrs: dict[str, str] = {}
        if self.mtime is not None:
            attrs[mtime_key] = str(self.mtime)
        if self.version:
            attrs[version_key] = self.version
        for algorithm, digest in self.checksums.items():
            attrs[f"{cksum_key}{algorithm}"] = digest
        return attrs

    @classmethod
    def from_attributes(cls, attrs: dict[str, str], prefix: str) -> LocalMetadata | None:
        """Rebuild from string attributes; None if none of ours are present."""
        mtime_key, version_key, cksum_key = attribute_keys(prefix)
        checksums = {
            key[len(cksum_key):]: value
            for key, value in attrs.items()
            if key.startswith(cksum_key) and len(key) > len(cksum_key)
        }
        if mtime_key not in attrs and version_key not in attrs and not checksums:
            return None

        mtime: int | None = None
        if mtime_key in attrs:
            try:
                mtime = int(attrs[mtime_key])
            except ValueError:
                logger.debug(f"Ignoring malformed mtime attribute '{attrs[mtime_key]}'")
        return cls(mtime=mtime, version=attrs.get(version_key) or None, checksums=checksums)

    def to_dict(self) -> dict[str, Any]:
        return {"mtime": self.mtime, "version": self.version, "checksums": dict(self.checksums)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LocalMetadata:
        mtime = data.get("mtime")
        return cls(
            mtime=int(mtime) if mtime is not None else None,
            version=data.get("version") or None,
            checksums={str(k): str(v) for k, v in (data.get("checksums") or {}).items()},
        )


class MetadataStore(Protocol):
    """Reads and writes LocalMetadata for a file path."""

    def get(self, path: Path) -> LocalMetadata | None:
        """Get metadata for a file, or None if unavailable."""
        ...

    def set(self, path: Path, metadata: LocalMetadata) -> None:
        """Persist metadata for a file.

        Raises:
            MetadataWriteError: If the metadata could not be written.
        """
        ...


class XattrMetadataStore:
    """Metadata kept in extended file attributes.

    Keys use the privilege-scoped prefix ("trusted" for root, "user"
    otherwise), e.g. "user.nexussync.version". The same prefix is used
    for reads and writes.
    """

    def __init__(self, prefix: str | None = None) -> None:
        self._prefix = prefix or attribute_prefix()

    @property
    def prefix(self) -> str:
        return self._prefix

    @staticmethod
    def is_supported() -> bool:
        """Check whether the platform exposes extended attributes."""
        return all(
            hasattr(os, name) for name in ("getxattr", "setxattr", "listxattr", "removexattr")
        )

    def _namespace(self) -> str:
        return f"{self._prefix}.{ATTRIBUTE_NAMESPACE}."

    def get(self, path: Path) -> LocalMetadata | None:
        """Read our attributes from the file."""
        logger.debug(f"Getting extended attributes from '{path}'")
        try:
            names = os.listxattr(path)
        except OSError as e:
            logger.debug(f"Could not list attributes on {path}: {e}")
            return None

        attrs: dict[str, str] = {}
        namespace = self._namespace()
        for name in names:
            if not name.startswith(namespace):
                continue
            try:
                attrs[name] = os.getxattr(path, name).decode("utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Could not read attribute {name} on {path}: {e}")

        return LocalMetadata.from_attributes(attrs, self._prefix)

    def set(self, path: Path, metadata: LocalMetadata) -> None:
        """Replace our attributes on the file."""
        attrs = metadata.to_attributes(self._prefix)
        namespace = self._namespace()
        logger.debug(f"Setting extended attributes on '{path}'")
        try:
            for name in os.listxattr(path):
                if name.startswith(namespace) and name not in attrs:
                    os.removexattr(path, name)
            for name, value in attrs.items():
                os.setxattr(path, name, value.encode("utf-8"))
        except OSError as e:
            raise MetadataWriteError(f"Could not set attributes on {path}: {e}") from e


def sidecar_path(path: Path) -> Path:
    """Get the sidecar metadata file for a target path."""
    path = Path(path)
    return path.parent / f".{path.name}{SIDECAR_SUFFIX}"


class SidecarMetadataStore:
    """Metadata kept in a hidden JSON file next to the target."""

    def get(self, path: Path) -> LocalMetadata | None:
        """Read the sidecar file, if any."""
        sidecar = sidecar_path(path)
        if not sidecar.exists():
            return None
        try:
            data = json.loads(sidecar.read_text(encoding="utf-8"))
            return LocalMetadata.from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.debug(f"Ignoring unreadable metadata file {sidecar}: {e}")
            return None

    def set(self, path: Path, metadata: LocalMetadata) -> None:
        """Write the sidecar file atomically."""
        sidecar = sidecar_path(path)
        tmp_path = sidecar.with_name(sidecar.name + ".tmp")
        try:
            tmp_path.write_text(json.dumps(metadata.to_dict(), indent=2), encoding="utf-8")
            tmp_path.replace(sidecar)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise MetadataWriteError(f"Could not write metadata file {sidecar}: {e}") from e


class SqliteMetadataStore:
    """Metadata kept in a SQLite database, one row per target path."""

    def __init__(self, db_path: Path) -> None:
        """Initialize the metadata database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS artifact_metadata (
                path TEXT PRIMARY KEY,
                mtime INTEGER,
                version TEXT,
                checksums TEXT,
                updated_at REAL NOT NULL
            );
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @staticmethod
    def _key(path: Path) -> str:
        return str(Path(path).absolute())

    def get(self, path: Path) -> LocalMetadata | None:
        """Get the stored row for a path."""
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT * FROM artifact_metadata WHERE path = ?",
                    (self._key(path),),
                ).fetchone()
            if row is None:
                return None
            checksums = json.loads(row["checksums"]) if row["checksums"] else {}
        except (sqlite3.Error, ValueError) as e:
            logger.debug(f"Could not read metadata for {path}: {e}")
            return None
        return LocalMetadata(mtime=row["mtime"], version=row["version"], checksums=checksums)

    def set(self, path: Path, metadata: LocalMetadata) -> None:
        """Insert or replace the row for a path."""
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT OR REPLACE INTO artifact_metadata
                    (path, mtime, version, checksums, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        self._key(path),
                        metadata.mtime,
                        metadata.version,
                        json.dumps(metadata.checksums),
                        time.time(),
                    ),
                )
        except sqlite3.Error as e:
            raise MetadataWriteError(f"Could not store metadata for {path}: {e}") from e


class NullMetadataStore:
    """Store used where no metadata mechanism is available."""

    def get(self, path: Path) -> LocalMetadata | None:
        return None

    def set(self, path: Path, metadata: LocalMetadata) -> None:
        logger.debug(f"No metadata store configured, not recording metadata for {path}")


def default_metadata_store(kind: str = "auto", db_path: Path | None = None) -> MetadataStore:
    """Create a metadata store.

    Args:
        kind: One of "auto", "xattr", "sidecar", "sqlite", "none". "auto"
            uses extended attributes where the platform has them and a
            sidecar file elsewhere.
        db_path: Database file for the "sqlite" store.

    Returns:
        A MetadataStore instance.

    Raises:
        ValueError: If the kind is unknown, or "sqlite" has no db_path.
    """
    if kind not in STORE_KINDS:
        raise ValueError(f"Unknown metadata store '{kind}' (expected one of {', '.join(STORE_KINDS)})")

    if kind == "auto":
        kind = "xattr" if XattrMetadataStore.is_supported() else "sidecar"

    if kind == "xattr":
        if not XattrMetadataStore.is_supported():
            logger.warning("Extended attributes are not supported here, metadata will not be cached")
            return NullMetadataStore()
        return XattrMetadataStore()
    if kind == "sidecar":
        return SidecarMetadataStore()
    if kind == "sqlite":
        if db_path is None:
            raise ValueError("The sqlite metadata store needs a database path")
        return SqliteMetadataStore(db_path)
    return NullMetadataStore()
