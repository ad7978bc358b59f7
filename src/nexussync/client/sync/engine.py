"""Sync engine reconciling a local file with a registry artifact.

This module provides:
- SyncEngine: Computes local state, decides drift and installs artifacts
"""

from __future__ import annotations

import logging
from pathlib import Path

from nexussync.client.api import RegistryClient
from nexussync.client.state import LocalMetadata, MetadataStore, MetadataWriteError, NullMetadataStore
from nexussync.client.sync.domain.decisions import Decision, InSyncContext, evaluate_in_sync
from nexussync.client.sync.download import Installer, check_parent_directory, remove_target
from nexussync.client.sync.resolver import ArtifactResolver
from nexussync.client.sync.types import InstallResult, ReconcileResult, ResolvedAsset, TargetIsDirectory
from nexussync.core.config import ArtifactQuery
from nexussync.core.types import Desired, Ensure, SyncState, parse_ensure

logger = logging.getLogger(__name__)


class SyncEngine:
    """Reconciles one target file against one registry artifact.

    Registry results are memoized until reset() (called at the start of
    every reconcile()), so current_state(), is_in_sync() and apply() in the
    same run see one registry snapshot and search at most once.
    Instances share no state; use one per target.
    """

    def __init__(
        self,
        query: ArtifactQuery,
        path: Path,
        ensure: Desired = Ensure.PRESENT,
        store: MetadataStore | None = None,
        client: RegistryClient | None = None,
        verify_download: bool = False,
    ) -> None:
        """Initialize the sync engine.

        Args:
            query: Registry, repository and artifact to track.
            path: Absolute path of the target file.
            ensure: Desired state (Ensure member or exact version string).
            store: Metadata store (NullMetadataStore if None).
            client: Registry client (created from the query on first use if None).
            verify_download: Check downloads against registry checksums.
        """
        self._query = query
        self._path = Path(path)
        self._ensure = parse_ensure(ensure)
        self._store: MetadataStore = store if store is not None else NullMetadataStore()
        self._client = client
        self._owns_client = client is None
        self._verify_download = verify_download
        self._resolver: ArtifactResolver | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def ensure(self) -> Desired:
        return self._ensure

    def close(self) -> None:
        """Close the registry client if this engine created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def __enter__(self) -> SyncEngine:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    # === Registry access ===

    def _get_client(self) -> RegistryClient:
        if self._client is None:
            self._client = RegistryClient(self._query)
        return self._client

    @property
    def resolver(self) -> ArtifactResolver:
        """Resolver for the current run."""
        if self._resolver is None:
            self._resolver = ArtifactResolver(self._get_client(), self._query)
        return self._resolver

    def reset(self) -> None:
        """Forget memoized registry results, starting a new run."""
        self._resolver = None

    def resolve(self, desired: Desired | None = None) -> ResolvedAsset:
        """Resolve the asset for a desired state (default: the engine's)."""
        return self.resolver.resolve(self._ensure if desired is None else parse_ensure(desired))

    # === State ===

    def read_metadata(self) -> LocalMetadata | None:
        """Read cached metadata for the target."""
        return self._store.get(self._path)

    def _actual_mtime(self) -> int:
        return int(self._path.stat().st_mtime)

    def trusted_metadata(self) -> LocalMetadata | None:
        """Read cached metadata, or None if it no longer describes the file.

        Metadata is only trusted while its recorded mtime equals the
        file's actual mtime.
        """
        metadata = self.read_metadata()
        if metadata is None or not self._path.is_file():
            return None
        if metadata.mtime != self._actual_mtime():
            logger.debug(f"Ignoring stale metadata for {self._path}")
            return None
        return metadata

    def current_state(self) -> SyncState:
        """Compute the local state of the target file.

        Returns:
            ABSENT if the file is missing; PRESENT if only existence is
            wanted; otherwise MTIME_CHANGED if the metadata no longer
            describes the file, VERSION if it records a version, and
            UNKNOWN_VERSION if not.
        """
        if not self._path.exists():
            return SyncState.absent()

        if self._ensure is Ensure.PRESENT:
            return SyncState.present()

        metadata = self.read_metadata()
        if metadata is None:
            return SyncState.unknown_version()

        actual_mtime = self._actual_mtime()
        if metadata.mtime != actual_mtime:
            logger.debug(
                f"Metadata mtime {metadata.mtime} differs from actual {actual_mtime} for {self._path}"
            )
            return SyncState.mtime_changed()
        if metadata.version:
            return SyncState.at_version(metadata.version)
        return SyncState.unknown_version()

    def check(self, current: SyncState, desired: Desired | None = None) -> Decision:
        """Decide whether the target is in sync, and why.

        Args:
            current: State returned by current_state().
            desired: Desired state (default: the engine's).

        Raises:
            RegistryError: If the registry had to be consulted and failed.
        """
        desired = self._ensure if desired is None else parse_ensure(desired)
        ctx = InSyncContext(
            path=self._path,
            metadata=self.trusted_metadata(),
            resolve=lambda: self.resolve(desired),
        )
        return evaluate_in_sync(current, desired, ctx)

    def is_in_sync(self, current: SyncState, desired: Desired | None = None) -> bool:
        """Check whether the target is in sync with the desired state."""
        return self.check(current, desired).in_sync

    # === Changes ===

    def apply(self, desired: Desired | None = None) -> InstallResult | None:
        """Bring the target to the desired state.

        Removes the file for "absent"; otherwise downloads the resolved
        asset, installs it and records metadata. A metadata write failure
        is logged as a warning and does not fail the install.

        Returns:
            InstallResult after an install, None after a removal.

        Raises:
            TargetIsDirectory: If the target path is a directory.
            TargetNotAFile: If "absent" is wanted and the target is not a regular file.
            MissingParentDirectory: Before any network call, if the target
                directory does not exist.
            ArtifactNotFound, NoArtifactsFound, RegistryError: If resolution fails.
            DownloadError, ChecksumError: If the download fails.
        """
        desired = self._ensure if desired is None else parse_ensure(desired)

        if desired is Ensure.ABSENT:
            remove_target(self._path)
            return None

        check_parent_directory(self._path)
        if self._path.is_dir():
            raise TargetIsDirectory(f"Refusing to replace directory at {self._path}")
        asset = self.resolve(desired)
        result = Installer(self._get_client()).install(
            self._path, asset, verify=self._verify_download
        )
        result.warnings = self._record_metadata(asset)
        return result

    def _record_metadata(self, asset: ResolvedAsset) -> list[str]:
        metadata = LocalMetadata(
            mtime=self._actual_mtime(),
            version=asset.version,
            checksums=dict(asset.checksums),
        )
        try:
            self._store.set(self._path, metadata)
        except MetadataWriteError as e:
            logger.warning(f"Installed {self._path} but could not record metadata: {e}")
            return [str(e)]
        return []

    def reconcile(self) -> ReconcileResult:
        """Check the target and fix it if it drifted.

        Starts a new run: registry results from earlier calls are discarded.
        """
        self.reset()

        current = self.current_state()
        decision = self.check(current)
        result = ReconcileResult(
            path=self._path,
            desired=self._ensure,
            previous=current,
            in_sync=decision.in_sync,
            reason=decision.reason,
        )
        if decision.in_sync:
            logger.debug(f"{self._path} is in sync ({decision.reason})")
            return result

        logger.info(f"{self._path} is out of sync ({decision.reason}), applying '{self._ensure}'")
        result.installed = self.apply()
        result.changed = True
        if result.installed is not None:
            result.warnings = list(result.installed.warnings)
        return result
