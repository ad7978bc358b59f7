"""Artifact selection among registry search results.

This module provides:
- select_record: Pick the record matching a selector
- ArtifactResolver: Per-reconciliation resolver with memoized results

A resolver is created for one reconciliation and discarded afterwards, so
"latest" is ranked at most once per run and never goes stale across runs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nexussync.client.sync.types import ArtifactNotFound, ResolvedAsset
from nexussync.core.types import Desired, Ensure, is_exact_version, parse_ensure
from nexussync.core.versions import compare_versions

if TYPE_CHECKING:
    from nexussync.client.api import ArtifactRecord, RegistryClient
    from nexussync.core.config import ArtifactQuery

logger = logging.getLogger(__name__)


def latest_record(records: list[ArtifactRecord]) -> ArtifactRecord | None:
    """Pick the record with the highest version.

    Ties go to the record listed last. The tie-break carries no meaning
    about registry ordering; it only keeps the choice deterministic.
    """
    best: ArtifactRecord | None = None
    for record in records:
        if best is None or compare_versions(record.version, best.version) >= 0:
            best = record
    return best


def exact_record(records: list[ArtifactRecord], version: str) -> ArtifactRecord | None:
    """Pick the first record whose version equals `version`."""
    return next((r for r in records if r.version == version), None)


def select_record(records: list[ArtifactRecord], desired: Desired) -> ArtifactRecord | None:
    """Pick the record for a desired state.

    "present" and "latest" select the highest version; a version string
    selects that exact version.
    """
    if is_exact_version(desired):
        return exact_record(records, desired)
    return latest_record(records)


class ArtifactResolver:
    """Resolves the asset to install for one reconciliation."""

    def __init__(self, client: RegistryClient, query: ArtifactQuery) -> None:
        """Initialize the resolver.

        Args:
            client: Registry client used for the search.
            query: Query describing the artifact (used in error messages).
        """
        self._client = client
        self._query = query
        self._records: list[ArtifactRecord] | None = None
        self._latest: ResolvedAsset | None = None

    @property
    def searched(self) -> bool:
        """Check whether the registry has been searched already."""
        return self._records is not None

    def records(self) -> list[ArtifactRecord]:
        """Get all search results, searching the registry on first use."""
        if self._records is None:
            self._records = self._client.search()
        return self._records

    def resolve(self, desired: Desired) -> ResolvedAsset:
        """Resolve the asset for a desired state.

        Args:
            desired: Ensure.PRESENT / Ensure.LATEST, or an exact version string.

        Returns:
            The first asset of the matching record, tagged with its version.

        Raises:
            ArtifactNotFound: If no record matches, or it has no assets.
            RegistryError: If the search fails.
        """
        desired = parse_ensure(desired)
        if desired is Ensure.ABSENT:
            raise ValueError("Cannot resolve an artifact for 'absent'")

        wants_latest = not is_exact_version(desired)
        if wants_latest and self._latest is not None:
            return self._latest

        record = select_record(self.records(), desired)
        label = "latest" if wants_latest else desired
        if record is None:
            raise ArtifactNotFound(
                f"Could not find '{self._query.repository}/{self._query.artifact}' "
                f"version '{label}' on '{self._query.server}'"
            )
        if not record.assets:
            raise ArtifactNotFound(
                f"'{self._query.repository}/{self._query.artifact}' version "
                f"'{record.version}' on '{self._query.server}' has no downloadable assets"
            )

        asset = record.assets[0]
        resolved = ResolvedAsset(
            download_url=asset.download_url,
            version=record.version,
            checksums=dict(asset.checksums),
        )
        logger.debug(f"Resolved {label} to version {resolved.version}: {resolved.download_url}")

        if wants_latest:
            self._latest = resolved
        return resolved
