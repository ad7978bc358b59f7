"""Decision table for the in-sync question.

Tiers are evaluated in order; the first one that returns a Decision wins.
Cheap local signals come first, the registry is consulted only when they
are not conclusive, and hashing the whole file is the last resort.

| Tier             | Applies when                      | Network | Outcome                       |
|------------------|-----------------------------------|---------|-------------------------------|
| mtime_changed    | current state is MTIME_CHANGED    | no      | out of sync                   |
| present          | desired is present                | no      | in sync iff file exists       |
| absent           | desired is absent                 | no      | in sync iff file missing      |
| missing_target   | file missing or not a regular file| no      | out of sync                   |
| cached_version   | metadata has a version            | maybe   | cached == desired or remote   |
| cached_checksum  | metadata has checksums            | yes     | first shared algorithm decides|
| full_checksum    | always                            | yes     | any local digest matches      |
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from nexussync.client.sync.types import ArtifactNotFound, ResolvedAsset
from nexussync.core.checksums import checksum_matches, is_supported, normalize_digest
from nexussync.core.types import Desired, Ensure, SyncState, SyncStateKind, is_exact_version

if TYPE_CHECKING:
    from nexussync.client.state import LocalMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    """Answer to the in-sync question and the tier that produced it."""

    in_sync: bool
    tier: str
    reason: str


@dataclass
class InSyncContext:
    """Everything a tier may look at.

    Attributes:
        path: Target file.
        metadata: Cached metadata for the file (None if unavailable).
        resolve: Resolves the registry asset for the desired state; may
            raise ArtifactNotFound or RegistryError.
    """

    path: Path
    metadata: LocalMetadata | None
    resolve: Callable[[], ResolvedAsset]

    @property
    def exists(self) -> bool:
        return self.path.exists()

    @property
    def is_file(self) -> bool:
        return self.path.is_file()

    def resolve_or_none(self) -> ResolvedAsset | None:
        """Resolve the asset; a missing artifact means "out of sync".

        Registry failures are not caught: an unreachable registry must not
        be mistaken for an answer.
        """
        try:
            return self.resolve()
        except ArtifactNotFound as e:
            logger.debug(f"{e}; treating {self.path} as out of sync")
            return None


Tier = Callable[[SyncState, Desired, InSyncContext], Decision | None]


def mtime_changed_tier(current: SyncState, desired: Desired, ctx: InSyncContext) -> Decision | None:
    if current.kind is SyncStateKind.MTIME_CHANGED:
        return Decision(False, "mtime_changed", "file was modified outside of nexussync")
    return None


def present_tier(current: SyncState, desired: Desired, ctx: InSyncContext) -> Decision | None:
    if desired is Ensure.PRESENT:
        exists = ctx.exists
        return Decision(exists, "present", "file exists" if exists else "file is missing")
    return None


def absent_tier(current: SyncState, desired: Desired, ctx: InSyncContext) -> Decision | None:
    if desired is Ensure.ABSENT:
        exists = ctx.exists
        return Decision(not exists, "absent", "file exists" if exists else "file is missing")
    return None


def missing_target_tier(current: SyncState, desired: Desired, ctx: InSyncContext) -> Decision | None:
    if not ctx.exists:
        return Decision(False, "missing_target", "file is missing")
    if not ctx.is_file:
        return Decision(False, "missing_target", "target is not a regular file")
    return None


def cached_version_tier(current: SyncState, desired: Desired, ctx: InSyncContext) -> Decision | None:
    cached = ctx.metadata.version if ctx.metadata else None
    if not cached:
        return None

    logger.debug(f"Found metadata version '{cached}' for '{ctx.path}'")

    # Avoid network calls if we already have the requested version
    if is_exact_version(desired) and desired == cached:
        return Decision(True, "cached_version", f"cached version {cached} matches")

    asset = ctx.resolve_or_none()
    if asset is None:
        return Decision(False, "cached_version", f"no registry artifact matches '{desired}'")

    logger.debug(f"Checking upstream version '{asset.version}' against '{cached}' for '{ctx.path}'")
    if asset.version == cached:
        return Decision(True, "cached_version", f"registry version {asset.version} matches")
    return Decision(
        False,
        "cached_version",
        f"registry version {asset.version} differs from cached {cached}",
    )


def cached_checksum_tier(current: SyncState, desired: Desired, ctx: InSyncContext) -> Decision | None:
    cached = ctx.metadata.checksums if ctx.metadata else {}
    if not cached:
        return None

    asset = ctx.resolve_or_none()
    if asset is None:
        return Decision(False, "cached_checksum", f"no registry artifact matches '{desired}'")

    # The first algorithm known on both sides decides
    for algorithm in sorted(cached):
        expected = asset.checksums.get(algorithm)
        if not expected:
            continue
        logger.debug(
            f"Checking upstream {algorithm} '{expected}' against metadata "
            f"'{cached[algorithm]}' for '{ctx.path}'"
        )
        matches = normalize_digest(expected) == normalize_digest(cached[algorithm])
        return Decision(
            matches,
            "cached_checksum",
            f"cached {algorithm} {'matches' if matches else 'differs'}",
        )

    logger.debug(f"No cached checksum algorithm in common with the registry for '{ctx.path}'")
    return None


def full_checksum_tier(current: SyncState, desired: Desired, ctx: InSyncContext) -> Decision | None:
    logger.debug(f"Performing a full checksum on '{ctx.path}'")

    asset = ctx.resolve_or_none()
    if asset is None:
        return Decision(False, "full_checksum", f"no registry artifact matches '{desired}'")

    for algorithm, expected in sorted(asset.checksums.items()):
        if not is_supported(algorithm):
            logger.warning(f"Skipping unsupported checksum algorithm {algorithm} for '{ctx.path}'")
            continue
        if checksum_matches(ctx.path, algorithm, expected):
            return Decision(True, "full_checksum", f"local {algorithm} matches")

    return Decision(False, "full_checksum", "no local checksum matches the registry")


# Ordered from cheapest to most expensive
IN_SYNC_TIERS: list[tuple[str, Tier]] = [
    ("mtime_changed", mtime_changed_tier),
    ("present", present_tier),
    ("absent", absent_tier),
    ("missing_target", missing_target_tier),
    ("cached_version", cached_version_tier),
    ("cached_checksum", cached_checksum_tier),
    ("full_checksum", full_checksum_tier),
]


def evaluate_in_sync(
    current: SyncState,
    desired: Desired,
    ctx: InSyncContext,
    tiers: list[tuple[str, Tier]] | None = None,
) -> Decision:
    """Run the tiers in order and return the first decision.

    Args:
        current: Local state as computed by the engine.
        desired: Desired state.
        ctx: Target path, metadata and registry access.
        tiers: Tier table (defaults to IN_SYNC_TIERS).

    Returns:
        The first Decision produced; out of sync if no tier decides.
    """
    for name, tier in IN_SYNC_TIERS if tiers is None else tiers:
        decision = tier(current, desired, ctx)
        if decision is not None:
            logger.debug(
                f"{ctx.path}: {'in sync' if decision.in_sync else 'out of sync'} "
                f"at tier {name} ({decision.reason})"
            )
            return decision
    return Decision(False, "none", "no tier could decide")
