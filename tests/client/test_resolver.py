"""Tests for artifact resolution."""

from unittest.mock import MagicMock, patch

import pytest

from nexussync.client.api import ArtifactRecord, AssetDescriptor, NoArtifactsFound, RegistryClient
from nexussync.client.sync import resolver as resolver_module
from nexussync.client.sync.resolver import ArtifactResolver, exact_record, latest_record, select_record
from nexussync.client.sync.types import ArtifactNotFound
from nexussync.core.config import ArtifactQuery
from nexussync.core.types import Ensure


def make_record(version: str | None, url: str | None = None, assets: bool = True) -> ArtifactRecord:
    """Create a search record with one asset."""
    asset = AssetDescriptor(
        download_url=url or f"https://nexus.test/app-{version}.tar.gz",
        checksums={"sha1": f"sha1-{version}"},
    )
    return ArtifactRecord(version=version, assets=[asset] if assets else [])


def make_resolver(records: list[ArtifactRecord]) -> tuple[ArtifactResolver, MagicMock]:
    """Create a resolver over a mocked registry client."""
    client = MagicMock(spec=RegistryClient)
    client.search.return_value = records
    query = ArtifactQuery(server="nexus.test", repository="releases", artifact="app")
    return ArtifactResolver(client, query), client


class TestLatestRecord:
    """Tests for latest_record."""

    def test_highest_version(self) -> None:
        """Should pick the highest version regardless of order."""
        records = [make_record("1.10.0"), make_record("1.9.0"), make_record("1.2.0")]

        assert latest_record(records).version == "1.10.0"  # type: ignore[union-attr]

    def test_tie_goes_to_last(self) -> None:
        """Should pick the later record among equal versions."""
        records = [
            make_record("2.0", url="https://nexus.test/first"),
            make_record("2.0.0", url="https://nexus.test/second"),
        ]

        assert latest_record(records).assets[0].download_url == "https://nexus.test/second"  # type: ignore[union-attr]

    def test_versionless_records_lose(self) -> None:
        """Should prefer any version over a missing one."""
        records = [make_record(None), make_record("0.0.1"), make_record(None)]

        assert latest_record(records).version == "0.0.1"  # type: ignore[union-attr]

    def test_empty(self) -> None:
        """Should return None without records."""
        assert latest_record([]) is None


class TestExactRecord:
    """Tests for exact_record and select_record."""

    def test_first_match(self) -> None:
        """Should pick the first record with the exact version."""
        records = [
            make_record("1.0.0", url="https://nexus.test/first"),
            make_record("1.0.0", url="https://nexus.test/second"),
        ]

        assert exact_record(records, "1.0.0").assets[0].download_url == "https://nexus.test/first"  # type: ignore[union-attr]

    def test_exact_is_literal(self) -> None:
        """Should not treat equivalent versions as equal."""
        assert exact_record([make_record("1.0.0")], "1.0") is None

    def test_select(self) -> None:
        """Should dispatch on the desired state."""
        records = [make_record("1.0.0"), make_record("2.0.0")]

        assert select_record(records, Ensure.LATEST).version == "2.0.0"  # type: ignore[union-attr]
        assert select_record(records, Ensure.PRESENT).version == "2.0.0"  # type: ignore[union-attr]
        assert select_record(records, "1.0.0").version == "1.0.0"  # type: ignore[union-attr]


class TestArtifactResolver:
    """Tests for ArtifactResolver."""

    def test_resolve_latest(self) -> None:
        """Should resolve the first asset of the latest record."""
        resolver, _ = make_resolver([make_record("1.0.0"), make_record("2.0.0")])

        asset = resolver.resolve(Ensure.LATEST)

        assert asset.version == "2.0.0"
        assert asset.download_url == "https://nexus.test/app-2.0.0.tar.gz"
        assert asset.checksums == {"sha1": "sha1-2.0.0"}

    def test_resolve_exact(self) -> None:
        """Should resolve an exact version."""
        resolver, _ = make_resolver([make_record("1.0.0"), make_record("2.0.0")])

        assert resolver.resolve("1.0.0").version == "1.0.0"

    def test_searches_once(self) -> None:
        """Should search the registry once per resolver."""
        resolver, client = make_resolver([make_record("1.0.0"), make_record("2.0.0")])

        assert not resolver.searched
        resolver.resolve(Ensure.LATEST)
        resolver.resolve("1.0.0")
        resolver.resolve(Ensure.PRESENT)

        assert resolver.searched
        client.search.assert_called_once_with()

    def test_latest_is_ranked_once(self) -> None:
        """Should not rank the records again for repeated latest lookups."""
        resolver, _ = make_resolver([make_record("1.0.0"), make_record("2.0.0")])

        with patch.object(
            resolver_module, "latest_record", wraps=resolver_module.latest_record
        ) as ranked:
            first = resolver.resolve(Ensure.LATEST)
            second = resolver.resolve(Ensure.LATEST)

        assert first == second
        ranked.assert_called_once()

    def test_version_not_found(self) -> None:
        """Should raise ArtifactNotFound naming the version and artifact."""
        resolver, _ = make_resolver([make_record("1.0.0")])

        with pytest.raises(ArtifactNotFound, match="releases/app' version '3.0.0'"):
            resolver.resolve("3.0.0")

    def test_record_without_assets(self) -> None:
        """Should raise ArtifactNotFound when the record has nothing to download."""
        resolver, _ = make_resolver([make_record("1.0.0", assets=False)])

        with pytest.raises(ArtifactNotFound, match="no downloadable assets"):
            resolver.resolve(Ensure.LATEST)

    def test_registry_errors_propagate(self) -> None:
        """Should let registry failures through."""
        resolver, client = make_resolver([])
        client.search.side_effect = NoArtifactsFound("nothing")

        with pytest.raises(NoArtifactsFound):
            resolver.resolve(Ensure.LATEST)

    def test_absent_cannot_be_resolved(self) -> None:
        """Should refuse to resolve 'absent'."""
        resolver, client = make_resolver([make_record("1.0.0")])

        with pytest.raises(ValueError):
            resolver.resolve(Ensure.ABSENT)
        client.search.assert_not_called()
