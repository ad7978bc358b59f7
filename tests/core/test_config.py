"""Tests for ArtifactQuery configuration."""

from pathlib import Path

import pytest

from nexussync.core.config import ArtifactQuery, ConfigError


def make_query(**overrides: object) -> ArtifactQuery:
    """Create an ArtifactQuery for testing."""
    values: dict[str, object] = {
        "server": "nexus.example.com",
        "repository": "releases",
        "artifact": "tools/app",
    }
    values.update(overrides)
    return ArtifactQuery(**values)  # type: ignore[arg-type]


class TestArtifactQuery:
    """Tests for ArtifactQuery validation and derived values."""

    def test_defaults(self) -> None:
        """Should default to https, verification on and no pause."""
        query = make_query()

        assert query.protocol == "https"
        assert query.ssl_verify is True
        assert query.sleep == 0.0
        assert query.connection_timeout is None
        assert query.auth is None

    @pytest.mark.parametrize("missing", ["server", "repository", "artifact"])
    def test_requires_fields(self, missing: str) -> None:
        """Should reject an empty required field and name it."""
        with pytest.raises(ConfigError, match=missing):
            make_query(**{missing: ""})

    def test_lists_every_missing_field(self) -> None:
        """Should name all missing fields at once."""
        with pytest.raises(ConfigError) as exc_info:
            ArtifactQuery(server="", repository="", artifact="")

        assert "server, repository, artifact" in str(exc_info.value)

    def test_strips_trailing_slash(self) -> None:
        """Should strip trailing slashes from the server."""
        query = make_query(server="nexus.example.com:8081/")

        assert query.server == "nexus.example.com:8081"
        assert query.base_url == "https://nexus.example.com:8081"

    def test_search_url(self) -> None:
        """Should build the search endpoint from protocol and server."""
        query = make_query(protocol="http")

        assert query.search_url == "http://nexus.example.com/service/rest/v1/search"
        assert not query.is_secure

    def test_rejects_unknown_protocol(self) -> None:
        """Should reject protocols other than http and https."""
        with pytest.raises(ConfigError, match="protocol"):
            make_query(protocol="ftp")

    def test_rejects_negative_sleep(self) -> None:
        """Should reject a negative inter-page sleep."""
        with pytest.raises(ConfigError, match="sleep"):
            make_query(sleep=-1)

    def test_rejects_non_positive_timeout(self) -> None:
        """Should reject a zero timeout."""
        with pytest.raises(ConfigError, match="connection_timeout"):
            make_query(connection_timeout=0)

    def test_auth_needs_user_and_password(self) -> None:
        """Should only build credentials when both parts are set."""
        assert make_query(user="deploy").auth is None
        assert make_query(password="secret").auth is None
        assert make_query(user="deploy", password="secret").auth == ("deploy", "secret")

    def test_ssl_verify_depth_means_verify(self) -> None:
        """Should treat a verification depth as verification enabled."""
        assert make_query(ssl_verify=3).verify_tls is True
        assert make_query(ssl_verify=False).verify_tls is False

    def test_rejects_missing_ca_certificate(self, tmp_path: Path) -> None:
        """Should reject a CA certificate path that does not exist."""
        with pytest.raises(ConfigError, match="ca_certificate"):
            make_query(ca_certificate=tmp_path / "missing.pem")

    def test_accepts_ca_certificate(self, tmp_path: Path) -> None:
        """Should keep an existing CA certificate path."""
        ca = tmp_path / "ca.pem"
        ca.write_text("cert")

        query = make_query(ca_certificate=str(ca))

        assert query.ca_certificate == ca

    def test_is_immutable(self) -> None:
        """Should not allow fields to be changed."""
        query = make_query()

        with pytest.raises(AttributeError):
            query.server = "other"  # type: ignore[misc]

    def test_describe(self) -> None:
        """Should identify the artifact and server."""
        assert make_query().describe() == "'releases/tools/app' on 'nexus.example.com'"
