"""Connection configuration for a Nexus artifact query.

This module provides:
- ArtifactQuery: Immutable description of where and how to search for an artifact
- ConfigError: Raised for invalid configuration values
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

PROTOCOLS = ("http", "https")

SEARCH_ENDPOINT = "/service/rest/v1/search"


class ConfigError(ValueError):
    """Invalid configuration value."""


@dataclass(frozen=True)
class ArtifactQuery:
    """Everything needed to locate an artifact on a Nexus server.

    Built once per reconciliation and shared by the registry client,
    the resolver and the installer.

    Attributes:
        server: Host (and optional port) of the Nexus server.
        repository: Repository to search.
        artifact: Full artifact name within the repository (e.g. "foo/app").
        protocol: "http" or "https".
        user: Basic auth user.
        password: Basic auth password, ignored without a user.
        proxy: Proxy URL.
        proxy_user: Proxy auth user.
        proxy_password: Proxy auth password, ignored without a proxy user.
        ca_certificate: CA bundle file or directory of CA certificates.
        ssl_verify: Whether to verify the server certificate. An integer is
            accepted as a verification depth and implies verification.
        connection_timeout: Seconds before an in-flight request is aborted.
        sleep: Seconds to wait between search result pages.
    """

    server: str
    repository: str
    artifact: str
    protocol: str = "https"
    user: str | None = None
    password: str | None = None
    proxy: str | None = None
    proxy_user: str | None = None
    proxy_password: str | None = None
    ca_certificate: Path | None = None
    ssl_verify: bool | int = True
    connection_timeout: float | None = None
    sleep: float = 0.0

    def __post_init__(self) -> None:
        """Validate and normalize fields."""
        missing = [
            name
            for name in ("server", "repository", "artifact")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigError(
                f"The following parameters must be specified: {', '.join(missing)}"
            )

        object.__setattr__(self, "server", self.server.rstrip("/"))

        if self.protocol not in PROTOCOLS:
            raise ConfigError(
                f"Unsupported protocol '{self.protocol}' (expected one of {', '.join(PROTOCOLS)})"
            )
        if self.sleep < 0:
            raise ConfigError(f"sleep must not be negative, got {self.sleep}")
        if self.connection_timeout is not None and self.connection_timeout <= 0:
            raise ConfigError(
                f"connection_timeout must be positive, got {self.connection_timeout}"
            )
        if isinstance(self.ssl_verify, int) and not isinstance(self.ssl_verify, bool):
            if self.ssl_verify < 0:
                raise ConfigError(f"ssl_verify depth must not be negative, got {self.ssl_verify}")

        if self.ca_certificate is not None:
            ca_path = Path(self.ca_certificate)
            if not ca_path.exists():
                raise ConfigError(f"ca_certificate not found at '{ca_path}'")
            object.__setattr__(self, "ca_certificate", ca_path)

    @property
    def base_url(self) -> str:
        """Get the server base URL including protocol."""
        return f"{self.protocol}://{self.server}"

    @property
    def search_url(self) -> str:
        """Get the search endpoint URL (without query parameters)."""
        return f"{self.base_url}{SEARCH_ENDPOINT}"

    @property
    def auth(self) -> tuple[str, str] | None:
        """Get basic auth credentials, if both user and password are set."""
        if self.user and self.password is not None:
            return (self.user, self.password)
        return None

    @property
    def verify_tls(self) -> bool:
        """Check whether the server certificate should be verified."""
        if isinstance(self.ssl_verify, bool):
            return self.ssl_verify
        return True

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS."""
        return self.protocol == "https"

    def describe(self) -> str:
        """Human readable identification used in error messages."""
        return f"'{self.repository}/{self.artifact}' on '{self.server}'"
