"""HTTP client for the Nexus search API.

This module provides:
- RegistryClient: Paginated artifact search and streamed asset download
- ArtifactRecord, AssetDescriptor: Search result items
- RegistryError, DownloadError, NoArtifactsFound: Registry failures
"""

from __future__ import annotations

import logging
import ssl
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, BinaryIO

import httpx

from nexussync.core.config import ArtifactQuery
from nexussync.core.types import SyncError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

CONTINUATION_TOKEN = "continuationToken"


class RegistryError(SyncError):
    """Registry request failed (HTTP status, malformed body or transport)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DownloadError(RegistryError):
    """Failed to download an asset."""


class NoArtifactsFound(RegistryError):
    """The search returned no items."""


@dataclass
class AssetDescriptor:
    """One downloadable file of an artifact version."""

    download_url: str
    checksums: dict[str, str] = field(default_factory=dict)
    path: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssetDescriptor:
        """Create from API response dictionary."""
        checksums = data.get("checksum") or {}
        return cls(
            download_url=data["downloadUrl"],
            checksums={str(k): str(v) for k, v in checksums.items() if v},
            path=data.get("path"),
        )


@dataclass
class ArtifactRecord:
    """One search result item (a component in Nexus terms)."""

    version: str | None
    assets: list[AssetDescriptor] = field(default_factory=list)
    name: str | None = None
    repository: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArtifactRecord:
        """Create from API response dictionary."""
        return cls(
            version=data.get("version") or None,
            assets=[AssetDescriptor.from_dict(a) for a in data.get("assets") or []],
            name=data.get("name"),
            repository=data.get("repository"),
        )


def build_verify(query: ArtifactQuery) -> ssl.SSLContext | bool:
    """Build the TLS verification setting for httpx.

    Args:
        query: Query carrying ssl_verify and ca_certificate.

    Returns:
        False when verification is disabled, an SSLContext when a CA
        certificate is configured, True otherwise.
    """
    if not query.verify_tls:
        return False
    if query.ca_certificate is None:
        return True
    if query.ca_certificate.is_dir():
        return ssl.create_default_context(capath=str(query.ca_certificate))
    return ssl.create_default_context(cafile=str(query.ca_certificate))


def build_proxy(query: ArtifactQuery) -> httpx.Proxy | None:
    """Build the proxy setting for httpx, with credentials when configured."""
    if not query.proxy:
        return None
    if query.proxy_user and query.proxy_password is not None:
        return httpx.Proxy(query.proxy, auth=(query.proxy_user, query.proxy_password))
    return httpx.Proxy(query.proxy)


def create_http_client(query: ArtifactQuery) -> httpx.Client:
    """Create an httpx client configured for the query's server."""
    timeout = query.connection_timeout or DEFAULT_TIMEOUT
    return httpx.Client(
        timeout=timeout,
        auth=query.auth,
        proxy=build_proxy(query),
        verify=build_verify(query),
        follow_redirects=True,
    )


class RegistryClient:
    """HTTP client for a Nexus registry."""

    def __init__(
        self,
        query: ArtifactQuery,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the registry client.

        Args:
            query: Server, repository, artifact and connection settings.
            client: Preconfigured httpx client (built from the query if None).
            sleep: Function used to pause between result pages.
        """
        self._query = query
        self._client = client or create_http_client(query)
        self._sleep = sleep

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> RegistryClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Raise RegistryError for anything but HTTP 200."""
        if response.status_code != 200:
            reason = response.reason_phrase or f"HTTP {response.status_code}"
            raise RegistryError(
                f"Could not fetch artifacts from {self._query.describe()} => '{reason}'",
                response.status_code,
            )
        return response

    def _search_params(self, token: str | None) -> dict[str, str]:
        params = {
            "repository": self._query.repository,
            "name": self._query.artifact,
        }
        if token is not None:
            params[CONTINUATION_TOKEN] = token
        return params

    def _fetch_page(self, token: str | None) -> tuple[list[dict[str, Any]], str | None]:
        try:
            response = self._handle_response(
                self._client.get(self._query.search_url, params=self._search_params(token))
            )
        except httpx.HTTPError as e:
            raise RegistryError(
                f"Could not fetch artifacts from {self._query.describe()} => '{e}'"
            ) from e

        try:
            data = response.json()
            items = data["items"]
        except (ValueError, KeyError, TypeError) as e:
            raise RegistryError(
                f"Malformed search response from {self._query.describe()}: {e}",
                response.status_code,
            ) from e
        if not isinstance(items, list):
            raise RegistryError(
                f"Malformed search response from {self._query.describe()}: items is not a list",
                response.status_code,
            )

        next_token = data.get(CONTINUATION_TOKEN) or None
        return items, next_token

    # === Search ===

    def search(self) -> list[ArtifactRecord]:
        """Fetch every search result for the query, following continuation tokens.

        Returns:
            Records from all pages, in page order.

        Raises:
            NoArtifactsFound: If the first page has no items.
            RegistryError: On HTTP, transport or protocol failures.
        """
        logger.debug(f"Searching {self._query.search_url} for {self._query.describe()}")

        items, token = self._fetch_page(None)
        if not items:
            raise NoArtifactsFound(
                f"No remote artifacts found for {self._query.describe()}"
            )

        pages = 1
        while token is not None:
            self._sleep(self._query.sleep)
            page_items, next_token = self._fetch_page(token)
            pages += 1
            items.extend(page_items)
            if next_token == token:
                raise RegistryError(
                    f"Registry repeated continuation token '{token}' for {self._query.describe()}"
                )
            token = next_token

        logger.debug(f"Found {len(items)} artifacts in {pages} page(s)")

        try:
            return [ArtifactRecord.from_dict(item) for item in items]
        except (KeyError, TypeError, AttributeError) as e:
            raise RegistryError(
                f"Malformed artifact record from {self._query.describe()}: {e}"
            ) from e

    # === Download ===

    def download(self, url: str, destination: BinaryIO) -> int:
        """Stream an asset into an open binary file.

        Args:
            url: Asset download URL.
            destination: File object opened for binary writing.

        Returns:
            Number of bytes written.

        Raises:
            DownloadError: On non-200 status or transport failure, including timeouts.
        """
        logger.info(f"Downloading {url}")
        written = 0
        try:
            with self._client.stream("GET", url) as response:
                if response.status_code != 200:
                    reason = response.reason_phrase or f"HTTP {response.status_code}"
                    raise DownloadError(
                        f"Error when downloading '{url}' => '{reason}'",
                        response.status_code,
                    )
                for chunk in response.iter_bytes():
                    destination.write(chunk)
                    written += len(chunk)
        except httpx.HTTPError as e:
            raise DownloadError(f"Error when downloading '{url}' => '{e}'") from e

        logger.debug(f"Downloaded {written} bytes from {url}")
        return written
