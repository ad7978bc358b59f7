"""Tests for artifact download and atomic installation."""

import hashlib
import os
from pathlib import Path
from typing import BinaryIO
from unittest.mock import MagicMock, patch

import pytest

from nexussync.client.api import DownloadError, RegistryClient
from nexussync.client.sync.download import (
    Installer,
    check_parent_directory,
    remove_target,
    temp_path_for,
    verify_download,
)
from nexussync.client.sync.types import (
    ChecksumMismatch,
    MissingParentDirectory,
    NoChecksumComputable,
    ResolvedAsset,
    TargetIsDirectory,
    TargetNotAFile,
)

CONTENT = b"new artifact content"


def make_client(content: bytes = CONTENT) -> MagicMock:
    """Create a registry client whose downloads write `content`."""
    client = MagicMock(spec=RegistryClient)

    def download(url: str, destination: BinaryIO) -> int:
        destination.write(content)
        return len(content)

    client.download.side_effect = download
    return client


def make_asset(checksums: dict[str, str] | None = None) -> ResolvedAsset:
    """Create a resolved asset for CONTENT."""
    if checksums is None:
        checksums = {"sha1": hashlib.sha1(CONTENT).hexdigest()}
    return ResolvedAsset(
        download_url="https://nexus.test/app-1.0.0.tar.gz",
        version="1.0.0",
        checksums=checksums,
    )


def leftover_temp_files(directory: Path) -> list[Path]:
    """List temporary files left in a directory."""
    return [p for p in directory.iterdir() if p.name.endswith(".tmp")]


class TestHelpers:
    """Tests for path helpers."""

    def test_temp_path_is_hidden_sibling(self, tmp_path: Path) -> None:
        """Should place the temporary file next to the target."""
        temp = temp_path_for(tmp_path / "app.bin")

        assert temp.parent == tmp_path
        assert temp.name.startswith(".app.bin.")
        assert temp.name.endswith(".tmp")

    def test_temp_paths_are_unique(self, tmp_path: Path) -> None:
        """Should not reuse temporary names."""
        assert temp_path_for(tmp_path / "a") != temp_path_for(tmp_path / "a")

    def test_missing_parent(self, tmp_path: Path) -> None:
        """Should reject a target in a missing directory."""
        with pytest.raises(MissingParentDirectory):
            check_parent_directory(tmp_path / "missing" / "app.bin")

    def test_remove_file(self, tmp_path: Path) -> None:
        """Should remove an existing file."""
        target = tmp_path / "app.bin"
        target.write_bytes(b"old")

        assert remove_target(target) is True
        assert not target.exists()

    def test_remove_missing(self, tmp_path: Path) -> None:
        """Should do nothing for a missing file."""
        assert remove_target(tmp_path / "app.bin") is False

    def test_remove_refuses_directory(self, tmp_path: Path) -> None:
        """Should never remove a directory."""
        target = tmp_path / "app.bin"
        target.mkdir()

        with pytest.raises(TargetIsDirectory):
            remove_target(target)
        assert target.is_dir()

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="named pipes need POSIX")
    def test_remove_refuses_special_file(self, tmp_path: Path) -> None:
        """Should only remove regular files."""
        target = tmp_path / "app.bin"
        os.mkfifo(target)

        with pytest.raises(TargetNotAFile):
            remove_target(target)
        assert target.exists()

    def test_remove_symlink_to_file(self, tmp_path: Path) -> None:
        """Should remove a symlink pointing at a regular file, not the file."""
        real = tmp_path / "real.bin"
        real.write_bytes(b"data")
        target = tmp_path / "app.bin"
        target.symlink_to(real)

        assert remove_target(target) is True
        assert not target.is_symlink()
        assert real.exists()


class TestVerifyDownload:
    """Tests for verify_download."""

    def test_all_computable_checked(self, tmp_path: Path) -> None:
        """Should check every declared algorithm it can compute."""
        path = tmp_path / "f"
        path.write_bytes(CONTENT)
        checksums = {
            "sha1": hashlib.sha1(CONTENT).hexdigest(),
            "sha256": hashlib.sha256(CONTENT).hexdigest(),
            "nope": "abc",
        }

        assert verify_download(path, checksums) == ["sha1", "sha256"]

    def test_mismatch(self, tmp_path: Path) -> None:
        """Should fail when any computed digest differs."""
        path = tmp_path / "f"
        path.write_bytes(CONTENT)
        checksums = {"sha1": hashlib.sha1(CONTENT).hexdigest(), "sha256": "0" * 64}

        with pytest.raises(ChecksumMismatch) as exc_info:
            verify_download(path, checksums)

        assert exc_info.value.algorithm == "sha256"

    def test_nothing_computable(self, tmp_path: Path) -> None:
        """Should fail when no declared algorithm can be computed."""
        path = tmp_path / "f"
        path.write_bytes(CONTENT)

        with pytest.raises(NoChecksumComputable):
            verify_download(path, {"nope": "abc"})

    def test_no_checksums(self, tmp_path: Path) -> None:
        """Should fail when the registry declared no checksums."""
        path = tmp_path / "f"
        path.write_bytes(CONTENT)

        with pytest.raises(NoChecksumComputable):
            verify_download(path, {})

    def test_unsupported_algorithm_warns(self, tmp_path: Path) -> None:
        """Should warn when a declared algorithm is skipped."""
        path = tmp_path / "f"
        path.write_bytes(CONTENT)

        with patch("nexussync.client.sync.download.logger") as logger:
            verify_download(path, {"nope": "abc", "sha1": hashlib.sha1(CONTENT).hexdigest()})

        logger.warning.assert_called_once()
        assert "nope" in logger.warning.call_args.args[0]


class TestInstaller:
    """Tests for Installer."""

    def test_install_new_file(self, tmp_path: Path) -> None:
        """Should download and install the asset."""
        target = tmp_path / "app.bin"
        client = make_client()

        result = Installer(client).install(target, make_asset())

        assert target.read_bytes() == CONTENT
        assert result.version == "1.0.0"
        assert result.size == len(CONTENT)
        assert result.verified_with == []
        client.download.assert_called_once()
        assert client.download.call_args.args[0] == "https://nexus.test/app-1.0.0.tar.gz"
        assert leftover_temp_files(tmp_path) == []

    def test_replaces_existing_file(self, tmp_path: Path) -> None:
        """Should replace the previous content."""
        target = tmp_path / "app.bin"
        target.write_bytes(b"old content")

        Installer(make_client()).install(target, make_asset())

        assert target.read_bytes() == CONTENT

    def test_verified_install(self, tmp_path: Path) -> None:
        """Should report the algorithms used for verification."""
        target = tmp_path / "app.bin"

        result = Installer(make_client()).install(target, make_asset(), verify=True)

        assert result.verified_with == ["sha1"]
        assert target.read_bytes() == CONTENT

    def test_checksum_mismatch_leaves_target(self, tmp_path: Path) -> None:
        """Should keep the old file and remove the download on mismatch."""
        target = tmp_path / "app.bin"
        target.write_bytes(b"old content")

        with pytest.raises(ChecksumMismatch):
            Installer(make_client(b"corrupted")).install(target, make_asset(), verify=True)

        assert target.read_bytes() == b"old content"
        assert leftover_temp_files(tmp_path) == []

    def test_no_computable_checksum_fails(self, tmp_path: Path) -> None:
        """Should not install when verification could not check anything."""
        target = tmp_path / "app.bin"

        with pytest.raises(NoChecksumComputable):
            Installer(make_client()).install(target, make_asset({"nope": "x"}), verify=True)

        assert not target.exists()
        assert leftover_temp_files(tmp_path) == []

    def test_unverified_ignores_checksums(self, tmp_path: Path) -> None:
        """Should install without checking when verification is off."""
        target = tmp_path / "app.bin"

        Installer(make_client(b"anything")).install(target, make_asset({"sha1": "0" * 40}))

        assert target.read_bytes() == b"anything"

    def test_download_failure_cleans_up(self, tmp_path: Path) -> None:
        """Should remove the partial download and keep the old file."""
        target = tmp_path / "app.bin"
        target.write_bytes(b"old content")
        client = MagicMock(spec=RegistryClient)

        def download(url: str, destination: BinaryIO) -> int:
            destination.write(b"partial")
            raise DownloadError("connection reset")

        client.download.side_effect = download

        with pytest.raises(DownloadError):
            Installer(client).install(target, make_asset())

        assert target.read_bytes() == b"old content"
        assert leftover_temp_files(tmp_path) == []

    def test_missing_parent(self, tmp_path: Path) -> None:
        """Should fail before downloading when the directory is missing."""
        client = make_client()

        with pytest.raises(MissingParentDirectory):
            Installer(client).install(tmp_path / "missing" / "app.bin", make_asset())

        client.download.assert_not_called()

    def test_target_is_directory(self, tmp_path: Path) -> None:
        """Should never replace a directory."""
        target = tmp_path / "app.bin"
        target.mkdir()
        client = make_client()

        with pytest.raises(TargetIsDirectory):
            Installer(client).install(target, make_asset())

        client.download.assert_not_called()
        assert target.is_dir()
