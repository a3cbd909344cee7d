"""Tests for the local directory scanner."""

import os

import pytest

from cloudvault.exceptions import CloudVaultSyncError
from cloudvault.models import RemoteFileEntry
from cloudvault.sync.scanner import DirectoryScanner, LocalFile, RemoteFile


class TestDirectoryScanner:
    """Tests for DirectoryScanner.scan_local."""

    def test_scan_empty_directory(self, temp_dir):
        scanner = DirectoryScanner()

        assert scanner.scan_local(temp_dir) == []

    def test_scan_nested_files(self, temp_dir):
        """Files at every level are returned with POSIX relative paths."""
        (temp_dir / "b.txt").write_text("b")
        (temp_dir / "a.txt").write_text("aa")
        (temp_dir / "Docs" / "Reports").mkdir(parents=True)
        (temp_dir / "Docs" / "Reports" / "q1.pdf").write_bytes(b"pdf")
        (temp_dir / "Empty").mkdir()

        files = DirectoryScanner().scan_local(temp_dir)

        assert [f.relative_path for f in files] == [
            "Docs/Reports/q1.pdf",
            "a.txt",
            "b.txt",
        ]
        by_path = {f.relative_path: f for f in files}
        assert by_path["a.txt"].size == 2
        assert by_path["Docs/Reports/q1.pdf"].relative_dir == "Docs/Reports"
        assert by_path["a.txt"].relative_dir == ""

    def test_scan_records_mtime(self, temp_dir):
        path = temp_dir / "file.txt"
        path.write_text("x")
        os.utime(path, (1_600_000_000, 1_600_000_000))

        files = DirectoryScanner().scan_local(temp_dir)

        assert files[0].mtime == 1_600_000_000

    def test_missing_root_raises(self, temp_dir):
        with pytest.raises(CloudVaultSyncError):
            DirectoryScanner().scan_local(temp_dir / "missing")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinked_directories_not_followed(self, temp_dir):
        """A directory symlink pointing back up does not recurse."""
        (temp_dir / "real").mkdir()
        (temp_dir / "real" / "file.txt").write_text("x")
        os.symlink(temp_dir, temp_dir / "real" / "loop")

        files = DirectoryScanner().scan_local(temp_dir)

        assert [f.relative_path for f in files] == ["real/file.txt"]


class TestLocalFile:
    """Tests for LocalFile."""

    def test_from_path(self, temp_dir):
        path = temp_dir / "sub" / "doc.txt"
        path.parent.mkdir()
        path.write_text("hello")

        local = LocalFile.from_path(path, temp_dir)

        assert local.relative_path == "sub/doc.txt"
        assert local.name == "doc.txt"
        assert local.size == 5


class TestRemoteFile:
    """Tests for RemoteFile."""

    def test_relative_path_in_root(self):
        remote = RemoteFile(RemoteFileEntry(id=1, name="a.txt"), folder_path="")

        assert remote.relative_path == "a.txt"

    def test_relative_path_in_folder(self):
        remote = RemoteFile(RemoteFileEntry(id=7, name="a.txt", size=4), "Docs/Sub")

        assert remote.relative_path == "Docs/Sub/a.txt"
        assert remote.id == 7
        assert remote.size == 4
        assert remote.mtime is None
