"""Tests for the newest-wins comparator."""

from pathlib import Path

import pytest

from cloudvault.models import RemoteFileEntry
from cloudvault.sync.comparator import FileComparator, SyncAction
from cloudvault.sync.scanner import LocalFile, RemoteFile

from .conftest import BASE_TIME, iso


def remote(updated_at, name="doc.txt", folder_path="Docs"):
    entry = RemoteFileEntry(
        id=1,
        name=name,
        size=3,
        updated_at=iso(updated_at) if updated_at is not None else None,
    )
    return RemoteFile(entry=entry, folder_path=folder_path)


def local(mtime, relative_path="Docs/doc.txt"):
    return LocalFile(
        path=Path("/sync") / relative_path,
        relative_path=relative_path,
        size=3,
        mtime=mtime,
    )


@pytest.fixture
def comparator():
    return FileComparator()


class TestCompareForDownload:
    """Pull-phase decisions."""

    def test_missing_local_downloads(self, comparator):
        decision = comparator.compare_for_download(remote(BASE_TIME), None)

        assert decision.action == SyncAction.DOWNLOAD
        assert decision.relative_path == "Docs/doc.txt"

    def test_remote_newer_downloads(self, comparator):
        decision = comparator.compare_for_download(remote(BASE_TIME + 1), BASE_TIME)

        assert decision.action == SyncAction.DOWNLOAD
        assert "newer" in decision.reason

    def test_remote_older_skips(self, comparator):
        decision = comparator.compare_for_download(remote(BASE_TIME), BASE_TIME + 1)

        assert decision.action == SyncAction.SKIP

    def test_equal_skips(self, comparator):
        decision = comparator.compare_for_download(remote(BASE_TIME), BASE_TIME)

        assert decision.action == SyncAction.SKIP

    def test_millisecond_precision(self, comparator):
        """Differences below one millisecond count as equal."""
        decision = comparator.compare_for_download(
            remote(BASE_TIME + 0.5), BASE_TIME + 0.499
        )

        assert decision.action == SyncAction.DOWNLOAD
        decision = comparator.compare_for_download(
            remote(BASE_TIME + 0.5), BASE_TIME + 0.5004
        )
        assert decision.action == SyncAction.SKIP

    def test_missing_remote_timestamp_keeps_local(self, comparator):
        decision = comparator.compare_for_download(remote(None), BASE_TIME)

        assert decision.action == SyncAction.SKIP


class TestCompareForUpload:
    """Push-phase decisions."""

    def test_no_remote_uploads(self, comparator):
        decision = comparator.compare_for_upload(local(BASE_TIME), None)

        assert decision.action == SyncAction.UPLOAD
        assert decision.reason == "New local file"

    def test_local_newer_uploads(self, comparator):
        decision = comparator.compare_for_upload(local(BASE_TIME + 1), remote(BASE_TIME))

        assert decision.action == SyncAction.UPLOAD

    def test_local_equal_skips(self, comparator):
        decision = comparator.compare_for_upload(local(BASE_TIME), remote(BASE_TIME))

        assert decision.action == SyncAction.SKIP

    def test_local_older_skips(self, comparator):
        decision = comparator.compare_for_upload(local(BASE_TIME), remote(BASE_TIME + 1))

        assert decision.action == SyncAction.SKIP

    def test_missing_remote_timestamp_skips(self, comparator):
        """An undated remote copy is never re-uploaded over."""
        decision = comparator.compare_for_upload(local(BASE_TIME), remote(None))

        assert decision.action == SyncAction.SKIP
