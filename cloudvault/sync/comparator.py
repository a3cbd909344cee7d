"""Newest-timestamp-wins comparison for sync operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .scanner import LocalFile, RemoteFile


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    UPLOAD = "upload"
    """Upload local file to remote"""

    DOWNLOAD = "download"
    """Download remote file to local"""

    SKIP = "skip"
    """Skip file (no action needed)"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    relative_path: str
    """Relative path of the file"""


def _to_millis(timestamp: float) -> int:
    # The API reports timestamps with millisecond precision
    return int(round(timestamp * 1000))


class FileComparator:
    """Decides per file whether a pass downloads, uploads or skips it.

    Remote wins on a strictly newer ``updated_at``; local wins on a
    strictly newer mtime. Timestamps are compared at millisecond precision.
    There is no conflict detection beyond that.
    """

    def compare_for_download(
        self, remote_file: RemoteFile, local_mtime: Optional[float]
    ) -> SyncDecision:
        """Pull-phase decision.

        Args:
            remote_file: Remote file being considered
            local_mtime: mtime of the file at the mapped local path,
                or None if no file exists there

        Returns:
            SyncDecision with DOWNLOAD or SKIP
        """
        path = remote_file.relative_path
        if local_mtime is None:
            return SyncDecision(SyncAction.DOWNLOAD, "New remote file", path)

        remote_mtime = remote_file.mtime
        if remote_mtime is None:
            return SyncDecision(
                SyncAction.SKIP, "Remote timestamp unavailable, keeping local", path
            )

        if _to_millis(local_mtime) < _to_millis(remote_mtime):
            return SyncDecision(SyncAction.DOWNLOAD, "Remote file is newer", path)
        return SyncDecision(SyncAction.SKIP, "Local copy is up to date", path)

    def compare_for_upload(
        self, local_file: LocalFile, remote_file: Optional[RemoteFile]
    ) -> SyncDecision:
        """Push-phase decision.

        Args:
            local_file: Local file being considered
            remote_file: Remote file at the same relative path, if any

        Returns:
            SyncDecision with UPLOAD or SKIP
        """
        path = local_file.relative_path
        if remote_file is None:
            return SyncDecision(SyncAction.UPLOAD, "New local file", path)

        remote_mtime = remote_file.mtime
        if remote_mtime is None:
            # Each upload registers a new record
            return SyncDecision(
                SyncAction.SKIP, "Remote timestamp unavailable, keeping remote", path
            )

        if _to_millis(local_file.mtime) > _to_millis(remote_mtime):
            return SyncDecision(SyncAction.UPLOAD, "Local file is newer", path)
        return SyncDecision(SyncAction.SKIP, "Remote copy is up to date", path)
