"""Per-file transfer operations used by the sync engine."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Optional

from ..api import CloudVaultClient
from ..models import RemoteFileEntry
from ..utils import detect_mime_type
from .scanner import LocalFile, RemoteFile

logger = logging.getLogger(__name__)


def set_mtime(path: Path, mtime: float) -> None:
    """Set access and modification time of ``path`` to ``mtime``."""
    seconds = int(mtime)
    ns = seconds * 1_000_000_000 + int(round((mtime - seconds) * 1_000_000_000))
    os.utime(path, ns=(ns, ns))


def _write_file(path: Path, data: bytes, mtime: Optional[float]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    if mtime is not None:
        set_mtime(path, mtime)


class SyncOperations:
    """Unified download/upload operations with a common interface."""

    def __init__(self, client: CloudVaultClient):
        """Initialize sync operations.

        Args:
            client: CloudVault API client
        """
        self.client = client

    async def download_file(self, remote_file: RemoteFile, local_path: Path) -> int:
        """Download a remote file to ``local_path``.

        The local mtime is set to the remote ``updated_at`` so the next
        pass sees both sides as equal.

        Args:
            remote_file: Remote file to download
            local_path: Local path where the file should be saved

        Returns:
            Number of bytes written
        """
        data = await self.client.download_file_bytes(remote_file.id)
        await asyncio.to_thread(_write_file, local_path, data, remote_file.mtime)
        logger.debug(f"Downloaded {remote_file.relative_path} ({len(data)} bytes)")
        return len(data)

    async def upload_file(
        self, local_file: LocalFile, folder_id: Optional[Any]
    ) -> Optional[RemoteFileEntry]:
        """Upload a local file into the remote folder ``folder_id``.

        Three steps: request an upload destination, PUT the bytes there,
        register the stored object as a file record.

        Args:
            local_file: Local file to upload
            folder_id: Target folder ID (None for the root)

        Returns:
            The registered file record, or None if the server handed out
            no upload destination
        """
        mime_type = detect_mime_type(local_file.path)
        destination = await self.client.request_upload_destination(
            local_file.name, mime_type, folder_id
        )
        if destination is None:
            logger.warning(
                f"No upload destination for {local_file.relative_path}, skipping"
            )
            return None

        data = await asyncio.to_thread(local_file.path.read_bytes)
        await self.client.put_bytes(destination["upload_url"], data, mime_type)
        entry = await self.client.register_uploaded_file(
            destination["storage_path"], local_file.name, mime_type, len(data)
        )

        # Align the local mtime with the new record so the next pull
        # does not fetch the file straight back
        if entry.mtime is not None:
            try:
                await asyncio.to_thread(set_mtime, local_file.path, entry.mtime)
            except OSError as e:
                logger.debug(f"Could not update mtime of {local_file.path}: {e}")

        logger.debug(f"Uploaded {local_file.relative_path} ({len(data)} bytes)")
        return entry
