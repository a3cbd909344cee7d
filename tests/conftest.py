"""Shared fixtures: an in-memory remote store standing in for the API."""

import asyncio
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pytest

from cloudvault.exceptions import CloudVaultAPIError, CloudVaultDownloadError
from cloudvault.models import RemoteFileEntry, RemoteFolder

BASE_TIME = 1_700_000_000

WRITE_CALLS = {
    "create_folder",
    "request_upload_destination",
    "put_bytes",
    "register_uploaded_file",
}


def iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, timezone.utc).isoformat()


class FakeRemoteStore:
    """Implements the CloudVaultClient coroutines against dictionaries.

    Every call is recorded in ``calls`` as ``(method, *args)``.
    """

    def __init__(self) -> None:
        self.folders: dict[int, RemoteFolder] = {}
        self.files: dict[int, RemoteFileEntry] = {}
        self.contents: dict[int, bytes] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.clock = BASE_TIME
        self.delay = 0.0
        self.fail_downloads: set[int] = set()
        self.fail_listing = False
        self.no_destination = False
        self.closed = False
        self._next_id = 1
        self._pending: dict[str, Optional[int]] = {}
        self._uploaded: dict[str, bytes] = {}

    def _new_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def _tick(self) -> int:
        self.clock += 10
        return self.clock

    # Test setup helpers

    def add_folder(self, name: str, parent_id: Optional[int] = None) -> int:
        folder_id = self._new_id()
        self.folders[folder_id] = RemoteFolder(id=folder_id, name=name, parent_id=parent_id)
        return folder_id

    def add_file(
        self,
        name: str,
        content: bytes,
        folder_id: Optional[int] = None,
        updated_at: Optional[float] = None,
    ) -> int:
        file_id = self._new_id()
        self.files[file_id] = RemoteFileEntry(
            id=file_id,
            name=name,
            size=len(content),
            updated_at=iso(updated_at if updated_at is not None else self._tick()),
            parent_id=folder_id,
        )
        self.contents[file_id] = content
        return file_id

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == method]

    def write_calls(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] in WRITE_CALLS]

    def files_in(self, folder_id: Optional[int]) -> dict[str, bytes]:
        return {
            entry.name: self.contents[entry.id]
            for entry in self.files.values()
            if entry.parent_id == folder_id
        }

    # RemoteStore interface

    async def _record(self, *call: Any) -> None:
        self.calls.append(call)
        if self.delay:
            await asyncio.sleep(self.delay)

    async def list_folders(self, parent_id: Optional[int] = None) -> list[RemoteFolder]:
        await self._record("list_folders", parent_id)
        if self.fail_listing:
            raise CloudVaultAPIError("API request failed with status 500")
        return [f for f in self.folders.values() if f.parent_id == parent_id]

    async def list_files(self, folder_id: Optional[int] = None) -> list[RemoteFileEntry]:
        await self._record("list_files", folder_id)
        return [f for f in self.files.values() if f.parent_id == folder_id]

    async def create_folder(self, name: str, parent_id: Optional[int] = None) -> int:
        await self._record("create_folder", name, parent_id)
        return self.add_folder(name, parent_id)

    async def request_upload_destination(
        self, file_name: str, mime_type: str, folder_id: Optional[int] = None
    ) -> Optional[dict[str, str]]:
        await self._record("request_upload_destination", file_name, mime_type, folder_id)
        if self.no_destination:
            return None
        storage_path = f"uploads/{self._new_id()}-{file_name}"
        self._pending[storage_path] = folder_id
        return {
            "upload_url": f"https://storage.test/{storage_path}",
            "storage_path": storage_path,
        }

    async def put_bytes(self, upload_url: str, data: bytes, mime_type: str) -> None:
        await self._record("put_bytes", upload_url, len(data), mime_type)
        self._uploaded[upload_url.split("https://storage.test/", 1)[1]] = data

    async def register_uploaded_file(
        self, storage_path: str, name: str, mime_type: str, size: int
    ) -> RemoteFileEntry:
        await self._record("register_uploaded_file", storage_path, name, mime_type, size)
        folder_id = self._pending.pop(storage_path)
        file_id = self.add_file(name, self._uploaded.pop(storage_path), folder_id)
        return self.files[file_id]

    async def download_file_bytes(self, file_id: int) -> bytes:
        await self._record("download_file_bytes", file_id)
        if file_id in self.fail_downloads:
            raise CloudVaultDownloadError("Download failed: 500")
        return self.contents[file_id]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store():
    """Create an empty in-memory remote store."""
    return FakeRemoteStore()


@pytest.fixture
def client_factory(store):
    """Client factory handing the fake store to the engine."""

    def factory(credential: str, remote_endpoint: str) -> FakeRemoteStore:
        return store

    return factory
