"""Data models for CloudVault API responses."""

from dataclasses import dataclass
from typing import Any, Optional

from .utils import DEFAULT_MIME_TYPE, timestamp_to_epoch

LIST_WRAPPER_KEYS = ("data", "folders", "files", "items")


def unwrap_list(response: Any) -> list[dict[str, Any]]:
    """Extract the list of records from a list endpoint response.

    The backend answers either with a bare JSON array or with an object
    that wraps the array under ``data``, ``folders``, ``files`` or ``items``.

    Examples:
        >>> unwrap_list([{"id": 1}])
        [{'id': 1}]
        >>> unwrap_list({"data": [{"id": 2}]})
        [{'id': 2}]
        >>> unwrap_list({"status": "ok"})
        []
    """
    if isinstance(response, list):
        return [item for item in response if isinstance(item, dict)]
    if isinstance(response, dict):
        for key in LIST_WRAPPER_KEYS:
            value = response.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
    return []


def extract_id(response: Any) -> Optional[Any]:
    """Find the entity id in a create/confirm response."""
    if not isinstance(response, dict):
        return None
    if response.get("id") is not None:
        return response["id"]
    for key in ("data", "folder", "file", "fileEntry"):
        nested = response.get(key)
        if isinstance(nested, dict) and nested.get("id") is not None:
            return nested["id"]
    return None


@dataclass
class RemoteFolder:
    """A folder in the remote store."""

    id: Any
    name: str
    parent_id: Optional[Any] = None

    @classmethod
    def from_api_response(
        cls, data: dict[str, Any], parent_id: Optional[Any] = None
    ) -> "RemoteFolder":
        """Create a RemoteFolder from an API record.

        Args:
            data: Folder record from ``GET /folders``
            parent_id: Parent to assume when the record does not carry one

        Returns:
            RemoteFolder instance
        """
        record_parent = data.get("parent_id", data.get("parentId"))
        return cls(
            id=data.get("id"),
            name=data.get("name") or data.get("folder_name") or "",
            parent_id=record_parent if record_parent is not None else parent_id,
        )


@dataclass
class RemoteFileEntry:
    """A file record in the remote store."""

    id: Any
    name: str
    size: int = 0
    mime_type: str = DEFAULT_MIME_TYPE
    updated_at: Optional[str] = None
    parent_id: Optional[Any] = None

    @classmethod
    def from_api_response(
        cls, data: dict[str, Any], parent_id: Optional[Any] = None
    ) -> "RemoteFileEntry":
        """Create a RemoteFileEntry from an API record.

        Args:
            data: File record from ``GET /files`` or ``POST /files``
            parent_id: Folder the record was listed under

        Returns:
            RemoteFileEntry instance
        """
        updated_at = (
            data.get("updated_at")
            or data.get("updatedAt")
            or data.get("created_at")
            or data.get("createdAt")
        )
        record_parent = data.get("folder_id", data.get("folderId"))
        try:
            size = int(data.get("size") or 0)
        except (TypeError, ValueError):
            size = 0
        return cls(
            id=data.get("id"),
            name=data.get("name") or data.get("file_name") or data.get("filename") or "",
            size=size,
            mime_type=(
                data.get("mime_type")
                or data.get("mimeType")
                or data.get("type")
                or DEFAULT_MIME_TYPE
            ),
            updated_at=str(updated_at) if updated_at is not None else None,
            parent_id=record_parent if record_parent is not None else parent_id,
        )

    @property
    def mtime(self) -> Optional[float]:
        """Last modification time (Unix timestamp)."""
        if self.updated_at is None:
            return None
        if self.updated_at.replace(".", "", 1).isdigit():
            return timestamp_to_epoch(float(self.updated_at))
        return timestamp_to_epoch(self.updated_at)
