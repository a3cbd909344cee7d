"""Remote folder tree and relative-path mapping.

Folders on the two sides are joined purely by their name path from the
sync root: the remote folder ``Docs`` -> ``Reports`` maps to the local
directory ``<root>/Docs/Reports``. The tree is rebuilt from the API on
every pass; nothing is cached between passes.
"""

import logging
from typing import Any, Optional

from ..api import CloudVaultClient
from ..models import RemoteFolder

logger = logging.getLogger(__name__)


class RemoteTree:
    """Snapshot of the remote folder hierarchy for one phase of a pass."""

    def __init__(self, folders: Optional[list[RemoteFolder]] = None):
        self.folders: list[RemoteFolder] = list(folders or [])
        self._by_id: dict[Any, RemoteFolder] = {f.id: f for f in self.folders}
        self._by_path: dict[str, RemoteFolder] = {}
        for folder in self.folders:
            path = self.relative_path(folder)
            if path in self._by_path:
                logger.warning(
                    f"Two remote folders map to '{path}', "
                    f"using id {self._by_path[path].id}"
                )
                continue
            self._by_path[path] = folder

    @classmethod
    async def fetch(
        cls, client: CloudVaultClient, root_id: Optional[Any] = None
    ) -> "RemoteTree":
        """List every folder below ``root_id`` depth-first.

        Listing errors propagate: a pass cannot continue without the tree.
        """
        folders: list[RemoteFolder] = []
        visited: set[Any] = set()

        async def walk(parent_id: Optional[Any]) -> None:
            for folder in await client.list_folders(parent_id):
                # Prevent infinite recursion on a malformed tree
                if folder.id in visited:
                    continue
                visited.add(folder.id)
                folders.append(folder)
                await walk(folder.id)

        await walk(root_id)
        logger.debug(f"Fetched {len(folders)} remote folder(s)")
        return cls(folders)

    def relative_path(self, folder: RemoteFolder) -> str:
        """Walk ``parent_id`` links up to the root and join the names."""
        parts: list[str] = []
        seen: set[Any] = set()
        current: Optional[RemoteFolder] = folder
        while current is not None and current.id not in seen:
            seen.add(current.id)
            parts.append(current.name)
            if current.parent_id is None:
                break
            current = self._by_id.get(current.parent_id)
        return "/".join(reversed(parts))

    def folder_id(self, relative_path: str) -> Optional[Any]:
        """ID of the folder at ``relative_path`` (None for the root or unknown)."""
        folder = self._by_path.get(relative_path)
        return folder.id if folder else None

    def has_path(self, relative_path: str) -> bool:
        return relative_path in self._by_path

    def paths(self) -> list[str]:
        """All folder paths, parents before children."""
        return sorted(self._by_path, key=lambda p: (p.count("/"), p))

    def add(self, folder: RemoteFolder) -> str:
        """Record a folder created during this pass and return its path."""
        self.folders.append(folder)
        self._by_id[folder.id] = folder
        path = self.relative_path(folder)
        self._by_path.setdefault(path, folder)
        return path

    async def ensure_path(
        self, client: CloudVaultClient, relative_dir: str
    ) -> Optional[Any]:
        """Make sure every segment of ``relative_dir`` exists remotely.

        Missing folders are created root-to-leaf and recorded in the tree,
        so later files in the same pass resolve without new API calls.

        Args:
            client: API client
            relative_dir: Directory path relative to the sync root

        Returns:
            ID of the innermost folder, or None for the root
        """
        parts = [p for p in relative_dir.split("/") if p and p != "."]
        parent_id: Optional[Any] = None

        for i, name in enumerate(parts):
            sub_path = "/".join(parts[: i + 1])
            existing = self._by_path.get(sub_path)
            if existing is not None:
                parent_id = existing.id
                continue

            folder_id = await client.create_folder(name, parent_id)
            logger.info(f"Created remote folder '{sub_path}' (id {folder_id})")
            self.add(RemoteFolder(id=folder_id, name=name, parent_id=parent_id))
            parent_id = folder_id

        return parent_id

    def __len__(self) -> int:
        return len(self.folders)
