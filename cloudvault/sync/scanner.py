"""Directory scanning utilities for sync operations."""

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional

from ..exceptions import CloudVaultSyncError
from ..models import RemoteFileEntry

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    mtime: float
    """Last modification time (Unix timestamp)"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance
        """
        stat = file_path.stat()
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()

        return cls(
            path=file_path,
            relative_path=relative_path,
            size=stat.st_size,
            mtime=stat.st_mtime,
        )

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def relative_dir(self) -> str:
        """Relative path of the containing directory ("" for the root)."""
        parent = PurePosixPath(self.relative_path).parent.as_posix()
        return "" if parent == "." else parent


@dataclass
class RemoteFile:
    """A remote file joined with the relative path of its folder."""

    entry: RemoteFileEntry
    """Remote file record from the API"""

    folder_path: str
    """Relative path of the containing folder ("" for the root)"""

    @property
    def relative_path(self) -> str:
        if not self.folder_path:
            return self.entry.name
        return f"{self.folder_path}/{self.entry.name}"

    @property
    def id(self):
        return self.entry.id

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def size(self) -> int:
        return self.entry.size

    @property
    def mtime(self) -> Optional[float]:
        return self.entry.mtime


class DirectoryScanner:
    """Walks the local sync root and lists every file below it.

    Directories are traversed but not returned. Subdirectories that cannot
    be read are skipped with a warning; an unreadable root is an error.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_local(Path("/sync/folder"))
    """

    def scan_local(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> list[LocalFile]:
        """Recursively scan a local directory.

        Args:
            directory: Directory to scan
            base_path: Base path for calculating relative paths (defaults to directory)

        Returns:
            List of LocalFile objects, sorted by name within each directory

        Raises:
            CloudVaultSyncError: If the root directory cannot be read
        """
        is_root = base_path is None
        if base_path is None:
            base_path = directory

        files: list[LocalFile] = []

        try:
            items = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            if is_root:
                raise CloudVaultSyncError(
                    f"Cannot read sync folder {directory}: {e}"
                ) from e
            logger.warning(f"Skipping unreadable directory {directory}: {e}")
            return files

        for item in items:
            if item.is_file():
                try:
                    files.append(LocalFile.from_path(item, base_path))
                except OSError:
                    # Vanished or unreadable between listing and stat
                    continue
            elif item.is_dir() and not item.is_symlink():
                # Symlinked directories are not followed to avoid cycles
                files.extend(self.scan_local(item, base_path))

        return files
