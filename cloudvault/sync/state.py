"""In-memory state of the active sync session."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class SyncStatus(str, Enum):
    """Status of the sync session."""

    IDLE = "idle"
    """No pass running; the last pass (if any) succeeded"""

    SYNCING = "syncing"
    """A reconciliation pass is in flight"""

    ERROR = "error"
    """The last pass aborted on a structural failure"""


@dataclass
class SyncProgress:
    """Per-phase progress counters."""

    completed: int = 0
    total: int = 0
    phase: str = ""


@dataclass
class SyncSession:
    """State of the single sync session owned by a SyncEngine.

    The session is created by ``SyncEngine.start`` and reset by
    ``SyncEngine.stop``. Nothing here is persisted between runs.
    """

    active: bool = False
    local_root: Optional[Path] = None
    credential: Optional[str] = field(default=None, repr=False)
    remote_endpoint: Optional[str] = None
    status: SyncStatus = SyncStatus.IDLE
    last_sync_at: Optional[str] = None
    """ISO timestamp of the last transition to idle"""

    last_error: Optional[str] = None
    progress: SyncProgress = field(default_factory=SyncProgress)

    @property
    def is_ready(self) -> bool:
        """Whether the session carries everything a pass needs."""
        return bool(
            self.active
            and self.local_root is not None
            and self.credential
            and self.remote_endpoint
        )

    def snapshot(self) -> dict[str, Any]:
        """Return a copy of the fields exposed to the host UI."""
        return {
            "active": self.active,
            "status": self.status.value,
            "last_sync_at": self.last_sync_at,
            "last_error": self.last_error,
            "progress": asdict(self.progress),
            "local_root": str(self.local_root) if self.local_root else None,
            "remote_endpoint": self.remote_endpoint,
        }
