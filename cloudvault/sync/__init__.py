"""Bidirectional folder sync between a local directory and CloudVault."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .engine import SyncEngine
from .events import SyncEvent, SyncEventBus
from .operations import SyncOperations
from .scanner import DirectoryScanner, LocalFile, RemoteFile
from .state import SyncProgress, SyncSession, SyncStatus
from .tree import RemoteTree
from .triggers import Debouncer, LocalWatcher, PollTimer

__all__ = [
    "SyncEngine",
    "SyncSession",
    "SyncStatus",
    "SyncProgress",
    "SyncEvent",
    "SyncEventBus",
    "SyncOperations",
    "DirectoryScanner",
    "LocalFile",
    "RemoteFile",
    "RemoteTree",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "Debouncer",
    "LocalWatcher",
    "PollTimer",
]
