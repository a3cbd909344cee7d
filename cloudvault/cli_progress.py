"""CLI progress display for sync operations.

This module provides a Rich-based progress display driven by the events
the SyncEngine emits.
"""

from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from .sync import events
from .sync.events import SyncEvent


class SyncProgressDisplay:
    """Rich progress bar following one sync session.

    Use as a context manager and pass :meth:`handle_event` to
    ``SyncEngine.subscribe`` or ``SyncEngine.start(listener=...)``.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def handle_event(self, event: SyncEvent) -> None:
        """Update the display from a status, progress or error event."""
        if self._progress is None or self._task is None:
            return

        if event.kind == events.PROGRESS:
            total = event.data.get("total", 0)
            self._progress.update(
                self._task,
                description=event.data.get("phase", ""),
                total=total or None,
                completed=event.data.get("completed", 0),
            )
        elif event.kind == events.STATUS:
            status = event.data.get("status")
            if status == "idle":
                last_sync = event.data.get("last_sync_at") or "-"
                self._progress.update(
                    self._task, description=f"Up to date (last sync {last_sync})"
                )
            elif status == "syncing":
                self._progress.update(self._task, description="Syncing...")
        elif event.kind == events.ERROR:
            self._progress.console.print(
                f"[red]Sync error:[/red] {event.data.get('message')}"
            )
            self._progress.update(self._task, description="Waiting for next sync")

    def __enter__(self) -> "SyncProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self._console,
            refresh_per_second=4,
        )
        self._progress.__enter__()
        self._task = self._progress.add_task("Starting...", total=None)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._task = None
