"""Tests for the CLI progress display."""

import io

from rich.console import Console

from cloudvault.cli_progress import SyncProgressDisplay
from cloudvault.sync.events import ERROR, PROGRESS, STATUS, SyncEvent


def make_display():
    console = Console(file=io.StringIO(), force_terminal=False, width=100)
    return SyncProgressDisplay(console=console), console


class TestSyncProgressDisplay:
    """Tests for SyncProgressDisplay."""

    def test_events_outside_context_are_ignored(self):
        display, _ = make_display()

        display.handle_event(SyncEvent(PROGRESS, {"completed": 1, "total": 2}))

    def test_progress_updates_task(self):
        display, _ = make_display()

        with display:
            display.handle_event(
                SyncEvent(PROGRESS, {"completed": 1, "total": 4, "phase": "Downloading..."})
            )
            task = display._progress.tasks[0]
            assert task.completed == 1
            assert task.total == 4
            assert task.description == "Downloading..."

    def test_status_and_error(self):
        display, console = make_display()

        with display:
            display.handle_event(SyncEvent(ERROR, {"message": "API down"}))
            assert display._progress.tasks[0].description == "Waiting for next sync"
            display.handle_event(
                SyncEvent(STATUS, {"status": "idle", "last_sync_at": "2025-01-15T10:30:00"})
            )
            assert "Up to date" in display._progress.tasks[0].description

        assert "API down" in console.file.getvalue()
