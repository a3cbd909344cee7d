"""Triggers that start sync passes: filesystem watch, debounce and polling."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..utils import is_transient_name

logger = logging.getLogger(__name__)


class Debouncer:
    """Collapses a burst of triggers into one call after a quiet period.

    Every :meth:`trigger` restarts the timer; ``callback`` runs once,
    ``delay`` seconds after the last trigger. Must be used from the event
    loop thread; other threads go through :meth:`trigger_threadsafe`.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.delay = delay
        self.callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.loop.call_later(self.delay, self._fire)

    def trigger_threadsafe(self) -> None:
        self.loop.call_soon_threadsafe(self.trigger)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.callback()


class PollTimer:
    """Runs ``callback`` every ``interval`` seconds until stopped."""

    def __init__(self, interval: float, callback: Callable[[], Awaitable[object]]):
        self.interval = interval
        self.callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            logger.debug("Poll interval elapsed, starting sync")
            try:
                await self.callback()
            except Exception:
                # A failed pass must not end the poll loop
                logger.exception("Scheduled sync failed")


class _ChangeHandler(FileSystemEventHandler):
    """Forwards relevant filesystem events to a change callback."""

    def __init__(self, on_change: Callable[[str], None]):
        self.on_change = on_change

    def _forward(self, *paths: str) -> None:
        names = [os.path.basename(os.fsdecode(p)) for p in paths if p]
        if not names or all(is_transient_name(name) for name in names):
            return
        self.on_change(os.fsdecode(paths[-1]))

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._forward(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtimes change whenever a child changes
        if not event.is_directory:
            self._forward(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._forward(event.src_path, event.dest_path)


class LocalWatcher:
    """Recursive watchdog observer on the sync root.

    ``on_change`` is called from the observer thread with the changed path.
    """

    def __init__(self, root: Path, on_change: Callable[[str], None]):
        self.root = root
        self.on_change = on_change
        self._observer: Optional[Observer] = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> bool:
        """Start watching.

        Returns:
            False if the root does not exist and nothing is watched
        """
        if self._observer is not None:
            return True
        if not self.root.is_dir():
            logger.warning(f"Not watching {self.root}: directory does not exist")
            return False

        observer = Observer()
        observer.schedule(_ChangeHandler(self.on_change), str(self.root), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.debug(f"Watching {self.root}")
        return True

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
