"""Core sync engine for bidirectional folder synchronization."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional, Union

from ..api import CloudVaultClient
from ..config import config
from ..exceptions import CloudVaultError
from ..utils import is_safe_name, utc_now_iso
from . import events
from .comparator import FileComparator, SyncAction
from .events import SyncEventBus, SyncListener
from .operations import SyncOperations
from .scanner import DirectoryScanner, RemoteFile
from .state import SyncProgress, SyncSession, SyncStatus
from .tree import RemoteTree
from .triggers import Debouncer, LocalWatcher, PollTimer

logger = logging.getLogger(__name__)

PHASE_DOWNLOAD = "Downloading..."
PHASE_UPLOAD = "Uploading..."

ClientFactory = Callable[[str, str], CloudVaultClient]


def _default_client_factory(credential: str, remote_endpoint: str) -> CloudVaultClient:
    return CloudVaultClient(token=credential, api_url=remote_endpoint)


class SyncEngine:
    """Mirrors a local directory and the CloudVault store in both directions.

    One engine owns one sync session. A reconciliation pass first pulls
    (remote to local, downloading missing or older files) and then pushes
    (local to remote, creating missing folders and uploading new or newer
    files). Newest timestamp wins; nothing else is resolved.

    Passes run on the asyncio event loop and are serialized: a trigger
    that arrives while a pass is in flight is coalesced into a single
    follow-up pass.

    Examples:
        >>> engine = SyncEngine()
        >>> engine.subscribe(print)
        >>> await engine.start(Path("~/CloudVault"), token, "https://host/api")
        >>> engine.status()["status"]
        'idle'
        >>> await engine.stop()
    """

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        debounce_seconds: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ):
        """Initialize sync engine.

        Args:
            client_factory: Builds the API client from (credential,
                remote_endpoint); defaults to CloudVaultClient
            debounce_seconds: Quiet period after the last local change
                (uses config if not provided)
            poll_interval: Seconds between unconditional passes
                (uses config if not provided)
        """
        self.client_factory = client_factory or _default_client_factory
        self.debounce_seconds = (
            debounce_seconds if debounce_seconds is not None else config.debounce_seconds
        )
        self.poll_interval = (
            poll_interval if poll_interval is not None else config.poll_interval
        )
        self.events = SyncEventBus()
        self.comparator = FileComparator()
        self.scanner = DirectoryScanner()
        self.pass_count = 0

        self._session = SyncSession()
        self._client: Optional[CloudVaultClient] = None
        self._retired_clients: list[CloudVaultClient] = []
        self._unbind_listener: Optional[Callable[[], None]] = None
        self._watcher: Optional[LocalWatcher] = None
        self._debouncer: Optional[Debouncer] = None
        self._poll_timer: Optional[PollTimer] = None
        self._pass_running = False
        self._rerun_requested = False
        self._pass_finished: Optional[asyncio.Future] = None
        self._last_result: Optional[tuple[SyncSession, dict[str, int]]] = None
        self._tasks: set[asyncio.Task] = set()

    # =========================
    # Host UI interface
    # =========================

    def subscribe(self, listener: SyncListener) -> Callable[[], None]:
        """Register a listener for status, progress and error events."""
        return self.events.subscribe(listener)

    async def start(
        self,
        local_root: Union[Path, str],
        credential: str,
        remote_endpoint: str,
        listener: Optional[SyncListener] = None,
        arm_triggers: bool = True,
    ) -> Optional[dict[str, int]]:
        """Start a sync session and run the initial pass.

        Any previous session is replaced. Errors of the initial pass end up
        in ``status()`` and are not raised. Watch and poll triggers are armed
        afterwards whatever the outcome, unless ``arm_triggers`` is False
        (one-shot sync).

        Args:
            local_root: Directory to mirror (created if absent)
            credential: Bearer token for the remote store
            remote_endpoint: Base URL of the remote store API
            listener: Host UI callback bound to this session's events
            arm_triggers: Arm the watch and poll triggers after the first pass

        Returns:
            Statistics of the initial pass (None if it was coalesced into a
            pass already in flight)

        Raises:
            ValueError: If credential or remote_endpoint is empty
        """
        if not credential:
            raise ValueError("credential must not be empty")
        if not remote_endpoint:
            raise ValueError("remote_endpoint must not be empty")

        root = Path(local_root).expanduser().resolve()
        root.mkdir(parents=True, exist_ok=True)

        self._disarm_triggers()
        self._release_listener()
        self._retire_client()

        self._client = self.client_factory(credential, remote_endpoint)
        self._session = SyncSession(
            active=True,
            local_root=root,
            credential=credential,
            remote_endpoint=remote_endpoint,
        )
        if listener is not None:
            self._unbind_listener = self.events.subscribe(listener)

        logger.info(f"Starting sync of {root} with {remote_endpoint}")
        self._set_status(SyncStatus.SYNCING)
        stats = await self.run_full_sync()
        if stats is None:
            # A pass of the previous session is still in flight; the
            # follow-up it runs afterwards is this session's first pass
            stats = await self._wait_for_passes()
        if arm_triggers:
            self._arm_triggers()
        return stats

    async def stop(self) -> None:
        """Stop the session. No-op without an active session.

        Triggers are disarmed immediately; a pass already in flight runs to
        completion.
        """
        if not self._session.active:
            return

        logger.info(f"Stopping sync of {self._session.local_root}")
        self._session.active = False
        self._disarm_triggers()
        self._release_listener()
        self._set_status(SyncStatus.IDLE)
        self._retire_client()
        if not self._pass_running:
            await self._close_retired_clients()

    async def close(self) -> None:
        """Stop the session and wait for outstanding work (process shutdown)."""
        await self.stop()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._retire_client()
        await self._close_retired_clients()

    async def sync_now(self) -> Optional[dict[str, int]]:
        """Run a pass now if a session is active."""
        if not self._session.active:
            return None
        return await self.run_full_sync()

    def status(self) -> dict[str, Any]:
        """Snapshot of the session (active, status, last_sync_at, ...)."""
        return self._session.snapshot()

    def notify_local_change(self, path: Optional[str] = None) -> None:
        """Feed a local change into the debouncer (event loop thread only)."""
        if self._debouncer is None:
            return
        logger.debug(f"Local change: {path}")
        self._debouncer.trigger()

    # =========================
    # Pass scheduling
    # =========================

    async def run_full_sync(self) -> Optional[dict[str, int]]:
        """Run a reconciliation pass unless one is already in flight.

        Returns:
            Statistics of the last pass run by this call, or None when the
            session is not ready or the request was coalesced into the
            pass already running
        """
        if not self._session.is_ready:
            return None
        if self._pass_running:
            logger.debug("Sync already running, queueing a follow-up pass")
            self._rerun_requested = True
            return None

        self._pass_running = True
        self._pass_finished = asyncio.get_running_loop().create_future()
        stats: Optional[dict[str, int]] = None
        try:
            while True:
                self._rerun_requested = False
                # Clients of replaced sessions are idle between passes
                await self._close_retired_clients()
                session = self._session
                stats = await self._run_pass()
                self._last_result = (session, stats)
                if not self._rerun_requested or not self._session.is_ready:
                    break
                logger.debug("Running follow-up sync for changes seen during pass")
        finally:
            self._pass_running = False
            finished, self._pass_finished = self._pass_finished, None
            finished.set_result(None)
            if self._rerun_requested and self._session.is_ready:
                # Interrupted before the queued follow-up pass could run
                self._spawn(self.run_full_sync())
            elif not self._session.active:
                await self._close_retired_clients()
        return stats

    async def _wait_for_passes(self) -> Optional[dict[str, int]]:
        """Wait until no pass is in flight.

        Returns:
            Statistics of the last pass if it ran for the current session
        """
        while self._pass_finished is not None:
            await asyncio.shield(self._pass_finished)
        if self._last_result is not None and self._last_result[0] is self._session:
            return self._last_result[1]
        return None

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _arm_triggers(self) -> None:
        root = self._session.local_root
        if not self._session.active or root is None:
            return
        loop = asyncio.get_running_loop()

        self._debouncer = Debouncer(
            self.debounce_seconds, self._on_debounce_elapsed, loop=loop
        )
        self._watcher = LocalWatcher(root, self._on_watch_event)
        self._watcher.start()
        self._poll_timer = PollTimer(self.poll_interval, self._on_poll)
        self._poll_timer.start()
        logger.debug(
            f"Triggers armed (debounce {self.debounce_seconds}s, "
            f"poll every {self.poll_interval}s)"
        )

    def _disarm_triggers(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        if self._debouncer is not None:
            self._debouncer.cancel()
            self._debouncer = None
        if self._poll_timer is not None:
            self._poll_timer.stop()
            self._poll_timer = None

    def _on_watch_event(self, path: str) -> None:
        # Called from the watchdog observer thread
        debouncer = self._debouncer
        if debouncer is not None:
            debouncer.trigger_threadsafe()

    def _on_debounce_elapsed(self) -> None:
        logger.debug("Local changes settled, starting sync")
        self._spawn(self.run_full_sync())

    async def _on_poll(self) -> Optional[dict[str, int]]:
        # Stopping the poll timer cancels this wait, never the pass itself
        return await asyncio.shield(self._spawn(self.run_full_sync()))

    # =========================
    # Session bookkeeping
    # =========================

    def _release_listener(self) -> None:
        if self._unbind_listener is not None:
            self._unbind_listener()
            self._unbind_listener = None

    def _retire_client(self) -> None:
        if self._client is not None:
            self._retired_clients.append(self._client)
            self._client = None

    async def _close_retired_clients(self) -> None:
        while self._retired_clients:
            client = self._retired_clients.pop()
            try:
                await client.aclose()
            except Exception as e:
                logger.debug(f"Error closing API client: {e}")

    def _set_status(
        self,
        status: SyncStatus,
        error: Optional[str] = None,
        synced: bool = False,
        session: Optional[SyncSession] = None,
    ) -> None:
        # A pass outliving its session updates only that session
        if session is None:
            session = self._session
        changed = session.status != status or session.last_error != error
        session.status = status
        session.last_error = error
        if synced:
            session.last_sync_at = utc_now_iso()
        if (changed or synced) and session is self._session:
            self.events.emit(
                events.STATUS,
                status=status.value,
                error=error,
                last_sync_at=session.last_sync_at,
            )

    def _set_progress(
        self, session: SyncSession, completed: int, total: int, phase: str
    ) -> None:
        session.progress = SyncProgress(completed, total, phase)
        if session is self._session:
            self.events.emit(
                events.PROGRESS, completed=completed, total=total, phase=phase
            )

    # =========================
    # Reconciliation
    # =========================

    async def _run_pass(self) -> dict[str, int]:
        """One full pull-then-push pass.

        Per-file transfer failures are counted and skipped. Anything else
        (tree listing, folder creation, unreadable local root) aborts the
        pass and puts the session in the error state.
        """
        session = self._session
        client = self._client
        root = session.local_root
        stats = {
            "downloads": 0,
            "uploads": 0,
            "skips": 0,
            "folders_created": 0,
            "dirs_created": 0,
            "failures": 0,
        }
        if client is None or root is None:
            return stats

        self.pass_count += 1
        self._set_status(SyncStatus.SYNCING, session=session)
        operations = SyncOperations(client)

        try:
            await asyncio.to_thread(root.mkdir, parents=True, exist_ok=True)
            remote_index = await self._pull(session, client, operations, root, stats)
            await self._push(
                session, client, operations, root, remote_index, stats
            )
        except (CloudVaultError, OSError) as e:
            logger.error(f"Sync failed: {e}")
            self._fail(str(e), session)
            return stats
        except Exception as e:
            logger.exception("Unexpected error during sync")
            self._fail(str(e) or type(e).__name__, session)
            return stats

        logger.info(
            f"Sync complete: {stats['downloads']} downloaded, "
            f"{stats['uploads']} uploaded, {stats['skips']} unchanged, "
            f"{stats['failures']} failed"
        )
        self._set_status(SyncStatus.IDLE, synced=True, session=session)
        return stats

    def _fail(self, message: str, session: SyncSession) -> None:
        self._set_status(SyncStatus.ERROR, error=message, session=session)
        if session is self._session:
            self.events.emit(events.ERROR, message=message)

    async def _pull(
        self,
        session: SyncSession,
        client: CloudVaultClient,
        operations: SyncOperations,
        root: Path,
        stats: dict[str, int],
    ) -> dict[str, RemoteFile]:
        """Phase A: remote to local.

        Returns:
            The newest remote file per relative path, for the push phase
        """
        tree = await RemoteTree.fetch(client)

        folder_paths = [p for p in tree.paths() if self._is_safe_path(p)]
        for rel_path in folder_paths:
            local_dir = root / rel_path
            if local_dir.is_dir():
                continue
            try:
                await asyncio.to_thread(local_dir.mkdir, parents=True, exist_ok=True)
            except OSError as e:
                # Its files fail one by one below
                logger.warning(f"Cannot create local folder {rel_path}: {e}")
                continue
            stats["dirs_created"] += 1

        worklist: list[RemoteFile] = []
        for rel_path in [""] + folder_paths:
            folder_id = tree.folder_id(rel_path) if rel_path else None
            for entry in await client.list_files(folder_id):
                if not is_safe_name(entry.name):
                    logger.warning(f"Skipping remote file with unsafe name {entry.name!r}")
                    continue
                worklist.append(RemoteFile(entry=entry, folder_path=rel_path))

        remote_index: dict[str, RemoteFile] = {}
        for remote_file in worklist:
            current = remote_index.get(remote_file.relative_path)
            if current is None or (remote_file.mtime or 0) > (current.mtime or 0):
                remote_index[remote_file.relative_path] = remote_file

        total = len(worklist)
        self._set_progress(session, 0, total, PHASE_DOWNLOAD)
        for i, remote_file in enumerate(worklist):
            local_path = root / remote_file.relative_path
            try:
                local_mtime: Optional[float] = local_path.stat().st_mtime
            except (FileNotFoundError, NotADirectoryError):
                local_mtime = None

            decision = self.comparator.compare_for_download(remote_file, local_mtime)
            if decision.action == SyncAction.DOWNLOAD:
                logger.debug(f"Download {decision.relative_path}: {decision.reason}")
                try:
                    await operations.download_file(remote_file, local_path)
                    stats["downloads"] += 1
                except (CloudVaultError, OSError) as e:
                    logger.warning(f"Failed to download {remote_file.relative_path}: {e}")
                    stats["failures"] += 1
            else:
                stats["skips"] += 1
            self._set_progress(session, i + 1, total, PHASE_DOWNLOAD)

        return remote_index

    async def _push(
        self,
        session: SyncSession,
        client: CloudVaultClient,
        operations: SyncOperations,
        root: Path,
        remote_index: dict[str, RemoteFile],
        stats: dict[str, int],
    ) -> None:
        """Phase B: local to remote."""
        # Folders created while pulling must be visible here
        tree = await RemoteTree.fetch(client)
        local_files = await asyncio.to_thread(self.scanner.scan_local, root)

        total = len(local_files)
        self._set_progress(session, 0, total, PHASE_UPLOAD)
        for i, local_file in enumerate(local_files):
            decision = self.comparator.compare_for_upload(
                local_file, remote_index.get(local_file.relative_path)
            )
            if decision.action == SyncAction.UPLOAD:
                logger.debug(f"Upload {decision.relative_path}: {decision.reason}")
                known = len(tree)
                folder_id = await tree.ensure_path(client, local_file.relative_dir)
                stats["folders_created"] += len(tree) - known
                try:
                    entry = await operations.upload_file(local_file, folder_id)
                except (CloudVaultError, OSError) as e:
                    logger.warning(f"Failed to upload {local_file.relative_path}: {e}")
                    stats["failures"] += 1
                else:
                    if entry is None:
                        stats["skips"] += 1
                    else:
                        stats["uploads"] += 1
            else:
                stats["skips"] += 1
            self._set_progress(session, i + 1, total, PHASE_UPLOAD)

    @staticmethod
    def _is_safe_path(rel_path: str) -> bool:
        if all(is_safe_name(part) for part in rel_path.split("/")):
            return True
        logger.warning(f"Skipping remote folder with unsafe path {rel_path!r}")
        return False
