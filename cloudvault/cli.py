"""CLI interface for CloudVault folder sync."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .api import CloudVaultClient
from .cli_progress import SyncProgressDisplay
from .config import config
from .exceptions import CloudVaultAPIError, CloudVaultError
from .output import OutputFormatter
from .sync import SyncEngine

logger = logging.getLogger(__name__)


def _resolve_settings(ctx: Any, path: Optional[str]) -> tuple[Path, str, str]:
    """Collect local folder, token and API URL or exit with an error."""
    out: OutputFormatter = ctx.obj["out"]
    token = ctx.obj.get("token") or config.token
    api_url = ctx.obj.get("api_url") or config.api_url

    if not token:
        out.error("Token not configured.")
        out.info("Run 'cloudvault init' or set CLOUDVAULT_TOKEN")
        ctx.exit(1)

    folder = Path(path) if path else config.sync_folder
    if folder is None:
        out.error("No sync folder given and none configured.")
        out.info("Pass a PATH or run 'cloudvault init --sync-folder PATH'")
        ctx.exit(1)
    return folder, token, api_url


@click.group()
@click.option("--token", "-t", envvar="CLOUDVAULT_TOKEN", help="CloudVault API token")
@click.option("--api-url", envvar="CLOUDVAULT_API_URL", help="CloudVault API base URL")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    api_url: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """CloudVault - keep a local folder in sync with CloudVault storage."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["api_url"] = api_url
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("cloudvault").setLevel(logging.DEBUG)
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--token",
    "-t",
    prompt="Enter your CloudVault API token",
    hide_input=True,
    help="CloudVault API token",
)
@click.option("--api-url", help="CloudVault API base URL")
@click.option(
    "--sync-folder",
    type=click.Path(file_okay=False, path_type=Path),
    help="Default local folder to sync",
)
@click.option("--no-verify", is_flag=True, help="Store the token without checking it")
@click.pass_context
def init(
    ctx: Any,
    token: str,
    api_url: Optional[str],
    sync_folder: Optional[Path],
    no_verify: bool,
) -> None:
    """Initialize CloudVault configuration.

    Stores your token (and optionally API URL and sync folder) in
    ~/.config/cloudvault/config for future use.
    """
    out: OutputFormatter = ctx.obj["out"]
    url = api_url or ctx.obj.get("api_url") or config.api_url

    if not no_verify:
        out.info("Validating token...")
        try:
            asyncio.run(_count_root_folders(token, url))
        except CloudVaultAPIError as e:
            out.error(f"Could not reach {url}: {e}")
            ctx.exit(1)

    config.save_token(token)
    if api_url:
        config.save_api_url(api_url)
    if sync_folder:
        config.save_sync_folder(sync_folder)
    out.success(f"Configuration saved to {config.get_config_path()}")


async def _count_root_folders(token: str, api_url: str) -> int:
    async with CloudVaultClient(token=token, api_url=api_url) as client:
        return len(await client.list_folders(None))


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Show configuration and check the connection to the API."""
    out: OutputFormatter = ctx.obj["out"]
    token = ctx.obj.get("token") or config.token
    api_url = ctx.obj.get("api_url") or config.api_url

    connection = "not checked (no token)"
    if token:
        try:
            count = asyncio.run(_count_root_folders(token, api_url))
            connection = f"ok ({count} folder(s) at root)"
        except CloudVaultAPIError as e:
            connection = f"failed: {e}"

    out.print_summary(
        "CloudVault",
        [
            ("Config file", config.get_config_path()),
            ("API URL", api_url),
            ("Token", "configured" if token else "missing"),
            ("Sync folder", config.sync_folder),
            ("Debounce (s)", config.debounce_seconds),
            ("Poll interval (s)", config.poll_interval),
            ("Connection", connection),
        ],
    )
    if token is None or connection.startswith("failed"):
        ctx.exit(1)


@main.command()
@click.argument("path", type=click.Path(file_okay=False), required=False)
@click.pass_context
def sync(ctx: Any, path: Optional[str]) -> None:
    """Run one bidirectional sync pass.

    PATH: Local folder to sync (defaults to the configured sync folder)

    Remote files missing locally or newer than the local copy are
    downloaded; local files missing remotely or newer than the remote copy
    are uploaded.

    Examples:
        cloudvault sync ~/CloudVault
        cloudvault -t TOKEN --api-url https://vault.example.com/api sync .
    """
    out: OutputFormatter = ctx.obj["out"]
    folder, token, api_url = _resolve_settings(ctx, path)

    async def run_once() -> tuple[Optional[dict[str, int]], dict[str, Any]]:
        engine = SyncEngine()
        try:
            if out.quiet or out.json_output:
                stats = await engine.start(folder, token, api_url, arm_triggers=False)
            else:
                with SyncProgressDisplay() as display:
                    stats = await engine.start(
                        folder,
                        token,
                        api_url,
                        listener=display.handle_event,
                        arm_triggers=False,
                    )
            return stats, engine.status()
        finally:
            await engine.close()

    try:
        stats, session = asyncio.run(run_once())
    except (CloudVaultError, ValueError, OSError) as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if session["status"] == "error":
        out.error(session["last_error"] or "Sync failed")
        ctx.exit(1)

    stats = stats or {}
    if out.json_output:
        out.output_json({"status": session, "stats": stats})
        return
    out.success(
        f"Sync complete: {stats.get('downloads', 0)} downloaded, "
        f"{stats.get('uploads', 0)} uploaded, {stats.get('skips', 0)} unchanged"
    )
    if stats.get("failures"):
        out.warning(f"{stats['failures']} file(s) failed and will be retried next sync")


@main.command()
@click.argument("path", type=click.Path(file_okay=False), required=False)
@click.option(
    "--debounce",
    type=float,
    default=None,
    help="Seconds to wait after the last local change (default: 2)",
)
@click.option(
    "--poll-interval",
    type=float,
    default=None,
    help="Seconds between full syncs (default: 300)",
)
@click.pass_context
def watch(
    ctx: Any,
    path: Optional[str],
    debounce: Optional[float],
    poll_interval: Optional[float],
) -> None:
    """Keep a folder in sync until interrupted.

    Runs an initial sync, then syncs again whenever local files change
    and every poll interval. Press Ctrl+C to stop.
    """
    out: OutputFormatter = ctx.obj["out"]
    folder, token, api_url = _resolve_settings(ctx, path)

    async def run_forever() -> None:
        engine = SyncEngine(debounce_seconds=debounce, poll_interval=poll_interval)
        try:
            with SyncProgressDisplay() as display:
                await engine.start(folder, token, api_url, listener=display.handle_event)
                # Triggers do the rest
                while True:
                    await asyncio.sleep(3600)
        finally:
            await engine.close()

    out.info(f"Watching {folder} (Ctrl+C to stop)")
    try:
        asyncio.run(run_forever())
    except KeyboardInterrupt:
        out.info("Stopped")
    except (CloudVaultError, ValueError, OSError) as e:
        out.error(str(e))
        ctx.exit(1)


if __name__ == "__main__":
    main()
