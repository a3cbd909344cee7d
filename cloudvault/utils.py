"""Utility functions for CloudVault."""

import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

# =============================================================================
# Constants for file operations
# =============================================================================

DEFAULT_MIME_TYPE: str = "application/octet-stream"

# Request timeout for API calls (seconds)
DEFAULT_TIMEOUT: float = 30.0

# Substrings and suffixes of editor/OS scratch files the watcher ignores
TRANSIENT_NAME_MARKERS: tuple[str, ...] = ("~",)
TRANSIENT_NAME_SUFFIXES: tuple[str, ...] = (".tmp",)


# =============================================================================
# Timestamp parsing utilities
# =============================================================================


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse ISO format timestamp from the CloudVault API.

    Naive timestamps are assumed to be UTC, which is what the backend
    writes.

    Args:
        timestamp_str: ISO format timestamp string (e.g., "2025-01-15T10:30:00.000Z")

    Returns:
        Timezone-aware datetime or None if parsing fails
    """
    if not timestamp_str:
        return None

    try:
        # The 'Z' suffix indicates UTC time
        if timestamp_str.endswith("Z"):
            timestamp_str = timestamp_str[:-1] + "+00:00"

        try:
            dt = datetime.fromisoformat(timestamp_str)
        except ValueError:
            # Try without fractional seconds (older Pythons reject
            # millisecond precision with an offset)
            if "." in timestamp_str:
                head, _, tail = timestamp_str.partition(".")
                offset = ""
                for sign in ("+", "-"):
                    if sign in tail:
                        offset = sign + tail.split(sign, 1)[1]
                        break
                timestamp_str = head + offset
            dt = datetime.fromisoformat(timestamp_str)

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except (ValueError, AttributeError):
        return None


def timestamp_to_epoch(value: Union[str, int, float, None]) -> Optional[float]:
    """Convert an API timestamp to a Unix timestamp.

    Accepts ISO strings as well as numeric epoch values in seconds or
    milliseconds.

    Examples:
        >>> timestamp_to_epoch("1970-01-01T00:00:10Z")
        10.0
        >>> timestamp_to_epoch(1700000000000)
        1700000000.0
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        # Anything past year 33658 in seconds is really milliseconds
        return float(value) / 1000.0 if value > 1e12 else float(value)
    dt = parse_iso_timestamp(value)
    return dt.timestamp() if dt else None


def utc_now_iso() -> str:
    """Current time as an ISO 8601 string in UTC."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# File helpers
# =============================================================================


def detect_mime_type(file_path: Union[Path, str]) -> str:
    """Guess the MIME type of a file from its name.

    Args:
        file_path: Path or file name

    Returns:
        MIME type string (defaults to 'application/octet-stream')
    """
    mime_type, _ = mimetypes.guess_type(str(file_path))
    return mime_type or DEFAULT_MIME_TYPE


def is_transient_name(name: Optional[str]) -> bool:
    """Check whether a changed path looks like a temporary file.

    Examples:
        >>> is_transient_name("report.docx~")
        True
        >>> is_transient_name("download.tmp")
        True
        >>> is_transient_name("notes.txt")
        False
    """
    if not name:
        return True
    if any(marker in name for marker in TRANSIENT_NAME_MARKERS):
        return True
    return name.endswith(TRANSIENT_NAME_SUFFIXES)


def is_safe_name(name: Optional[str]) -> bool:
    """Check that a remote folder/file name is a single path segment.

    Names that would escape the sync root or address a different
    directory are rejected.

    Examples:
        >>> is_safe_name("report.pdf")
        True
        >>> is_safe_name("..")
        False
        >>> is_safe_name("a/b")
        False
    """
    if not name or name in (".", ".."):
        return False
    return not any(sep in name for sep in ("/", "\\", "\x00"))
