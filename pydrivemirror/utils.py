"""Utility functions and constants for pydrivemirror."""

from pathlib import Path
from typing import Optional

# =============================================================================
# Remote service endpoints
# =============================================================================

TOKEN_URL: str = "https://oauth2.googleapis.com/token"
DRIVE_API_URL: str = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_URL: str = (
    "https://www.googleapis.com/upload/drive/v3/files?uploadType=multipart"
)

FOLDER_MIME_TYPE: str = "application/vnd.google-apps.folder"
FILE_PART_MIME_TYPE: str = "application/octet-stream"

# =============================================================================
# Defaults for a mirror run
# =============================================================================

# Largest file that is uploaded (1 GB)
DEFAULT_MAX_FILE_SIZE: int = 1_000_000_000

DEFAULT_WORKER_COUNT: int = 8

# Name of the remote folder created once per run
DEFAULT_ROOT_FOLDER_NAME: str = "ImportantFiles"

# Failed folder creations and uploads are dropped unless raised above zero
DEFAULT_MAX_RETRIES: int = 0

DEFAULT_TIMEOUT: float = 60.0  # seconds


# =============================================================================
# Local filesystem helpers
# =============================================================================


def default_root_directory(home: Optional[Path] = None) -> Path:
    """Return the user's documents directory.

    Args:
        home: Home directory to use instead of ``Path.home()``

    Returns:
        Path to the ``Documents`` directory (may not exist)
    """
    return (home or Path.home()) / "Documents"


def remote_name(name: str) -> str:
    """Return a name that can be sent to the remote API.

    Local names that are not valid UTF-8 arrive from the filesystem with
    surrogate escapes; the undecodable bytes are replaced with U+FFFD.

    Examples:
        >>> remote_name("bad\\udcff")
        'bad\\ufffd'
    """
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


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


def parse_size(value: str) -> int:
    """Parse a size given in bytes or with a K/M/G suffix.

    Suffixes are decimal (``1G`` is 1,000,000,000 bytes), matching the
    default size limit.

    Args:
        value: Size string such as ``"1000"``, ``"500M"`` or ``"1G"``

    Returns:
        Size in bytes

    Raises:
        ValueError: If the value cannot be parsed or is negative

    Examples:
        >>> parse_size("1G")
        1000000000
        >>> parse_size("1024")
        1024
    """
    multipliers = {"K": 1000, "M": 1000**2, "G": 1000**3}
    text = value.strip().upper()
    if text.endswith("B"):
        text = text[:-1]

    multiplier = 1
    if text and text[-1] in multipliers:
        multiplier = multipliers[text[-1]]
        text = text[:-1]

    try:
        number = int(text)
    except ValueError as e:
        raise ValueError(f"Invalid size: {value!r}") from e

    if number < 0:
        raise ValueError(f"Size must not be negative: {value!r}")
    return number * multiplier
