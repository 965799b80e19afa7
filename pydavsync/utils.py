"""Utility functions for PyDavSync."""

import hashlib
import json
import os
import random
import tempfile
from pathlib import Path
from typing import Optional, Union

# =============================================================================
# Constants for file operations
# =============================================================================

# Read size used when fingerprinting files (1 MB)
FINGERPRINT_CHUNK_SIZE: int = 1024 * 1024

# Per-file upload timeout
DEFAULT_UPLOAD_TIMEOUT: float = 60.0

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 0.5  # seconds

# Name of the per-root run-state ledger
STATE_FILE_NAME: str = ".pydavsync-state.json"


# =============================================================================
# Fingerprint utilities
# =============================================================================


def calculate_fingerprint(
    file_path: Union[str, Path], chunk_size: int = FINGERPRINT_CHUNK_SIZE
) -> str:
    """Calculate the content fingerprint of a file.

    The file is streamed through MD5 so large files are never loaded
    into memory at once.

    Args:
        file_path: Path to the file
        chunk_size: Number of bytes to read per iteration

    Returns:
        Hex digest of the file content

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.md5()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


# =============================================================================
# Path utilities
# =============================================================================


def normalize_remote_path(path: str) -> str:
    """Normalize a remote path to forward slashes without outer slashes.

    Args:
        path: Remote path (may use backslashes)

    Returns:
        Normalized path, e.g. "backup/daily"

    Examples:
        >>> normalize_remote_path("/backup\\\\daily/")
        'backup/daily'
        >>> normalize_remote_path("")
        ''
    """
    segments = [s for s in path.replace("\\", "/").split("/") if s and s != "."]
    return "/".join(segments)


def join_remote_path(*parts: str) -> str:
    """Join remote path fragments, skipping empty ones.

    Examples:
        >>> join_remote_path("backup", "docs/a.txt")
        'backup/docs/a.txt'
        >>> join_remote_path("", "a.txt")
        'a.txt'
    """
    return normalize_remote_path("/".join(p for p in parts if p))


def remote_parent(path: str) -> str:
    """Return the parent directory of a remote path ("" for top level)."""
    normalized = normalize_remote_path(path)
    if "/" not in normalized:
        return ""
    return normalized.rsplit("/", 1)[0]


# =============================================================================
# Concurrency utilities
# =============================================================================


def get_optimal_concurrency(user_specified: Optional[int] = None) -> int:
    """Get the number of concurrent uploads to run.

    Args:
        user_specified: Value requested by the user, used if positive

    Returns:
        The user value, or two thirds of the available CPU cores (minimum 1)
    """
    if user_specified is not None and user_specified > 0:
        return user_specified
    total_cores = os.cpu_count() or 1
    return max(1, (total_cores * 2) // 3)


def calculate_retry_delay(attempt: int, base_delay: float = DEFAULT_RETRY_DELAY) -> float:
    """Calculate delay before next retry using exponential backoff.

    Args:
        attempt: Current attempt number (0-based)
        base_delay: Delay for the first retry in seconds

    Returns:
        Delay in seconds, with +/- 25% jitter
    """
    delay = base_delay * (2**attempt)
    jitter = delay * 0.25 * (2 * random.random() - 1)
    return delay + jitter


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
# JSON persistence utilities
# =============================================================================


def write_json_atomic(path: Path, data: object) -> None:
    """Write JSON to a file through a temporary file and rename.

    Readers never observe a half-written file.

    Args:
        path: Destination file
        data: JSON-serializable data

    Raises:
        OSError: If the file cannot be written
        TypeError: If the data is not JSON-serializable
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
