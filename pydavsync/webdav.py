"""WebDAV client used as the transfer backend for sync runs."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from .exceptions import DavSyncConfigError
from .utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_UPLOAD_TIMEOUT,
    calculate_retry_delay,
    normalize_remote_path,
)

logger = logging.getLogger(__name__)

# Statuses returned by MKCOL when the collection is already there
DIRECTORY_EXISTS_STATUSES = frozenset({400, 405, 409})


@dataclass
class TransferResult:
    """Outcome of a single transfer operation."""

    success: bool
    """Whether the operation succeeded"""

    message: str = ""
    """Diagnostic text (server response or error)"""


class WebDAVClient:
    """Client for a WebDAV server.

    Exposes the operations the sync engine needs: creating directories,
    uploading files and probing connectivity. Expected failures are
    reported through return values instead of exceptions.
    """

    def __init__(
        self,
        url: str | None,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        client: httpx.Client | None = None,
    ):
        """Initialize WebDAV client.

        Args:
            url: Base URL of the WebDAV server
            username: Optional username for basic authentication
            password: Optional password for basic authentication
            timeout: Default request timeout in seconds
            max_retries: Attempts per directory segment
            retry_delay: Initial delay between retries in seconds
            client: Preconfigured httpx client (mainly for testing)
        """
        if not url:
            raise DavSyncConfigError(
                "WebDAV URL not configured. Use --webdav-url or set "
                "PYDAVSYNC_WEBDAV_URL."
            )
        self.url = url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._client = client
        self._created_directories: set[str] = set()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            auth = None
            if self.username is not None:
                auth = httpx.BasicAuth(self.username, self.password or "")
            self._client = httpx.Client(
                auth=auth,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
        self._client = None

    def __enter__(self) -> WebDAVClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _url_for(self, path: str) -> str:
        """Build the absolute URL for a remote path."""
        normalized = normalize_remote_path(path)
        if not normalized:
            return f"{self.url}/"
        return f"{self.url}/{quote(normalized)}"

    # =========================
    # Directory Operations
    # =========================

    def ensure_directory(self, path: str) -> bool:
        """Create a single remote directory.

        An already existing directory counts as success.

        Args:
            path: Remote directory path

        Returns:
            True if the directory exists after the call
        """
        normalized = normalize_remote_path(path)
        if not normalized or normalized in self._created_directories:
            return True

        try:
            response = self._get_client().request(
                "MKCOL", self._url_for(normalized) + "/"
            )
        except httpx.HTTPError as e:
            logger.debug(f"Directory creation error for /{normalized}: {e}")
            return False

        status = response.status_code
        if 200 <= status < 300:
            logger.debug(f"Directory created: /{normalized}")
        elif status in DIRECTORY_EXISTS_STATUSES:
            logger.debug(f"Directory already exists: /{normalized} (status {status})")
        else:
            logger.debug(f"Failed to create directory /{normalized} (status {status})")
            return False

        self._created_directories.add(normalized)
        return True

    def ensure_directory_path(self, full_path: str) -> bool:
        """Create every segment of a nested remote directory path.

        Each segment is retried with exponential backoff. A segment that
        keeps failing is logged and skipped so uploads can still be tried.

        Args:
            full_path: Remote directory path, e.g. "backup/2024/photos"

        Returns:
            True unless an unexpected error aborted the walk
        """
        normalized = normalize_remote_path(full_path)
        if not normalized or normalized in self._created_directories:
            return True

        current = ""
        try:
            for segment in normalized.split("/"):
                current = f"{current}/{segment}" if current else segment
                for attempt in range(self.max_retries):
                    if self.ensure_directory(current):
                        break
                    if attempt < self.max_retries - 1:
                        logger.debug(
                            f"Retry {attempt + 1} for directory /{current}"
                        )
                        time.sleep(calculate_retry_delay(attempt, self.retry_delay))
                else:
                    logger.warning(
                        f"Failed to create directory segment /{current} "
                        f"after {self.max_retries} attempts, continuing"
                    )
        except Exception as e:
            logger.warning(f"Directory structure error for /{normalized}: {e}")
            return False

        return True

    # =========================
    # Upload Operations
    # =========================

    def upload_file(
        self,
        local_path: Path | str,
        remote_path: str,
        timeout_seconds: float = DEFAULT_UPLOAD_TIMEOUT,
    ) -> TransferResult:
        """Upload a local file with PUT.

        Args:
            local_path: Path of the file to upload
            remote_path: Destination path on the server
            timeout_seconds: Timeout for this request

        Returns:
            TransferResult describing the outcome
        """
        normalized = normalize_remote_path(remote_path)
        logger.debug(f"Uploading {local_path} to /{normalized}")

        try:
            with open(local_path, "rb") as f:
                response = self._get_client().put(
                    self._url_for(normalized),
                    content=f,
                    timeout=httpx.Timeout(timeout_seconds),
                )
        except OSError as e:
            return TransferResult(False, f"Cannot read {local_path}: {e}")
        except httpx.TimeoutException as e:
            return TransferResult(
                False, f"Upload timed out after {timeout_seconds}s: {e}"
            )
        except httpx.HTTPError as e:
            return TransferResult(False, f"Network error: {e}")

        if 200 <= response.status_code < 300:
            return TransferResult(True, f"Uploaded (status {response.status_code})")

        detail = response.reason_phrase or ""
        return TransferResult(
            False,
            f"Upload failed with status {response.status_code} {detail}".rstrip(),
        )

    # =========================
    # Connectivity
    # =========================

    def check_connectivity(self) -> bool:
        """Check whether the server is reachable.

        Tries a PROPFIND on the root collection and falls back to
        OPTIONS for servers that refuse the listing.

        Returns:
            True if the server answered one of the probes
        """
        client = self._get_client()
        root = self._url_for("")

        try:
            response = client.request("PROPFIND", root, headers={"Depth": "0"})
            if response.status_code < 400:
                logger.debug("WebDAV server is reachable via PROPFIND")
                return True
            logger.warning(f"PROPFIND check failed with status {response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"PROPFIND check failed: {e}")

        try:
            response = client.request("OPTIONS", root)
            if response.status_code < 400:
                logger.debug("WebDAV server is reachable via OPTIONS")
                return True
            logger.error(
                f"Failed to connect to WebDAV server: status {response.status_code}"
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to connect to WebDAV server: {e}")

        return False
