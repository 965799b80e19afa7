"""PyDavSync - incremental directory uploads to WebDAV servers."""

from .exceptions import (
    DavSyncConfigError,
    DavSyncConnectionError,
    DavSyncError,
)
from .utils import calculate_fingerprint, get_optimal_concurrency
from .webdav import TransferResult, WebDAVClient

__version__ = "0.1.0"

__all__ = [
    "WebDAVClient",
    "TransferResult",
    "DavSyncError",
    "DavSyncConfigError",
    "DavSyncConnectionError",
    "calculate_fingerprint",
    "get_optimal_concurrency",
]
