"""Custom exceptions for PyDavSync."""


class DavSyncError(Exception):
    """Base exception for all PyDavSync errors."""

    pass


class DavSyncConfigError(DavSyncError):
    """Raised when configuration is missing or invalid."""

    pass


class DavSyncConnectionError(DavSyncError):
    """Raised when the WebDAV server cannot be reached."""

    pass
