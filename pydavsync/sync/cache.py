"""Persistent fingerprint cache for change detection.

The cache maps absolute file paths to the fingerprint of the content
that was last seen (or last uploaded) for that path. It is stored as a
flat JSON object.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional, Union

from ..utils import calculate_fingerprint, write_json_atomic

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _cache_key(path: PathLike) -> str:
    return os.path.normpath(os.fspath(path))


class FingerprintCache:
    """Tracks the last known fingerprint of each file.

    Two ways of querying are supported:

    - :meth:`has_changed` compares and immediately stores the new
      fingerprint, so the check itself commits.
    - :meth:`check_changed` is read-only; callers record the fingerprint
      with :meth:`commit` once the upload is confirmed.

    Examples:
        >>> cache = FingerprintCache(Path("/tmp/fingerprints.json"))
        >>> cache.load()
        >>> if cache.check_changed(path, fingerprint):
        ...     upload(path)
        ...     cache.commit(path, fingerprint)
        >>> cache.save()
    """

    def __init__(self, cache_path: Path):
        """Initialize fingerprint cache.

        Args:
            cache_path: JSON file used to persist the cache
        """
        self.cache_path = Path(cache_path)
        self._entries: dict[str, str] = {}
        self._lock = threading.Lock()

    def load(self) -> bool:
        """Load cached fingerprints from disk.

        Any read or parse error results in an empty cache.

        Returns:
            True if a cache file was loaded
        """
        if not self.cache_path.exists():
            logger.debug(f"No fingerprint cache found at {self.cache_path}")
            with self._lock:
                self._entries = {}
            return False

        try:
            with open(self.cache_path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("cache file does not contain a JSON object")
            entries = {
                _cache_key(key): value
                for key, value in data.items()
                if isinstance(value, str)
            }
        except (OSError, ValueError) as e:
            logger.error(f"Error loading fingerprint cache: {e}")
            with self._lock:
                self._entries = {}
            return False

        with self._lock:
            self._entries = entries
        logger.debug(
            f"Loaded fingerprint cache with {len(entries)} entries "
            f"from {self.cache_path}"
        )
        return True

    def save(self) -> bool:
        """Save cached fingerprints to disk.

        Returns:
            True on success, False if the cache could not be written
        """
        with self._lock:
            snapshot = dict(self._entries)

        try:
            write_json_atomic(self.cache_path, snapshot)
        except (OSError, TypeError) as e:
            logger.error(f"Error saving fingerprint cache: {e}")
            return False

        logger.debug(f"Saved fingerprint cache to {self.cache_path}")
        return True

    def get(self, path: PathLike) -> Optional[str]:
        """Return the stored fingerprint for a path, if any."""
        with self._lock:
            return self._entries.get(_cache_key(path))

    def check_changed(self, path: PathLike, fingerprint: str) -> bool:
        """Check whether a fingerprint differs from the stored one.

        This never modifies the cache.

        Args:
            path: Absolute file path
            fingerprint: Fingerprint of the current content

        Returns:
            True if the path is unknown or its fingerprint differs
        """
        stored = self.get(path)
        return stored is None or stored != fingerprint

    def commit(self, path: PathLike, fingerprint: str) -> None:
        """Record the fingerprint of content that was transferred."""
        with self._lock:
            self._entries[_cache_key(path)] = fingerprint

    def update_fingerprint(self, path: PathLike, fingerprint: str) -> None:
        """Store a fingerprint in memory; call :meth:`save` to persist it."""
        self.commit(path, fingerprint)

    def has_changed(self, path: PathLike, fingerprint: Optional[str] = None) -> bool:
        """Check whether a file changed and store its current fingerprint.

        Unlike :meth:`check_changed` this updates the cache whenever the
        file is reported as changed, so a later failed upload leaves the
        cache ahead of the remote.

        Args:
            path: Absolute file path
            fingerprint: Precomputed fingerprint, to avoid reading the file

        Returns:
            True if the file is new or its content changed. Also True
            when the fingerprint cannot be computed.
        """
        key = _cache_key(path)
        if fingerprint is None:
            try:
                fingerprint = calculate_fingerprint(key)
            except OSError as e:
                logger.error(f"Error checking file changes for {key}: {e}")
                return True

        with self._lock:
            stored = self._entries.get(key)
            if stored == fingerprint:
                logger.debug(f"File {key} unchanged (fingerprint match)")
                return False
            if stored is None:
                logger.debug(f"No cached fingerprint for {key}, marking as changed")
            else:
                logger.debug(f"Fingerprint changed for {key}")
            self._entries[key] = fingerprint
        return True

    def clear(self) -> None:
        """Remove all entries from memory."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return _cache_key(path) in self._entries
