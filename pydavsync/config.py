"""Configuration management for PyDavSync.

Settings are resolved from environment variables first, then from the
``KEY=VALUE`` config file in ``~/.config/pydavsync/config``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

ENV_WEBDAV_URL = "PYDAVSYNC_WEBDAV_URL"
ENV_USERNAME = "PYDAVSYNC_USERNAME"
ENV_PASSWORD = "PYDAVSYNC_PASSWORD"
ENV_CACHE_FILE = "PYDAVSYNC_CACHE_FILE"


class Config:
    """Lazily loaded settings for the sync tool."""

    def __init__(
        self,
        config_file: Optional[Path] = None,
        cache_dir: Optional[Path] = None,
    ):
        """Initialize configuration.

        Args:
            config_file: Path to the config file. Defaults to
                ~/.config/pydavsync/config
            cache_dir: Directory for cache files. Defaults to
                ~/.cache/pydavsync
        """
        self.config_dir = Path.home() / ".config" / "pydavsync"
        self.config_file = config_file or self.config_dir / "config"
        self.cache_dir = cache_dir or Path.home() / ".cache" / "pydavsync"
        self._file_values: Optional[dict[str, str]] = None

    def _load_file(self) -> dict[str, str]:
        """Read KEY=VALUE pairs from the config file."""
        if self._file_values is not None:
            return self._file_values

        values: dict[str, str] = {}
        if self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    for line in f:
                        line = line.strip()
                        if not line or line.startswith("#") or "=" not in line:
                            continue
                        key, value = line.split("=", 1)
                        values[key.strip()] = value.strip().strip("\"'")
            except OSError as e:
                logger.warning(f"Failed to read config file {self.config_file}: {e}")
        self._file_values = values
        return values

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._load_file().get(key) or None

    @property
    def webdav_url(self) -> Optional[str]:
        """WebDAV server URL."""
        return self._get(ENV_WEBDAV_URL)

    @property
    def username(self) -> Optional[str]:
        """Username for HTTP basic authentication."""
        return self._get(ENV_USERNAME)

    @property
    def password(self) -> Optional[str]:
        """Password for HTTP basic authentication."""
        return self._get(ENV_PASSWORD)

    @property
    def cache_file(self) -> Path:
        """Location of the fingerprint cache."""
        value = self._get(ENV_CACHE_FILE)
        if value:
            return Path(value).expanduser()
        return self.cache_dir / "fingerprints.json"

    def is_configured(self) -> bool:
        """Check whether a WebDAV URL is available."""
        return bool(self.webdav_url)


# Global config instance
config = Config()
