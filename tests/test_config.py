"""Tests for configuration loading."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from pydavsync.config import ENV_CACHE_FILE, ENV_WEBDAV_URL, Config


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clean_env():
    with patch.dict("os.environ", {}, clear=True):
        yield


class TestConfig:
    """Tests for Config."""

    def test_reads_config_file(self, temp_dir, clean_env):
        """Test reads config file."""
        config_file = temp_dir / "config"
        config_file.write_text(
            "# comment\n"
            'PYDAVSYNC_WEBDAV_URL="https://dav.example.com"\n'
            "PYDAVSYNC_USERNAME=alice\n"
            "not a setting\n"
        )
        config = Config(config_file=config_file, cache_dir=temp_dir)

        assert config.webdav_url == "https://dav.example.com"
        assert config.username == "alice"
        assert config.password is None
        assert config.is_configured()

    def test_environment_overrides_file(self, temp_dir, clean_env):
        """Test environment overrides file."""
        config_file = temp_dir / "config"
        config_file.write_text("PYDAVSYNC_WEBDAV_URL=https://file.example.com\n")
        config = Config(config_file=config_file, cache_dir=temp_dir)

        with patch.dict("os.environ", {ENV_WEBDAV_URL: "https://env.example.com"}):
            assert config.webdav_url == "https://env.example.com"

    def test_missing_file(self, temp_dir, clean_env):
        """Test missing file."""
        config = Config(config_file=temp_dir / "missing", cache_dir=temp_dir)

        assert config.webdav_url is None
        assert not config.is_configured()

    def test_default_cache_file(self, temp_dir, clean_env):
        """Test default cache file."""
        config = Config(config_file=temp_dir / "missing", cache_dir=temp_dir)

        assert config.cache_file == temp_dir / "fingerprints.json"

    def test_cache_file_from_environment(self, temp_dir, clean_env):
        """Test cache file from environment."""
        config = Config(config_file=temp_dir / "missing", cache_dir=temp_dir)
        custom = temp_dir / "elsewhere.json"

        with patch.dict("os.environ", {ENV_CACHE_FILE: str(custom)}):
            assert config.cache_file == custom
