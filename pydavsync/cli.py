"""CLI interface for PyDavSync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .config import ENV_PASSWORD, ENV_USERNAME, ENV_WEBDAV_URL, config
from .exceptions import DavSyncError
from .output import OutputFormatter
from .sync import FingerprintCache, SyncEngine
from .utils import DEFAULT_UPLOAD_TIMEOUT, get_optimal_concurrency
from .webdav import WebDAVClient

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    """Configure logging based on the verbose flag."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pydavsync").setLevel(logging.DEBUG)
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
    else:
        logging.basicConfig(level=logging.WARNING)


@click.command()
@click.argument(
    "source_dir",
    type=click.Path(path_type=Path),
)
@click.option(
    "--cores",
    type=click.IntRange(min=1),
    default=None,
    help="Number of concurrent uploads (default: 2/3 of CPU cores)",
)
@click.option(
    "--target",
    "target_dir",
    default="",
    help="Target directory on the WebDAV server (default: root directory)",
)
@click.option(
    "--quiet", "-q", is_flag=True, help="Show only errors and the final summary"
)
@click.option(
    "--verbose", "-v", is_flag=True, help="Show per-file operations and debug logs"
)
@click.option(
    "--force",
    is_flag=True,
    help="Upload all files regardless of whether they have changed",
)
@click.option(
    "--webdav-url",
    envvar=ENV_WEBDAV_URL,
    help="WebDAV server URL (required)",
)
@click.option("--username", "-u", envvar=ENV_USERNAME, help="WebDAV username")
@click.option("--password", "-p", envvar=ENV_PASSWORD, help="WebDAV password")
@click.option(
    "--cache-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Location of the fingerprint cache",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_UPLOAD_TIMEOUT,
    show_default=True,
    help="Per-file upload timeout in seconds",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be uploaded without uploading"
)
@click.version_option(package_name="pydavsync")
@click.pass_context
def main(
    ctx: Any,
    source_dir: Path,
    cores: Optional[int],
    target_dir: str,
    quiet: bool,
    verbose: bool,
    force: bool,
    webdav_url: Optional[str],
    username: Optional[str],
    password: Optional[str],
    cache_file: Optional[Path],
    timeout: float,
    dry_run: bool,
) -> None:
    """PyDavSync - Upload changed files of SOURCE_DIR to a WebDAV server.

    Only files whose content changed since the last successful run are
    uploaded.

    \b
    Examples:
      pydavsync ~/Documents --webdav-url https://dav.example.com
      pydavsync ~/Photos --target backup/daily --cores 4
      pydavsync ~/Notes --force --quiet
    """
    configure_logging(verbose)
    out = OutputFormatter(quiet=quiet, verbose=verbose)

    webdav_url = webdav_url or config.webdav_url
    if not webdav_url:
        out.error("WebDAV URL is required. Use --webdav-url to specify it.")
        ctx.exit(1)
    username = username or config.username
    password = password or config.password

    cache = FingerprintCache(cache_file or config.cache_file)

    try:
        with WebDAVClient(webdav_url, username=username, password=password) as client:
            engine = SyncEngine(
                client,
                output=out,
                cache=cache,
                max_concurrency=get_optimal_concurrency(cores),
                target_dir=target_dir,
                force=force,
                timeout=timeout,
            )
            stats = engine.sync(source_dir, dry_run=dry_run)
    except ValueError as e:
        out.error(str(e))
        ctx.exit(1)
    except DavSyncError as e:
        out.error(str(e))
        ctx.exit(1)
    except KeyboardInterrupt:
        out.warning("Interrupted")
        ctx.exit(130)

    if stats["failed"] or stats["scan_errors"]:
        ctx.exit(1)


if __name__ == "__main__":
    main()
