"""Core sync engine for incremental uploads."""

import logging
import threading
import time
from pathlib import Path
from typing import Optional

from ..config import config
from ..exceptions import DavSyncConnectionError
from ..output import OutputFormatter
from ..utils import (
    DEFAULT_UPLOAD_TIMEOUT,
    format_size,
    get_optimal_concurrency,
    join_remote_path,
    normalize_remote_path,
    remote_parent,
)
from ..webdav import TransferResult, WebDAVClient
from .cache import FingerprintCache
from .progress import ProgressTracker
from .scanner import DirectoryScanner, FileRecord
from .scheduler import UploadScheduler
from .selector import ChangeSelector
from .state import RunStateLedger

logger = logging.getLogger(__name__)


class SyncEngine:
    """Core sync engine that uploads changed files of a directory tree."""

    def __init__(
        self,
        client: WebDAVClient,
        output: Optional[OutputFormatter] = None,
        cache: Optional[FingerprintCache] = None,
        max_concurrency: Optional[int] = None,
        target_dir: str = "",
        force: bool = False,
        checkpoint_interval: int = 25,
        timeout: float = DEFAULT_UPLOAD_TIMEOUT,
        progress_interval_ms: int = 100,
    ):
        """Initialize sync engine.

        Args:
            client: WebDAV client used for transfers
            output: Output formatter for displaying progress/status
            cache: Fingerprint cache (defaults to the configured cache file)
            max_concurrency: Number of parallel uploads (defaults to 2/3 of
                the CPU cores)
            target_dir: Remote directory the tree is uploaded into
            force: Upload every file regardless of fingerprints
            checkpoint_interval: Persist cache and run state every N
                successful uploads (0 disables checkpoints)
            timeout: Per-file upload timeout in seconds
            progress_interval_ms: Refresh interval of the progress bar
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.cache = cache or FingerprintCache(config.cache_file)
        self.max_concurrency = get_optimal_concurrency(max_concurrency)
        self.target_dir = normalize_remote_path(target_dir)
        self.force = force
        self.checkpoint_interval = checkpoint_interval
        self.timeout = timeout
        self.progress_interval_ms = progress_interval_ms

        self.progress = ProgressTracker(self.output)
        self._ledger: Optional[RunStateLedger] = None
        self._commit_lock = threading.Lock()
        self._commits_since_checkpoint = 0
        self.last_stats: dict = {}
        """Statistics of the current or most recent run"""

    def sync(self, source_dir: Path, dry_run: bool = False) -> dict:
        """Upload new and changed files of a directory.

        Args:
            source_dir: Local directory to synchronize
            dry_run: If True, only show what would be uploaded

        Returns:
            Dictionary with sync statistics

        Raises:
            ValueError: If source_dir is missing or not a directory
            DavSyncConnectionError: If the server cannot be reached
        """
        source_dir = Path(source_dir)
        if not source_dir.exists():
            raise ValueError(f"Local path does not exist: {source_dir}")
        if not source_dir.is_dir():
            raise ValueError(f"Local path is not a directory: {source_dir}")
        source_dir = source_dir.resolve()

        stats = self._create_empty_stats()
        self.last_stats = stats

        ledger = RunStateLedger(source_dir)
        ledger.load()
        self._ledger = ledger
        self.cache.load()

        # Scan
        self.output.info("Scanning directory...")
        scanner = DirectoryScanner(
            excluded_paths=[ledger.state_path, self.cache.cache_path]
        )
        records = scanner.scan(source_dir)
        stats["scanned"] = len(records)
        stats["scan_errors"] = len(scanner.errors)
        for error in scanner.errors:
            self.output.error(f"Could not read {error.path}: {error.message}")
        self.output.info(f"Found {len(records)} files.")

        # Select
        selector = ChangeSelector(self.cache, ledger, force=self.force)
        to_upload = selector.select(records)
        stats["to_upload"] = len(to_upload)
        stats["skipped"] = len(records) - len(to_upload)
        stats["bytes_to_upload"] = sum(r.size for r in to_upload)
        self.output.info(f"{len(to_upload)} files need to be uploaded.")

        if not to_upload:
            self.output.success("All files are up to date.")
            return stats

        self.output.info(f"Total upload size: {format_size(stats['bytes_to_upload'])}.")

        if dry_run:
            self._display_plan(to_upload)
            return stats

        self._upload(to_upload, stats)
        return stats

    def _create_empty_stats(self) -> dict:
        return {
            "scanned": 0,
            "to_upload": 0,
            "uploaded": 0,
            "failed": 0,
            "scan_errors": 0,
            "skipped": 0,
            "cancelled": 0,
            "bytes_to_upload": 0,
        }

    def _display_plan(self, records: list[FileRecord]) -> None:
        self.output.info("Dry run: No files will be uploaded")
        for record in records:
            self.output.info(
                f"  ↑ {self._remote_path_for(record)} ({format_size(record.size)})"
            )

    def _remote_path_for(self, record: FileRecord) -> str:
        return join_remote_path(self.target_dir, record.relative_path)

    def _prepare_directories(self, records: list[FileRecord]) -> None:
        """Create the target directory and every parent directory once."""
        if self.target_dir:
            self.client.ensure_directory_path(self.target_dir)

        directories = sorted(
            {
                remote_parent(self._remote_path_for(r))
                for r in records
                if "/" in r.relative_path
            }
        )
        if directories:
            logger.debug(f"Pre-creating {len(directories)} unique directories...")
        for directory in directories:
            if not self.client.ensure_directory_path(directory):
                logger.warning(f"Could not prepare directory /{directory}")

    def _upload(self, records: list[FileRecord], stats: dict) -> None:
        if not self.client.check_connectivity():
            raise DavSyncConnectionError(
                f"Cannot connect to WebDAV server at {self.client.url}"
            )

        self._prepare_directories(records)

        self._commits_since_checkpoint = 0
        scheduler = UploadScheduler(
            self.max_concurrency,
            self._upload_record,
            on_task_complete=self._on_task_complete,
        )
        scheduler.set_queue(records)

        self.output.info(
            f"Starting parallel upload with {self.max_concurrency} concurrent uploads..."
        )
        self.progress.initialize(len(records))
        self.progress.start_periodic_display(self.progress_interval_ms)

        start_time = time.time()
        try:
            scheduler.start()
            scheduler.wait()
        except BaseException as e:
            stats["cancelled"] = scheduler.cancel_all()
            try:
                # Let running uploads commit before the stores are flushed
                if not scheduler.wait(self.timeout):
                    logger.warning(
                        f"{scheduler.active_count} uploads still running, "
                        "their results will not be saved"
                    )
            finally:
                self.progress.stop_periodic_display()
                if isinstance(e, KeyboardInterrupt):
                    self.output.warning("\nSync cancelled by user")
                else:
                    self.output.error(f"\nUpload process failed: {e}")
                self._flush_state()
            raise
        finally:
            stats["uploaded"] = scheduler.completed_count
            stats["failed"] = scheduler.failed_count

        self.progress.stop_periodic_display()
        logger.debug(f"Upload finished in {time.time() - start_time:.2f}s")

        assert self._ledger is not None
        self._ledger.record_run_completion_timestamp()
        self._flush_state()
        self.progress.display_summary()

    def _upload_record(self, record: FileRecord) -> TransferResult:
        """Transfer handler invoked by the scheduler for one file."""
        remote_path = self._remote_path_for(record)
        parent = remote_parent(remote_path)
        if parent:
            self.client.ensure_directory_path(parent)

        result = self.client.upload_file(
            record.absolute_path, remote_path, timeout_seconds=self.timeout
        )
        if result.success:
            self.output.detail(f"Uploaded {record.relative_path}")
        else:
            self.output.error(
                f"Failed to upload {record.relative_path}: {result.message}"
            )
        return result

    def _on_task_complete(self, record: FileRecord, result: TransferResult) -> None:
        """Commit a finished upload. Called serially by the scheduler."""
        if not result.success:
            self.progress.record_failure()
            return

        assert self._ledger is not None
        with self._commit_lock:
            self.cache.commit(record.absolute_path, record.fingerprint)
            self._ledger.record_uploaded(record.relative_path, record.fingerprint)
            self._commits_since_checkpoint += 1
            checkpoint = (
                self.checkpoint_interval > 0
                and self._commits_since_checkpoint >= self.checkpoint_interval
            )
            if checkpoint:
                self._commits_since_checkpoint = 0
                self._flush_state()
        self.progress.record_success()

    def _flush_state(self) -> None:
        """Persist run state and fingerprint cache, logging failures."""
        if self._ledger is not None and not self._ledger.save():
            self.output.warning("Could not save run state")
        if not self.cache.save():
            self.output.warning("Could not save fingerprint cache")
