"""Upload progress accounting and display.

This module provides a thread-safe tracker that counts finished uploads
and renders a Rich progress bar on a timer that runs independently of
the upload workers.
"""

import logging
import threading
from typing import Optional

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from ..output import OutputFormatter

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Counts completed and failed uploads and displays progress.

    Examples:
        >>> tracker = ProgressTracker(OutputFormatter())
        >>> tracker.initialize(10)
        >>> tracker.start_periodic_display(100)
        >>> tracker.record_success()
        >>> tracker.stop_periodic_display()
        >>> tracker.display_summary()
    """

    def __init__(self, output: Optional[OutputFormatter] = None):
        """Initialize the tracker.

        Args:
            output: Output formatter used for the bar and the summary
        """
        self.output = output or OutputFormatter()
        self.total_files = 0
        self.completed_files = 0
        self.failed_files = 0
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._progress: Optional[Progress] = None
        self._task_id: Optional[TaskID] = None

    def initialize(self, total_files: int) -> None:
        """Reset counters for a run of ``total_files`` uploads."""
        with self._lock:
            self.total_files = total_files
            self.completed_files = 0
            self.failed_files = 0

    def record_success(self) -> None:
        """Record a successful upload."""
        with self._lock:
            self.completed_files += 1

    def record_failure(self) -> None:
        """Record a failed upload."""
        with self._lock:
            self.failed_files += 1

    @property
    def processed_files(self) -> int:
        """Number of uploads that finished, successfully or not."""
        with self._lock:
            return self.completed_files + self.failed_files

    def get_percentage(self) -> int:
        """Get progress as an integer percentage (0-100)."""
        with self._lock:
            if self.total_files <= 0:
                return 0
            processed = self.completed_files + self.failed_files
            return (processed * 100) // self.total_files

    def is_complete(self) -> bool:
        """Check whether every upload finished.

        A run with zero files is never complete by this check.
        """
        with self._lock:
            return (
                self.total_files > 0
                and self.completed_files + self.failed_files == self.total_files
            )

    def start_periodic_display(self, interval_ms: int = 100) -> None:
        """Start refreshing the progress bar every ``interval_ms``.

        The timer must be stopped with :meth:`stop_periodic_display`.
        """
        self.stop_periodic_display()
        if self.output.quiet:
            return

        self._progress = Progress(
            TextColumn("[bold blue]Uploading"),
            BarColumn(),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.output.console,
            auto_refresh=False,
        )
        self._progress.start()
        self._task_id = self._progress.add_task("upload", total=self.total_files)
        self._stop_event.clear()

        interval = max(interval_ms, 1) / 1000
        self._thread = threading.Thread(
            target=self._display_loop,
            args=(interval,),
            name="pydavsync-progress",
            daemon=True,
        )
        self._thread.start()

    def _display_loop(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            self.display_progress()
            if self.is_complete():
                break

    def display_progress(self) -> None:
        """Render the current state of the progress bar once."""
        progress = self._progress
        task_id = self._task_id
        if progress is None or task_id is None:
            return
        progress.update(task_id, completed=self.processed_files)
        progress.refresh()

    def stop_periodic_display(self) -> None:
        """Stop the refresh timer and close the progress bar."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._thread = None

        if self._progress is not None:
            self.display_progress()
            self._progress.stop()
            self._progress = None
            self._task_id = None

    def display_summary(self) -> None:
        """Print the final result of the run."""
        with self._lock:
            completed = self.completed_files
            failed = self.failed_files

        # Shown even in quiet mode
        if failed == 0:
            self.output.always(
                f"[green]Upload completed successfully! "
                f"All {completed} files uploaded.[/green]"
            )
        else:
            self.output.always(
                f"[yellow]Upload completed with issues: {completed} succeeded, "
                f"{failed} failed.[/yellow]"
            )
