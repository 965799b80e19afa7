"""Bounded-concurrency upload scheduler.

This module provides:
- UploadScheduler: Drains a FIFO queue of file records through a
  transfer handler with at most ``max_concurrency`` tasks in flight
- SchedulerTask: A queued or running unit of work
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from ..webdav import TransferResult
from .scanner import FileRecord

logger = logging.getLogger(__name__)

TransferHandler = Callable[[FileRecord], Any]
TaskCallback = Callable[[FileRecord, TransferResult], None]


class TaskStatus(str, Enum):
    """Lifecycle of a scheduler task."""

    QUEUED = "queued"
    ACTIVE = "active"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class SchedulerTask:
    """A file record with its scheduling metadata."""

    record: FileRecord
    status: TaskStatus = TaskStatus.QUEUED
    message: str = ""

    @property
    def key(self) -> str:
        """Identifier of the task within one queue."""
        return self.record.relative_path


def normalize_result(value: Any) -> TransferResult:
    """Convert a handler return value to a TransferResult.

    Handlers may return a TransferResult, a bool, or a mapping with a
    ``success`` key (and optionally ``message``).
    """
    if isinstance(value, TransferResult):
        return value
    if isinstance(value, bool):
        return TransferResult(value)
    if isinstance(value, dict):
        return TransferResult(
            bool(value.get("success")), str(value.get("message", ""))
        )
    if value is None:
        return TransferResult(False, "Handler returned no result")
    return TransferResult(bool(getattr(value, "success", False)))


class UploadScheduler:
    """Worker pool that keeps a fixed number of uploads in flight.

    On :meth:`start` up to ``max_concurrency`` tasks are dispatched. Each
    finished task dispatches exactly one replacement from the queue, so
    concurrency stays at the limit until the queue drains. Completion is
    signalled once, when the scheduler first becomes idle.

    Usage:
        scheduler = UploadScheduler(4, handler, on_task_complete=commit)
        scheduler.set_queue(records)
        scheduler.start()
        scheduler.wait()
    """

    def __init__(
        self,
        max_concurrency: int,
        handler: TransferHandler,
        on_task_complete: TaskCallback | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            max_concurrency: Maximum number of tasks running at once.
            handler: Callable transferring one record.
            on_task_complete: Called after every task, one call at a time.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self._max_concurrency = max_concurrency
        self._handler = handler
        self._on_task_complete = on_task_complete

        self._lock = threading.Lock()
        self._callback_lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()

        self._pending: deque[SchedulerTask] = deque()
        self._active: dict[str, SchedulerTask] = {}
        self._executor: ThreadPoolExecutor | None = None
        self._on_all_complete: Callable[[], None] | None = None
        self._running = False

        # Statistics
        self._completed_count = 0
        self._failed_count = 0
        self._peak_concurrency = 0

    @property
    def max_concurrency(self) -> int:
        """Maximum number of concurrent tasks."""
        return self._max_concurrency

    @property
    def pending_count(self) -> int:
        """Number of tasks not yet dispatched."""
        with self._lock:
            return len(self._pending)

    @property
    def active_count(self) -> int:
        """Number of tasks currently running."""
        with self._lock:
            return len(self._active)

    @property
    def is_idle(self) -> bool:
        """True when nothing is pending or running."""
        with self._lock:
            return not self._pending and not self._active

    @property
    def completed_count(self) -> int:
        """Number of tasks that succeeded."""
        with self._lock:
            return self._completed_count

    @property
    def failed_count(self) -> int:
        """Number of tasks that failed."""
        with self._lock:
            return self._failed_count

    @property
    def peak_concurrency(self) -> int:
        """Highest number of simultaneously active tasks observed."""
        with self._lock:
            return self._peak_concurrency

    def set_queue(self, records: list[FileRecord]) -> None:
        """Replace the pending queue.

        Args:
            records: Records to upload, dispatched in this order.

        Raises:
            ValueError: If two records share a relative path.
            RuntimeError: If tasks are still running.
        """
        seen: set[str] = set()
        tasks: list[SchedulerTask] = []
        for record in records:
            if record.relative_path in seen:
                raise ValueError(f"Duplicate path in queue: {record.relative_path}")
            seen.add(record.relative_path)
            tasks.append(SchedulerTask(record))

        with self._lock:
            if self._active:
                raise RuntimeError("Cannot replace the queue while uploads are active")
            self._pending = deque(tasks)
        logger.debug(f"Upload queue set with {len(tasks)} files")

    def start(self, on_all_complete: Callable[[], None] | None = None) -> None:
        """Start draining the queue.

        Args:
            on_all_complete: Called once when the queue is fully drained.

        Raises:
            RuntimeError: If the scheduler is already running.
        """
        with self._lock:
            if self._running:
                raise RuntimeError("Upload scheduler already running")
            self._running = True
            self._on_all_complete = on_all_complete
            self._idle.clear()
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_concurrency,
                thread_name_prefix="pydavsync-upload",
            )
            logger.debug(f"Dispatching with {self._max_concurrency} workers")
            initial = min(self._max_concurrency, len(self._pending))
            for _ in range(initial):
                self._dispatch_next_locked()
            finished = not self._pending and not self._active

        if finished:
            self._finish()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the scheduler is idle.

        Args:
            timeout: Maximum number of seconds to wait.

        Returns:
            True if the scheduler became idle within the timeout.
        """
        return self._idle.wait(timeout)

    def cancel_all(self) -> int:
        """Drop all tasks that have not been dispatched yet.

        Running tasks are not interrupted.

        Returns:
            Number of dropped tasks.
        """
        with self._lock:
            dropped = len(self._pending)
            self._pending.clear()
            finished = self._running and not self._active
        if dropped:
            logger.info(f"Cancelling {dropped} pending uploads")
        if finished:
            self._finish()
        return dropped

    def _dispatch_next_locked(self) -> None:
        """Move the next queued task to the active set. Caller holds the lock."""
        if not self._pending or len(self._active) >= self._max_concurrency:
            return
        assert self._executor is not None

        task = self._pending.popleft()
        task.status = TaskStatus.ACTIVE
        self._active[task.key] = task
        self._peak_concurrency = max(self._peak_concurrency, len(self._active))
        logger.debug(f"Starting upload for {task.key}")
        self._executor.submit(self._run_task, task)

    def _run_task(self, task: SchedulerTask) -> None:
        try:
            result = normalize_result(self._handler(task.record))
        except Exception as e:
            logger.error(f"Upload failed for {task.key}: {e}", exc_info=True)
            result = TransferResult(False, str(e))

        task.status = TaskStatus.SUCCEEDED if result.success else TaskStatus.FAILED
        task.message = result.message

        if self._on_task_complete is not None:
            with self._callback_lock:
                try:
                    self._on_task_complete(task.record, result)
                except Exception as e:
                    logger.error(
                        f"Completion callback failed for {task.key}: {e}",
                        exc_info=True,
                    )

        with self._lock:
            self._active.pop(task.key, None)
            if result.success:
                self._completed_count += 1
            else:
                self._failed_count += 1
            self._dispatch_next_locked()
            finished = self._running and not self._pending and not self._active

        if finished:
            self._finish()

    def _finish(self) -> None:
        """Signal completion exactly once per start."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            callback = self._on_all_complete
            self._on_all_complete = None
            executor = self._executor
            self._executor = None

        if executor is not None:
            executor.shutdown(wait=False)
        logger.debug(
            f"Upload queue drained: {self.completed_count} succeeded, "
            f"{self.failed_count} failed"
        )
        try:
            if callback is not None:
                try:
                    callback()
                except Exception as e:
                    logger.error(f"Drain callback failed: {e}", exc_info=True)
        finally:
            self._idle.set()
