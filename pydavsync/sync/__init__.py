"""Sync engine for PyDavSync - incremental change-triggered uploads."""

from .cache import FingerprintCache
from .engine import SyncEngine
from .progress import ProgressTracker
from .scanner import DirectoryScanner, FileRecord, ScanError
from .scheduler import SchedulerTask, TaskStatus, UploadScheduler
from .selector import ChangeSelector
from .state import RunState, RunStateLedger

__all__ = [
    "SyncEngine",
    "DirectoryScanner",
    "FileRecord",
    "ScanError",
    "FingerprintCache",
    "ChangeSelector",
    "UploadScheduler",
    "SchedulerTask",
    "TaskStatus",
    "ProgressTracker",
    "RunState",
    "RunStateLedger",
]
