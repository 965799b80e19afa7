"""Run-state ledger for resumable sync runs.

The ledger lives inside the synchronization root and remembers which
files were uploaded (with the fingerprint that was transmitted) and
when the last run completed.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..utils import STATE_FILE_NAME, write_json_atomic

logger = logging.getLogger(__name__)


@dataclass
class RunState:
    """Serializable content of a run-state ledger."""

    files: dict[str, str] = field(default_factory=dict)
    """Mapping of relative path to the fingerprint that was uploaded"""

    last_run: Optional[str] = None
    """ISO timestamp of the last completed run"""

    def to_dict(self) -> dict:
        """Convert state to dictionary for JSON serialization."""
        return {
            "files": dict(sorted(self.files.items())),
            "lastRun": self.last_run or "",
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RunState":
        """Create RunState from dictionary."""
        files = data.get("files", {})
        if not isinstance(files, dict):
            raise ValueError("'files' must be an object")
        return cls(
            files={str(k): v for k, v in files.items() if isinstance(v, str)},
            last_run=data.get("lastRun") or None,
        )


class RunStateLedger:
    """Persists the successfully uploaded files of one sync root.

    Mutations are guarded by a lock so the ledger can be updated from
    upload completion callbacks.
    """

    def __init__(self, root: Path, state_file_name: str = STATE_FILE_NAME):
        """Initialize the ledger.

        Args:
            root: Synchronization root directory
            state_file_name: Name of the ledger file inside the root
        """
        self.root = Path(root).resolve()
        self.state_path = self.root / state_file_name
        self._state = RunState()
        self._lock = threading.Lock()

    def load(self) -> bool:
        """Load the ledger from disk.

        A missing or unreadable file results in an empty ledger.

        Returns:
            True if a ledger file was loaded
        """
        if not self.state_path.exists():
            logger.debug(f"No run state found at {self.state_path}")
            with self._lock:
                self._state = RunState()
            return False

        try:
            with open(self.state_path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("state file does not contain a JSON object")
            state = RunState.from_dict(data)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load run state: {e}")
            with self._lock:
                self._state = RunState()
            return False

        with self._lock:
            self._state = state
        logger.debug(
            f"Loaded run state with {len(state.files)} files from {state.last_run}"
        )
        return True

    def save(self) -> bool:
        """Write the ledger to disk.

        Returns:
            True on success, False if the file could not be written
        """
        with self._lock:
            data = self._state.to_dict()

        try:
            write_json_atomic(self.state_path, data)
        except OSError as e:
            logger.warning(f"Failed to save run state: {e}")
            return False

        logger.debug(
            f"Saved run state with {len(data['files'])} files to {self.state_path}"
        )
        return True

    def record_uploaded(self, relative_path: str, fingerprint: str) -> None:
        """Record a confirmed upload.

        Args:
            relative_path: Root-relative path of the file
            fingerprint: Fingerprint of the transmitted content
        """
        with self._lock:
            self._state.files[relative_path] = fingerprint

    def record_run_completion_timestamp(self) -> str:
        """Mark the current time as the last completed run.

        Returns:
            The recorded ISO timestamp
        """
        timestamp = datetime.now(timezone.utc).isoformat()
        with self._lock:
            self._state.last_run = timestamp
        return timestamp

    def is_current(self, relative_path: str, fingerprint: str) -> bool:
        """Check whether this exact content was already uploaded."""
        with self._lock:
            return self._state.files.get(relative_path) == fingerprint

    def get(self, relative_path: str) -> Optional[str]:
        """Return the uploaded fingerprint for a path, if any."""
        with self._lock:
            return self._state.files.get(relative_path)

    @property
    def files(self) -> dict[str, str]:
        """Copy of the uploaded files mapping."""
        with self._lock:
            return dict(self._state.files)

    @property
    def last_run(self) -> Optional[str]:
        """ISO timestamp of the last completed run."""
        with self._lock:
            return self._state.last_run

    def __len__(self) -> int:
        with self._lock:
            return len(self._state.files)
