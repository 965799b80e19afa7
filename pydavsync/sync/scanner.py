"""Directory scanning utilities for sync operations."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..utils import calculate_fingerprint

logger = logging.getLogger(__name__)


@dataclass
class FileRecord:
    """Represents a scanned local file with its content fingerprint."""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    absolute_path: Path
    """Absolute path to the file"""

    size: int
    """File size in bytes"""

    fingerprint: str
    """Hex digest of the file content"""

    changed: Optional[bool] = None
    """Whether the file needs uploading (None until selection ran)"""

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "FileRecord":
        """Create FileRecord from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            FileRecord instance

        Raises:
            OSError: If the file cannot be stat'ed or read
        """
        stat = file_path.stat()
        return cls(
            relative_path=file_path.relative_to(base_path).as_posix(),
            absolute_path=file_path,
            size=stat.st_size,
            fingerprint=calculate_fingerprint(file_path),
        )


@dataclass
class ScanError:
    """A path the scanner could not process."""

    path: Path
    message: str


class DirectoryScanner:
    """Scans directories and fingerprints every regular file.

    Hidden entries (names starting with a dot) and the engine's own state
    artifacts are skipped and never descended into.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> records = scanner.scan(Path("/sync/folder"))
        >>> for record in records:
        ...     print(record.relative_path, record.fingerprint)
    """

    def __init__(self, excluded_paths: Optional[Iterable[Path]] = None):
        """Initialize directory scanner.

        Args:
            excluded_paths: Files to leave out of the scan (state artifacts)
        """
        self.excluded_paths = {
            Path(p).resolve() for p in (excluded_paths or [])
        }
        self.errors: list[ScanError] = []

    def should_ignore(self, path: Path) -> bool:
        """Check if a directory entry should be skipped.

        Args:
            path: Path to check

        Returns:
            True if the path is hidden or a state artifact
        """
        if path.name.startswith("."):
            return True
        return path.resolve() in self.excluded_paths

    def scan(self, root: Path) -> list[FileRecord]:
        """Recursively scan a directory tree.

        Args:
            root: Directory to scan

        Returns:
            List of FileRecord objects, files of a directory before the
            contents of its subdirectories
        """
        self.errors = []
        root = Path(root).resolve()
        records = self._scan_directory(root, root)
        logger.debug(f"Scanned {len(records)} files under {root}")
        return records

    def _scan_directory(self, directory: Path, base_path: Path) -> list[FileRecord]:
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.error(f"Error scanning directory {directory}: {e}")
            self.errors.append(ScanError(directory, str(e)))
            return []

        files: list[FileRecord] = []
        subdirectories: list[Path] = []

        for item in entries:
            if self.should_ignore(item):
                continue

            # Symlinked directories are not followed to avoid cycles
            if item.is_dir() and not item.is_symlink():
                subdirectories.append(item)
            elif item.is_file():
                logger.debug(f"Calculating fingerprint for {item}")
                try:
                    files.append(FileRecord.from_path(item, base_path))
                except OSError as e:
                    logger.error(f"Error fingerprinting {item}: {e}")
                    self.errors.append(ScanError(item, str(e)))

        for subdirectory in subdirectories:
            files.extend(self._scan_directory(subdirectory, base_path))

        return files
