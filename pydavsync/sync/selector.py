"""Selection of the files that need uploading."""

import logging
from typing import Optional

from .cache import FingerprintCache
from .scanner import FileRecord
from .state import RunStateLedger

logger = logging.getLogger(__name__)


class ChangeSelector:
    """Decides which scanned files have to be uploaded.

    The fingerprint cache is the primary source. When a run-state ledger
    is given, a file the ledger has no matching record for is selected
    too, so a cache that ran ahead of the remote after a crash does not
    hide files that were never transmitted.

    Selection never writes to either store.
    """

    def __init__(
        self,
        cache: FingerprintCache,
        ledger: Optional[RunStateLedger] = None,
        force: bool = False,
    ):
        """Initialize change selector.

        Args:
            cache: Fingerprint cache to compare against
            ledger: Optional run-state ledger of the sync root
            force: Select every file regardless of fingerprints
        """
        self.cache = cache
        self.ledger = ledger
        self.force = force

    def is_changed(self, record: FileRecord) -> bool:
        """Check whether a single record needs uploading."""
        if self.force:
            return True
        if self.cache.check_changed(record.absolute_path, record.fingerprint):
            return True
        if self.ledger is not None and not self.ledger.is_current(
            record.relative_path, record.fingerprint
        ):
            logger.debug(
                f"{record.relative_path} matches the cache but not the run state"
            )
            return True
        return False

    def select(self, records: list[FileRecord]) -> list[FileRecord]:
        """Annotate records and return those that changed.

        Args:
            records: Records produced by the scanner

        Returns:
            The records with ``changed`` set to True, in scan order
        """
        selected: list[FileRecord] = []
        for record in records:
            record.changed = self.is_changed(record)
            if record.changed:
                selected.append(record)
            else:
                logger.debug(f"{record.relative_path} unchanged, skipping")
        return selected
