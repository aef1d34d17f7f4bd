"""
CredManager - Record Store

In-memory ordered set of records for one lifecycle stage (active or
archived), backed by a directory of encrypted files.

Order is (created_at, version), tie-broken by storage key, so "position N"
means the same record every time the list is shown in a session.
Positions are NOT persisted identity.

The store never writes files itself. The lifecycle coordinator pairs each
add()/delete() with the matching codec call.
"""

import bisect
import logging
import threading
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .codec import RecordCodec
from .models import Record


logger = logging.getLogger(__name__)


class RecordStore:
    """
    Usage:
        active = RecordStore(codec, settings.active_dir, "active").initialize()
        active.add(record)
        first = active.get_by_position(0)
    """

    def __init__(self, codec: RecordCodec, directory, label: str = "records"):
        self.codec = codec
        self.directory = Path(directory)
        self.label = label
        self._records: List[Record] = []
        self._initialized = False
        self._init_lock = threading.Lock()

    def initialize(self) -> "RecordStore":
        """
        Load every readable record file from the backing directory.

        Runs once per store; later calls are no-ops. Unreadable files are
        skipped (the codec logs them).
        """
        if not self._initialized:
            with self._init_lock:
                if not self._initialized:
                    self._load()
                    self._initialized = True
        return self

    def _load(self) -> None:
        skipped = 0
        for file_name in self.codec.list_files(self.directory):
            record = self.codec.load(self.directory, file_name)
            if record is None:
                skipped += 1
                continue
            self.add(record)
        logger.info("Loaded %d %s record(s) from %s (%d skipped)",
                    len(self._records), self.label, self.directory, skipped)

    # =========================================================================
    # MUTATION (memory only)
    # =========================================================================

    def add(self, record: Record) -> Record:
        """Insert in order. No-op if an equal record is already present."""
        if self._index_of(record) is None:
            bisect.insort_right(self._records, record, key=_sort_key)
        return record

    def delete(self, record: Record) -> bool:
        """Remove the record equal to `record`. Returns whether one was removed."""
        idx = self._index_of(record)
        if idx is None:
            return False
        del self._records[idx]
        return True

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_by_position(self, index: int) -> Optional[Record]:
        """0-based lookup; None when out of range."""
        if index < 0 or index >= len(self._records):
            return None
        return self._records[index]

    def get_by_storage_key(self, storage_key: str) -> Optional[Record]:
        """The record whose file would be named `storage_key`, if any."""
        for record in self._records:
            if record.storage_key == storage_key:
                return record
        return None

    def has_any(self) -> bool:
        return bool(self._records)

    def list(self) -> Tuple[Record, ...]:
        """Read-only ordered view."""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.list())

    def __contains__(self, record) -> bool:
        return isinstance(record, Record) and self._index_of(record) is not None

    def __repr__(self) -> str:
        return f"RecordStore({self.label!r}, {self.directory}, size={len(self)})"

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _index_of(self, record: Record) -> Optional[int]:
        """Position of the record equal to `record`, found by binary search."""
        key = _sort_key(record)
        idx = bisect.bisect_left(self._records, key, key=_sort_key)
        while idx < len(self._records) and _sort_key(self._records[idx]) == key:
            if self._records[idx] == record:
                return idx
            idx += 1
        return None


def _sort_key(record: Record):
    return record.sort_key
