"""
In-process quota store.

Holds per-client daily counters behind a lock so check-and-increment is one
atomic step, even when requests for the same client overlap.
"""

import threading
from typing import Dict, List, Optional, Tuple

from .models import ClientQuotaRecord, QuotaKey


class InMemoryQuotaStore:
    """Thread-safe map of QuotaKey -> ClientQuotaRecord.

    Nothing is persisted; a restart forgets all usage. Construct a fresh
    instance per test, or share the process default from get_quota_store().
    """

    def __init__(self) -> None:
        self._records: Dict[QuotaKey, ClientQuotaRecord] = {}
        self._lock = threading.Lock()

    def try_increment(self, key: QuotaKey, limit: int) -> Tuple[bool, int]:
        """Admit one request for key if its count is below limit.

        Args:
            key: Client/day bucket
            limit: Maximum admitted requests for the bucket

        Returns:
            Tuple of (admitted, count after the decision)
        """
        with self._lock:
            record = self._records.get(key)
            if record is None:
                record = ClientQuotaRecord(key=key)
                self._records[key] = record
            if record.count >= limit:
                return False, record.count
            record.count += 1
            return True, record.count

    def get_count(self, key: QuotaKey) -> int:
        """Current count for key, without creating a record."""
        with self._lock:
            record = self._records.get(key)
            return record.count if record else 0

    def evict_before(self, day: str) -> int:
        """Remove every record for a day earlier than day.

        Args:
            day: ISO date string; records for this day and later are kept

        Returns:
            Number of records removed
        """
        with self._lock:
            stale = [key for key in self._records if key.day < day]
            for key in stale:
                del self._records[key]
            return len(stale)

    def records(self) -> List[ClientQuotaRecord]:
        """Snapshot of all records, ordered by day then client."""
        with self._lock:
            return [
                ClientQuotaRecord(key=r.key, count=r.count)
                for r in sorted(self._records.values(), key=lambda r: (r.key.day, r.key.client_key))
            ]

    def reset(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


# Global store instance
_default_store: Optional[InMemoryQuotaStore] = None


def get_quota_store() -> InMemoryQuotaStore:
    """Get the process-wide quota store.

    This function provides a singleton instance of the InMemoryQuotaStore.

    Returns:
        The shared InMemoryQuotaStore
    """
    global _default_store
    if _default_store is None:
        _default_store = InMemoryQuotaStore()
    return _default_store
