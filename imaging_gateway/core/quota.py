"""
Per-client daily quota enforcement.

Admission is decided before any other work so rejected clients fail fast.
Counts bucket by calendar day in the server's local time and restart at
zero after midnight.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from ..storage.models import QuotaKey
from ..storage.quota_store import InMemoryQuotaStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of a single admission check."""
    admitted: bool
    client_key: str
    day: str
    count: int
    limit: int

    @property
    def remaining(self) -> int:
        """Requests still available to this client today."""
        return max(0, self.limit - self.count)


class QuotaTracker:
    """Decides whether a client may run another analysis today.

    Usage::

        tracker = QuotaTracker(InMemoryQuotaStore(), daily_limit=20)
        decision = tracker.admit("203.0.113.7")
    """

    def __init__(
        self,
        store: InMemoryQuotaStore,
        daily_limit: int,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Store holding the per-day counters
            daily_limit: Admitted requests per client per day (0 denies all)
            today: Clock returning the current local date (defaults to date.today)

        Raises:
            ValueError: If daily_limit is negative
        """
        if daily_limit < 0:
            raise ValueError("daily_limit must be >= 0")
        self.store = store
        self.daily_limit = daily_limit
        self._today = today or date.today
        self._current_day: Optional[str] = None

    def current_day(self) -> str:
        return self._today().isoformat()

    def admit(self, client_key: str) -> AdmissionDecision:
        """Check and consume one unit of the client's daily quota.

        A denied request leaves the count untouched.

        Args:
            client_key: Identifier of the requester (its network address)

        Returns:
            AdmissionDecision describing the outcome
        """
        day = self.current_day()
        if day != self._current_day:
            self._roll_over(day)

        admitted, count = self.store.try_increment(QuotaKey(client_key, day), self.daily_limit)
        if not admitted:
            logger.info(
                "Quota exhausted for %s on %s (%d/%d)",
                client_key, day, count, self.daily_limit,
            )
        return AdmissionDecision(
            admitted=admitted,
            client_key=client_key,
            day=day,
            count=count,
            limit=self.daily_limit,
        )

    def usage(self, client_key: str) -> int:
        """Requests admitted for client_key today."""
        return self.store.get_count(QuotaKey(client_key, self.current_day()))

    def evict_stale(self) -> int:
        """Drop counters for days before today.

        Returns:
            Number of records removed
        """
        return self.store.evict_before(self.current_day())

    def _roll_over(self, day: str) -> None:
        # Only today's counters can affect admission
        evicted = self.store.evict_before(day)
        if evicted:
            logger.info("Day rolled over to %s, evicted %d stale quota records", day, evicted)
        self._current_day = day
