"""
Data models for storage layer.

Defines quota records and their composite keys.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class QuotaKey:
    """Composite key bucketing usage per client and calendar day.

    The day is an ISO date string (YYYY-MM-DD), so keys sort chronologically.
    """
    client_key: str
    day: str


@dataclass
class ClientQuotaRecord:
    """Admitted-request counter for one (client, day).

    Created at zero on the first request of the day and incremented once per
    admitted request. Counts are never decremented.
    """
    key: QuotaKey
    count: int = 0
