"""
In-memory backlog of accepted VAAs awaiting the queue forwarder.

The backlog is a bounded FIFO of (dedup key, hex VAA) records. The listener
appends to it on acceptance; the forwarder drains it into the persistent
queue; the dedup checker scans it.
"""

from collections import deque
from collections.abc import Callable, Iterator
from typing import Optional

BacklogRecord = tuple[str, str]


class Backlog:
    """
    Bounded backlog of accepted VAAs.

    Uses a deque with maxlen so the oldest record is evicted automatically
    once the backlog is full.
    """

    def __init__(self, max_size: int = 10_000):
        """
        Initialize the backlog.

        Args:
            max_size: Maximum number of records to hold
        """
        self.max_size = max_size
        self._records: deque[BacklogRecord] = deque(maxlen=max_size)

    def push(self, key: str, value: str) -> None:
        """
        Append a record, evicting the oldest one if the backlog is full.

        Args:
            key: Dedup key of the accepted transfer
            value: Hex-encoded VAA
        """
        self._records.append((key, value))

    def pop_oldest(self) -> Optional[BacklogRecord]:
        """Remove and return the oldest record, or None when empty."""
        try:
            return self._records.popleft()
        except IndexError:
            return None

    def find(self, predicate: Callable[[BacklogRecord], bool]) -> Optional[BacklogRecord]:
        """
        Return the first record matching the predicate.

        Args:
            predicate: Called with each (key, value) record, oldest first

        Returns:
            The matching record, or None if nothing matched
        """
        return next((record for record in self._records if predicate(record)), None)

    def find_key(self, key: str) -> Optional[BacklogRecord]:
        """Return the first record stored under the given dedup key."""
        return self.find(lambda record: record[0] == key)

    def __iter__(self) -> Iterator[BacklogRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def get_stats(self) -> dict:
        """
        Get current backlog statistics.

        Returns:
            Dictionary with backlog metrics
        """
        return {
            'backlog_size': len(self._records),
            'max_backlog_size': self.max_size,
        }
