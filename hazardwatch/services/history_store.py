"""Bounded alert history for audit and display."""

from collections import deque
from datetime import UTC, datetime

from hazardwatch.core.alerting.constants import HISTORY_LIMIT
from hazardwatch.core.alerting.enums import HistoryTransition
from hazardwatch.core.alerting.models import Emergency, HistoryEntry


class HistoryStore:
    """Newest-first sequence of lifecycle snapshots.

    Once ``limit`` entries are held, recording a new one evicts the oldest.
    Entries wrap frozen Emergency values, so later transitions of the live
    alert never alter recorded history.
    """

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError(f"History limit must be positive (got {limit})")
        self._limit = limit
        self._entries: deque[HistoryEntry] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._limit

    def record(
        self,
        emergency: Emergency,
        transition: HistoryTransition,
        now: datetime | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            emergency=emergency,
            transition=transition,
            recorded_at=now or datetime.now(UTC),
        )
        self._entries.appendleft(entry)
        return entry

    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
