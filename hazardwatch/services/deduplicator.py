"""Raw event deduplication.

Each raw event id enters the alert pipeline at most once per process.
The seen-set lives in memory only, so a restart followed by a feed
replay will process old ids again.
"""

import threading


class Deduplicator:
    """Atomic check-and-mark over the set of processed raw ids."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def should_process(self, raw_id: str) -> bool:
        """Return True the first time ``raw_id`` is offered, False afterwards.

        Marks the id as seen only when returning True.
        """
        with self._lock:
            if raw_id in self._seen:
                return False
            self._seen.add(raw_id)
            return True

    def has_seen(self, raw_id: str) -> bool:
        with self._lock:
            return raw_id in self._seen

    @property
    def seen_count(self) -> int:
        with self._lock:
            return len(self._seen)
