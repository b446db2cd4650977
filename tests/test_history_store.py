"""Tests for the bounded alert history."""

from datetime import UTC, datetime, timedelta

import pytest

from hazardwatch.core.alerting.enums import HistoryTransition
from hazardwatch.services.history_store import HistoryStore
from tests.fakes import make_emergency


class TestHistoryStore:
    """Tests for HistoryStore."""

    def test_entries_are_newest_first(self):
        store = HistoryStore()
        store.record(make_emergency("1"), HistoryTransition.CREATED)
        store.record(make_emergency("2"), HistoryTransition.CREATED)

        ids = [entry.emergency.id for entry in store.entries()]

        assert ids == ["2", "1"]

    def test_bounded_to_fifty_most_recent(self):
        store = HistoryStore(limit=50)
        start = datetime(2026, 1, 1, tzinfo=UTC)

        for i in range(60):
            store.record(
                make_emergency(str(i)),
                HistoryTransition.CREATED,
                now=start + timedelta(seconds=i),
            )

        entries = store.entries()
        assert len(store) == 50
        assert [e.emergency.id for e in entries] == [str(i) for i in range(59, 9, -1)]
        recorded = [e.recorded_at for e in entries]
        assert recorded == sorted(recorded, reverse=True)

    def test_snapshot_unaffected_by_later_transitions(self):
        store = HistoryStore()
        emergency = make_emergency("1")
        store.record(emergency, HistoryTransition.CREATED)

        emergency.mark_escalated(datetime.now(UTC))

        assert store.entries()[0].emergency.escalated is False

    def test_records_transition(self):
        store = HistoryStore()
        entry = store.record(make_emergency(), HistoryTransition.ESCALATED)

        assert entry.transition == HistoryTransition.ESCALATED
        assert store.entries() == (entry,)

    @pytest.mark.parametrize("limit", [0, -1])
    def test_rejects_non_positive_limit(self, limit):
        with pytest.raises(ValueError):
            HistoryStore(limit=limit)
