"""Unit tests for the history ledger."""
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from tracker import history
from tracker.models import Equipment, HistoryAction, HistoryEntry


def _entry(equipment_id: str, minutes: int) -> HistoryEntry:
    return HistoryEntry(
        equipment_id=equipment_id,
        action=HistoryAction.CHECK_OUT,
        timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


class TestRecord:
    """Recording events on an item."""

    def test_record_prepends(self):
        item = Equipment(id="X1", name="N", category="C")

        first = history.record(item, HistoryAction.CHECK_OUT, "out", "WO-1")
        second = history.record(item, HistoryAction.CHECK_IN, "back", "WO-1")

        assert item.history == [second, first]
        assert second.equipment_id == "X1"
        assert second.work_order == "WO-1"

    def test_entries_are_immutable(self):
        item = Equipment(id="X1", name="N", category="C")
        entry = history.record(item, HistoryAction.CHECK_OUT)

        with pytest.raises(ValidationError):
            entry.details = "rewritten"


class TestRecentHistory:
    """Merged feed across items."""

    def test_newest_first_across_items(self):
        a = Equipment(id="A", name="N", category="C", history=[_entry("A", 30), _entry("A", 10)])
        b = Equipment(id="B", name="N", category="C", history=[_entry("B", 20), _entry("B", 5)])

        feed = history.recent_history([a, b], limit=3)

        assert [(e.equipment_id, e.timestamp.minute) for e in feed] == [("A", 30), ("B", 20), ("A", 10)]

    def test_limit_zero(self):
        a = Equipment(id="A", name="N", category="C", history=[_entry("A", 1)])

        assert history.recent_history([a], limit=0) == []
