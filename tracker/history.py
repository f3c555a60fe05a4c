"""Append-only history ledger kept on each equipment record."""
from __future__ import annotations

import heapq
from typing import Iterable, List, Optional

from .models import Equipment, HistoryAction, HistoryEntry


def record(
    equipment: Equipment,
    action: HistoryAction,
    details: Optional[str] = None,
    work_order: Optional[str] = None,
) -> HistoryEntry:
    """Prepend a new entry to ``equipment.history`` and return it."""

    entry = HistoryEntry(
        equipment_id=equipment.id,
        action=action,
        details=details,
        work_order=work_order,
    )
    equipment.history.insert(0, entry)
    return entry


def recent_history(items: Iterable[Equipment], limit: int) -> List[HistoryEntry]:
    """Merge every item's history into one feed, newest first."""

    if limit <= 0:
        return []
    feeds = (item.history for item in items)
    merged = heapq.merge(*feeds, key=lambda entry: entry.timestamp, reverse=True)
    return [entry for _, entry in zip(range(limit), merged)]
