"""Partial-result containers returned by bulk operations."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .errors import TrackerError
from .models import Equipment


@dataclass(frozen=True)
class BulkFailure:
    id: str
    kind: str
    reason: str


@dataclass
class BulkResult:
    succeeded: List[Equipment] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def succeeded_ids(self) -> List[str]:
        return [item.id for item in self.succeeded]

    @property
    def failed_ids(self) -> List[str]:
        return [failure.id for failure in self.failed]

    def add_failure(self, equipment_id: str, error: TrackerError) -> None:
        self.failed.append(BulkFailure(id=equipment_id, kind=error.kind, reason=error.message))
