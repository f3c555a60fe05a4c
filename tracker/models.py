"""In-memory domain models for equipment, history and systems."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class EquipmentStatus(str, Enum):
    AVAILABLE = "available"
    CHECKED_OUT = "checked_out"
    BROKEN = "broken"


class HistoryAction(str, Enum):
    CHECK_OUT = "check_out"
    CHECK_IN = "check_in"
    REPORT_BROKEN = "report_broken"
    MAINTENANCE = "maintenance"


class HistoryEntry(BaseModel):
    """A single ledger event. Frozen once recorded."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    equipment_id: str
    action: HistoryAction
    timestamp: datetime = Field(default_factory=utcnow)
    details: Optional[str] = None
    work_order: Optional[str] = None


class Equipment(BaseModel):
    id: str
    name: str
    category: str
    system_color: Optional[str] = None
    status: EquipmentStatus = EquipmentStatus.AVAILABLE
    location: str = "Shop"
    work_order: Optional[str] = None
    checked_out_by: Optional[str] = None
    checked_out_at: Optional[datetime] = None
    notes: Optional[str] = None
    history: List[HistoryEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_available(self) -> bool:
        return self.status == EquipmentStatus.AVAILABLE

    def touch(self) -> None:
        self.updated_at = utcnow()


class System(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    color: str
