"""Pydantic request/response schemas for the equipment service.

Payloads use the camelCase field names the scanning client sends
(``workOrder``, ``techName``, ``systemColor``...). Snake case names are
accepted too.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import EquipmentStatus, HistoryAction


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class EquipmentBase(CamelModel):
    name: str = Field(..., max_length=200)
    category: str = Field(..., max_length=100)
    system_color: Optional[str] = None
    location: Optional[str] = None


class EquipmentCreate(EquipmentBase):
    id: str = Field(..., max_length=100)


class EquipmentImportRow(CamelModel):
    """One row handed over by the bulk-import collaborator.

    Fields default to blank so that a bad row fails on its own instead of
    rejecting the whole batch.
    """

    id: str = ""
    name: str = ""
    category: str = ""
    system_color: Optional[str] = None
    location: Optional[str] = None


class EquipmentImport(CamelModel):
    items: List[EquipmentImportRow]


class EquipmentUpdate(CamelModel):
    name: Optional[str] = Field(None, max_length=200)
    category: Optional[str] = Field(None, max_length=100)
    system_color: Optional[str] = None
    location: Optional[str] = None


class HistoryRead(CamelModel):
    id: str
    equipment_id: str
    action: HistoryAction
    timestamp: datetime
    details: Optional[str] = None
    work_order: Optional[str] = None


class EquipmentRead(EquipmentBase):
    id: str
    location: str
    status: EquipmentStatus
    work_order: Optional[str] = None
    checked_out_by: Optional[str] = None
    checked_out_at: Optional[datetime] = None
    notes: Optional[str] = None
    history: List[HistoryRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class CheckoutRequest(CamelModel):
    work_order: str
    tech_name: str


class CheckinRequest(CamelModel):
    notes: Optional[str] = None
    is_broken: bool = False


class RepairRequest(CamelModel):
    notes: Optional[str] = None


class SystemCheckoutRequest(CamelModel):
    system_color: str
    equipment_ids: List[str]
    work_order: str
    tech_name: str
    replacements: Dict[str, str] = Field(
        default_factory=dict,
        description="Maps an original equipment id to the id substituted for it",
    )


class ItemReportIn(CamelModel):
    is_broken: bool = False
    notes: Optional[str] = ""


class WorkOrderCheckinRequest(CamelModel):
    work_order: str
    item_reports: Dict[str, ItemReportIn] = Field(default_factory=dict)


class SwapRequest(CamelModel):
    original_id: str = Field(..., validation_alias=AliasChoices("originalId", "brokenId", "original_id"))
    replacement_id: str
    reason: Optional[str] = None


class BulkFailureRead(CamelModel):
    id: str
    kind: str
    reason: str


class BulkResultRead(CamelModel):
    succeeded: List[EquipmentRead]
    failed: List[BulkFailureRead]


class SwapResultRead(CamelModel):
    original: EquipmentRead
    replacement: EquipmentRead


class SystemBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., min_length=1, max_length=30)


class SystemCreate(SystemBase):
    pass


class SystemUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, min_length=1, max_length=30)


class SystemRead(SystemBase):
    id: str
