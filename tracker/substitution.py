"""Planning for system checkout with per-slot item substitution.

A system checkout starts from the kit's original item ids. For each slot the
operator keeps the original or picks a replacement: another item of the same
category that is currently available. The planner resolves the choices into
the concrete ids to check out and remembers which slots were swapped so the
history detail can say so.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Set

from .errors import ConflictError, InvalidTransitionError, NotFoundError, TrackerError, ValidationFailedError
from .models import EquipmentStatus
from .registry import EquipmentRegistry
from .results import BulkFailure


@dataclass(frozen=True)
class PlannedSlot:
    original_id: str
    equipment_id: str

    @property
    def substituted(self) -> bool:
        return self.original_id != self.equipment_id


@dataclass
class CheckoutPlan:
    slots: List[PlannedSlot] = field(default_factory=list)
    failures: List[BulkFailure] = field(default_factory=list)

    @property
    def equipment_ids(self) -> List[str]:
        return [slot.equipment_id for slot in self.slots]


def _unique(ids: List[str]) -> List[str]:
    seen: Set[str] = set()
    ordered = []
    for equipment_id in ids:
        if equipment_id not in seen:
            seen.add(equipment_id)
            ordered.append(equipment_id)
    return ordered


def _resolve_slot(
    registry: EquipmentRegistry,
    original_id: str,
    replacement_id: Optional[str],
    claimed: Set[str],
) -> PlannedSlot:
    original = registry.get(original_id)
    if not replacement_id or replacement_id == original_id:
        return PlannedSlot(original_id=original_id, equipment_id=original_id)

    replacement = registry.find(replacement_id)
    if replacement is None:
        raise NotFoundError(f"Replacement {replacement_id} not found", original_id)
    if replacement.category != original.category:
        raise ValidationFailedError(
            f"Replacement {replacement_id} is a {replacement.category}, expected {original.category}",
            original_id,
        )
    if replacement.status != EquipmentStatus.AVAILABLE:
        raise InvalidTransitionError(
            f"Replacement {replacement_id} is {replacement.status.value}", original_id
        )
    if replacement_id in claimed:
        raise ConflictError(f"Replacement {replacement_id} already fills another slot", original_id)
    return PlannedSlot(original_id=original_id, equipment_id=replacement_id)


def plan_system_checkout(
    registry: EquipmentRegistry,
    original_ids: List[str],
    replacements: Optional[Mapping[str, str]] = None,
) -> CheckoutPlan:
    """Resolve each original slot to the id that will actually be checked out.

    Slots that cannot be resolved land in ``plan.failures`` keyed by the
    original id; the rest of the plan is still usable.
    """
    replacements = replacements or {}
    original_ids = _unique(original_ids)
    plan = CheckoutPlan()
    # Originals kept as-is are claimed up front so no other slot can take them.
    claimed: Set[str] = {
        original_id for original_id in original_ids if not replacements.get(original_id)
    }
    for original_id in original_ids:
        try:
            slot = _resolve_slot(registry, original_id, replacements.get(original_id), claimed)
        except TrackerError as exc:
            plan.failures.append(BulkFailure(id=original_id, kind=exc.kind, reason=exc.message))
            continue
        claimed.add(slot.equipment_id)
        plan.slots.append(slot)
    return plan
