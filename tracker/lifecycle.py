"""Equipment lifecycle: check-out, check-in, repair and the bulk variants.

Statuses move ``available -> checked_out -> available | broken`` and
``broken -> available`` (repair). Every transition runs under the
registry lock and prepends an entry to the item's history.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from . import history
from .errors import InvalidTransitionError, NotFoundError, TrackerError, ValidationFailedError
from .models import Equipment, EquipmentStatus, HistoryAction, utcnow
from .registry import EquipmentRegistry
from .results import BulkResult
from .substitution import plan_system_checkout

logger = logging.getLogger(__name__)

SYSTEM_RETURN_NOTE = "Returned via system check-in"
SYSTEM_BROKEN_NOTE = "Reported broken during system check-in"


@dataclass(frozen=True)
class ItemReport:
    is_broken: bool = False
    notes: str = ""


@dataclass(frozen=True)
class SwapResult:
    original: Equipment
    replacement: Equipment


def _required(value: Optional[str], field: str, equipment_id: Optional[str] = None) -> str:
    if value is None or not value.strip():
        raise ValidationFailedError(f"Missing required field: {field}", equipment_id)
    return value.strip()


def _expect(equipment: Equipment, status: EquipmentStatus, operation: str) -> None:
    if equipment.status != status:
        raise InvalidTransitionError(
            f"Cannot {operation} {equipment.id}: status is {equipment.status.value}, expected {status.value}",
            equipment.id,
        )


def _clear_checkout(equipment: Equipment) -> None:
    equipment.work_order = None
    equipment.checked_out_by = None
    equipment.checked_out_at = None


class LifecycleEngine:
    def __init__(self, registry: EquipmentRegistry) -> None:
        self.registry = registry

    def _check_out(self, equipment: Equipment, work_order: str, holder_name: str, details: str) -> Equipment:
        _expect(equipment, EquipmentStatus.AVAILABLE, "check out")
        equipment.status = EquipmentStatus.CHECKED_OUT
        equipment.work_order = work_order
        equipment.checked_out_by = holder_name
        equipment.checked_out_at = utcnow()
        equipment.touch()
        history.record(equipment, HistoryAction.CHECK_OUT, details=details, work_order=work_order)
        logger.info("Checked out %s on %s to %s", equipment.id, work_order, holder_name)
        return equipment

    def _check_in(self, equipment: Equipment, notes: Optional[str], is_broken: bool, details: str) -> Equipment:
        _expect(equipment, EquipmentStatus.CHECKED_OUT, "check in")
        work_order = equipment.work_order
        equipment.status = EquipmentStatus.BROKEN if is_broken else EquipmentStatus.AVAILABLE
        _clear_checkout(equipment)
        if notes:
            equipment.notes = notes
        equipment.touch()
        action = HistoryAction.REPORT_BROKEN if is_broken else HistoryAction.CHECK_IN
        history.record(equipment, action, details=details, work_order=work_order)
        logger.info("Checked in %s from %s as %s", equipment.id, work_order, equipment.status.value)
        return equipment

    def check_out(self, equipment_id: str, work_order: str, holder_name: str) -> Equipment:
        work_order = _required(work_order, "work_order", equipment_id)
        holder_name = _required(holder_name, "holder_name", equipment_id)
        with self.registry.transaction():
            equipment = self.registry.get(equipment_id)
            return self._check_out(equipment, work_order, holder_name, f"Checked out by {holder_name}")

    def check_in(self, equipment_id: str, notes: Optional[str] = None, is_broken: bool = False) -> Equipment:
        notes = (notes or "").strip() or None
        details = notes or ("Reported broken" if is_broken else "Returned")
        with self.registry.transaction():
            equipment = self.registry.get(equipment_id)
            return self._check_in(equipment, notes, is_broken, details)

    def repair(self, equipment_id: str, notes: Optional[str] = None) -> Equipment:
        notes = (notes or "").strip() or None
        with self.registry.transaction():
            equipment = self.registry.get(equipment_id)
            _expect(equipment, EquipmentStatus.BROKEN, "repair")
            equipment.status = EquipmentStatus.AVAILABLE
            if notes:
                equipment.notes = notes
            equipment.touch()
            history.record(equipment, HistoryAction.MAINTENANCE, details=notes or "Repaired")
        logger.info("Repaired %s", equipment_id)
        return equipment

    def check_out_system(
        self,
        system_color: str,
        equipment_ids: list[str],
        work_order: str,
        holder_name: str,
        replacements: Optional[Mapping[str, str]] = None,
    ) -> BulkResult:
        """Check out a kit, retagging every item with ``system_color``.

        Unknown or unavailable items are reported per id; the rest of the
        kit is still checked out.
        """
        system_color = _required(system_color, "system_color")
        work_order = _required(work_order, "work_order")
        holder_name = _required(holder_name, "holder_name")
        if not equipment_ids:
            raise ValidationFailedError("Missing required field: equipment_ids")

        details = f"Checked out as part of {system_color} System by {holder_name}"
        with self.registry.transaction():
            plan = plan_system_checkout(self.registry, list(equipment_ids), replacements)
            result = BulkResult(failed=list(plan.failures))
            for slot in plan.slots:
                slot_details = details
                if slot.substituted:
                    slot_details = f"{details} (replacing {slot.original_id})"
                try:
                    equipment = self.registry.get(slot.equipment_id)
                    self._check_out(equipment, work_order, holder_name, slot_details)
                except TrackerError as exc:
                    result.add_failure(slot.original_id, exc)
                    continue
                equipment.system_color = system_color
                result.succeeded.append(equipment)

        for failure in result.failed:
            logger.warning("System checkout %s skipped %s: %s", work_order, failure.id, failure.reason)
        return result

    def check_in_by_work_order(
        self,
        work_order: str,
        item_reports: Optional[Mapping[str, ItemReport]] = None,
    ) -> BulkResult:
        """Return every item still out on ``work_order``.

        Items without a report come back available with a default note.
        """
        work_order = _required(work_order, "work_order")
        item_reports = item_reports or {}
        result = BulkResult()
        with self.registry.transaction():
            items = self.registry.by_work_order(work_order)
            if not items:
                raise NotFoundError(f"No equipment checked out on work order {work_order}")

            stray = set(item_reports) - {item.id for item in items}
            if stray:
                logger.warning("Ignoring reports for items not on %s: %s", work_order, ", ".join(sorted(stray)))

            for item in items:
                report = item_reports.get(item.id) or ItemReport()
                notes = (report.notes or "").strip() or (SYSTEM_BROKEN_NOTE if report.is_broken else SYSTEM_RETURN_NOTE)
                try:
                    self._check_in(item, notes, report.is_broken, notes)
                except TrackerError as exc:
                    result.add_failure(item.id, exc)
                    continue
                result.succeeded.append(item)
        return result

    def swap(self, original_id: str, replacement_id: str, reason: Optional[str] = None) -> SwapResult:
        """Put ``replacement_id`` in the kit slot held by ``original_id``.

        A checked-out original is returned broken and the replacement goes
        out on the same work order. A broken original only hands over its
        system tag.
        """
        reason = (reason or "").strip() or None
        if original_id == replacement_id:
            raise ValidationFailedError("An item cannot replace itself", original_id)

        with self.registry.transaction():
            original = self.registry.get(original_id)
            replacement = self.registry.get(replacement_id)
            if replacement.category != original.category:
                raise ValidationFailedError(
                    f"Replacement {replacement_id} is a {replacement.category}, expected {original.category}",
                    replacement_id,
                )
            _expect(replacement, EquipmentStatus.AVAILABLE, "swap in")
            system_color = original.system_color
            label = f"{system_color} System" if system_color else "kit"

            if original.status == EquipmentStatus.CHECKED_OUT:
                work_order = original.work_order
                holder_name = original.checked_out_by
                self._check_out(
                    replacement,
                    work_order,
                    holder_name,
                    f"Swapped in for {original_id} by {holder_name}",
                )
                self._check_in(
                    original,
                    reason,
                    True,
                    reason or f"Swapped out for {replacement_id}",
                )
            elif original.status == EquipmentStatus.BROKEN:
                history.record(
                    original,
                    HistoryAction.MAINTENANCE,
                    details=f"Replaced in {label} by {replacement_id}" + (f": {reason}" if reason else ""),
                )
                history.record(
                    replacement,
                    HistoryAction.MAINTENANCE,
                    details=f"Assigned to {label} replacing {original_id}",
                )
            else:
                raise InvalidTransitionError(
                    f"Cannot swap {original_id}: status is {original.status.value}", original_id
                )

            replacement.system_color = system_color
            original.system_color = None
            original.touch()
            replacement.touch()
        logger.info("Swapped %s out for %s", original_id, replacement_id)
        return SwapResult(original=original, replacement=replacement)
