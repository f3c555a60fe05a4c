"""In-memory equipment and system registries.

Each registry owns a mapping from id to record. Callers hold a registry
object (the FastAPI app keeps one on ``app.state``); there is no module
level store.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .errors import ConflictError, NotFoundError, TrackerError, ValidationFailedError
from .models import Equipment, EquipmentStatus, System
from .results import BulkResult

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "category", "system_color", "location")


def _require(value: Optional[str], field: str, equipment_id: Optional[str] = None) -> str:
    if value is None or not str(value).strip():
        raise ValidationFailedError(f"Missing required field: {field}", equipment_id)
    return str(value).strip()


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class EquipmentRegistry:
    """Owns every equipment record keyed by its scanned id."""

    def __init__(self, default_location: str = "Shop") -> None:
        self.default_location = default_location
        self._items: Dict[str, Equipment] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, equipment_id: object) -> bool:
        with self._lock:
            return equipment_id in self._items

    @contextmanager
    def transaction(self) -> Iterator["EquipmentRegistry"]:
        """Hold the registry lock for a read-modify-write sequence."""
        with self._lock:
            yield self

    def create(
        self,
        id: str,
        name: str,
        category: str,
        system_color: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Equipment:
        equipment_id = _require(id, "id")
        equipment = Equipment(
            id=equipment_id,
            name=_require(name, "name", equipment_id),
            category=_require(category, "category", equipment_id),
            system_color=_optional(system_color),
            location=_optional(location) or self.default_location,
        )
        with self._lock:
            if equipment_id in self._items:
                raise ConflictError(f"Equipment {equipment_id} already exists", equipment_id)
            self._items[equipment_id] = equipment
        logger.info("Created equipment %s (%s)", equipment_id, equipment.category)
        return equipment

    def bulk_create(self, rows: Iterable[Mapping[str, Any]]) -> BulkResult:
        """Create each row, collecting per-row failures instead of aborting."""
        result = BulkResult()
        with self._lock:
            for row in rows:
                try:
                    result.succeeded.append(
                        self.create(
                            id=row.get("id"),
                            name=row.get("name"),
                            category=row.get("category"),
                            system_color=row.get("system_color", row.get("systemColor")),
                            location=row.get("location"),
                        )
                    )
                except TrackerError as exc:
                    result.add_failure(exc.equipment_id or str(row.get("id") or ""), exc)
        return result

    def find(self, equipment_id: str) -> Optional[Equipment]:
        with self._lock:
            return self._items.get(equipment_id)

    def get(self, equipment_id: str) -> Equipment:
        equipment = self.find(equipment_id)
        if equipment is None:
            raise NotFoundError(f"Equipment {equipment_id} not found", equipment_id)
        return equipment

    def list(
        self,
        status: Optional[EquipmentStatus] = None,
        system_color: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Equipment]:
        with self._lock:
            items = list(self._items.values())
            if status is not None:
                items = [item for item in items if item.status == status]
            if system_color is not None:
                items = [item for item in items if item.system_color == system_color]
            if category is not None:
                items = [item for item in items if item.category == category]
        return items

    def update(self, equipment_id: str, **changes: Any) -> Equipment:
        """Edit the descriptive fields of an item.

        Identity, status and checkout fields only change through the
        lifecycle engine, so anything outside ``EDITABLE_FIELDS`` is refused.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationFailedError(
                f"Fields not editable: {', '.join(sorted(unknown))}", equipment_id
            )
        with self._lock:
            equipment = self.get(equipment_id)
            for field in ("name", "category"):
                if field in changes:
                    changes[field] = _require(changes[field], field, equipment_id)
            if "system_color" in changes:
                changes["system_color"] = _optional(changes["system_color"])
            if "location" in changes:
                changes["location"] = _optional(changes["location"]) or self.default_location
            for field, value in changes.items():
                setattr(equipment, field, value)
            equipment.touch()
        return equipment

    def delete(self, equipment_id: str) -> Equipment:
        with self._lock:
            equipment = self._items.pop(equipment_id, None)
        if equipment is None:
            raise NotFoundError(f"Equipment {equipment_id} not found", equipment_id)
        logger.info("Deleted equipment %s with %d history entries", equipment_id, len(equipment.history))
        return equipment

    def by_work_order(self, work_order: str) -> List[Equipment]:
        with self._lock:
            return [
                item
                for item in self._items.values()
                if item.work_order == work_order and item.status == EquipmentStatus.CHECKED_OUT
            ]

    def by_system_color(self, system_color: str) -> List[Equipment]:
        return self.list(system_color=system_color)

    def replacement_candidates(self, equipment_id: str) -> List[Equipment]:
        """Available items of the same category, untagged spares first."""
        with self._lock:
            original = self.get(equipment_id)
            candidates = [
                item
                for item in self._items.values()
                if item.id != original.id
                and item.category == original.category
                and item.is_available
            ]
        return sorted(candidates, key=lambda item: (item.system_color is not None, item.id))


class SystemRegistry:
    """Named color groups used to tag equipment into kits."""

    def __init__(self) -> None:
        self._systems: Dict[str, System] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._systems)

    def _name_taken(self, name: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            system.name.lower() == name.lower() and system.id != exclude_id
            for system in self._systems.values()
        )

    def create(self, name: str, color: str) -> System:
        name = _require(name, "name")
        color = _require(color, "color")
        with self._lock:
            if self._name_taken(name):
                raise ConflictError(f"System {name} already exists")
            system = System(name=name, color=color)
            self._systems[system.id] = system
        return system

    def list(self) -> List[System]:
        with self._lock:
            return list(self._systems.values())

    def get(self, system_id: str) -> System:
        with self._lock:
            system = self._systems.get(system_id)
        if system is None:
            raise NotFoundError(f"System {system_id} not found")
        return system

    def update(self, system_id: str, name: Optional[str] = None, color: Optional[str] = None) -> System:
        with self._lock:
            system = self.get(system_id)
            if name is not None:
                name = _require(name, "name")
                if self._name_taken(name, exclude_id=system_id):
                    raise ConflictError(f"System {name} already exists")
                system.name = name
            if color is not None:
                system.color = _require(color, "color")
        return system

    def delete(self, system_id: str) -> System:
        with self._lock:
            system = self._systems.pop(system_id, None)
        if system is None:
            raise NotFoundError(f"System {system_id} not found")
        return system
