"""Unit tests for the equipment and system registries."""
import threading

import pytest

from tracker.errors import ConflictError, NotFoundError, ValidationFailedError
from tracker.lifecycle import LifecycleEngine
from tracker.models import EquipmentStatus


class TestEquipmentRegistry:
    """Test CRUD operations on equipment."""

    def test_create_defaults(self, registry):
        """New items start available with no history."""
        item = registry.create(id="X1", name="N", category="C")

        assert item.status == EquipmentStatus.AVAILABLE
        assert item.history == []
        assert item.location == "Shop"
        assert item.system_color is None
        assert item.work_order is None

    def test_create_strips_and_blanks_system_color(self, registry):
        item = registry.create(id=" X1 ", name="N", category="C", system_color="  ")

        assert item.id == "X1"
        assert item.system_color is None

    def test_create_duplicate_conflicts(self, registry):
        registry.create(id="X1", name="N", category="C")

        with pytest.raises(ConflictError):
            registry.create(id="X1", name="Other", category="C")

    @pytest.mark.parametrize("field", ["id", "name", "category"])
    def test_create_requires_fields(self, registry, field):
        payload = {"id": "X1", "name": "N", "category": "C"}
        payload[field] = ""

        with pytest.raises(ValidationFailedError):
            registry.create(**payload)

    def test_create_delete_get_round_trip(self, registry):
        """Deleted items are gone for good."""
        registry.create(id="X1", name="N", category="C")
        registry.delete("X1")

        with pytest.raises(NotFoundError):
            registry.get("X1")
        assert "X1" not in registry

    def test_delete_unknown(self, registry):
        with pytest.raises(NotFoundError):
            registry.delete("X1")

    def test_update_editable_fields(self, registry):
        registry.create(id="X1", name="N", category="C", system_color="Blue")

        item = registry.update("X1", name="New name", system_color=None, location="Van 3")

        assert item.name == "New name"
        assert item.system_color is None
        assert item.location == "Van 3"
        assert item.category == "C"

    def test_update_refuses_status(self, registry):
        registry.create(id="X1", name="N", category="C")

        with pytest.raises(ValidationFailedError):
            registry.update("X1", status=EquipmentStatus.BROKEN)
        assert registry.get("X1").status == EquipmentStatus.AVAILABLE

    def test_update_rejects_blank_name(self, registry):
        registry.create(id="X1", name="N", category="C")

        with pytest.raises(ValidationFailedError):
            registry.update("X1", name=" ")

    def test_list_preserves_insertion_order(self, kit):
        assert [item.id for item in kit.list()] == ["EG1616", "EG1617", "EG1618", "EG1619"]

    def test_by_system_color(self, kit):
        assert [item.id for item in kit.by_system_color("Blue")] == ["EG1616", "EG1617"]

    def test_by_work_order_only_checked_out(self, kit):
        engine = LifecycleEngine(kit)
        engine.check_out("EG1616", "WO-1", "Tech A")
        engine.check_out("EG1617", "WO-1", "Tech A")
        engine.check_in("EG1617")

        assert [item.id for item in kit.by_work_order("WO-1")] == ["EG1616"]

    def test_replacement_candidates(self, kit):
        """Same category, available, never the original, spares first."""
        engine = LifecycleEngine(kit)
        assert [item.id for item in kit.replacement_candidates("EG1616")] == ["EG1619", "EG1618"]

        engine.check_out("EG1619", "WO-1", "Tech A")
        assert [item.id for item in kit.replacement_candidates("EG1616")] == ["EG1618"]

    def test_bulk_create_collects_failures(self, registry):
        registry.create(id="X1", name="N", category="C")

        result = registry.bulk_create(
            [
                {"id": "X2", "name": "N2", "category": "C"},
                {"id": "X1", "name": "dup", "category": "C"},
                {"id": "X3", "name": "", "category": "C"},
                {"name": "no id", "category": "C"},
            ]
        )

        assert result.succeeded_ids == ["X2"]
        assert [(f.id, f.kind) for f in result.failed] == [
            ("X1", "conflict"),
            ("X3", "validation_error"),
            ("", "validation_error"),
        ]
        assert not result.ok

    def test_bulk_create_accepts_import_column_names(self, registry):
        result = registry.bulk_create([{"id": "X1", "name": "N", "category": "C", "systemColor": "Blue"}])

        assert result.succeeded[0].system_color == "Blue"

    def test_reads_while_another_thread_writes(self, kit, engine):
        """Readers copy under the lock, so concurrent create/delete never breaks iteration."""
        engine.check_out("EG1617", "WO-1", "Tech A")
        stop = threading.Event()
        errors = []

        def churn():
            n = 0
            while not stop.is_set():
                kit.create(id=f"T{n}", name="Temp", category="Transducer")
                kit.delete(f"T{n}")
                n += 1

        writer = threading.Thread(target=churn)
        writer.start()
        try:
            for _ in range(2000):
                try:
                    assert [item.id for item in kit.by_work_order("WO-1")] == ["EG1617"]
                    kit.replacement_candidates("EG1616")
                    kit.list(category="Transducer")
                except RuntimeError as exc:
                    errors.append(str(exc))
                    break
        finally:
            stop.set()
            writer.join()

        assert errors == []


class TestSystemRegistry:
    """Test CRUD operations on color groups."""

    def test_create_and_list(self, systems):
        blue = systems.create(name="Blue", color="#2563eb")

        assert systems.list() == [blue]
        assert systems.get(blue.id) is blue

    def test_duplicate_name_is_case_insensitive(self, systems):
        systems.create(name="Blue", color="#2563eb")

        with pytest.raises(ConflictError):
            systems.create(name="BLUE", color="#000")

    def test_rename_into_existing_name_conflicts(self, systems):
        systems.create(name="Blue", color="#2563eb")
        red = systems.create(name="Red", color="#dc2626")

        with pytest.raises(ConflictError):
            systems.update(red.id, name="Blue")

    def test_delete_unknown(self, systems):
        with pytest.raises(NotFoundError):
            systems.delete("missing")
