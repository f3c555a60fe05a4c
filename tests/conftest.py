import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("SEED_DEMO_DATA", "false")
os.environ.setdefault("LOG_DIR", "./test-logs")
os.environ.pop("ADMIN_PIN", None)

from tracker.config import get_settings, reset_settings_cache  # noqa: E402

reset_settings_cache()

from services.equipment.app import app as equipment_app  # noqa: E402
from tracker.lifecycle import LifecycleEngine  # noqa: E402
from tracker.registry import EquipmentRegistry, SystemRegistry  # noqa: E402


@pytest.fixture()
def registry() -> EquipmentRegistry:
    return EquipmentRegistry()


@pytest.fixture()
def engine(registry: EquipmentRegistry) -> LifecycleEngine:
    return LifecycleEngine(registry)


@pytest.fixture()
def systems() -> SystemRegistry:
    return SystemRegistry()


@pytest.fixture()
def kit(registry: EquipmentRegistry) -> EquipmentRegistry:
    """Blue kit of two items plus a Red transducer and an untagged spare."""
    registry.create(id="EG1616", name="0-100psi Transducer", category="Transducer", system_color="Blue")
    registry.create(id="EG1617", name="Data Acquisition Module", category="DAQ", system_color="Blue")
    registry.create(id="EG1618", name="0-100psi Transducer", category="Transducer", system_color="Red")
    registry.create(id="EG1619", name="0-100psi Transducer (Spare)", category="Transducer")
    return registry


@pytest.fixture(autouse=True)
def _fresh_app_state() -> Generator[None, None, None]:
    equipment_app.state.registry = EquipmentRegistry()
    equipment_app.state.systems = SystemRegistry()
    yield
    equipment_app.dependency_overrides.clear()


@pytest.fixture()
def equipment_client() -> Generator[TestClient, None, None]:
    with TestClient(equipment_app) as client:
        yield client


@pytest.fixture()
def admin_pin() -> Generator[str, None, None]:
    pin = "4321"
    settings = get_settings().model_copy(update={"admin_pin": pin})
    equipment_app.dependency_overrides[get_settings] = lambda: settings
    yield pin
    equipment_app.dependency_overrides.pop(get_settings, None)
