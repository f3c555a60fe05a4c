"""Demo catalog loaded when ``SEED_DEMO_DATA`` is enabled."""
import logging

from .lifecycle import LifecycleEngine
from .registry import EquipmentRegistry, SystemRegistry

logger = logging.getLogger(__name__)

DEMO_SYSTEMS = [
    {"name": "Blue", "color": "#2563eb"},
    {"name": "Red", "color": "#dc2626"},
]

DEMO_EQUIPMENT = [
    {"id": "EG1616", "name": "0-100psi Transducer", "category": "Transducer", "system_color": "Blue"},
    {"id": "EG1617", "name": "Data Acquisition Module", "category": "DAQ", "system_color": "Blue"},
    {"id": "EG1618", "name": "0-100psi Transducer", "category": "Transducer", "system_color": "Red"},
    {"id": "EG1619", "name": "0-100psi Transducer (Spare)", "category": "Transducer"},
    {"id": "EQ-001", "name": "Fluke 87V Multimeter", "category": "Measurement"},
    {"id": "EQ-002", "name": "Tektronix Oscilloscope", "category": "Analysis"},
    {"id": "EQ-003", "name": "Hydraulic Pressure Gauge", "category": "Pressure"},
    {"id": "EQ-004", "name": "Thermal Camera T540", "category": "Imaging"},
    {"id": "EQ-005", "name": "Vibration Analyzer", "category": "Analysis"},
]


def load_demo_data(registry: EquipmentRegistry, systems: SystemRegistry) -> None:
    for system in DEMO_SYSTEMS:
        systems.create(**system)
    result = registry.bulk_create(DEMO_EQUIPMENT)
    for failure in result.failed:
        logger.warning("Demo item %s not loaded: %s", failure.id, failure.reason)

    # The gauge starts out broken, so it goes through a real check-in.
    engine = LifecycleEngine(registry)
    engine.check_out("EQ-003", "WO-2024-880", "Tech #17")
    engine.check_in("EQ-003", "Leaking seal on connector", is_broken=True)
    logger.info("Loaded %d demo items and %d systems", len(registry), len(systems))
