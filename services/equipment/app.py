from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from tracker.config import get_settings
from tracker.dependencies import (
    get_engine,
    get_registry,
    get_system_registry,
    require_admin_pin,
)
from tracker.error_handlers import apply_error_handlers
from tracker.history import recent_history
from tracker.lifecycle import ItemReport, LifecycleEngine
from tracker.logging_middleware import add_audit_middleware
from tracker.models import Equipment, EquipmentStatus, HistoryEntry, System
from tracker.rate_limit import apply_rate_limiter, limiter
from tracker.registry import EquipmentRegistry, SystemRegistry
from tracker.results import BulkResult
from tracker.schemas import (
    BulkFailureRead,
    BulkResultRead,
    CheckinRequest,
    CheckoutRequest,
    EquipmentCreate,
    EquipmentImport,
    EquipmentRead,
    EquipmentUpdate,
    HistoryRead,
    RepairRequest,
    SwapRequest,
    SwapResultRead,
    SystemCheckoutRequest,
    SystemCreate,
    SystemRead,
    SystemUpdate,
    WorkOrderCheckinRequest,
)
from tracker.seed import load_demo_data

settings = get_settings()


def _equipment_read(equipment: Equipment) -> EquipmentRead:
    return EquipmentRead.model_validate(equipment.model_dump())


def _snapshot(registry: EquipmentRegistry, equipment: Equipment) -> EquipmentRead:
    """Serialize under the registry lock so a response never mixes two states."""
    with registry.transaction():
        return _equipment_read(equipment)


def _snapshot_all(registry: EquipmentRegistry, items: List[Equipment]) -> List[EquipmentRead]:
    with registry.transaction():
        return [_equipment_read(item) for item in items]


def _bulk_read(registry: EquipmentRegistry, result: BulkResult) -> BulkResultRead:
    return BulkResultRead(
        succeeded=_snapshot_all(registry, result.succeeded),
        failed=[BulkFailureRead(id=f.id, kind=f.kind, reason=f.reason) for f in result.failed],
    )


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    if settings.seed_demo_data and not len(fastapi_app.state.registry):
        load_demo_data(fastapi_app.state.registry, fastapi_app.state.systems)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Equipment Service", version="0.1.0", lifespan=lifespan)
    fastapi_app.state.registry = EquipmentRegistry(default_location=settings.default_location)
    fastapi_app.state.systems = SystemRegistry()
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    apply_error_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "equipment")
    if settings.metrics_enabled:
        Instrumentator().instrument(fastapi_app).expose(fastapi_app)
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "equipment"}


# Equipment registry


@app.get("/equipment", response_model=List[EquipmentRead])
def list_equipment(
    status_filter: Optional[EquipmentStatus] = Query(default=None, alias="status"),
    system_color: Optional[str] = Query(default=None, alias="systemColor"),
    category: Optional[str] = None,
    registry: EquipmentRegistry = Depends(get_registry),
) -> List[EquipmentRead]:
    items = registry.list(status=status_filter, system_color=system_color, category=category)
    return _snapshot_all(registry, items)


@app.post("/equipment", response_model=EquipmentRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
def create_equipment(
    request: Request,
    equipment_in: EquipmentCreate,
    registry: EquipmentRegistry = Depends(get_registry),
) -> EquipmentRead:
    return _snapshot(registry, registry.create(**equipment_in.model_dump()))


@app.post("/equipment/import", response_model=BulkResultRead)
@limiter.limit("10/minute")
def import_equipment(
    request: Request,
    payload: EquipmentImport,
    registry: EquipmentRegistry = Depends(get_registry),
) -> BulkResultRead:
    result = registry.bulk_create(row.model_dump() for row in payload.items)
    return _bulk_read(registry, result)


@app.post("/equipment/checkout/system", response_model=BulkResultRead)
@limiter.limit("30/minute")
def checkout_system(
    request: Request,
    payload: SystemCheckoutRequest,
    engine: LifecycleEngine = Depends(get_engine),
) -> BulkResultRead:
    result = engine.check_out_system(
        payload.system_color,
        payload.equipment_ids,
        payload.work_order,
        payload.tech_name,
        replacements=payload.replacements,
    )
    return _bulk_read(engine.registry, result)


@app.post("/equipment/checkin/workorder", response_model=BulkResultRead)
@limiter.limit("30/minute")
def checkin_work_order(
    request: Request,
    payload: WorkOrderCheckinRequest,
    engine: LifecycleEngine = Depends(get_engine),
) -> BulkResultRead:
    reports = {
        equipment_id: ItemReport(is_broken=report.is_broken, notes=report.notes or "")
        for equipment_id, report in payload.item_reports.items()
    }
    return _bulk_read(engine.registry, engine.check_in_by_work_order(payload.work_order, reports))


@app.post("/equipment/swap", response_model=SwapResultRead)
@limiter.limit("30/minute")
def swap_equipment(
    request: Request,
    payload: SwapRequest,
    engine: LifecycleEngine = Depends(get_engine),
) -> SwapResultRead:
    result = engine.swap(payload.original_id, payload.replacement_id, payload.reason)
    return SwapResultRead(
        original=_snapshot(engine.registry, result.original),
        replacement=_snapshot(engine.registry, result.replacement),
    )


@app.get("/equipment/{equipment_id}", response_model=EquipmentRead)
def get_equipment(equipment_id: str, registry: EquipmentRegistry = Depends(get_registry)) -> EquipmentRead:
    return _snapshot(registry, registry.get(equipment_id))


@app.patch("/equipment/{equipment_id}", response_model=EquipmentRead)
@limiter.limit("60/minute")
def update_equipment(
    request: Request,
    equipment_id: str,
    equipment_update: EquipmentUpdate,
    registry: EquipmentRegistry = Depends(get_registry),
) -> EquipmentRead:
    return _snapshot(registry, registry.update(equipment_id, **equipment_update.model_dump(exclude_unset=True)))


@app.delete(
    "/equipment/{equipment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin_pin)],
)
@limiter.limit("30/minute")
def delete_equipment(
    request: Request,
    equipment_id: str,
    registry: EquipmentRegistry = Depends(get_registry),
) -> None:
    registry.delete(equipment_id)


# Lifecycle


@app.post("/equipment/{equipment_id}/checkout", response_model=EquipmentRead)
@limiter.limit("60/minute")
def checkout_equipment(
    request: Request,
    equipment_id: str,
    payload: CheckoutRequest,
    engine: LifecycleEngine = Depends(get_engine),
) -> EquipmentRead:
    return _snapshot(engine.registry, engine.check_out(equipment_id, payload.work_order, payload.tech_name))


@app.post("/equipment/{equipment_id}/checkin", response_model=EquipmentRead)
@limiter.limit("60/minute")
def checkin_equipment(
    request: Request,
    equipment_id: str,
    payload: CheckinRequest,
    engine: LifecycleEngine = Depends(get_engine),
) -> EquipmentRead:
    return _snapshot(engine.registry, engine.check_in(equipment_id, payload.notes, payload.is_broken))


@app.post(
    "/equipment/{equipment_id}/repair",
    response_model=EquipmentRead,
    dependencies=[Depends(require_admin_pin)],
)
@limiter.limit("30/minute")
def repair_equipment(
    request: Request,
    equipment_id: str,
    payload: RepairRequest,
    engine: LifecycleEngine = Depends(get_engine),
) -> EquipmentRead:
    return _snapshot(engine.registry, engine.repair(equipment_id, payload.notes))


@app.get("/equipment/{equipment_id}/history", response_model=List[HistoryRead])
def equipment_history(equipment_id: str, registry: EquipmentRegistry = Depends(get_registry)) -> List[HistoryEntry]:
    with registry.transaction():
        return list(registry.get(equipment_id).history)


@app.get("/equipment/{equipment_id}/replacements", response_model=List[EquipmentRead])
def replacement_candidates(equipment_id: str, registry: EquipmentRegistry = Depends(get_registry)) -> List[EquipmentRead]:
    return _snapshot_all(registry, registry.replacement_candidates(equipment_id))


@app.get("/work-orders/{work_order}/equipment", response_model=List[EquipmentRead])
def work_order_equipment(work_order: str, registry: EquipmentRegistry = Depends(get_registry)) -> List[EquipmentRead]:
    return _snapshot_all(registry, registry.by_work_order(work_order))


@app.get("/history/recent", response_model=List[HistoryRead])
def recent_activity(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    registry: EquipmentRegistry = Depends(get_registry),
) -> List[HistoryEntry]:
    with registry.transaction():
        return recent_history(registry.list(), limit or settings.recent_history_limit)


# Systems


@app.get("/systems", response_model=List[SystemRead])
def list_systems(systems: SystemRegistry = Depends(get_system_registry)) -> List[System]:
    return systems.list()


@app.post(
    "/systems",
    response_model=SystemRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_pin)],
)
@limiter.limit("15/minute")
def create_system(
    request: Request,
    system_in: SystemCreate,
    systems: SystemRegistry = Depends(get_system_registry),
) -> System:
    return systems.create(**system_in.model_dump())


@app.patch("/systems/{system_id}", response_model=SystemRead, dependencies=[Depends(require_admin_pin)])
@limiter.limit("15/minute")
def update_system(
    request: Request,
    system_id: str,
    system_update: SystemUpdate,
    systems: SystemRegistry = Depends(get_system_registry),
) -> System:
    return systems.update(system_id, **system_update.model_dump(exclude_unset=True))


@app.delete(
    "/systems/{system_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin_pin)],
)
@limiter.limit("15/minute")
def delete_system(
    request: Request,
    system_id: str,
    systems: SystemRegistry = Depends(get_system_registry),
) -> None:
    systems.delete(system_id)
