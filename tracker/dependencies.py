"""Reusable FastAPI dependencies for registry access and the admin PIN."""
import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from .config import Settings, get_settings
from .lifecycle import LifecycleEngine
from .registry import EquipmentRegistry, SystemRegistry

admin_pin_header = APIKeyHeader(name="X-Admin-Pin", auto_error=False)


def get_registry(request: Request) -> EquipmentRegistry:
    return request.app.state.registry


def get_system_registry(request: Request) -> SystemRegistry:
    return request.app.state.systems


def get_engine(registry: EquipmentRegistry = Depends(get_registry)) -> LifecycleEngine:
    return LifecycleEngine(registry)


def require_admin_pin(
    pin: Optional[str] = Security(admin_pin_header),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.admin_pin:
        return
    if not pin or not hmac.compare_digest(pin, settings.admin_pin):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin PIN")
