"""HTTP audit trail for the equipment service.

Every request gets one line in ``<log_dir>/<service>.log``. Admin calls are
flagged so PIN-gated repairs and deletions stand out in the trail.
"""
from __future__ import annotations

import logging
from pathlib import Path
from time import time

from fastapi import FastAPI, Request

from .config import get_settings


def _build_logger(service_name: str) -> logging.Logger:
    logger = logging.getLogger(f"audit.{service_name}")
    if logger.handlers:
        return logger

    log_dir = Path(get_settings().log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.setLevel(logging.INFO)
    handler = logging.FileHandler(log_dir / f"{service_name}.log")
    handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(handler)
    return logger


def add_audit_middleware(app: FastAPI, service_name: str) -> None:
    logger = _build_logger(service_name)

    @app.middleware("http")
    async def audit_logger(request: Request, call_next):  # type: ignore[override]
        start = time()
        response = await call_next(request)
        duration_ms = (time() - start) * 1000
        client_ip = request.client.host if request.client else "unknown"
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s | status=%s | client=%s | admin=%s | duration=%.2fms",
            request.method,
            request.url.path,
            response.status_code,
            client_ip,
            "yes" if "x-admin-pin" in request.headers else "no",
            duration_ms,
        )
        return response
