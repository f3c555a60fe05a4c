"""Translate domain errors into JSON responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .errors import TrackerError

logger = logging.getLogger(__name__)


def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "kind": exc.kind})


def apply_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TrackerError, tracker_error_handler)
