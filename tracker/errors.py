"""Domain errors raised by the registry and lifecycle engine."""
from typing import Optional


class TrackerError(Exception):
    """Base class for failures the service reports back to the caller."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, equipment_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.equipment_id = equipment_id


class NotFoundError(TrackerError):
    kind = "not_found"
    status_code = 404


class ConflictError(TrackerError):
    kind = "conflict"
    status_code = 409


class InvalidTransitionError(TrackerError):
    kind = "invalid_transition"
    status_code = 409


class ValidationFailedError(TrackerError):
    kind = "validation_error"
    status_code = 400
