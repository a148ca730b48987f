"""
Domain error taxonomy for the scheduling and timer core.

Services raise these instead of transport-specific errors; the FastAPI
application maps them to HTTP responses in main.py.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for all errors surfaced by the core."""

    status_code = 500
    error_type = "scheduling_error"

    def __init__(self, detail: str, extra: Optional[dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        payload: dict[str, Any] = {"detail": self.detail, "type": self.error_type}
        if self.extra:
            payload.update(self.extra)
        return payload


class ValidationError(SchedulingError):
    """Malformed or missing input (bad datetime, unknown status, ...)."""

    status_code = 400
    error_type = "validation_error"


class ForbiddenError(SchedulingError):
    """Caller lacks the role or ownership required for the operation."""

    status_code = 403
    error_type = "forbidden"


class NotFoundError(SchedulingError):
    """Referenced appointment, task, employee, bed or clinic does not exist."""

    status_code = 404
    error_type = "not_found"


class ConflictError(SchedulingError):
    """Requested time overlaps another scheduled appointment of the same employee."""

    status_code = 409
    error_type = "conflict"
