"""
Domain errors of the exchange workflow and their HTTP mapping.

Services raise these; the handlers registered in ``shiftdesk.main`` turn them into
``{"error": code, "detail": message}`` responses. None of them are fatal.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

if TYPE_CHECKING:
    from shiftdesk.services.conflict_checker import ShiftConflict

logger = logging.getLogger(__name__)


class ShiftdeskError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message}


class NotFound(ShiftdeskError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class InvalidState(ShiftdeskError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"


class InvalidParticipants(ShiftdeskError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_participants"


class DuplicateActiveRequest(ShiftdeskError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_active_request"


class Unauthorized(ShiftdeskError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "unauthorized"


class ConcurrentModification(ShiftdeskError):
    status_code = status.HTTP_409_CONFLICT
    code = "concurrent_modification"


class SchedulingConflict(ShiftdeskError):
    """The target employee already works during the shift's time range."""

    status_code = status.HTTP_409_CONFLICT
    code = "scheduling_conflict"

    def __init__(self, conflict: "ShiftConflict",
                 message: str = "This employee already has a shift at the same time"):
        super().__init__(message)
        self.conflict = conflict

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["conflict"] = {
            "shift_id": str(self.conflict.shift_id),
            "date": self.conflict.date.isoformat(),
            "time": self.conflict.time_range,
        }
        return body


async def shiftdesk_error_handler(request: Request, exc: ShiftdeskError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def stale_data_handler(request: Request, exc: StaleDataError) -> JSONResponse:
    logger.warning("Concurrent modification on %s %s: %s", request.method, request.url.path, exc)
    err = ConcurrentModification("Resource was modified concurrently, please reload and retry")
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShiftdeskError, shiftdesk_error_handler)
    app.add_exception_handler(StaleDataError, stale_data_handler)
