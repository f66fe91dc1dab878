"""
Attendance error taxonomy and global exception handlers.

Every engine failure carries a stable ``kind`` and a human-readable message;
the handlers below translate them to JSON responses without leaking
stack traces.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class AttendanceError(Exception):
    """Base class for every error the attendance engine reports."""

    kind = "AttendanceError"
    status_code = 400
    default_message = "Attendance operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AlreadyClockedIn(AttendanceError):
    kind = "AlreadyClockedIn"
    status_code = 409
    default_message = "You already clocked in without clocking out."


class OutOfZone(AttendanceError):
    kind = "OutOfZone"
    status_code = 403
    default_message = "You are too far from an authorized location."


class NoOpenRecord(AttendanceError):
    kind = "NoOpenRecord"
    status_code = 404
    default_message = "No clock-in recorded, you cannot clock out."


class NoRecordFound(AttendanceError):
    kind = "NoRecordFound"
    status_code = 404
    default_message = "No attendance record found."


class InvalidDateFormat(AttendanceError):
    kind = "InvalidDateFormat"
    status_code = 400
    default_message = "Invalid date format. Use YYYY-MM-DD."


class LocationNotFound(AttendanceError):
    kind = "LocationNotFound"
    status_code = 404
    default_message = "Location not found."


class LocationConflict(AttendanceError):
    kind = "LocationConflict"
    status_code = 409
    default_message = "A location with this name already exists."


class UserNotFound(AttendanceError):
    kind = "UserNotFound"
    status_code = 404
    default_message = "User not found."


class AggregationFailure(AttendanceError):
    """Unexpected storage fault while building a report."""

    kind = "AggregationFailure"
    status_code = 500
    default_message = "Unable to compute attendance statistics."


# ── Handlers ────────────────────────────────────────────────────────
async def _attendance_error_handler(_request: Request, exc: AttendanceError) -> JSONResponse:
    # AggregationFailure is logged with its traceback where the storage fault happens
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind, "success": False},
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AttendanceError, _attendance_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
