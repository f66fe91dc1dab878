"""
Clock-in / clock-out and attendance history endpoints.

- Clock events act on the calling user and are rate limited per client.
- Full history and purges require the admin role.
"""

# No ``from __future__ import annotations`` here: slowapi wraps the clock
# handlers and FastAPI must resolve their annotations at import time.

import logging

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from geoclock.api.v1.deps import (get_current_user, get_report_aggregator,
                                  get_state_machine, require_admin)
from geoclock.core.config import settings
from geoclock.models.user import User
from geoclock.schemas.attendance import (AttendanceRecordRead,
                                         ClearHistoryResponse, ClockInResponse,
                                         ClockOutResponse, ClockRequest,
                                         HistoryResponse)
from geoclock.services.clock import AttendanceStateMachine
from geoclock.services.reports import AttendanceReportAggregator

# Rate limiter keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)


# ── Clock events ────────────────────────────────────────────────────
@router.post("/clock-in", response_model=ClockInResponse, status_code=201)
@limiter.limit(settings.CLOCK_RATE_LIMIT)
async def clock_in(
    request: Request,
    body: ClockRequest,
    user: User = Depends(get_current_user),
    machine: AttendanceStateMachine = Depends(get_state_machine),
) -> ClockInResponse:
    """Open a new attendance record at the reported position."""
    return await machine.clock_in(user.id, body.latitude, body.longitude)


@router.post("/clock-out", response_model=ClockOutResponse)
@limiter.limit(settings.CLOCK_RATE_LIMIT)
async def clock_out(
    request: Request,
    body: ClockRequest,
    user: User = Depends(get_current_user),
    machine: AttendanceStateMachine = Depends(get_state_machine),
) -> ClockOutResponse:
    """Close the caller's open record at the reported position."""
    return await machine.clock_out(user.id, body.latitude, body.longitude)


# ── Own records ─────────────────────────────────────────────────────
@router.get("/last", response_model=AttendanceRecordRead)
async def last_record(
    user: User = Depends(get_current_user),
    reports: AttendanceReportAggregator = Depends(get_report_aggregator),
) -> AttendanceRecordRead:
    return await reports.last_record_for(user.id)


@router.get("/me", response_model=HistoryResponse)
async def my_history(
    date: str | None = Query(default=None, description="YYYY-MM-DD"),
    user: User = Depends(get_current_user),
    reports: AttendanceReportAggregator = Depends(get_report_aggregator),
) -> HistoryResponse:
    return await reports.history_for_user(user.id, date)


# ── Admin history ───────────────────────────────────────────────────
@router.get("/history", response_model=HistoryResponse)
async def history(
    date: str | None = Query(default=None, description="YYYY-MM-DD"),
    _admin: User = Depends(require_admin),
    reports: AttendanceReportAggregator = Depends(get_report_aggregator),
) -> HistoryResponse:
    """All users with their records, optionally for a single local day."""
    return await reports.history_for_date(date)


@router.delete("/history", response_model=ClearHistoryResponse)
async def clear_all_history(
    admin: User = Depends(require_admin),
    machine: AttendanceStateMachine = Depends(get_state_machine),
) -> ClearHistoryResponse:
    deleted = await machine.clear_all_history()
    logger.info("Admin %s cleared all attendance history", admin.id)
    return ClearHistoryResponse(
        success=True, message="All attendance records deleted", deleted=deleted
    )


@router.delete("/history/{user_id}", response_model=ClearHistoryResponse)
async def clear_user_history(
    user_id: str,
    admin: User = Depends(require_admin),
    machine: AttendanceStateMachine = Depends(get_state_machine),
) -> ClearHistoryResponse:
    deleted = await machine.clear_user_history(user_id)
    logger.info("Admin %s cleared attendance history of %s", admin.id, user_id)
    return ClearHistoryResponse(
        success=True, message=f"Attendance history of user {user_id} deleted", deleted=deleted
    )
