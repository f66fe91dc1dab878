"""
Dashboard statistics and health endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from geoclock.api.v1.deps import get_db, get_report_aggregator, require_admin
from geoclock.models.user import User
from geoclock.schemas.attendance import (HealthResponse, RecentRecord,
                                         TodayCountResponse,
                                         WeeklyTrendResponse)
from geoclock.services.reports import AttendanceReportAggregator

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


@router.get("/reports/today", response_model=TodayCountResponse)
async def today(
    _admin: User = Depends(require_admin),
    reports: AttendanceReportAggregator = Depends(get_report_aggregator),
) -> TodayCountResponse:
    """Records opened today, completed vs in progress."""
    return await reports.count_today()


@router.get("/reports/recent", response_model=list[RecentRecord])
async def recent(
    limit: int = Query(default=5, ge=1, le=100),
    _admin: User = Depends(require_admin),
    reports: AttendanceReportAggregator = Depends(get_report_aggregator),
) -> list[RecentRecord]:
    return await reports.recent(limit)


@router.get("/reports/weekly", response_model=WeeklyTrendResponse)
async def weekly(
    _admin: User = Depends(require_admin),
    reports: AttendanceReportAggregator = Depends(get_report_aggregator),
) -> WeeklyTrendResponse:
    """Distinct present users per day over the last 7 days."""
    return await reports.weekly_trend()


# ── Health ──────────────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check — database connectivity."""
    result = HealthResponse(db=False)
    try:
        await db.execute(select(1))
        result.db = True
    except SQLAlchemyError as e:
        logger.error("Health check DB failure: %s", e)
    return result
