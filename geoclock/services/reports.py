"""
AttendanceReportAggregator — read-only statistics over attendance records.

Each report fetches its rows in one query and aggregates in Python.
Calendar days are local days in the configured timezone.

Presence counts are distinct users, not records: a user who clocks in
twice on the same day counts once, under "completed" as soon as one of
that day's records is closed.
"""

from __future__ import annotations

import functools
import logging
from collections import defaultdict
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from geoclock.core.config import settings
from geoclock.core.dates import day_bounds, local_day, parse_day, utcnow
from geoclock.core.exceptions import (AggregationFailure, InvalidDateFormat,
                                      NoRecordFound, UserNotFound)
from geoclock.models.attendance import AttendanceRecord
from geoclock.models.location import Location
from geoclock.models.user import User
from geoclock.schemas.attendance import (AttendanceRecordRead,
                                         HistoryResponse, RecentRecord,
                                         TodayCountResponse, UserHistory,
                                         WeeklyDay, WeeklySummary,
                                         WeeklyTrendResponse)
from geoclock.services.formatting import duration_of, record_read, status_label

logger = logging.getLogger(__name__)

WEEK_DAYS = 7
DAY_NAMES = ("Lun", "Mar", "Mer", "Jeu", "Ven", "Sam", "Dim")


def _storage_guard(method):
    """Turn storage faults into ``AggregationFailure`` without leaking details."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError:
            logger.exception("Storage fault in %s", method.__name__)
            raise AggregationFailure() from None

    return wrapper


class AttendanceReportAggregator:
    def __init__(
        self,
        db: AsyncSession,
        tz: ZoneInfo | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.tz = tz or settings.tz
        self._clock = clock
        self.out_of_zone = settings.OUT_OF_ZONE_LABEL

    def _today(self) -> date:
        return self._clock().astimezone(self.tz).date()

    def _utc_window(self, first: date, last: date) -> tuple[datetime, datetime]:
        """Half-open UTC window ``[start of first, start of the day after last)``."""
        try:
            start, _ = day_bounds(first, self.tz)
            stop, _ = day_bounds(last + timedelta(days=1), self.tz)
            return start.astimezone(timezone.utc), stop.astimezone(timezone.utc)
        except OverflowError:
            raise InvalidDateFormat(f"Date out of supported range: {first.isoformat()}") from None

    def _records_query(self):
        return (
            select(AttendanceRecord, Location.name)
            .outerjoin(Location, AttendanceRecord.location_id == Location.id)
            .order_by(AttendanceRecord.clock_in.desc())
        )

    async def _history_rows(
        self, day: date | None, user_id: str | None = None
    ) -> dict[str, list[AttendanceRecordRead]]:
        query = self._records_query()
        if day is not None:
            start, stop = self._utc_window(day, day)
            query = query.where(
                AttendanceRecord.clock_in >= start, AttendanceRecord.clock_in < stop
            )
        if user_id is not None:
            query = query.where(AttendanceRecord.user_id == user_id)

        result = await self.db.execute(query)
        by_user: dict[str, list[AttendanceRecordRead]] = defaultdict(list)
        for record, location_name in result.all():
            by_user[record.user_id].append(
                record_read(record, location_name, self.tz, self.out_of_zone)
            )
        return by_user

    def _history_response(
        self, date_str: str | None, day: date | None, users: list[UserHistory]
    ) -> HistoryResponse:
        if day is None:
            return HistoryResponse(users=users)
        start, end = day_bounds(day, self.tz)
        return HistoryResponse(date=date_str, range_start=start, range_end=end, users=users)

    # ── History ─────────────────────────────────────────────────────
    @_storage_guard
    async def history_for_date(self, date_str: str | None = None) -> HistoryResponse:
        """Every user with their records, optionally limited to one local day."""
        day = parse_day(date_str) if date_str is not None else None
        by_user = await self._history_rows(day)

        users_result = await self.db.execute(select(User).order_by(User.name, User.email))
        users = [
            UserHistory(
                user_id=user.id,
                email=user.email,
                name=user.name,
                photo=user.photo,
                records=by_user.get(user.id, []),
            )
            for user in users_result.scalars().all()
        ]
        return self._history_response(date_str, day, users)

    @_storage_guard
    async def history_for_user(self, user_id: str, date_str: str | None = None) -> HistoryResponse:
        day = parse_day(date_str) if date_str is not None else None
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound()
        by_user = await self._history_rows(day, user_id=user_id)
        history = UserHistory(
            user_id=user.id,
            email=user.email,
            name=user.name,
            photo=user.photo,
            records=by_user.get(user.id, []),
        )
        return self._history_response(date_str, day, [history])

    @_storage_guard
    async def last_record_for(self, user_id: str) -> AttendanceRecordRead:
        result = await self.db.execute(
            self._records_query().where(AttendanceRecord.user_id == user_id).limit(1)
        )
        row = result.first()
        if row is None:
            raise NoRecordFound()
        record, location_name = row
        return record_read(record, location_name, self.tz, self.out_of_zone)

    # ── Dashboard ───────────────────────────────────────────────────
    @_storage_guard
    async def count_today(self) -> TodayCountResponse:
        today = self._today()
        start, stop = self._utc_window(today, today)
        result = await self.db.execute(
            select(
                func.count(AttendanceRecord.id),
                func.count(AttendanceRecord.clock_out),
            ).where(AttendanceRecord.clock_in >= start, AttendanceRecord.clock_in < stop)
        )
        total, completed = result.one()
        return TodayCountResponse(
            date=today.isoformat(),
            total=total or 0,
            completed=completed or 0,
            in_progress=(total or 0) - (completed or 0),
        )

    @_storage_guard
    async def recent(self, limit: int | None = None) -> list[RecentRecord]:
        """Latest records across all users, decorated for the admin feed."""
        limit = limit or settings.RECENT_DEFAULT_LIMIT
        result = await self.db.execute(
            select(
                AttendanceRecord,
                User.name.label("user_name"),
                User.photo,
                Location.name.label("location_name"),
            )
            .join(User, AttendanceRecord.user_id == User.id)
            .outerjoin(Location, AttendanceRecord.location_id == Location.id)
            .order_by(AttendanceRecord.clock_in.desc())
            .limit(limit)
        )

        items = []
        for record, user_name, photo, location_name in result.all():
            base = record_read(record, location_name, self.tz, self.out_of_zone)
            items.append(
                RecentRecord(
                    id=record.id,
                    user_id=record.user_id,
                    name=user_name,
                    photo=photo,
                    clock_in_date=base.clock_in_date,
                    clock_in_time=base.clock_in_time,
                    clock_out_date=base.clock_out_date,
                    clock_out_time=base.clock_out_time,
                    location=base.location,
                    status=status_label(record),
                    duration=duration_of(record),
                )
            )
        return items

    @_storage_guard
    async def weekly_trend(self) -> WeeklyTrendResponse:
        """Distinct present users for each of the last 7 local days (today included)."""
        today = self._today()
        days = [today - timedelta(days=offset) for offset in range(WEEK_DAYS - 1, -1, -1)]
        start, stop = self._utc_window(days[0], today)

        result = await self.db.execute(
            select(
                AttendanceRecord.user_id,
                AttendanceRecord.clock_in,
                AttendanceRecord.clock_out,
            ).where(AttendanceRecord.clock_in >= start, AttendanceRecord.clock_in < stop)
        )

        # user_id -> has at least one completed record
        per_day: dict[date, dict[str, bool]] = defaultdict(dict)
        records_per_day: dict[date, int] = defaultdict(int)
        week_users: dict[str, bool] = {}
        for user_id, clock_in, clock_out in result.all():
            day = local_day(clock_in, self.tz)
            completed = clock_out is not None
            day_users = per_day[day]
            day_users[user_id] = day_users.get(user_id, False) or completed
            records_per_day[day] += 1
            week_users[user_id] = week_users.get(user_id, False) or completed

        trend = []
        for day in days:
            day_users = per_day.get(day, {})
            completed_users = sum(1 for done in day_users.values() if done)
            trend.append(
                WeeklyDay(
                    date=day.isoformat(),
                    day_name=DAY_NAMES[day.weekday()],
                    total_users=len(day_users),
                    completed_users=completed_users,
                    in_progress_users=len(day_users) - completed_users,
                    records=records_per_day.get(day, 0),
                )
            )

        week_completed = sum(1 for done in week_users.values() if done)
        return WeeklyTrendResponse(
            start=days[0].isoformat(),
            end=today.isoformat(),
            days=trend,
            summary=WeeklySummary(
                total_users=len(week_users),
                completed_users=week_completed,
                in_progress_users=len(week_users) - week_completed,
                records=sum(records_per_day.values()),
            ),
        )
