"""
AttendanceStateMachine — clock-in / clock-out transitions per user.

A user is either Idle (no open record) or Clocked-In (exactly one record
with ``clock_out IS NULL``). Both transitions validate the position first
and the open-record state second, so an out-of-zone request always fails
with ``OutOfZone`` whatever the user's state.

The "no open record, then insert" sequence is made atomic by the partial
unique index on ``attendance(user_id) WHERE clock_out IS NULL``: a
concurrent duplicate insert fails on commit and is reported as
``AlreadyClockedIn``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from geoclock.core.config import settings
from geoclock.core.dates import ensure_utc, split_timestamp, utcnow
from geoclock.core.exceptions import (AlreadyClockedIn, NoOpenRecord,
                                      OutOfZone, UserNotFound)
from geoclock.models.attendance import AttendanceRecord
from geoclock.models.user import User
from geoclock.schemas.attendance import ClockInResponse, ClockOutResponse
from geoclock.services.formatting import duration_of
from geoclock.services.geofence import GeofenceResolver
from geoclock.services.locations import LocationRegistry

logger = logging.getLogger(__name__)


class AttendanceStateMachine:
    def __init__(
        self,
        db: AsyncSession,
        resolver: GeofenceResolver | None = None,
        tz: ZoneInfo | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.resolver = resolver or GeofenceResolver(LocationRegistry(db))
        self.tz = tz or settings.tz
        self._clock = clock

    async def _find_open_record(
        self, user_id: str, lock: bool = False
    ) -> AttendanceRecord | None:
        query = select(AttendanceRecord).where(
            AttendanceRecord.user_id == user_id,
            AttendanceRecord.clock_out.is_(None),
        )
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalars().first()

    # ── Transitions ─────────────────────────────────────────────────
    async def clock_in(self, user_id: str, latitude: float, longitude: float) -> ClockInResponse:
        """Idle -> Clocked-In."""
        location = await self.resolver.match(latitude, longitude)
        if location is None:
            logger.info("Clock-in refused for %s: (%s, %s) out of zone", user_id, latitude, longitude)
            raise OutOfZone("You are too far from an authorized location to clock in.")

        if await self._find_open_record(user_id) is not None:
            raise AlreadyClockedIn()

        record = AttendanceRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            clock_in=self._clock(),
            clock_in_latitude=latitude,
            clock_in_longitude=longitude,
            location_id=location.id,
        )
        self.db.add(record)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self._find_open_record(user_id) is not None:
                logger.info("Concurrent clock-in rejected for %s", user_id)
                raise AlreadyClockedIn() from None
            raise

        logger.info("Clock-in %s for %s at %s", record.id, user_id, location.name)
        in_date, in_time = split_timestamp(record.clock_in, self.tz)
        return ClockInResponse(
            id=record.id,
            user_id=user_id,
            clock_in_date=in_date,
            clock_in_time=in_time,
            location=location.name,
            location_id=location.id,
            latitude=latitude,
            longitude=longitude,
        )

    async def clock_out(self, user_id: str, latitude: float, longitude: float) -> ClockOutResponse:
        """Clocked-In -> Idle."""
        location = await self.resolver.match(latitude, longitude)
        if location is None:
            logger.info("Clock-out refused for %s: (%s, %s) out of zone", user_id, latitude, longitude)
            raise OutOfZone("You are too far from an authorized location to clock out.")

        record = await self._find_open_record(user_id, lock=True)
        if record is None:
            raise NoOpenRecord()

        clock_in = ensure_utc(record.clock_in)
        record.clock_out = max(self._clock(), clock_in)
        record.clock_out_latitude = latitude
        record.clock_out_longitude = longitude
        record.location_id = location.id
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.info("Clock-out %s for %s at %s", record.id, user_id, location.name)
        in_date, in_time = split_timestamp(clock_in, self.tz)
        out_date, out_time = split_timestamp(record.clock_out, self.tz)
        return ClockOutResponse(
            id=record.id,
            user_id=user_id,
            clock_in_date=in_date,
            clock_in_time=in_time,
            clock_out_date=out_date,
            clock_out_time=out_time,
            location=location.name,
            location_id=location.id,
            clock_in_latitude=record.clock_in_latitude,
            clock_in_longitude=record.clock_in_longitude,
            clock_out_latitude=latitude,
            clock_out_longitude=longitude,
            duration=duration_of(record),
        )

    # ── History purge ───────────────────────────────────────────────
    async def clear_user_history(self, user_id: str) -> int:
        """Delete every record of one user; the user returns to Idle."""
        if await self.db.get(User, user_id) is None:
            raise UserNotFound()
        result = await self.db.execute(
            delete(AttendanceRecord).where(AttendanceRecord.user_id == user_id)
        )
        await self.db.commit()
        logger.info("Cleared %d attendance records for %s", result.rowcount, user_id)
        return result.rowcount

    async def clear_all_history(self) -> int:
        result = await self.db.execute(delete(AttendanceRecord))
        await self.db.commit()
        logger.warning("Cleared all attendance history (%d records)", result.rowcount)
        return result.rowcount
