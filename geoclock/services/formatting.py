"""Display shaping shared by clock results and reports."""

from __future__ import annotations

from zoneinfo import ZoneInfo

from geoclock.core.dates import elapsed, hours_minutes, split_timestamp
from geoclock.models.attendance import AttendanceRecord
from geoclock.schemas.attendance import AttendanceRecordRead, Duration

STATUS_COMPLETED = "Terminé"
STATUS_IN_PROGRESS = "En cours"


def status_label(record: AttendanceRecord) -> str:
    return STATUS_IN_PROGRESS if record.clock_out is None else STATUS_COMPLETED


def duration_of(record: AttendanceRecord) -> Duration | None:
    if record.clock_out is None:
        return None
    hours, minutes = hours_minutes(elapsed(record.clock_in, record.clock_out))
    return Duration(hours=hours, minutes=minutes)


def record_read(
    record: AttendanceRecord, location_name: str | None, tz: ZoneInfo, out_of_zone: str
) -> AttendanceRecordRead:
    in_date, in_time = split_timestamp(record.clock_in, tz)
    out_date, out_time = split_timestamp(record.clock_out, tz)
    return AttendanceRecordRead(
        id=record.id,
        user_id=record.user_id,
        clock_in_date=in_date,
        clock_in_time=in_time,
        clock_out_date=out_date,
        clock_out_time=out_time,
        location=location_name or out_of_zone,
        location_id=record.location_id,
        clock_in_latitude=record.clock_in_latitude,
        clock_in_longitude=record.clock_in_longitude,
        clock_out_latitude=record.clock_out_latitude,
        clock_out_longitude=record.clock_out_longitude,
        status=status_label(record),
    )
