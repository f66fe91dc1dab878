"""Pydantic schemas for clock events, history and reports."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# ── Clock-in / clock-out ───────────────────────────────────────────
class ClockRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)


class Duration(BaseModel):
    hours: int
    minutes: int


class ClockInResponse(BaseModel):
    id: str
    user_id: str
    clock_in_date: str
    clock_in_time: str
    location: str
    location_id: str | None
    latitude: float
    longitude: float


class ClockOutResponse(BaseModel):
    id: str
    user_id: str
    clock_in_date: str
    clock_in_time: str
    clock_out_date: str
    clock_out_time: str
    location: str
    location_id: str | None
    clock_in_latitude: float
    clock_in_longitude: float
    clock_out_latitude: float
    clock_out_longitude: float
    duration: Duration


# ── History ─────────────────────────────────────────────────────────
class AttendanceRecordRead(BaseModel):
    id: str
    user_id: str
    clock_in_date: str
    clock_in_time: str
    clock_out_date: str | None = None
    clock_out_time: str | None = None
    location: str
    location_id: str | None = None
    clock_in_latitude: float
    clock_in_longitude: float
    clock_out_latitude: float | None = None
    clock_out_longitude: float | None = None
    status: str


class UserHistory(BaseModel):
    user_id: str
    email: str
    name: str | None
    photo: str | None
    records: list[AttendanceRecordRead]


class HistoryResponse(BaseModel):
    date: str | None = None
    range_start: datetime | None = None
    range_end: datetime | None = None
    users: list[UserHistory]


class ClearHistoryResponse(BaseModel):
    success: bool
    message: str
    deleted: int


# ── Reports ─────────────────────────────────────────────────────────
class TodayCountResponse(BaseModel):
    date: str
    total: int
    completed: int
    in_progress: int


class RecentRecord(BaseModel):
    id: str
    user_id: str
    name: str | None
    photo: str | None
    clock_in_date: str
    clock_in_time: str
    clock_out_date: str | None = None
    clock_out_time: str | None = None
    location: str
    status: str
    duration: Duration | None = None


class WeeklyDay(BaseModel):
    date: str
    day_name: str
    total_users: int
    completed_users: int
    in_progress_users: int
    records: int


class WeeklySummary(BaseModel):
    total_users: int
    completed_users: int
    in_progress_users: int
    records: int


class WeeklyTrendResponse(BaseModel):
    start: str
    end: str
    days: list[WeeklyDay]
    summary: WeeklySummary


# ── Generic ────────────────────────────────────────────────────────
class DeleteResponse(BaseModel):
    success: bool
    message: str


class HealthResponse(BaseModel):
    db: bool
