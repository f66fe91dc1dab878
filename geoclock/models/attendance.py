"""
AttendanceRecord model — one clock-in / clock-out cycle for one user.

``clock_out IS NULL`` marks the open record. The partial unique index
guarantees at most one open record per user, even under concurrent
clock-ins.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (Column, DateTime, Float, ForeignKey, Index, String,
                        text)

from geoclock.db.base import Base


class AttendanceRecord(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        Index("ix_attendance_user_clock_in", "user_id", "clock_in"),
        Index(
            "uq_attendance_open_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("clock_out IS NULL"),
            sqlite_where=text("clock_out IS NULL"),
        ),
    )

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))  # type: ignore[assignment]
    user_id: str = Column(  # type: ignore[assignment]
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    clock_in: datetime = Column(DateTime(timezone=True), nullable=False, index=True)  # type: ignore[assignment]
    clock_out: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    clock_in_latitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    clock_in_longitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    clock_out_latitude: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    clock_out_longitude: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    # Geofence matched by the most recent event; nulled when the location is deleted
    location_id: str | None = Column(  # type: ignore[assignment]
        String(36),
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_open(self) -> bool:
        return self.clock_out is None
