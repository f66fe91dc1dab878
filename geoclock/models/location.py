"""
Location model — an authorized circular clock-in zone (geofence).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, String

from geoclock.db.base import Base


class Location(Base):
    __tablename__ = "locations"

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))  # type: ignore[assignment]
    name: str = Column(String(200), unique=True, nullable=False)  # type: ignore[assignment]
    latitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    longitude: float = Column(Float, nullable=False)  # type: ignore[assignment]
    radius: float = Column(Float, nullable=False)  # type: ignore[assignment]  # meters
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
