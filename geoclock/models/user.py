"""
User model — identity owned by the account service.

The attendance engine only reads it: the id is the ``sub`` claim of the
propagated token, name and photo decorate reports, role gates admin routes.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from geoclock.db.base import Base

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    photo: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(10),
        nullable=False,
        default=ROLE_USER,
        server_default=ROLE_USER,
    )  # USER | ADMIN
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
