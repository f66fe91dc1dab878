"""
LocationRegistry — CRUD over the authorized geofences.

Deleting a location never touches attendance rows: the foreign key is
declared ``ON DELETE SET NULL`` so history survives as "out of zone".
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from geoclock.core.exceptions import LocationConflict, LocationNotFound
from geoclock.models.attendance import AttendanceRecord
from geoclock.models.location import Location

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("name", "latitude", "longitude", "radius")


class LocationRegistry:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_all(self) -> list[Location]:
        """All locations in enumeration order (oldest first)."""
        result = await self.db.execute(
            select(Location).order_by(Location.created_at, Location.id)
        )
        return list(result.scalars().all())

    async def list_with_counts(self) -> list[tuple[Location, int]]:
        """Locations annotated with the number of records pointing at them."""
        result = await self.db.execute(
            select(Location, func.count(AttendanceRecord.id))
            .outerjoin(AttendanceRecord, AttendanceRecord.location_id == Location.id)
            .group_by(Location.id)
            .order_by(Location.created_at, Location.id)
        )
        return [(location, count) for location, count in result.all()]

    async def get(self, location_id: str) -> Location:
        location = await self.db.get(Location, location_id)
        if location is None:
            raise LocationNotFound()
        return location

    async def create(
        self, name: str, latitude: float, longitude: float, radius: float
    ) -> Location:
        await self._ensure_name_free(name)
        location = Location(name=name, latitude=latitude, longitude=longitude, radius=radius)
        self.db.add(location)
        await self._commit_or_conflict()
        await self.db.refresh(location)
        logger.info("Created location %s (%s) radius=%sm", location.name, location.id, radius)
        return location

    async def update(self, location_id: str, **fields: object) -> Location:
        location = await self.get(location_id)
        changes = {
            k: v for k, v in fields.items() if k in _UPDATABLE_FIELDS and v is not None
        }
        if "name" in changes and changes["name"] != location.name:
            await self._ensure_name_free(changes["name"])  # type: ignore[arg-type]

        for field, value in changes.items():
            setattr(location, field, value)

        await self._commit_or_conflict()
        await self.db.refresh(location)
        logger.info("Updated location %s: %s", location_id, changes)
        return location

    async def delete(self, location_id: str) -> Location:
        location = await self.get(location_id)
        await self.db.delete(location)
        await self.db.commit()
        logger.info("Deleted location %s (%s)", location.name, location_id)
        return location

    async def _ensure_name_free(self, name: str) -> None:
        existing = await self.db.execute(select(Location.id).where(Location.name == name))
        if existing.scalar_one_or_none() is not None:
            raise LocationConflict(f"Location '{name}' already exists")

    async def _commit_or_conflict(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race on the unique name
            await self.db.rollback()
            raise LocationConflict() from None
