"""
Geofence (Location) CRUD endpoints.

- GET operations require any authenticated user.
- POST / PUT / DELETE operations require the admin role.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from geoclock.api.v1.deps import (get_current_user, get_location_registry,
                                  require_admin)
from geoclock.models.location import Location
from geoclock.models.user import User
from geoclock.schemas.attendance import DeleteResponse
from geoclock.schemas.location import (LocationCreate, LocationRead,
                                       LocationUpdate, LocationWithCount)
from geoclock.services.locations import LocationRegistry

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("", response_model=list[LocationWithCount])
async def list_locations(
    with_counts: bool = False,
    _user: User = Depends(get_current_user),
    registry: LocationRegistry = Depends(get_location_registry),
) -> list[LocationWithCount]:
    if with_counts:
        return [
            LocationWithCount.model_validate(location).model_copy(update={"record_count": count})
            for location, count in await registry.list_with_counts()
        ]
    return [LocationWithCount.model_validate(location) for location in await registry.list_all()]


@router.post("", response_model=LocationRead, status_code=201)
async def create_location(
    body: LocationCreate,
    _admin: User = Depends(require_admin),
    registry: LocationRegistry = Depends(get_location_registry),
) -> Location:
    return await registry.create(body.name, body.latitude, body.longitude, body.radius)


@router.get("/{location_id}", response_model=LocationRead)
async def get_location(
    location_id: str,
    _user: User = Depends(get_current_user),
    registry: LocationRegistry = Depends(get_location_registry),
) -> Location:
    return await registry.get(location_id)


@router.put("/{location_id}", response_model=LocationRead)
async def update_location(
    location_id: str,
    body: LocationUpdate,
    _admin: User = Depends(require_admin),
    registry: LocationRegistry = Depends(get_location_registry),
) -> Location:
    return await registry.update(location_id, **body.model_dump(exclude_unset=True))


@router.delete("/{location_id}", response_model=DeleteResponse)
async def delete_location(
    location_id: str,
    _admin: User = Depends(require_admin),
    registry: LocationRegistry = Depends(get_location_registry),
) -> DeleteResponse:
    """Remove a geofence; attendance history keeps its records as out of zone."""
    location = await registry.delete(location_id)
    return DeleteResponse(success=True, message=f"Location '{location.name}' deleted")
