"""
Geofence resolution — is a GPS position inside an authorized zone?
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from geoclock.models.location import Location
from geoclock.services.locations import LocationRegistry

EARTH_RADIUS_M = 6_371_000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two WGS-84 points.

    A missing or zero coordinate yields ``inf`` so that an unset position
    (reported as 0/0 by some clients) never lands inside a geofence.
    """
    if not lat1 or not lon1 or not lat2 or not lon2:
        return math.inf

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def nearest_match(
    latitude: float, longitude: float, locations: Iterable[Location]
) -> Location | None:
    """Closest location whose circle contains the point.

    Equal distances keep the earliest location in enumeration order.
    """
    best: Location | None = None
    best_distance = math.inf
    for location in locations:
        distance = haversine_distance(latitude, longitude, location.latitude, location.longitude)
        if distance <= location.radius and distance < best_distance:
            best, best_distance = location, distance
    return best


class GeofenceResolver:
    """Read-through matcher over the LocationRegistry."""

    def __init__(self, registry: LocationRegistry) -> None:
        self.registry = registry

    async def match(self, latitude: float, longitude: float) -> Location | None:
        locations = await self.registry.list_all()
        return nearest_match(latitude, longitude, locations)
