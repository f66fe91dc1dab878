"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from geoclock.api.v1.endpoints import attendance, locations, reports

api_router = APIRouter()

# Clock-in / clock-out, history
api_router.include_router(attendance.router)

# Geofence registry
api_router.include_router(locations.router)

# Dashboard statistics, health
api_router.include_router(reports.router)
