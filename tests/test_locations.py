"""Tests for the geofence registry endpoints."""

from datetime import datetime

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import HQ, add_record
from geoclock.models.attendance import AttendanceRecord


@pytest.mark.asyncio
async def test_create_and_get_location(async_client: AsyncClient, admin_headers, employee_headers):
    resp = await async_client.post("/api/v1/locations", json=HQ, headers=admin_headers)
    assert resp.status_code == 201
    created = resp.json()
    assert created["name"] == "HQ"
    assert created["radius"] == 100

    resp = await async_client.get(f"/api/v1/locations/{created['id']}", headers=employee_headers)
    assert resp.status_code == 200
    assert resp.json()["latitude"] == HQ["latitude"]


@pytest.mark.asyncio
async def test_create_requires_admin(async_client: AsyncClient, employee_headers):
    resp = await async_client.post("/api/v1/locations", json=HQ, headers=employee_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_duplicate_name_conflicts(async_client: AsyncClient, admin_headers):
    await async_client.post("/api/v1/locations", json=HQ, headers=admin_headers)
    resp = await async_client.post("/api/v1/locations", json={**HQ, "latitude": 45.0}, headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json()["kind"] == "LocationConflict"


@pytest.mark.parametrize(
    "overrides",
    [{"radius": 0}, {"radius": -5}, {"latitude": 95}, {"longitude": 200}, {"name": "   "}],
)
@pytest.mark.asyncio
async def test_create_validation(async_client: AsyncClient, admin_headers, overrides):
    resp = await async_client.post("/api/v1/locations", json={**HQ, **overrides}, headers=admin_headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_in_creation_order_with_counts(
    async_client: AsyncClient, admin_headers, employee_headers, db_session: AsyncSession, employee
):
    hq = (await async_client.post("/api/v1/locations", json=HQ, headers=admin_headers)).json()
    annex_payload = {"name": "Annex", "latitude": 48.86, "longitude": 2.36, "radius": 50}
    await async_client.post("/api/v1/locations", json=annex_payload, headers=admin_headers)

    from geoclock.models.location import Location

    hq_row = await db_session.get(Location, hq["id"])
    await add_record(db_session, employee, datetime(2024, 3, 4, 9, 0), datetime(2024, 3, 4, 17, 0), hq_row)
    await add_record(db_session, employee, datetime(2024, 3, 5, 9, 0), datetime(2024, 3, 5, 17, 0), hq_row)

    resp = await async_client.get("/api/v1/locations", headers=employee_headers)
    assert [loc["name"] for loc in resp.json()] == ["HQ", "Annex"]

    resp = await async_client.get(
        "/api/v1/locations", params={"with_counts": True}, headers=employee_headers
    )
    counts = {loc["name"]: loc["record_count"] for loc in resp.json()}
    assert counts == {"HQ": 2, "Annex": 0}


@pytest.mark.asyncio
async def test_partial_update(async_client: AsyncClient, admin_headers):
    created = (await async_client.post("/api/v1/locations", json=HQ, headers=admin_headers)).json()

    resp = await async_client.put(
        f"/api/v1/locations/{created['id']}", json={"radius": 250}, headers=admin_headers
    )
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["radius"] == 250
    assert updated["name"] == "HQ"
    assert updated["latitude"] == HQ["latitude"]


@pytest.mark.asyncio
async def test_rename_to_existing_name_conflicts(async_client: AsyncClient, admin_headers):
    await async_client.post("/api/v1/locations", json=HQ, headers=admin_headers)
    annex = (
        await async_client.post(
            "/api/v1/locations", json={**HQ, "name": "Annex"}, headers=admin_headers
        )
    ).json()
    resp = await async_client.put(
        f"/api/v1/locations/{annex['id']}", json={"name": "HQ"}, headers=admin_headers
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_update_and_delete_missing_location(async_client: AsyncClient, admin_headers):
    resp = await async_client.put("/api/v1/locations/missing", json={"radius": 10}, headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json()["kind"] == "LocationNotFound"

    resp = await async_client.delete("/api/v1/locations/missing", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_nulls_attendance_references(
    async_client: AsyncClient, admin_headers, employee_headers, db_session: AsyncSession, employee
):
    created = (await async_client.post("/api/v1/locations", json=HQ, headers=admin_headers)).json()
    clock = await async_client.post(
        "/api/v1/attendance/clock-in",
        json={"latitude": HQ["latitude"], "longitude": HQ["longitude"]},
        headers=employee_headers,
    )
    record_id = clock.json()["id"]

    resp = await async_client.delete(f"/api/v1/locations/{created['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    record = await db_session.get(AttendanceRecord, record_id)
    assert record is not None
    assert record.location_id is None

    resp = await async_client.get("/api/v1/attendance/last", headers=employee_headers)
    assert resp.json()["location"] == "Hors zone"
