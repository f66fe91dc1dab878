"""Pydantic schemas for geofence (Location) CRUD."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name must not be empty")
    if len(v) > 200:
        raise ValueError("Name must not exceed 200 characters")
    return v


class LocationCreate(BaseModel):
    name: str
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)
    radius: float = Field(gt=0, allow_inf_nan=False)  # meters

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _clean_name(v)


class LocationUpdate(BaseModel):
    name: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    longitude: float | None = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    radius: float | None = Field(default=None, gt=0, allow_inf_nan=False)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _clean_name(v)


class LocationRead(BaseModel):
    id: str
    name: str
    latitude: float
    longitude: float
    radius: float
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class LocationWithCount(LocationRead):
    record_count: int = 0
