"""Pydantic models for GET /events and GET /events/count."""
from pydantic import BaseModel


class CenterModel(BaseModel):
    latitude: float
    longitude: float


class DataQualityItem(BaseModel):
    id: int | str
    latitude: float | str | None = None
    longitude: float | str | None = None
    reason: str


class EventResult(BaseModel):
    id: int
    name: str
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    latitude: float
    longitude: float
    distance_km: float  # rounded to 0.1 km


class NearbyEventsResponse(BaseModel):
    success: bool = True
    count: int
    radius: float
    center: CenterModel
    results: list[EventResult]
    warnings: list[DataQualityItem] = []


class NearbyCountResponse(BaseModel):
    success: bool = True
    count: int
    radius: float
    center: CenterModel
    warnings: list[DataQualityItem] = []
