"""Pydantic models for venue CRUD and GET /venues/nearby."""
from pydantic import BaseModel, field_validator, model_validator

from src.events.models import CenterModel, DataQualityItem


def _check_lat(v: float | None) -> float | None:
    if v is not None and not (-90 <= v <= 90):
        raise ValueError("lat must be between -90 and 90")
    return v


def _check_lng(v: float | None) -> float | None:
    if v is not None and not (-180 <= v <= 180):
        raise ValueError("lng must be between -180 and 180")
    return v


class CreateVenueRequest(BaseModel):
    name: str
    description: str | None = None
    lat: float
    lng: float

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Name must not be empty.")
        return v

    @field_validator("lat")
    @classmethod
    def lat_range(cls, v: float) -> float:
        return _check_lat(v)

    @field_validator("lng")
    @classmethod
    def lng_range(cls, v: float) -> float:
        return _check_lng(v)


class UpdateVenueRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    lat: float | None = None
    lng: float | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty.")
        return v

    @model_validator(mode="after")
    def check_coordinates(self):
        _check_lat(self.lat)
        _check_lng(self.lng)
        return self


class VenueResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    lat: float
    lng: float
    created_at: str


class VenuesListResponse(BaseModel):
    venues: list[VenueResponse]
    total: int


class NearbyVenue(VenueResponse):
    distance_km: float


class NearbyVenuesResponse(BaseModel):
    success: bool = True
    count: int
    radius: float
    center: CenterModel
    results: list[NearbyVenue]
    warnings: list[DataQualityItem] = []
