"""
Coordinate math shared by the bounding-box pre-filter and the distance ranker.

Earth is treated as a sphere of radius 6371 km. One degree of latitude is taken
as 111,000 m everywhere; one degree of longitude shrinks with cos(latitude).
"""
import math
from typing import NamedTuple

# Earth radius in km (WGS84 approximate)
EARTH_RADIUS_KM = 6371.0

METERS_PER_DEGREE_LAT = 111_000.0

# Floor for |cos(lat)| so the longitude delta stays finite at the poles.
MIN_COS_LAT = 1e-6

LAT_MIN, LAT_MAX = -90.0, 90.0
LNG_MIN, LNG_MAX = -180.0, 180.0


class GeoPoint(NamedTuple):
    latitude: float
    longitude: float


def is_valid_point(lat: float, lng: float) -> bool:
    """True if lat/lng are finite numbers inside [-90, 90] x [-180, 180]."""
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return False
    if math.isnan(lat) or math.isnan(lng):
        return False
    return LAT_MIN <= lat <= LAT_MAX and LNG_MIN <= lng <= LNG_MAX


def meters_per_degree_lng(lat: float) -> float:
    """Approximate meters in one degree of longitude at latitude `lat` (degrees)."""
    cos_lat = abs(math.cos(math.radians(lat)))
    return METERS_PER_DEGREE_LAT * max(MIN_COS_LAT, cos_lat)


def haversine_distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Return great-circle distance between two points in kilometers.
    Arguments in degrees.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
    # Rounding can push a a hair past 1 for near-antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return great-circle distance in meters. Arguments in degrees."""
    return haversine_distance_km(lat1, lng1, lat2, lng2) * 1000.0
