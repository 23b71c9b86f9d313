"""
Bounding-box pre-filter: turn (center, radius) into a lat/lng rectangle and keep
the candidates that fall inside it.

The rectangle is the circle's bounding square, so it admits the corners (false
positives) but never drops a point inside the circle:

- Near the poles cos(lat) is clamped to MIN_COS_LAT. Once the circle reaches a
  pole the box spans every meridian.
- A box that runs past +/-180 wraps: lng_min > lng_max and `contains` tests
  `lng >= lng_min OR lng <= lng_max`.
"""
import math
from typing import Iterable, Iterator, NamedTuple, TypeVar

from src.data.geo import (
    EARTH_RADIUS_KM,
    LAT_MAX,
    LAT_MIN,
    LNG_MAX,
    LNG_MIN,
    METERS_PER_DEGREE_LAT,
    GeoPoint,
    is_valid_point,
    meters_per_degree_lng,
)
from src.search.errors import InvalidArgumentError
from src.search.models import Candidate

P = TypeVar("P")

# Half-width that means "every meridian"
FULL_LNG_SPAN_DEG = 180.0


class BoundingBox(NamedTuple):
    lat_min: float
    lat_max: float
    lng_min: float
    lng_max: float

    @property
    def crosses_antimeridian(self) -> bool:
        return self.lng_min > self.lng_max

    def contains(self, lat: float, lng: float) -> bool:
        if not self.lat_min <= lat <= self.lat_max:
            return False
        if self.crosses_antimeridian:
            return lng >= self.lng_min or lng <= self.lng_max
        return self.lng_min <= lng <= self.lng_max


def validate_query(center: GeoPoint, radius_m: float) -> None:
    """Raise InvalidArgumentError for a non-positive radius or an out-of-range center."""
    try:
        radius = float(radius_m)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"radius must be a number, got {radius_m!r}") from e
    if not radius > 0:
        raise InvalidArgumentError("radius must be greater than 0")
    if not is_valid_point(center.latitude, center.longitude):
        raise InvalidArgumentError(
            f"center out of range: lat={center.latitude} lng={center.longitude} "
            "(lat must be in [-90, 90], lng in [-180, 180])"
        )


def _bbox_delta_deg(lat: float, radius_m: float) -> tuple[float, float]:
    """
    Lat/lng half-widths in degrees for a box of radius_m meters around latitude `lat`.
    The longitude half-width is the linear estimate radius / (111 km * cos(lat)), widened
    to the exact spherical value asin(sin(d) / cos(lat)) where that is larger, and
    FULL_LNG_SPAN_DEG when the circle contains a pole.
    """
    dlat = radius_m / METERS_PER_DEGREE_LAT
    dlng = radius_m / meters_per_degree_lng(lat)
    angular = min(radius_m / 1000.0 / EARTH_RADIUS_KM, math.pi / 2)
    sin_angular = math.sin(angular)
    cos_lat = abs(math.cos(math.radians(lat)))
    if sin_angular >= cos_lat:
        return dlat, FULL_LNG_SPAN_DEG
    exact = math.degrees(math.asin(sin_angular / cos_lat))
    return dlat, min(FULL_LNG_SPAN_DEG, max(dlng, exact))


def bounding_box(center: GeoPoint, radius_m: float) -> BoundingBox:
    validate_query(center, radius_m)
    dlat, dlng = _bbox_delta_deg(center.latitude, float(radius_m))
    lat_min = center.latitude - dlat
    lat_max = center.latitude + dlat
    if lat_min <= LAT_MIN or lat_max >= LAT_MAX or dlng >= FULL_LNG_SPAN_DEG:
        return BoundingBox(
            lat_min=max(LAT_MIN, lat_min),
            lat_max=min(LAT_MAX, lat_max),
            lng_min=LNG_MIN,
            lng_max=LNG_MAX,
        )
    lng_min = center.longitude - dlng
    lng_max = center.longitude + dlng
    if lng_min < LNG_MIN:
        lng_min += 360.0
    elif lng_max > LNG_MAX:
        lng_max -= 360.0
    return BoundingBox(lat_min=lat_min, lat_max=lat_max, lng_min=lng_min, lng_max=lng_max)


def sql_box_clause(box: BoundingBox, lat_col: str, lng_col: str) -> tuple[str, tuple[float, ...]]:
    """WHERE fragment and parameters selecting rows inside `box`. Column names are trusted."""
    if box.crosses_antimeridian:
        return (
            f"{lat_col} BETWEEN ? AND ? AND ({lng_col} >= ? OR {lng_col} <= ?)",
            (box.lat_min, box.lat_max, box.lng_min, box.lng_max),
        )
    return (
        f"{lat_col} BETWEEN ? AND ? AND {lng_col} BETWEEN ? AND ?",
        (box.lat_min, box.lat_max, box.lng_min, box.lng_max),
    )


def prefilter(candidates: Iterable[Candidate[P]], box: BoundingBox) -> Iterator[Candidate[P]]:
    """
    Yield candidates whose point lies inside `box`.
    Malformed coordinates are passed through untouched so the ranker can report them.
    """
    for c in candidates:
        if not is_valid_point(c.point.latitude, c.point.longitude):
            yield c
        elif box.contains(float(c.point.latitude), float(c.point.longitude)):
            yield c
