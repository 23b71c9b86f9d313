"""
Distance ranker: haversine distance from the query center to each pre-filtered
candidate, ascending sort with id tie-break, then truncation to max_results.

Distances are kept at full precision here; rounding happens when the HTTP layer
renders them.
"""
import heapq
import logging
from typing import Iterable, TypeVar

from src.data.geo import GeoPoint, haversine_distance_km, is_valid_point
from src.search.errors import InvalidArgumentError
from src.search.models import (
    DEFAULT_MAX_RESULTS,
    Candidate,
    DataQualityWarning,
    RankedResult,
    RankOutcome,
)

logger = logging.getLogger(__name__)

P = TypeVar("P")


def _sort_key(r: RankedResult) -> tuple:
    return (r.distance_km, r.candidate.id)


def rank_candidates(
    center: GeoPoint,
    candidates: Iterable[Candidate[P]],
    max_results: int | None = DEFAULT_MAX_RESULTS,
    radius_m: float | None = None,
) -> RankOutcome[P]:
    """
    Rank candidates by great-circle distance from `center`.

    - Candidates with out-of-range coordinates are skipped and returned as warnings.
    - When `radius_m` is given, candidates farther than the radius are dropped
      (this removes the bounding box's corner false positives).
    - Ties on distance are ordered by ascending candidate id.
    - At most `max_results` results are returned (None falls back to the default).
    """
    if max_results is None:
        max_results = DEFAULT_MAX_RESULTS
    if max_results <= 0:
        raise InvalidArgumentError("max_results must be greater than 0")
    radius_km = radius_m / 1000.0 if radius_m is not None else None

    ranked: list[RankedResult[P]] = []
    warnings: list[DataQualityWarning] = []
    for c in candidates:
        lat, lng = c.point.latitude, c.point.longitude
        if not is_valid_point(lat, lng):
            warnings.append(DataQualityWarning(candidate_id=c.id, latitude=lat, longitude=lng))
            continue
        d = haversine_distance_km(center.latitude, center.longitude, float(lat), float(lng))
        if radius_km is not None and d > radius_km:
            continue
        ranked.append(RankedResult(candidate=c, distance_km=d))

    if warnings:
        logger.warning(
            "telemetry data_quality excluded=%s ids=%s",
            len(warnings),
            ",".join(str(w.candidate_id) for w in warnings[:20]),
        )

    if len(ranked) > max_results:
        results = heapq.nsmallest(max_results, ranked, key=_sort_key)
    else:
        results = sorted(ranked, key=_sort_key)
    return RankOutcome(results=results, warnings=warnings)


def count_within(
    center: GeoPoint,
    points: Iterable[tuple[object, float, float]],
    radius_m: float,
) -> tuple[int, list[DataQualityWarning]]:
    """
    Count (id, lat, lng) rows within radius_m of center without building results.
    Malformed rows are skipped and reported the same way rank_candidates does.
    """
    radius_km = radius_m / 1000.0
    count = 0
    warnings: list[DataQualityWarning] = []
    for cid, lat, lng in points:
        if not is_valid_point(lat, lng):
            warnings.append(DataQualityWarning(candidate_id=cid, latitude=lat, longitude=lng))
            continue
        if haversine_distance_km(center.latitude, center.longitude, float(lat), float(lng)) <= radius_km:
            count += 1
    if warnings:
        logger.warning("telemetry data_quality excluded=%s count_only=true", len(warnings))
    return count, warnings
