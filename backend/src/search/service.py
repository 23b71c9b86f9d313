"""
Nearby search: validate the query, pull candidates inside the bounding box from the
injected source page by page, then rank them by exact distance.

The source is passed in per call; nothing here holds a connection or global state.
"""
import logging
from typing import Any, Iterator

from src.data.geo import GeoPoint
from src.search.bbox import BoundingBox, bounding_box, validate_query
from src.search.errors import InvalidArgumentError, ResourceExceededError
from src.search.models import (
    DEFAULT_MAX_RESULTS,
    Candidate,
    CountResult,
    SearchQuery,
    SearchResult,
)
from src.search.ranker import count_within, rank_candidates
from src.search.source import CandidateSource

logger = logging.getLogger(__name__)

# Upper bound on candidates pulled from the source for one search
DEFAULT_MAX_CANDIDATES = 10_000


def _collect(
    source: CandidateSource,
    box: BoundingBox,
    max_candidates: int,
    include_payload: bool = True,
) -> Iterator[Candidate]:
    """Drain the source's pages, failing once more than max_candidates have been read."""
    cursor: Any = None
    seen = 0
    while True:
        page = source.fetch_in_box(box, cursor, include_payload=include_payload)
        seen += len(page.candidates)
        if seen > max_candidates:
            logger.warning(
                "telemetry search_resource_exceeded max_candidates=%s box=%s",
                max_candidates,
                tuple(round(v, 5) for v in box),
            )
            raise ResourceExceededError(
                f"More than {max_candidates} candidates in the search area. Narrow the radius.",
                limit=max_candidates,
            )
        yield from page.candidates
        if page.next_cursor is None:
            return
        cursor = page.next_cursor


def search(
    center: GeoPoint,
    radius_m: float,
    max_results: int | None = None,
    *,
    source: CandidateSource,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> SearchResult:
    """
    Return candidates within radius_m meters of center, closest first, capped at
    max_results (default 100).

    Raises InvalidArgumentError before touching the source, ResourceExceededError
    when the box holds too many candidates, and lets SourceUnavailableError from
    the source propagate.
    """
    validate_query(center, radius_m)
    if max_results is None:
        max_results = DEFAULT_MAX_RESULTS
    if max_results <= 0:
        raise InvalidArgumentError("max_results must be greater than 0")

    query = SearchQuery(center=center, radius_m=float(radius_m))
    box = bounding_box(query.center, query.radius_m)
    # Materialize first so the cap check finishes before any ranking work
    candidates = list(_collect(source, box, max_candidates))
    outcome = rank_candidates(query.center, candidates, max_results=max_results, radius_m=query.radius_m)
    logger.info(
        "telemetry search radius_m=%s candidates=%s results=%s excluded=%s",
        query.radius_m,
        len(candidates),
        len(outcome.results),
        len(outcome.warnings),
    )
    return SearchResult(
        center=query.center,
        radius_m=query.radius_m,
        results=outcome.results,
        warnings=outcome.warnings,
    )


def count_nearby(
    center: GeoPoint,
    radius_m: float,
    *,
    source: CandidateSource,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> CountResult:
    """Count candidates within radius_m of center. Payloads are not loaded."""
    validate_query(center, radius_m)
    query = SearchQuery(center=center, radius_m=float(radius_m))
    box = bounding_box(query.center, query.radius_m)
    rows = (
        (c.id, c.point.latitude, c.point.longitude)
        for c in _collect(source, box, max_candidates, include_payload=False)
    )
    count, warnings = count_within(query.center, rows, query.radius_m)
    return CountResult(center=query.center, radius_m=query.radius_m, count=count, warnings=warnings)
