"""Value types passed between the pre-filter, the ranker and the search service."""
from dataclasses import dataclass, field
from typing import Generic, Hashable, NamedTuple, TypeVar

from src.data.geo import GeoPoint
from src.search.errors import ErrorKind

P = TypeVar("P")

DEFAULT_MAX_RESULTS = 100
DISTANCE_DISPLAY_DECIMALS = 1


class SearchQuery(NamedTuple):
    center: GeoPoint
    radius_m: float


@dataclass(frozen=True)
class Candidate(Generic[P]):
    """A searchable record: stable id, location, and a payload the engine never inspects."""

    id: Hashable
    point: GeoPoint
    payload: P = None


@dataclass(frozen=True)
class RankedResult(Generic[P]):
    candidate: Candidate[P]
    distance_km: float

    @property
    def display_distance_km(self) -> float:
        return round(self.distance_km, DISTANCE_DISPLAY_DECIMALS)


@dataclass(frozen=True)
class DataQualityWarning:
    candidate_id: Hashable
    latitude: object
    longitude: object
    reason: str = "coordinates out of range"
    kind: ErrorKind = ErrorKind.DATA_QUALITY


@dataclass
class RankOutcome(Generic[P]):
    results: list[RankedResult[P]] = field(default_factory=list)
    warnings: list[DataQualityWarning] = field(default_factory=list)


@dataclass
class SearchResult(Generic[P]):
    """What `search` hands back to the HTTP layer."""

    center: GeoPoint
    radius_m: float
    results: list[RankedResult[P]]
    warnings: list[DataQualityWarning] = field(default_factory=list)
    success: bool = True

    @property
    def count(self) -> int:
        return len(self.results)


@dataclass
class CountResult:
    center: GeoPoint
    radius_m: float
    count: int
    warnings: list[DataQualityWarning] = field(default_factory=list)
    success: bool = True
