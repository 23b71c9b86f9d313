"""Tests for search() / count_nearby(): validation, paging, resource cap, source failures."""
import pytest

import src.search.source as source_module
from conftest import make_candidate, north_of
from src.data.geo import GeoPoint
from src.search import (
    ErrorKind,
    InvalidArgumentError,
    ResourceExceededError,
    SourceUnavailableError,
    count_nearby,
    search,
)
from src.search.source import CandidatePage, InMemorySource

CENTER = GeoPoint(40.1136, -88.2434)


def _ring(n: int, km_step: float = 0.05):
    return [make_candidate(i, north_of(CENTER.latitude, km_step * (i + 1)), CENTER.longitude) for i in range(n)]


class FailingSource:
    def __init__(self):
        self.error = SourceUnavailableError("connection refused")

    def fetch_in_box(self, box, cursor=None, *, include_payload=True):
        raise self.error


def test_search_returns_closest_first_within_radius():
    source = InMemorySource(_ring(30, km_step=0.1) + [make_candidate("far", 40.5, -88.5)])
    result = search(CENTER, 1550, source=source)
    assert result.success is True
    assert result.count == 15
    assert [r.candidate.id for r in result.results] == list(range(15))
    assert result.center == CENTER
    assert result.radius_m == 1550.0


@pytest.mark.parametrize("radius", [0, -5])
def test_invalid_radius_scans_nothing(radius):
    source = InMemorySource(_ring(5))
    with pytest.raises(InvalidArgumentError) as exc:
        search(CENTER, radius, source=source)
    assert exc.value.kind is ErrorKind.INVALID_ARGUMENT
    assert source.calls == 0


def test_invalid_center_scans_nothing():
    source = InMemorySource(_ring(5))
    with pytest.raises(InvalidArgumentError):
        search(GeoPoint(100.0, 0.0), 1000, source=source)
    assert source.calls == 0


def test_invalid_max_results():
    with pytest.raises(InvalidArgumentError):
        search(CENTER, 1000, 0, source=InMemorySource([]))


def test_default_max_results_is_100():
    source = InMemorySource(_ring(150, km_step=0.001), page_size=40)
    result = search(CENTER, 1000, source=source)
    assert result.count == 100
    assert result.results[-1].candidate.id == 99


def test_search_walks_all_pages():
    source = InMemorySource(_ring(23), page_size=5)
    result = search(CENTER, 5000, max_results=50, source=source)
    assert result.count == 23
    assert source.calls == 5


def test_resource_exceeded_when_box_too_dense():
    source = InMemorySource(_ring(25), page_size=10)
    with pytest.raises(ResourceExceededError) as exc:
        search(CENTER, 5000, source=source, max_candidates=20)
    assert exc.value.kind is ErrorKind.RESOURCE_EXCEEDED
    assert exc.value.limit == 20


def test_exactly_at_cap_is_allowed():
    source = InMemorySource(_ring(20), page_size=10)
    assert search(CENTER, 5000, source=source, max_candidates=20).count == 20


def test_source_unavailable_propagates_unchanged():
    source = FailingSource()
    with pytest.raises(SourceUnavailableError) as exc:
        search(CENTER, 1000, source=source)
    assert exc.value is source.error
    assert exc.value.kind is ErrorKind.SOURCE_UNAVAILABLE


def test_bad_candidate_does_not_fail_search():
    source = InMemorySource(_ring(3) + [make_candidate("broken", 40.1136, 999.0)])
    result = search(CENTER, 1000, source=source)
    assert result.count == 3
    assert [w.candidate_id for w in result.warnings] == ["broken"]


def test_polar_center_still_returns_results():
    pole = GeoPoint(90.0, 0.0)
    source = InMemorySource(
        [
            make_candidate("near_pole", 89.995, 45.0),
            make_candidate("other_side", 89.996, -135.0),
            make_candidate("far", 80.0, 0.0),
        ]
    )
    result = search(pole, 1000, source=source)
    assert [r.candidate.id for r in result.results] == ["other_side", "near_pole"]


def test_repeated_searches_give_identical_order():
    tied = [make_candidate(i, 40.12, -88.2434) for i in (9, 2, 5, 1)]
    source = InMemorySource(tied)
    first = [r.candidate.id for r in search(CENTER, 2000, source=source).results]
    for _ in range(5):
        assert [r.candidate.id for r in search(CENTER, 2000, source=source).results] == first
    assert first == [1, 2, 5, 9]


def test_count_nearby_skips_payloads():
    class RecordingSource(InMemorySource):
        def fetch_in_box(self, box, cursor=None, *, include_payload=True):
            self.include_payload = include_payload
            return super().fetch_in_box(box, cursor, include_payload=include_payload)

    candidates = [make_candidate(i, north_of(CENTER.latitude, 0.1 * (i + 1)), CENTER.longitude, {"big": "x" * 100}) for i in range(20)]
    source = RecordingSource(candidates)
    result = count_nearby(CENTER, 1050, source=source)
    assert result.count == 10
    assert source.include_payload is False


def test_count_nearby_validates_and_caps():
    with pytest.raises(InvalidArgumentError):
        count_nearby(CENTER, 0, source=InMemorySource([]))
    with pytest.raises(ResourceExceededError):
        count_nearby(CENTER, 5000, source=InMemorySource(_ring(5)), max_candidates=4)


def test_empty_page_with_cursor_terminates():
    class OnePageSource:
        def fetch_in_box(self, box, cursor=None, *, include_payload=True):
            if cursor is None:
                return CandidatePage(candidates=_ring(2), next_cursor="end")
            return CandidatePage(candidates=[])

    assert search(CENTER, 1000, source=OnePageSource()).count == 2


def test_in_memory_source_scans_each_candidate_once(monkeypatch):
    scanned = []
    real_prefilter = source_module.prefilter

    def counting_prefilter(candidates, box):
        candidates = list(candidates)
        scanned.extend(c.id for c in candidates)
        return real_prefilter(candidates, box)

    monkeypatch.setattr(source_module, "prefilter", counting_prefilter)
    far = [make_candidate(f"far{i}", 10.0, 10.0) for i in range(7)]
    candidates = _ring(23) + far
    source = InMemorySource(candidates, page_size=5)
    result = search(CENTER, 5000, max_results=50, source=source)
    assert result.count == 23
    assert sorted(scanned, key=str) == sorted((c.id for c in candidates), key=str)


def test_search_across_antimeridian():
    source = InMemorySource(
        [
            make_candidate("east", 0.0, 179.995),
            make_candidate("west", 0.0, -179.99),
            make_candidate("far_west", 0.0, -179.0),
        ]
    )
    result = search(GeoPoint(0.0, 179.99), 5000, source=source)
    assert [r.candidate.id for r in result.results] == ["east", "west"]
    assert result.results[1].distance_km == pytest.approx(2.22, abs=0.01)


def test_search_circle_containing_pole():
    source = InMemorySource(
        [
            make_candidate("over_pole", 89.9, 180.0),
            make_candidate("same_meridian", 89.8, 0.0),
            make_candidate("too_far", 89.0, 180.0),
        ]
    )
    result = search(GeoPoint(89.7, 0.0), 50_000, source=source)
    assert [r.candidate.id for r in result.results] == ["same_meridian", "over_pole"]
