"""Tests for the distance ranker: ordering, tie-break, truncation, bad coordinates."""
import random

import pytest

from conftest import make_candidate, north_of
from src.data.geo import GeoPoint
from src.search.errors import ErrorKind, InvalidArgumentError
from src.search.models import DEFAULT_MAX_RESULTS, RankedResult
from src.search.ranker import count_within, rank_candidates

CENTER = GeoPoint(40.0, -88.0)


def _at_km(cid, km: float, payload=None):
    return make_candidate(cid, north_of(CENTER.latitude, km), CENTER.longitude, payload)


def test_orders_by_ascending_distance():
    candidates = [_at_km(f"p{km}", km) for km in [1, 5, 2, 9, 3]]
    outcome = rank_candidates(CENTER, candidates)
    assert [round(r.distance_km, 6) for r in outcome.results] == [1, 2, 3, 5, 9]
    assert [r.candidate.id for r in outcome.results] == ["p1", "p2", "p3", "p5", "p9"]
    assert outcome.warnings == []


def test_output_is_non_decreasing_for_random_sets():
    rng = random.Random(7)
    candidates = [
        make_candidate(i, rng.uniform(39.5, 40.5), rng.uniform(-88.5, -87.5)) for i in range(300)
    ]
    results = rank_candidates(CENTER, candidates, max_results=300).results
    distances = [r.distance_km for r in results]
    assert distances == sorted(distances)
    assert len(results) == 300


def test_truncation_keeps_the_closest():
    kms = [0.1 * i for i in range(1, 151)]
    candidates = [_at_km(i, km) for i, km in enumerate(kms)]
    random.Random(99).shuffle(candidates)
    results = rank_candidates(CENTER, candidates, max_results=100).results
    assert len(results) == 100
    assert sorted(r.candidate.id for r in results) == list(range(100))
    # The 101st-closest (id 100) is the one left out
    assert 100 not in {r.candidate.id for r in results}


def test_default_cap_is_100():
    candidates = [_at_km(i, 0.01 * (i + 1)) for i in range(150)]
    assert DEFAULT_MAX_RESULTS == 100
    assert len(rank_candidates(CENTER, candidates).results) == 100
    assert len(rank_candidates(CENTER, candidates, max_results=None).results) == 100


def test_equal_distance_broken_by_id():
    a = _at_km(7, 2.0)
    b = make_candidate(3, a.point.latitude, a.point.longitude)
    for order in ([a, b], [b, a]):
        ids = [r.candidate.id for r in rank_candidates(CENTER, order).results]
        assert ids == [3, 7]


def test_tie_break_is_stable_under_truncation():
    same = [make_candidate(i, 40.01, -88.0) for i in (5, 1, 4, 2, 3)]
    results = rank_candidates(CENTER, same, max_results=3).results
    assert [r.candidate.id for r in results] == [1, 2, 3]


def test_radius_filter_drops_corner_false_positives():
    candidates = [_at_km("in", 0.9), _at_km("out", 1.1)]
    outcome = rank_candidates(CENTER, candidates, radius_m=1000)
    assert [r.candidate.id for r in outcome.results] == ["in"]


def test_bad_coordinates_become_warnings():
    candidates = [
        _at_km("ok", 1.0),
        make_candidate("bad_lat", 95.0, -88.0),
        make_candidate("bad_lng", 40.0, -200.0),
        make_candidate("nan", float("nan"), -88.0),
    ]
    outcome = rank_candidates(CENTER, candidates)
    assert [r.candidate.id for r in outcome.results] == ["ok"]
    assert [w.candidate_id for w in outcome.warnings] == ["bad_lat", "bad_lng", "nan"]
    assert all(w.kind is ErrorKind.DATA_QUALITY for w in outcome.warnings)


def test_distance_kept_at_full_precision_and_rounded_for_display():
    r = RankedResult(candidate=_at_km(1, 1.26), distance_km=1.2649)
    assert r.distance_km == 1.2649
    assert r.display_distance_km == 1.3


def test_rounding_does_not_change_rank_order():
    # Both round to 1.0 for display; full precision still orders them
    candidates = [_at_km("far", 1.04), _at_km("near", 1.01)]
    results = rank_candidates(CENTER, candidates).results
    assert [r.candidate.id for r in results] == ["near", "far"]
    assert [r.display_distance_km for r in results] == [1.0, 1.0]


def test_payload_is_carried_through_untouched():
    payload = {"name": "Quad Day", "anything": [1, 2, 3]}
    results = rank_candidates(CENTER, [_at_km(1, 0.5, payload)]).results
    assert results[0].candidate.payload is payload


def test_non_positive_max_results_is_invalid():
    with pytest.raises(InvalidArgumentError):
        rank_candidates(CENTER, [], max_results=0)


def test_count_within():
    rows = [
        (1, north_of(40.0, 0.5), -88.0),
        (2, north_of(40.0, 1.5), -88.0),
        (3, 400.0, -88.0),
    ]
    count, warnings = count_within(CENTER, rows, 1000)
    assert count == 1
    assert [w.candidate_id for w in warnings] == [3]
