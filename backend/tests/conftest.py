"""Pytest configuration and shared fixtures."""
import math
import sys
from pathlib import Path

import pytest

# Ensure backend root is on path when running pytest from repo root or backend
backend = Path(__file__).resolve().parent.parent
if str(backend) not in sys.path:
    sys.path.insert(0, str(backend))

from src.data.geo import EARTH_RADIUS_KM, GeoPoint  # noqa: E402
from src.search.models import Candidate  # noqa: E402

KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180.0


def north_of(lat: float, km: float) -> float:
    """Latitude `km` kilometers due north of `lat` along a meridian (exact on the sphere)."""
    return lat + km / KM_PER_DEGREE


def make_candidate(cid, lat, lng, payload=None) -> Candidate:
    return Candidate(id=cid, point=GeoPoint(lat, lng), payload=payload)


@pytest.fixture
def app_db(tmp_path):
    """Temporary app DB with empty events and venues tables."""
    from src.data.events_repo import init_db
    from src.data.venues_repo import init_venues_db

    db = tmp_path / "umap.db"
    init_db(db)
    init_venues_db(db)
    return db
