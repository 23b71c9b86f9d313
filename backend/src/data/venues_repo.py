"""
Venues table in the app SQLite DB: CRUD helpers plus a candidate source for nearby search.
"""
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, NamedTuple

from src.data.geo import GeoPoint
from src.search.bbox import BoundingBox, sql_box_clause
from src.search.errors import SourceUnavailableError
from src.search.models import Candidate
from src.search.source import CandidatePage

DEFAULT_PAGE_SIZE = 500

# Columns a caller may change through update_venue
UPDATABLE_FIELDS = frozenset({"name", "description", "lat", "lng"})


class VenueRecord(NamedTuple):
    id: int
    name: str
    description: str | None
    lat: float
    lng: float
    created_at: str


def init_venues_db(db_path: str | Path) -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS venues (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                lat REAL NOT NULL,
                lng REAL NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_venues_lat_lng ON venues(lat, lng)")
        conn.commit()


def _record(r: sqlite3.Row) -> VenueRecord:
    return VenueRecord(
        id=r["id"],
        name=r["name"],
        description=r["description"],
        lat=r["lat"],
        lng=r["lng"],
        created_at=r["created_at"],
    )


def create_venue(
    db_path: str | Path,
    *,
    name: str,
    lat: float,
    lng: float,
    description: str | None = None,
) -> VenueRecord:
    db_path = Path(db_path)
    if not db_path.exists():
        raise ValueError("Database not initialized. Run seed_venues.py first.")
    created_at = datetime.now(timezone.utc).isoformat()
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            "INSERT INTO venues (name, description, lat, lng, created_at) VALUES (?, ?, ?, ?, ?)",
            (name, description, lat, lng, created_at),
        )
        conn.commit()
        vid = cur.lastrowid
    return VenueRecord(id=vid, name=name, description=description, lat=lat, lng=lng, created_at=created_at)


def get_venue(db_path: str | Path, venue_id: int) -> VenueRecord | None:
    db_path = Path(db_path)
    if not db_path.exists():
        return None
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        r = conn.execute(
            "SELECT id, name, description, lat, lng, created_at FROM venues WHERE id = ?",
            (venue_id,),
        ).fetchone()
        return _record(r) if r is not None else None


def list_venues(db_path: str | Path, limit: int = 50, offset: int = 0) -> list[VenueRecord]:
    """Newest first."""
    db_path = Path(db_path)
    if not db_path.exists():
        return []
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        cur = conn.execute(
            """
            SELECT id, name, description, lat, lng, created_at
            FROM venues
            ORDER BY created_at DESC, id DESC
            LIMIT ? OFFSET ?
            """,
            (limit, offset),
        )
        return [_record(r) for r in cur.fetchall()]


def update_venue(db_path: str | Path, venue_id: int, updates: dict[str, Any]) -> VenueRecord | None:
    """
    Apply a field -> value mapping to one venue. Keys outside UPDATABLE_FIELDS raise
    ValueError; column names come from the allow-list, values are always bound parameters.
    Returns the updated venue, or None if it does not exist.
    """
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
    if not updates:
        return get_venue(db_path, venue_id)
    # Fixed column order, independent of the caller's dict order
    columns = [f for f in sorted(UPDATABLE_FIELDS) if f in updates]
    assignments = ", ".join(f"{col} = ?" for col in columns)
    params = [updates[col] for col in columns] + [venue_id]
    db_path = Path(db_path)
    if not db_path.exists():
        return None
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(f"UPDATE venues SET {assignments} WHERE id = ?", params)
        conn.commit()
        if cur.rowcount == 0:
            return None
    return get_venue(db_path, venue_id)


def delete_venue(db_path: str | Path, venue_id: int) -> bool:
    """Returns True if a row was deleted."""
    db_path = Path(db_path)
    if not db_path.exists():
        return False
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute("DELETE FROM venues WHERE id = ?", (venue_id,))
        conn.commit()
        return cur.rowcount > 0


def count_venues(db_path: str | Path) -> int:
    db_path = Path(db_path)
    if not db_path.exists():
        return 0
    with sqlite3.connect(db_path) as conn:
        return int(conn.execute("SELECT COUNT(*) FROM venues").fetchone()[0])


class VenuesSource:
    """Candidate source over the venues table, paged by id."""

    def __init__(self, db_path: str | Path, page_size: int = DEFAULT_PAGE_SIZE):
        self.db_path = Path(db_path)
        self.page_size = page_size

    def fetch_in_box(
        self,
        box: BoundingBox,
        cursor: Any = None,
        *,
        include_payload: bool = True,
    ) -> CandidatePage:
        if not self.db_path.exists():
            return CandidatePage(candidates=[])
        columns = "id, name, description, lat, lng, created_at" if include_payload else "id, lat, lng"
        after_id = int(cursor) if cursor is not None else -1
        box_clause, box_params = sql_box_clause(box, "lat", "lng")
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.row_factory = sqlite3.Row
                rows = conn.execute(
                    f"""
                    SELECT {columns}
                    FROM venues
                    WHERE {box_clause} AND id > ?
                    ORDER BY id
                    LIMIT ?
                    """,
                    (*box_params, after_id, self.page_size),
                ).fetchall()
        except sqlite3.Error as e:
            raise SourceUnavailableError(f"venues query failed: {e}") from e
        candidates = [
            Candidate(
                id=r["id"],
                point=GeoPoint(r["lat"], r["lng"]),
                payload=_record(r) if include_payload else None,
            )
            for r in rows
        ]
        next_cursor = rows[-1]["id"] if len(rows) == self.page_size else None
        return CandidatePage(candidates=candidates, next_cursor=next_cursor)
