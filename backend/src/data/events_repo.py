"""
Events repository: SQLite table of events and a candidate source that answers
bounding-box range queries against it with keyset pagination on id.
"""
import sqlite3
from pathlib import Path
from typing import Any, NamedTuple

from src.data.geo import GeoPoint
from src.search.bbox import BoundingBox, sql_box_clause
from src.search.errors import SourceUnavailableError
from src.search.models import Candidate
from src.search.source import CandidatePage

DEFAULT_PAGE_SIZE = 500


class EventRecord(NamedTuple):
    id: int
    name: str
    description: str | None
    start_time: str | None
    end_time: str | None
    latitude: float
    longitude: float


def init_db(db_path: str | Path) -> None:
    """Create events table and index if they do not exist."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                start_time TEXT,
                end_time TEXT,
                latitude REAL NOT NULL,
                longitude REAL NOT NULL
            )
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_events_lat_lng ON events(latitude, longitude)"
        )
        conn.commit()


def insert_event(
    db_path: str | Path,
    *,
    name: str,
    latitude: float,
    longitude: float,
    description: str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    event_id: int | None = None,
) -> EventRecord:
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            """
            INSERT INTO events (id, name, description, start_time, end_time, latitude, longitude)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (event_id, name, description, start_time, end_time, latitude, longitude),
        )
        conn.commit()
        new_id = cur.lastrowid
    return EventRecord(
        id=new_id,
        name=name,
        description=description,
        start_time=start_time,
        end_time=end_time,
        latitude=latitude,
        longitude=longitude,
    )


def _row_to_record(r: sqlite3.Row) -> EventRecord:
    return EventRecord(
        id=r["id"],
        name=r["name"],
        description=r["description"],
        start_time=r["start_time"],
        end_time=r["end_time"],
        latitude=r["latitude"],
        longitude=r["longitude"],
    )


class EventsSource:
    """Candidate source over the events table. Cursor is the last id of the previous page."""

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
        columns = (
            "id, name, description, start_time, end_time, latitude, longitude"
            if include_payload
            else "id, latitude, longitude"
        )
        after_id = int(cursor) if cursor is not None else -1
        box_clause, box_params = sql_box_clause(box, "latitude", "longitude")
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.row_factory = sqlite3.Row
                cur = conn.execute(
                    f"""
                    SELECT {columns}
                    FROM events
                    WHERE {box_clause}
                      AND id > ?
                    ORDER BY id
                    LIMIT ?
                    """,
                    (*box_params, after_id, self.page_size),
                )
                rows = cur.fetchall()
        except sqlite3.Error as e:
            raise SourceUnavailableError(f"events query failed: {e}") from e

        candidates = []
        for r in rows:
            point = GeoPoint(r["latitude"], r["longitude"])
            payload = _row_to_record(r) if include_payload else None
            candidates.append(Candidate(id=r["id"], point=point, payload=payload))
        next_cursor = rows[-1]["id"] if len(rows) == self.page_size else None
        return CandidatePage(candidates=candidates, next_cursor=next_cursor)
