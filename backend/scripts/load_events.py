#!/usr/bin/env python3
"""
Load events from a CSV file into the app SQLite DB.

CSV must have columns: name, latitude, longitude
Optional columns: id, description, start_time, end_time
(Header row expected. lat/lng are accepted as aliases for latitude/longitude.)

Usage:
  python scripts/load_events.py --csv data/events.csv
  python scripts/load_events.py --csv data/events.csv --db data/umap.db --replace
"""
import argparse
import csv
import sqlite3
import sys
from pathlib import Path

backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend))

from src.data.events_repo import init_db
from src.data.geo import is_valid_point


def _normalize(row: dict) -> dict:
    # Strip BOM / spaces from headers
    return {(k or "").strip().lower().lstrip("\ufeff"): (v or "").strip() for k, v in row.items()}


def main() -> int:
    parser = argparse.ArgumentParser(description="Load events CSV into SQLite")
    parser.add_argument("--csv", required=True, type=Path, help="CSV with name, latitude, longitude columns")
    parser.add_argument(
        "--db",
        default=backend / "data" / "umap.db",
        type=Path,
        help="Path to app SQLite DB",
    )
    parser.add_argument("--replace", action="store_true", help="Delete existing events before loading")
    args = parser.parse_args()

    if not args.csv.exists():
        print(f"Error: CSV not found: {args.csv}", file=sys.stderr)
        return 1

    init_db(args.db)

    loaded = skipped = 0
    with sqlite3.connect(args.db) as conn:
        if args.replace:
            conn.execute("DELETE FROM events")
        with open(args.csv, newline="", encoding="utf-8") as f:
            for raw in csv.DictReader(f):
                row = _normalize(raw)
                name = row.get("name", "")
                try:
                    lat = float(row.get("latitude") or row.get("lat") or "")
                    lng = float(row.get("longitude") or row.get("lng") or "")
                except ValueError:
                    skipped += 1
                    continue
                if not name or not is_valid_point(lat, lng):
                    skipped += 1
                    continue
                event_id = int(row["id"]) if row.get("id", "").isdigit() else None
                conn.execute(
                    """
                    INSERT OR REPLACE INTO events (id, name, description, start_time, end_time, latitude, longitude)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        event_id,
                        name,
                        row.get("description") or None,
                        row.get("start_time") or None,
                        row.get("end_time") or None,
                        lat,
                        lng,
                    ),
                )
                loaded += 1
        conn.commit()

    print(f"Loaded {loaded} events into {args.db} (skipped {skipped})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
