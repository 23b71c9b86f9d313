#!/usr/bin/env python3
"""
Seed the app DB with venues (and create the venues table if needed).

Usage:
  python scripts/seed_venues.py --csv data/venues_seed.csv
  python scripts/seed_venues.py --csv data/my_venues.csv --db data/umap.db

CSV columns: name, lat, lng, and optionally description. Rows with a missing name
or out-of-range coordinates are skipped.
"""
import argparse
import csv
import sys
from pathlib import Path

backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend))

from src.data.geo import is_valid_point
from src.data.venues_repo import count_venues, create_venue, init_venues_db


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed venues (and init app DB)")
    parser.add_argument("--csv", required=True, type=Path, help="CSV with columns: name, lat, lng[, description]")
    parser.add_argument(
        "--db",
        default=backend / "data" / "umap.db",
        type=Path,
        help="Path to app SQLite DB",
    )
    args = parser.parse_args()

    if not args.csv.exists():
        print(f"Error: CSV not found: {args.csv}", file=sys.stderr)
        return 1

    init_venues_db(args.db)

    count = 0
    with open(args.csv, newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            name = (row.get("name") or "").strip()
            try:
                lat = float(row.get("lat", ""))
                lng = float(row.get("lng", ""))
            except (TypeError, ValueError):
                continue
            if not name or not is_valid_point(lat, lng):
                continue
            description = (row.get("description") or "").strip() or None
            create_venue(args.db, name=name, lat=lat, lng=lng, description=description)
            count += 1

    print(f"Seeded {count} venues into {args.db} ({count_venues(args.db)} total)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
