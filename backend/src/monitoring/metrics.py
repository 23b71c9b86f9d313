"""In-memory request and search metrics for the /metrics endpoint."""
import time
from collections.abc import MutableMapping
from threading import Lock

_start_time = time.monotonic()
_counts: MutableMapping[str, int] = {}
_search_counts: MutableMapping[str, int] = {}
_lock = Lock()


def record_request(status_code: int) -> None:
    if 200 <= status_code < 300:
        bucket = "2xx"
    elif 400 <= status_code < 500:
        bucket = "4xx"
    elif status_code >= 500:
        bucket = "5xx"
    else:
        bucket = "other"
    with _lock:
        _counts[bucket] = _counts.get(bucket, 0) + 1


def record_search(outcome: str, excluded: int = 0) -> None:
    """outcome: "ok" or an ErrorKind value. excluded: candidates dropped for bad coordinates."""
    with _lock:
        _search_counts[outcome] = _search_counts.get(outcome, 0) + 1
        if excluded:
            _search_counts["excluded_candidates"] = _search_counts.get("excluded_candidates", 0) + excluded


def get_metrics() -> dict:
    with _lock:
        counts = dict(_counts)
        searches = dict(_search_counts)
    uptime_seconds = time.monotonic() - _start_time
    return {
        "requests_total": sum(counts.values()),
        "requests_2xx": counts.get("2xx", 0),
        "requests_4xx": counts.get("4xx", 0),
        "requests_5xx": counts.get("5xx", 0),
        "searches_ok": searches.get("ok", 0),
        "searches_failed": sum(v for k, v in searches.items() if k not in ("ok", "excluded_candidates")),
        "excluded_candidates": searches.get("excluded_candidates", 0),
        "uptime_seconds": round(uptime_seconds, 1),
    }
