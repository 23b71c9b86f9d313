"""Request logging middleware: one line per request, plus the search parameters when present."""
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from src.monitoring.metrics import record_request

logger = logging.getLogger(__name__)

# Query params worth echoing into the access log for nearby searches
_SEARCH_PARAMS = ("radius", "limit")


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def _search_fields(request: Request) -> str:
    parts = [f"{p}={request.query_params[p]}" for p in _SEARCH_PARAMS if p in request.query_params]
    return " ".join(parts)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status, duration_ms, client; record metrics; set X-Response-Time-Ms."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        record_request(response.status_code)
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.1f}"
        logger.info(
            "request method=%s path=%s status=%s duration_ms=%.1f client=%s %s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            _client_ip(request),
            _search_fields(request),
        )
        return response
