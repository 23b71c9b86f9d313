import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from settings import get_settings
from src.data.events_repo import EventsSource, init_db
from src.data.geo import LAT_MAX, LAT_MIN, LNG_MAX, LNG_MIN, GeoPoint
from src.data.venues_repo import (
    VenuesSource,
    count_venues,
    create_venue,
    delete_venue,
    get_venue,
    init_venues_db,
    list_venues,
    update_venue,
)
from src.events.models import (
    CenterModel,
    DataQualityItem,
    EventResult,
    NearbyCountResponse,
    NearbyEventsResponse,
)
from src.middleware import OptionalAPIKeyMiddleware, RequestLoggingMiddleware, get_valid_api_keys
from src.monitoring import get_metrics, record_search
from src.search import (
    DataQualityWarning,
    ErrorKind,
    SearchError,
    count_nearby,
    search,
)
from src.venues.models import (
    CreateVenueRequest,
    NearbyVenue,
    NearbyVenuesResponse,
    UpdateVenueRequest,
    VenueResponse,
    VenuesListResponse,
)

settings = get_settings()
BACKEND_ROOT = Path(__file__).resolve().parent
APP_DB = BACKEND_ROOT / settings.app_db_path

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])

MAX_RESULTS_MIN, MAX_RESULTS_MAX = 1, 500
VENUE_LIST_LIMIT_MAX = 200

# SearchError kind -> HTTP status. Client-correctable kinds are 400; source failures are retryable 503.
_ERROR_STATUS = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.RESOURCE_EXCEEDED: 400,
    ErrorKind.SOURCE_UNAVAILABLE: 503,
}


def _parse_float(raw: str) -> float | None:
    try:
        v = float(raw)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def _parse_center(lat: str | None, lng: str | None) -> GeoPoint:
    """Validate lat/lng query strings the same way for every nearby endpoint."""
    if not lat or not lng:
        raise HTTPException(status_code=400, detail="Missing required query parameters: lat and lng")
    latitude = _parse_float(lat)
    longitude = _parse_float(lng)
    if latitude is None or longitude is None:
        raise HTTPException(status_code=400, detail="Invalid lat or lng: must be numbers")
    if not (LAT_MIN <= latitude <= LAT_MAX):
        raise HTTPException(status_code=400, detail=f"Invalid latitude: must be between {LAT_MIN:g} and {LAT_MAX:g}")
    if not (LNG_MIN <= longitude <= LNG_MAX):
        raise HTTPException(status_code=400, detail=f"Invalid longitude: must be between {LNG_MIN:g} and {LNG_MAX:g}")
    return GeoPoint(latitude, longitude)


def _parse_radius(radius: str | None, default: float) -> float:
    if radius is None or radius == "":
        return default
    value = _parse_float(radius)
    if value is None or value <= 0:
        raise HTTPException(status_code=400, detail="Invalid radius: must be a positive number")
    return value


def _parse_limit(limit: int | None) -> int:
    if limit is None:
        return settings.default_max_results
    if not (MAX_RESULTS_MIN <= limit <= MAX_RESULTS_MAX):
        raise HTTPException(
            status_code=400,
            detail=f"limit must be between {MAX_RESULTS_MIN} and {MAX_RESULTS_MAX}",
        )
    return limit


def _search_http_error(route: str, e: SearchError) -> HTTPException:
    record_search(e.kind.value)
    status = _ERROR_STATUS.get(e.kind, 500)
    if status >= 500:
        logger.warning("telemetry search_error route=%s kind=%s error=%s", route, e.kind.value, e.message)
        return HTTPException(status_code=status, detail="Search backend unavailable. Please try again.")
    logger.info("telemetry search_rejected route=%s kind=%s", route, e.kind.value)
    return HTTPException(status_code=status, detail=e.message)


def _warning_items(warnings: list[DataQualityWarning]) -> list[DataQualityItem]:
    items = []
    for w in warnings:
        lat = w.latitude if isinstance(w.latitude, (int, float, str)) else None
        lng = w.longitude if isinstance(w.longitude, (int, float, str)) else None
        items.append(DataQualityItem(id=w.candidate_id, latitude=lat, longitude=lng, reason=w.reason))
    return items


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(APP_DB)
    init_venues_db(APP_DB)
    yield


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception):
    """Return consistent JSON error for unhandled exceptions (500). Skip validation/HTTP errors."""
    from fastapi.exceptions import RequestValidationError
    if isinstance(exc, (HTTPException, RequestValidationError)):
        raise exc
    logger.exception("telemetry unhandled_exception path=%s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again later."},
    )


# Order: last added = outermost. RequestLogging sees every response (401s included), then CORS, then Auth.
app.add_middleware(
    OptionalAPIKeyMiddleware,
    api_key_required=settings.api_key_required,
    api_keys=get_valid_api_keys(settings.api_keys),
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/")
@limiter.exempt
def root(request: Request):
    return {"message": f"Welcome to {settings.app_name}"}


@app.get("/favicon.ico", include_in_schema=False)
@limiter.exempt
def favicon(request: Request):
    return Response(status_code=204)


@app.get("/health")
@limiter.exempt
def health(request: Request):
    logger.info("telemetry route=health")
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/metrics")
@limiter.exempt
def metrics(request: Request):
    """Request and search counters plus uptime."""
    return get_metrics()


# --- Events (nearby search) ---


@app.get("/events", response_model=NearbyEventsResponse)
def events_nearby(
    request: Request,
    lat: str | None = None,
    lng: str | None = None,
    radius: str | None = None,
    limit: int | None = None,
):
    """
    Events within `radius` meters (default 1000) of (lat, lng), closest first.
    At most `limit` results (default 100). Events with bad coordinates are left out
    and listed under `warnings`.
    """
    center = _parse_center(lat, lng)
    radius_m = _parse_radius(radius, settings.default_radius_m)
    max_results = _parse_limit(limit)
    logger.info("telemetry route=events_nearby radius_m=%s limit=%s", radius_m, max_results)
    source = EventsSource(APP_DB, page_size=settings.source_page_size)
    try:
        result = search(
            center,
            radius_m,
            max_results,
            source=source,
            max_candidates=settings.max_candidates,
        )
    except SearchError as e:
        raise _search_http_error("events_nearby", e) from e
    record_search("ok", excluded=len(result.warnings))
    return NearbyEventsResponse(
        count=result.count,
        radius=result.radius_m,
        center=CenterModel(latitude=center.latitude, longitude=center.longitude),
        results=[
            EventResult(**r.candidate.payload._asdict(), distance_km=r.display_distance_km)
            for r in result.results
        ],
        warnings=_warning_items(result.warnings),
    )


@app.get("/events/count", response_model=NearbyCountResponse)
def events_nearby_count(
    request: Request,
    lat: str | None = None,
    lng: str | None = None,
    radius: str | None = None,
):
    """Number of events within `radius` meters of (lat, lng), without loading them."""
    center = _parse_center(lat, lng)
    radius_m = _parse_radius(radius, settings.default_radius_m)
    logger.info("telemetry route=events_count radius_m=%s", radius_m)
    source = EventsSource(APP_DB, page_size=settings.source_page_size)
    try:
        result = count_nearby(center, radius_m, source=source, max_candidates=settings.max_candidates)
    except SearchError as e:
        raise _search_http_error("events_count", e) from e
    record_search("ok", excluded=len(result.warnings))
    return NearbyCountResponse(
        count=result.count,
        radius=result.radius_m,
        center=CenterModel(latitude=center.latitude, longitude=center.longitude),
        warnings=_warning_items(result.warnings),
    )


# --- Venues ---


def _venue_response(v) -> VenueResponse:
    return VenueResponse(**v._asdict())


@app.get("/venues/nearby", response_model=NearbyVenuesResponse)
def venues_nearby(
    request: Request,
    lat: str | None = None,
    lng: str | None = None,
    radius: str | None = None,
    limit: int | None = None,
):
    """Venues within `radius` meters (default 10 km) of (lat, lng), closest first."""
    center = _parse_center(lat, lng)
    radius_m = _parse_radius(radius, settings.venues_default_radius_m)
    max_results = _parse_limit(limit)
    logger.info("telemetry route=venues_nearby radius_m=%s limit=%s", radius_m, max_results)
    source = VenuesSource(APP_DB, page_size=settings.source_page_size)
    try:
        result = search(
            center,
            radius_m,
            max_results,
            source=source,
            max_candidates=settings.max_candidates,
        )
    except SearchError as e:
        raise _search_http_error("venues_nearby", e) from e
    record_search("ok", excluded=len(result.warnings))
    return NearbyVenuesResponse(
        count=result.count,
        radius=result.radius_m,
        center=CenterModel(latitude=center.latitude, longitude=center.longitude),
        results=[
            NearbyVenue(**r.candidate.payload._asdict(), distance_km=r.display_distance_km)
            for r in result.results
        ],
        warnings=_warning_items(result.warnings),
    )


@app.get("/venues", response_model=VenuesListResponse)
def get_venues(request: Request, limit: int = 50, offset: int = 0):
    """Newest venues first, paginated."""
    if not (1 <= limit <= VENUE_LIST_LIMIT_MAX):
        limit = 50
    offset = max(0, offset)
    venues = list_venues(APP_DB, limit=limit, offset=offset)
    return VenuesListResponse(venues=[_venue_response(v) for v in venues], total=count_venues(APP_DB))


@app.post("/venues", response_model=VenueResponse, status_code=201)
def post_venue(request: Request, body: CreateVenueRequest):
    try:
        rec = create_venue(APP_DB, name=body.name, description=body.description, lat=body.lat, lng=body.lng)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    logger.info("telemetry route=venue_create venue_id=%s", rec.id)
    return _venue_response(rec)


@app.get("/venues/{venue_id}", response_model=VenueResponse)
def get_venue_by_id(request: Request, venue_id: int):
    rec = get_venue(APP_DB, venue_id)
    if rec is None:
        raise HTTPException(status_code=404, detail="Venue not found.")
    return _venue_response(rec)


@app.patch("/venues/{venue_id}", response_model=VenueResponse)
def patch_venue(request: Request, venue_id: int, body: UpdateVenueRequest):
    # Explicit null only clears the optional description
    updates = {
        k: v
        for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k == "description"
    }
    try:
        rec = update_venue(APP_DB, venue_id, updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if rec is None:
        raise HTTPException(status_code=404, detail="Venue not found.")
    logger.info("telemetry route=venue_update venue_id=%s fields=%s", venue_id, ",".join(sorted(updates)))
    return _venue_response(rec)


@app.delete("/venues/{venue_id}", status_code=204)
def delete_venue_by_id(request: Request, venue_id: int):
    if not delete_venue(APP_DB, venue_id):
        raise HTTPException(status_code=404, detail="Venue not found.")
