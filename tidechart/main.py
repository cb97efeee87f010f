import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from .config import load_settings
from .errors import MalformedDataError
from .interpolation import build_series, compute_series, compute_series_from_levels
from .mapper import extreme_markers, local_timezone
from .models import TideSeriesResult
from .store import parse_day_summary

logger = logging.getLogger(__name__)

settings = load_settings()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class TideSeriesRequest(BaseModel):
    """Chart request for one day of tide extrema."""
    extrema: List[Dict[str, Any]] = Field(
        ..., description="High/low tide events with type, datetime and height_m"
    )
    now: Optional[datetime] = Field(None, description="Reference instant (default: current time)")
    width: int = Field(settings.chart_width, ge=8, le=4096, description="Chart width")
    height: int = Field(settings.chart_height, ge=8, le=4096, description="Chart height")
    extra_hours: float = Field(settings.extra_hours, ge=0, le=24, description="Curve shown past each extremum")
    unit: Literal["m", "ft"] = Field(settings.unit, description="Height label unit")
    step_minutes: Optional[int] = Field(
        None, ge=1, le=180, description="If set, chart a stepped series through all extrema"
    )
    smooth_window_minutes: int = Field(0, ge=0, le=720, description="Moving-average window for the series")
    lat: Optional[float] = Field(None, ge=-90, le=90, description="Latitude, for local marker times")
    lon: Optional[float] = Field(None, ge=-180, le=180, description="Longitude, for local marker times")


app = FastAPI(
    title="Tide Chart API",
    description="Tide curve interpolation and chart sampling from daily high/low extrema",
    version="1.0.0",
)

# Set up rate limiter
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(SecurityHeadersMiddleware)


def _serialize(result: TideSeriesResult) -> Dict[str, Any]:
    return {
        "samples": [{"x": p.x, "y": p.y} for p in result.samples],
        "current_position": {"x": result.current_position.x, "y": result.current_position.y},
        "current_height_label": result.current_height_label,
        "trend": result.trend.value,
    }


@app.post("/api/v1/tide-series")
@limiter.limit("120/minute")
async def post_tide_series(request: Request, body: TideSeriesRequest):
    """
    Compute chart samples and the current water level.

    By default the curve is a cosine bridge between the two extrema around
    `now`. If `step_minutes` is given, a stepped (optionally smoothed) series
    through all extrema is charted instead and the highest/lowest points are
    returned as `markers`.

    An empty `samples` list means the extrema could not bracket `now`.
    """
    try:
        extrema = parse_day_summary(body.extrema)
        now = body.now or datetime.now(timezone.utc)

        markers = ()
        result = None
        if body.step_minutes is not None:
            series = build_series(extrema, body.step_minutes, body.smooth_window_minutes)
            if len(series) >= 3:
                tz = None
                if body.lat is not None and body.lon is not None:
                    tz = local_timezone(body.lat, body.lon)
                result = compute_series_from_levels(series, now, body.width, body.height, unit=body.unit)
                markers = extreme_markers(series, body.width, tz)
        if result is None:
            result = compute_series(
                extrema, now, body.width, body.height,
                extra_hours=body.extra_hours, unit=body.unit,
            )

        response = _serialize(result)
        response["markers"] = [
            {"type": m.kind.value, "x": m.x, "time": m.time_label} for m in markers
        ]
        return response
    except (MalformedDataError, ValueError) as e:
        raise HTTPException(400, detail=str(e))
    except HTTPException:
        raise
    except Exception:
        error_id = uuid.uuid4().hex[:8]
        logger.exception(f"Error {error_id} in post_tide_series")
        raise HTTPException(500, detail=f"Internal error (ref: {error_id})")


@app.get("/health")
async def health():
    return {"status": "healthy", "model": "cosine-bridge"}
