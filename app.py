"""FastAPI service for the Lifelog Analytics Dashboard.

Serves windowed analytics over cached transcripts (1-hour TTL by default,
since the export only changes when it is re-materialized).  Sentiment
scores are cached for the lifetime of the process.

Deployment: uvicorn app:app --host 127.0.0.1 --port 8204
"""

from __future__ import annotations

import json
import math
import os
import threading
import time
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.concurrency import run_in_threadpool

from analytics import (
    CHART_GENERATORS,
    GROUP_BY_OPTIONS,
    TIME_WINDOWS,
    build_dashboard_payload,
    calculate_dashboard_metrics,
    generate_activity_heatmap,
    generate_chart_data,
    generate_hourly_activity_data,
    get_recent_activity,
)
from lifelogs import load_transcripts
from providers import OpenAISentimentProvider
from sentiment import SentimentCache, generate_sentiment_trend_data

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
DATA_PATH = Path(
    os.environ.get("LIFELOG_DATA_PATH", Path(__file__).parent / "transcripts.json")
)
CACHE_TTL_SECONDS = float(os.environ.get("LIFELOG_CACHE_TTL_SECONDS", "3600"))
DEFAULT_WINDOW = "30d"

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Lifelog Analytics Dashboard")

# ---------------------------------------------------------------------------
# Thread-safe cache
# ---------------------------------------------------------------------------
_cache_lock = threading.Lock()
_cache: dict[str, Any] = {
    "transcripts": None,
    "loaded_at": 0.0,
}

_sentiment_cache = SentimentCache()
_provider: OpenAISentimentProvider | None = None


def _get_transcripts(force_refresh: bool = False) -> list[dict]:
    """Return cached transcripts, reloading if stale or forced."""
    now = time.monotonic()
    with _cache_lock:
        if (
            not force_refresh
            and _cache["transcripts"] is not None
            and (now - _cache["loaded_at"]) < CACHE_TTL_SECONDS
        ):
            return _cache["transcripts"]

    try:
        transcripts = load_transcripts(str(DATA_PATH))
    except FileNotFoundError:
        raise HTTPException(
            status_code=503, detail=f"Transcript export not found: {DATA_PATH.name}"
        ) from None
    except json.JSONDecodeError:
        raise HTTPException(
            status_code=500, detail=f"Transcript export is not valid JSON: {DATA_PATH.name}"
        ) from None

    with _cache_lock:
        _cache["transcripts"] = transcripts
        _cache["loaded_at"] = time.monotonic()

    return transcripts


def _get_provider() -> OpenAISentimentProvider:
    global _provider
    if _provider is None:
        _provider = OpenAISentimentProvider()
    return _provider


def _check_params(window: str, group_by: str | None = None) -> None:
    if window not in TIME_WINDOWS:
        raise HTTPException(
            status_code=422,
            detail=f"Unknown window {window!r}; expected one of {list(TIME_WINDOWS)}",
        )
    if group_by is not None and group_by not in GROUP_BY_OPTIONS:
        raise HTTPException(
            status_code=422,
            detail=f"Unknown group_by {group_by!r}; expected one of {list(GROUP_BY_OPTIONS)}",
        )


def _encode_non_finite(value: Any) -> Any:
    """Replace non-finite floats, which JSON cannot carry, with strings."""
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return None
        return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, dict):
        return {k: _encode_non_finite(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode_non_finite(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/data")
def api_data(window: str = DEFAULT_WINDOW, group_by: str | None = None):
    """Return the full dashboard payload for a window."""
    _check_params(window, group_by)
    payload = build_dashboard_payload(_get_transcripts(), window, group_by)
    return _encode_non_finite(payload)


@app.get("/api/metrics")
def api_metrics(window: str = DEFAULT_WINDOW):
    """Return headline metrics and growth for a window."""
    _check_params(window)
    return _encode_non_finite(calculate_dashboard_metrics(_get_transcripts(), window))


@app.get("/api/charts/{metric}")
def api_chart(metric: str, window: str = DEFAULT_WINDOW, group_by: str | None = None):
    """Return one bucketed chart series (activity, duration or density)."""
    if metric not in CHART_GENERATORS:
        raise HTTPException(status_code=404, detail=f"Unknown chart metric: {metric}")
    _check_params(window, group_by)
    return generate_chart_data(metric, _get_transcripts(), window, group_by)


@app.get("/api/sentiment")
async def api_sentiment(window: str = DEFAULT_WINDOW, group_by: str | None = None):
    """Return the sentiment trend, scoring uncached transcripts on demand."""
    _check_params(window, group_by)
    # Loading the export is blocking file I/O; keep it off the event loop.
    transcripts = await run_in_threadpool(_get_transcripts)
    return await generate_sentiment_trend_data(
        transcripts,
        window,
        _get_provider().analyze,
        _sentiment_cache,
        group_by=group_by,
    )


@app.get("/api/hourly")
def api_hourly(window: str = DEFAULT_WINDOW):
    """Return the 24-slot hour-of-day activity profile (UTC)."""
    _check_params(window)
    return generate_hourly_activity_data(_get_transcripts(), window)


@app.get("/api/heatmap")
def api_heatmap(window: str = DEFAULT_WINDOW):
    """Return the weekday x hour recording-count grid (UTC)."""
    _check_params(window)
    return generate_activity_heatmap(_get_transcripts(), window)


@app.get("/api/activity")
def api_activity(window: str = "7d", limit: int = Query(5, ge=1, le=50)):
    """Return the recent-activity feed."""
    _check_params(window)
    return get_recent_activity(_get_transcripts(), limit=limit, window=window)


@app.get("/api/refresh")
def api_refresh():
    """Force a transcript reload."""
    transcripts = _get_transcripts(force_refresh=True)
    return {
        "status": "refreshed",
        "transcript_count": len(transcripts),
    }
