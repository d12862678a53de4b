"""Core time-windowed analytics for lifelog transcripts.

Filters transcripts to an observation window, folds them into hour, day,
week or month buckets and derives the chart series and headline metrics
shown on the dashboard.  Used by both the CLI (lifelog_summary.py) and the
web service (app.py).

Transcripts are plain dicts as delivered by the transcript source, keyed
``id``, ``title``, ``date``, ``content`` and optionally ``summary``,
``isStarred``, ``startTime``, ``endTime`` and ``updatedAt``.
"""

from __future__ import annotations

import csv
import json
import logging
import math
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)

# window -> (lookback, default grouping); a lookback of None means unbounded.
TIME_WINDOWS: dict[str, tuple[timedelta | None, str]] = {
    "24h": (timedelta(hours=24), "hour"),
    "7d": (timedelta(days=7), "day"),
    "30d": (timedelta(days=30), "day"),
    "90d": (timedelta(days=90), "week"),
    "12w": (timedelta(weeks=12), "week"),
    "52w": (timedelta(weeks=52), "week"),
    "all": (None, "month"),
}

GROUP_BY_OPTIONS = ("hour", "day", "week", "month")

SKIP_RATE_WARNING_THRESHOLD = 0.1

CHARS_PER_WORD = 5
WORDS_PER_MINUTE = 150
MIN_ESTIMATED_HOURS = 0.1
ANALYZED_SUMMARY_MIN_LENGTH = 50
RECENT_ACTIVITY_WINDOW = "7d"

NO_TRANSCRIPTS_MESSAGE = "No transcripts found for the selected period."

DurationEstimator = Callable[[dict], float]


# ---------------------------------------------------------------------------
# Temporal helpers
# ---------------------------------------------------------------------------

def safe_parse(
    date_str: Any,
    context_id: str | None = None,
    log_level: int = logging.WARNING,
) -> datetime | None:
    """Parse an ISO-8601 timestamp without ever raising.

    Naive timestamps are interpreted as UTC; aware ones are converted to UTC
    so that every downstream bucket and hour-of-day is computed in a single
    zone.

    Args:
        date_str: The raw value from a transcript field.  Anything that is
            not an ISO-8601 string (or a datetime) is treated as invalid.
        context_id: Id of the owning transcript, included in the diagnostic.
        log_level: Level of the per-item diagnostic.

    Returns:
        A timezone-aware UTC datetime, or None when the value cannot be
        parsed.  Callers treat None as "exclude this item", never as epoch.
    """
    try:
        parsed = date_str if isinstance(date_str, datetime) else datetime.fromisoformat(date_str)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (TypeError, ValueError, OverflowError) as exc:
        logger.log(
            log_level,
            "Invalid date %r for transcript %s: %s. Skipping.",
            date_str, context_id if context_id is not None else "<unknown>", exc,
        )
        return None


def _resolve_now(now: datetime | None) -> datetime:
    """Return *now* as an aware UTC datetime, defaulting to the current time."""
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def _window_config(window: str) -> tuple[timedelta | None, str]:
    try:
        return TIME_WINDOWS[window]
    except KeyError:
        raise ValueError(
            f"Unknown time window {window!r}; expected one of {', '.join(TIME_WINDOWS)}"
        ) from None


def resolve_group_by(window: str, group_by: str | None = None) -> str:
    """Return the bucket granularity for *window*, honouring an override.

    Args:
        window: A key of ``TIME_WINDOWS``.
        group_by: Optional caller override (hour, day, week or month).

    Returns:
        The override when given, otherwise the window's default grouping.

    Raises:
        ValueError: If *window* or *group_by* is not a known option.
    """
    _, default = _window_config(window)
    if group_by is None:
        return default
    if group_by not in GROUP_BY_OPTIONS:
        raise ValueError(
            f"Unknown group_by {group_by!r}; expected one of {', '.join(GROUP_BY_OPTIONS)}"
        )
    return group_by


def _transcript_date(transcript: dict) -> datetime | None:
    return safe_parse(transcript.get("date"), transcript.get("id"))


# ---------------------------------------------------------------------------
# Time-range filter
# ---------------------------------------------------------------------------

def filter_by_window(
    transcripts: list[dict],
    window: str,
    now: datetime | None = None,
) -> list[dict]:
    """Select the transcripts whose ``date`` falls in ``[now - window, now]``.

    Both bounds are inclusive.  Transcripts dated after *now* are excluded
    from every bounded window, as are transcripts whose date cannot be
    parsed (those are reported through ``safe_parse`` diagnostics and the
    dashboard's invalid-date count instead).

    Args:
        transcripts: Transcript dicts in any order; duplicates are kept.
        window: A key of ``TIME_WINDOWS``.  ``"all"`` returns every
            transcript without parsing any dates.
        now: Reference time for the window end.  Defaults to the current
            UTC time.

    Returns:
        A new list with the matching transcripts, in input order.
    """
    lookback, _ = _window_config(window)
    if lookback is None:
        return list(transcripts)

    end = _resolve_now(now)
    start = end - lookback
    result = []
    for transcript in transcripts:
        date = _transcript_date(transcript)
        if date is not None and start <= date <= end:
            result.append(transcript)
    return result


# ---------------------------------------------------------------------------
# Bucketing engine
# ---------------------------------------------------------------------------

def _bucket_start_and_label(date: datetime, group_by: str) -> tuple[datetime, str]:
    """Truncate *date* to its bucket start and build the display label."""
    midnight = date.replace(hour=0, minute=0, second=0, microsecond=0)
    if group_by == "hour":
        start = date.replace(minute=0, second=0, microsecond=0)
        return start, start.strftime("%b %d, %Y %H:00")
    if group_by == "day":
        return midnight, midnight.strftime("%b %d, %Y")
    if group_by == "week":
        monday = midnight - timedelta(days=midnight.weekday())
        return monday, monday.strftime("%b %d, %Y")
    if group_by == "month":
        first = midnight.replace(day=1)
        return first, first.strftime("%b %Y")
    raise ValueError(f"Unknown group_by {group_by!r}")


def group_by_period(
    transcripts: list[dict],
    group_by: str,
    aggregate: Callable[[Any, dict], Any],
    seed: Callable[[datetime], Any],
) -> tuple[dict[str, dict], int]:
    """Fold transcripts into per-period buckets.

    Each transcript is assigned to the bucket containing its ``date``
    (all in UTC; weeks start on Monday).  The first transcript landing in a
    bucket creates its accumulator with ``seed(bucket_start)``; every
    transcript is then folded in with ``aggregate(accumulator, transcript)``
    and the return value replaces the accumulator.

    Transcripts with an unparsable date are skipped and counted, never
    aborting the fold.  When more than 10% of the input is skipped a single
    aggregate warning is logged in place of the per-item diagnostics.

    Args:
        transcripts: Transcript dicts to fold.
        group_by: One of ``GROUP_BY_OPTIONS``.
        aggregate: Folds one transcript into a bucket accumulator.
        seed: Creates a fresh accumulator for a bucket start.

    Returns:
        A 2-tuple of (buckets, skipped):
            - buckets: dict mapping the display label to
              ``{"sort_date": datetime, "data": accumulator}``, ordered by
              ``sort_date`` (never by the label text).
            - skipped: number of transcripts dropped for invalid dates.

    Raises:
        ValueError: If *group_by* is not a known granularity.
    """
    if group_by not in GROUP_BY_OPTIONS:
        raise ValueError(f"Unknown group_by {group_by!r}")

    buckets: dict[str, dict] = {}
    invalid: list[tuple[Any, Any]] = []
    total = 0
    for transcript in transcripts:
        total += 1
        date = safe_parse(transcript.get("date"), transcript.get("id"), logging.DEBUG)
        if date is None:
            invalid.append((transcript.get("id"), transcript.get("date")))
            continue
        start, label = _bucket_start_and_label(date, group_by)
        if label not in buckets:
            buckets[label] = {"sort_date": start, "data": seed(start)}
        buckets[label]["data"] = aggregate(buckets[label]["data"], transcript)

    # A high skip rate gets one aggregate warning instead of one per item.
    skipped = len(invalid)
    if total and skipped / total > SKIP_RATE_WARNING_THRESHOLD:
        logger.warning(
            "Skipped %d of %d transcripts (%.0f%%) with unparsable dates while grouping by %s. "
            "The transcript source may have systemic date quality issues.",
            skipped, total, skipped / total * 100, group_by,
        )
    else:
        for transcript_id, raw_date in invalid:
            logger.warning(
                "Invalid date %r for transcript %s. Skipping.",
                raw_date, transcript_id if transcript_id is not None else "<unknown>",
            )

    ordered = dict(sorted(buckets.items(), key=lambda item: item[1]["sort_date"]))
    return ordered, skipped


# ---------------------------------------------------------------------------
# Derived metrics
# ---------------------------------------------------------------------------

def _content_length(transcript: dict) -> int:
    return len(transcript.get("content") or "")


def estimate_word_count(transcript: dict) -> int:
    """Approximate the number of words in a transcript (~5 chars per word)."""
    return round(_content_length(transcript) / CHARS_PER_WORD)


def _content_length_hours(transcript: dict) -> float:
    words = _content_length(transcript) / CHARS_PER_WORD
    return max(words / WORDS_PER_MINUTE, MIN_ESTIMATED_HOURS)


def estimate_duration(transcript: dict) -> float:
    """Estimate how many hours a transcript's recording lasted.

    When both ``startTime`` and ``endTime`` parse and the end is not before
    the start, their difference is returned exactly (a one-minute recording
    yields 1/60).  Otherwise the duration is estimated from content length
    at ~5 characters per word and 150 words per minute, floored at 0.1.

    Args:
        transcript: A transcript dict.

    Returns:
        A non-negative duration in hours.
    """
    start_raw = transcript.get("startTime")
    end_raw = transcript.get("endTime")
    if start_raw and end_raw:
        transcript_id = transcript.get("id")
        start = safe_parse(start_raw, transcript_id)
        end = safe_parse(end_raw, transcript_id)
        if start is not None and end is not None:
            delta = end - start
            if delta >= timedelta(0):
                return delta.total_seconds() / 3600
            logger.warning(
                "endTime (%s) is before startTime (%s) for transcript %s. "
                "Falling back to content length estimation.",
                end_raw, start_raw, transcript_id,
            )
    return _content_length_hours(transcript)


def has_analysis(transcript: dict) -> bool:
    """Return True if the transcript carries a substantive summary."""
    summary = transcript.get("summary")
    return bool(summary) and len(summary) > ANALYZED_SUMMARY_MIN_LENGTH


def growth_percentage(current: float, previous: float) -> float:
    """Relative change from *previous* to *current*, in percent.

    Args:
        current: Metric total for the current window.
        previous: Metric total for the preceding equal-length window.

    Returns:
        ``(current - previous) / previous * 100``; ``inf`` when growing from
        zero, and ``0.0`` when both are zero.
    """
    if previous == 0:
        return math.inf if current > 0 else 0.0
    return (current - previous) / previous * 100


def _window_totals(
    transcripts: list[dict],
    estimator: DurationEstimator,
) -> dict[str, float]:
    return {
        "recordings": len(transcripts),
        "hours": sum(estimator(t) for t in transcripts),
        "analyses": sum(1 for t in transcripts if has_analysis(t)),
        "bookmarks": sum(1 for t in transcripts if t.get("isStarred")),
    }


def calculate_dashboard_metrics(
    transcripts: list[dict],
    window: str,
    now: datetime | None = None,
    estimator: DurationEstimator = estimate_duration,
) -> dict[str, Any]:
    """Compute the headline dashboard numbers for a window.

    Growth compares the window ``[now - d, now]`` with the immediately
    preceding ``[now - 2d, now - d)``; the half-open edge keeps the two
    periods from overlapping.  For the unbounded window every growth value
    is 0.

    Args:
        transcripts: All transcripts from the source (unfiltered).
        window: A key of ``TIME_WINDOWS``.
        now: Reference time.  Defaults to the current UTC time.
        estimator: Duration strategy used for the hours totals.

    Returns:
        Dict with keys total_recordings, hours_recorded, analyzed_count,
        starred_count, recent_activity (fixed 7-day count),
        growth_percentages (recordings, hours, analyses, bookmarks) and
        invalid_date_count (transcripts whose date could not be parsed).
    """
    lookback, _ = _window_config(window)
    now = _resolve_now(now)

    dated: list[tuple[dict, datetime]] = []
    invalid_date_count = 0
    for transcript in transcripts:
        date = _transcript_date(transcript)
        if date is None:
            invalid_date_count += 1
        else:
            dated.append((transcript, date))

    if lookback is None:
        current = [t for t, _ in dated]
        previous: list[dict] = []
    else:
        current = [t for t, d in dated if now - lookback <= d <= now]
        previous = [t for t, d in dated if now - 2 * lookback <= d < now - lookback]

    recent_lookback, _ = TIME_WINDOWS[RECENT_ACTIVITY_WINDOW]
    recent_activity = sum(1 for _, d in dated if now - recent_lookback <= d <= now)

    totals = _window_totals(current, estimator)
    if lookback is None:
        growth = {key: 0.0 for key in totals}
    else:
        prev_totals = _window_totals(previous, estimator)
        growth = {
            key: round(growth_percentage(totals[key], prev_totals[key]), 1)
            for key in totals
        }

    return {
        "total_recordings": totals["recordings"],
        "hours_recorded": round(totals["hours"], 2),
        "analyzed_count": totals["analyses"],
        "starred_count": totals["bookmarks"],
        "recent_activity": recent_activity,
        "growth_percentages": growth,
        "invalid_date_count": invalid_date_count,
    }


# ---------------------------------------------------------------------------
# Chart generators
# ---------------------------------------------------------------------------

def no_data_response(message: str) -> dict[str, Any]:
    """Build an empty ChartDataResponse with status ``no-data``."""
    return {"data": [], "status": "no-data", "message": message}


def _build_chart_response(
    transcripts: list[dict],
    window: str,
    group_by: str | None,
    now: datetime | None,
    aggregate: Callable[[Any, dict], Any],
    seed: Callable[[datetime], Any],
    to_point: Callable[[str, Any], dict],
    empty_message: str,
) -> dict[str, Any]:
    """Filter, bucket and convert to a ChartDataResponse.

    Args:
        transcripts: All transcripts from the source.
        window: A key of ``TIME_WINDOWS``.
        group_by: Optional granularity override.
        now: Reference time for the window.
        aggregate: Bucket fold, see ``group_by_period``.
        seed: Bucket accumulator factory, see ``group_by_period``.
        to_point: Converts (label, accumulator) into a chart point dict.
        empty_message: Message used when every transcript in the window was
            skipped during bucketing.

    Returns:
        Dict with keys data (list of chart points ordered by bucket start),
        status and message.
    """
    resolved = resolve_group_by(window, group_by)
    filtered = filter_by_window(transcripts, window, now)
    if not filtered:
        return no_data_response(NO_TRANSCRIPTS_MESSAGE)

    buckets, _ = group_by_period(filtered, resolved, aggregate, seed)
    points = [to_point(label, bucket["data"]) for label, bucket in buckets.items()]
    if not points:
        return no_data_response(empty_message)
    return {"data": points, "status": "success", "message": None}


def _activity_point(label: str, count: int) -> dict:
    return {
        "date": label,
        "value": count,
        "label": f"{count} recording{'s' if count != 1 else ''}",
    }


def generate_activity_chart_data(
    transcripts: list[dict],
    window: str,
    group_by: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Count recordings per bucket."""
    return _build_chart_response(
        transcripts, window, group_by, now,
        aggregate=lambda count, _transcript: count + 1,
        seed=lambda _start: 0,
        to_point=_activity_point,
        empty_message="No activity data to display for the selected period and grouping.",
    )


def generate_duration_chart_data(
    transcripts: list[dict],
    window: str,
    group_by: str | None = None,
    now: datetime | None = None,
    estimator: DurationEstimator = estimate_duration,
) -> dict[str, Any]:
    """Sum estimated recording hours per bucket (rounded to 1 decimal)."""

    def to_point(label: str, hours: float) -> dict:
        value = round(hours, 1)
        return {"date": label, "value": value, "label": f"{value} hours"}

    return _build_chart_response(
        transcripts, window, group_by, now,
        aggregate=lambda hours, transcript: hours + estimator(transcript),
        seed=lambda _start: 0.0,
        to_point=to_point,
        empty_message="No duration data to display for the selected period and grouping.",
    )


def _init_density_bucket(_start: datetime) -> dict:
    return {"total_words": 0, "total_minutes": 0.0}


def generate_density_chart_data(
    transcripts: list[dict],
    window: str,
    group_by: str | None = None,
    now: datetime | None = None,
    estimator: DurationEstimator = estimate_duration,
) -> dict[str, Any]:
    """Compute conversation density (words per minute) per bucket.

    Every transcript contributes its estimated word count and at least one
    minute of duration, so a bucket's denominator is never zero.

    Args:
        transcripts: All transcripts from the source.
        window: A key of ``TIME_WINDOWS``.
        group_by: Optional granularity override.
        now: Reference time for the window.
        estimator: Duration strategy, in hours.

    Returns:
        A ChartDataResponse whose values are words per minute rounded to
        1 decimal.
    """

    def aggregate(bucket: dict, transcript: dict) -> dict:
        bucket["total_words"] += estimate_word_count(transcript)
        bucket["total_minutes"] += max(1.0, estimator(transcript) * 60)
        return bucket

    def to_point(label: str, bucket: dict) -> dict:
        minutes = bucket["total_minutes"]
        value = round(bucket["total_words"] / minutes, 1) if minutes > 0 else 0
        return {"date": label, "value": value, "label": f"{value} WPM"}

    return _build_chart_response(
        transcripts, window, group_by, now,
        aggregate=aggregate,
        seed=_init_density_bucket,
        to_point=to_point,
        empty_message="No conversation density data to display for the selected period and grouping.",
    )


CHART_GENERATORS: dict[str, Callable[..., dict[str, Any]]] = {
    "activity": generate_activity_chart_data,
    "duration": generate_duration_chart_data,
    "density": generate_density_chart_data,
}


def generate_chart_data(
    metric: str,
    transcripts: list[dict],
    window: str,
    group_by: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Dispatch to a chart generator, converting failures into a status.

    Args:
        metric: A key of ``CHART_GENERATORS``.
        transcripts: All transcripts from the source.
        window: A key of ``TIME_WINDOWS``.
        group_by: Optional granularity override.
        now: Reference time for the window.

    Returns:
        The generator's ChartDataResponse, or one with status ``error`` if
        the generator raised unexpectedly.

    Raises:
        ValueError: If *metric*, *window* or *group_by* is unknown.
    """
    if metric not in CHART_GENERATORS:
        raise ValueError(
            f"Unknown chart metric {metric!r}; expected one of {', '.join(CHART_GENERATORS)}"
        )
    resolve_group_by(window, group_by)

    try:
        return CHART_GENERATORS[metric](transcripts, window, group_by=group_by, now=now)
    except Exception:
        logger.exception("Failed to generate %s chart data for window %s", metric, window)
        return {
            "data": [],
            "status": "error",
            "message": f"Could not compute {metric} data for the selected period.",
        }


# ---------------------------------------------------------------------------
# Activity patterns
# ---------------------------------------------------------------------------

def generate_hourly_activity_data(
    transcripts: list[dict],
    window: str,
    now: datetime | None = None,
) -> list[dict]:
    """Average word-count activity per UTC hour of day.

    Args:
        transcripts: All transcripts from the source.
        window: A key of ``TIME_WINDOWS``.
        now: Reference time for the window.

    Returns:
        List of 24 dicts (hour 0-23) with keys hour, activity (mean
        estimated words per transcript, 0 for empty hours), count and
        label (``"HH:00"``).
    """
    totals = [0] * 24
    counts = [0] * 24

    for transcript in filter_by_window(transcripts, window, now):
        date = _transcript_date(transcript)
        if date is None:
            continue
        totals[date.hour] += estimate_word_count(transcript)
        counts[date.hour] += 1

    return [
        {
            "hour": hour,
            "activity": round(totals[hour] / counts[hour]) if counts[hour] else 0,
            "count": counts[hour],
            "label": f"{hour:02d}:00",
        }
        for hour in range(24)
    ]


def generate_activity_heatmap(
    transcripts: list[dict],
    window: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Compute a weekday x hour-of-day grid of recording counts (UTC).

    Args:
        transcripts: All transcripts from the source.
        window: A key of ``TIME_WINDOWS``.
        now: Reference time for the window.

    Returns:
        Dict with keys:
            - heatmap: 7x24 nested list (heatmap[weekday][hour]) of counts,
              where weekday 0 is Monday.
            - hourly_totals: list of 24 ints.
            - weekday_totals: list of 7 ints.
    """
    heatmap = [[0] * 24 for _ in range(7)]  # [weekday][hour]
    hourly_totals = [0] * 24
    weekday_totals = [0] * 7

    for transcript in filter_by_window(transcripts, window, now):
        date = _transcript_date(transcript)
        if date is None:
            continue
        weekday = date.weekday()
        heatmap[weekday][date.hour] += 1
        hourly_totals[date.hour] += 1
        weekday_totals[weekday] += 1

    return {
        "heatmap": heatmap,
        "hourly_totals": hourly_totals,
        "weekday_totals": weekday_totals,
    }


def _relative_time(date: datetime, now: datetime) -> str:
    hours = math.floor((now - date).total_seconds() / 3600)
    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days != 1 else ''} ago"


def get_recent_activity(
    transcripts: list[dict],
    limit: int = 5,
    window: str = RECENT_ACTIVITY_WINDOW,
    now: datetime | None = None,
) -> list[dict]:
    """Build the recent-activity feed for the dashboard.

    Takes the *limit* newest transcripts in *window* and emits a
    ``recording`` item for each, plus ``analysis`` and ``bookmark`` items
    for analyzed and starred ones.

    Args:
        transcripts: All transcripts from the source.
        limit: Maximum number of items returned.
        window: A key of ``TIME_WINDOWS``.
        now: Reference time for the window and relative times.

    Returns:
        Activity dicts (id, type, title, description, timestamp,
        relative_time), newest first, at most *limit* long.
    """
    now = _resolve_now(now)
    dated = []
    for transcript in filter_by_window(transcripts, window, now):
        date = _transcript_date(transcript)
        if date is not None:
            dated.append((date, transcript))
    dated.sort(key=lambda item: item[0], reverse=True)

    activities = []
    for date, transcript in dated[:limit]:
        title = transcript.get("title") or "Untitled"
        base = {
            "timestamp": date.isoformat(),
            "relative_time": _relative_time(date, now),
        }
        activities.append({
            "id": f"recording-{transcript.get('id')}",
            "type": "recording",
            "title": "New recording processed",
            "description": title,
            **base,
        })
        if has_analysis(transcript):
            activities.append({
                "id": f"analysis-{transcript.get('id')}",
                "type": "analysis",
                "title": "AI analysis completed",
                "description": f"Generated insights for {title}",
                **base,
            })
        if transcript.get("isStarred"):
            activities.append({
                "id": f"bookmark-{transcript.get('id')}",
                "type": "bookmark",
                "title": "Recording bookmarked",
                "description": title,
                **base,
            })

    # Already newest first; per-transcript order is recording, analysis, bookmark.
    return activities[:limit]


def build_dashboard_payload(
    transcripts: list[dict],
    window: str = "30d",
    group_by: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """One-call entry point: compute every synchronous dashboard section.

    The sentiment trend is not included because it needs an external
    provider; see ``sentiment.generate_sentiment_trend_data``.

    Args:
        transcripts: All transcripts from the source.
        window: A key of ``TIME_WINDOWS``.
        group_by: Optional granularity override for the charts.
        now: Reference time.  Defaults to the current UTC time.

    Returns:
        Dict with keys: generated_at, window, group_by, metrics, charts
        (activity, duration, density), hourly, heatmap, recent_activity.

    Raises:
        ValueError: If *window* or *group_by* is unknown.
    """
    now = _resolve_now(now)
    resolved = resolve_group_by(window, group_by)
    return {
        "generated_at": now.isoformat(),
        "window": window,
        "group_by": resolved,
        "metrics": calculate_dashboard_metrics(transcripts, window, now),
        "charts": {
            metric: generate_chart_data(metric, transcripts, window, group_by, now)
            for metric in CHART_GENERATORS
        },
        "hourly": generate_hourly_activity_data(transcripts, window, now),
        "heatmap": generate_activity_heatmap(transcripts, window, now),
        "recent_activity": get_recent_activity(transcripts, now=now),
    }


# ---------------------------------------------------------------------------
# CLI helpers (used by lifelog_summary.py)
# ---------------------------------------------------------------------------

def save_analytics_files(
    payload: dict[str, Any],
    output_dir: str = "lifelog_analytics",
) -> None:
    """Write the dashboard payload to CSV/JSON files in *output_dir*.

    Creates the output directory if it doesn't exist and writes
    metrics.json, one ``<chart>.json``/``<chart>.csv`` pair per chart in
    ``payload["charts"]`` and hourly.csv.

    Args:
        payload: Dict as returned by ``build_dashboard_payload`` (charts
            may additionally contain a ``sentiment`` response).
        output_dir: Directory path for output files.
    """
    os.makedirs(output_dir, exist_ok=True)

    with open(f"{output_dir}/metrics.json", "w") as f:
        json.dump(payload["metrics"], f, indent=2)

    for metric, response in payload["charts"].items():
        with open(f"{output_dir}/{metric}.json", "w") as f:
            json.dump(response, f, indent=2)

        with open(f"{output_dir}/{metric}.csv", "w", newline="") as f:
            writer = csv.DictWriter(
                f, fieldnames=["date", "value", "label"], extrasaction="ignore"
            )
            writer.writeheader()
            writer.writerows(response["data"])

    with open(f"{output_dir}/hourly.csv", "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["hour", "label", "activity", "count"])
        writer.writeheader()
        writer.writerows(payload["hourly"])


def _format_growth(value: float) -> str:
    if math.isinf(value):
        return "new (no activity in previous period)"
    return f"{value:+.1f}%"


def print_summary_report(payload: dict[str, Any], output_dir: str = "lifelog_analytics") -> None:
    """Print the CLI summary report to stdout.

    Args:
        payload: Dict as returned by ``build_dashboard_payload``.
        output_dir: Directory the files were written to, for the footer.
    """
    metrics = payload["metrics"]
    growth = metrics["growth_percentages"]

    print(f"\n{'=' * 60}")
    print(f"Lifelog Summary ({payload['window']}, grouped by {payload['group_by']})")
    print(f"{'=' * 60}")
    print(f"Total Recordings: {metrics['total_recordings']:,}")
    print(f"Hours Recorded: {metrics['hours_recorded']:.2f}")
    print(f"Analyzed: {metrics['analyzed_count']:,}")
    print(f"Starred: {metrics['starred_count']:,}")
    print(f"Recordings in Last 7 Days: {metrics['recent_activity']:,}")
    if metrics["invalid_date_count"]:
        print(f"Skipped (invalid date): {metrics['invalid_date_count']:,}")

    if payload["window"] != "all":
        print("\nChange vs. Previous Period:")
        for key in ("recordings", "hours", "analyses", "bookmarks"):
            print(f"  {key.capitalize():<11} {_format_growth(growth[key])}")

    for metric, response in payload["charts"].items():
        print(f"\n{metric.capitalize()}:")
        if response["status"] != "success":
            print(f"  {response['message']}")
            continue
        for point in response["data"]:
            print(f"  {point['date']:<20} {point.get('label', point['value'])}")

    busiest = max(payload["hourly"], key=lambda h: h["count"])
    if busiest["count"]:
        print(f"\nBusiest Hour (UTC): {busiest['label']} ({busiest['count']:,} recordings)")

    print(f"{'=' * 60}")
    print(f"\nAnalytics data has been saved to the '{output_dir}' directory.")
