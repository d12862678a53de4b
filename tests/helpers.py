"""Shared test helpers for lifelog analytics tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

# Fixed reference time used as ``now`` throughout the tests (a Monday).
NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    """Format an aware datetime the way the transcript source does (Z suffix)."""
    return dt.isoformat().replace("+00:00", "Z")


def hours_ago(hours: float, now: datetime = NOW) -> str:
    return iso(now - timedelta(hours=hours))


def days_ago(days: float, now: datetime = NOW) -> str:
    return iso(now - timedelta(days=days))


def make_transcript(
    transcript_id: str,
    date: str,
    content: str = "This is test content.",
    **extra,
) -> dict:
    """Build a minimal transcript dict.

    Args:
        transcript_id: Value for ``id``.
        date: Raw ``date`` value (ISO-8601 string or anything invalid).
        content: Transcript text.
        **extra: Optional fields such as summary, isStarred, startTime,
            endTime.

    Returns:
        A dict shaped like the transcript source's records.
    """
    transcript = {
        "id": transcript_id,
        "title": f"Test Transcript {transcript_id}",
        "date": date,
        "content": content,
    }
    transcript.update(extra)
    return transcript


def make_transcripts_at(dates: list[str], content: str = "This is test content.") -> list[dict]:
    """Build one transcript per date, with ids t0, t1, ..."""
    return [make_transcript(f"t{i}", date, content) for i, date in enumerate(dates)]
