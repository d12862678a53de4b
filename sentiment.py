"""Sentiment trend over time.

Each transcript in the window is scored exactly once per cache lifetime:
a cached score is reused, otherwise the external provider is asked, and a
word-list heuristic stands in whenever the provider fails or answers with
something unrecognisable.  Scores are then averaged per time bucket.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Union

from analytics import (
    NO_TRANSCRIPTS_MESSAGE,
    filter_by_window,
    group_by_period,
    no_data_response,
    resolve_group_by,
    safe_parse,
)

logger = logging.getLogger(__name__)

SCORE_MIN = -100.0
SCORE_MAX = 100.0

LABEL_SCORES = {"positive": 75.0, "negative": -75.0, "neutral": 0.0}

POSITIVE_WORDS = (
    "good", "great", "excellent", "amazing", "wonderful", "fantastic", "love",
    "like", "enjoy", "happy", "excited", "awesome", "perfect", "brilliant",
    "outstanding",
)
NEGATIVE_WORDS = (
    "bad", "terrible", "awful", "hate", "dislike", "frustrated", "angry", "sad",
    "disappointed", "worried", "stressed", "difficult", "problem", "issue",
    "wrong",
)

_POSITIVE_RE = re.compile(r"\b(?:" + "|".join(POSITIVE_WORDS) + r")\b", re.IGNORECASE)
_NEGATIVE_RE = re.compile(r"\b(?:" + "|".join(NEGATIVE_WORDS) + r")\b", re.IGNORECASE)

INVALID_DATES_MESSAGE = (
    "No sentiment data to display due to date parsing issues in all relevant transcripts."
)
NO_SENTIMENT_MESSAGE = "No sentiment data to display for the selected period and grouping."

# analyze(content) -> {"data": <provider payload>}; may raise.
SentimentProvider = Callable[[str], Awaitable[Mapping[str, Any]]]
SentimentScorer = Callable[[str], float]


def clamp_score(value: float) -> float:
    """Clamp a score into [-100, 100], including infinities and huge ints."""
    try:
        value = float(value)
    except OverflowError:
        return SCORE_MAX if value > 0 else SCORE_MIN
    return max(SCORE_MIN, min(SCORE_MAX, value))


# ---------------------------------------------------------------------------
# Provider responses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NumericScore:
    """Provider answered with a bare number."""

    value: float

    def normalized(self) -> float:
        return clamp_score(self.value)


@dataclass(frozen=True)
class ScoredObject:
    """Provider answered with an object carrying a numeric ``score``."""

    score: float

    def normalized(self) -> float:
        return clamp_score(self.score)


@dataclass(frozen=True)
class LabeledString:
    """Provider answered with positive, negative or neutral."""

    label: str

    def normalized(self) -> float:
        return LABEL_SCORES[self.label]


@dataclass(frozen=True)
class Unrecognized:
    """Anything else.  Triggers the fallback scorer."""

    raw: Any

    def normalized(self) -> None:
        return None


SentimentResponse = Union[NumericScore, ScoredObject, LabeledString, Unrecognized]


def _is_number(value: Any) -> bool:
    """True for ints and floats (infinities included), but not bools or NaN."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def classify_response(data: Any) -> SentimentResponse:
    """Classify a raw provider payload into one of the response variants.

    Args:
        data: The ``data`` member of the provider's response.

    Returns:
        A ``NumericScore``, ``ScoredObject``, ``LabeledString`` (lowercased,
        surrounding whitespace ignored) or ``Unrecognized``.
    """
    if _is_number(data):
        return NumericScore(data)
    if isinstance(data, Mapping) and _is_number(data.get("score")):
        return ScoredObject(data["score"])
    if isinstance(data, str):
        label = data.strip().lower()
        if label in LABEL_SCORES:
            return LabeledString(label)
    return Unrecognized(data)


def normalize_response(data: Any) -> float | None:
    """Map a raw provider payload to a score in [-100, 100], or None."""
    return classify_response(data).normalized()


# ---------------------------------------------------------------------------
# Fallback scorer
# ---------------------------------------------------------------------------

def word_list_score(content: str) -> float:
    """Score text by counting fixed positive and negative words.

    Words are matched whole and case-insensitively.  The result is
    ``(positives - negatives) / max(1, word_count) * 100``, clamped to
    [-100, 100].  Deterministic and never raises.
    """
    text = content or ""
    word_count = len(text.split())
    positive = len(_POSITIVE_RE.findall(text))
    negative = len(_NEGATIVE_RE.findall(text))
    return clamp_score((positive - negative) / max(1, word_count) * 100)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class SentimentCache:
    """Transcript id -> normalized sentiment score.

    Owned by the caller and kept for as long as the caller likes (the web
    service holds one per process).  Entries are never evicted and are not
    invalidated when a transcript's content changes.

    Lookups are not deduplicated: concurrent misses for the same id each
    reach the provider, and the last write wins.
    """

    def __init__(self) -> None:
        self._scores: dict[str, float] = {}

    def get(self, transcript_id: str) -> float | None:
        return self._scores.get(transcript_id)

    def set(self, transcript_id: str, score: float) -> None:
        self._scores[transcript_id] = score

    def clear(self) -> None:
        self._scores.clear()

    def __contains__(self, transcript_id: object) -> bool:
        return transcript_id in self._scores

    def __len__(self) -> int:
        return len(self._scores)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

async def score_transcript(
    transcript: dict,
    analyze: SentimentProvider,
    cache: SentimentCache,
    fallback: SentimentScorer = word_list_score,
) -> float:
    """Return the sentiment score for one transcript.  Never raises.

    Args:
        transcript: A transcript dict.
        analyze: Async provider, called once on a cache miss.
        cache: Score cache; updated with whatever score is produced,
            including fallback scores.  Transcripts without an id are
            scored but not cached.
        fallback: Local scorer used when the provider raises or answers
            with an unrecognised payload.

    Returns:
        A score in [-100, 100].
    """
    transcript_id = transcript.get("id")
    if transcript_id is not None and transcript_id in cache:
        return cache.get(transcript_id)

    content = transcript.get("content") or ""
    try:
        response = await analyze(content)
    except Exception as exc:
        logger.warning(
            "Sentiment analysis failed for transcript %s: %s. Using word-list fallback.",
            transcript_id, exc,
        )
        score = fallback(content)
    else:
        data = response.get("data") if isinstance(response, Mapping) else None
        score = normalize_response(data)
        if score is None:
            logger.warning(
                "Unexpected sentiment response for transcript %s: %r. Using word-list fallback.",
                transcript_id, data,
            )
            score = fallback(content)

    score = clamp_score(score)
    if transcript_id is not None:
        cache.set(transcript_id, score)
    return score


def _init_sentiment_bucket(_start: datetime) -> dict:
    return {"total": 0.0, "count": 0, "min": None, "max": None}


def _add_score(bucket: dict, transcript: dict) -> dict:
    score = transcript["sentimentScore"]
    bucket["total"] += score
    bucket["count"] += 1
    bucket["min"] = score if bucket["min"] is None else min(bucket["min"], score)
    bucket["max"] = score if bucket["max"] is None else max(bucket["max"], score)
    return bucket


def _sentiment_point(label: str, bucket: dict) -> dict:
    value = round(bucket["total"] / bucket["count"], 1) if bucket["count"] else 0.0
    return {
        "date": label,
        "value": value,
        "label": f"{value} sentiment score",
        "min": bucket["min"],
        "max": bucket["max"],
    }


async def generate_sentiment_trend_data(
    transcripts: list[dict],
    window: str,
    analyze: SentimentProvider,
    cache: SentimentCache,
    group_by: str | None = None,
    now: datetime | None = None,
    fallback: SentimentScorer = word_list_score,
) -> dict[str, Any]:
    """Average sentiment score per bucket over a window.

    All per-transcript scores are obtained concurrently and joined before
    any bucketing starts, so a bucket never sees a partial set of scores.

    Args:
        transcripts: All transcripts from the source.
        window: A key of ``analytics.TIME_WINDOWS``.
        analyze: Async sentiment provider.
        cache: Caller-owned score cache.
        group_by: Optional granularity override.
        now: Reference time for the window.
        fallback: Local scorer used when the provider fails.

    Returns:
        A ChartDataResponse; values are mean scores rounded to 1 decimal,
        with each bucket's min and max score.

    Raises:
        ValueError: If *window* or *group_by* is unknown.
    """
    resolved = resolve_group_by(window, group_by)
    filtered = filter_by_window(transcripts, window, now)
    if not filtered:
        return no_data_response(NO_TRANSCRIPTS_MESSAGE)

    dated = [t for t in filtered if safe_parse(t.get("date"), t.get("id")) is not None]
    if not dated:
        return no_data_response(INVALID_DATES_MESSAGE)

    scores = await asyncio.gather(
        *(score_transcript(t, analyze, cache, fallback) for t in dated)
    )
    scored = [dict(t, sentimentScore=score) for t, score in zip(dated, scores)]

    buckets, _ = group_by_period(scored, resolved, _add_score, _init_sentiment_bucket)
    points = [_sentiment_point(label, bucket["data"]) for label, bucket in buckets.items()]
    if not points:
        return no_data_response(NO_SENTIMENT_MESSAGE)
    return {"data": points, "status": "success", "message": None}
