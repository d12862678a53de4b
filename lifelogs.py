"""Transcript source: loading exports and mapping raw lifelogs.

Accepts a JSON file holding either a list of transcript dicts, a list of
raw lifelog records, or the lifelog API envelope
``{"data": {"lifelogs": [...]}}``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from analytics import safe_parse

logger = logging.getLogger(__name__)

SNIPPET_MAX_LENGTH = 150
DEFAULT_LIFELOG_TITLE = "Untitled Lifelog"

_MARKDOWN_PATTERNS = [
    (re.compile(r"#{1,6}\s*(.*)"), r"\1"),            # headings
    (re.compile(r"(\*\*|__)(.*?)\1"), r"\2"),          # bold
    (re.compile(r"(\*|_)(.*?)\1"), r"\2"),             # italics
    (re.compile(r"!\[(.*?)\]\(.*?\)"), r"\1"),         # images
    (re.compile(r"\[(.*?)\]\(.*?\)"), r"\1"),          # links
    (re.compile(r"`{1,3}(.*?)`{1,3}"), r"\1"),         # code
]
_WHITESPACE_RE = re.compile(r"\s+")


def generate_summary_snippet(markdown: str | None, max_length: int = SNIPPET_MAX_LENGTH) -> str:
    """Strip markdown and shorten text to a one-line preview.

    Args:
        markdown: Raw markdown, may be None.
        max_length: Maximum snippet length including the ``...`` suffix.

    Returns:
        Plain text no longer than *max_length* characters.
    """
    if not markdown:
        return ""
    text = markdown
    for pattern, repl in _MARKDOWN_PATTERNS:
        text = pattern.sub(repl, text)
    text = _WHITESPACE_RE.sub(" ", text).strip()

    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def lifelog_to_transcript(lifelog: dict) -> dict | None:
    """Map a raw lifelog record to a transcript dict.

    Args:
        lifelog: Record with id, title, markdown, startTime and optionally
            endTime, isStarred and updatedAt.

    Returns:
        A transcript dict whose ``date`` is the lifelog's start time, or
        None when the start time (or a present end time) does not parse.
    """
    lifelog_id = lifelog.get("id")
    start = safe_parse(lifelog.get("startTime"), lifelog_id)
    if start is None:
        return None

    end_raw = lifelog.get("endTime")
    end = safe_parse(end_raw, lifelog_id) if end_raw else None
    if end_raw and end is None:
        return None

    markdown = lifelog.get("markdown") or ""
    transcript: dict[str, Any] = {
        "id": lifelog_id,
        "title": lifelog.get("title") or DEFAULT_LIFELOG_TITLE,
        "date": start.isoformat(),
        "content": markdown,
        "summary": generate_summary_snippet(markdown),
        "isStarred": bool(lifelog.get("isStarred")),
        "startTime": start.isoformat(),
    }
    if end is not None:
        transcript["endTime"] = end.isoformat()

    updated_raw = lifelog.get("updatedAt")
    updated = safe_parse(updated_raw, lifelog_id) if updated_raw else None
    if updated is not None:
        transcript["updatedAt"] = updated.isoformat()
    return transcript


def _is_lifelog(record: dict) -> bool:
    return "date" not in record and ("startTime" in record or "markdown" in record)


def _unwrap_records(raw: Any) -> list:
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict):
        data = raw.get("data")
        if isinstance(data, dict) and isinstance(data.get("lifelogs"), list):
            return data["lifelogs"]
        if isinstance(raw.get("transcripts"), list):
            return raw["transcripts"]
    logger.warning("Unrecognised transcript export shape (%s). No transcripts loaded.",
                   type(raw).__name__)
    return []


def load_transcripts(path: str = "transcripts.json") -> list[dict]:
    """Load transcripts from a JSON export.

    Transcript records are returned as-is, including ones with invalid
    dates (the analytics layer reports those).  Lifelog records are mapped
    with ``lifelog_to_transcript`` and dropped if unmappable.

    Args:
        path: Path to the export file.

    Returns:
        List of transcript dicts.

    Raises:
        FileNotFoundError: If *path* does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    transcripts = []
    dropped = 0
    for record in _unwrap_records(raw):
        if not isinstance(record, dict):
            dropped += 1
            continue
        if _is_lifelog(record):
            transcript = lifelog_to_transcript(record)
            if transcript is None:
                dropped += 1
                continue
            transcripts.append(transcript)
        else:
            transcripts.append(record)

    if dropped:
        logger.warning("Dropped %d unusable records from %s", dropped, path)
    logger.info("Loaded %d transcripts from %s", len(transcripts), path)
    return transcripts
