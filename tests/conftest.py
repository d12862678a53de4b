"""Shared fixtures for lifelog analytics tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from helpers import iso, make_transcript
from sentiment import SentimentCache


# ── Sample transcripts for app.py tests ──


def _sample_transcripts() -> list[dict]:
    """Return transcripts dated relative to the real current time.

    The service always uses the wall clock, so dates must move with it.
    """
    now = datetime.now(timezone.utc)
    return [
        make_transcript("t1", iso(now - timedelta(hours=1)), "A great day " * 20,
                        summary="s" * 60, isStarred=True),
        make_transcript("t2", iso(now - timedelta(days=2)), "Terrible problem " * 10),
        make_transcript("t3", iso(now - timedelta(days=10))),
        make_transcript("t4", iso(now - timedelta(days=100))),
        make_transcript("t5", "not-a-date"),
    ]


@pytest.fixture()
def sample_transcripts():
    return _sample_transcripts()


@pytest.fixture()
def mock_provider():
    """Sentiment provider stand-in that scores every transcript 25."""
    provider = MagicMock()
    provider.analyze = AsyncMock(return_value={"data": {"score": 25}})
    return provider


@pytest.fixture()
def client(sample_transcripts, mock_provider):
    """TestClient for app.py with mocked transcript data.

    Patches load_transcripts so no transcripts.json is needed, swaps in a
    fake sentiment provider and resets the module-level caches between tests.
    """
    import app as app_module

    with patch.object(
        app_module, "_cache", {"transcripts": None, "loaded_at": 0.0}
    ), patch.object(
        app_module, "_sentiment_cache", SentimentCache()
    ), patch(
        "app.load_transcripts", return_value=sample_transcripts
    ), patch(
        "app._get_provider", return_value=mock_provider
    ):
        with TestClient(app_module.app) as tc:
            yield tc
