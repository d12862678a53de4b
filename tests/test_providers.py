"""Tests for providers.py (JSON cleanup and the OpenAI-backed provider)."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from providers import OpenAISentimentProvider, parse_json_from_text


def _fake_client(content):
    """Build a stand-in for AsyncOpenAI returning *content* as the message."""
    response = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


# ── TestParseJsonFromText ───────────────────


class TestParseJsonFromText:
    def test_plain(self):
        assert parse_json_from_text('{"score": 10}') == {"score": 10}

    def test_fenced_with_language(self):
        assert parse_json_from_text('```json\n{"score": -5}\n```') == {"score": -5}

    def test_fenced_without_language(self):
        assert parse_json_from_text('```\n"positive"\n```') == "positive"

    def test_trailing_commas(self):
        assert parse_json_from_text('{"score": 3, "tags": [1, 2,],}') == {"score": 3, "tags": [1, 2]}

    def test_bare_number(self):
        assert parse_json_from_text("  42 ") == 42

    def test_invalid_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_from_text("not json at all")


# ── TestOpenAISentimentProvider ─────────────


class TestOpenAISentimentProvider:
    @pytest.mark.asyncio
    async def test_analyze_returns_parsed_data(self):
        client = _fake_client('{"score": 55}')
        provider = OpenAISentimentProvider(model="test-model", client=client)

        result = await provider.analyze("What a great day")

        assert result == {"data": {"score": 55}}
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert "What a great day" in kwargs["messages"][-1]["content"]

    @pytest.mark.asyncio
    async def test_empty_content_raises(self):
        provider = OpenAISentimentProvider(client=_fake_client(None))
        with pytest.raises(ValueError):
            await provider.analyze("hello")

    @pytest.mark.asyncio
    async def test_api_error_propagates(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("rate limited"))
        provider = OpenAISentimentProvider(client=client)
        with pytest.raises(RuntimeError):
            await provider.analyze("hello")

    def test_model_from_environment(self, monkeypatch):
        monkeypatch.setenv("SENTIMENT_MODEL", "env-model")
        provider = OpenAISentimentProvider(client=_fake_client("0"))
        assert provider.model == "env-model"

    def test_missing_key_warns(self, monkeypatch, caplog):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        OpenAISentimentProvider()
        assert "API key not provided" in caplog.text
