"""LLM-backed sentiment provider.

``OpenAISentimentProvider.analyze`` implements the provider boundary used
by ``sentiment.generate_sentiment_trend_data``: it takes transcript text
and returns ``{"data": <parsed JSON>}``, raising on any failure so the
caller can fall back to local scoring.

Environment variables:
    OPENAI_API_KEY: API key for the OpenAI client.
    SENTIMENT_MODEL: Chat model name (default ``gpt-4o-mini``).
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

DEFAULT_SENTIMENT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT_SECONDS = 30.0

SENTIMENT_PROMPT = (
    "You rate the overall sentiment of a personal conversation transcript. "
    'Respond with a JSON object of the form {"score": <number>} where the '
    "number is between -100 (very negative) and 100 (very positive), and 0 "
    "is neutral. Respond with JSON only."
)

_FENCE_RE = re.compile(r"^```(?:\w+)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def parse_json_from_text(text: str) -> Any:
    """Parse JSON from model output, tolerating common formatting noise.

    Strips a surrounding markdown code fence (with or without a language
    tag) and, if the first attempt fails, retries with trailing commas
    before ``}`` or ``]`` removed.

    Args:
        text: Raw model output.

    Returns:
        The decoded JSON value.

    Raises:
        json.JSONDecodeError: If the text is not JSON even after cleanup.
    """
    json_str = text.strip()
    fenced = _FENCE_RE.match(json_str)
    if fenced:
        json_str = fenced.group(1).strip()

    try:
        return json.loads(json_str)
    except json.JSONDecodeError:
        logger.debug("Retrying JSON parse with trailing commas removed")
    return json.loads(_TRAILING_COMMA_RE.sub(r"\1", json_str))


class OpenAISentimentProvider:
    """Sentiment provider backed by the OpenAI chat completions API.

    Makes a single attempt per call (client retries are disabled); retry
    policy belongs to the caller's fallback.
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        client: AsyncOpenAI | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.model = model or os.environ.get("SENTIMENT_MODEL", DEFAULT_SENTIMENT_MODEL)
        self.timeout = timeout
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self._client = client

        if self._client is None and not self._api_key:
            logger.warning(
                "OpenAI API key not provided. Sentiment scores will use the word-list fallback."
            )

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def analyze(self, content: str) -> dict[str, Any]:
        """Ask the model for a sentiment judgement of *content*.

        Args:
            content: Transcript text.

        Returns:
            ``{"data": value}`` where value is the model's parsed JSON.

        Raises:
            openai.OpenAIError: On client configuration or API errors.
            ValueError: If the model returns no content or invalid JSON.
        """
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SENTIMENT_PROMPT},
                {"role": "user", "content": f"Transcript:\n```\n{content}\n```"},
            ],
            response_format={"type": "json_object"},
            temperature=0,
        )
        text = response.choices[0].message.content
        if not text:
            raise ValueError("Empty response from sentiment model")
        return {"data": parse_json_from_text(text)}
