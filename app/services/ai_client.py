"""
AI Client

The advisor talks to any OpenAI-compatible chat completion endpoint
(Groq, DeepSeek, OpenAI), so we use the openai library.

Every call is a single round trip with an explicit timeout and no SDK retries.
All upstream failures are raised as UpstreamDegraded with the red flag the
advisor reports: "rate limited", "service unavailable" or
"response unparseable".
"""
import json
import logging
import math
from typing import Optional

import openai
from openai import OpenAI

from app.core.config import Settings, get_settings
from app.core.errors import UpstreamDegraded

logger = logging.getLogger(__name__)


class _UnrepresentableNumber(ValueError):
    pass


def _reject_constant(name: str):
    raise _UnrepresentableNumber(name)


def _finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise _UnrepresentableNumber(text)
    return value


def _int64(text: str) -> int:
    value = int(text)
    if not -(2 ** 63) <= value < 2 ** 63:
        raise _UnrepresentableNumber(text)
    return value


# NaN, Infinity and overflowing numbers cannot be stored as BSON or rendered as JSON
_decoder = json.JSONDecoder(parse_constant=_reject_constant, parse_float=_finite_float, parse_int=_int64)


def extract_json(text: Optional[str]) -> dict:
    """
    Return the first well-formed JSON object embedded in `text`.

    Models wrap their JSON in prose or markdown code fences; we scan for each
    "{" and try to decode an object starting there.
    An object carrying NaN, Infinity or an out-of-range number is unparseable.
    """
    if not text or not text.strip():
        raise UpstreamDegraded(UpstreamDegraded.RESPONSE_UNPARSEABLE, "Empty AI response", raw_response=text)

    start = text.find("{")
    while start != -1:
        try:
            obj, _ = _decoder.raw_decode(text, start)
        except _UnrepresentableNumber:
            raise UpstreamDegraded(
                UpstreamDegraded.RESPONSE_UNPARSEABLE, "Out-of-range number in AI response", raw_response=text
            )
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(obj, dict):
            return obj
        start = text.find("{", start + 1)

    raise UpstreamDegraded(
        UpstreamDegraded.RESPONSE_UNPARSEABLE, "No JSON object in AI response", raw_response=text
    )


class AIClient:
    """
    Wrapper for an OpenAI-compatible chat API.
    """

    def __init__(self, settings: Settings = None, client: OpenAI = None):
        self.settings = settings or get_settings()
        self.client = client or OpenAI(
            api_key=self.settings.ai_api_key,
            base_url=self.settings.ai_base_url,
            timeout=self.settings.ai_timeout_seconds,
            max_retries=0,
        )
        self.model = self.settings.ai_model

    def complete(
        self,
        system_prompt: str,
        user_content: str,
        max_tokens: int = 600,
        temperature: float = 0.3,
    ) -> str:
        """
        Call the chat API and return the raw text response.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.RateLimitError as e:
            raise UpstreamDegraded(UpstreamDegraded.RATE_LIMITED, str(e))
        except openai.APITimeoutError as e:
            raise UpstreamDegraded(UpstreamDegraded.SERVICE_UNAVAILABLE, f"AI request timed out: {e}")
        except openai.APIStatusError as e:
            if e.status_code == 429:
                raise UpstreamDegraded(UpstreamDegraded.RATE_LIMITED, str(e))
            raise UpstreamDegraded(UpstreamDegraded.SERVICE_UNAVAILABLE, str(e))
        except openai.OpenAIError as e:
            raise UpstreamDegraded(UpstreamDegraded.SERVICE_UNAVAILABLE, str(e))

        if not response.choices:
            raise UpstreamDegraded(UpstreamDegraded.RESPONSE_UNPARSEABLE, "AI response had no choices")
        return response.choices[0].message.content or ""

    def complete_json(self, system_prompt: str, user_content: str, max_tokens: int = 600) -> dict:
        """Call the chat API and parse the first JSON object out of the reply."""
        return extract_json(self.complete(system_prompt, user_content, max_tokens=max_tokens))

    def test_connection(self) -> bool:
        """Test if the AI endpoint is reachable"""
        try:
            response = self.complete(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10,
            )
            return "OK" in response.upper()
        except UpstreamDegraded as e:
            logger.warning("AI connection failed: %s", e.detail)
            return False


# Singleton instance
_ai_client: Optional[AIClient] = None


def get_ai_client() -> Optional[AIClient]:
    """
    Get or create the AI client (singleton pattern).
    Returns None when no API key is configured.
    """
    global _ai_client
    settings = get_settings()
    if not settings.ai_enabled:
        return None
    if _ai_client is None:
        _ai_client = AIClient(settings)
    return _ai_client
