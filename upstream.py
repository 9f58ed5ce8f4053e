import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from constants import (
    GOOGLE_TRANSLATE_URL,
    GOOGLE_TRANSLATION_API_KEY,
    OPENAI_API_KEY,
    OPENAI_CHAT_URL,
    OPENAI_MODEL,
    SUMMARY_MAX_TOKENS,
    UPSTREAM_RETRIES,
    UPSTREAM_RETRY_DELAY,
    UPSTREAM_TIMEOUT,
)
from errors import UpstreamResponseError
from logging_config import get_logger

logger = get_logger(__name__)

SUMMARY_SYSTEM_PROMPT = "You are a helpful assistant."


class UpstreamClient:
    """Calls the translation and chat-completion APIs over one shared httpx client.

    Only :meth:`post_with_retry` retries, and only on HTTP 429.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        translate_url: str = GOOGLE_TRANSLATE_URL,
        translation_key: str = GOOGLE_TRANSLATION_API_KEY,
        chat_url: str = OPENAI_CHAT_URL,
        openai_key: str = OPENAI_API_KEY,
        model: str = OPENAI_MODEL,
        max_tokens: int = SUMMARY_MAX_TOKENS,
        retries: int = UPSTREAM_RETRIES,
        retry_delay: float = UPSTREAM_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(UPSTREAM_TIMEOUT))
        self.translate_url = translate_url.rstrip("/")
        self.translation_key = translation_key
        self.chat_url = chat_url
        self.openai_key = openai_key
        self.model = model
        self.max_tokens = max_tokens
        self.retries = retries
        self.retry_delay = retry_delay
        self._sleep = sleep

        if not translation_key:
            logger.warning("GOOGLE_TRANSLATION_API_KEY is not set, translation calls will fail upstream")
        if not openai_key:
            logger.warning("OPENAI_API_KEY is not set, summarization calls will fail upstream")

    async def aclose(self) -> None:
        await self.client.aclose()

    async def post_with_retry(
        self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """POST and retry on 429 up to ``retries`` times, doubling the delay each time.

        Any other error status, or a 429 after the last retry, raises
        ``httpx.HTTPStatusError``.
        """
        attempt = 0
        while True:
            response = await self.client.post(url, json=payload, headers=headers)
            if response.status_code == 429 and attempt < self.retries:
                delay = self.retry_delay * (2 ** attempt)
                logger.warning(f"Rate limit exceeded. Retrying in {delay:g} seconds... ({attempt + 1}/{self.retries})")
                await self._sleep(delay)
                attempt += 1
                continue
            response.raise_for_status()
            return response

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.post(url, json=payload, params={"key": self.translation_key})
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamResponseError(f"Non-JSON response from {response.url.host}") from e

    async def detect_language(self, text: str) -> Optional[str]:
        """Detected language code, or None if the response has no detection."""
        body = await self._post(f"{self.translate_url}/detect", {"q": text})
        try:
            language = body["data"]["detections"][0][0]["language"]
        except (KeyError, IndexError, TypeError):
            return None
        return language or None

    async def translate(self, text: str, source: str, target: str) -> Optional[str]:
        body = await self._post(
            self.translate_url,
            {"q": text, "source": source, "target": target, "format": "text"},
        )
        try:
            return body["data"]["translations"][0]["translatedText"]
        except (KeyError, IndexError, TypeError):
            return None

    async def summarize(self, conversation_text: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.openai_key}",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                {"role": "user", "content": conversation_text},
            ],
            "max_tokens": self.max_tokens,
        }
        response = await self.post_with_retry(self.chat_url, payload, headers)
        try:
            return response.json()["choices"][0]["message"]["content"].strip()
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise UpstreamResponseError(f"Unexpected chat completion response: {e}") from e
