"""LLM client - text completion through an OpenAI-compatible API."""
import logging
from typing import Optional

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert web performance analyst. Provide concise, actionable "
    "recommendations for improving Core Web Vitals metrics."
)


class LLMError(Exception):
    """The LLM provider could not produce a completion."""


class LLMClient:
    """Sends a prompt to the chat completions endpoint and returns the text."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = (api_url or settings.llm_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.model = model or settings.llm_model
        self.timeout = timeout or settings.llm_timeout_seconds
        self._transport = transport

    async def summarize(self, prompt: str) -> str:
        """Return the completion text for ``prompt``.

        Raises LLMError on transport errors, non-2xx responses, or a
        response without text content.
        """
        if not self.api_key:
            raise LLMError("LLM API key is not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.api_url}/chat/completions", json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"LLM request failed: {type(e).__name__}: {e}")
            raise LLMError(f"LLM request failed: {e}") from e

        if response.status_code >= 400:
            logger.warning(f"LLM provider returned {response.status_code}")
            raise LLMError(f"LLM provider returned {response.status_code}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError("LLM response has no completion text") from e
        if not isinstance(content, str):
            raise LLMError("LLM response has no completion text")
        return content


# Global instance
llm_client = LLMClient()
