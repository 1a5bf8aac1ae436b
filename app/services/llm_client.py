"""
OpenAI-compatible chat-completions client.

Shared by the LLM vision providers and the care extractor. Requests JSON
output and returns the decoded object; callers validate it against their
own pydantic schema so nothing downstream ever parses raw strings.
"""

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from app.core.config import get_settings
from app.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    """Single chat message; content may be text or multimodal parts."""
    role: str
    content: Any


class LLMClient:
    """Async HTTP client for an OpenAI-compatible endpoint (OpenRouter, OpenAI, vLLM)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.timeout = timeout or settings.llm_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                headers={"Authorization": f"Bearer {self.api_key}"},
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete_json(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float = 0.0,
        max_tokens: int = 1500,
    ) -> dict[str, Any]:
        """
        Send a chat completion in JSON mode and decode the reply.

        Args:
            model: Model identifier understood by the endpoint
            messages: Chat messages
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            Decoded JSON object from the first choice

        Raises:
            ExtractionError: On transport errors, HTTP errors or non-JSON output
        """
        if not self.is_configured:
            raise ExtractionError("LLM API key not configured")

        payload = {
            "model": model,
            "messages": [m.model_dump() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }

        try:
            response = await self._get_client().post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            raise ExtractionError(
                f"LLM HTTP {e.response.status_code} from {model}"
            ) from e
        except httpx.RequestError as e:
            raise ExtractionError(f"LLM request to {model} failed: {e}") from e
        except (KeyError, IndexError, ValueError) as e:
            raise ExtractionError(f"Malformed LLM response from {model}") from e

        return self._decode(content, model)

    @staticmethod
    def _decode(content: Optional[str], model: str) -> dict[str, Any]:
        """Decode a JSON reply, tolerating markdown code fences."""
        if not content:
            raise ExtractionError(f"Empty LLM response from {model}")

        text = content.strip()
        if text.startswith("```"):
            text = text.strip("`")
            if text.startswith("json"):
                text = text[4:]

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"LLM response from {model} is not valid JSON") from e

        if not isinstance(decoded, dict):
            raise ExtractionError(f"LLM response from {model} is not a JSON object")
        return decoded
