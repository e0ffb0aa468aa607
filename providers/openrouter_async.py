"""
OpenRouter Provider - Async Streaming
=====================================

Streams chat completion tokens from OpenRouter's OpenAI-compatible API with
httpx, one text fragment per server-sent delta.
"""

import json
import logging
from typing import AsyncIterator, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class OpenRouterStreamError(RuntimeError):
    """The API reported an error inside an already-open stream."""


class AsyncOpenRouterProvider:
    """
    Async streaming client for OpenRouter.

    Args:
        api_key: OpenRouter API key
        model: Model name
        base_url: API base URL
        temperature: Sampling temperature
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests inject httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "openai/gpt-4o-mini",
        base_url: str = "https://openrouter.ai/api/v1",
        temperature: float = 0.3,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError(
                "OpenRouter API key required. "
                "Set OPENROUTER_API_KEY or pass api_key."
            )
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "Weather Activity Pipeline",
        }

    async def chat_stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """
        Stream a chat completion.

        Args:
            messages: List of message dicts

        Yields:
            Text fragments in generation order

        Raises:
            httpx.HTTPStatusError: Non-2xx response
            OpenRouterStreamError: Error event received mid-stream
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "stream": True,
            "stream_options": {"include_usage": True},
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            async with client.stream(
                "POST",
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=self._headers(),
            ) as response:
                response.raise_for_status()

                async for line in response.aiter_lines():
                    if not line.startswith("data: "):
                        continue  # keep-alive comments and blank lines
                    data_str = line[6:]
                    if data_str == "[DONE]":
                        break

                    try:
                        data = json.loads(data_str)
                    except json.JSONDecodeError:
                        continue

                    if "error" in data:
                        message = data["error"].get("message", "unknown error")
                        raise OpenRouterStreamError(f"OpenRouter stream error: {message}")

                    if data.get("usage"):
                        logger.debug(f"[OpenRouter] usage: {data['usage']}")

                    for choice in data.get("choices", []):
                        content = (choice.get("delta") or {}).get("content")
                        if content:
                            yield content
