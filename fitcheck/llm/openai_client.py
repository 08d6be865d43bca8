"""
OpenAI API client implementation.

Supports OpenAI API and compatible endpoints (Azure, local, etc.)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fitcheck.llm.provider import LLMClient, LLMConfig, LLMResponse

logger = logging.getLogger(__name__)

# The caller bounds the whole call with its own timeout; the SDK one is a backstop.
SDK_TIMEOUT_GRACE_S = 5.0


class OpenAIClient(LLMClient):
    """OpenAI API client with async support."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        self._async_client = None

    def _get_async_client(self):
        """Lazy-load the async OpenAI client."""
        if self._async_client is None:
            import openai

            kwargs: Dict[str, Any] = {
                "api_key": self.config.api_key,
                "timeout": self.config.timeout_s + SDK_TIMEOUT_GRACE_S,
                # Retries are left to the caller.
                "max_retries": 0,
            }
            if self.config.base_url:
                kwargs["base_url"] = self.config.base_url
            self._async_client = openai.AsyncOpenAI(**kwargs)
        return self._async_client

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a completion using OpenAI API."""
        try:
            client = self._get_async_client()

            messages: List[Dict[str, str]] = []
            if system_prompt:
                messages.append({"role": "system", "content": system_prompt})
            messages.append({"role": "user", "content": prompt})

            kwargs: Dict[str, Any] = {
                "model": self.config.model,
                "messages": messages,
                "max_tokens": self.config.max_tokens,
                "temperature": self.config.temperature,
            }

            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}

            response = await client.chat.completions.create(**kwargs)

            content = ""
            if response.choices:
                content = response.choices[0].message.content or ""
            tokens_used = response.usage.total_tokens if response.usage else 0

            return LLMResponse(
                content=content,
                tokens_used=tokens_used,
            )

        except Exception as e:
            logger.warning("OpenAI completion failed (%s): %s", type(e).__name__, e)
            return LLMResponse(error=str(e) or type(e).__name__)
