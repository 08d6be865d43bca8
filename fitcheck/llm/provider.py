"""
LLM provider interface and configuration.

Provides a minimal abstraction for the generation backend so the analysis
pipeline can be driven by OpenAI (or a compatible API) in production and by
scripted fakes in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    # API settings
    api_key: str = ""
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None

    # Cost controls
    max_tokens: int = 1800
    temperature: float = 0.2
    timeout_s: float = 45.0

    @property
    def is_configured(self) -> bool:
        """Check if API key is set."""
        return bool(self.api_key)


@dataclass
class LLMResponse:
    """Raw response from the generation backend. Parsing is the caller's job."""
    content: str = ""
    tokens_used: int = 0
    error: str = ""

    @property
    def ok(self) -> bool:
        return bool(self.content) and not self.error


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    def __init__(self, config: LLMConfig):
        self.config = config

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            json_mode: If True, force structured JSON output

        Returns:
            LLMResponse with content, or with ``error`` set on failure
        """
        raise NotImplementedError


def get_llm_client(config: LLMConfig) -> Optional["OpenAIClient"]:
    """
    Get an LLM client based on configuration.

    Returns None if not configured.
    """
    if not config.is_configured:
        return None

    from fitcheck.llm.openai_client import OpenAIClient
    return OpenAIClient(config)
