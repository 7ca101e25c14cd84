"""Provider adapters and the registry used to pick one."""

from typing import Optional

import httpx

from app.llm.config import Provider, ProviderConfig
from app.llm.token_counter import TokenCounter

from .anthropic import AnthropicAdapter
from .base import HTTPRequestSpec, ProviderAdapter
from .gemini import GeminiAdapter
from .ollama import OllamaAdapter
from .openai import OpenAIAdapter

ADAPTERS: dict[Provider, type[ProviderAdapter]] = {
    Provider.OPENAI: OpenAIAdapter,
    Provider.ANTHROPIC: AnthropicAdapter,
    Provider.GEMINI: GeminiAdapter,
    Provider.OLLAMA: OllamaAdapter,
}


def create_adapter(
    config: ProviderConfig,
    client: httpx.AsyncClient,
    token_counter: Optional[TokenCounter] = None,
) -> ProviderAdapter:
    """Instantiate the adapter for ``config.provider``."""
    return ADAPTERS[config.provider](config, client, token_counter)


__all__ = [
    "ADAPTERS",
    "AnthropicAdapter",
    "GeminiAdapter",
    "HTTPRequestSpec",
    "OllamaAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "create_adapter",
]
