"""LLM subsystem for provider-neutral chat completions.

This module provides a single completion gateway over several backends with:
- Provider selection from configuration (OpenAI, Anthropic, Gemini, Ollama)
- Per-model sliding window rate limiting
- Retry with exponential backoff for retryable failures
- Token and cost estimation when providers do not report usage

Example usage:
    from app.config import get_settings
    from app.llm import CompletionGateway, CompletionRequest

    gateway = CompletionGateway(get_settings())

    result = await gateway.complete(
        CompletionRequest.from_prompt("Break this task into steps...")
    )
    print(result.content, result.token_count, result.cost_estimate_usd)
"""

from app.models.completion import CompletionRequest, CompletionResult, Message

from .config import Provider, ProviderConfig, active_provider, config_for
from .rate_limiter import RateLimiter
from .retry import RetryConfig, RetryPolicy
from .token_counter import (
    MODEL_PRICING,
    TokenCounter,
    estimate_cost,
    estimate_tokens,
    get_token_counter,
)
from .gateway import CompletionGateway, create_gateway_from_settings

__all__ = [
    # Config
    "Provider",
    "ProviderConfig",
    "active_provider",
    "config_for",
    # Models
    "CompletionRequest",
    "CompletionResult",
    "Message",
    # Gateway
    "CompletionGateway",
    "create_gateway_from_settings",
    # Policies
    "RateLimiter",
    "RetryConfig",
    "RetryPolicy",
    # Token Counter
    "MODEL_PRICING",
    "TokenCounter",
    "estimate_cost",
    "estimate_tokens",
    "get_token_counter",
]
