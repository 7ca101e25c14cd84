"""Token and cost estimation for completions.

Providers do not always report usage, so token counts fall back to a
character-based estimate. Costs come from a static price table keyed by
model family.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Roughly 4 characters per token across the supported model families
CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class ModelPricing:
    """USD cost per 1000 tokens."""

    input_per_1k: float
    output_per_1k: float


# Ordered: the first family whose key is contained in the model id wins,
# so more specific keys come before their prefixes.
MODEL_PRICING: dict[str, ModelPricing] = {
    "gpt-3.5-turbo": ModelPricing(input_per_1k=0.0015, output_per_1k=0.002),
    "gpt-3.5": ModelPricing(input_per_1k=0.0015, output_per_1k=0.002),
    "gpt-4": ModelPricing(input_per_1k=0.03, output_per_1k=0.06),
    "claude-3-sonnet": ModelPricing(input_per_1k=0.003, output_per_1k=0.015),
    "gemini-1.5-flash": ModelPricing(input_per_1k=0.00015, output_per_1k=0.00015),
    "gemini-1.5-pro": ModelPricing(input_per_1k=0.0035, output_per_1k=0.0035),
}


def estimate_tokens(text: str) -> int:
    """Approximate the token count of ``text``."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def get_pricing(model_id: str) -> Optional[ModelPricing]:
    """Look up pricing by exact id, then by model family substring."""
    if not model_id:
        return None
    if model_id in MODEL_PRICING:
        return MODEL_PRICING[model_id]
    for family, pricing in MODEL_PRICING.items():
        if family in model_id:
            return pricing
    return None


def estimate_cost(total_tokens: int, model_id: str) -> float:
    """Estimate USD cost from a total token count.

    Only the total is known here, so it is split evenly between input and
    output. Unknown models cost 0.
    """
    pricing = get_pricing(model_id)
    if pricing is None:
        logger.debug(f"No pricing for model {model_id}, cost=0")
        return 0.0

    input_tokens = total_tokens / 2
    output_tokens = total_tokens / 2
    return (input_tokens / 1000) * pricing.input_per_1k + (
        output_tokens / 1000
    ) * pricing.output_per_1k


class TokenCounter:
    """Counts tokens and prices completions."""

    def count_tokens(self, text: str) -> int:
        return estimate_tokens(text)

    def count_completion_tokens(self, prompt: str, completion: str) -> int:
        """Estimate the total tokens of a prompt/completion pair."""
        return estimate_tokens(prompt) + estimate_tokens(completion)

    def estimate_cost(self, total_tokens: int, model_id: str) -> float:
        return estimate_cost(total_tokens, model_id)

    def estimate_split_cost(
        self,
        input_tokens: int,
        output_tokens: int,
        model_id: str,
    ) -> float:
        """Estimate cost when input and output counts are known separately."""
        pricing = get_pricing(model_id)
        if pricing is None:
            return 0.0
        return (input_tokens / 1000) * pricing.input_per_1k + (
            output_tokens / 1000
        ) * pricing.output_per_1k


# Singleton instance for convenience
_token_counter: Optional[TokenCounter] = None


def get_token_counter() -> TokenCounter:
    """Get the singleton TokenCounter instance."""
    global _token_counter
    if _token_counter is None:
        _token_counter = TokenCounter()
    return _token_counter
