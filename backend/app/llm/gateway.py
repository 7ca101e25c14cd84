"""Provider-neutral completion gateway.

Resolves the active provider once, then applies rate limiting and the
retry policy uniformly to every call, whichever adapter is behind it.
"""

import logging
from typing import Optional

import httpx

from app.config import Settings, get_settings
from app.llm.adapters import ProviderAdapter, create_adapter
from app.llm.config import Provider, ProviderConfig, active_provider, config_for
from app.llm.rate_limiter import RateLimiter
from app.llm.retry import RetryConfig, RetryPolicy
from app.llm.token_counter import TokenCounter, get_token_counter
from app.models.completion import CompletionRequest, CompletionResult
from app.utils.errors import ProviderFailure

logger = logging.getLogger(__name__)


class CompletionGateway:
    """Single entry point for chat completions.

    Rate limiter state and the HTTP client are owned by the gateway for the
    lifetime of the process; tests construct their own instances.
    """

    def __init__(
        self,
        settings: Settings,
        rate_limiter: Optional[RateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        client: Optional[httpx.AsyncClient] = None,
        token_counter: Optional[TokenCounter] = None,
    ):
        """Initialize the gateway.

        Args:
            settings: Application settings holding provider configuration
            rate_limiter: Per-model limiter (a fresh one if omitted)
            retry_policy: Retry policy (built from settings if omitted)
            client: Shared HTTP client (created and owned if omitted)
            token_counter: Token/cost estimator
        """
        self.settings = settings
        self.rate_limiter = rate_limiter or RateLimiter()
        self.retry_policy = retry_policy or RetryPolicy(
            RetryConfig(
                max_retries=settings.llm_max_retries,
                initial_delay=settings.llm_retry_base_delay,
            )
        )
        self.token_counter = token_counter or get_token_counter()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.llm_timeout_seconds)

        self._provider: Optional[Provider] = None
        self._adapter: Optional[ProviderAdapter] = None

        try:
            self._provider = active_provider(settings)
        except ProviderFailure as e:
            logger.error(f"[LLM] {e.message}")

        logger.info(
            f"CompletionGateway initialized with provider: "
            f"{self._provider.value if self._provider else settings.ai_provider}"
        )

    @property
    def provider_name(self) -> str:
        return self._provider.value if self._provider else self.settings.ai_provider

    @property
    def model_id(self) -> str:
        """Model id of the active provider, even when it is misconfigured."""
        if self._adapter is not None:
            return self._adapter.model_id
        if self._provider is None:
            return "unknown"
        try:
            return config_for(self._provider, self.settings).model_id
        except ProviderFailure:
            return "unknown"

    def provider_config(self) -> ProviderConfig:
        if self._provider is None:
            raise ProviderFailure.unsupported(self.settings.ai_provider)
        return config_for(self._provider, self.settings)

    def get_adapter(self) -> ProviderAdapter:
        """Resolve and cache the adapter for the active provider.

        Raises:
            ProviderFailure: UNSUPPORTED or AUTH_MISSING
        """
        if self._adapter is None:
            self._adapter = create_adapter(
                self.provider_config(), self.client, self.token_counter
            )
        return self._adapter

    def is_available(self) -> bool:
        try:
            return self.get_adapter().is_available()
        except ProviderFailure:
            return False

    def build_request(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> CompletionRequest:
        """Build a request using the configured generation defaults."""
        return CompletionRequest.from_prompt(
            prompt,
            system_prompt=system_prompt,
            temperature=(
                self.settings.ai_temperature if temperature is None else temperature
            ),
            max_tokens=self.settings.ai_max_tokens if max_tokens is None else max_tokens,
        )

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Run one completion through rate limiting and retry.

        Args:
            request: Provider-neutral request

        Returns:
            CompletionResult with token count and cost filled in

        Raises:
            ProviderFailure: Classified failure
        """
        adapter = self.get_adapter()

        if not self.rate_limiter.can_make_request(adapter.model_id):
            raise ProviderFailure.rate_limited(adapter.model_id)

        if adapter.use_retry:
            result = await self.retry_policy.execute(lambda: adapter.call(request))
        else:
            result = await adapter.call(request)

        if result.token_count is None:
            result.token_count = self.token_counter.count_completion_tokens(
                request.prompt_text, result.content
            )
        if result.cost_estimate_usd is None:
            result.cost_estimate_usd = self.token_counter.estimate_cost(
                result.token_count, result.model_id
            )

        logger.info(
            f"[LLM] Completion | provider={adapter.name} | model={result.model_id} | "
            f"tokens={result.token_count} | cost=${result.cost_estimate_usd:.4f}"
        )
        return result

    async def complete_prompt(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        """Convenience wrapper around build_request + complete."""
        return await self.complete(
            self.build_request(prompt, system_prompt, temperature, max_tokens)
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


def create_gateway_from_settings(settings: Optional[Settings] = None) -> CompletionGateway:
    """Create a CompletionGateway from application settings.

    Returns:
        Configured CompletionGateway instance
    """
    return CompletionGateway(settings or get_settings())
