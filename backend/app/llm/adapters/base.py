"""Base class for provider adapters.

An adapter turns a CompletionRequest into one vendor's HTTP request,
performs the call, and normalizes the JSON response into a
CompletionResult. Failures are classified here, where they originate.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from app.llm.config import ProviderConfig
from app.llm.token_counter import TokenCounter, get_token_counter
from app.models.completion import CompletionRequest, CompletionResult
from app.utils.errors import ProviderFailure

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass
class HTTPRequestSpec:
    """Everything needed to send one provider request."""

    url: str
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


class ProviderAdapter(ABC):
    """Translates between the neutral completion shape and a vendor API."""

    name: str = "provider"
    label: str = "Provider"

    def __init__(
        self,
        config: ProviderConfig,
        client: httpx.AsyncClient,
        token_counter: Optional[TokenCounter] = None,
    ):
        self.config = config
        self.client = client
        self.token_counter = token_counter or get_token_counter()

    @property
    def model_id(self) -> str:
        return self.config.model_id

    @property
    def use_retry(self) -> bool:
        """Whether the gateway should wrap calls in the retry policy."""
        return self.config.use_retry

    def is_available(self) -> bool:
        return bool(self.config.api_key)

    @abstractmethod
    def build_request(self, request: CompletionRequest) -> HTTPRequestSpec:
        """Translate a neutral request into the vendor wire format."""

    @abstractmethod
    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResult:
        """Normalize a successful vendor response."""

    async def call(self, request: CompletionRequest) -> CompletionResult:
        """Send the request and return the normalized result.

        Raises:
            ProviderFailure: UPSTREAM_ERROR on transport errors or non-2xx
                responses, MALFORMED_RESPONSE when the body is unusable
        """
        spec = self.build_request(request)

        try:
            response = await self.client.post(
                spec.url,
                json=spec.body,
                headers=spec.headers,
                params=spec.params or None,
            )
        except httpx.TimeoutException as e:
            raise ProviderFailure.upstream(
                self.name, f"{self.label} API request timed out: {e}"
            ) from e
        except httpx.TransportError as e:
            raise ProviderFailure.upstream(
                self.name, f"{self.label} API request failed: {e}"
            ) from e

        if not response.is_success:
            raise ProviderFailure.upstream(
                self.name,
                f"{self.label} API error: {response.status_code} {response.reason_phrase}",
                http_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderFailure.malformed(
                self.name, f"{self.label} API returned invalid JSON"
            ) from e

        if not isinstance(data, dict):
            raise ProviderFailure.malformed(
                self.name, f"{self.label} API returned an unexpected payload"
            )

        return self.parse_response(data, request)

    def require_text(self, value: Any) -> str:
        """Return ``value`` if it is non-empty text, else fail as malformed."""
        if not isinstance(value, str) or not value:
            raise ProviderFailure.malformed(
                self.name, f"Invalid {self.label} API response format"
            )
        return value

    def estimate_total_tokens(self, request: CompletionRequest, content: str) -> int:
        return self.token_counter.count_completion_tokens(request.prompt_text, content)

    def build_result(
        self,
        content: str,
        token_count: Optional[int],
        cost: Optional[float],
    ) -> CompletionResult:
        return CompletionResult(
            content=content,
            model_id=self.model_id,
            provider=self.name,
            token_count=token_count,
            cost_estimate_usd=cost,
        )


def dig(data: Any, *path: Any) -> Any:
    """Follow keys and list indexes through nested JSON, None if absent."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
        elif not isinstance(current, dict):
            return None
        current = current[key] if isinstance(key, int) else current.get(key)
    return current
