"""OpenAI chat completions adapter."""

from typing import Any, Optional

from app.llm.adapters.base import JSON_HEADERS, HTTPRequestSpec, ProviderAdapter, dig
from app.models.completion import CompletionRequest, CompletionResult

# Flat USD rate per 1000 total tokens
GPT4_RATE_PER_1K = 0.03
GPT35_RATE_PER_1K = 0.002


class OpenAIAdapter(ProviderAdapter):
    """POST {base_url}/chat/completions with bearer auth."""

    name = "openai"
    label = "OpenAI"

    def build_request(self, request: CompletionRequest) -> HTTPRequestSpec:
        return HTTPRequestSpec(
            url=f"{self.config.base_url}/chat/completions",
            headers={
                **JSON_HEADERS,
                "Authorization": f"Bearer {self.config.api_key}",
            },
            body={
                "model": self.model_id,
                "messages": [m.model_dump() for m in request.messages],
                "temperature": request.temperature,
                "max_tokens": request.max_tokens,
            },
        )

    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResult:
        content = self.require_text(dig(data, "choices", 0, "message", "content"))

        total_tokens = dig(data, "usage", "total_tokens")
        if not isinstance(total_tokens, int):
            total_tokens = self.estimate_total_tokens(request, content)

        return self.build_result(content, total_tokens, self.calculate_cost(total_tokens))

    def calculate_cost(self, total_tokens: int) -> Optional[float]:
        if "gpt-4" in self.model_id:
            return (total_tokens / 1000) * GPT4_RATE_PER_1K
        if "gpt-3.5" in self.model_id:
            return (total_tokens / 1000) * GPT35_RATE_PER_1K
        return 0.0
