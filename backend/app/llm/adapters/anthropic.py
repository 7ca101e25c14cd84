"""Anthropic messages API adapter."""

from typing import Any, Optional

from app.llm.adapters.base import JSON_HEADERS, HTTPRequestSpec, ProviderAdapter, dig
from app.models.completion import CompletionRequest, CompletionResult

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):
    """POST {base_url}/messages with the system prompt lifted out."""

    name = "anthropic"
    label = "Anthropic"

    def build_request(self, request: CompletionRequest) -> HTTPRequestSpec:
        body: dict[str, Any] = {
            "model": self.model_id,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        system_message = request.system_message
        if system_message is not None:
            body["system"] = system_message.content
        body["messages"] = [m.model_dump() for m in request.conversation]

        return HTTPRequestSpec(
            url=f"{self.config.base_url}/messages",
            headers={
                **JSON_HEADERS,
                "x-api-key": self.config.api_key or "",
                "anthropic-version": ANTHROPIC_VERSION,
            },
            body=body,
        )

    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResult:
        content = self.require_text(dig(data, "content", 0, "text"))

        input_tokens = dig(data, "usage", "input_tokens")
        output_tokens = dig(data, "usage", "output_tokens")
        if isinstance(input_tokens, int) and isinstance(output_tokens, int):
            total_tokens = input_tokens + output_tokens
        else:
            input_tokens = self.token_counter.count_tokens(request.prompt_text)
            output_tokens = self.token_counter.count_tokens(content)
            total_tokens = input_tokens + output_tokens

        return self.build_result(
            content,
            total_tokens,
            self.calculate_cost(input_tokens, output_tokens),
        )

    def calculate_cost(self, input_tokens: int, output_tokens: int) -> Optional[float]:
        # Only claude-3-sonnet is priced; other models cost nothing
        return self.token_counter.estimate_split_cost(
            input_tokens, output_tokens, self.model_id
        )
