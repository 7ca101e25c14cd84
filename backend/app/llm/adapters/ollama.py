"""Local Ollama chat adapter."""

from typing import Any

from app.llm.adapters.base import JSON_HEADERS, HTTPRequestSpec, ProviderAdapter, dig
from app.models.completion import CompletionRequest, CompletionResult


class OllamaAdapter(ProviderAdapter):
    """POST {base_url}/api/chat without auth.

    Ollama reports no usage we rely on, so tokens are always estimated
    and cost is always zero.
    """

    name = "ollama"
    label = "Ollama"

    def is_available(self) -> bool:
        return bool(self.config.base_url and self.config.model_id)

    def build_request(self, request: CompletionRequest) -> HTTPRequestSpec:
        return HTTPRequestSpec(
            url=f"{self.config.base_url}/api/chat",
            headers=dict(JSON_HEADERS),
            body={
                "model": self.model_id,
                "messages": [m.model_dump() for m in request.messages],
                "options": {
                    "temperature": request.temperature,
                    "num_predict": request.max_tokens,
                },
                "stream": False,
            },
        )

    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResult:
        content = self.require_text(dig(data, "message", "content"))
        return self.build_result(
            content,
            self.estimate_total_tokens(request, content),
            0.0,
        )
