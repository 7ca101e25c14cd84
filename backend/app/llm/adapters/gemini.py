"""Google Gemini generateContent adapter."""

from typing import Any, Optional

from app.llm.adapters.base import JSON_HEADERS, HTTPRequestSpec, ProviderAdapter, dig
from app.models.completion import CompletionRequest, CompletionResult

# USD per 1000 total tokens by model family
GEMINI_RATES_PER_1K: dict[str, float] = {
    "gemini-1.5-flash": 0.00015,
    "gemini-1.5-pro": 0.0035,
}


class GeminiAdapter(ProviderAdapter):
    """POST {base_url}/models/{model}:generateContent?key={api_key}."""

    name = "gemini"
    label = "Gemini"

    def build_request(self, request: CompletionRequest) -> HTTPRequestSpec:
        body: dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if m.role == "assistant" else "user",
                    "parts": [{"text": m.content}],
                }
                for m in request.conversation
            ],
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_tokens,
            },
        }
        system_message = request.system_message
        if system_message is not None:
            body["systemInstruction"] = {"parts": [{"text": system_message.content}]}

        return HTTPRequestSpec(
            url=f"{self.config.base_url}/models/{self.model_id}:generateContent",
            headers=dict(JSON_HEADERS),
            params={"key": self.config.api_key or ""},
            body=body,
        )

    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResult:
        content = self.require_text(
            dig(data, "candidates", 0, "content", "parts", 0, "text")
        )

        total_tokens = dig(data, "usageMetadata", "totalTokenCount")
        if not isinstance(total_tokens, int):
            total_tokens = self.estimate_total_tokens(request, content)

        return self.build_result(content, total_tokens, self.calculate_cost(total_tokens))

    def calculate_cost(self, total_tokens: int) -> Optional[float]:
        """None for unknown models so the gateway's price table decides."""
        for family, rate in GEMINI_RATES_PER_1K.items():
            if family in self.model_id:
                return (total_tokens / 1000) * rate
        return None
