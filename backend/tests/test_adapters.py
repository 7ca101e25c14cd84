"""Tests for the provider adapters against mocked vendor APIs.

Each adapter is exercised through httpx.MockTransport, so the exact
request it sends and the way it reads the reply are both checked.

Run with: pytest tests/test_adapters.py -v
"""

import json

import httpx
import pytest

from app.llm.adapters import (
    AnthropicAdapter,
    GeminiAdapter,
    OllamaAdapter,
    OpenAIAdapter,
    create_adapter,
)
from app.llm.config import Provider, ProviderConfig
from app.models.completion import CompletionRequest, Message
from app.utils.errors import FailureKind, ProviderFailure

BASE_URL = "https://llm.test/v1"
REPLY = "  Step 1: pack.\nStep 2: go!  "


def success_payload(provider: Provider, text: str) -> dict:
    """Minimal successful response body for each vendor."""
    if provider == Provider.OPENAI:
        return {
            "choices": [{"message": {"role": "assistant", "content": text}}],
            "usage": {"total_tokens": 42},
        }
    if provider == Provider.ANTHROPIC:
        return {
            "content": [{"type": "text", "text": text}],
            "usage": {"input_tokens": 30, "output_tokens": 12},
        }
    if provider == Provider.GEMINI:
        return {
            "candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}],
            "usageMetadata": {"totalTokenCount": 42},
        }
    return {"message": {"role": "assistant", "content": text}, "done": True}


MODELS = {
    Provider.OPENAI: "gpt-3.5-turbo",
    Provider.ANTHROPIC: "claude-3-sonnet-20240229",
    Provider.GEMINI: "gemini-1.5-flash",
    Provider.OLLAMA: "llama3.1:8b",
}


def make_config(provider: Provider, **overrides) -> ProviderConfig:
    values = {
        "provider": provider,
        "model_id": MODELS[provider],
        "base_url": BASE_URL,
        "api_key": None if provider == Provider.OLLAMA else "key-123",
    }
    values.update(overrides)
    return ProviderConfig(**values)


def make_request() -> CompletionRequest:
    return CompletionRequest(
        messages=[
            Message(role="system", content="You are helpful."),
            Message(role="user", content="Plan my trip"),
            Message(role="assistant", content="Where to?"),
            Message(role="user", content="Kyoto"),
        ],
        temperature=0.5,
        max_tokens=256,
    )


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code=200, payload=None, content=None):
        self.status_code = status_code
        self.payload = payload
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.payload or {})

    @property
    def body(self) -> dict:
        return json.loads(self.requests[-1].content)


ALL_PROVIDERS = list(Provider)


# ============================================
# Shared Behaviour
# ============================================


class TestAllAdapters:
    """Properties every adapter must satisfy."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    async def test_success_returns_text_unmodified(self, provider, mock_client):
        handler = Recorder(payload=success_payload(provider, REPLY))
        async with mock_client(handler) as client:
            adapter = create_adapter(make_config(provider), client)
            result = await adapter.call(make_request())

        assert result.content == REPLY
        assert result.model_id == MODELS[provider]
        assert result.provider == provider.value
        assert result.token_count is not None and result.token_count > 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    @pytest.mark.parametrize("status_code", [400, 401, 404, 429, 500, 502, 503])
    async def test_non_2xx_is_upstream_error(self, provider, status_code, mock_client):
        handler = Recorder(status_code=status_code, payload={"error": "nope"})
        async with mock_client(handler) as client:
            adapter = create_adapter(make_config(provider), client)
            with pytest.raises(ProviderFailure) as exc_info:
                await adapter.call(make_request())

        failure = exc_info.value
        assert failure.kind == FailureKind.UPSTREAM_ERROR
        assert failure.http_status == status_code
        assert failure.retryable == (status_code >= 500)
        assert str(status_code) in failure.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    async def test_missing_text_is_malformed(self, provider, mock_client):
        handler = Recorder(payload={"unexpected": True})
        async with mock_client(handler) as client:
            adapter = create_adapter(make_config(provider), client)
            with pytest.raises(ProviderFailure) as exc_info:
                await adapter.call(make_request())

        assert exc_info.value.kind == FailureKind.MALFORMED_RESPONSE
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    async def test_empty_text_is_malformed(self, provider, mock_client):
        handler = Recorder(payload=success_payload(provider, ""))
        async with mock_client(handler) as client:
            adapter = create_adapter(make_config(provider), client)
            with pytest.raises(ProviderFailure) as exc_info:
                await adapter.call(make_request())

        assert exc_info.value.kind == FailureKind.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_invalid_json_body_is_malformed(self, mock_client):
        handler = Recorder(content=b"<html>gateway</html>")
        async with mock_client(handler) as client:
            adapter = OpenAIAdapter(make_config(Provider.OPENAI), client)
            with pytest.raises(ProviderFailure) as exc_info:
                await adapter.call(make_request())

        assert exc_info.value.kind == FailureKind.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_transport_error_is_retryable_upstream_error(self, mock_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            adapter = OllamaAdapter(make_config(Provider.OLLAMA), client)
            with pytest.raises(ProviderFailure) as exc_info:
                await adapter.call(make_request())

        assert exc_info.value.kind == FailureKind.UPSTREAM_ERROR
        assert exc_info.value.http_status is None
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_timeout_is_retryable_upstream_error(self, mock_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        async with mock_client(handler) as client:
            adapter = AnthropicAdapter(make_config(Provider.ANTHROPIC), client)
            with pytest.raises(ProviderFailure) as exc_info:
                await adapter.call(make_request())

        assert exc_info.value.retryable is True
        assert "timed out" in exc_info.value.message


# ============================================
# Wire Formats
# ============================================


class TestOpenAIAdapter:
    """Test the chat completions wire format."""

    @pytest.mark.asyncio
    async def test_request_shape(self, mock_client):
        handler = Recorder(payload=success_payload(Provider.OPENAI, "ok"))
        async with mock_client(handler) as client:
            await OpenAIAdapter(make_config(Provider.OPENAI), client).call(make_request())

        sent = handler.requests[0]
        assert sent.method == "POST"
        assert str(sent.url) == f"{BASE_URL}/chat/completions"
        assert sent.headers["Authorization"] == "Bearer key-123"
        assert handler.body == {
            "model": "gpt-3.5-turbo",
            "messages": [
                {"role": "system", "content": "You are helpful."},
                {"role": "user", "content": "Plan my trip"},
                {"role": "assistant", "content": "Where to?"},
                {"role": "user", "content": "Kyoto"},
            ],
            "temperature": 0.5,
            "max_tokens": 256,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "model_id,expected",
        [("gpt-4", 0.042 * 0.03), ("gpt-3.5-turbo", 0.042 * 0.002), ("o1-mini", 0.0)],
    )
    async def test_flat_rate_cost(self, model_id, expected, mock_client):
        handler = Recorder(payload=success_payload(Provider.OPENAI, "ok"))
        async with mock_client(handler) as client:
            adapter = OpenAIAdapter(make_config(Provider.OPENAI, model_id=model_id), client)
            result = await adapter.call(make_request())

        assert result.token_count == 42
        assert result.cost_estimate_usd == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_estimates_tokens_without_usage(self, mock_client):
        handler = Recorder(payload={"choices": [{"message": {"content": "abcd"}}]})
        async with mock_client(handler) as client:
            result = await OpenAIAdapter(make_config(Provider.OPENAI), client).call(
                CompletionRequest.from_prompt("abcdefgh")
            )

        assert result.token_count == 3


class TestAnthropicAdapter:
    """Test the messages API wire format."""

    @pytest.mark.asyncio
    async def test_system_prompt_is_lifted_out(self, mock_client):
        handler = Recorder(payload=success_payload(Provider.ANTHROPIC, "ok"))
        async with mock_client(handler) as client:
            await AnthropicAdapter(make_config(Provider.ANTHROPIC), client).call(make_request())

        sent = handler.requests[0]
        assert str(sent.url) == f"{BASE_URL}/messages"
        assert sent.headers["x-api-key"] == "key-123"
        assert sent.headers["anthropic-version"] == "2023-06-01"
        assert "authorization" not in sent.headers
        assert handler.body["system"] == "You are helpful."
        assert handler.body["max_tokens"] == 256
        assert [m["role"] for m in handler.body["messages"]] == ["user", "assistant", "user"]

    @pytest.mark.asyncio
    async def test_no_system_key_without_system_message(self, mock_client):
        handler = Recorder(payload=success_payload(Provider.ANTHROPIC, "ok"))
        async with mock_client(handler) as client:
            await AnthropicAdapter(make_config(Provider.ANTHROPIC), client).call(
                CompletionRequest.from_prompt("hello")
            )

        assert "system" not in handler.body

    @pytest.mark.asyncio
    async def test_sonnet_cost_uses_input_and_output_rates(self, mock_client):
        handler = Recorder(payload=success_payload(Provider.ANTHROPIC, "ok"))
        async with mock_client(handler) as client:
            result = await AnthropicAdapter(make_config(Provider.ANTHROPIC), client).call(
                make_request()
            )

        assert result.token_count == 42
        assert result.cost_estimate_usd == pytest.approx(0.030 * 0.003 + 0.012 * 0.015)

    @pytest.mark.asyncio
    async def test_other_claude_models_cost_nothing(self, mock_client):
        handler = Recorder(payload=success_payload(Provider.ANTHROPIC, "ok"))
        config = make_config(Provider.ANTHROPIC, model_id="claude-3-haiku-20240307")
        async with mock_client(handler) as client:
            result = await AnthropicAdapter(config, client).call(make_request())

        assert result.cost_estimate_usd == 0.0


class TestGeminiAdapter:
    """Test the generateContent wire format."""

    @pytest.mark.asyncio
    async def test_request_shape(self, mock_client):
        handler = Recorder(payload=success_payload(Provider.GEMINI, "ok"))
        async with mock_client(handler) as client:
            await GeminiAdapter(make_config(Provider.GEMINI), client).call(make_request())

        sent = handler.requests[0]
        assert sent.url.path == "/v1/models/gemini-1.5-flash:generateContent"
        assert sent.url.params["key"] == "key-123"
        assert handler.body["contents"] == [
            {"role": "user", "parts": [{"text": "Plan my trip"}]},
            {"role": "model", "parts": [{"text": "Where to?"}]},
            {"role": "user", "parts": [{"text": "Kyoto"}]},
        ]
        assert handler.body["systemInstruction"] == {"parts": [{"text": "You are helpful."}]}
        assert handler.body["generationConfig"] == {"temperature": 0.5, "maxOutputTokens": 256}

    @pytest.mark.asyncio
    async def test_empty_candidates_is_malformed(self, mock_client):
        handler = Recorder(payload={"candidates": []})
        async with mock_client(handler) as client:
            with pytest.raises(ProviderFailure) as exc_info:
                await GeminiAdapter(make_config(Provider.GEMINI), client).call(make_request())

        assert exc_info.value.kind == FailureKind.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_unknown_model_leaves_cost_to_gateway(self, mock_client):
        handler = Recorder(payload=success_payload(Provider.GEMINI, "ok"))
        config = make_config(Provider.GEMINI, model_id="gemini-2.0-experimental")
        async with mock_client(handler) as client:
            result = await GeminiAdapter(config, client).call(make_request())

        assert result.cost_estimate_usd is None


class TestOllamaAdapter:
    """Test the local chat wire format."""

    @pytest.mark.asyncio
    async def test_request_shape(self, mock_client):
        handler = Recorder(payload=success_payload(Provider.OLLAMA, "ok"))
        async with mock_client(handler) as client:
            await OllamaAdapter(make_config(Provider.OLLAMA), client).call(make_request())

        sent = handler.requests[0]
        assert str(sent.url) == f"{BASE_URL}/api/chat"
        assert "authorization" not in sent.headers
        assert handler.body["stream"] is False
        assert handler.body["options"] == {"temperature": 0.5, "num_predict": 256}
        assert len(handler.body["messages"]) == 4

    @pytest.mark.asyncio
    async def test_tokens_estimated_and_cost_zero(self, mock_client):
        payload = success_payload(Provider.OLLAMA, "abcde")
        payload["eval_count"] = 999
        handler = Recorder(payload=payload)
        async with mock_client(handler) as client:
            result = await OllamaAdapter(make_config(Provider.OLLAMA), client).call(
                CompletionRequest.from_prompt("abcd")
            )

        assert result.token_count == 1 + 2
        assert result.cost_estimate_usd == 0.0

    def test_available_without_key(self):
        adapter = OllamaAdapter(make_config(Provider.OLLAMA), httpx.AsyncClient())
        assert adapter.is_available() is True
        assert adapter.use_retry is True

    def test_cloud_adapter_unavailable_without_key(self):
        adapter = OpenAIAdapter(make_config(Provider.OPENAI, api_key=None), httpx.AsyncClient())
        assert adapter.is_available() is False
