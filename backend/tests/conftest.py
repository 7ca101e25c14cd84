"""Shared fixtures for the backend tests."""

import os
import tempfile
from typing import Any, Callable, Optional

import httpx
import pytest

# Importing app.main configures file logging; keep it out of the repo
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="task-assist-logs-"))

from app.config import Settings  # noqa: E402
from app.llm.retry import RetryConfig, RetryPolicy  # noqa: E402
from app.models.completion import CompletionResult  # noqa: E402
from app.models.task import Task  # noqa: E402
from app.services.task_store import InMemoryTaskStore  # noqa: E402


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(float(delay))


class StubGateway:
    """Stands in for CompletionGateway in service tests.

    Replies with ``content`` or raises ``error`` and records every call.
    """

    provider_name = "stub"
    model_id = "stub-model"

    def __init__(
        self,
        content: str = "",
        error: Optional[BaseException] = None,
        on_call: Optional[Callable[[], None]] = None,
        token_count: int = 120,
        cost: float = 0.0012,
    ):
        self.content = content
        self.error = error
        self.on_call = on_call
        self.token_count = token_count
        self.cost = cost
        self.calls: list[dict[str, Any]] = []

    async def complete_prompt(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        self.calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise self.error
        return CompletionResult(
            content=self.content,
            model_id=self.model_id,
            provider=self.provider_name,
            token_count=self.token_count,
            cost_estimate_usd=self.cost,
        )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build Settings that ignore the developer's .env file."""

    def factory(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "ai_provider": "openai",
            "openai_api_key": "sk-test",
            "supabase_url": None,
            "supabase_service_key": None,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest.fixture
def retry_policy(recording_sleep: RecordingSleep) -> RetryPolicy:
    return RetryPolicy(RetryConfig(max_retries=3, initial_delay=1.0), sleep=recording_sleep)


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Wrap a request handler in an AsyncClient backed by MockTransport."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def task() -> Task:
    return Task(id="task-1", user_id="user-1", title="Plan trip", description="", priority="high")


@pytest.fixture
def store(task: Task) -> InMemoryTaskStore:
    return InMemoryTaskStore([task])


@pytest.fixture
def stub_gateway() -> type[StubGateway]:
    return StubGateway
