"""Provider-neutral completion request and result models."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

Role = Literal["system", "user", "assistant"]


class Message(BaseModel):
    """A single chat message."""

    role: Role
    content: str


class CompletionRequest(BaseModel):
    """A chat completion request understood by every adapter."""

    messages: list[Message] = Field(..., min_length=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, gt=0)

    @model_validator(mode="after")
    def check_roles(self) -> "CompletionRequest":
        roles = [m.role for m in self.messages]
        if roles.count("system") > 1:
            raise ValueError("At most one system message is allowed")
        if "user" not in roles:
            raise ValueError("At least one user message is required")
        return self

    @classmethod
    def from_prompt(
        cls,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs,
    ) -> "CompletionRequest":
        """Build a request from a user prompt and an optional system prompt."""
        messages = []
        if system_prompt:
            messages.append(Message(role="system", content=system_prompt))
        messages.append(Message(role="user", content=prompt))
        return cls(messages=messages, **kwargs)

    @property
    def system_message(self) -> Optional[Message]:
        for message in self.messages:
            if message.role == "system":
                return message
        return None

    @property
    def conversation(self) -> list[Message]:
        """Messages excluding the system prompt."""
        return [m for m in self.messages if m.role != "system"]

    @property
    def prompt_text(self) -> str:
        return "".join(m.content for m in self.messages)


class CompletionResult(BaseModel):
    """Normalized output of a successful completion."""

    content: str
    model_id: str
    provider: Optional[str] = None
    token_count: Optional[int] = None
    cost_estimate_usd: Optional[float] = None
