"""Custom exception classes."""

from enum import Enum
from typing import Optional

from fastapi import HTTPException, status


class TaskAssistError(Exception):
    """Base exception for task assistant errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class FailureKind(Enum):
    """Classification of a failed completion."""

    RATE_LIMITED = "rate_limited"
    AUTH_MISSING = "auth_missing"
    UPSTREAM_ERROR = "upstream_error"
    MALFORMED_RESPONSE = "malformed_response"
    UNSUPPORTED = "unsupported"
    MAX_RETRIES_EXCEEDED = "max_retries_exceeded"


class ProviderFailure(TaskAssistError):
    """A classified failure raised by the completion gateway or an adapter.

    Callers decide what to do from ``kind`` and ``retryable`` rather than
    from the exception type.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        http_status: Optional[int] = None,
        provider: Optional[str] = None,
    ):
        self.kind = kind
        self.http_status = http_status
        self.provider = provider
        super().__init__(
            message,
            details={
                "kind": kind.value,
                "http_status": http_status,
                "provider": provider,
            },
        )

    @property
    def retryable(self) -> bool:
        if self.kind == FailureKind.RATE_LIMITED:
            return True
        if self.kind == FailureKind.UPSTREAM_ERROR:
            # No status means the request never got an answer (timeout, reset)
            return self.http_status is None or self.http_status >= 500
        return False

    @classmethod
    def rate_limited(cls, model_id: str) -> "ProviderFailure":
        return cls(
            FailureKind.RATE_LIMITED,
            f"Rate limit reached for model {model_id}. Please try again shortly.",
        )

    @classmethod
    def auth_missing(cls, provider: str, env_var: str) -> "ProviderFailure":
        return cls(
            FailureKind.AUTH_MISSING,
            f"{env_var} is required when using the {provider} provider",
            provider=provider,
        )

    @classmethod
    def upstream(
        cls,
        provider: str,
        message: str,
        http_status: Optional[int] = None,
    ) -> "ProviderFailure":
        return cls(
            FailureKind.UPSTREAM_ERROR,
            message,
            http_status=http_status,
            provider=provider,
        )

    @classmethod
    def malformed(cls, provider: str, message: str) -> "ProviderFailure":
        return cls(FailureKind.MALFORMED_RESPONSE, message, provider=provider)

    @classmethod
    def unsupported(cls, provider: str) -> "ProviderFailure":
        return cls(
            FailureKind.UNSUPPORTED,
            f"Unsupported AI provider: {provider}",
            provider=provider,
        )

    @classmethod
    def max_retries_exceeded(
        cls, max_retries: int, last_error: BaseException
    ) -> "ProviderFailure":
        last_message = str(last_error) or type(last_error).__name__
        return cls(
            FailureKind.MAX_RETRIES_EXCEEDED,
            f"Max retries ({max_retries}) exceeded: {last_message}",
            provider=getattr(last_error, "provider", None),
        )


class TaskNotFoundError(TaskAssistError):
    """The task does not exist or is not owned by the requester."""

    pass


class StorageError(TaskAssistError):
    """Error during task store operations."""

    pass


def http_error(
    status_code: int,
    message: str,
    headers: dict | None = None,
) -> HTTPException:
    """Create an HTTPException with the given parameters."""
    return HTTPException(
        status_code=status_code,
        detail=message,
        headers=headers,
    )


def not_found(resource: str = "Resource") -> HTTPException:
    """Create a 404 Not Found exception."""
    return http_error(status.HTTP_404_NOT_FOUND, f"{resource} not found")


def unauthorized(message: str = "Not authenticated") -> HTTPException:
    """Create a 401 Unauthorized exception."""
    return http_error(
        status.HTTP_401_UNAUTHORIZED,
        message,
        headers={"WWW-Authenticate": "Bearer"},
    )

