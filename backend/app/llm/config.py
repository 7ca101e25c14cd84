"""Provider selection and per-provider configuration.

The active provider is chosen once from settings. Everything downstream
receives a resolved ProviderConfig and never inspects the provider name
to decide how to behave.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from app.config import Settings
from app.utils.errors import ProviderFailure


class Provider(Enum):
    """Supported completion backends."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    OLLAMA = "ollama"


DEFAULT_PROVIDER = Provider.OLLAMA

# Environment variable holding the key for each cloud provider
API_KEY_ENV_VARS: dict[Provider, str] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GEMINI: "GOOGLE_API_KEY",
}


@dataclass(frozen=True)
class ProviderConfig:
    """Resolved configuration for one provider."""

    provider: Provider
    model_id: str
    base_url: str
    temperature: float = 0.7
    max_tokens: int = 2000
    api_key: Optional[str] = field(default=None, repr=False)
    use_retry: bool = True

    @property
    def requires_api_key(self) -> bool:
        return self.provider in API_KEY_ENV_VARS


def active_provider(settings: Settings) -> Provider:
    """Return the provider selected by ``AI_PROVIDER``.

    Raises:
        ProviderFailure: UNSUPPORTED if the selector names an unknown backend
    """
    name = (settings.ai_provider or DEFAULT_PROVIDER.value).strip().lower()
    try:
        return Provider(name)
    except ValueError:
        raise ProviderFailure.unsupported(name) from None


def config_for(provider: Provider, settings: Settings) -> ProviderConfig:
    """Build the configuration for ``provider`` from settings.

    Raises:
        ProviderFailure: AUTH_MISSING if a cloud provider has no API key
    """
    if provider == Provider.OPENAI:
        config = ProviderConfig(
            provider=provider,
            api_key=settings.openai_api_key,
            model_id=settings.openai_model,
            base_url=settings.openai_base_url,
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_max_tokens,
        )
    elif provider == Provider.ANTHROPIC:
        config = ProviderConfig(
            provider=provider,
            api_key=settings.anthropic_api_key,
            model_id=settings.anthropic_model,
            base_url=settings.anthropic_base_url,
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_max_tokens,
        )
    elif provider == Provider.GEMINI:
        config = ProviderConfig(
            provider=provider,
            api_key=settings.google_api_key,
            model_id=settings.gemini_model,
            base_url=settings.gemini_base_url,
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_max_tokens,
        )
    else:
        config = ProviderConfig(
            provider=Provider.OLLAMA,
            model_id=settings.ollama_model,
            base_url=settings.ollama_base_url,
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_max_tokens,
            use_retry=settings.ollama_use_retry,
        )

    if config.requires_api_key and not config.api_key:
        raise ProviderFailure.auth_missing(provider.value, API_KEY_ENV_VARS[provider])

    return config
