"""Model provider registry."""

from codepair.config import Settings
from codepair.providers.base import GenerationOptions, ModelProvider, RateLimiter
from codepair.providers.chat import ChatProvider
from codepair.providers.errors import (
    ProviderAuthError,
    ProviderConnectionError,
    ProviderError,
    RateLimitExceeded,
    UnrecognizedResponseError,
    UpstreamRateLimitError,
)
from codepair.providers.local import LocalModelProvider
from codepair.providers.mock import MockProvider
from codepair.providers.openai import OpenAIProvider

__all__ = [
    "ChatProvider",
    "GenerationOptions",
    "LocalModelProvider",
    "MockProvider",
    "ModelProvider",
    "OpenAIProvider",
    "ProviderAuthError",
    "ProviderConnectionError",
    "ProviderError",
    "RateLimitExceeded",
    "RateLimiter",
    "UnrecognizedResponseError",
    "UpstreamRateLimitError",
    "create_provider",
]


def create_provider(name: str, settings: Settings) -> ModelProvider:
    """Build a provider by name from settings."""
    common = {
        "max_requests_per_minute": settings.max_requests_per_minute,
        "timeout": settings.request_timeout,
    }
    if name == "openai":
        return OpenAIProvider(settings.openai, **common)
    if name == "local":
        return LocalModelProvider(settings.local, **common)
    if name == "chat":
        return ChatProvider(settings.chat, **common)
    if name == "mock":
        return MockProvider(**common)
    raise ValueError(f"Unknown provider: {name}")
