"""Typed failures raised by model providers."""

import httpx


class ProviderError(Exception):
    """Generic provider failure."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.provider = provider


class ProviderConnectionError(ProviderError):
    """Backend unreachable, refused the connection, or timed out."""


class ProviderAuthError(ProviderError):
    """Backend rejected the credentials."""


class UpstreamRateLimitError(ProviderError):
    """Backend answered with its own rate-limit rejection."""


class RateLimitExceeded(ProviderError):
    """Local per-minute request budget used up. No request was sent."""


class UnrecognizedResponseError(ProviderError):
    """Payload did not match any shape the backend knows how to decode."""


def translate_http_error(exc: httpx.HTTPError, provider: str) -> ProviderError:
    """Map an httpx failure onto the provider error taxonomy."""
    if isinstance(exc, (httpx.ConnectError, httpx.TimeoutException)):
        return ProviderConnectionError(f"Unable to reach {provider} backend: {exc}", provider)
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status in (401, 403):
            return ProviderAuthError(
                f"{provider} authentication failed. Please check your API key.", provider
            )
        if status == 429:
            return UpstreamRateLimitError(
                f"{provider} rate limit exceeded. Please try again later.", provider
            )
        return ProviderError(f"{provider} completion failed: HTTP {status}", provider)
    if isinstance(exc, httpx.TransportError):
        return ProviderConnectionError(f"Unable to reach {provider} backend: {exc}", provider)
    return ProviderError(f"{provider} completion failed: {exc}", provider)
