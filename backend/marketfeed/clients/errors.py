"""Typed errors raised by provider clients.

``retryable`` tells the transport whether a failed attempt may be retried.
"""

from __future__ import annotations


class MarketDataError(Exception):
    """Base class for provider failures."""

    retryable = False

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"[{provider}] {message}")


class ResponseValidationError(MarketDataError):
    """Malformed or implausible payload. Never cached, never retried."""


class RateLimitedError(MarketDataError):
    """HTTP 429 or a provider rate-limit notice."""

    retryable = True


class UnauthorizedError(MarketDataError):
    """HTTP 401/403: bad or missing credentials."""


class GeoRestrictedError(MarketDataError):
    """HTTP 451: the provider refuses requests from this region."""


class TransientTransportError(MarketDataError):
    """5xx, 408 or a network failure."""

    retryable = True


class ProviderRequestError(MarketDataError):
    """Any other 4xx: the request itself is wrong."""


class UnsupportedTimeframeError(MarketDataError):
    """The provider has no interval for the requested timeframe."""


class ProviderNotConfiguredError(MarketDataError):
    """The provider needs an API key and none is configured."""


def error_for_status(provider: str, status_code: int, body: str = "") -> MarketDataError:
    """Map a non-2xx HTTP status to a typed error."""
    detail = f"HTTP {status_code}"
    if body:
        detail = f"{detail}: {body[:200]}"

    if status_code == 429:
        return RateLimitedError(provider, detail, status_code)
    if status_code in (401, 403):
        return UnauthorizedError(provider, detail, status_code)
    if status_code == 451:
        return GeoRestrictedError(provider, detail, status_code)
    if status_code == 408 or status_code >= 500:
        return TransientTransportError(provider, detail, status_code)
    return ProviderRequestError(provider, detail, status_code)
