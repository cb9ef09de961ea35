"""Custom exception hierarchy for GlobalFood.

All application exceptions inherit from :class:`GlobalFoodError`, which
carries an optional ``provider_name`` so error handlers can identify which
restaurant-data backend (e.g. "yelp", "zomato") caused the failure.

The hierarchy is organized by where the failure surfaces:

    GlobalFoodError  (base -- catch-all for any GlobalFood error)
    +-- InvalidCredentialsError   (credential bundle present but unusable)
    +-- AuthHandshakeFailedError  (remote token exchange rejected)
    +-- TransportError            (network failure or per-call timeout)
    +-- ProviderError             (non-2xx response or unparseable payload)
    +-- NoProviderAvailableError  (search-level: zero usable providers)
    +-- InvalidQueryError         (caller-supplied query is malformed)
    +-- ConfigurationError        (startup / settings problems)

Per-provider errors (handshake, transport, provider) are captured into the
search result's per-provider status and never escape ``search``.  Only
:class:`NoProviderAvailableError` and :class:`InvalidQueryError` terminate a
search call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from globalfood.models.results import DispatchStatus


class GlobalFoodError(Exception):
    """Base exception for all GlobalFood errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  The ``__str__`` method prefixes the provider name in
    brackets for structured log output, e.g. ``[yelp] HTTP 401``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Credential errors
# ---------------------------------------------------------------------------

class InvalidCredentialsError(GlobalFoodError):
    """Raised when a credential bundle has a field that is present but unusable."""

    def __init__(
        self,
        message: str = "Credential bundle is invalid",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AuthHandshakeFailedError(GlobalFoodError):
    """Raised when exchanging an ID/secret pair for an access token fails."""

    def __init__(
        self,
        message: str = "Authentication handshake failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Per-call provider errors
# ---------------------------------------------------------------------------

class TransportError(GlobalFoodError):
    """Raised on network failures and per-provider timeouts."""

    def __init__(
        self,
        message: str = "Transport failure",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderError(GlobalFoodError):
    """Raised when a provider answers with a non-success status or a malformed payload."""

    def __init__(
        self,
        message: str = "Provider returned an unusable response",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._status_code = status_code

    @property
    def status_code(self) -> int | None:
        return self._status_code


# ---------------------------------------------------------------------------
# Call-terminating errors
# ---------------------------------------------------------------------------

class NoProviderAvailableError(GlobalFoodError):
    """Raised when a search has no provider that could contribute results.

    ``statuses`` holds whatever per-provider outcomes were collected before
    the search gave up (empty when nothing was configured at all).
    """

    def __init__(
        self,
        message: str = "No provider available for this search",
        provider_name: str | None = None,
        statuses: dict[str, DispatchStatus] | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._statuses: dict[str, Any] = dict(statuses or {})

    @property
    def statuses(self) -> dict[str, DispatchStatus]:
        return dict(self._statuses)


class InvalidQueryError(GlobalFoodError):
    """Raised when the caller's search input cannot form a canonical query."""

    def __init__(
        self,
        message: str = "Invalid search query",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(GlobalFoodError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
