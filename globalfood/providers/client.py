"""Authenticated HTTP handle shared by every provider adapter.

A ``ProviderClient`` binds an injected ``httpx.AsyncClient`` to one vendor's
base URL and authentication material (query parameters and/or headers).
Instances are immutable: when credentials change the credential store builds
a new client rather than editing the old one, so an in-flight search keeps
using the client it started with.

``get_json`` is also where wire-level failures are classified:

    httpx.TimeoutException / httpx.TransportError  ->  TransportError
    HTTP status >= 400                              ->  ProviderError
    non-JSON body or non-object JSON                ->  ProviderError
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import httpx

from globalfood.utils.errors import ProviderError, TransportError
from globalfood.utils.logging import get_logger

_USER_AGENT = "globalfood/0.1.0"
_ERROR_BODY_PREVIEW = 200

logger = get_logger(__name__)


class ProviderClient:
    """Read-only binding of an HTTP client to one provider's API."""

    __slots__ = ("_provider", "_http", "_base_url", "_params", "_headers")

    def __init__(
        self,
        provider: str,
        http: httpx.AsyncClient,
        base_url: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._provider = provider
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._params = MappingProxyType(dict(params or {}))
        self._headers = MappingProxyType({"User-Agent": _USER_AGENT, **dict(headers or {})})

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def auth_params(self) -> Mapping[str, Any]:
        return self._params

    @property
    def headers(self) -> Mapping[str, str]:
        return self._headers

    def __repr__(self) -> str:
        return f"ProviderClient(provider={self._provider!r}, base_url={self._base_url!r})"

    async def get_json(self, path: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """GET ``base_url + path`` with auth applied and return the JSON object."""
        url = f"{self._base_url}/{path.lstrip('/')}"
        merged = {**self._params, **dict(params or {})}

        try:
            response = await self._http.get(url, params=merged, headers=dict(self._headers))
        except httpx.TimeoutException as exc:
            raise TransportError(
                message=f"request to {url} timed out",
                provider_name=self._provider,
            ) from exc
        except httpx.TransportError as exc:
            raise TransportError(
                message=f"request to {url} failed: {exc}",
                provider_name=self._provider,
            ) from exc

        return parse_json_response(response, self._provider)


def parse_json_response(response: httpx.Response, provider: str) -> dict[str, Any]:
    """Validate status and decode a JSON object body, or raise ProviderError."""
    if response.status_code >= 400:
        preview = (response.text or "")[:_ERROR_BODY_PREVIEW]
        logger.warning(
            "provider_http_error",
            provider=provider,
            status=response.status_code,
            body=preview,
        )
        raise ProviderError(
            message=f"HTTP {response.status_code}: {preview}",
            provider_name=provider,
            status_code=response.status_code,
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderError(
            message="response body is not valid JSON",
            provider_name=provider,
            status_code=response.status_code,
        ) from exc

    if not isinstance(payload, dict):
        raise ProviderError(
            message=f"expected a JSON object, got {type(payload).__name__}",
            provider_name=provider,
            status_code=response.status_code,
        )
    return payload
