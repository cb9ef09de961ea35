"""Shared pytest fixtures for the GlobalFood test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from globalfood.interfaces.provider_adapter import IProviderAdapter, ProviderRequest
from globalfood.models.places import CanonicalQuery, CanonicalRecord, Coordinates
from globalfood.providers.client import ProviderClient


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeAdapter(IProviderAdapter):
    """In-memory adapter returning canned records or raising a canned error."""

    def __init__(
        self,
        name: str,
        records: list[CanonicalRecord] | None = None,
        error: BaseException | None = None,
        delay: float = 0.0,
        needs_coordinates: bool = False,
        required: tuple[str, ...] = ("key",),
        handshake: bool = False,
    ) -> None:
        self._name = name
        self._records = list(records or [])
        self._error = error
        self._delay = delay
        self._needs_coordinates = needs_coordinates
        self._required = required
        self.requires_handshake = handshake
        self.calls = 0
        self.built: list[dict[str, str]] = []

    def get_provider_name(self) -> str:
        return self._name

    @property
    def required_fields(self) -> tuple[str, ...]:
        return self._required

    def build_client(self, bundle: Mapping[str, str], http: httpx.AsyncClient) -> ProviderClient:
        self.built.append(dict(bundle))
        return ProviderClient(provider=self._name, http=http, base_url=f"https://{self._name}.test")

    def translate_query(self, query: CanonicalQuery) -> ProviderRequest | None:
        if self._needs_coordinates and query.coordinates is None:
            return None
        return ProviderRequest(path="/search", params={"limit": query.limit})

    async def execute_search(self, client: ProviderClient, request: ProviderRequest) -> dict[str, Any]:
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return {"items": list(self._records)}

    def normalize_response(self, response: dict[str, Any]) -> list[CanonicalRecord]:
        return list(response["items"])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_adapter() -> type[FakeAdapter]:
    """Return the FakeAdapter class so tests can build configured instances."""
    return FakeAdapter


@pytest.fixture
def make_record() -> Callable[..., CanonicalRecord]:
    """Return a factory for single-source CanonicalRecords."""

    def _make(
        provider: str,
        vendor_id: str,
        name: str,
        lat: float,
        lng: float,
        **fields: Any,
    ) -> CanonicalRecord:
        return CanonicalRecord(
            id=f"{provider}:{vendor_id}",
            name=name,
            coordinates=Coordinates(lat=lat, lng=lng),
            sources=[provider],
            source_ids={provider: vendor_id},
            **fields,
        )

    return _make


@pytest.fixture
def mock_http() -> MagicMock:
    """An ``httpx.AsyncClient`` stand-in with awaitable get/post."""
    http = MagicMock(spec=httpx.AsyncClient)
    http.get = AsyncMock()
    http.post = AsyncMock()
    http.aclose = AsyncMock()
    return http


@pytest.fixture
def pizza_query() -> CanonicalQuery:
    return CanonicalQuery(location=Coordinates(lat=40.730, lng=-73.997), term="pizza", limit=10)


def json_response(payload: Any, status_code: int = 200, url: str = "https://api.test/") -> httpx.Response:
    """Build a real httpx.Response carrying *payload* as JSON."""
    return httpx.Response(status_code, json=payload, request=httpx.Request("GET", url))


@pytest.fixture
def make_response() -> Callable[..., httpx.Response]:
    return json_response
