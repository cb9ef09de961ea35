"""Zomato restaurant-search provider.

Implements IProviderAdapter for ``GET /api/v2.1/search``, authenticated by
the ``user-key`` header.  Zomato needs coordinates (free-text locations
would require a separate city lookup), so a text-only query is skipped.

Zomato serialises coordinates and ratings as strings; an aggregate rating
of ``"0"`` means "not rated yet" and coordinates of ``0,0`` mean "unknown".
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from globalfood.interfaces.provider_adapter import IProviderAdapter, ProviderRequest
from globalfood.models.places import CanonicalQuery, CanonicalRecord, Coordinates, PriceTier
from globalfood.providers.client import ProviderClient
from globalfood.utils.errors import ProviderError

_API_BASE = "https://developers.zomato.com/api/v2.1"
_SEARCH_PATH = "/search"
_MAX_COUNT = 20


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ZomatoAdapter(IProviderAdapter):
    """Zomato geo search."""

    def get_provider_name(self) -> str:
        return "zomato"

    @property
    def required_fields(self) -> tuple[str, ...]:
        return ("api_key",)

    def build_client(self, bundle: Mapping[str, str], http: httpx.AsyncClient) -> ProviderClient:
        return ProviderClient(
            provider=self.get_provider_name(),
            http=http,
            base_url=_API_BASE,
            headers={"user-key": bundle["api_key"], "Accept": "application/json"},
        )

    def translate_query(self, query: CanonicalQuery) -> ProviderRequest | None:
        if query.coordinates is None:
            return None
        params: dict[str, Any] = {
            "lat": query.coordinates.lat,
            "lon": query.coordinates.lng,
            "count": min(query.limit, _MAX_COUNT),
        }
        if query.term:
            params["q"] = query.term
        if query.radius is not None:
            params["radius"] = query.radius
        return ProviderRequest(path=_SEARCH_PATH, params=params)

    def normalize_response(self, response: dict[str, Any]) -> list[CanonicalRecord]:
        restaurants = response.get("restaurants")
        if not isinstance(restaurants, list):
            raise ProviderError(
                message=response.get("message") or "payload has no 'restaurants' list",
                provider_name=self.get_provider_name(),
                status_code=response.get("code"),
            )

        items = [(wrapper or {}).get("restaurant") or {} for wrapper in restaurants]
        return self.collect_records(items, self._to_record)

    def _to_record(self, item: dict[str, Any]) -> CanonicalRecord | None:
        name = (item.get("name") or "").strip()
        location = item.get("location") or {}
        lat = _to_float(location.get("latitude"))
        lng = _to_float(location.get("longitude"))
        vendor_id = item.get("id") or item.get("R", {}).get("res_id")
        if not name or lat is None or lng is None or not vendor_id:
            return None
        if lat == 0.0 and lng == 0.0:
            return None

        user_rating = item.get("user_rating") or {}
        rating = _to_float(user_rating.get("aggregate_rating"))
        votes = user_rating.get("votes")
        cuisines = item.get("cuisines") or ""

        return CanonicalRecord(
            id=f"zomato:{vendor_id}",
            name=name,
            coordinates=Coordinates(lat=lat, lng=lng),
            address=location.get("address") or None,
            categories=[c.strip() for c in cuisines.split(",") if c.strip()],
            rating=rating if rating else None,
            price=PriceTier.from_level(item.get("price_range")),
            url=item.get("url"),
            phone=item.get("phone_numbers") or None,
            review_count=int(votes) if votes not in (None, "") else None,
            sources=["zomato"],
            source_ids={"zomato": str(vendor_id)},
            raw={"zomato": item},
        )
