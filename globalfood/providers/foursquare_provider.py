"""Foursquare venues provider.

Implements IProviderAdapter against the v2 ``venues/explore`` endpoint,
which (unlike ``venues/search``) carries ratings and price tiers.  Requests
are authenticated with ``client_id``/``client_secret`` plus the API version
date ``v`` and response mode ``m``.

Foursquare accepts coordinates (``ll``) or a place name (``near``).  Venue
ratings are on a 0--10 scale and are halved into the canonical 0--5 range.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from globalfood.interfaces.provider_adapter import IProviderAdapter, ProviderRequest
from globalfood.models.places import CanonicalQuery, CanonicalRecord, Coordinates, PriceTier
from globalfood.providers.client import ProviderClient
from globalfood.utils.errors import ProviderError

_API_BASE = "https://api.foursquare.com/v2"
_EXPLORE_PATH = "/venues/explore"
_DEFAULT_VERSION = "20180323"
_DEFAULT_MODE = "foursquare"
_MAX_LIMIT = 50
_MAX_RADIUS_M = 100_000
_FOOD_SECTION = "food"


class FoursquareAdapter(IProviderAdapter):
    """Foursquare venue exploration restricted to food venues."""

    def get_provider_name(self) -> str:
        return "foursquare"

    @property
    def required_fields(self) -> tuple[str, ...]:
        return ("client_id", "client_secret")

    @property
    def optional_fields(self) -> Mapping[str, str]:
        return {"version": _DEFAULT_VERSION, "mode": _DEFAULT_MODE}

    def build_client(self, bundle: Mapping[str, str], http: httpx.AsyncClient) -> ProviderClient:
        completed = self.complete_bundle(bundle)
        return ProviderClient(
            provider=self.get_provider_name(),
            http=http,
            base_url=_API_BASE,
            params={
                "client_id": completed["client_id"],
                "client_secret": completed["client_secret"],
                "v": completed["version"],
                "m": completed["mode"],
            },
        )

    def translate_query(self, query: CanonicalQuery) -> ProviderRequest | None:
        params: dict[str, Any] = {"limit": min(query.limit, _MAX_LIMIT)}
        if query.coordinates is not None:
            params["ll"] = f"{query.coordinates.lat},{query.coordinates.lng}"
        else:
            params["near"] = query.location_text
        if query.term:
            params["query"] = query.term
        else:
            params["section"] = _FOOD_SECTION
        if query.radius is not None:
            params["radius"] = min(max(1, round(query.radius)), _MAX_RADIUS_M)
        return ProviderRequest(path=_EXPLORE_PATH, params=params)

    def normalize_response(self, response: dict[str, Any]) -> list[CanonicalRecord]:
        meta = response.get("meta") or {}
        code = meta.get("code", 200)
        if code != 200:
            raise ProviderError(
                message=f"{meta.get('errorType', 'error')}: {meta.get('errorDetail', 'unknown')}",
                provider_name=self.get_provider_name(),
                status_code=code,
            )

        body = response.get("response")
        if not isinstance(body, dict):
            raise ProviderError(
                message="payload has no 'response' object",
                provider_name=self.get_provider_name(),
            )

        venues = [
            item.get("venue") or {}
            for group in body.get("groups") or []
            for item in group.get("items") or []
        ]
        return self.collect_records(venues, self._to_record)

    def _to_record(self, venue: dict[str, Any]) -> CanonicalRecord | None:
        name = (venue.get("name") or "").strip()
        location = venue.get("location") or {}
        lat, lng = location.get("lat"), location.get("lng")
        vendor_id = venue.get("id")
        if not name or lat is None or lng is None or not vendor_id:
            return None

        formatted = location.get("formattedAddress") or []
        address = ", ".join(part for part in formatted if part) or location.get("address")

        rating = venue.get("rating")
        price = (venue.get("price") or {}).get("tier")
        contact = venue.get("contact") or {}
        return CanonicalRecord(
            id=f"foursquare:{vendor_id}",
            name=name,
            coordinates=Coordinates(lat=lat, lng=lng),
            address=address or None,
            categories=[c["name"] for c in venue.get("categories") or [] if c.get("name")],
            rating=round(float(rating) / 2.0, 2) if rating is not None else None,
            price=PriceTier.from_level(price),
            url=venue.get("url") or f"https://foursquare.com/v/{vendor_id}",
            phone=contact.get("formattedPhone") or contact.get("phone") or None,
            review_count=venue.get("ratingSignals"),
            sources=["foursquare"],
            source_ids={"foursquare": str(vendor_id)},
            raw={"foursquare": venue},
        )
