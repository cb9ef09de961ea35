"""Yelp Fusion provider.

Implements IProviderAdapter for ``GET /v3/businesses/search``.  Yelp is the
one handshake provider: the client ID/secret pair is exchanged for a bearer
token at ``POST /oauth2/token`` before a client can be built, so the
credential store runs :meth:`YelpAdapter.authenticate` as a background task
and the provider only becomes searchable once the token arrives.

Yelp accepts either coordinates or free-text ``location``.  Ratings are
already on a 0--5 scale; price comes as ``"$"`` .. ``"$$$$"``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from globalfood.interfaces.provider_adapter import IProviderAdapter, ProviderRequest
from globalfood.models.places import CanonicalQuery, CanonicalRecord, Coordinates, PriceTier
from globalfood.providers.client import ProviderClient, parse_json_response
from globalfood.utils.errors import AuthHandshakeFailedError, ProviderError
from globalfood.utils.logging import get_logger

_API_BASE = "https://api.yelp.com/v3"
_TOKEN_URL = "https://api.yelp.com/oauth2/token"
_SEARCH_PATH = "/businesses/search"
_MAX_LIMIT = 50
_MAX_RADIUS_M = 40_000
_DEFAULT_TERM = "restaurants"


class YelpAdapter(IProviderAdapter):
    """Yelp Fusion business search."""

    requires_handshake = True

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    def get_provider_name(self) -> str:
        return "yelp"

    @property
    def required_fields(self) -> tuple[str, ...]:
        return ("client_id", "client_secret")

    async def authenticate(self, bundle: Mapping[str, str], http: httpx.AsyncClient) -> ProviderClient:
        """Exchange the client credentials for an access token."""
        data = {
            "grant_type": "client_credentials",
            "client_id": bundle["client_id"],
            "client_secret": bundle["client_secret"],
        }
        try:
            response = await http.post(_TOKEN_URL, data=data)
        except httpx.HTTPError as exc:
            raise AuthHandshakeFailedError(
                message=f"token request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            payload = parse_json_response(response, self.get_provider_name())
        except ProviderError as exc:
            raise AuthHandshakeFailedError(
                message=f"token request rejected: {exc.message}",
                provider_name=self.get_provider_name(),
            ) from exc

        token = payload.get("access_token")
        if not token:
            raise AuthHandshakeFailedError(
                message="token response did not include an access_token",
                provider_name=self.get_provider_name(),
            )

        self._logger.info("yelp_handshake_complete", expires_in=payload.get("expires_in"))
        return ProviderClient(
            provider=self.get_provider_name(),
            http=http,
            base_url=_API_BASE,
            headers={"Authorization": f"Bearer {token}"},
        )

    def translate_query(self, query: CanonicalQuery) -> ProviderRequest | None:
        params: dict[str, Any] = {
            "term": query.term or _DEFAULT_TERM,
            "limit": min(query.limit, _MAX_LIMIT),
        }
        if query.coordinates is not None:
            params["latitude"] = query.coordinates.lat
            params["longitude"] = query.coordinates.lng
        else:
            params["location"] = query.location_text
        if query.radius is not None:
            params["radius"] = min(max(1, round(query.radius)), _MAX_RADIUS_M)
        return ProviderRequest(path=_SEARCH_PATH, params=params)

    def normalize_response(self, response: dict[str, Any]) -> list[CanonicalRecord]:
        businesses = response.get("businesses")
        if not isinstance(businesses, list):
            raise ProviderError(
                message="payload has no 'businesses' list",
                provider_name=self.get_provider_name(),
            )

        return self.collect_records(businesses, self._to_record)

    def _to_record(self, item: dict[str, Any]) -> CanonicalRecord | None:
        name = (item.get("name") or "").strip()
        coords = item.get("coordinates") or {}
        lat, lng = coords.get("latitude"), coords.get("longitude")
        vendor_id = item.get("id")
        if not name or lat is None or lng is None or not vendor_id:
            return None

        location = item.get("location") or {}
        display_address = location.get("display_address") or []
        address = ", ".join(part for part in display_address if part) or location.get("address1")

        rating = item.get("rating")
        return CanonicalRecord(
            id=f"yelp:{vendor_id}",
            name=name,
            coordinates=Coordinates(lat=lat, lng=lng),
            address=address or None,
            categories=[c["title"] for c in item.get("categories") or [] if c.get("title")],
            rating=float(rating) if rating is not None else None,
            price=PriceTier.from_symbols(item.get("price")),
            url=item.get("url"),
            phone=item.get("display_phone") or item.get("phone") or None,
            review_count=item.get("review_count"),
            sources=["yelp"],
            source_ids={"yelp": str(vendor_id)},
            raw={"yelp": item},
        )
