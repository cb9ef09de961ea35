"""Factual Global Places provider (``restaurants-us`` table).

Implements IProviderAdapter for ``GET /t/restaurants-us`` with a circular
geo filter, so only coordinate queries are translated.  Requests are
authenticated with the ``KEY`` parameter.  The secret is still required in
the credential bundle so a provider only counts as configured when it has
the full key pair.

Factual ratings are 1--5, prices 1--5 (clamped into the four canonical
tiers), and categories arrive as label paths
(``[["Social", "Food and Dining", "Restaurants", "Pizza"]]``) of which the
leaf is kept.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import httpx

from globalfood.interfaces.provider_adapter import IProviderAdapter, ProviderRequest
from globalfood.models.places import CanonicalQuery, CanonicalRecord, Coordinates, PriceTier
from globalfood.providers.client import ProviderClient
from globalfood.utils.errors import ProviderError

_API_BASE = "https://api.factual.com"
_TABLE_PATH = "/t/restaurants-us"
_MAX_LIMIT = 50
_DEFAULT_RADIUS_M = 5_000


class FactualAdapter(IProviderAdapter):
    """Factual restaurants table read with a geo circle filter."""

    def get_provider_name(self) -> str:
        return "factual"

    @property
    def required_fields(self) -> tuple[str, ...]:
        return ("key", "secret")

    def build_client(self, bundle: Mapping[str, str], http: httpx.AsyncClient) -> ProviderClient:
        return ProviderClient(
            provider=self.get_provider_name(),
            http=http,
            base_url=_API_BASE,
            params={"KEY": bundle["key"]},
        )

    def translate_query(self, query: CanonicalQuery) -> ProviderRequest | None:
        if query.coordinates is None:
            return None
        radius = max(1, round(query.radius)) if query.radius is not None else _DEFAULT_RADIUS_M
        geo = {"$circle": {"$center": [query.coordinates.lat, query.coordinates.lng], "$meters": radius}}
        params: dict[str, Any] = {
            "geo": json.dumps(geo, separators=(",", ":")),
            "limit": min(query.limit, _MAX_LIMIT),
        }
        if query.term:
            params["q"] = query.term
        return ProviderRequest(path=_TABLE_PATH, params=params)

    def normalize_response(self, response: dict[str, Any]) -> list[CanonicalRecord]:
        status = response.get("status", "ok")
        if status != "ok":
            raise ProviderError(
                message=f"{response.get('error_type', 'error')}: {response.get('message', 'unknown')}",
                provider_name=self.get_provider_name(),
            )

        body = response.get("response") or {}
        data = body.get("data")
        if not isinstance(data, list):
            raise ProviderError(
                message="payload has no 'response.data' list",
                provider_name=self.get_provider_name(),
            )

        return self.collect_records(data, self._to_record)

    @staticmethod
    def _format_address(item: dict[str, Any]) -> str | None:
        region_line = " ".join(p for p in (item.get("region"), item.get("postcode")) if p)
        parts = [item.get("address"), item.get("locality"), region_line]
        joined = ", ".join(p for p in parts if p)
        return joined or None

    @staticmethod
    def _categories(item: dict[str, Any]) -> list[str]:
        labels: list[str] = []
        for path in item.get("category_labels") or []:
            if path:
                labels.append(path[-1])
        for cuisine in item.get("cuisine") or []:
            if cuisine not in labels:
                labels.append(cuisine)
        return labels

    def _to_record(self, item: dict[str, Any]) -> CanonicalRecord | None:
        name = (item.get("name") or "").strip()
        lat, lng = item.get("latitude"), item.get("longitude")
        vendor_id = item.get("factual_id")
        if not name or lat is None or lng is None or not vendor_id:
            return None

        rating = item.get("rating")
        return CanonicalRecord(
            id=f"factual:{vendor_id}",
            name=name,
            coordinates=Coordinates(lat=lat, lng=lng),
            address=self._format_address(item),
            categories=self._categories(item),
            rating=float(rating) if rating is not None else None,
            price=PriceTier.from_level(item.get("price")),
            url=item.get("website"),
            phone=item.get("tel"),
            sources=["factual"],
            source_ids={"factual": str(vendor_id)},
            raw={"factual": item},
        )
