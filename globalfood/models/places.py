"""Canonical place models shared by every provider adapter.

Defines the provider-agnostic schema that the aggregation layer works in:

    - CanonicalQuery  -- normalized search input built from caller input
    - CanonicalRecord -- one restaurant/venue entry, possibly corroborated by
                         several providers after deduplication

All models are frozen pydantic v2 models.  Merging produces new
``CanonicalRecord`` instances; nothing is mutated in place.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from globalfood.utils.errors import InvalidQueryError

DEFAULT_LIMIT = 20


class ProviderName(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Supported restaurant-data backends.

    Declaration order is the default provider priority used to break ties
    when merging records.
    """

    YELP = "yelp"
    FOURSQUARE = "foursquare"
    ZOMATO = "zomato"
    FACTUAL = "factual"


DEFAULT_PROVIDER_PRIORITY: tuple[str, ...] = tuple(p.value for p in ProviderName)


class PriceTier(int, Enum):
    """Enumerated price level, 1 (cheapest) to 4 (most expensive)."""

    INEXPENSIVE = 1
    MODERATE = 2
    EXPENSIVE = 3
    VERY_EXPENSIVE = 4

    @classmethod
    def from_level(cls, level: Any) -> PriceTier | None:
        """Clamp a numeric vendor price level into the 1--4 range.

        ``None``, zero, negatives and non-numeric values yield ``None``.
        """
        try:
            value = int(level)
        except (TypeError, ValueError):
            return None
        if value <= 0:
            return None
        return cls(min(value, cls.VERY_EXPENSIVE.value))

    @classmethod
    def from_symbols(cls, symbols: str | None) -> PriceTier | None:
        """Map currency-symbol notation (``"$$"``, ``"££"``) to a tier."""
        if not symbols:
            return None
        stripped = symbols.strip()
        if not stripped or len(set(stripped)) != 1:
            return None
        return cls.from_level(len(stripped))


class Coordinates(BaseModel):
    """A WGS84 latitude/longitude pair."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)

    @classmethod
    def parse(cls, value: Any) -> Coordinates:
        """Build coordinates from a mapping or a ``(lat, lng)`` pair.

        Mappings may use ``lat``/``lng``, ``latitude``/``longitude`` or
        ``lat``/``lon`` keys.
        """
        if isinstance(value, Coordinates):
            return value
        if isinstance(value, Mapping):
            lat = value.get("lat", value.get("latitude"))
            lng = value.get("lng", value.get("lon", value.get("longitude")))
            return cls(lat=lat, lng=lng)
        if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
            return cls(lat=value[0], lng=value[1])
        raise ValueError(f"Cannot interpret {value!r} as coordinates")


class CanonicalQuery(BaseModel):
    """Normalized search input.

    ``location`` is either coordinates or free text.  Adapters that need
    coordinates skip a text-only query rather than failing.
    """

    model_config = ConfigDict(frozen=True)

    location: Coordinates | str
    term: str | None = None
    radius: float | None = Field(default=None, gt=0)
    limit: int = Field(default=DEFAULT_LIMIT, gt=0)

    @field_validator("location")
    @classmethod
    def _location_not_blank(cls, value: Coordinates | str) -> Coordinates | str:
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("location text must not be blank")
        return value

    @field_validator("term")
    @classmethod
    def _blank_term_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def coordinates(self) -> Coordinates | None:
        return self.location if isinstance(self.location, Coordinates) else None

    @property
    def location_text(self) -> str | None:
        return self.location if isinstance(self.location, str) else None

    @classmethod
    def from_input(
        cls,
        query: Mapping[str, Any] | CanonicalQuery,
        default_limit: int = DEFAULT_LIMIT,
    ) -> CanonicalQuery:
        """Build a query from loosely-shaped caller input.

        Raises
        ------
        InvalidQueryError
            If no location is given or any field fails validation.
        """
        if isinstance(query, CanonicalQuery):
            return query
        if not isinstance(query, Mapping):
            raise InvalidQueryError(f"query must be a mapping or CanonicalQuery, not {type(query).__name__}")

        data = dict(query)
        location = data.get("location")
        if location is None and ("lat" in data or "latitude" in data):
            location = {k: data.pop(k) for k in ("lat", "lng", "lon", "latitude", "longitude") if k in data}
        if location is None:
            raise InvalidQueryError("query requires a location (coordinates or text)")

        try:
            if not isinstance(location, str):
                location = Coordinates.parse(location)
            limit = data.get("limit")
            return cls(
                location=location,
                term=data.get("term"),
                radius=data.get("radius"),
                limit=default_limit if limit is None else limit,
            )
        except (ValidationError, ValueError) as exc:
            raise InvalidQueryError(f"invalid query: {exc}") from exc


class CanonicalRecord(BaseModel):
    """A normalized restaurant entry.

    A record produced by a single adapter carries exactly one source tag.
    After deduplication a merged record lists every contributing provider
    in ``sources`` (priority order) and their vendor ids in ``source_ids``.
    ``raw`` keeps the per-provider vendor payload for debugging; it is left
    out of serialisation and repr.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    coordinates: Coordinates
    address: str | None = None
    categories: list[str] = Field(default_factory=list)
    rating: float | None = Field(default=None, ge=0.0, le=5.0)
    price: PriceTier | None = None
    url: str | None = None
    phone: str | None = None
    review_count: int | None = None
    sources: list[str] = Field(default_factory=list)
    source_ids: dict[str, str] = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)

    @property
    def corroboration(self) -> int:
        """Number of distinct providers that agree this place exists."""
        return len(self.sources)

    @property
    def primary_source(self) -> str:
        return self.sources[0] if self.sources else ""
