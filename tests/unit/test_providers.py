"""Unit tests for the provider client and the four provider adapters."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from globalfood.models.places import CanonicalQuery, Coordinates, PriceTier
from globalfood.providers import (
    FactualAdapter,
    FoursquareAdapter,
    ProviderClient,
    YelpAdapter,
    ZomatoAdapter,
    default_adapters,
)
from globalfood.utils.errors import AuthHandshakeFailedError, ProviderError, TransportError
from tests.conftest import json_response

COORD_QUERY = CanonicalQuery(location=Coordinates(lat=40.730, lng=-73.997), term="pizza", limit=10)
TEXT_QUERY = CanonicalQuery(location="Soho, New York", limit=10)


def test_default_adapters_keyed_by_name() -> None:
    adapters = default_adapters()
    assert list(adapters) == ["yelp", "foursquare", "zomato", "factual"]
    assert all(name == a.get_provider_name() for name, a in adapters.items())


# ======================================================================
# ProviderClient
# ======================================================================


class TestProviderClient:
    @pytest.mark.asyncio
    async def test_get_json_merges_auth_params_and_headers(self, mock_http: MagicMock) -> None:
        mock_http.get.return_value = json_response({"ok": True})
        client = ProviderClient(
            provider="zomato",
            http=mock_http,
            base_url="https://api.test/v1/",
            params={"KEY": "k"},
            headers={"user-key": "abc"},
        )

        payload = await client.get_json("/search", {"q": "pizza"})

        assert payload == {"ok": True}
        args, kwargs = mock_http.get.call_args
        assert args[0] == "https://api.test/v1/search"
        assert kwargs["params"] == {"KEY": "k", "q": "pizza"}
        assert kwargs["headers"]["user-key"] == "abc"
        assert kwargs["headers"]["User-Agent"].startswith("globalfood/")

    def test_client_is_read_only(self, mock_http: MagicMock) -> None:
        client = ProviderClient(provider="yelp", http=mock_http, base_url="https://x", params={"a": "1"})
        with pytest.raises(TypeError):
            client.auth_params["a"] = "2"  # type: ignore[index]

    @pytest.mark.asyncio
    async def test_timeout_becomes_transport_error(self, mock_http: MagicMock) -> None:
        mock_http.get.side_effect = httpx.ReadTimeout("slow")
        client = ProviderClient(provider="yelp", http=mock_http, base_url="https://x")
        with pytest.raises(TransportError) as exc_info:
            await client.get_json("/search")
        assert exc_info.value.provider_name == "yelp"

    @pytest.mark.asyncio
    async def test_connect_error_becomes_transport_error(self, mock_http: MagicMock) -> None:
        mock_http.get.side_effect = httpx.ConnectError("refused")
        client = ProviderClient(provider="yelp", http=mock_http, base_url="https://x")
        with pytest.raises(TransportError):
            await client.get_json("/search")

    @pytest.mark.asyncio
    async def test_http_error_status_becomes_provider_error(self, mock_http: MagicMock) -> None:
        mock_http.get.return_value = json_response({"error": "nope"}, status_code=503)
        client = ProviderClient(provider="factual", http=mock_http, base_url="https://x")
        with pytest.raises(ProviderError) as exc_info:
            await client.get_json("/t")
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_non_json_body_becomes_provider_error(self, mock_http: MagicMock) -> None:
        mock_http.get.return_value = httpx.Response(
            200, text="<html>", request=httpx.Request("GET", "https://x/t")
        )
        client = ProviderClient(provider="factual", http=mock_http, base_url="https://x")
        with pytest.raises(ProviderError):
            await client.get_json("/t")

    @pytest.mark.asyncio
    async def test_json_array_becomes_provider_error(self, mock_http: MagicMock) -> None:
        mock_http.get.return_value = json_response([1, 2, 3])
        client = ProviderClient(provider="factual", http=mock_http, base_url="https://x")
        with pytest.raises(ProviderError):
            await client.get_json("/t")


# ======================================================================
# Yelp
# ======================================================================


def _yelp_business(**overrides: Any) -> dict[str, Any]:
    business = {
        "id": "joes-pizza-ny",
        "name": "Joe's Pizza",
        "coordinates": {"latitude": 40.7301, "longitude": -73.9971},
        "location": {"display_address": ["7 Carmine St", "New York, NY 10014"]},
        "categories": [{"alias": "pizza", "title": "Pizza"}],
        "rating": 4.5,
        "price": "$",
        "url": "https://www.yelp.com/biz/joes-pizza-ny",
        "display_phone": "(212) 366-1182",
        "review_count": 5000,
    }
    business.update(overrides)
    return business


class TestYelpAdapter:
    def test_requires_handshake(self) -> None:
        adapter = YelpAdapter()
        assert adapter.get_provider_name() == "yelp"
        assert adapter.requires_handshake is True
        assert adapter.required_fields == ("client_id", "client_secret")

    @pytest.mark.asyncio
    async def test_authenticate_builds_bearer_client(self, mock_http: MagicMock) -> None:
        mock_http.post.return_value = json_response({"access_token": "tok-123", "expires_in": 15551999})

        client = await YelpAdapter().authenticate({"client_id": "id", "client_secret": "secret"}, mock_http)

        assert client.headers["Authorization"] == "Bearer tok-123"
        assert client.base_url == "https://api.yelp.com/v3"
        args, kwargs = mock_http.post.call_args
        assert args[0] == "https://api.yelp.com/oauth2/token"
        assert kwargs["data"] == {"grant_type": "client_credentials", "client_id": "id", "client_secret": "secret"}

    @pytest.mark.asyncio
    async def test_authenticate_rejected(self, mock_http: MagicMock) -> None:
        mock_http.post.return_value = json_response({"error": "invalid_client"}, status_code=401)
        with pytest.raises(AuthHandshakeFailedError) as exc_info:
            await YelpAdapter().authenticate({"client_id": "id", "client_secret": "bad"}, mock_http)
        assert exc_info.value.provider_name == "yelp"

    @pytest.mark.asyncio
    async def test_authenticate_network_failure(self, mock_http: MagicMock) -> None:
        mock_http.post.side_effect = httpx.ConnectError("down")
        with pytest.raises(AuthHandshakeFailedError):
            await YelpAdapter().authenticate({"client_id": "id", "client_secret": "s"}, mock_http)

    @pytest.mark.asyncio
    async def test_authenticate_without_token(self, mock_http: MagicMock) -> None:
        mock_http.post.return_value = json_response({"token_type": "Bearer"})
        with pytest.raises(AuthHandshakeFailedError):
            await YelpAdapter().authenticate({"client_id": "id", "client_secret": "s"}, mock_http)

    def test_translate_coordinates(self) -> None:
        request = YelpAdapter().translate_query(COORD_QUERY)
        assert request is not None
        assert request.path == "/businesses/search"
        assert request.params == {"term": "pizza", "limit": 10, "latitude": 40.73, "longitude": -73.997}

    def test_translate_text_uses_location_and_default_term(self) -> None:
        request = YelpAdapter().translate_query(TEXT_QUERY)
        assert request is not None
        assert request.params["location"] == "Soho, New York"
        assert request.params["term"] == "restaurants"

    def test_translate_caps_limit_and_radius(self) -> None:
        query = CanonicalQuery(location="Paris", limit=500, radius=100_000)
        request = YelpAdapter().translate_query(query)
        assert request is not None
        assert request.params["limit"] == 50
        assert request.params["radius"] == 40_000

    def test_translate_sub_metre_radius_rounds_up(self) -> None:
        request = YelpAdapter().translate_query(CanonicalQuery(location="Paris", radius=0.5))
        assert request is not None
        assert request.params["radius"] == 1

    @pytest.mark.asyncio
    async def test_execute_search_uses_client(self, mock_http: MagicMock) -> None:
        mock_http.get.return_value = json_response({"businesses": []})
        adapter = YelpAdapter()
        client = ProviderClient(
            provider="yelp", http=mock_http, base_url="https://api.yelp.com/v3", headers={"Authorization": "Bearer t"}
        )

        payload = await adapter.execute_search(client, adapter.translate_query(COORD_QUERY))

        assert payload == {"businesses": []}
        assert mock_http.get.call_args.args[0] == "https://api.yelp.com/v3/businesses/search"

    def test_normalize_maps_fields(self) -> None:
        records = YelpAdapter().normalize_response({"businesses": [_yelp_business()]})
        assert len(records) == 1
        record = records[0]
        assert record.id == "yelp:joes-pizza-ny"
        assert record.name == "Joe's Pizza"
        assert record.coordinates == Coordinates(lat=40.7301, lng=-73.9971)
        assert record.address == "7 Carmine St, New York, NY 10014"
        assert record.categories == ["Pizza"]
        assert record.rating == 4.5
        assert record.price is PriceTier.INEXPENSIVE
        assert record.sources == ["yelp"]
        assert record.source_ids == {"yelp": "joes-pizza-ny"}
        assert record.raw["yelp"]["id"] == "joes-pizza-ny"

    def test_normalize_drops_unusable_entries(self) -> None:
        payload = {
            "businesses": [
                _yelp_business(id="a", coordinates={}),
                _yelp_business(id="b", name="  "),
                _yelp_business(id="c", rating=7.5),
                _yelp_business(id="d"),
            ]
        }
        records = YelpAdapter().normalize_response(payload)
        assert [r.id for r in records] == ["yelp:d"]

    def test_normalize_missing_envelope(self) -> None:
        with pytest.raises(ProviderError):
            YelpAdapter().normalize_response({"error": {"code": "VALIDATION_ERROR"}})


# ======================================================================
# Foursquare
# ======================================================================


def _fsq_payload(*venues: dict[str, Any]) -> dict[str, Any]:
    return {
        "meta": {"code": 200},
        "response": {"groups": [{"name": "recommended", "items": [{"venue": v} for v in venues]}]},
    }


def _fsq_venue(**overrides: Any) -> dict[str, Any]:
    venue = {
        "id": "4a1b",
        "name": "Joes Pizza",
        "location": {"lat": 40.7300, "lng": -73.9970, "formattedAddress": ["7 Carmine St", "New York, NY"]},
        "categories": [{"name": "Pizza Place"}],
        "rating": 8.6,
        "price": {"tier": 1},
        "contact": {"formattedPhone": "(212) 366-1182"},
        "ratingSignals": 1200,
    }
    venue.update(overrides)
    return venue


class TestFoursquareAdapter:
    def test_build_client_applies_defaults(self, mock_http: MagicMock) -> None:
        client = FoursquareAdapter().build_client({"client_id": "id", "client_secret": "s"}, mock_http)
        assert dict(client.auth_params) == {"client_id": "id", "client_secret": "s", "v": "20180323", "m": "foursquare"}

    def test_build_client_respects_version_and_mode(self, mock_http: MagicMock) -> None:
        client = FoursquareAdapter().build_client(
            {"client_id": "id", "client_secret": "s", "version": "20200101", "mode": "swarm"}, mock_http
        )
        assert client.auth_params["v"] == "20200101"
        assert client.auth_params["m"] == "swarm"

    def test_translate_coordinates(self) -> None:
        request = FoursquareAdapter().translate_query(COORD_QUERY)
        assert request is not None
        assert request.path == "/venues/explore"
        assert request.params["ll"] == "40.73,-73.997"
        assert request.params["query"] == "pizza"

    def test_translate_text_uses_near_and_food_section(self) -> None:
        request = FoursquareAdapter().translate_query(TEXT_QUERY)
        assert request is not None
        assert request.params["near"] == "Soho, New York"
        assert request.params["section"] == "food"
        assert "ll" not in request.params

    def test_translate_rounds_radius(self) -> None:
        request = FoursquareAdapter().translate_query(CanonicalQuery(location="Paris", radius=149.6))
        assert request is not None
        assert request.params["radius"] == 150

    def test_normalize_halves_rating(self) -> None:
        records = FoursquareAdapter().normalize_response(_fsq_payload(_fsq_venue(rating=9.0)))
        record = records[0]
        assert record.id == "foursquare:4a1b"
        assert record.rating == 4.5
        assert record.price is PriceTier.INEXPENSIVE
        assert record.phone == "(212) 366-1182"
        assert record.review_count == 1200
        assert record.address == "7 Carmine St, New York, NY"
        assert record.url == "https://foursquare.com/v/4a1b"

    def test_normalize_without_rating(self) -> None:
        venue = _fsq_venue()
        del venue["rating"]
        assert FoursquareAdapter().normalize_response(_fsq_payload(venue))[0].rating is None

    def test_normalize_error_meta(self) -> None:
        payload = {"meta": {"code": 400, "errorType": "param_error", "errorDetail": "Must provide ll"}}
        with pytest.raises(ProviderError) as exc_info:
            FoursquareAdapter().normalize_response(payload)
        assert exc_info.value.status_code == 400
        assert "param_error" in exc_info.value.message

    def test_normalize_empty_groups(self) -> None:
        assert FoursquareAdapter().normalize_response({"meta": {"code": 200}, "response": {}}) == []


# ======================================================================
# Zomato
# ======================================================================


def _zomato_restaurant(**overrides: Any) -> dict[str, Any]:
    restaurant = {
        "id": "16769546",
        "name": "Joe's Pizza",
        "url": "https://www.zomato.com/new-york-city/joes-pizza",
        "location": {"address": "7 Carmine Street, New York 10014", "latitude": "40.7305", "longitude": "-73.9973"},
        "cuisines": "Pizza, Italian",
        "price_range": 1,
        "user_rating": {"aggregate_rating": "4.4", "votes": "812"},
        "phone_numbers": "(212) 366-1182",
    }
    restaurant.update(overrides)
    return restaurant


class TestZomatoAdapter:
    def test_build_client_sets_user_key_header(self, mock_http: MagicMock) -> None:
        client = ZomatoAdapter().build_client({"api_key": "zk"}, mock_http)
        assert client.headers["user-key"] == "zk"
        assert dict(client.auth_params) == {}

    def test_text_query_is_skipped(self) -> None:
        assert ZomatoAdapter().translate_query(TEXT_QUERY) is None

    def test_translate_coordinates(self) -> None:
        query = CanonicalQuery(location=Coordinates(lat=1.0, lng=2.0), term="sushi", radius=800, limit=100)
        request = ZomatoAdapter().translate_query(query)
        assert request is not None
        assert request.params == {"lat": 1.0, "lon": 2.0, "count": 20, "q": "sushi", "radius": 800}

    def test_normalize_parses_string_fields(self) -> None:
        records = ZomatoAdapter().normalize_response({"restaurants": [{"restaurant": _zomato_restaurant()}]})
        record = records[0]
        assert record.id == "zomato:16769546"
        assert record.coordinates == Coordinates(lat=40.7305, lng=-73.9973)
        assert record.rating == 4.4
        assert record.review_count == 812
        assert record.categories == ["Pizza", "Italian"]
        assert record.price is PriceTier.INEXPENSIVE

    def test_zero_rating_means_unrated(self) -> None:
        restaurant = _zomato_restaurant(user_rating={"aggregate_rating": "0", "votes": "0"})
        records = ZomatoAdapter().normalize_response({"restaurants": [{"restaurant": restaurant}]})
        assert records[0].rating is None

    def test_unknown_coordinates_dropped(self) -> None:
        restaurant = _zomato_restaurant(location={"latitude": "0.0000000000", "longitude": "0.0000000000"})
        assert ZomatoAdapter().normalize_response({"restaurants": [{"restaurant": restaurant}]}) == []

    def test_error_payload(self) -> None:
        with pytest.raises(ProviderError) as exc_info:
            ZomatoAdapter().normalize_response({"code": 403, "status": "Forbidden", "message": "Invalid API Key"})
        assert exc_info.value.message == "Invalid API Key"
        assert exc_info.value.status_code == 403


# ======================================================================
# Factual
# ======================================================================


def _factual_row(**overrides: Any) -> dict[str, Any]:
    row = {
        "factual_id": "03c26917-5d66-4de9-96bc-b13066173c65",
        "name": "Joe's Pizza",
        "address": "7 Carmine St",
        "locality": "New York",
        "region": "NY",
        "postcode": "10014",
        "latitude": 40.73005,
        "longitude": -73.99705,
        "category_labels": [["Social", "Food and Dining", "Restaurants", "Pizza"]],
        "cuisine": ["Pizza", "Italian"],
        "rating": 4.0,
        "price": 1,
        "tel": "(212) 366-1182",
        "website": "http://www.joespizzanyc.com",
    }
    row.update(overrides)
    return row


class TestFactualAdapter:
    def test_build_client_sends_key_only(self, mock_http: MagicMock) -> None:
        client = FactualAdapter().build_client({"key": "fk", "secret": "fs"}, mock_http)
        assert dict(client.auth_params) == {"KEY": "fk"}
        assert "fs" not in client.headers.values()

    def test_text_query_is_skipped(self) -> None:
        assert FactualAdapter().translate_query(TEXT_QUERY) is None

    def test_translate_builds_geo_circle(self) -> None:
        request = FactualAdapter().translate_query(COORD_QUERY)
        assert request is not None
        assert request.path == "/t/restaurants-us"
        geo = json.loads(request.params["geo"])
        assert geo == {"$circle": {"$center": [40.73, -73.997], "$meters": 5000}}
        assert request.params["q"] == "pizza"

    def test_translate_sub_metre_radius_rounds_up(self) -> None:
        query = CanonicalQuery(location=Coordinates(lat=40.73, lng=-73.997), radius=0.4)
        request = FactualAdapter().translate_query(query)
        assert request is not None
        assert json.loads(request.params["geo"])["$circle"]["$meters"] == 1

    def test_normalize_maps_fields(self) -> None:
        payload = {"version": 3, "status": "ok", "response": {"data": [_factual_row()], "included_rows": 1}}
        record = FactualAdapter().normalize_response(payload)[0]
        assert record.id == "factual:03c26917-5d66-4de9-96bc-b13066173c65"
        assert record.address == "7 Carmine St, New York, NY 10014"
        assert record.categories == ["Pizza", "Italian"]
        assert record.url == "http://www.joespizzanyc.com"

    def test_error_status(self) -> None:
        payload = {"status": "error", "error_type": "Auth", "message": "invalid key"}
        with pytest.raises(ProviderError) as exc_info:
            FactualAdapter().normalize_response(payload)
        assert "invalid key" in exc_info.value.message

    def test_missing_data(self) -> None:
        with pytest.raises(ProviderError):
            FactualAdapter().normalize_response({"status": "ok", "response": {}})
