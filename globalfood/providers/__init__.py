"""Restaurant-data provider implementations.

Four concrete implementations of IProviderAdapter, one per backend:

    1. YelpAdapter        -- Yelp Fusion business search (client ID/secret
       exchanged for a bearer token). Coordinates or free-text location.
    2. FoursquareAdapter  -- Foursquare v2 venues/explore (client ID/secret,
       API version date, mode). Coordinates (``ll``) or free text (``near``).
    3. ZomatoAdapter      -- Zomato v2.1 search (``user-key`` header).
       Coordinates only.
    4. FactualAdapter     -- Factual restaurants-us table (key/secret pair).
       Coordinates only.

Each adapter returns the same CanonicalRecord type so the aggregator can
merge results from several sources.
"""

from globalfood.interfaces.provider_adapter import IProviderAdapter
from globalfood.providers.client import ProviderClient
from globalfood.providers.factual_provider import FactualAdapter
from globalfood.providers.foursquare_provider import FoursquareAdapter
from globalfood.providers.yelp_provider import YelpAdapter
from globalfood.providers.zomato_provider import ZomatoAdapter

__all__ = [
    "FactualAdapter",
    "FoursquareAdapter",
    "ProviderClient",
    "YelpAdapter",
    "ZomatoAdapter",
    "default_adapters",
]


def default_adapters() -> dict[str, IProviderAdapter]:
    """Return one instance of every built-in adapter keyed by provider name."""
    adapters = (YelpAdapter(), FoursquareAdapter(), ZomatoAdapter(), FactualAdapter())
    return {adapter.get_provider_name(): adapter for adapter in adapters}
