"""GlobalFood: one restaurant search across Yelp, Foursquare, Zomato and Factual."""

from globalfood.config.settings import Settings
from globalfood.models import (
    AggregatedResult,
    CanonicalQuery,
    CanonicalRecord,
    Coordinates,
    DispatchOutcome,
    DispatchStatus,
    PriceTier,
    ProviderState,
    ProviderStatus,
)
from globalfood.services import Aggregator, CredentialStore, GlobalFood, MergePolicy
from globalfood.utils.errors import (
    AuthHandshakeFailedError,
    GlobalFoodError,
    InvalidCredentialsError,
    InvalidQueryError,
    NoProviderAvailableError,
    ProviderError,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    "AggregatedResult",
    "Aggregator",
    "AuthHandshakeFailedError",
    "CanonicalQuery",
    "CanonicalRecord",
    "Coordinates",
    "CredentialStore",
    "DispatchOutcome",
    "DispatchStatus",
    "GlobalFood",
    "GlobalFoodError",
    "InvalidCredentialsError",
    "InvalidQueryError",
    "MergePolicy",
    "NoProviderAvailableError",
    "PriceTier",
    "ProviderError",
    "ProviderState",
    "ProviderStatus",
    "Settings",
    "TransportError",
    "__version__",
]
