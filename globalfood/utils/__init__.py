"""Utility modules for GlobalFood.

- **errors** -- Domain exception hierarchy rooted at GlobalFoodError.
- **concurrency** -- asyncio fan-out helpers (semaphore-throttled gather,
  per-call deadlines).
- **geo** -- Haversine distance for proximity matching.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- Venue-name normalization and fuzzy matching.
"""

from globalfood.utils.concurrency import bounded_call, throttled_gather
from globalfood.utils.errors import (
    AuthHandshakeFailedError,
    ConfigurationError,
    GlobalFoodError,
    InvalidCredentialsError,
    InvalidQueryError,
    NoProviderAvailableError,
    ProviderError,
    TransportError,
)
from globalfood.utils.geo import haversine_m, within_tolerance
from globalfood.utils.logging import configure_logging, get_logger
from globalfood.utils.text_normalizer import name_similarity, names_match, normalize_place_name

__all__ = [
    "AuthHandshakeFailedError",
    "ConfigurationError",
    "GlobalFoodError",
    "InvalidCredentialsError",
    "InvalidQueryError",
    "NoProviderAvailableError",
    "ProviderError",
    "TransportError",
    "bounded_call",
    "configure_logging",
    "get_logger",
    "haversine_m",
    "name_similarity",
    "names_match",
    "normalize_place_name",
    "throttled_gather",
    "within_tolerance",
]
