"""GlobalFood domain models -- re-exports all public model classes.

The models are organized by concern:
    - places.py      -- Canonical query/record schema and enums
    - results.py     -- Per-search outcome (merged records + provider statuses)
    - credentials.py -- Provider lifecycle state used by the credential store
"""

from __future__ import annotations

from globalfood.models.credentials import ProviderState, ProviderStatus
from globalfood.models.places import (
    DEFAULT_LIMIT,
    DEFAULT_PROVIDER_PRIORITY,
    CanonicalQuery,
    CanonicalRecord,
    Coordinates,
    PriceTier,
    ProviderName,
)
from globalfood.models.results import AggregatedResult, DispatchOutcome, DispatchStatus

__all__ = [
    "DEFAULT_LIMIT",
    "DEFAULT_PROVIDER_PRIORITY",
    "AggregatedResult",
    "CanonicalQuery",
    "CanonicalRecord",
    "Coordinates",
    "DispatchOutcome",
    "DispatchStatus",
    "PriceTier",
    "ProviderName",
    "ProviderState",
    "ProviderStatus",
]
