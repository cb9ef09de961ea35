"""Public interface definitions for the restaurant-data providers.

Every vendor API is accessed exclusively through :class:`IProviderAdapter`.
Concrete adapters live in ``globalfood.providers`` and are handed to the
credential store and aggregator at construction time, so tests can inject
fake adapters without real API calls.

CONCRETE PROVIDER MAP:
    Interface          →  Concrete implementations (in globalfood/providers/)
    ─────────────────────────────────────────────────────────────────────
    IProviderAdapter   →  YelpAdapter, FoursquareAdapter, ZomatoAdapter,
                          FactualAdapter
"""

from globalfood.interfaces.provider_adapter import IProviderAdapter, ProviderRequest

__all__ = ["IProviderAdapter", "ProviderRequest"]
