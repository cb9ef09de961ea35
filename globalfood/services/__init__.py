"""Search services: credential management, aggregation and the facade."""

from globalfood.services.aggregator import Aggregator, MergePolicy
from globalfood.services.credential_store import CredentialStore, ReadyProvider, normalize_credentials
from globalfood.services.global_food import GlobalFood

__all__ = [
    "Aggregator",
    "CredentialStore",
    "GlobalFood",
    "MergePolicy",
    "ReadyProvider",
    "normalize_credentials",
]
