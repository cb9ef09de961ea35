"""Abstract base class for restaurant-data provider adapters.

An adapter is the translation layer between the canonical schema and one
vendor's wire format.  It has three responsibilities that the aggregator
calls in order:

    translate_query    CanonicalQuery -> ProviderRequest, or None to skip
    execute_search     (ProviderClient, ProviderRequest) -> raw payload
    normalize_response raw payload -> list[CanonicalRecord]

It also describes its credential bundle (required and optional fields) and
knows how to turn a complete bundle into a ``ProviderClient``, either
synchronously (``build_client``) or through a remote token exchange
(``authenticate``) when ``requires_handshake`` is set.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from globalfood.models.places import CanonicalQuery, CanonicalRecord
from globalfood.utils.logging import get_logger

if TYPE_CHECKING:
    import httpx

    from globalfood.providers.client import ProviderClient


@dataclass(frozen=True)
class ProviderRequest:
    """A vendor-specific request produced by ``translate_query``.

    Attributes
    ----------
    path:
        Endpoint path relative to the client's base URL.
    params:
        Query-string parameters (authentication is added by the client).
    """

    path: str
    params: Mapping[str, Any] = field(default_factory=dict)


class IProviderAdapter(ABC):
    """Contract for one restaurant-data backend.

    Adapters are stateless: every piece of per-provider mutable state
    (credentials, clients, lifecycle) lives in the credential store.
    """

    #: Clients for this provider require a remote handshake before use.
    requires_handshake: bool = False

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the provider tag, e.g. ``"yelp"``."""

    @property
    @abstractmethod
    def required_fields(self) -> tuple[str, ...]:
        """Credential fields that must be non-empty for the provider to be configured."""

    @property
    def optional_fields(self) -> Mapping[str, str]:
        """Optional credential fields mapped to their default values."""
        return {}

    def complete_bundle(self, bundle: Mapping[str, str]) -> dict[str, str]:
        """Return *bundle* with defaults filled in for absent optional fields."""
        completed = dict(self.optional_fields)
        completed.update({k: v for k, v in bundle.items() if v})
        return completed

    def build_client(self, bundle: Mapping[str, str], http: httpx.AsyncClient) -> ProviderClient:
        """Construct a client synchronously from a complete, valid bundle.

        Handshake providers do not support this and override
        :meth:`authenticate` instead.
        """
        raise NotImplementedError(f"{self.get_provider_name()} requires an authentication handshake")

    async def authenticate(self, bundle: Mapping[str, str], http: httpx.AsyncClient) -> ProviderClient:
        """Construct a client, performing any remote token exchange first.

        Raises
        ------
        globalfood.utils.errors.AuthHandshakeFailedError
            If the vendor rejects the credentials or the exchange fails.
        """
        return self.build_client(bundle, http)

    @abstractmethod
    def translate_query(self, query: CanonicalQuery) -> ProviderRequest | None:
        """Translate *query* for this provider.

        Returns ``None`` when the query lacks something the provider needs
        (e.g. coordinates); the aggregator then skips this provider.
        """

    async def execute_search(self, client: ProviderClient, request: ProviderRequest) -> dict[str, Any]:
        """Perform the remote call.

        Raises
        ------
        globalfood.utils.errors.TransportError
            On network failures or timeouts.
        globalfood.utils.errors.ProviderError
            On non-2xx responses or malformed payloads.
        """
        return await client.get_json(request.path, request.params)

    @abstractmethod
    def normalize_response(self, response: dict[str, Any]) -> list[CanonicalRecord]:
        """Map a raw payload into canonical records, in vendor relevance order.

        Entries missing a name or coordinates are dropped.  A payload whose
        envelope is unusable raises ``ProviderError``.
        """

    def collect_records(
        self,
        items: Iterable[dict[str, Any]],
        convert: Callable[[dict[str, Any]], CanonicalRecord | None],
    ) -> list[CanonicalRecord]:
        """Convert vendor entries in order, dropping those that cannot be normalized.

        *convert* returns ``None`` for entries missing a name or coordinates;
        values that fail model validation (out-of-range coordinates or
        ratings) are dropped the same way.
        """
        records: list[CanonicalRecord] = []
        for item in items:
            try:
                record = convert(item)
                reason = "missing name, id or coordinates"
            except (AttributeError, TypeError, ValueError) as exc:
                record = None
                reason = str(exc)
            if record is None:
                get_logger(__name__).debug(
                    "record_dropped",
                    provider=self.get_provider_name(),
                    reason=reason,
                )
                continue
            records.append(record)
        return records
