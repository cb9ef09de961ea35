"""Public entry point: credentials in, merged restaurant results out.

``GlobalFood`` composes a :class:`CredentialStore` and an
:class:`Aggregator` and owns (or borrows) the ``httpx.AsyncClient`` every
provider client shares.  It holds no search logic of its own.

Typical use::

    async with GlobalFood({"yelp": {"client_id": "...", "client_secret": "..."},
                           "zomato": {"api_key": "..."}}) as gf:
        await gf.wait_ready(timeout=5)
        result = await gf.search(location={"lat": 40.73, "lng": -73.997}, term="pizza")
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from globalfood.config.settings import Settings
from globalfood.interfaces.provider_adapter import IProviderAdapter
from globalfood.models.credentials import ProviderStatus
from globalfood.models.places import DEFAULT_LIMIT, CanonicalQuery
from globalfood.models.results import AggregatedResult
from globalfood.providers import default_adapters
from globalfood.services.aggregator import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_TIMEOUT_SECONDS,
    Aggregator,
    MergePolicy,
)
from globalfood.services.credential_store import CredentialStore
from globalfood.utils.logging import get_logger

_HTTP_TIMEOUT_SECONDS = 30.0

logger = get_logger(__name__)


class GlobalFood:
    """Multi-provider restaurant search facade.

    Parameters
    ----------
    credentials:
        Initial credentials, nested (``{"yelp": {...}}``) or using the flat
        legacy keys (``yelpID``, ``zomatoKey``...).  Absent providers stay
        unconfigured.
    http_client:
        Shared HTTP client.  When omitted one is created and closed by
        :meth:`aclose`.
    settings:
        Source of search tuning and of credentials read from the
        environment.  Explicit *credentials* are merged over those.
    merge_policy:
        Overrides the deduplication rules derived from *settings*.
    timeout:
        Per-provider deadline in seconds; overrides *settings*.
    adapters:
        Provider adapters keyed by name; the four built-in ones by default.
    """

    def __init__(
        self,
        credentials: Mapping[str, Any] | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        merge_policy: MergePolicy | None = None,
        timeout: float | None = None,
        adapters: Mapping[str, IProviderAdapter] | None = None,
    ) -> None:
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=_HTTP_TIMEOUT_SECONDS)

        if merge_policy is None and settings is not None:
            merge_policy = MergePolicy(
                provider_priority=tuple(settings.provider_priority),
                distance_tolerance_m=settings.dedup_distance_meters,
                name_similarity=settings.dedup_name_similarity,
            )
        if timeout is None:
            timeout = settings.provider_timeout_seconds if settings else DEFAULT_TIMEOUT_SECONDS
        max_concurrency = settings.max_concurrency if settings else DEFAULT_MAX_CONCURRENCY
        self._default_limit = settings.default_limit if settings else DEFAULT_LIMIT

        self._store = CredentialStore(adapters if adapters is not None else default_adapters(), self._http)
        self._aggregator = Aggregator(policy=merge_policy, timeout=timeout, max_concurrency=max_concurrency)

        if settings is not None:
            self._store.update(settings.to_credentials())
        if credentials:
            self._store.update(credentials)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> GlobalFood:
        """Build an instance from environment configuration (``.env`` aware)."""
        return cls(settings=settings or Settings(), **kwargs)

    # -- Credentials ----------------------------------------------------------

    def set_credentials(self, credentials: Mapping[str, Any]) -> dict[str, ProviderStatus]:
        """Merge *credentials* into the stored ones.

        Returns once the merge and any synchronous client construction are
        done.  Providers needing a token exchange may still be
        AUTHENTICATING; see :meth:`wait_ready`.
        """
        statuses = self._store.update(credentials)
        logger.info(
            "credentials_updated",
            providers={name: status.state.value for name, status in statuses.items()},
        )
        return statuses

    def statuses(self) -> dict[str, ProviderStatus]:
        return self._store.statuses()

    def ready_providers(self) -> list[str]:
        return self._aggregator.policy.order(list(self._store.snapshot()))

    async def wait_ready(self, timeout: float | None = None) -> dict[str, ProviderStatus]:
        """Wait up to *timeout* seconds for pending handshakes to finish."""
        return await self._store.wait_ready(timeout)

    # -- Search ---------------------------------------------------------------

    async def search(
        self,
        query: Mapping[str, Any] | CanonicalQuery | None = None,
        **kwargs: Any,
    ) -> AggregatedResult:
        """Search every READY provider and return merged, ranked records.

        The query may be a mapping, a :class:`CanonicalQuery`, keyword
        arguments, or a mapping refined by keyword arguments.  Providers
        still authenticating are treated as unconfigured.

        Raises
        ------
        InvalidQueryError
            If the query has no usable location or a field is out of range.
        NoProviderAvailableError
            If no provider is ready, none can handle the query, or all of
            the dispatched ones failed.
        """
        if isinstance(query, CanonicalQuery) and kwargs:
            query = {**query.model_dump(), **kwargs}
        elif query is None:
            query = kwargs
        elif kwargs and isinstance(query, Mapping):
            query = {**query, **kwargs}

        canonical = CanonicalQuery.from_input(query, default_limit=self._default_limit)
        self._store.start_pending()
        return await self._aggregator.search(canonical, self._store.snapshot())

    # -- Lifecycle ------------------------------------------------------------

    async def aclose(self) -> None:
        """Cancel pending handshakes and close the HTTP client if owned."""
        await self._store.aclose()
        if self._owns_http:
            await self._http.aclose()
            logger.debug("http_client_closed")

    async def __aenter__(self) -> GlobalFood:
        self._store.start_pending()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
