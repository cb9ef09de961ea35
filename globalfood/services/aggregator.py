"""Concurrent multi-provider search with deduplication and ranking.

The aggregator receives a canonical query plus the snapshot of READY
providers taken by the facade, and runs the whole search pipeline:

    1. translate   -- each adapter turns the query into a request or skips
    2. fan-out     -- every translated request is dispatched concurrently
                      (bounded by a per-search semaphore and a per-provider
                      deadline); failures are captured per provider
    3. normalize   -- successful payloads become CanonicalRecords
    4. merge       -- records naming the same place are clustered and
                      merged into one corroborated record
    5. rank        -- corroboration, rating, provider relevance order

Merge rules live in :class:`MergePolicy` so callers can reorder provider
priority or loosen the duplicate detection without touching the code.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from globalfood.interfaces.provider_adapter import IProviderAdapter, ProviderRequest
from globalfood.models.places import DEFAULT_PROVIDER_PRIORITY, CanonicalQuery, CanonicalRecord
from globalfood.models.results import AggregatedResult, DispatchOutcome, DispatchStatus
from globalfood.providers.client import ProviderClient
from globalfood.services.credential_store import ReadyProvider
from globalfood.utils.concurrency import bounded_call, throttled_gather
from globalfood.utils.errors import GlobalFoodError, NoProviderAvailableError, ProviderError, TransportError
from globalfood.utils.geo import within_tolerance
from globalfood.utils.logging import get_logger
from globalfood.utils.text_normalizer import names_match

DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_CONCURRENCY = 4

# Attributes resolved by majority vote across the members of a cluster.
_VOTED_FIELDS = ("name", "coordinates", "address", "rating", "price", "url", "phone", "review_count")


class MergePolicy(BaseModel):
    """Rules for deduplicating records across providers.

    Attributes
    ----------
    provider_priority:
        Provider tags in preference order.  Decides which value wins a tied
        vote and which member supplies a merged record's id.  Providers not
        listed rank after the listed ones, alphabetically.
    distance_tolerance_m:
        Maximum great-circle distance for two records to be the same place.
    name_similarity:
        Minimum fuzzy similarity (0--1) between normalized names.  Equal
        normalized names always match.
    """

    model_config = ConfigDict(frozen=True)

    provider_priority: tuple[str, ...] = DEFAULT_PROVIDER_PRIORITY
    distance_tolerance_m: float = Field(default=50.0, ge=0.0)
    name_similarity: float = Field(default=0.9, ge=0.0, le=1.0)

    def priority_of(self, provider: str) -> tuple[int, str]:
        try:
            return (self.provider_priority.index(provider), provider)
        except ValueError:
            return (len(self.provider_priority), provider)

    def order(self, providers: Sequence[str]) -> list[str]:
        return sorted(providers, key=self.priority_of)

    def is_duplicate(self, left: CanonicalRecord, right: CanonicalRecord) -> bool:
        """True when *left* and *right* describe the same place."""
        if not within_tolerance(
            left.coordinates.lat,
            left.coordinates.lng,
            right.coordinates.lat,
            right.coordinates.lng,
            self.distance_tolerance_m,
        ):
            return False
        return names_match(left.name, right.name, threshold=self.name_similarity)


class _Cluster:
    """Records judged to be one place, at most one per provider."""

    __slots__ = ("members", "sources")

    def __init__(self, record: CanonicalRecord, rank: int) -> None:
        self.members: list[tuple[CanonicalRecord, int]] = [(record, rank)]
        self.sources: set[str] = set(record.sources)

    def accepts(self, record: CanonicalRecord, policy: MergePolicy) -> bool:
        if self.sources.intersection(record.sources):
            return False
        return any(policy.is_duplicate(member, record) for member, _ in self.members)

    def add(self, record: CanonicalRecord, rank: int) -> None:
        self.members.append((record, rank))
        self.sources.update(record.sources)


class Aggregator:
    """Fans a query out to providers and merges what comes back.

    Parameters
    ----------
    policy:
        Deduplication and priority rules.
    timeout:
        Per-provider deadline in seconds; an expired deadline is reported
        as ``TransportError`` for that provider only.  ``None`` disables it.
    max_concurrency:
        Maximum in-flight provider calls per search.  ``None`` or ``0``
        dispatches everything at once.
    """

    def __init__(
        self,
        policy: MergePolicy | None = None,
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
        max_concurrency: int | None = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self._policy = policy or MergePolicy()
        self._timeout = timeout
        self._max_concurrency = max_concurrency
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def policy(self) -> MergePolicy:
        return self._policy

    # -- Search ---------------------------------------------------------------

    async def search(
        self,
        query: CanonicalQuery,
        providers: Mapping[str, ReadyProvider],
    ) -> AggregatedResult:
        """Run *query* against every provider in *providers*.

        Raises
        ------
        NoProviderAvailableError
            If *providers* is empty, no provider can translate the query,
            or every dispatched provider failed.
        """
        if not providers:
            raise NoProviderAvailableError("no providers are configured")

        statuses: dict[str, DispatchStatus] = {}
        dispatches: list[tuple[str, IProviderAdapter, ProviderClient, ProviderRequest]] = []
        for name in self._policy.order(list(providers)):
            adapter, client = providers[name]
            request = adapter.translate_query(query)
            if request is None:
                self._logger.debug("provider_skipped", provider=name)
                statuses[name] = DispatchStatus(provider=name, outcome=DispatchOutcome.SKIPPED)
                continue
            dispatches.append((name, adapter, client, request))

        if not dispatches:
            raise NoProviderAvailableError(
                "no configured provider can handle this query",
                statuses=statuses,
            )

        self._logger.info(
            "search_started",
            providers=[d[0] for d in dispatches],
            skipped=list(statuses),
            term=query.term,
            limit=query.limit,
        )

        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
        outcomes = await throttled_gather(
            [self._dispatch(name, adapter, client, request) for name, adapter, client, request in dispatches],
            semaphore=semaphore,
        )

        per_provider: dict[str, list[CanonicalRecord]] = {}
        for (name, *_), outcome in zip(dispatches, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                outcome = (None, ProviderError(message=str(outcome), provider_name=name), None)
            records, error, elapsed_ms = outcome
            if error is not None:
                self._logger.warning(
                    "provider_dispatch_failed",
                    provider=name,
                    error_type=type(error).__name__,
                    error=error.message,
                )
                statuses[name] = DispatchStatus(
                    provider=name,
                    outcome=DispatchOutcome.FAILED,
                    error=error.message,
                    error_type=type(error).__name__,
                    elapsed_ms=elapsed_ms,
                )
                continue
            per_provider[name] = records
            statuses[name] = DispatchStatus(
                provider=name,
                outcome=DispatchOutcome.SUCCESS,
                count=len(records),
                elapsed_ms=elapsed_ms,
            )

        ordered_statuses = {name: statuses[name] for name in self._policy.order(list(statuses))}
        if not per_provider:
            raise NoProviderAvailableError(
                "every dispatched provider failed",
                statuses=ordered_statuses,
            )

        merged = self.merge(per_provider)[: query.limit]
        self._logger.info(
            "search_complete",
            records=len(merged),
            succeeded=list(per_provider),
            failed=[n for n, s in ordered_statuses.items() if s.outcome == DispatchOutcome.FAILED],
        )
        return AggregatedResult(records=merged, statuses=ordered_statuses)

    async def _dispatch(
        self,
        name: str,
        adapter: IProviderAdapter,
        client: ProviderClient,
        request: ProviderRequest,
    ) -> tuple[list[CanonicalRecord] | None, GlobalFoodError | None, float]:
        """Execute and normalize one provider call, capturing its failure."""
        started = time.perf_counter()
        error: GlobalFoodError | None = None
        records: list[CanonicalRecord] | None = None
        try:
            payload = await bounded_call(
                adapter.execute_search(client, request),
                self._timeout,
                lambda: TransportError(f"no response within {self._timeout:g}s", provider_name=name),
            )
            records = adapter.normalize_response(payload)
        except GlobalFoodError as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001 -- one provider must not sink the search
            error = ProviderError(message=f"{type(exc).__name__}: {exc}", provider_name=name)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
        if error is None:
            self._logger.debug("provider_dispatch_complete", provider=name, count=len(records), elapsed_ms=elapsed_ms)
        return records, error, elapsed_ms

    # -- Merge ----------------------------------------------------------------

    def merge(self, per_provider: Mapping[str, Sequence[CanonicalRecord]]) -> list[CanonicalRecord]:
        """Deduplicate and rank records from several providers.

        *per_provider* maps a provider tag to its records in relevance
        order.  Records are clustered greedily in provider-priority order:
        a record joins the first cluster that has no member from any of its
        sources and holds a duplicate of it.  Already-merged records are
        accepted, so merging a merged list returns it unchanged.
        """
        clusters: list[_Cluster] = []
        for provider in self._policy.order(list(per_provider)):
            seen_ids: set[str] = set()
            for rank, record in enumerate(per_provider[provider]):
                if record.id in seen_ids:
                    continue
                seen_ids.add(record.id)
                target = next((c for c in clusters if c.accepts(record, self._policy)), None)
                if target is None:
                    clusters.append(_Cluster(record, rank))
                else:
                    target.add(record, rank)

        ranked = [self._resolve(cluster) for cluster in clusters]
        ranked.sort(key=lambda item: item[1])
        return [record for record, _ in ranked]

    def _resolve(self, cluster: _Cluster) -> tuple[CanonicalRecord, tuple[Any, ...]]:
        members = sorted(cluster.members, key=lambda m: self._policy.priority_of(m[0].primary_source))
        primary, primary_rank = members[0]

        if len(members) == 1:
            record = primary
        else:
            records = [m[0] for m in members]
            fields = {name: self._vote(records, name) for name in _VOTED_FIELDS}
            sources = self._policy.order(list(cluster.sources))
            source_ids: dict[str, str] = {}
            raw: dict[str, Any] = {}
            for member in records:
                source_ids.update(member.source_ids)
                raw.update(member.raw)
            record = CanonicalRecord(
                id=primary.id,
                categories=self._union_categories(records),
                sources=sources,
                source_ids={s: source_ids[s] for s in sources if s in source_ids},
                raw=raw,
                **fields,
            )

        sort_key = (
            -record.corroboration,
            record.rating is None,
            -(record.rating or 0.0),
            primary_rank,
            self._policy.priority_of(primary.primary_source),
        )
        return record, sort_key

    @staticmethod
    def _vote(records: Sequence[CanonicalRecord], field_name: str) -> Any:
        """Return the value backed by the most sources.

        *records* is in priority order, so the first value to reach the top
        count wins ties.  ``None`` never wins over a real value.
        """
        tallies: list[tuple[Any, int]] = []
        for record in records:
            value = getattr(record, field_name)
            if value is None:
                continue
            for index, (known, count) in enumerate(tallies):
                if known == value:
                    tallies[index] = (known, count + record.corroboration)
                    break
            else:
                tallies.append((value, record.corroboration))
        if not tallies:
            return None
        best = max(count for _, count in tallies)
        return next(value for value, count in tallies if count == best)

    @staticmethod
    def _union_categories(records: Sequence[CanonicalRecord]) -> list[str]:
        seen: set[str] = set()
        categories: list[str] = []
        for record in records:
            for category in record.categories:
                key = category.casefold()
                if key not in seen:
                    seen.add(key)
                    categories.append(category)
        return categories
