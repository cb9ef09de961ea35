"""Per-provider credential and client management.

The credential store is the only owner of mutable provider state: the
merged credential bundle, the current ``ProviderClient`` and the lifecycle
state (see :mod:`globalfood.models.credentials`) of every provider.

Update rules
------------
- ``update`` merges each provider's new fields over the stored ones.  A
  field present in the update overwrites; an absent field is preserved; a
  field set to ``None`` is cleared.
- A client is (re)built iff the merged bundle becomes valid or changes
  while valid.  It is removed iff the bundle becomes invalid.  An update
  that leaves a bundle unchanged does nothing.
- A required field that is blank after trimming is an
  ``InvalidCredentialsError``, recorded on the provider's status rather
  than raised.
- Providers whose adapter ``requires_handshake`` move to AUTHENTICATING and
  their token exchange runs as an asyncio task.  If ``update`` is called
  without a running event loop the handshake is deferred until
  :meth:`start_pending` runs inside one.  A generation counter per provider
  discards handshake results that were overtaken by a newer update.

Concurrency
-----------
All mutations happen under one ``threading.Lock`` that is never held across
an ``await``.  ``snapshot`` returns an immutable view of READY providers;
clients are never edited in place, so a search keeps a consistent set of
clients for its whole duration.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, NamedTuple

import httpx
import structlog

from globalfood.interfaces.provider_adapter import IProviderAdapter
from globalfood.models.credentials import ProviderState, ProviderStatus
from globalfood.providers.client import ProviderClient
from globalfood.utils.errors import (
    AuthHandshakeFailedError,
    GlobalFoodError,
    InvalidCredentialsError,
)
from globalfood.utils.logging import get_logger

# Flat credential keys accepted by the original JavaScript package, mapped to
# (provider, field) in the nested bundle shape.
_LEGACY_KEYS: dict[str, tuple[str, str]] = {
    "yelpID": ("yelp", "client_id"),
    "yelpSecret": ("yelp", "client_secret"),
    "foursquareID": ("foursquare", "client_id"),
    "foursquareSecret": ("foursquare", "client_secret"),
    "foursquareVersion": ("foursquare", "version"),
    "foursquareMode": ("foursquare", "mode"),
    "zomatoKey": ("zomato", "api_key"),
    "factualKey": ("factual", "key"),
    "factualSecret": ("factual", "secret"),
}


class ReadyProvider(NamedTuple):
    """An adapter paired with its current, authenticated client."""

    adapter: IProviderAdapter
    client: ProviderClient


@dataclass
class _ProviderEntry:
    bundle: dict[str, str] = field(default_factory=dict)
    state: ProviderState = ProviderState.UNCONFIGURED
    client: ProviderClient | None = None
    error: GlobalFoodError | None = None
    generation: int = 0
    task: asyncio.Task[None] | None = None


def normalize_credentials(credentials: Mapping[str, Any] | None) -> dict[str, dict[str, Any]]:
    """Convert caller credentials into ``{provider: {field: value}}``.

    Accepts the nested shape (``{"yelp": {"client_id": ...}}``) and the flat
    legacy keys (``{"yelpID": ..., "zomatoKey": ...}``), or a mix of both.
    Entries that fit neither shape are ignored.
    """
    nested: dict[str, dict[str, Any]] = {}
    if not credentials:
        return nested

    for key, value in credentials.items():
        if key in _LEGACY_KEYS:
            provider, field_name = _LEGACY_KEYS[key]
            nested.setdefault(provider, {})[field_name] = value
        elif isinstance(value, Mapping):
            nested.setdefault(str(key).lower(), {}).update(value)
    return nested


class CredentialStore:
    """Holds credentials and clients for every known provider.

    Parameters
    ----------
    adapters:
        Provider adapters keyed by provider name.  Credentials for any other
        provider name are ignored with a warning.
    http_client:
        Shared ``httpx.AsyncClient`` handed to every client the store builds.
    """

    def __init__(
        self,
        adapters: Mapping[str, IProviderAdapter],
        http_client: httpx.AsyncClient,
    ) -> None:
        self._adapters = dict(adapters)
        self._http = http_client
        self._entries: dict[str, _ProviderEntry] = {name: _ProviderEntry() for name in self._adapters}
        self._deferred: dict[str, tuple[int, Callable[[], Awaitable[ProviderClient]]]] = {}
        self._lock = threading.Lock()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # -- Public API -----------------------------------------------------------

    @property
    def providers(self) -> tuple[str, ...]:
        return tuple(self._adapters)

    def update(self, credentials: Mapping[str, Any] | None) -> dict[str, ProviderStatus]:
        """Merge *credentials* into the stored bundles and rebuild clients.

        Never raises for per-provider problems; inspect the returned
        statuses (or :meth:`statuses`) instead.  Handshake providers may
        still be AUTHENTICATING when this returns.
        """
        nested = normalize_credentials(credentials)

        with self._lock:
            for provider, fields in nested.items():
                adapter = self._adapters.get(provider)
                if adapter is None:
                    self._logger.warning("credentials_unknown_provider", provider=provider)
                    continue
                self._apply(adapter, self._entries[provider], fields)

        return self.statuses()

    def statuses(self) -> dict[str, ProviderStatus]:
        """Return the lifecycle status of every provider."""
        with self._lock:
            return {
                name: ProviderStatus(
                    provider=name,
                    state=entry.state,
                    error=entry.error.message if entry.error else None,
                    error_type=type(entry.error).__name__ if entry.error else None,
                )
                for name, entry in self._entries.items()
            }

    def snapshot(self) -> Mapping[str, ReadyProvider]:
        """Return an immutable view of the providers that are READY right now."""
        with self._lock:
            ready = {
                name: ReadyProvider(self._adapters[name], entry.client)
                for name, entry in self._entries.items()
                if entry.state == ProviderState.READY and entry.client is not None
            }
        return MappingProxyType(ready)

    def start_pending(self) -> None:
        """Start handshakes that were requested while no event loop was running.

        Must be called from inside a running event loop.
        """
        with self._lock:
            pending = dict(self._deferred)
            self._deferred.clear()
            for provider, (generation, factory) in pending.items():
                if self._entries[provider].generation == generation:
                    self._start_handshake(provider, generation, factory)

    async def wait_ready(self, timeout: float | None = None) -> dict[str, ProviderStatus]:
        """Wait for in-flight handshakes to settle, then return statuses.

        Handshakes still running after *timeout* seconds are left running.
        """
        self.start_pending()
        with self._lock:
            tasks = [e.task for e in self._entries.values() if e.task is not None and not e.task.done()]
        if tasks:
            await asyncio.wait(tasks, timeout=timeout)
        return self.statuses()

    async def aclose(self) -> None:
        """Cancel any handshake still in flight."""
        with self._lock:
            self._deferred.clear()
            tasks = [e.task for e in self._entries.values() if e.task is not None and not e.task.done()]
            for task in tasks:
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # -- Internals (called with the lock held) ------------------------------

    def _apply(self, adapter: IProviderAdapter, entry: _ProviderEntry, fields: Mapping[str, Any]) -> None:
        provider = adapter.get_provider_name()
        merged = dict(entry.bundle)
        for name, value in fields.items():
            if value is None:
                merged.pop(name, None)
            else:
                merged[name] = str(value).strip()

        if merged == entry.bundle:
            self._logger.debug("credentials_unchanged", provider=provider)
            return
        entry.bundle = merged

        problem = self._validate(adapter, merged)
        if problem is None and all(merged.get(f) for f in adapter.required_fields):
            self._activate(adapter, entry)
        else:
            self._deactivate(provider, entry, problem)

    @staticmethod
    def _validate(adapter: IProviderAdapter, bundle: Mapping[str, str]) -> InvalidCredentialsError | None:
        blank = [f for f in adapter.required_fields if f in bundle and not bundle[f]]
        if blank:
            return InvalidCredentialsError(
                message=f"blank credential field(s): {', '.join(blank)}",
                provider_name=adapter.get_provider_name(),
            )
        return None

    def _invalidate(self, provider: str, entry: _ProviderEntry) -> int:
        """Bump the generation and cancel any handshake for the old bundle."""
        entry.generation += 1
        self._deferred.pop(provider, None)
        if entry.task is not None and not entry.task.done():
            entry.task.cancel()
        entry.task = None
        return entry.generation

    def _deactivate(self, provider: str, entry: _ProviderEntry, problem: InvalidCredentialsError | None) -> None:
        had_client = entry.client is not None or entry.state != ProviderState.UNCONFIGURED
        self._invalidate(provider, entry)
        entry.client = None
        entry.state = ProviderState.UNCONFIGURED
        entry.error = problem
        if problem is not None:
            self._logger.warning("credentials_invalid", provider=provider, error=problem.message)
        if had_client:
            self._logger.info("provider_client_removed", provider=provider)

    def _activate(self, adapter: IProviderAdapter, entry: _ProviderEntry) -> None:
        provider = adapter.get_provider_name()
        generation = self._invalidate(provider, entry)
        bundle = adapter.complete_bundle(entry.bundle)
        entry.client = None
        entry.error = None

        if adapter.requires_handshake:
            entry.state = ProviderState.AUTHENTICATING
            self._logger.info("provider_authenticating", provider=provider)
            factory = lambda: adapter.authenticate(bundle, self._http)  # noqa: E731
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                self._deferred[provider] = (generation, factory)
                return
            self._start_handshake(provider, generation, factory)
            return

        try:
            client = adapter.build_client(bundle, self._http)
        except Exception as exc:  # noqa: BLE001 -- construction failures are per-provider
            entry.state = ProviderState.FAILED
            entry.error = (
                exc if isinstance(exc, GlobalFoodError)
                else InvalidCredentialsError(message=str(exc), provider_name=provider)
            )
            self._logger.warning("provider_client_failed", provider=provider, error=str(exc))
            return

        entry.client = client
        entry.state = ProviderState.READY
        self._logger.info("provider_ready", provider=provider)

    def _start_handshake(
        self,
        provider: str,
        generation: int,
        factory: Callable[[], Awaitable[ProviderClient]],
    ) -> None:
        entry = self._entries[provider]
        entry.task = asyncio.get_running_loop().create_task(
            self._run_handshake(provider, generation, factory),
            name=f"globalfood-handshake-{provider}",
        )

    async def _run_handshake(
        self,
        provider: str,
        generation: int,
        factory: Callable[[], Awaitable[ProviderClient]],
    ) -> None:
        client: ProviderClient | None = None
        error: GlobalFoodError | None = None
        try:
            client = await factory()
        except AuthHandshakeFailedError as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001 -- background task must record, not raise
            error = AuthHandshakeFailedError(message=str(exc), provider_name=provider)

        with self._lock:
            entry = self._entries[provider]
            if entry.generation != generation:
                self._logger.debug("handshake_result_discarded", provider=provider)
                return
            entry.task = None
            if error is not None:
                entry.state = ProviderState.FAILED
                entry.client = None
                entry.error = error
                self._logger.warning("provider_handshake_failed", provider=provider, error=error.message)
            else:
                entry.state = ProviderState.READY
                entry.client = client
                entry.error = None
                self._logger.info("provider_ready", provider=provider)
