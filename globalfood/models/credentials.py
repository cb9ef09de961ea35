"""Provider lifecycle models used by the credential store.

Each provider moves through a small state machine:

    UNCONFIGURED --(valid bundle, sync client)------------------> READY
    UNCONFIGURED --(valid bundle, needs handshake)--> AUTHENTICATING
    AUTHENTICATING --(token granted)---------------------------> READY
    AUTHENTICATING --(token rejected / network error)----------> FAILED
    any --(bundle becomes invalid)------------------------------> UNCONFIGURED

Only READY providers are handed to the aggregator.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ProviderState(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """Lifecycle state of one provider's client."""

    UNCONFIGURED = "UNCONFIGURED"
    AUTHENTICATING = "AUTHENTICATING"
    READY = "READY"
    FAILED = "FAILED"


class ProviderStatus(BaseModel):
    """Snapshot of one provider's credential state.

    ``error`` holds the most recent non-fatal problem, such as a blank
    secret or a rejected token exchange.  It is cleared when the provider
    becomes READY.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    state: ProviderState = ProviderState.UNCONFIGURED
    error: str | None = None
    error_type: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.state == ProviderState.READY
