"""Search outcome models.

``AggregatedResult`` is built fresh for every ``search`` call: the merged,
ranked record list plus one ``DispatchStatus`` per provider describing what
happened to that provider during the call.  Nothing here is persisted.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from globalfood.models.places import CanonicalRecord


class DispatchOutcome(str, Enum):  # noqa: UP042 -- StrEnum requires Python 3.11+
    """What happened to one provider during a single search."""

    SUCCESS = "SUCCESS"   # call returned; ``count`` records normalized
    FAILED = "FAILED"     # transport/provider error, see ``error``
    SKIPPED = "SKIPPED"   # query could not be translated for this provider


class DispatchStatus(BaseModel):
    """Per-provider status reported alongside the merged records."""

    model_config = ConfigDict(frozen=True)

    provider: str
    outcome: DispatchOutcome
    count: int = 0
    error: str | None = None
    # Exception class name, e.g. "TransportError" or "ProviderError".
    error_type: str | None = None
    elapsed_ms: float | None = None


class AggregatedResult(BaseModel):
    """Deduplicated, ranked records from every provider that answered."""

    model_config = ConfigDict(frozen=True)

    records: list[CanonicalRecord] = Field(default_factory=list)
    statuses: dict[str, DispatchStatus] = Field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return [p for p, s in self.statuses.items() if s.outcome == DispatchOutcome.SUCCESS]

    @property
    def failed(self) -> list[str]:
        return [p for p, s in self.statuses.items() if s.outcome == DispatchOutcome.FAILED]

    @property
    def skipped(self) -> list[str]:
        return [p for p, s in self.statuses.items() if s.outcome == DispatchOutcome.SKIPPED]

    def __len__(self) -> int:
        return len(self.records)
