"""Pydantic models for the Status Board.

Results and endpoint snapshots are frozen so they can be handed to any
number of readers without copying.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

MIN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


class Status(str, Enum):
    """Outcome of a health, readiness or liveness check."""
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"


class ResultKind(str, Enum):
    """Independently scheduled check kinds of an endpoint."""
    HEALTH = "health"
    READINESS = "readiness"
    LIVENESS = "liveness"
    METRICS = "metrics"


class CheckResult(BaseModel):
    """Result of a health, readiness or liveness probe."""
    model_config = ConfigDict(frozen=True)

    status: Status
    description: str = ""
    probed_uri: Optional[str] = None
    timestamp: datetime

    @property
    def is_empty(self) -> bool:
        return self.timestamp == MIN_TIMESTAMP


class MetricsResult(BaseModel):
    """Raw metrics text (or a readable error) scraped from an endpoint."""
    model_config = ConfigDict(frozen=True)

    body: str = ""
    probed_uri: Optional[str] = None
    timestamp: datetime

    @property
    def is_empty(self) -> bool:
        return self.timestamp == MIN_TIMESTAMP


# "no observation" sentinels, older than any real result
EMPTY_CHECK = CheckResult(status=Status.UNHEALTHY, timestamp=MIN_TIMESTAMP)
EMPTY_METRICS = MetricsResult(timestamp=MIN_TIMESTAMP)

AnyResult = Union[CheckResult, MetricsResult]


class EndpointState(BaseModel):
    """Latest known result per kind for one endpoint."""
    model_config = ConfigDict(frozen=True)

    health: CheckResult = EMPTY_CHECK
    readiness: CheckResult = EMPTY_CHECK
    liveness: CheckResult = EMPTY_CHECK
    metrics: MetricsResult = EMPTY_METRICS

    def get(self, kind: ResultKind) -> AnyResult:
        return getattr(self, kind.value)

    def combine(self, update: "EndpointState") -> "EndpointState":
        """Overlay the non-empty fields of ``update`` onto this snapshot."""
        merged = {}
        for kind in ResultKind:
            new = update.get(kind)
            merged[kind.value] = self.get(kind) if new.is_empty else new
        return EndpointState(**merged)

    @classmethod
    def from_results(cls, results: Mapping[ResultKind, AnyResult]) -> "EndpointState":
        """Build a partial update holding only the given kinds."""
        return cls(**{kind.value: result for kind, result in results.items()})


EMPTY_STATE = EndpointState()


def changed_kinds(previous: EndpointState, current: EndpointState) -> list[ResultKind]:
    """Kinds whose timestamp differs between two snapshots."""
    return [
        kind for kind in ResultKind
        if previous.get(kind).timestamp != current.get(kind).timestamp
    ]


class EndpointView(BaseModel):
    """API shape: an endpoint's configuration key/url with its snapshot."""
    key: str
    url: Optional[str] = None
    health: CheckResult
    readiness: CheckResult
    liveness: CheckResult
    metrics: MetricsResult
