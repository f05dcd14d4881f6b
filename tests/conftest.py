from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytest

from statusboard.core.config import EndpointConfig
from statusboard.services.probe import ProbeOutcome, ProbeResponse

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FakeProbe:
    """Probe client answering from a uri -> outcome table (default 200 "OK")."""

    def __init__(self, outcomes: Optional[Dict[str, ProbeOutcome]] = None,
                 on_fetch: Optional[Callable[[str], None]] = None):
        self.outcomes = outcomes or {}
        self.on_fetch = on_fetch
        self.calls: List[str] = []

    async def fetch(self, uri: str) -> ProbeOutcome:
        self.calls.append(uri)
        if self.on_fetch:
            self.on_fetch(uri)
        return self.outcomes.get(uri, ProbeResponse(uri, 200, "OK"))


def only_health(key: str, url: Optional[str] = "http://svc.local", **kw) -> EndpointConfig:
    """Endpoint with readiness, liveness and metrics disabled."""
    return EndpointConfig(key=key, url=url, readiness_url=None, liveness_url=None, metrics_url=None, **kw)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()
