"""Background scraping of all monitored endpoints.

One control loop probes whatever is due, merges the results into the
StateStore and then sleeps a full ``period`` (the smallest interval
configured for any endpoint and kind). A kind's next due time is
counted from the moment its probe completes, so a slow endpoint is never
probed twice concurrently for the same kind.
"""
from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional

import httpx

from statusboard.core.config import EndpointConfig
from statusboard.metrics.prometheus import SCRAPES
from statusboard.models.schemas import AnyResult, CheckResult, EndpointState, MetricsResult, ResultKind, Status
from statusboard.services.clock import Clock, SystemClock
from statusboard.services.interpreter import ResultInterpreter, parse_base_url
from statusboard.services.registry import EndpointRegistry
from statusboard.services.store import StateStore

log = logging.getLogger("scraper")


class ScraperState(str, Enum):
    IDLE = "idle"
    TICKING = "ticking"
    STOPPED = "stopped"


class ScrapeSchedule:
    """Next due time per kind for one endpoint. Only the scraper mutates it."""

    def __init__(self, endpoint: EndpointConfig, now: datetime):
        self.endpoint = endpoint
        self.base_url: Optional[httpx.URL] = parse_base_url(endpoint.url)
        self.next_due: Dict[ResultKind, datetime] = {kind: now for kind in ResultKind}

    def due_kinds(self, now: datetime) -> List[ResultKind]:
        return [kind for kind in ResultKind if self.next_due[kind] <= now]


class Scraper:
    """
    Polls every registered endpoint on its own per-kind cadence.

    At most ``max_concurrency`` endpoints are probed at once; an endpoint
    holding a slot probes all of its due kinds concurrently.
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        store: StateStore,
        interpreter: ResultInterpreter,
        clock: Optional[Clock] = None,
        max_concurrency: Optional[int] = None,
    ):
        if registry is None or store is None or interpreter is None:
            raise ValueError("registry, store and interpreter are required")
        self._registry = registry
        self._store = store
        self._interpreter = interpreter
        self._clock = clock or SystemClock()
        if max_concurrency is None:
            max_concurrency = os.cpu_count() or 1
        self._max_concurrency = max_concurrency
        if self._max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._limiter = asyncio.Semaphore(self._max_concurrency)
        self._stopping = asyncio.Event()
        self._state = ScraperState.IDLE

        now = self._clock.now()
        self._schedules = [ScrapeSchedule(ep, now) for ep in registry]
        intervals = [ep.interval_for(kind) for ep in registry for kind in ResultKind]
        self._period: Optional[timedelta] = timedelta(seconds=min(intervals)) if intervals else None

    @property
    def period(self) -> Optional[timedelta]:
        return self._period

    @property
    def state(self) -> ScraperState:
        return self._state

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    def schedule(self, key: str) -> Optional[ScrapeSchedule]:
        return next((s for s in self._schedules if s.endpoint.key == key), None)

    def stop(self) -> None:
        """Request shutdown; probes already running are allowed to finish."""
        self._stopping.set()

    async def run(self) -> None:
        log.info("Starting background scraping task (%d endpoints)...", len(self._schedules))
        if self._period is None:
            log.info("No endpoints configured; scraper idle")
            self._state = ScraperState.STOPPED
            return
        try:
            while not self._stopping.is_set():
                await self.tick()
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=self._period.total_seconds())
                except asyncio.TimeoutError:
                    pass
        finally:
            self._state = ScraperState.STOPPED
            log.info("Background scraping task shutdown.")

    async def tick(self, now: Optional[datetime] = None) -> None:
        """Probe every due (endpoint, kind) once and merge the results."""
        now = now or self._clock.now()
        self._state = ScraperState.TICKING
        try:
            await asyncio.gather(*(self._scrape_endpoint(s, now) for s in self._schedules))
        finally:
            if self._state is ScraperState.TICKING:
                self._state = ScraperState.IDLE

    async def _scrape_endpoint(self, schedule: ScrapeSchedule, now: datetime) -> None:
        due = schedule.due_kinds(now)
        if not due:
            return
        key = schedule.endpoint.key
        try:
            async with self._limiter:
                log.info("%s: updating %s", key, ", ".join(k.value for k in due))
                results = await asyncio.gather(*(self._scrape_kind(schedule, kind) for kind in due))
            self._store.set_state(key, EndpointState.from_results(dict(zip(due, results))))
        except Exception:
            log.exception("%s: scrape failed", key)

    async def _scrape_kind(self, schedule: ScrapeSchedule, kind: ResultKind) -> AnyResult:
        endpoint = schedule.endpoint
        path = endpoint.path_for(kind)
        try:
            if kind is ResultKind.METRICS:
                result: AnyResult = await self._interpreter.metrics(schedule.base_url, path)
            else:
                result = await self._interpreter.check(schedule.base_url, path)
        except Exception as e:
            log.exception("%s: %s scrape failed", endpoint.key, kind.value)
            result = self._failed_result(kind, e)
        schedule.next_due[kind] = self._clock.now() + timedelta(seconds=endpoint.interval_for(kind))
        SCRAPES.labels(kind=kind.value, key=endpoint.key, url=result.probed_uri or "").inc()
        return result

    def _failed_result(self, kind: ResultKind, error: Exception) -> AnyResult:
        message = str(error) or type(error).__name__
        now = self._clock.now()
        if kind is ResultKind.METRICS:
            return MetricsResult(body=f"Error: {message}", timestamp=now)
        return CheckResult(status=Status.UNHEALTHY, description=f"{type(error).__name__}: {message}", timestamp=now)
