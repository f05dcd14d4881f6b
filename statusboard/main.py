"""Status Board FastAPI application.

Loads the monitored endpoints, starts the background scraper, and exposes
the query/stream API plus this service's own health and Prometheus metrics.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from statusboard.api.routes import router
from statusboard.core.config import load_endpoints, load_settings
from statusboard.core.logging import setup_logging
from statusboard.metrics.prometheus import metrics_router
from statusboard.models.schemas import Status
from statusboard.services.broadcast import ChangeBroadcaster
from statusboard.services.clock import SystemClock
from statusboard.services.interpreter import ResultInterpreter
from statusboard.services.probe import HttpProbeClient
from statusboard.services.registry import EndpointRegistry
from statusboard.services.scraper import Scraper
from statusboard.services.self_health import Lifecycle, SelfHealth
from statusboard.services.store import StateStore

log = logging.getLogger("Status-Board")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan.

    Builds the registry, store, broadcaster and scraper, runs the scraper
    for the lifetime of the app, and lets in-flight probes finish on
    shutdown.
    """
    setup_logging()
    settings = load_settings()
    registry = EndpointRegistry(load_endpoints(settings.endpoints_file))
    store = StateStore(registry.keys())
    broadcaster = ChangeBroadcaster(settings.sse_queue_size)
    store.subscribe(broadcaster)

    app.state.registry = registry
    app.state.store = store
    app.state.broadcaster = broadcaster

    clock = SystemClock()
    async with httpx.AsyncClient(timeout=settings.request_timeout_s, follow_redirects=True) as client:
        interpreter = ResultInterpreter(HttpProbeClient(client), clock)
        scraper = Scraper(registry, store, interpreter, clock, settings.max_concurrency)
        app.state.scraper = scraper
        task = asyncio.create_task(scraper.run())
        app.state.self_health.lifecycle = Lifecycle.RUNNING
        log.info("Status board started: %d endpoints, period %s", len(registry), scraper.period)
        try:
            yield
        finally:
            app.state.self_health.lifecycle = Lifecycle.STOPPING
            scraper.stop()
            await task
            store.unsubscribe(broadcaster)
            app.state.self_health.lifecycle = Lifecycle.STOPPED


app = FastAPI(title="Status Board", version="0.1.0", lifespan=lifespan)
app.state.self_health = SelfHealth()
app.include_router(router, prefix="/api", tags=["status"])
app.include_router(metrics_router)


def _status_response(status: Status) -> PlainTextResponse:
    code = 503 if status is Status.UNHEALTHY else 200
    return PlainTextResponse(status.value, status_code=code)


@app.get("/healthz")
async def healthz(request: Request):
    """Overall health of this service: failed/degraded flags."""
    return _status_response(request.app.state.self_health.health())


@app.get("/healthz/ready")
async def readyz(request: Request):
    """Ready once startup completed and until shutdown begins."""
    return _status_response(request.app.state.self_health.readiness())


@app.get("/healthz/live")
async def livez(request: Request):
    return _status_response(request.app.state.self_health.liveness())
