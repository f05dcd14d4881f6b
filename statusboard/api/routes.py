"""API routes for the Status Board.

Read-only views over the endpoint registry and the latest snapshots, a
Server-Sent Events stream of changes, and switches for the self-health flags.
"""
from __future__ import annotations

import asyncio
import json
from logging import getLogger
from typing import List

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, StreamingResponse

from statusboard.core.config import EndpointConfig
from statusboard.models.schemas import EMPTY_STATE, EndpointState, EndpointView
from statusboard.services.broadcast import metrics_text
from statusboard.services.registry import EndpointRegistry
from statusboard.services.store import StateStore

log = getLogger("Status-Board.API")
router = APIRouter()

KEEPALIVE_S = 30.0


def _view(ep: EndpointConfig, state: EndpointState) -> EndpointView:
    return EndpointView(
        key=ep.key,
        url=ep.url,
        health=state.health,
        readiness=state.readiness,
        liveness=state.liveness,
        metrics=state.metrics,
    )


def _get_registry_and_store(request: Request) -> tuple[EndpointRegistry, StateStore]:
    """Return the app-scoped registry and store placed on ``app.state`` at startup."""
    return request.app.state.registry, request.app.state.store


@router.get("/endpoints", response_model=List[EndpointView])
async def list_endpoints(request: Request):
    """All endpoints in configuration order with their latest results."""
    registry, store = _get_registry_and_store(request)
    return [_view(ep, store.get(ep.key) or EMPTY_STATE) for ep in registry]


@router.get("/endpoints/{key}", response_model=EndpointView)
async def get_endpoint(key: str, request: Request):
    registry, store = _get_registry_and_store(request)
    ep = registry.get(key)
    if not ep:
        raise HTTPException(404, detail="endpoint not found")
    return _view(ep, store.get(key) or EMPTY_STATE)


@router.get("/endpoints/{key}/metrics", response_class=PlainTextResponse)
async def get_endpoint_metrics(key: str, request: Request):
    """Last scraped metrics text for one endpoint."""
    registry, store = _get_registry_and_store(request)
    if key not in registry:
        raise HTTPException(404, detail="endpoint not found")
    return metrics_text((store.get(key) or EMPTY_STATE).metrics)


@router.get("/stream")
async def stream(request: Request) -> StreamingResponse:
    """
    Server-Sent Events:
      event: init     full snapshot {key: EndpointState}
      event: status   {"key", "health", "readiness", "liveness"} display texts
      event: metrics  {"key", "metrics"} display text
    """
    registry, store = _get_registry_and_store(request)
    broadcaster = request.app.state.broadcaster
    queue = broadcaster.open()
    log.info("stream client connected (%d open)", broadcaster.client_count)

    async def event_generator():
        try:
            init = {k: s.model_dump(mode="json") for k, s in store.snapshot().items() if k in registry}
            yield f"event: init\ndata: {json.dumps(init)}\n\n"
            while True:
                if await request.is_disconnected():
                    break
                try:
                    name, data = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_S)
                    yield f"event: {name}\ndata: {json.dumps(data)}\n\n"
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            broadcaster.close(queue)
            log.info("stream client disconnected")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/telemetry/set/degraded")
async def set_degraded(request: Request, value: bool = Query(...)):
    log.info("self health: degraded=%s", value)
    request.app.state.self_health.degraded = value
    return {"ok": True}


@router.post("/telemetry/set/failed")
async def set_failed(request: Request, value: bool = Query(...)):
    log.info("self health: failed=%s", value)
    request.app.state.self_health.failed = value
    return {"ok": True}
