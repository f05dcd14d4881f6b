"""Fan-out of state changes to live-update (SSE) clients.

Each client owns a bounded queue. Events are pushed without waiting so a
slow client can only lose its own events, never delay a merge.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from statusboard.models.schemas import CheckResult, EndpointState, MetricsResult, ResultKind, changed_kinds

log = logging.getLogger("broadcast")

DISPLAY_TS = "%d/%m/%Y %H:%M:%S"
CHECK_KINDS = (ResultKind.HEALTH, ResultKind.READINESS, ResultKind.LIVENESS)


def check_text(result: CheckResult, include_timestamp: bool = True) -> str:
    """Display text for a check: '<description> (dd/mm/YYYY HH:MM:SS)'."""
    if result.is_empty:
        return "Unknown"
    if not include_timestamp:
        return result.description
    return f"{result.description} ({result.timestamp.strftime(DISPLAY_TS)})"


def metrics_text(result: MetricsResult) -> str:
    if result.is_empty:
        return "Metrics unavailable.\n"
    return f"Last Updated: {result.timestamp.strftime(DISPLAY_TS)}\n{result.body}\n"


def state_events(key: str, previous: EndpointState, current: EndpointState) -> list[tuple[str, dict[str, Any]]]:
    """Events for the kinds that changed: one 'status' for checks, one 'metrics'."""
    changed = set(changed_kinds(previous, current))
    events: list[tuple[str, dict[str, Any]]] = []
    if changed.intersection(CHECK_KINDS):
        events.append(("status", {
            "key": key,
            "health": check_text(current.health),
            "readiness": check_text(current.readiness),
            "liveness": check_text(current.liveness),
        }))
    if ResultKind.METRICS in changed:
        events.append(("metrics", {"key": key, "metrics": metrics_text(current.metrics)}))
    return events


class ChangeBroadcaster:
    """Store subscriber that copies change events into per-client queues."""

    def __init__(self, queue_size: int = 50):
        self._queue_size = queue_size
        self._queues: list[asyncio.Queue[tuple[str, dict[str, Any]]]] = []

    @property
    def client_count(self) -> int:
        return len(self._queues)

    def open(self) -> asyncio.Queue[tuple[str, dict[str, Any]]]:
        queue: asyncio.Queue[tuple[str, dict[str, Any]]] = asyncio.Queue(maxsize=self._queue_size)
        self._queues.append(queue)
        return queue

    def close(self, queue: asyncio.Queue[tuple[str, dict[str, Any]]]) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def __call__(self, key: str, previous: EndpointState, current: EndpointState) -> None:
        for event in state_events(key, previous, current):
            for queue in list(self._queues):
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    log.debug("dropping %s event for slow client", event[0])
