from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from statusboard.models.schemas import EMPTY_STATE, EndpointState, changed_kinds

log = logging.getLogger("store")

StateChangedCallback = Callable[[str, EndpointState, EndpointState], None]


def _summary(state: EndpointState) -> str:
    return (
        f"health={state.health.status.value}@{state.health.timestamp:%H:%M:%S} "
        f"readiness={state.readiness.status.value}@{state.readiness.timestamp:%H:%M:%S} "
        f"liveness={state.liveness.status.value}@{state.liveness.timestamp:%H:%M:%S} "
        f"metrics={len(state.metrics.body)}b@{state.metrics.timestamp:%H:%M:%S}"
    )


class StateStore:
    """
    Per-endpoint snapshot map with atomic merge-and-notify.

    Each key has its own lock, so merges for one endpoint are serialized
    while different endpoints proceed independently. Readers get immutable
    snapshots without taking a lock.
    """

    def __init__(self, keys: Iterable[str] = ()):
        self._states: Dict[str, EndpointState] = {k: EMPTY_STATE for k in keys}
        self._locks: Dict[str, Lock] = {k: Lock() for k in self._states}
        self._guard = Lock()
        self._subscribers: List[StateChangedCallback] = []

    def subscribe(self, callback: StateChangedCallback) -> None:
        with self._guard:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: StateChangedCallback) -> None:
        with self._guard:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def get(self, key: str) -> Optional[EndpointState]:
        return self._states.get(key)

    def snapshot(self) -> Dict[str, EndpointState]:
        return dict(self._states)

    def _lock_for(self, key: str) -> Lock:
        lock = self._locks.get(key)
        if lock is None:
            with self._guard:
                lock = self._locks.setdefault(key, Lock())
        return lock

    def set_state(self, key: str, update: EndpointState) -> Tuple[EndpointState, EndpointState]:
        """Merge a partial update into ``key``'s snapshot; return (previous, current).

        Subscribers run synchronously before the key is released, and only
        when at least one result timestamp moved.
        """
        with self._lock_for(key):
            previous = self._states.get(key, EMPTY_STATE)
            current = previous.combine(update)
            self._states[key] = current
            if changed_kinds(previous, current):
                self._notify(key, previous, current)
        return previous, current

    def _notify(self, key: str, previous: EndpointState, current: EndpointState) -> None:
        log.info("state changed: '%s'\n- previous: %s\n- current:  %s", key, _summary(previous), _summary(current))
        for callback in list(self._subscribers):
            try:
                callback(key, previous, current)
            except Exception:
                log.exception("state change subscriber failed for '%s'", key)
