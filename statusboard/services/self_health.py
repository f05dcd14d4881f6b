"""Health flags this service reports about itself on /healthz."""
from __future__ import annotations

from enum import Enum

from statusboard.models.schemas import Status


class Lifecycle(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class SelfHealth:
    """Lifecycle plus operator-controlled degraded/failed flags."""

    def __init__(self):
        self.lifecycle = Lifecycle.STARTING
        self.degraded = False
        self.failed = False

    @property
    def is_running(self) -> bool:
        return self.lifecycle == Lifecycle.RUNNING

    def health(self) -> Status:
        if self.failed:
            return Status.UNHEALTHY
        if self.degraded:
            return Status.DEGRADED
        return Status.HEALTHY

    def readiness(self) -> Status:
        return Status.HEALTHY if self.is_running else Status.UNHEALTHY

    def liveness(self) -> Status:
        return self.health()
