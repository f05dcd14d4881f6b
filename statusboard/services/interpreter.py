"""Turns probe outcomes into typed check and metrics results."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from statusboard.models.schemas import CheckResult, MetricsResult, Status
from statusboard.services.clock import Clock, SystemClock
from statusboard.services.probe import ProbeClient, ProbeError

log = logging.getLogger("interpreter")

DISABLED = "Endpoint disabled."
DEGRADED_BODY = "Degraded"


def parse_base_url(url: Optional[str]) -> Optional[httpx.URL]:
    """Parse an endpoint's base url; None unless it is absolute."""
    if not url or not url.strip():
        return None
    try:
        parsed = httpx.URL(url.strip())
    except httpx.InvalidURL:
        return None
    return parsed if parsed.is_absolute_url else None


def resolve_uri(base: Optional[httpx.URL], path: str) -> Optional[httpx.URL]:
    """Resolve ``path`` against ``base``; None when that yields no usable url."""
    try:
        target = httpx.URL(path.strip())
    except httpx.InvalidURL:
        return None
    if target.is_absolute_url:
        return target
    if base is None:
        return None
    return base.join(target)


class ResultInterpreter:
    """Probes a check path and classifies the outcome.

    Disabled and unresolvable paths short-circuit without any request.
    """

    def __init__(self, probe: ProbeClient, clock: Optional[Clock] = None):
        self._probe = probe
        self._clock = clock or SystemClock()

    async def check(self, base: Optional[httpx.URL], path: Optional[str]) -> CheckResult:
        """Health/readiness/liveness result for ``path`` under ``base``."""
        if not path or not path.strip():
            return self._check_result(Status.HEALTHY, DISABLED)
        uri = resolve_uri(base, path)
        if uri is None:
            return self._check_result(
                Status.DEGRADED, f"Invalid endpoint uri path '{path}' ('{base or ''}')"
            )

        outcome = await self._probe.fetch(str(uri))
        if isinstance(outcome, ProbeError):
            log.error("check %s failed: %s", uri, outcome.message)
            status = Status.UNHEALTHY
            description = f"{type(outcome.error).__name__}: {outcome.message}"
        elif outcome.ok:
            status, description = Status.HEALTHY, outcome.body
        elif outcome.body == DEGRADED_BODY:
            status, description = Status.DEGRADED, outcome.body
        else:
            status, description = Status.UNHEALTHY, outcome.body
        return self._check_result(status, description, str(uri))

    async def metrics(self, base: Optional[httpx.URL], path: Optional[str]) -> MetricsResult:
        """Metrics text for ``path`` under ``base``, or a readable reason why not."""
        if not path or not path.strip():
            return self._metrics_result(DISABLED)
        uri = resolve_uri(base, path)
        if uri is None:
            return self._metrics_result(f"Invalid endpoint uri/path '{path}' ('{base or ''}').")

        outcome = await self._probe.fetch(str(uri))
        if isinstance(outcome, ProbeError):
            log.error("metrics %s failed: %s", uri, outcome.message)
            body = f"Error: {outcome.message}"
        elif outcome.ok:
            body = outcome.body
        else:
            body = f"Status code: {outcome.status_code}"
        return self._metrics_result(body, str(uri))

    def _check_result(self, status: Status, description: str, uri: Optional[str] = None) -> CheckResult:
        return CheckResult(status=status, description=description, probed_uri=uri, timestamp=self._clock.now())

    def _metrics_result(self, body: str, uri: Optional[str] = None) -> MetricsResult:
        return MetricsResult(body=body, probed_uri=uri, timestamp=self._clock.now())
