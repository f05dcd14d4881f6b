"""HTTP probing of monitored endpoints.

A probe is a single GET whose trimmed body and status code are handed back
to the caller. Transport failures come back as ``ProbeError`` values so one
unreachable endpoint cannot break the scrape loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Union

import httpx

from statusboard.metrics.prometheus import ENDPOINT_REQUESTS, ENDPOINT_RESPONSE_BYTES

log = logging.getLogger("probe")


@dataclass(frozen=True)
class ProbeResponse:
    """Status code and whitespace-trimmed body of a completed GET."""
    uri: str
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return self.status_code == httpx.codes.OK


@dataclass(frozen=True)
class ProbeError:
    """Transport-level failure (DNS, refused connection, timeout, bad url)."""
    uri: str
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


ProbeOutcome = Union[ProbeResponse, ProbeError]


class ProbeClient(Protocol):
    """Capability to GET a uri once and report the outcome."""

    async def fetch(self, uri: str) -> ProbeOutcome:
        ...


class HttpProbeClient:
    """
    Probe client backed by a shared httpx.AsyncClient.

    Never retries; the scraper's cadence is the only retry policy.
    """

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def fetch(self, uri: str) -> ProbeOutcome:
        log.debug("GET %s", uri)
        try:
            resp = await self._client.get(uri)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            ENDPOINT_REQUESTS.labels(uri=uri, status="error").inc()
            log.warning("GET %s failed: %s", uri, e)
            return ProbeError(uri, e)

        body = resp.text.strip()
        ENDPOINT_REQUESTS.labels(uri=uri, status=str(resp.status_code)).inc()
        ENDPOINT_RESPONSE_BYTES.labels(uri=uri).observe(len(body))
        log.info("GET %s (status:%d, length %d)", uri, resp.status_code, len(body))
        return ProbeResponse(uri, resp.status_code, body)
