import httpx
import pytest

from statusboard.metrics.prometheus import METRICS_REGISTRY
from statusboard.services.probe import HttpProbeClient, ProbeError, ProbeResponse


def _count(uri: str, status: str) -> float:
    return METRICS_REGISTRY.get_sample_value(
        "statusboard_endpoint_requests_total", {"uri": uri, "status": status}
    ) or 0.0


@pytest.mark.anyio
async def test_fetch_trims_body_and_counts():
    uri = "http://probe-test.local/healthz"

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        return httpx.Response(200, text="  Healthy \n")

    before = _count(uri, "200")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        out = await HttpProbeClient(client).fetch(uri)

    assert isinstance(out, ProbeResponse)
    assert out.ok
    assert out.body == "Healthy"
    assert _count(uri, "200") == before + 1
    assert METRICS_REGISTRY.get_sample_value(
        "statusboard_endpoint_response_bytes_sum", {"uri": uri}
    ) >= len("Healthy")


@pytest.mark.anyio
async def test_non_2xx_is_a_response_not_an_error():
    uri = "http://probe-test.local/ready"
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(503, text="Degraded"))
    ) as client:
        out = await HttpProbeClient(client).fetch(uri)

    assert isinstance(out, ProbeResponse)
    assert not out.ok
    assert out.status_code == 503
    assert out.body == "Degraded"


@pytest.mark.anyio
async def test_transport_failure_is_returned_not_raised():
    uri = "http://unreachable.local/healthz"

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    calls = []

    def counting(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request)

    before = _count(uri, "error")
    async with httpx.AsyncClient(transport=httpx.MockTransport(counting)) as client:
        out = await HttpProbeClient(client).fetch(uri)

    assert isinstance(out, ProbeError)
    assert isinstance(out.error, httpx.ConnectError)
    assert out.message == "Connection refused"
    assert len(calls) == 1  # no retries
    assert _count(uri, "error") == before + 1

