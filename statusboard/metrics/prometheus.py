from fastapi import APIRouter, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

metrics_router = APIRouter()

# Standalone registry so tests and the exposition endpoint see only our series
METRICS_REGISTRY = CollectorRegistry()
ProcessCollector(registry=METRICS_REGISTRY)
PlatformCollector(registry=METRICS_REGISTRY)

ENDPOINT_REQUESTS = Counter(
    "statusboard_endpoint_requests_total",
    "GET requests issued against monitored endpoints",
    ["uri", "status"],
    registry=METRICS_REGISTRY,
)
ENDPOINT_RESPONSE_BYTES = Histogram(
    "statusboard_endpoint_response_bytes",
    "Trimmed body length of monitored endpoint responses",
    ["uri"],
    buckets=(64, 256, 1024, 4096, 16384, 65536, 262144),
    registry=METRICS_REGISTRY,
)
SCRAPES = Counter(
    "statusboard_scrapes_total",
    "Classified results per endpoint and check kind",
    ["kind", "key", "url"],
    registry=METRICS_REGISTRY,
)


@metrics_router.get("/metrics")
async def metrics():
    data = generate_latest(METRICS_REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
