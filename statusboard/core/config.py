"""Configuration for the Status Board service.

Provides strongly-typed settings using Pydantic, a loader from environment
variables with defaults suitable for local development, and the loader for
the monitored endpoint list.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, PositiveFloat, PositiveInt, ValidationError

from statusboard.models.schemas import ResultKind

log = logging.getLogger("config")


class EndpointConfig(BaseModel):
    """One monitored service: base url plus per-kind path, interval and threshold.

    A blank path disables that kind. Thresholds are carried for operators but
    are not consulted when reporting status.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    key: str
    url: Optional[str] = None

    health_url: Optional[str] = "/healthz"
    health_interval: PositiveFloat = 15.0  # seconds
    health_threshold: int = 2

    readiness_url: Optional[str] = "/healthz/ready"
    readiness_interval: PositiveFloat = 10.0
    readiness_threshold: int = 3

    liveness_url: Optional[str] = "/healthz/live"
    liveness_interval: PositiveFloat = 30.0
    liveness_threshold: int = 2

    metrics_url: Optional[str] = "/metrics"
    metrics_interval: PositiveFloat = 30.0
    metrics_threshold: int = 1

    def path_for(self, kind: ResultKind) -> Optional[str]:
        return getattr(self, f"{kind.value}_url")

    def interval_for(self, kind: ResultKind) -> float:
        return getattr(self, f"{kind.value}_interval")

    def threshold_for(self, kind: ResultKind) -> int:
        return getattr(self, f"{kind.value}_threshold")


class Settings(BaseModel):
    """Pydantic settings for the Status Board service."""
    endpoints_file: str = "endpoints.json"
    request_timeout_s: PositiveFloat = 10.0
    max_concurrency: PositiveInt = os.cpu_count() or 1
    sse_queue_size: PositiveInt = 50


def load_settings() -> Settings:
    """Load settings from environment variables and return a Settings object."""
    try:
        return Settings(
            endpoints_file=os.getenv("ENDPOINTS_FILE", "endpoints.json"),
            request_timeout_s=float(os.getenv("REQUEST_TIMEOUT_S", "10.0")),
            max_concurrency=int(os.getenv("MAX_CONCURRENCY", str(os.cpu_count() or 1))),
            sse_queue_size=int(os.getenv("SSE_QUEUE_SIZE", "50")),
        )
    except (ValidationError, ValueError) as e:
        raise RuntimeError(f"Invalid configuration: {e}") from e


def _natural_key(key: str) -> list[Any]:
    """Sort key that orders embedded numbers numerically ('svc2' < 'svc10')."""
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", key)]


def _reject_duplicates(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in pairs:
        if k in out:
            raise ValueError(f"duplicate key '{k}'")
        out[k] = v
    return out


def parse_endpoints(raw: Any) -> list[EndpointConfig]:
    """
    Parse the ``endpoints`` member of a configuration document.

    Accepts either:
      - {"orders": {"url": "http://orders:8080", ...}, ...}   (key -> config)
      - [{"key": "orders", "url": "http://orders:8080", ...}, ...]
    Returns configs sorted by key in natural order. Duplicate keys raise
    ValueError.
    """
    if raw is None:
        return []
    if isinstance(raw, dict):
        items = []
        for key, cfg in raw.items():
            if cfg is None:
                cfg = {}
            if not isinstance(cfg, dict):
                raise ValueError(f"endpoint '{key}' must be an object, got {type(cfg).__name__}")
            items.append({**cfg, "key": key})
    elif isinstance(raw, list):
        items = raw
    else:
        raise ValueError("'endpoints' must be a mapping or a list")

    endpoints = [EndpointConfig.model_validate(item) for item in items]
    seen: set[str] = set()
    for ep in endpoints:
        if not ep.key.strip():
            raise ValueError("endpoint key must not be empty")
        if ep.key in seen:
            raise ValueError(f"duplicate endpoint key '{ep.key}'")
        seen.add(ep.key)
    return sorted(endpoints, key=lambda ep: _natural_key(ep.key))


def load_endpoints(path: str | Path) -> list[EndpointConfig]:
    """Load the monitored endpoint list from a JSON file."""
    path = Path(path)
    if not path.exists():
        log.warning("Endpoints file not found: %s", path)
        return []
    try:
        doc = json.loads(path.read_text(encoding="utf-8"), object_pairs_hook=_reject_duplicates)
        endpoints = parse_endpoints(doc.get("endpoints") if isinstance(doc, dict) else doc)
    except (ValidationError, ValueError) as e:
        raise RuntimeError(f"Invalid configuration: {e}") from e
    log.info("Loaded %d endpoints from %s", len(endpoints), path)
    return endpoints
