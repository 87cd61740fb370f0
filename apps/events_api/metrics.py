from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Single registry used by the events app
REG = CollectorRegistry(auto_describe=True)

# HTTP request metrics (middleware-owned)
REQS = Counter(
    "eventhub_http_requests_total",
    "events api requests",
    ["path", "method", "backend"],
    registry=REG,
)
LAT = Histogram(
    "eventhub_http_request_seconds",
    "events api latency",
    ["path", "method"],
    registry=REG,
)

__all__ = ["CONTENT_TYPE_LATEST", "REG", "REQS", "LAT", "generate_latest"]
