from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

from deeplore.app.settings import settings

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
RETRIEVAL_COUNT = Counter(
    "deeplore_retrievals_total",
    "Lore retrieval requests by outcome",
    ["outcome"],
)
INDEX_REBUILD_COUNT = Counter(
    "deeplore_index_rebuilds_total",
    "Forced index refreshes by status",
    ["status"],
)


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled:
        return await call_next(request)
    path = request.url.path
    if path == "/metrics":
        return await call_next(request)
    start = time.monotonic()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        duration = time.monotonic() - start
        REQUEST_COUNT.labels(request.method, path, str(status)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(duration)


def record_retrieval(outcome: str) -> None:
    if settings.metrics_enabled:
        RETRIEVAL_COUNT.labels(outcome).inc()


def record_refresh(status: str) -> None:
    if settings.metrics_enabled:
        INDEX_REBUILD_COUNT.labels(status).inc()


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
