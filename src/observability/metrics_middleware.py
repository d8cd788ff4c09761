"""
FastAPI middleware for automatic Prometheus metrics collection.

Tracks request counts by endpoint, method and status code, request
latency, and requests in progress.
"""

import logging
import re
import time
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.observability.metrics import (
    http_requests_total,
    http_request_duration_seconds,
    http_requests_in_progress,
)

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")


def normalize_path(path: str) -> str:
    """
    Collapse IDs in a request path to keep label cardinality bounded.

    /api/v1/users/<uuid>/xp -> /api/v1/users/{uuid}/xp
    /api/v1/levels/450 -> /api/v1/levels/{id}
    """
    if path in ("/metrics", "/api/health", "/"):
        return path

    parts = []
    for part in path.strip("/").split("/"):
        if part.isdigit():
            parts.append("{id}")
        elif _UUID_RE.match(part):
            parts.append("{uuid}")
        else:
            parts.append(part)

    return "/" + "/".join(parts)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        path = normalize_path(request.url.path)

        http_requests_in_progress.labels(method=method, endpoint=path).inc()
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            http_requests_in_progress.labels(method=method, endpoint=path).dec()
            http_requests_total.labels(method=method, endpoint=path, status=status_code).inc()
            http_request_duration_seconds.labels(method=method, endpoint=path).observe(
                time.perf_counter() - start_time
            )
