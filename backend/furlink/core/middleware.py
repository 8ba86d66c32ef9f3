"""Request middleware: timing, correlation IDs, metrics."""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from furlink.core.metrics import MetricsCollector

logger = logging.getLogger(__name__)

_QUIET_PREFIXES = ("/docs", "/redoc", "/openapi", "/favicon", "/health")


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Time every request, tag it with X-Request-ID, feed the collector."""

    def __init__(self, app: ASGIApp, collector: MetricsCollector, slow_request_ms: float = 5000.0):
        super().__init__(app)
        self.collector = collector
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:16])
        path = request.url.path
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            self.collector.record(request.method, path, 500, duration_ms)
            logger.exception("%s %s -> 500 (%.1fms) [%s]", request.method, path, duration_ms, request_id)
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        self.collector.record(request.method, path, response.status_code, duration_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms:.1f}ms"

        if duration_ms > self.slow_request_ms:
            logger.warning("Slow request %s %s (%.1fms) [%s]", request.method, path, duration_ms, request_id)
        elif not path.startswith(_QUIET_PREFIXES):
            level = logging.WARNING if response.status_code >= 400 else logging.INFO
            logger.log(
                level,
                "%s %s -> %d (%.1fms) [%s]",
                request.method, path, response.status_code, duration_ms, request_id,
            )
        return response
