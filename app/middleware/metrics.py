"""Prometheus metrics middleware: instruments every HTTP request.

Counts requests, observes their duration and tracks in-flight requests,
each labelled with the service the app belongs to.  The URL path is the
endpoint label; /credential/{id} therefore produces one series per id,
which is acceptable at this service's volume but worth collapsing to the
route template before it sees real traffic.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from app.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    def __init__(self, app: ASGIApp, service: str) -> None:
        super().__init__(app)
        self._service = service

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Prometheus scrapes would otherwise dominate the request count
        if request.url.path == "/metrics":
            return await call_next(request)

        in_flight = ACTIVE_REQUESTS.labels(service=self._service)
        in_flight.inc()
        start = time.monotonic()
        status_code: str | None = None

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        except Exception:
            status_code = "500"
            raise
        finally:
            duration = time.monotonic() - start
            in_flight.dec()
            REQUEST_COUNT.labels(
                service=self._service,
                method=request.method,
                endpoint=request.url.path,
                status_code=status_code if status_code is not None else "500",
            ).inc()
            REQUEST_DURATION.labels(
                service=self._service,
                method=request.method,
                endpoint=request.url.path,
            ).observe(duration)

        return response
