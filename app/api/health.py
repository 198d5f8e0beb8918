"""Health and readiness endpoints, one pair per service.

  /health (liveness):  the process answers.  Always 200 so an
    orchestrator never restarts a service just because its peer is down.

  /ready (readiness):  the store or cache has been loaded from its
    snapshot.  503 until then, so no traffic arrives before startup
    has finished reading state.

Both services expose the same shape, so the router is built by a
factory that takes the service name and a readiness probe.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Response, status

from app.core.config import SERVICE_VERSION
from app.models.credential import utc_timestamp


def build_health_router(service_name: str, is_ready: Callable[[], bool]) -> APIRouter:
    router = APIRouter(tags=["health"])

    @router.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "service": service_name,
            "timestamp": utc_timestamp(),
            "version": SERVICE_VERSION,
        }

    @router.get("/ready")
    async def ready() -> Response:
        if is_ready():
            return Response(status_code=status.HTTP_200_OK)
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    return router
