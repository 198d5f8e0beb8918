"""Prometheus scrape endpoint, mounted on both services.

Returns the text exposition format, not JSON.  When both apps share a
process they share the default registry, so either /metrics shows both;
the `service` label tells them apart.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
