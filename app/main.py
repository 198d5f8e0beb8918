"""ASGI entrypoints for the two services.

    uvicorn app.main:issuance_app      --port 3001
    uvicorn app.main:verification_app  --port 3002

They share this module only for wiring; at runtime each process serves
one app and touches only its own store or cache.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import dependencies
from app.api.admin import router as admin_router
from app.api.errors import install_error_handlers
from app.api.health import build_health_router
from app.api.issuance import router as issuance_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.verification import router as verification_router
from app.core.config import SERVICE_VERSION, SETTINGS
from app.core.logging import setup_logging
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def issuance_lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # An unwritable snapshot raises here and the process never starts serving
    store = dependencies.get_credential_store()
    await store.initialize()
    logger.info(
        "credential-issuance ready  store=%s replicating_to=%s",
        store.path,
        dependencies.get_replication_channel().sync_url,
    )
    yield
    logger.info("credential-issuance shutting down")


@asynccontextmanager
async def verification_lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    cache = dependencies.get_verification_cache()
    await cache.initialize()
    logger.info("credential-verification ready  cache=%s", cache.path)
    yield
    logger.info("credential-verification shutting down")


def _build_app(
    *,
    service: str,
    lifespan: Any,
    routers: Sequence[APIRouter],
) -> FastAPI:
    app = FastAPI(
        title=f"credential-{service}",
        version=SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if SETTINGS.is_dev else None,
        redoc_url="/redoc" if SETTINGS.is_dev else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(SETTINGS.allowed_origins),
        allow_origin_regex=SETTINGS.allowed_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middleware execution order: last-added runs first (outermost layer).
    # RequestContext (outermost), then Metrics, then CORS, then the route
    app.add_middleware(MetricsMiddleware, service=service)
    app.add_middleware(RequestContextMiddleware)

    install_error_handlers(app)

    app.include_router(metrics_router)
    for router in routers:
        app.include_router(router)
    return app


issuance_app = _build_app(
    service="issuance",
    lifespan=issuance_lifespan,
    routers=[
        build_health_router(
            "credential-issuance",
            lambda: dependencies.get_credential_store().is_initialized,
        ),
        issuance_router,
        admin_router,
    ],
)

verification_app = _build_app(
    service="verification",
    lifespan=verification_lifespan,
    routers=[
        build_health_router(
            "credential-verification",
            lambda: dependencies.get_verification_cache().is_initialized,
        ),
        verification_router,
    ],
)

logger.debug(
    "apps built  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
