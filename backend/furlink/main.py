"""FurLink emergency alert FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from furlink.api import alerts, health, metrics
from furlink.core.config import settings
from furlink.core.errors import register_error_handlers
from furlink.core.metrics import MetricsCollector
from furlink.core.middleware import RequestMetricsMiddleware
from furlink.db.session import init_db

logging.basicConfig(
    level=logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        init_db()
    logger.info(
        "%s %s starting on %s (%s)",
        settings.app_name, settings.app_version, settings.deploy_platform, settings.base_url,
    )
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.metrics = MetricsCollector(history_size=settings.metrics_history_size)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RequestMetricsMiddleware,
        collector=app.state.metrics,
        slow_request_ms=settings.slow_request_ms,
    )
    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(alerts.router)
    return app


app = create_app()
