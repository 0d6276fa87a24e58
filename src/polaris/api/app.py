# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from polaris import __version__
from polaris.api.middleware import RequestMiddleware
from polaris.api.routes import audit, health, reports, retry, webhooks
from polaris.core.config import Settings, get_settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    from polaris.storage.database import close_db, get_db, init_db

    settings: Settings = app.state.settings
    await init_db(settings.db_path, auto_migrate=settings.auto_migrate)

    # Background sweep, unless disabled by the factory or by configuration
    sweep_scheduler = None
    if app.state.enable_scheduler and settings.sweep_interval_seconds > 0:
        from polaris.delivery.client import DeliveryClient
        from polaris.retry.service import RetryService
        from polaris.scheduler.engine import SweepScheduler
        from polaris.storage.repositories.reports import ReportRepository

        db = await get_db()
        service = RetryService(settings, ReportRepository(db), DeliveryClient(settings))
        sweep_scheduler = SweepScheduler(service, interval=settings.sweep_interval_seconds)
        await sweep_scheduler.start()

    yield

    if sweep_scheduler is not None:
        await sweep_scheduler.stop()
    await close_db()


def create_app(
    settings: Settings | None = None,
    *,
    enable_scheduler: bool = True,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="polaris",
        description="Report-completion webhooks for the Polaris job runner",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.settings = settings
    app.state.enable_scheduler = enable_scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(webhooks.router, prefix="/api", tags=["webhooks"])
    app.include_router(retry.router, prefix="/api", tags=["retry"])
    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(audit.router, prefix="/api/v1", tags=["audit"])
    app.include_router(reports.router, prefix="/api/v1", tags=["reports"])
    app.add_middleware(RequestMiddleware)

    return app


def _create_app_from_env() -> FastAPI:
    """Factory wrapper for ``uvicorn --factory`` that reads POLARIS_NO_SCHEDULER."""
    import os

    from polaris.core.logging import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)

    enable_scheduler = os.environ.get("POLARIS_NO_SCHEDULER", "") != "1"
    return create_app(settings, enable_scheduler=enable_scheduler)
