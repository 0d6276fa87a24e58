# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Liveness and readiness probes for the webhook service."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from polaris import __version__
from polaris.api.deps import get_app_settings
from polaris.core.config import Settings
from polaris.storage.database import ping

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


class ReadyResponse(BaseModel):
    status: str
    database: str
    webhook_secret: str
    background_sweep: bool


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", service="polaris", version=__version__)


@router.get("/ready", response_model=ReadyResponse)
async def ready(settings: Settings = Depends(get_app_settings)) -> ReadyResponse:
    """Ready only when deliveries can be verified and written.

    Without a webhook secret every inbound endpoint answers 500, so the
    service reports ``not_ready`` even if the database is reachable.
    """
    database = await ping()
    secret = "configured" if settings.webhook_secret else "missing"
    ok = database == "connected" and settings.webhook_secret
    return ReadyResponse(
        status="ready" if ok else "not_ready",
        database=database,
        webhook_secret=secret,
        background_sweep=settings.sweep_interval_seconds > 0,
    )
