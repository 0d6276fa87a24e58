# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Operator endpoints over the webhook audit trail and delivery statistics."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from polaris.api.auth import require_api_key
from polaris.api.deps import get_report_repository
from polaris.audit.store import WebhookAuditStore
from polaris.storage.database import get_db
from polaris.storage.repositories.reports import ReportRepository

router = APIRouter()


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class WebhookAuditResponse(BaseModel):
    id: str
    webhook_type: str
    job_id: str
    report_id: str | None = None
    report_table: str | None = None
    request_payload: Any = None
    response_status: int | None = None
    response_body: Any = None
    error_message: str | None = None
    attempt_number: int
    created_at: str


class WebhookAuditListResponse(BaseModel):
    total: int
    records: list[WebhookAuditResponse]


class WebhookStatsResponse(BaseModel):
    greeting: dict[str, int]
    org: dict[str, int]
    requirement: dict[str, int]


async def _get_store() -> WebhookAuditStore:
    return WebhookAuditStore(await get_db())


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/webhooks/audit", response_model=WebhookAuditListResponse)
async def list_webhook_audit(
    job_id: str | None = None,
    report_id: str | None = None,
    webhook_type: str | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _api_key: str = Depends(require_api_key),
    store: WebhookAuditStore = Depends(_get_store),
) -> WebhookAuditListResponse:
    """List audit rows newest first, optionally filtered by job or report."""
    rows = await store.list_records(
        job_id=job_id,
        report_id=report_id,
        webhook_type=webhook_type,
        limit=limit,
        offset=offset,
    )
    total = await store.count(job_id=job_id, report_id=report_id, webhook_type=webhook_type)
    return WebhookAuditListResponse(
        total=total,
        records=[WebhookAuditResponse(**row) for row in rows],
    )


@router.get("/webhooks/stats", response_model=WebhookStatsResponse)
async def webhook_stats(
    _api_key: str = Depends(require_api_key),
    repo: ReportRepository = Depends(get_report_repository),
) -> WebhookStatsResponse:
    """Per report type counts of success, failed, pending, and retrying rows."""
    return WebhookStatsResponse(**await repo.statistics())
