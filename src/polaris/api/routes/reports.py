# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Operator endpoint for one report's webhook bookkeeping."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from polaris.api.auth import require_api_key
from polaris.api.deps import get_report_repository
from polaris.core.exceptions import UnknownReportTypeError
from polaris.storage.repositories.reports import ReportRepository
from polaris.webhooks.validation import resolve_report_table

router = APIRouter()


class ReportWebhookStatusResponse(BaseModel):
    report_id: str
    report_table: str
    research_status: str
    webhook_status: str | None = None
    webhook_attempts: int = 0
    webhook_last_attempt: str | None = None
    webhook_job_id: str | None = None
    webhook_response: dict[str, Any] = Field(default_factory=dict)


@router.get(
    "/reports/{report_type}/{report_id}/webhook",
    response_model=ReportWebhookStatusResponse,
)
async def report_webhook_status(
    report_type: str,
    report_id: str,
    _api_key: str = Depends(require_api_key),
    repo: ReportRepository = Depends(get_report_repository),
) -> ReportWebhookStatusResponse:
    try:
        table = resolve_report_table(report_type)
    except UnknownReportTypeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    status = await repo.webhook_status(table, report_id)
    if status is None:
        raise HTTPException(status_code=404, detail=f"Report {report_id} not found")

    return ReportWebhookStatusResponse(
        report_id=status["id"],
        report_table=table,
        research_status=status["research_status"],
        webhook_status=status.get("webhook_status"),
        webhook_attempts=status.get("webhook_attempts") or 0,
        webhook_last_attempt=status.get("webhook_last_attempt"),
        webhook_job_id=status.get("webhook_job_id"),
        webhook_response=status.get("webhook_response") or {},
    )
