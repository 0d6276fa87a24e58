# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Inbound webhook endpoints called by the report-generation job runner."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse, Response

from polaris.api.deps import (
    get_final_processor,
    get_prelim_processor,
    get_questionnaire_processor,
)
from polaris.core.constants import SIGNATURE_HEADER
from polaris.webhooks.processor import (
    QuestionnaireWebhookProcessor,
    ReportWebhookProcessor,
    WebhookOutcome,
)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": f"Content-Type, Authorization, {SIGNATURE_HEADER}",
}


def _to_response(outcome: WebhookOutcome) -> JSONResponse:
    return JSONResponse(
        content=outcome.body,
        status_code=outcome.status_code,
        headers={"Access-Control-Allow-Origin": "*"},
    )


@router.options("/webhooks/prelim-report", include_in_schema=False)
@router.options("/webhooks/final-report", include_in_schema=False)
@router.options("/webhooks/dynamic-questionnaire", include_in_schema=False)
async def preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/webhooks/prelim-report")
async def prelim_report_webhook(
    request: Request,
    signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
    processor: ReportWebhookProcessor = Depends(get_prelim_processor),
) -> JSONResponse:
    """Apply a preliminary report result delivered by the job runner."""
    outcome = await processor.handle(await request.body(), signature)
    return _to_response(outcome)


@router.post("/webhooks/final-report")
async def final_report_webhook(
    request: Request,
    signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
    processor: ReportWebhookProcessor = Depends(get_final_processor),
) -> JSONResponse:
    """Apply a final report result delivered by the job runner."""
    outcome = await processor.handle(await request.body(), signature)
    return _to_response(outcome)


@router.post("/webhooks/dynamic-questionnaire")
async def dynamic_questionnaire_webhook(
    request: Request,
    signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
    processor: QuestionnaireWebhookProcessor = Depends(get_questionnaire_processor),
) -> JSONResponse:
    """Store a generated dynamic questionnaire on its summary."""
    outcome = await processor.handle(await request.body(), signature)
    return _to_response(outcome)
