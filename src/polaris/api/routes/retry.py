# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Retry control endpoint: targeted retry (POST) and failed-webhook sweep (GET)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from polaris.api.deps import get_retry_service
from polaris.api.routes.webhooks import CORS_HEADERS
from polaris.core.constants import WebhookType
from polaris.core.exceptions import ValidationError
from polaris.retry.service import RetryService
from polaris.webhooks.validation import parse_body, resolve_report_table

logger = logging.getLogger("polaris.api.retry")

router = APIRouter()

_ALLOW_ORIGIN = {"Access-Control-Allow-Origin": "*"}


@router.options("/webhooks/retry", include_in_schema=False)
async def retry_preflight() -> Response:
    return Response(
        status_code=200,
        headers={**CORS_HEADERS, "Access-Control-Allow-Methods": "GET, POST, OPTIONS"},
    )


@router.post("/webhooks/retry")
async def retry_webhook(
    request: Request,
    service: RetryService = Depends(get_retry_service),
) -> JSONResponse:
    """Replay the webhook of one report.

    Refusals (attempt ceiling, missing job id, unknown report) answer 400
    with ``success: false``.
    """
    try:
        data = parse_body(await request.body())
        if not data.get("report_type") or not data.get("report_id"):
            raise ValidationError("Missing required fields: report_type, report_id")
        table = resolve_report_table(data["report_type"])
        webhook_type = WebhookType(data.get("webhook_type") or WebhookType.PRELIM_REPORT)
        # Only report webhooks can be rebuilt from a report row.
        if webhook_type == WebhookType.DYNAMIC_QUESTIONNAIRE:
            raise ValueError(webhook_type)
    except ValueError:
        return JSONResponse(
            {"error": f"Invalid webhook_type: {data.get('webhook_type')}"},
            status_code=400,
            headers=_ALLOW_ORIGIN,
        )
    except ValidationError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400, headers=_ALLOW_ORIGIN)

    try:
        result = await service.retry(table, str(data["report_id"]), webhook_type)
    except Exception as exc:
        logger.exception("Webhook retry API error")
        return JSONResponse({"error": str(exc)}, status_code=500, headers=_ALLOW_ORIGIN)

    if result.success:
        return JSONResponse(
            {
                "success": True,
                "message": "Webhook retry completed successfully",
                "response": result.response,
            },
            headers=_ALLOW_ORIGIN,
        )
    return JSONResponse(
        {"success": False, "error": result.error, "response": result.response},
        status_code=400,
        headers=_ALLOW_ORIGIN,
    )


@router.get("/webhooks/retry")
async def sweep_failed_webhooks(
    service: RetryService = Depends(get_retry_service),
) -> JSONResponse:
    """Retry every eligible failed webhook; 200 even when there is nothing to do."""
    try:
        result = await service.sweep_failed()
    except Exception as exc:
        logger.exception("Webhook batch retry error")
        return JSONResponse({"error": str(exc)}, status_code=500, headers=_ALLOW_ORIGIN)

    return JSONResponse(
        {
            "success": True,
            "message": "Webhook retry batch completed",
            **result.model_dump(),
        },
        headers=_ALLOW_ORIGIN,
    )
