# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Applies an incoming completion result to a report row."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from polaris.core.constants import ResearchStatus, WebhookStatus, WebhookType
from polaris.models.report import ReportMetadata, ReportRecord, merge_metadata
from polaris.models.webhook import CompletionPayload
from polaris.storage.repositories.reports import ReportRepository

logger = logging.getLogger("polaris.webhooks.updater")


def build_metadata(
    existing: ReportRecord,
    payload: CompletionPayload,
    webhook_type: WebhookType,
    *,
    now: str | None = None,
) -> ReportMetadata:
    """Merge stored metadata, the delivery's metadata, and protocol bookkeeping.

    Layers, lowest precedence first: the row's ``research_metadata``, the
    payload's ``research_metadata``, the payload's ``final_data``, then the
    bookkeeping keys.
    """
    now = now or datetime.now(UTC).isoformat(timespec="microseconds")
    status = payload.research_status or ResearchStatus.COMPLETED

    metadata = merge_metadata(
        existing.research_metadata,
        payload.research_metadata,
        payload.final_data,
        {
            "webhook_updated": True,
            "webhook_timestamp": now,
            "webhook_type": str(webhook_type),
            "job_id": payload.job_id,
        },
    )
    if payload.error:
        metadata.error = payload.error
    if webhook_type == WebhookType.FINAL_REPORT and status == ResearchStatus.COMPLETED:
        metadata.final_completion = now
        metadata.processing_stage = "final"
    return metadata


def delivery_status(payload: CompletionPayload) -> WebhookStatus:
    """Delivery outcome: failed only when the job runner reported an error."""
    return WebhookStatus.FAILED if payload.error else WebhookStatus.SUCCESS


class ReportStateUpdater:
    """Two-step write of a delivered result.

    :meth:`apply_result` writes content, status, and metadata;
    :meth:`record_delivery` then updates the webhook bookkeeping in a
    separate call.  The two are not one transaction: a crash between them
    leaves the content written and the attempt counter unchanged.
    """

    def __init__(self, repo: ReportRepository) -> None:
        self._repo = repo

    async def apply_result(
        self,
        table: str,
        existing: ReportRecord,
        payload: CompletionPayload,
        webhook_type: WebhookType,
    ) -> ReportRecord | None:
        """Write the result; None when the row was delivered concurrently."""
        metadata = build_metadata(existing, payload, webhook_type)
        updated = await self._repo.apply_result(
            table,
            existing.id,
            research_report=payload.research_report or "",
            research_status=payload.research_status or ResearchStatus.COMPLETED,
            research_metadata=metadata.to_dict(),
            webhook_status=delivery_status(payload),
            webhook_job_id=payload.job_id,
        )
        if updated is None:
            logger.info(
                "Report %s/%s was delivered concurrently; skipping update",
                table,
                existing.id,
            )
        return updated

    async def record_delivery(
        self,
        table: str,
        report_id: str,
        status: WebhookStatus,
        response_data: dict[str, Any],
    ) -> None:
        await self._repo.update_webhook_status(
            table, report_id, status, response_data, increment_attempts=True
        )
