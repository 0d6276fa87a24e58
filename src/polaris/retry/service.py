# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Replays failed webhook deliveries from the stored report rows."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from polaris.core.config import Settings
from polaris.core.constants import MAX_WEBHOOK_ATTEMPTS, ResearchStatus, WebhookStatus, WebhookType
from polaris.delivery.client import DeliveryClient
from polaris.models.report import ReportRecord
from polaris.models.webhook import RetryResult, SweepResult
from polaris.storage.repositories.reports import ReportRepository

logger = logging.getLogger("polaris.retry")

RETRY_REFUSED = "Retry not allowed (max attempts reached or no job ID)"


def build_retry_payload(table: str, record: ReportRecord) -> dict[str, Any]:
    """Reconstruct a completion payload from what is stored on the row.

    The original delivery body is not kept, so the replay carries the
    current content, status, and metadata.
    """
    return {
        "job_id": record.webhook_job_id,
        "report_id": record.id,
        "report_type": table.removesuffix("_reports"),
        "research_report": record.content,
        "research_status": str(record.research_status or ResearchStatus.COMPLETED),
        "research_metadata": record.research_metadata,
        "retry_attempt": True,
    }


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


class RetryService:
    """Targeted retry of one report and the sequential failed-webhook sweep."""

    def __init__(
        self,
        settings: Settings,
        repo: ReportRepository,
        delivery: DeliveryClient,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._repo = repo
        self._delivery = delivery
        self._sleep = sleep

    async def retry(
        self,
        table: str,
        report_id: str,
        webhook_type: WebhookType = WebhookType.PRELIM_REPORT,
    ) -> RetryResult:
        """Replay one report's webhook.

        Refusals (no job id, or the attempt ceiling reached) come back as an
        unsuccessful result; nothing is sent and nothing is written.
        """
        if not self._settings.webhook_secret:
            return RetryResult(success=False, error="Configuration missing")

        try:
            record = await self._repo.get(table, report_id)
            if record is None:
                return RetryResult(success=False, error=f"Report not found: {table}/{report_id}")

            if not record.webhook_job_id or record.webhook_attempts >= MAX_WEBHOOK_ATTEMPTS:
                logger.info(
                    "Refusing retry for %s:%s (attempts=%d, job_id=%s)",
                    table,
                    report_id,
                    record.webhook_attempts,
                    record.webhook_job_id,
                )
                return RetryResult(success=False, error=RETRY_REFUSED)

            url = self._delivery.url_for(webhook_type)
            logger.info("Retrying webhook for %s:%s -> %s", table, report_id, url)
            response = await self._delivery.deliver(url, build_retry_payload(table, record))

            if not response.ok:
                upstream = response.body.get("error") if isinstance(response.body, dict) else None
                await self._repo.update_webhook_status(
                    table,
                    report_id,
                    WebhookStatus.FAILED,
                    {
                        "error": upstream or f"HTTP {response.status_code}",
                        "retry_failed": True,
                        "failed_at": _now(),
                    },
                    increment_attempts=True,
                )
                return RetryResult(
                    success=False,
                    error=f"Webhook failed: HTTP {response.status_code}",
                    response=response.body,
                )

            await self._repo.update_webhook_status(
                table,
                report_id,
                WebhookStatus.SUCCESS,
                {"message": "Retry successful", "retry_completed": True, "completed_at": _now()},
                increment_attempts=True,
            )
            logger.info("Webhook retry succeeded for %s:%s", table, report_id)
            return RetryResult(success=True, response=response.body)

        except Exception as exc:
            error = str(exc) or "Retry failed"
            logger.error("Webhook retry error for %s:%s: %s", table, report_id, error)
            await self._record_failure(table, report_id, error)
            return RetryResult(success=False, error=error)

    async def _record_failure(self, table: str, report_id: str, error: str) -> None:
        try:
            await self._repo.update_webhook_status(
                table,
                report_id,
                WebhookStatus.FAILED,
                {"error": error, "retry_failed": True, "failed_at": _now()},
                increment_attempts=True,
            )
        except Exception:
            logger.exception("Failed to record retry failure for %s:%s", table, report_id)

    async def sweep_failed(
        self,
        max_attempts: int | None = None,
        retry_after_minutes: int | None = None,
    ) -> SweepResult:
        """Retry every eligible failed webhook, one at a time.

        Items are processed sequentially with ``sweep_delay_ms`` between
        them.  A failing item is counted and recorded in ``errors``; it never
        stops the sweep.
        """
        if max_attempts is None:
            max_attempts = self._settings.retry_max_attempts
        if retry_after_minutes is None:
            retry_after_minutes = self._settings.retry_after_minutes

        result = SweepResult()
        try:
            candidates = await self._repo.get_failed_webhooks(max_attempts, retry_after_minutes)
        except Exception as exc:
            logger.exception("Failed to query failed webhooks")
            result.errors.append(f"Failed to fetch failed webhooks: {exc}")
            return result

        result.processed = len(candidates)
        delay = self._settings.sweep_delay_ms / 1000

        for index, candidate in enumerate(candidates):
            if index:
                await self._sleep(delay)
            label = f"{candidate.table_name}:{candidate.record_id}"
            try:
                outcome = await self.retry(candidate.table_name, candidate.record_id)
            except Exception as exc:
                result.failures += 1
                result.errors.append(f"{label} - {exc}")
                continue

            if outcome.success:
                result.successes += 1
            else:
                result.failures += 1
                result.errors.append(f"{label} - {outcome.error}")

        logger.info(
            "Webhook sweep finished: processed=%d successes=%d failures=%d",
            result.processed,
            result.successes,
            result.failures,
        )
        return result
