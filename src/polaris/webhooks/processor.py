# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Request pipelines for the inbound webhook endpoints.

Each processor takes the raw body and signature header of one request and
returns the HTTP status and JSON body to answer with.  Every request writes
exactly one audit row, whatever the outcome.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from polaris.audit.logger import WebhookAuditLogger
from polaris.core.config import Settings
from polaris.core.constants import SUMMARIES_TABLE, ResearchStatus, WebhookStatus, WebhookType
from polaris.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    PolarisError,
    ValidationError,
)
from polaris.models.report import ReportRecord
from polaris.models.webhook import CompletionPayload
from polaris.storage.repositories.reports import ReportRepository
from polaris.storage.repositories.summaries import SummaryRepository
from polaris.webhooks.guard import attempt_number, should_short_circuit
from polaris.webhooks.signing import verify
from polaris.webhooks.updater import ReportStateUpdater, delivery_status
from polaris.webhooks.validation import parse_body, validate, validate_questionnaire

logger = logging.getLogger("polaris.webhooks")


@dataclass(slots=True)
class WebhookOutcome:
    """HTTP status and JSON body produced for one request."""

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


class _BaseProcessor:
    """Shared preamble: configuration check, JSON parsing, and signature check."""

    webhook_type: WebhookType
    # Body field recorded as the audit row's report_id
    _id_field = "report_id"

    def __init__(self, settings: Settings, audit: WebhookAuditLogger) -> None:
        self._settings = settings
        self._audit = audit

    async def _respond(
        self,
        status_code: int,
        body: dict[str, Any],
        *,
        job_id: str | None = None,
        report_id: str | None = None,
        report_table: str | None = None,
        payload: Any = None,
        error: str | None = None,
        attempt: int = 1,
    ) -> WebhookOutcome:
        await self._audit.record(
            self.webhook_type,
            job_id,
            report_id,
            report_table,
            payload,
            status_code,
            body,
            error_message=error,
            attempt_number=attempt,
        )
        return WebhookOutcome(status_code, body)

    async def _preamble(
        self, raw_body: bytes, signature: str | None
    ) -> dict[str, Any] | WebhookOutcome:
        """Return the decoded body, or the outcome that ends the request."""
        data: dict[str, Any] | None = None
        try:
            if not self._settings.webhook_secret:
                raise ConfigurationError("Webhook not properly configured")
            data = parse_body(raw_body)
            if not verify(raw_body, signature, self._settings.webhook_secret):
                raise AuthenticationError("Invalid webhook signature")
        except PolarisError as exc:
            status_code = _status_for(exc)
            if status_code >= 500:
                logger.error("%s webhook rejected: %s", self.webhook_type, exc)
            else:
                logger.warning("%s webhook rejected: %s", self.webhook_type, exc)
            payload = data if data is not None else raw_body.decode("utf-8", errors="replace")
            return await self._respond(
                status_code,
                {"error": str(exc)},
                job_id=_as_text(data.get("job_id")) if data else None,
                report_id=_as_text(data.get(self._id_field)) if data else None,
                payload=None if isinstance(exc, ConfigurationError) else payload,
                error=str(exc),
            )
        return data


# HTTP status per rejection type, most specific first
_STATUS_CODES: tuple[tuple[type[PolarisError], int], ...] = (
    (ConfigurationError, 500),
    (AuthenticationError, 401),
    (NotFoundError, 404),
    (ValidationError, 400),
)


def _status_for(exc: PolarisError) -> int:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def _as_text(value: object) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


# ---------------------------------------------------------------------------
# Preliminary and final report completion
# ---------------------------------------------------------------------------

_REPORT_MESSAGES: dict[WebhookType, tuple[str, str]] = {
    WebhookType.PRELIM_REPORT: (
        "Report updated successfully",
        "Webhook already processed successfully",
    ),
    WebhookType.FINAL_REPORT: (
        "Final report updated successfully",
        "Final webhook already processed successfully",
    ),
}


class ReportWebhookProcessor(_BaseProcessor):
    """Pipeline for the preliminary-report and final-report webhooks."""

    def __init__(
        self,
        settings: Settings,
        repo: ReportRepository,
        audit: WebhookAuditLogger,
        webhook_type: WebhookType = WebhookType.FINAL_REPORT,
    ) -> None:
        super().__init__(settings, audit)
        if webhook_type not in _REPORT_MESSAGES:
            raise ValueError(f"Not a report webhook type: {webhook_type}")
        self.webhook_type = webhook_type
        self._repo = repo
        self._updater = ReportStateUpdater(repo)

    @property
    def _is_final(self) -> bool:
        return self.webhook_type == WebhookType.FINAL_REPORT

    async def handle(self, raw_body: bytes, signature: str | None) -> WebhookOutcome:
        data = await self._preamble(raw_body, signature)
        if isinstance(data, WebhookOutcome):
            return data

        job_id = _as_text(data.get("job_id"))
        report_id = _as_text(data.get("report_id"))

        try:
            validated = validate(data)
        except ValidationError as exc:
            logger.warning("%s webhook for job %s rejected: %s", self.webhook_type, job_id, exc)
            return await self._respond(
                _status_for(exc),
                {"error": str(exc)},
                job_id=job_id,
                report_id=report_id,
                payload=data,
                error=str(exc),
            )

        payload = validated.payload
        table = validated.report_table
        existing: ReportRecord | None = None
        try:
            existing = await self._repo.get(table, payload.report_id)
            if existing is None:
                raise NotFoundError("Report not found")

            if should_short_circuit(existing):
                return await self._already_processed(existing, payload, table, data)

            updated = await self._updater.apply_result(table, existing, payload, self.webhook_type)
            if updated is None:
                return await self._already_processed(existing, payload, table, data)

            message, _ = _REPORT_MESSAGES[self.webhook_type]
            response_data: dict[str, Any] = {"message": message, "completed_at": _now()}
            if self._is_final:
                response_data["processing_stage"] = "final"
            await self._updater.record_delivery(
                table, payload.report_id, delivery_status(payload), response_data
            )

            body: dict[str, Any] = {
                "message": message,
                "report_id": payload.report_id,
                "job_id": payload.job_id,
                "report_type": payload.report_type,
                "status": str(payload.research_status or ResearchStatus.COMPLETED),
                "timestamp": _now(),
            }
            if self._is_final:
                body["processing_stage"] = "final"

            logger.info(
                "Processed %s webhook for job %s, report %s",
                self.webhook_type,
                payload.job_id,
                payload.report_id,
            )
            return await self._respond(
                200,
                body,
                job_id=payload.job_id,
                report_id=payload.report_id,
                report_table=table,
                payload=data,
                attempt=attempt_number(existing),
            )
        except NotFoundError as exc:
            logger.warning("%s webhook for unknown report %s", self.webhook_type, payload.report_id)
            return await self._respond(
                _status_for(exc),
                {"error": str(exc), "report_id": payload.report_id},
                job_id=payload.job_id,
                report_id=payload.report_id,
                report_table=table,
                payload=data,
                error=str(exc),
            )
        except Exception as exc:
            logger.exception(
                "%s webhook error for job %s", self.webhook_type, payload.job_id
            )
            if existing is not None:
                await self._record_failure(table, payload.report_id, str(exc))
            return await self._respond(
                500,
                {
                    "error": f"Failed to process {self.webhook_type} webhook",
                    "message": str(exc),
                    "job_id": payload.job_id,
                    "report_id": payload.report_id,
                },
                job_id=payload.job_id,
                report_id=payload.report_id,
                report_table=table,
                payload=data,
                error=str(exc),
                attempt=attempt_number(existing),
            )

    async def _already_processed(
        self,
        existing: ReportRecord,
        payload: CompletionPayload,
        table: str,
        data: dict[str, Any],
    ) -> WebhookOutcome:
        _, message = _REPORT_MESSAGES[self.webhook_type]
        logger.info(
            "%s webhook for report %s already processed", self.webhook_type, payload.report_id
        )
        return await self._respond(
            200,
            {
                "message": message,
                "report_id": payload.report_id,
                "status": "already_completed",
            },
            job_id=payload.job_id,
            report_id=payload.report_id,
            report_table=table,
            payload=data,
            attempt=attempt_number(existing),
        )

    async def _record_failure(self, table: str, report_id: str, error: str) -> None:
        """Best-effort failure mark; its own failure is only logged."""
        try:
            await self._repo.update_webhook_status(
                table,
                report_id,
                WebhookStatus.FAILED,
                {"error": error, "failed_at": _now()},
                increment_attempts=True,
            )
        except Exception:
            logger.exception("Failed to record webhook failure for %s/%s", table, report_id)


# ---------------------------------------------------------------------------
# Dynamic questionnaire
# ---------------------------------------------------------------------------


class QuestionnaireWebhookProcessor(_BaseProcessor):
    """Pipeline for the dynamic-questionnaire webhook."""

    webhook_type = WebhookType.DYNAMIC_QUESTIONNAIRE
    _id_field = "summary_id"

    def __init__(
        self,
        settings: Settings,
        summaries: SummaryRepository,
        audit: WebhookAuditLogger,
    ) -> None:
        super().__init__(settings, audit)
        self._summaries = summaries

    async def handle(self, raw_body: bytes, signature: str | None) -> WebhookOutcome:
        data = await self._preamble(raw_body, signature)
        if isinstance(data, WebhookOutcome):
            return data

        job_id = _as_text(data.get("job_id"))
        summary_id = _as_text(data.get("summary_id"))

        try:
            payload = validate_questionnaire(data)
        except ValidationError as exc:
            return await self._respond(
                _status_for(exc),
                {"error": str(exc)},
                job_id=job_id,
                report_id=summary_id,
                payload=data,
                error=str(exc),
            )

        try:
            if payload.questionnaire is None:
                found = await self._summaries.get(payload.summary_id) is not None
            else:
                text = (
                    payload.questionnaire
                    if isinstance(payload.questionnaire, str)
                    else json.dumps(payload.questionnaire)
                )
                found = await self._summaries.set_dynamic_questionnaire(payload.summary_id, text)

            if not found:
                raise NotFoundError("Summary not found")

            logger.info(
                "Stored dynamic questionnaire for summary %s (job %s)",
                payload.summary_id,
                payload.job_id,
            )
            return await self._respond(
                200,
                {
                    "message": "Dynamic questionnaire updated successfully",
                    "summary_id": payload.summary_id,
                    "job_id": payload.job_id,
                    "status": payload.status,
                    "timestamp": _now(),
                },
                job_id=payload.job_id,
                report_id=payload.summary_id,
                report_table=SUMMARIES_TABLE,
                payload=data,
            )
        except NotFoundError as exc:
            return await self._respond(
                _status_for(exc),
                {"error": str(exc), "summary_id": payload.summary_id},
                job_id=payload.job_id,
                report_id=payload.summary_id,
                report_table=SUMMARIES_TABLE,
                payload=data,
                error=str(exc),
            )
        except Exception as exc:
            logger.exception("dynamic-questionnaire webhook error for job %s", payload.job_id)
            return await self._respond(
                500,
                {"error": "Failed to update dynamic questionnaire", "message": str(exc)},
                job_id=payload.job_id,
                report_id=payload.summary_id,
                report_table=SUMMARIES_TABLE,
                payload=data,
                error=str(exc),
            )
