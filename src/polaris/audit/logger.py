# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Fire-and-forget audit logger for inbound webhook deliveries."""

from __future__ import annotations

import logging
from typing import Any

import aiosqlite

from polaris.audit.events import WebhookAuditRecord
from polaris.audit.store import WebhookAuditStore
from polaris.core.constants import WebhookType

_logger = logging.getLogger("polaris.audit")

# Module-level singleton
_audit_logger: WebhookAuditLogger | None = None


class WebhookAuditLogger:
    """Appends one audit row per processed webhook request.

    Failures to persist a record are logged locally but never propagate to
    the caller: an audit outage must not change the response sent back to
    the job runner.
    """

    def __init__(self, db: aiosqlite.Connection | None = None) -> None:
        self._db = db

    async def record(
        self,
        webhook_type: WebhookType,
        job_id: str | None,
        report_id: str | None,
        report_table: str | None,
        request_payload: Any,
        response_status: int,
        response_body: Any,
        error_message: str | None = None,
        attempt_number: int = 1,
    ) -> WebhookAuditRecord:
        """Persist an audit record and return it."""
        entry = WebhookAuditRecord(
            webhook_type=webhook_type,
            job_id=job_id or "unknown",
            report_id=report_id,
            report_table=report_table,
            request_payload=request_payload,
            response_status=response_status,
            response_body=response_body,
            error_message=error_message,
            attempt_number=attempt_number,
        )
        await self._persist(entry)

        _logger.info(
            "webhook audit type=%s job=%s report=%s status=%d attempt=%d",
            entry.webhook_type,
            entry.job_id,
            entry.report_id,
            entry.response_status,
            entry.attempt_number,
            extra={
                "webhook_type": str(entry.webhook_type),
                "job_id": entry.job_id,
                "report_id": entry.report_id,
                "status_code": entry.response_status,
            },
        )
        return entry

    async def _persist(self, entry: WebhookAuditRecord) -> None:
        try:
            db = self._db
            if db is None:
                from polaris.storage.database import get_db

                db = await get_db()
            await WebhookAuditStore(db).insert(entry)
        except Exception:
            _logger.exception("Failed to persist webhook audit record")


def get_audit_logger() -> WebhookAuditLogger:
    """Return the module-level WebhookAuditLogger singleton."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = WebhookAuditLogger()
    return _audit_logger


def set_audit_logger(logger: WebhookAuditLogger | None) -> None:
    """Replace the module-level WebhookAuditLogger singleton (useful for testing)."""
    global _audit_logger
    _audit_logger = logger
