# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Repository for the greeting, org, and requirement report tables."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import aiosqlite

from polaris.core.constants import (
    MAX_WEBHOOK_ATTEMPTS,
    REPORT_TABLES,
    ResearchStatus,
    WebhookStatus,
)
from polaris.core.exceptions import PersistenceError, StorageError
from polaris.models.report import ReportRecord
from polaris.models.webhook import FailedWebhook

logger = logging.getLogger("polaris.storage.reports")

# Rows in these webhook states are candidates for the retry sweep.
_SWEEPABLE = (WebhookStatus.FAILED, WebhookStatus.RETRYING)


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


def _check_table(table: str) -> None:
    if table not in REPORT_TABLES:
        raise StorageError(f"Invalid table name: {table}")


class ReportRepository:
    """Reads and writes report rows and their webhook bookkeeping columns."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def create(
        self,
        table: str,
        *,
        report_id: str | None = None,
        user_id: str | None = None,
        summary_id: str | None = None,
        user_data: dict[str, Any] | None = None,
        research_report: str | None = None,
        research_status: ResearchStatus = ResearchStatus.PENDING,
        research_metadata: dict[str, Any] | None = None,
        webhook_job_id: str | None = None,
    ) -> ReportRecord:
        """Insert a report row the way the job-submission flow does.

        A row created with content already present is considered delivered.
        """
        _check_table(table)
        report_id = report_id or str(uuid.uuid4())
        webhook_status = (
            WebhookStatus.SUCCESS if research_report else WebhookStatus.PENDING
        )
        now = _now()

        await self._db.execute(
            f"""
            INSERT INTO {table} (
                id, user_id, summary_id, user_data, research_report,
                research_status, research_metadata, webhook_status,
                webhook_job_id, webhook_attempts, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
            """,  # noqa: S608
            (
                report_id,
                user_id,
                summary_id,
                json.dumps(user_data or {}),
                research_report,
                str(research_status),
                json.dumps(research_metadata or {}),
                str(webhook_status),
                webhook_job_id,
                now,
                now,
            ),
        )
        await self._db.commit()

        record = await self.get(table, report_id)
        assert record is not None
        return record

    async def get(self, table: str, report_id: str) -> ReportRecord | None:
        """Fetch a report row by id, or None when it does not exist."""
        _check_table(table)
        cursor = await self._db.execute(
            f"SELECT * FROM {table} WHERE id = ?",  # noqa: S608
            (report_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_record(row)

    async def apply_result(
        self,
        table: str,
        report_id: str,
        *,
        research_report: str,
        research_status: ResearchStatus,
        research_metadata: dict[str, Any],
        webhook_status: WebhookStatus,
        webhook_job_id: str,
    ) -> ReportRecord | None:
        """Write a delivered result unless the row is already delivered.

        The update only applies while the row is not both ``success`` and
        ``completed``; a row that is already ``completed`` keeps that status.
        Returns the updated record, or None when the guard no longer held.
        """
        _check_table(table)
        now = _now()
        try:
            cursor = await self._db.execute(
                f"""
                UPDATE {table} SET
                    research_report = ?,
                    research_status = CASE
                        WHEN research_status = 'completed' THEN 'completed'
                        ELSE ?
                    END,
                    research_metadata = ?,
                    webhook_status = ?,
                    webhook_job_id = ?,
                    webhook_last_attempt = ?,
                    updated_at = ?
                WHERE id = ?
                  AND NOT (webhook_status = 'success' AND research_status = 'completed')
                """,  # noqa: S608
                (
                    research_report,
                    str(research_status),
                    json.dumps(research_metadata),
                    str(webhook_status),
                    webhook_job_id,
                    now,
                    now,
                    report_id,
                ),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Failed to update {table}/{report_id}: {exc}"
            ) from exc

        if cursor.rowcount == 0:
            return None
        return await self.get(table, report_id)

    async def update_webhook_status(
        self,
        table_name: str,
        record_id: str,
        new_status: WebhookStatus | str,
        response_data: dict[str, Any] | None = None,
        increment_attempts: bool = True,
    ) -> None:
        """Record a delivery outcome on a report row.

        Stamps ``webhook_last_attempt`` and stores *response_data* as the
        row's ``webhook_response``; optionally bumps ``webhook_attempts``.
        """
        _check_table(table_name)
        if new_status not in set(WebhookStatus):
            raise StorageError(f"Invalid webhook status: {new_status}")

        fields: list[str] = [
            "webhook_status = ?",
            "webhook_response = ?",
            "webhook_last_attempt = ?",
            "updated_at = ?",
        ]
        now = _now()
        params: list[Any] = [
            str(new_status),
            json.dumps(response_data or {}),
            now,
            now,
        ]
        if increment_attempts:
            fields.append("webhook_attempts = COALESCE(webhook_attempts, 0) + 1")

        params.append(record_id)
        set_clause = ", ".join(fields)
        try:
            await self._db.execute(
                f"UPDATE {table_name} SET {set_clause} WHERE id = ?",  # noqa: S608
                params,
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Failed to update webhook status for {table_name}/{record_id}: {exc}"
            ) from exc

    async def mark_retrying(self, table: str, report_id: str) -> None:
        """Flag a row for the next sweep without counting an attempt."""
        await self.update_webhook_status(
            table,
            report_id,
            WebhookStatus.RETRYING,
            {"manual_retry": True, "retry_requested_at": _now()},
            increment_attempts=False,
        )

    async def get_failed_webhooks(
        self,
        max_attempts: int = MAX_WEBHOOK_ATTEMPTS,
        retry_after_minutes: int = 5,
    ) -> list[FailedWebhook]:
        """Return sweep candidates across every report table.

        A candidate is ``failed`` or ``retrying``, below *max_attempts*, and
        either never attempted or last attempted before the cooldown.
        """
        cutoff = (
            datetime.now(UTC) - timedelta(minutes=retry_after_minutes)
        ).isoformat(timespec="microseconds")
        placeholders = ", ".join("?" for _ in _SWEEPABLE)

        candidates: list[FailedWebhook] = []
        for table in REPORT_TABLES:
            cursor = await self._db.execute(
                f"""
                SELECT id, webhook_job_id, webhook_attempts, webhook_last_attempt
                FROM {table}
                WHERE webhook_status IN ({placeholders})
                  AND COALESCE(webhook_attempts, 0) < ?
                  AND (webhook_last_attempt IS NULL OR webhook_last_attempt < ?)
                ORDER BY COALESCE(webhook_last_attempt, '') ASC
                """,  # noqa: S608
                (*[str(s) for s in _SWEEPABLE], max_attempts, cutoff),
            )
            rows = await cursor.fetchall()
            candidates.extend(
                FailedWebhook(
                    table_name=table,
                    record_id=row["id"],
                    job_id=row["webhook_job_id"],
                    webhook_attempts=row["webhook_attempts"] or 0,
                    last_attempt=row["webhook_last_attempt"],
                )
                for row in rows
            )
        return candidates

    async def webhook_status(self, table: str, report_id: str) -> dict[str, Any] | None:
        """Return the webhook bookkeeping columns of one row."""
        _check_table(table)
        cursor = await self._db.execute(
            f"""
            SELECT id, webhook_status, webhook_attempts, webhook_last_attempt,
                   webhook_job_id, webhook_response, research_status, created_at
            FROM {table} WHERE id = ?
            """,  # noqa: S608
            (report_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        data = dict(row)
        data["webhook_response"] = json.loads(data.get("webhook_response") or "{}")
        return data

    async def statistics(self) -> dict[str, dict[str, int]]:
        """Count rows per webhook status for each report type."""
        stats: dict[str, dict[str, int]] = {}
        for table in REPORT_TABLES:
            counts = {
                str(s): 0
                for s in (
                    WebhookStatus.SUCCESS,
                    WebhookStatus.FAILED,
                    WebhookStatus.PENDING,
                    WebhookStatus.RETRYING,
                )
            }
            cursor = await self._db.execute(
                f"SELECT webhook_status, COUNT(*) AS n FROM {table} "  # noqa: S608
                "GROUP BY webhook_status"
            )
            for row in await cursor.fetchall():
                if row["webhook_status"] in counts:
                    counts[row["webhook_status"]] = row["n"]
            stats[table.removesuffix("_reports")] = counts
        return stats

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> ReportRecord:
        """Convert a database row to a ReportRecord model."""
        data = dict(row)
        return ReportRecord(
            id=data["id"],
            user_id=data.get("user_id"),
            summary_id=data.get("summary_id"),
            research_report=data.get("research_report"),
            research_status=data.get("research_status") or ResearchStatus.PENDING,
            research_metadata=json.loads(data.get("research_metadata") or "{}"),
            webhook_status=data.get("webhook_status") or WebhookStatus.PENDING,
            webhook_job_id=data.get("webhook_job_id"),
            webhook_attempts=data.get("webhook_attempts") or 0,
            webhook_last_attempt=data.get("webhook_last_attempt"),
            webhook_response=json.loads(data.get("webhook_response") or "{}"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
