# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Webhook audit persistence to the SQLite webhook_audit table."""

from __future__ import annotations

import json
from typing import Any

import aiosqlite

from polaris.audit.events import WebhookAuditRecord


class WebhookAuditStore:
    """Repository for appending and querying webhook audit rows.

    There is deliberately no update or delete.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def insert(self, record: WebhookAuditRecord) -> None:
        """Persist a single audit record."""
        await self._db.execute(
            """
            INSERT INTO webhook_audit (
                id, webhook_type, job_id, report_id, report_table,
                request_payload, response_status, response_body,
                error_message, attempt_number, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                str(record.webhook_type),
                record.job_id,
                record.report_id,
                record.report_table,
                json.dumps(record.request_payload, default=str),
                record.response_status,
                json.dumps(record.response_body, default=str),
                record.error_message,
                record.attempt_number,
                record.created_at.isoformat(timespec="microseconds"),
            ),
        )
        await self._db.commit()

    async def get_by_id(self, record_id: str) -> dict[str, Any] | None:
        cursor = await self._db.execute(
            "SELECT * FROM webhook_audit WHERE id = ?", (record_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _row_to_dict(row)

    async def list_records(
        self,
        *,
        job_id: str | None = None,
        report_id: str | None = None,
        webhook_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Query audit rows, newest first.

        Args:
            job_id: Filter by the external job id.
            report_id: Filter by report or summary id.
            webhook_type: Filter by endpoint kind.
            limit: Maximum number of results.
            offset: Number of rows to skip.
        """
        where, params = _filters(job_id, report_id, webhook_type)
        query = (
            f"SELECT * FROM webhook_audit{where} "  # noqa: S608
            "ORDER BY created_at DESC LIMIT ? OFFSET ?"
        )
        params.extend([limit, offset])

        cursor = await self._db.execute(query, params)
        rows = await cursor.fetchall()
        return [_row_to_dict(row) for row in rows]

    async def count(
        self,
        *,
        job_id: str | None = None,
        report_id: str | None = None,
        webhook_type: str | None = None,
    ) -> int:
        """Return the number of audit rows matching the given filters."""
        where, params = _filters(job_id, report_id, webhook_type)
        cursor = await self._db.execute(
            f"SELECT COUNT(*) FROM webhook_audit{where}",  # noqa: S608
            params,
        )
        row = await cursor.fetchone()
        return row[0] if row else 0


def _filters(
    job_id: str | None, report_id: str | None, webhook_type: str | None
) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []

    if job_id is not None:
        clauses.append("job_id = ?")
        params.append(job_id)
    if report_id is not None:
        clauses.append("report_id = ?")
        params.append(report_id)
    if webhook_type is not None:
        clauses.append("webhook_type = ?")
        params.append(webhook_type)

    where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
    return where, params


def _row_to_dict(row: aiosqlite.Row) -> dict[str, Any]:
    """Convert a database row to a dict, parsing the JSON columns."""
    data = dict(row)
    for key in ("request_payload", "response_body"):
        raw = data.get(key)
        data[key] = json.loads(raw) if raw else None
    return data
