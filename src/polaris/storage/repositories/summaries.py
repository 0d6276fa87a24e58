# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Repository for the polaris_summaries table."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import aiosqlite

from polaris.core.exceptions import PersistenceError


class SummaryRepository:
    """Summary rows and their dynamic-questionnaire column."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def create(
        self,
        *,
        summary_id: str | None = None,
        user_id: str | None = None,
        summary_content: str | None = None,
    ) -> str:
        summary_id = summary_id or str(uuid.uuid4())
        now = datetime.now(UTC).isoformat(timespec="microseconds")
        await self._db.execute(
            """
            INSERT INTO polaris_summaries (id, user_id, summary_content, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (summary_id, user_id, summary_content, now, now),
        )
        await self._db.commit()
        return summary_id

    async def get(self, summary_id: str) -> dict[str, Any] | None:
        cursor = await self._db.execute(
            "SELECT * FROM polaris_summaries WHERE id = ?", (summary_id,)
        )
        row = await cursor.fetchone()
        return dict(row) if row is not None else None

    async def set_dynamic_questionnaire(self, summary_id: str, report: str) -> bool:
        """Store the questionnaire text; False when the summary does not exist."""
        try:
            cursor = await self._db.execute(
                """
                UPDATE polaris_summaries
                SET dynamic_questionnaire_report = ?, updated_at = ?
                WHERE id = ?
                """,
                (report, datetime.now(UTC).isoformat(timespec="microseconds"), summary_id),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Failed to update summary {summary_id}: {exc}"
            ) from exc
        return cursor.rowcount > 0
