# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for the SQLite storage layer: migrations and repositories."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import aiosqlite
import pytest

from polaris.core.constants import REPORT_TABLES, ResearchStatus, WebhookStatus
from polaris.core.exceptions import StorageError
from polaris.storage.migrations import get_current_version, get_pending_migrations, run_migrations
from polaris.storage.repositories.reports import ReportRepository
from polaris.storage.repositories.summaries import SummaryRepository

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _set_webhook_state(
    db: aiosqlite.Connection,
    table: str,
    report_id: str,
    *,
    status: str,
    attempts: int = 0,
    last_attempt: datetime | None = None,
) -> None:
    await db.execute(
        f"UPDATE {table} SET webhook_status = ?, webhook_attempts = ?, "  # noqa: S608
        "webhook_last_attempt = ? WHERE id = ?",
        (
            status,
            attempts,
            last_attempt.isoformat(timespec="microseconds") if last_attempt else None,
            report_id,
        ),
    )
    await db.commit()


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


class TestMigrations:
    async def test_all_migrations_applied(self, db: aiosqlite.Connection) -> None:
        assert await get_current_version(db) == 2
        assert await get_pending_migrations(db) == []

    async def test_rerun_is_noop(self, db: aiosqlite.Connection) -> None:
        assert await run_migrations(db) == []

    async def test_tables_exist(self, db: aiosqlite.Connection) -> None:
        cursor = await db.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        names = {row[0] for row in await cursor.fetchall()}
        assert set(REPORT_TABLES) <= names
        assert {"polaris_summaries", "webhook_audit", "schema_migrations"} <= names

    async def test_webhook_columns_added(self, db: aiosqlite.Connection) -> None:
        for table in REPORT_TABLES:
            cursor = await db.execute(f"PRAGMA table_info({table})")
            columns = {row[1] for row in await cursor.fetchall()}
            assert {
                "webhook_status",
                "webhook_attempts",
                "webhook_last_attempt",
                "webhook_response",
                "webhook_job_id",
            } <= columns

    async def test_upgrade_from_version_one(self) -> None:
        """A database created before webhook support gains the columns in place."""
        from polaris.storage import migrations

        conn = await aiosqlite.connect(":memory:")
        try:
            await migrations._ensure_migrations_table(conn)
            first = migrations._MIGRATIONS[0]
            await first.func(conn)
            await conn.execute(
                "INSERT INTO schema_migrations (version, name) VALUES (?, ?)",
                (first.version, first.name),
            )
            await conn.execute(
                "INSERT INTO greeting_reports (id, research_status) VALUES ('old', 'completed')"
            )
            await conn.commit()

            applied = await run_migrations(conn)
            assert [m.version for m in applied] == [2]

            cursor = await conn.execute(
                "SELECT webhook_status, webhook_attempts FROM greeting_reports WHERE id = 'old'"
            )
            row = await cursor.fetchone()
            assert tuple(row) == ("pending", 0)
        finally:
            await conn.close()


# ---------------------------------------------------------------------------
# ReportRepository
# ---------------------------------------------------------------------------


class TestReportRepository:
    async def test_create_and_get(self, report_repo: ReportRepository) -> None:
        record = await report_repo.create(
            "greeting_reports",
            report_id="r-1",
            user_id="u-1",
            research_metadata={"y": 2},
            webhook_job_id="job-1",
        )
        assert record.id == "r-1"
        assert record.research_status == ResearchStatus.PENDING
        assert record.webhook_status == WebhookStatus.PENDING
        assert record.webhook_attempts == 0
        assert record.research_metadata == {"y": 2}

        fetched = await report_repo.get("greeting_reports", "r-1")
        assert fetched == record

    async def test_create_with_content_is_delivered(self, report_repo: ReportRepository) -> None:
        record = await report_repo.create("org_reports", research_report="# done")
        assert record.webhook_status == WebhookStatus.SUCCESS

    async def test_get_missing(self, report_repo: ReportRepository) -> None:
        assert await report_repo.get("greeting_reports", "nope") is None

    async def test_invalid_table_rejected(self, report_repo: ReportRepository) -> None:
        with pytest.raises(StorageError, match="Invalid table name"):
            await report_repo.get("users; DROP TABLE x", "r-1")

    async def test_apply_result(self, report_repo: ReportRepository) -> None:
        await report_repo.create("greeting_reports", report_id="r-1")
        updated = await report_repo.apply_result(
            "greeting_reports",
            "r-1",
            research_report="# Report",
            research_status=ResearchStatus.COMPLETED,
            research_metadata={"x": 1},
            webhook_status=WebhookStatus.SUCCESS,
            webhook_job_id="job-1",
        )
        assert updated is not None
        assert updated.research_report == "# Report"
        assert updated.research_status == ResearchStatus.COMPLETED
        assert updated.research_metadata == {"x": 1}
        assert updated.webhook_status == WebhookStatus.SUCCESS
        assert updated.webhook_job_id == "job-1"
        assert updated.webhook_last_attempt is not None
        # The content write does not count attempts.
        assert updated.webhook_attempts == 0

    async def test_apply_result_skips_delivered_row(self, report_repo: ReportRepository) -> None:
        await report_repo.create("greeting_reports", report_id="r-1")
        kwargs = {
            "research_status": ResearchStatus.COMPLETED,
            "research_metadata": {},
            "webhook_status": WebhookStatus.SUCCESS,
            "webhook_job_id": "job-1",
        }
        assert await report_repo.apply_result(
            "greeting_reports", "r-1", research_report="first", **kwargs
        )
        assert (
            await report_repo.apply_result(
                "greeting_reports", "r-1", research_report="second", **kwargs
            )
            is None
        )
        record = await report_repo.get("greeting_reports", "r-1")
        assert record.research_report == "first"

    async def test_completed_is_sticky(
        self, db: aiosqlite.Connection, report_repo: ReportRepository
    ) -> None:
        await report_repo.create("greeting_reports", report_id="r-1")
        await report_repo.apply_result(
            "greeting_reports",
            "r-1",
            research_report="first",
            research_status=ResearchStatus.COMPLETED,
            research_metadata={},
            webhook_status=WebhookStatus.FAILED,
            webhook_job_id="job-1",
        )
        updated = await report_repo.apply_result(
            "greeting_reports",
            "r-1",
            research_report="second",
            research_status=ResearchStatus.FAILED,
            research_metadata={},
            webhook_status=WebhookStatus.SUCCESS,
            webhook_job_id="job-1",
        )
        assert updated is not None
        assert updated.research_report == "second"
        assert updated.research_status == ResearchStatus.COMPLETED

    async def test_update_webhook_status(self, report_repo: ReportRepository) -> None:
        await report_repo.create("requirement_reports", report_id="r-1")
        await report_repo.update_webhook_status(
            "requirement_reports", "r-1", WebhookStatus.FAILED, {"error": "HTTP 500"}
        )
        await report_repo.update_webhook_status(
            "requirement_reports", "r-1", "success", {"message": "ok"}
        )
        record = await report_repo.get("requirement_reports", "r-1")
        assert record.webhook_status == WebhookStatus.SUCCESS
        assert record.webhook_attempts == 2
        assert record.webhook_response == {"message": "ok"}
        assert record.webhook_last_attempt is not None

    async def test_update_webhook_status_without_increment(
        self, report_repo: ReportRepository
    ) -> None:
        await report_repo.create("greeting_reports", report_id="r-1")
        await report_repo.mark_retrying("greeting_reports", "r-1")
        record = await report_repo.get("greeting_reports", "r-1")
        assert record.webhook_status == WebhookStatus.RETRYING
        assert record.webhook_attempts == 0
        assert record.webhook_response["manual_retry"] is True

    @pytest.mark.parametrize("status", ["pending", "sent", "success", "failed", "retrying"])
    async def test_update_webhook_status_accepts_every_delivery_state(
        self, report_repo: ReportRepository, status: str
    ) -> None:
        await report_repo.create("org_reports", report_id="r-1")
        await report_repo.update_webhook_status("org_reports", "r-1", status)
        record = await report_repo.get("org_reports", "r-1")
        assert record.webhook_status == WebhookStatus(status)
        assert record.webhook_attempts == 1

    async def test_update_webhook_status_rejects_unknown_status(
        self, report_repo: ReportRepository
    ) -> None:
        await report_repo.create("greeting_reports", report_id="r-1")
        with pytest.raises(StorageError, match="Invalid webhook status"):
            await report_repo.update_webhook_status("greeting_reports", "r-1", "exploded")

    async def test_get_failed_webhooks(
        self, db: aiosqlite.Connection, report_repo: ReportRepository
    ) -> None:
        now = datetime.now(UTC)
        rows = {
            "never-tried": ("failed", 0, None),
            "cooled-down": ("retrying", 2, now - timedelta(minutes=10)),
            "too-recent": ("failed", 1, now - timedelta(minutes=1)),
            "at-ceiling": ("failed", 3, None),
            "delivered": ("success", 1, None),
            "pending": ("pending", 0, None),
        }
        for report_id, (status, attempts, last) in rows.items():
            await report_repo.create("org_reports", report_id=report_id, webhook_job_id="job")
            await _set_webhook_state(
                db, "org_reports", report_id, status=status, attempts=attempts, last_attempt=last
            )

        candidates = await report_repo.get_failed_webhooks(max_attempts=3, retry_after_minutes=5)
        assert {c.record_id for c in candidates} == {"never-tried", "cooled-down"}
        assert all(c.table_name == "org_reports" for c in candidates)

    async def test_get_failed_webhooks_spans_tables(
        self, db: aiosqlite.Connection, report_repo: ReportRepository
    ) -> None:
        for table in REPORT_TABLES:
            await report_repo.create(table, report_id=f"{table}-1", webhook_job_id="job")
            await _set_webhook_state(db, table, f"{table}-1", status="failed")

        candidates = await report_repo.get_failed_webhooks()
        assert {c.table_name for c in candidates} == set(REPORT_TABLES)

    async def test_webhook_status(self, report_repo: ReportRepository) -> None:
        await report_repo.create("greeting_reports", report_id="r-1", webhook_job_id="job-1")
        status = await report_repo.webhook_status("greeting_reports", "r-1")
        assert status["webhook_status"] == "pending"
        assert status["webhook_job_id"] == "job-1"
        assert status["webhook_response"] == {}
        assert await report_repo.webhook_status("greeting_reports", "missing") is None

    async def test_statistics(
        self, db: aiosqlite.Connection, report_repo: ReportRepository
    ) -> None:
        await report_repo.create("greeting_reports", research_report="done")
        await report_repo.create("greeting_reports")
        failed = await report_repo.create("org_reports")
        await _set_webhook_state(db, "org_reports", failed.id, status="failed")

        stats = await report_repo.statistics()
        assert stats["greeting"] == {"success": 1, "failed": 0, "pending": 1, "retrying": 0}
        assert stats["org"]["failed"] == 1
        assert stats["requirement"] == {"success": 0, "failed": 0, "pending": 0, "retrying": 0}


# ---------------------------------------------------------------------------
# SummaryRepository
# ---------------------------------------------------------------------------


class TestSummaryRepository:
    async def test_set_dynamic_questionnaire(self, summary_repo: SummaryRepository) -> None:
        summary_id = await summary_repo.create(user_id="u-1")
        assert await summary_repo.set_dynamic_questionnaire(summary_id, '{"q": 1}') is True
        row = await summary_repo.get(summary_id)
        assert row["dynamic_questionnaire_report"] == '{"q": 1}'

    async def test_unknown_summary(self, summary_repo: SummaryRepository) -> None:
        assert await summary_repo.set_dynamic_questionnaire("missing", "x") is False
        assert await summary_repo.get("missing") is None
