# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for targeted webhook retry and the failed-webhook sweep."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from polaris.core.config import Settings
from polaris.core.constants import WebhookStatus, WebhookType
from polaris.delivery.client import DeliveryClient
from polaris.models.webhook import FailedWebhook, RetryResult
from polaris.retry.service import RETRY_REFUSED, RetryService, build_retry_payload
from polaris.storage.repositories.reports import ReportRepository

PRELIM_URL = "http://polaris.test/api/webhooks/prelim-report"
FINAL_URL = "http://polaris.test/api/webhooks/final-report"


class _SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleeper() -> _SleepRecorder:
    return _SleepRecorder()


@pytest.fixture
def service(settings, report_repo, sleeper) -> RetryService:
    return RetryService(settings, report_repo, DeliveryClient(settings), sleep=sleeper)


async def _failed_report(
    repo: ReportRepository,
    table: str = "greeting_reports",
    *,
    report_id: str = "r-1",
    attempts: int = 1,
    job_id: str | None = "job-1",
    last_attempt: str | None = None,
    status: WebhookStatus = WebhookStatus.FAILED,
):
    await repo.create(
        table,
        report_id=report_id,
        research_report="# Report",
        research_metadata={"model": "m-1"},
        webhook_job_id=job_id,
    )
    await repo._db.execute(
        f"UPDATE {table} SET webhook_status = ?, webhook_attempts = ?, "  # noqa: S608
        "webhook_last_attempt = ? WHERE id = ?",
        (str(status), attempts, last_attempt, report_id),
    )
    await repo._db.commit()
    return await repo.get(table, report_id)


def _minutes_ago(minutes: int) -> str:
    return (datetime.now(UTC) - timedelta(minutes=minutes)).isoformat(timespec="microseconds")


# ---------------------------------------------------------------------------
# Payload reconstruction
# ---------------------------------------------------------------------------


class TestBuildRetryPayload:
    async def test_reconstructs_from_row(self, report_repo) -> None:
        record = await _failed_report(report_repo, "org_reports")

        payload = build_retry_payload("org_reports", record)

        assert payload == {
            "job_id": "job-1",
            "report_id": "r-1",
            "report_type": "org",
            "research_report": "# Report",
            "research_status": "pending",
            "research_metadata": {"model": "m-1"},
            "retry_attempt": True,
        }


# ---------------------------------------------------------------------------
# Targeted retry
# ---------------------------------------------------------------------------


class TestRetry:
    async def test_success(self, service, report_repo) -> None:
        await _failed_report(report_repo)
        with respx.mock:
            route = respx.post(PRELIM_URL).mock(
                return_value=httpx.Response(200, json={"message": "Report updated successfully"})
            )
            result = await service.retry("greeting_reports", "r-1")

        assert result.success
        assert result.response == {"message": "Report updated successfully"}
        sent = json.loads(route.calls.last.request.content)
        assert sent["retry_attempt"] is True
        assert sent["report_type"] == "greeting"

        record = await report_repo.get("greeting_reports", "r-1")
        assert record.webhook_status == WebhookStatus.SUCCESS
        assert record.webhook_attempts == 2
        assert record.webhook_response["message"] == "Retry successful"
        assert record.webhook_response["retry_completed"] is True

    async def test_final_report_url(self, service, report_repo) -> None:
        await _failed_report(report_repo)
        with respx.mock:
            route = respx.post(FINAL_URL).mock(return_value=httpx.Response(200, json={}))
            result = await service.retry("greeting_reports", "r-1", WebhookType.FINAL_REPORT)

        assert result.success
        assert route.called

    async def test_http_failure(self, service, report_repo) -> None:
        await _failed_report(report_repo)
        with respx.mock:
            respx.post(PRELIM_URL).mock(return_value=httpx.Response(503, text="unavailable"))
            result = await service.retry("greeting_reports", "r-1")

        assert not result.success
        assert result.error == "Webhook failed: HTTP 503"
        record = await report_repo.get("greeting_reports", "r-1")
        assert record.webhook_status == WebhookStatus.FAILED
        assert record.webhook_attempts == 2
        assert record.webhook_response["retry_failed"] is True
        assert record.webhook_response["error"] == "HTTP 503"

    async def test_transport_error(self, service, report_repo) -> None:
        await _failed_report(report_repo)
        with respx.mock:
            respx.post(PRELIM_URL).mock(side_effect=httpx.ConnectError("refused"))
            result = await service.retry("greeting_reports", "r-1")

        assert not result.success
        assert "refused" in result.error
        record = await report_repo.get("greeting_reports", "r-1")
        assert record.webhook_status == WebhookStatus.FAILED
        assert record.webhook_attempts == 2

    async def test_refused_at_attempt_ceiling(self, service, report_repo) -> None:
        await _failed_report(report_repo, attempts=3)
        with respx.mock(assert_all_called=False):
            route = respx.post(PRELIM_URL).mock(return_value=httpx.Response(200))
            result = await service.retry("greeting_reports", "r-1")

        assert not result.success
        assert result.error == RETRY_REFUSED
        assert not route.called
        record = await report_repo.get("greeting_reports", "r-1")
        assert record.webhook_attempts == 3
        assert record.webhook_status == WebhookStatus.FAILED

    async def test_refused_without_job_id(self, service, report_repo) -> None:
        await _failed_report(report_repo, job_id=None)
        with respx.mock(assert_all_called=False):
            route = respx.post(PRELIM_URL).mock(return_value=httpx.Response(200))
            result = await service.retry("greeting_reports", "r-1")

        assert result.error == RETRY_REFUSED
        assert not route.called

    async def test_ceiling_ignores_configured_max(self, report_repo, tmp_path) -> None:
        settings = Settings(
            db_path=tmp_path / "x.db",
            webhook_secret="s",
            webhook_base_url="http://polaris.test",
            retry_max_attempts=10,
        )
        service = RetryService(settings, report_repo, DeliveryClient(settings))
        await _failed_report(report_repo, attempts=3)

        result = await service.retry("greeting_reports", "r-1")

        assert result.error == RETRY_REFUSED

    async def test_missing_secret(self, report_repo) -> None:
        settings = Settings(webhook_secret="")
        service = RetryService(settings, report_repo, DeliveryClient(settings))
        await _failed_report(report_repo)

        result = await service.retry("greeting_reports", "r-1")

        assert result.error == "Configuration missing"

    async def test_unknown_report(self, service) -> None:
        result = await service.retry("greeting_reports", "nope")
        assert not result.success
        assert "not found" in result.error.lower()


# ---------------------------------------------------------------------------
# Sweep
# ---------------------------------------------------------------------------


class TestSweep:
    async def test_nothing_to_do(self, service, sleeper) -> None:
        result = await service.sweep_failed()

        assert result.processed == 0
        assert result.successes == result.failures == 0
        assert result.errors == []
        assert sleeper.calls == []

    async def test_processes_sequentially_with_delay(
        self, service, report_repo, sleeper
    ) -> None:
        for i in range(10):
            await _failed_report(report_repo, report_id=f"r-{i}", attempts=0)

        with respx.mock:
            respx.post(PRELIM_URL).mock(return_value=httpx.Response(200, json={}))
            result = await service.sweep_failed()

        assert result.processed == 10
        assert result.successes == 10
        assert result.failures == 0
        assert sleeper.calls == [0.1] * 9

    async def test_all_failing_items_still_counted(
        self, service, report_repo, sleeper
    ) -> None:
        for i in range(10):
            await _failed_report(report_repo, report_id=f"r-{i}", attempts=0)

        with respx.mock:
            route = respx.post(PRELIM_URL).mock(return_value=httpx.Response(500, json={}))
            result = await service.sweep_failed()

        assert route.call_count == 10
        assert result.processed == 10
        assert result.successes == 0
        assert result.failures == 10
        assert len(result.errors) == 10
        assert sleeper.calls == [0.1] * 9

    async def test_counts_failures(self, service, report_repo) -> None:
        await _failed_report(report_repo, report_id="ok")
        await _failed_report(report_repo, "org_reports", report_id="bad")

        def _respond(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            status = 200 if body["report_id"] == "ok" else 500
            return httpx.Response(status, json={})

        with respx.mock:
            respx.post(PRELIM_URL).mock(side_effect=_respond)
            result = await service.sweep_failed()

        assert result.processed == 2
        assert result.successes == 1
        assert result.failures == 1
        assert result.errors == ["org_reports:bad - Webhook failed: HTTP 500"]

    async def test_cooldown_and_attempt_filters(self, service, report_repo) -> None:
        await _failed_report(report_repo, report_id="fresh", last_attempt=_minutes_ago(1))
        await _failed_report(report_repo, report_id="stale", last_attempt=_minutes_ago(10))
        await _failed_report(report_repo, report_id="exhausted", attempts=3)
        await _failed_report(
            report_repo, report_id="retrying", status=WebhookStatus.RETRYING, attempts=0
        )

        candidates = await report_repo.get_failed_webhooks(3, 5)

        assert {c.record_id for c in candidates} == {"stale", "retrying"}

    async def test_refused_item_is_an_error(self, service, report_repo) -> None:
        await _failed_report(report_repo, job_id=None)

        result = await service.sweep_failed()

        assert result.processed == 1
        assert result.failures == 1
        assert result.errors == [f"greeting_reports:r-1 - {RETRY_REFUSED}"]

    async def test_query_failure(self, settings, sleeper) -> None:
        repo = AsyncMock(spec=ReportRepository)
        repo.get_failed_webhooks.side_effect = RuntimeError("no such table")
        service = RetryService(settings, repo, DeliveryClient(settings), sleep=sleeper)

        result = await service.sweep_failed()

        assert result.processed == 0
        assert result.errors == ["Failed to fetch failed webhooks: no such table"]

    async def test_unexpected_error_does_not_stop_sweep(self, settings, sleeper) -> None:
        repo = AsyncMock(spec=ReportRepository)
        repo.get_failed_webhooks.return_value = [
            FailedWebhook(table_name="greeting_reports", record_id="a"),
            FailedWebhook(table_name="greeting_reports", record_id="b"),
        ]
        service = RetryService(settings, repo, DeliveryClient(settings), sleep=sleeper)
        service.retry = AsyncMock(side_effect=[RuntimeError("boom"), RetryResult(success=True)])

        result = await service.sweep_failed()

        assert result.processed == 2
        assert result.successes == 1
        assert result.failures == 1
        assert result.errors == ["greeting_reports:a - boom"]
        assert sleeper.calls == [0.1]

    async def test_uses_settings_defaults(self, settings, sleeper) -> None:
        repo = AsyncMock(spec=ReportRepository)
        repo.get_failed_webhooks.return_value = []
        service = RetryService(settings, repo, DeliveryClient(settings), sleep=sleeper)

        await service.sweep_failed()

        repo.get_failed_webhooks.assert_awaited_once_with(
            settings.retry_max_attempts, settings.retry_after_minutes
        )
