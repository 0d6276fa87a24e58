# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Shared test fixtures and configuration."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import aiosqlite
import pytest
import respx

from polaris.audit.logger import WebhookAuditLogger, set_audit_logger
from polaris.core.config import Settings
from polaris.storage.database import close_db, init_db
from polaris.storage.repositories.reports import ReportRepository
from polaris.storage.repositories.summaries import SummaryRepository
from polaris.webhooks.signing import sign

WEBHOOK_SECRET = "test-webhook-secret"
BASE_URL = "http://polaris.test"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        db_path=tmp_path / "polaris-test.db",
        webhook_secret=WEBHOOK_SECRET,
        webhook_base_url=BASE_URL,
        sweep_delay_ms=100,
        sweep_interval_seconds=0,
        api_keys=[],
    )


@pytest.fixture
async def db():
    """Create an in-memory database, run migrations, yield, then close."""
    # Reset the module-level _db so init_db creates a fresh connection
    import polaris.storage.database as db_mod

    db_mod._db = None

    conn = await init_db(":memory:")
    yield conn
    await close_db()


@pytest.fixture
def report_repo(db: aiosqlite.Connection) -> ReportRepository:
    return ReportRepository(db)


@pytest.fixture
def summary_repo(db: aiosqlite.Connection) -> SummaryRepository:
    return SummaryRepository(db)


@pytest.fixture
def audit_logger(db: aiosqlite.Connection) -> WebhookAuditLogger:
    return WebhookAuditLogger(db)


@pytest.fixture(autouse=True)
def _reset_audit_logger():
    """Reset the audit logger singleton between tests."""
    set_audit_logger(None)
    yield
    set_audit_logger(None)


@pytest.fixture(autouse=True)
def _reset_respx_router():
    """Drop routes left on respx's global router so they don't leak between tests."""
    yield
    respx.mock.clear()
    respx.mock.reset()


@pytest.fixture
def signed() -> Callable[..., tuple[bytes, str]]:
    """Return a helper that serializes a payload and signs the exact bytes."""

    def _signed(payload: dict[str, Any], secret: str = WEBHOOK_SECRET) -> tuple[bytes, str]:
        body = json.dumps(payload).encode("utf-8")
        return body, sign(body, secret)

    return _signed
