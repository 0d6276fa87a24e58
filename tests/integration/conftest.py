# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Fixtures for driving the FastAPI app over ASGI."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from polaris.api.app import create_app
from polaris.storage.database import close_db, init_db


@pytest.fixture
def app(settings):
    """Create a FastAPI app with a temporary database and no background sweep."""
    return create_app(settings, enable_scheduler=False)


@pytest.fixture
async def client(app, settings):
    """Provide an async HTTP client bound to the test app, with DB initialized."""
    import polaris.storage.database as db_mod

    db_mod._db = None
    await init_db(settings.db_path)
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        await close_db()


@pytest.fixture
async def repo(client):
    from polaris.storage.database import get_db
    from polaris.storage.repositories.reports import ReportRepository

    return ReportRepository(await get_db())


@pytest.fixture
async def summaries(client):
    from polaris.storage.database import get_db
    from polaris.storage.repositories.summaries import SummaryRepository

    return SummaryRepository(await get_db())
