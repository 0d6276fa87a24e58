# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Database connection management for the report store.

A single :mod:`aiosqlite` connection is shared by the API process, the
background sweep, and the CLI commands.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from polaris.core.exceptions import StorageError
from polaris.storage.migrations import run_migrations

_db: aiosqlite.Connection | None = None

BUSY_TIMEOUT_MS = 5000


async def init_db(
    db_path: Path | str = "polaris.db",
    *,
    auto_migrate: bool = True,
) -> aiosqlite.Connection:
    """Open the shared report-store connection and return it.

    Enables WAL mode, foreign keys and a busy timeout so a sweep running in
    one process waits for a webhook write in another instead of failing.
    When *auto_migrate* is True (the default), the report, summary and
    audit tables are migrated to the latest schema.
    """
    global _db

    if _db is not None:
        return _db

    try:
        _db = await aiosqlite.connect(str(db_path))
        _db.row_factory = aiosqlite.Row

        await _db.execute("PRAGMA journal_mode=WAL")
        await _db.execute("PRAGMA foreign_keys=ON")
        # The API, the background sweep and CLI retries write the same file
        await _db.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")

        if auto_migrate:
            await run_migrations(_db)

        return _db
    except Exception as exc:
        _db = None
        msg = f"Failed to initialize database at {db_path}: {exc}"
        raise StorageError(msg) from exc


async def get_db() -> aiosqlite.Connection:
    """Get the active database connection.

    Raises StorageError if the database has not been initialized.
    """
    if _db is None:
        raise StorageError("Database not initialized. Call init_db() first.")
    return _db


async def close_db() -> None:
    """Close the database connection."""
    global _db

    if _db is not None:
        await _db.close()
        _db = None


async def ping() -> str:
    """Return ``"connected"`` when the report store answers, else the error text."""
    try:
        db = await get_db()
        cursor = await db.execute("SELECT COUNT(*) FROM schema_migrations")
        await cursor.fetchone()
    except (StorageError, aiosqlite.Error) as exc:
        return str(exc)
    return "connected"
