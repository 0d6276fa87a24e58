# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Versioned database migration system for the polaris database.

Applied versions are tracked in a ``schema_migrations`` table.  Each
migration is idempotent and is committed together with its version row.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

import aiosqlite

from polaris.core.constants import REPORT_TABLES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Migration registry infrastructure
# ---------------------------------------------------------------------------

MigrationFunc = Callable[[aiosqlite.Connection], Coroutine[Any, Any, None]]


@dataclass(frozen=True, slots=True)
class Migration:
    """A single database migration."""

    version: int
    name: str
    func: MigrationFunc


# Ordered list of all migrations.  New migrations are appended here.
_MIGRATIONS: list[Migration] = []


def _register(version: int, name: str) -> Callable[[MigrationFunc], MigrationFunc]:
    """Decorator that registers a migration function."""

    def decorator(fn: MigrationFunc) -> MigrationFunc:
        _MIGRATIONS.append(Migration(version=version, name=name, func=fn))
        return fn

    return decorator


# ---------------------------------------------------------------------------
# Schema-migrations bookkeeping table
# ---------------------------------------------------------------------------

_CREATE_SCHEMA_MIGRATIONS = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


async def _ensure_migrations_table(db: aiosqlite.Connection) -> None:
    """Create the ``schema_migrations`` table if it does not exist."""
    await db.execute(_CREATE_SCHEMA_MIGRATIONS)
    await db.commit()


async def get_current_version(db: aiosqlite.Connection) -> int:
    """Return the highest applied migration version, or 0 if none."""
    await _ensure_migrations_table(db)
    cursor = await db.execute(
        "SELECT COALESCE(MAX(version), 0) FROM schema_migrations"
    )
    row = await cursor.fetchone()
    return int(row[0]) if row else 0


async def get_pending_migrations(db: aiosqlite.Connection) -> list[Migration]:
    """Return migrations that have not yet been applied."""
    current = await get_current_version(db)
    return [m for m in _MIGRATIONS if m.version > current]


async def run_migrations(db: aiosqlite.Connection) -> list[Migration]:
    """Run all pending migrations in order and return those applied."""
    await _ensure_migrations_table(db)

    current = await get_current_version(db)
    applied: list[Migration] = []

    for migration in _MIGRATIONS:
        if migration.version <= current:
            continue

        logger.info(
            "Applying migration %03d: %s", migration.version, migration.name
        )

        await migration.func(db)

        await db.execute(
            "INSERT OR IGNORE INTO schema_migrations (version, name) VALUES (?, ?)",
            (migration.version, migration.name),
        )
        await db.commit()

        applied.append(migration)
        logger.info("Migration %03d applied successfully.", migration.version)

    return applied


async def _column_names(db: aiosqlite.Connection, table: str) -> set[str]:
    cursor = await db.execute(f"PRAGMA table_info({table})")
    rows = await cursor.fetchall()
    return {row[1] for row in rows}


async def _add_column_if_missing(
    db: aiosqlite.Connection, table: str, column: str, definition: str
) -> None:
    """SQLite has no ``ADD COLUMN IF NOT EXISTS``; check table_info first."""
    if column in await _column_names(db, table):
        return
    await db.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")


# =========================================================================
# Migration 001 -- Report tables and summaries
# =========================================================================

_CREATE_REPORT_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    summary_id TEXT,
    user_data TEXT DEFAULT '{{}}',
    research_report TEXT,
    research_status TEXT NOT NULL DEFAULT 'pending'
        CHECK (research_status IN ('pending', 'completed', 'failed')),
    research_metadata TEXT DEFAULT '{{}}',
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_CREATE_SUMMARIES = """
CREATE TABLE IF NOT EXISTS polaris_summaries (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    summary_content TEXT,
    dynamic_questionnaire_report TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


@_register(1, "report_tables")
async def _migration_001_report_tables(db: aiosqlite.Connection) -> None:
    """Create the three report tables and the summaries table."""
    for table in REPORT_TABLES:
        await db.execute(_CREATE_REPORT_TABLE.format(table=table))
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{table}_summary_id ON {table}(summary_id);"
        )
    await db.execute(_CREATE_SUMMARIES)


# =========================================================================
# Migration 002 -- Webhook tracking columns and the webhook_audit table
# =========================================================================

_WEBHOOK_COLUMNS: list[tuple[str, str]] = [
    ("webhook_status", "TEXT DEFAULT 'pending'"),
    ("webhook_attempts", "INTEGER DEFAULT 0"),
    ("webhook_last_attempt", "TEXT"),
    ("webhook_response", "TEXT DEFAULT '{}'"),
    ("webhook_job_id", "TEXT"),
]

_CREATE_WEBHOOK_AUDIT = """
CREATE TABLE IF NOT EXISTS webhook_audit (
    id TEXT PRIMARY KEY,
    webhook_type TEXT NOT NULL
        CHECK (webhook_type IN ('prelim-report', 'final-report', 'dynamic-questionnaire')),
    job_id TEXT NOT NULL,
    report_id TEXT,
    report_table TEXT,
    request_payload TEXT,
    response_status INTEGER,
    response_body TEXT,
    error_message TEXT,
    attempt_number INTEGER DEFAULT 1,
    created_at TEXT NOT NULL
);
"""

_INDEXES_002 = [
    "CREATE INDEX IF NOT EXISTS idx_webhook_audit_job_id ON webhook_audit(job_id);",
    "CREATE INDEX IF NOT EXISTS idx_webhook_audit_report_id ON webhook_audit(report_id);",
    "CREATE INDEX IF NOT EXISTS idx_webhook_audit_type ON webhook_audit(webhook_type);",
    "CREATE INDEX IF NOT EXISTS idx_webhook_audit_created ON webhook_audit(created_at);",
]


@_register(2, "webhook_support")
async def _migration_002_webhook_support(db: aiosqlite.Connection) -> None:
    """Add webhook bookkeeping to every report table and create the audit table."""
    for table in REPORT_TABLES:
        for column, definition in _WEBHOOK_COLUMNS:
            await _add_column_if_missing(db, table, column, definition)
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{table}_webhook_status ON {table}(webhook_status);"
        )
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{table}_webhook_job_id ON {table}(webhook_job_id);"
        )

    await db.execute(_CREATE_WEBHOOK_AUDIT)
    for idx_sql in _INDEXES_002:
        await db.execute(idx_sql)
