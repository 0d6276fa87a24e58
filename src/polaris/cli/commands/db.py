# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Report-store schema commands: init, migrate, status."""

from __future__ import annotations

import asyncio

import typer

app = typer.Typer()


@app.command()
def init() -> None:
    """Create the report, summary, and audit tables."""
    asyncio.run(_init_db())


async def _init_db() -> None:
    from polaris.core.config import get_settings
    from polaris.storage.database import close_db, init_db
    from polaris.storage.migrations import get_current_version

    settings = get_settings()
    typer.echo(f"Initializing database at {settings.db_path}...")
    db = await init_db(settings.db_path)
    try:
        version = await get_current_version(db)
    finally:
        await close_db()
    typer.echo(f"Database initialized at schema version {version}.")


@app.command()
def migrate() -> None:
    """Apply pending database migrations.

    Shows the current schema version and any pending migrations,
    then applies them in order.
    """
    asyncio.run(_migrate_db())


async def _migrate_db() -> None:
    from polaris.core.config import get_settings
    from polaris.storage.database import close_db, init_db
    from polaris.storage.migrations import (
        get_current_version,
        get_pending_migrations,
        run_migrations,
    )

    settings = get_settings()
    # Initialize without auto-migrate so we can show status first
    db = await init_db(settings.db_path, auto_migrate=False)

    try:
        current = await get_current_version(db)
        pending = await get_pending_migrations(db)

        typer.echo(f"Database: {settings.db_path}")
        typer.echo(f"Current schema version: {current}")

        if not pending:
            typer.echo("No pending migrations.")
            return

        typer.echo(f"Pending migrations: {len(pending)}")
        for m in pending:
            typer.echo(f"  {m.version:03d}: {m.name}")

        typer.echo()
        applied = await run_migrations(db)

        for m in applied:
            typer.echo(f"Applied migration {m.version:03d}: {m.name}")

        new_version = await get_current_version(db)
        typer.echo(f"\nSchema version is now: {new_version}")
    finally:
        await close_db()


@app.command()
def status() -> None:
    """Show the schema version and row counts of the webhook tables."""
    asyncio.run(_db_status())


async def _db_status() -> None:
    from polaris.core.config import get_settings
    from polaris.core.constants import REPORT_TABLES, SUMMARIES_TABLE
    from polaris.storage.database import close_db, init_db
    from polaris.storage.migrations import get_current_version, get_pending_migrations

    settings = get_settings()
    db = await init_db(settings.db_path, auto_migrate=False)

    try:
        version = await get_current_version(db)
        pending = await get_pending_migrations(db)
        typer.echo(f"Database: {settings.db_path}")
        typer.echo(f"Schema version: {version} ({len(pending)} pending)")
        if pending:
            typer.echo("Run 'polaris db migrate' before serving webhooks.")
            return

        for table in (*REPORT_TABLES, SUMMARIES_TABLE, "webhook_audit"):
            cursor = await db.execute(f"SELECT COUNT(*) FROM {table}")  # noqa: S608
            row = await cursor.fetchone()
            typer.echo(f"  {table}: {row[0] if row else 0} rows")
    finally:
        await close_db()
