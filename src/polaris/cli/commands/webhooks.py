# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI command for per-type webhook delivery statistics."""

from __future__ import annotations

import asyncio

import typer

app = typer.Typer()


@app.command()
def stats() -> None:
    """Show success, failed, pending, and retrying counts per report type."""
    asyncio.run(_async_stats())


async def _async_stats() -> None:
    from rich.console import Console
    from rich.table import Table

    from polaris.core.config import get_settings
    from polaris.storage.database import close_db, init_db
    from polaris.storage.repositories.reports import ReportRepository

    settings = get_settings()
    db = await init_db(settings.db_path)

    try:
        stats = await ReportRepository(db).statistics()
    finally:
        await close_db()

    table = Table(title="Webhook Delivery")
    table.add_column("Report type", style="cyan")
    for column in ("success", "failed", "pending", "retrying"):
        table.add_column(column.capitalize(), justify="right")

    for report_type, counts in stats.items():
        table.add_row(
            report_type,
            str(counts["success"]),
            str(counts["failed"]),
            str(counts["pending"]),
            str(counts["retrying"]),
        )

    Console().print(table)
