# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI commands for querying the webhook audit trail."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer

app = typer.Typer()


@app.command(name="list")
def audit_list(
    job_id: Annotated[
        str | None,
        typer.Option("--job-id", "-j", help="Filter by job id"),
    ] = None,
    report_id: Annotated[
        str | None,
        typer.Option("--report-id", "-r", help="Filter by report or summary id"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Maximum number of records to show"),
    ] = 50,
) -> None:
    """List webhook audit records, newest first."""
    asyncio.run(_async_audit_list(job_id, report_id, limit))


async def _async_audit_list(
    job_id: str | None,
    report_id: str | None,
    limit: int,
) -> None:
    from rich.console import Console
    from rich.table import Table

    from polaris.audit.store import WebhookAuditStore
    from polaris.core.config import get_settings
    from polaris.storage.database import close_db, init_db

    settings = get_settings()
    db = await init_db(settings.db_path)

    try:
        store = WebhookAuditStore(db)
        records = await store.list_records(job_id=job_id, report_id=report_id, limit=limit)

        console = Console()

        if not records:
            console.print("[dim]No webhook audit records found.[/dim]")
            return

        table = Table(title="Webhook Audit")
        table.add_column("Created", style="dim", no_wrap=True)
        table.add_column("Type", style="cyan")
        table.add_column("Job", style="yellow")
        table.add_column("Report", style="green")
        table.add_column("Status", justify="right")
        table.add_column("Attempt", justify="right")
        table.add_column("Error")

        for rec in records:
            status = rec.get("response_status") or 0
            style = "green" if 200 <= status < 300 else "red"
            table.add_row(
                str(rec.get("created_at", ""))[:19],
                rec.get("webhook_type", ""),
                rec.get("job_id", ""),
                rec.get("report_id") or "",
                f"[{style}]{status}[/{style}]",
                str(rec.get("attempt_number", "")),
                rec.get("error_message") or "",
            )

        console.print(table)
        console.print(f"\n[dim]Showing {len(records)} record(s)[/dim]")
    finally:
        await close_db()
