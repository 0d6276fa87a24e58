# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""CLI commands for replaying failed webhook deliveries."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer

from polaris.core.constants import WebhookType

app = typer.Typer()


@app.command(name="report")
def retry_report(
    report_type: Annotated[
        str, typer.Argument(help="greeting, org, organization, requirement, or requirements")
    ],
    report_id: Annotated[str, typer.Argument(help="Report row id")],
    webhook_type: Annotated[
        WebhookType,
        typer.Option("--webhook-type", "-w", help="Webhook endpoint to replay to"),
    ] = WebhookType.PRELIM_REPORT,
) -> None:
    """Replay the webhook of a single report."""
    # Only report webhooks can be rebuilt from a report row.
    if webhook_type == WebhookType.DYNAMIC_QUESTIONNAIRE:
        typer.echo(f"Invalid webhook_type: {webhook_type}", err=True)
        raise typer.Exit(1)
    ok = asyncio.run(_async_retry_report(report_type, report_id, webhook_type))
    if not ok:
        raise typer.Exit(1)


async def _async_retry_report(
    report_type: str, report_id: str, webhook_type: WebhookType
) -> bool:
    from polaris.core.config import get_settings
    from polaris.core.exceptions import UnknownReportTypeError
    from polaris.delivery.client import DeliveryClient
    from polaris.retry.service import RetryService
    from polaris.storage.database import close_db, init_db
    from polaris.storage.repositories.reports import ReportRepository
    from polaris.webhooks.validation import resolve_report_table

    try:
        table = resolve_report_table(report_type)
    except UnknownReportTypeError as exc:
        typer.echo(str(exc), err=True)
        return False

    settings = get_settings()
    db = await init_db(settings.db_path)

    try:
        service = RetryService(settings, ReportRepository(db), DeliveryClient(settings))
        result = await service.retry(table, report_id, webhook_type)
    finally:
        await close_db()

    if result.success:
        typer.echo(f"Retry succeeded for {table}:{report_id}")
        return True
    typer.echo(f"Retry failed for {table}:{report_id}: {result.error}", err=True)
    return False


@app.command(name="sweep")
def retry_sweep(
    max_attempts: Annotated[
        int | None,
        typer.Option("--max-attempts", help="Skip rows with this many attempts or more"),
    ] = None,
    retry_after_minutes: Annotated[
        int | None,
        typer.Option("--retry-after-minutes", help="Cooldown since the last attempt"),
    ] = None,
) -> None:
    """Retry every eligible failed webhook, one at a time."""
    asyncio.run(_async_retry_sweep(max_attempts, retry_after_minutes))


async def _async_retry_sweep(
    max_attempts: int | None, retry_after_minutes: int | None
) -> None:
    from rich.console import Console

    from polaris.core.config import get_settings
    from polaris.delivery.client import DeliveryClient
    from polaris.retry.service import RetryService
    from polaris.storage.database import close_db, init_db
    from polaris.storage.repositories.reports import ReportRepository

    settings = get_settings()
    db = await init_db(settings.db_path)

    try:
        service = RetryService(settings, ReportRepository(db), DeliveryClient(settings))
        result = await service.sweep_failed(max_attempts, retry_after_minutes)
    finally:
        await close_db()

    console = Console()
    console.print(
        f"Processed [bold]{result.processed}[/bold]: "
        f"[green]{result.successes} succeeded[/green], "
        f"[red]{result.failures} failed[/red]"
    )
    for error in result.errors:
        console.print(f"  [red]-[/red] {error}")
