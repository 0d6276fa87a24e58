# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Typer CLI application root."""

from __future__ import annotations

from typing import Annotated

import typer

from polaris.cli.commands import audit as audit_cmd
from polaris.cli.commands import db, retry, webhooks

app = typer.Typer(
    name="polaris",
    help="Report-completion webhooks: serve, retry, and inspect deliveries",
    no_args_is_help=True,
)

app.add_typer(db.app, name="db", help="Database management")
app.add_typer(retry.app, name="retry", help="Retry failed webhook deliveries")
app.add_typer(audit_cmd.app, name="audit", help="Query the webhook audit trail")
app.add_typer(webhooks.app, name="webhooks", help="Webhook delivery statistics")


@app.callback()
def main(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override POLARIS_LOG_LEVEL"),
    ] = None,
) -> None:
    """Configure logging before any command runs."""
    from polaris.core.config import get_settings
    from polaris.core.logging import setup_logging

    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_format)


@app.command()
def serve(
    host: Annotated[
        str | None, typer.Option("--host", help="Bind address [POLARIS_API_HOST]")
    ] = None,
    port: Annotated[
        int | None, typer.Option("--port", "-p", help="Bind port [POLARIS_API_PORT]")
    ] = None,
    workers: Annotated[
        int | None, typer.Option("--workers", "-w", help="Worker count [POLARIS_API_WORKERS]")
    ] = None,
    no_scheduler: Annotated[
        bool, typer.Option("--no-scheduler", help="Disable the background retry sweep")
    ] = False,
) -> None:
    """Start the polaris API server."""
    import uvicorn

    from polaris.core.config import get_settings

    settings = get_settings()

    if no_scheduler:
        # Pass flag via environment; the app factory reads it
        import os
        os.environ["POLARIS_NO_SCHEDULER"] = "1"

    uvicorn.run(
        "polaris.api.app:_create_app_from_env",
        host=host or settings.api_host,
        port=port or settings.api_port,
        workers=workers or settings.api_workers,
        factory=True,
    )
