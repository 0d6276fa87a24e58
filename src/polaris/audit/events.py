# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Audit record model for inbound webhook deliveries."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from polaris.core.constants import WebhookType


class WebhookAuditRecord(BaseModel):
    """One append-only row per processed webhook request.

    ``attempt_number`` mirrors the report row's attempt counter at the time
    the request was read, not the order in which audit rows were written.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    webhook_type: WebhookType
    job_id: str = "unknown"
    report_id: str | None = None
    report_table: str | None = None
    request_payload: Any = None
    response_status: int
    response_body: Any = None
    error_message: str | None = None
    attempt_number: int = 1
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
