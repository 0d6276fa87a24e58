# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Inbound webhook payloads and retry/delivery result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from polaris.core.constants import ResearchStatus


class CompletionPayload(BaseModel):
    """Body of a preliminary or final report-completion webhook."""

    model_config = ConfigDict(extra="allow")

    job_id: str
    report_id: str
    report_type: str
    research_report: str | None = None
    research_status: ResearchStatus | None = None
    # JSON null and an absent key both mean "nothing to merge"
    research_metadata: dict[str, Any] | None = None
    error: str | None = None
    final_data: dict[str, Any] | None = None


class ValidatedPayload(BaseModel):
    """A completion payload together with the table its report lives in."""

    payload: CompletionPayload
    report_table: str


class DynamicQuestionnairePayload(BaseModel):
    """Body of the dynamic-questionnaire webhook."""

    model_config = ConfigDict(extra="allow")

    job_id: str
    summary_id: str
    questionnaire: Any = None
    status: str
    metadata: dict[str, Any] | None = None
    error: str | None = None


class RetryResult(BaseModel):
    """Outcome of a targeted retry; refusals are results, not exceptions."""

    success: bool
    error: str | None = None
    response: Any = None


class SweepResult(BaseModel):
    """Aggregate outcome of one failed-webhook sweep."""

    processed: int = 0
    successes: int = 0
    failures: int = 0
    errors: list[str] = Field(default_factory=list)


class FailedWebhook(BaseModel):
    """A sweep candidate as returned by the failed-webhook query."""

    table_name: str
    record_id: str
    job_id: str | None = None
    webhook_attempts: int = 0
    last_attempt: str | None = None


class DeliveryResponse(BaseModel):
    """Status and decoded body of one outbound POST."""

    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
