# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Report record and research-metadata models."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from polaris.core.constants import ResearchStatus, WebhookStatus


class ReportMetadata(BaseModel):
    """Research metadata with the protocol keys named explicitly.

    Keys the protocol does not know about (anything the job runner sends in
    ``research_metadata`` or ``final_data``) live in ``extra`` and are
    flattened back alongside the known keys by :meth:`to_dict`.
    """

    # Values are stored as delivered; only the updater decides what it stamps.
    webhook_updated: Any = None
    webhook_timestamp: Any = None
    webhook_type: Any = None
    job_id: Any = None
    error: Any = None
    final_completion: Any = None
    processing_stage: Any = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def known_keys(cls) -> frozenset[str]:
        return frozenset(name for name in cls.model_fields if name != "extra")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ReportMetadata:
        known = cls.known_keys()
        data = dict(data or {})
        fields = {k: data.pop(k) for k in list(data) if k in known}
        return cls(**fields, extra=data)

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.extra)
        for key in self.known_keys():
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


def merge_metadata(*layers: Mapping[str, Any] | None) -> ReportMetadata:
    """Merge metadata layers left to right, last writer wins per top-level key.

    Nested objects are replaced, not merged.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return ReportMetadata.from_dict(merged)


class ReportRecord(BaseModel):
    """One row of a report table (greeting, org, or requirement)."""

    id: str
    user_id: str | None = None
    summary_id: str | None = None
    research_report: str | None = None
    research_status: ResearchStatus = ResearchStatus.PENDING
    research_metadata: dict[str, Any] = Field(default_factory=dict)
    webhook_status: WebhookStatus = WebhookStatus.PENDING
    webhook_job_id: str | None = None
    webhook_attempts: int = 0
    webhook_last_attempt: datetime | None = None
    webhook_response: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def content(self) -> str:
        return self.research_report or ""

    @property
    def is_delivered(self) -> bool:
        """True once the row is both business-complete and delivery-successful."""
        return (
            self.webhook_status == WebhookStatus.SUCCESS
            and self.research_status == ResearchStatus.COMPLETED
        )
