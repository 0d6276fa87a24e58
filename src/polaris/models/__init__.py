# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Pydantic models for report rows and webhook traffic."""

from polaris.models.report import ReportMetadata, ReportRecord, merge_metadata
from polaris.models.webhook import (
    CompletionPayload,
    DeliveryResponse,
    DynamicQuestionnairePayload,
    FailedWebhook,
    RetryResult,
    SweepResult,
    ValidatedPayload,
)

__all__ = [
    "CompletionPayload",
    "DeliveryResponse",
    "DynamicQuestionnairePayload",
    "FailedWebhook",
    "ReportMetadata",
    "ReportRecord",
    "RetryResult",
    "SweepResult",
    "ValidatedPayload",
    "merge_metadata",
]
