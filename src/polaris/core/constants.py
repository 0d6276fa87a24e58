# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Enumerations, table names, and protocol constants."""

from enum import StrEnum


class ResearchStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class WebhookStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    SUCCESS = "success"
    FAILED = "failed"
    RETRYING = "retrying"


class WebhookType(StrEnum):
    PRELIM_REPORT = "prelim-report"
    FINAL_REPORT = "final-report"
    DYNAMIC_QUESTIONNAIRE = "dynamic-questionnaire"


GREETING_TABLE = "greeting_reports"
ORG_TABLE = "org_reports"
REQUIREMENT_TABLE = "requirement_reports"
SUMMARIES_TABLE = "polaris_summaries"

REPORT_TABLES: tuple[str, ...] = (GREETING_TABLE, ORG_TABLE, REQUIREMENT_TABLE)

# Accepted report_type spellings (lower-cased) -> physical table
REPORT_TYPE_TABLES: dict[str, str] = {
    "greeting": GREETING_TABLE,
    "org": ORG_TABLE,
    "organization": ORG_TABLE,
    "requirement": REQUIREMENT_TABLE,
    "requirements": REQUIREMENT_TABLE,
}

SIGNATURE_HEADER = "X-Webhook-Signature"
SIGNATURE_PREFIX = "sha256="

# Hard ceiling for targeted retries; not configurable per call.
MAX_WEBHOOK_ATTEMPTS = 3

DEFAULT_RETRY_AFTER_MINUTES = 5
DEFAULT_SWEEP_DELAY_MS = 100
DEFAULT_DELIVERY_TIMEOUT = 10.0
