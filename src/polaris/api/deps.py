# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""FastAPI dependencies that hand route handlers their collaborators.

Settings are attached to the application by :func:`polaris.api.app.create_app`
and read back from ``request.app.state``; nothing here reads the
environment.
"""

from __future__ import annotations

from fastapi import Depends, Request

from polaris.audit.logger import WebhookAuditLogger, get_audit_logger
from polaris.core.config import Settings
from polaris.core.constants import WebhookType
from polaris.delivery.client import DeliveryClient
from polaris.retry.service import RetryService
from polaris.storage.database import get_db
from polaris.storage.repositories.reports import ReportRepository
from polaris.storage.repositories.summaries import SummaryRepository
from polaris.webhooks.processor import QuestionnaireWebhookProcessor, ReportWebhookProcessor


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_report_repository() -> ReportRepository:
    return ReportRepository(await get_db())


async def get_summary_repository() -> SummaryRepository:
    return SummaryRepository(await get_db())


def get_webhook_audit_logger() -> WebhookAuditLogger:
    return get_audit_logger()


def get_prelim_processor(
    settings: Settings = Depends(get_app_settings),
    repo: ReportRepository = Depends(get_report_repository),
    audit: WebhookAuditLogger = Depends(get_webhook_audit_logger),
) -> ReportWebhookProcessor:
    return ReportWebhookProcessor(settings, repo, audit, WebhookType.PRELIM_REPORT)


def get_final_processor(
    settings: Settings = Depends(get_app_settings),
    repo: ReportRepository = Depends(get_report_repository),
    audit: WebhookAuditLogger = Depends(get_webhook_audit_logger),
) -> ReportWebhookProcessor:
    return ReportWebhookProcessor(settings, repo, audit, WebhookType.FINAL_REPORT)


def get_questionnaire_processor(
    settings: Settings = Depends(get_app_settings),
    summaries: SummaryRepository = Depends(get_summary_repository),
    audit: WebhookAuditLogger = Depends(get_webhook_audit_logger),
) -> QuestionnaireWebhookProcessor:
    return QuestionnaireWebhookProcessor(settings, summaries, audit)


def get_retry_service(
    settings: Settings = Depends(get_app_settings),
    repo: ReportRepository = Depends(get_report_repository),
) -> RetryService:
    return RetryService(settings, repo, DeliveryClient(settings))
