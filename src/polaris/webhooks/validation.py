# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Parsing and validation of inbound webhook bodies."""

from __future__ import annotations

import json
from typing import Any

import pydantic

from polaris.core.constants import REPORT_TYPE_TABLES
from polaris.core.exceptions import (
    InvalidJSONError,
    MissingFieldsError,
    UnknownReportTypeError,
    ValidationError,
)
from polaris.models.webhook import (
    CompletionPayload,
    DynamicQuestionnairePayload,
    ValidatedPayload,
)

COMPLETION_REQUIRED_FIELDS = ("job_id", "report_id", "report_type")
QUESTIONNAIRE_REQUIRED_FIELDS = ("job_id", "summary_id", "status")


def parse_body(raw_body: bytes) -> dict[str, Any]:
    """Decode a raw request body into a JSON object."""
    try:
        data = json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidJSONError("Invalid JSON payload") from exc
    if not isinstance(data, dict):
        raise InvalidJSONError("Invalid JSON payload")
    return data


def resolve_report_table(report_type: object) -> str:
    """Map a report_type (case-insensitive) to its physical table."""
    table = (
        REPORT_TYPE_TABLES.get(report_type.strip().lower())
        if isinstance(report_type, str)
        else None
    )
    if table is None:
        raise UnknownReportTypeError(report_type)
    return table


def _check_required(data: dict[str, Any], fields: tuple[str, ...]) -> None:
    # Empty strings count as missing, as does a JSON null.
    if any(data.get(f) in (None, "") for f in fields):
        raise MissingFieldsError(list(fields))


def validate(data: dict[str, Any]) -> ValidatedPayload:
    """Validate a completion payload and resolve its report table.

    Required fields are checked before the report type, so a body missing
    ``report_type`` is reported as missing fields rather than unknown type.
    """
    _check_required(data, COMPLETION_REQUIRED_FIELDS)
    table = resolve_report_table(data["report_type"])
    try:
        payload = CompletionPayload.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(_describe(exc)) from exc
    return ValidatedPayload(payload=payload, report_table=table)


def validate_questionnaire(data: dict[str, Any]) -> DynamicQuestionnairePayload:
    """Validate a dynamic-questionnaire payload."""
    _check_required(data, QUESTIONNAIRE_REQUIRED_FIELDS)
    try:
        return DynamicQuestionnairePayload.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


def _describe(exc: pydantic.ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"Invalid field {location}: {first['msg']}"
