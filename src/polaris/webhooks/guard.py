# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Idempotency check applied before a delivery mutates a report row."""

from __future__ import annotations

from polaris.models.report import ReportRecord


def should_short_circuit(existing: ReportRecord) -> bool:
    """True when the row is already delivered and must not be mutated again."""
    return existing.is_delivered


def attempt_number(existing: ReportRecord | None) -> int:
    """Attempt number to audit for a delivery against *existing*.

    A delivery for a row that does not exist is always attempt 1.
    """
    if existing is None:
        return 1
    return existing.webhook_attempts + 1
