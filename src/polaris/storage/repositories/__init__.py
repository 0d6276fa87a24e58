# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Table-level repositories."""

from polaris.storage.repositories.reports import ReportRepository
from polaris.storage.repositories.summaries import SummaryRepository

__all__ = ["ReportRepository", "SummaryRepository"]
