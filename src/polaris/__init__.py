# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""polaris - report-completion webhooks for the Polaris needs-analysis service."""

__version__ = "0.4.0"

from polaris.webhooks.signing import sign, verify

__all__ = [
    "__version__",
    "sign",
    "verify",
]
