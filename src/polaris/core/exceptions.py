# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Custom exception hierarchy for polaris."""


class PolarisError(Exception):
    """Base exception for all polaris errors."""


class ConfigurationError(PolarisError):
    """Invalid or missing configuration."""


class StorageError(PolarisError):
    """Database or storage operation failed."""


class PersistenceError(StorageError):
    """A write to a report or summary row failed."""


class AuthenticationError(PolarisError):
    """Webhook signature missing or invalid."""


class ValidationError(PolarisError):
    """Webhook payload rejected before any lookup."""


class InvalidJSONError(ValidationError):
    """Request body is not a JSON object."""


class MissingFieldsError(ValidationError):
    """One or more required correlation fields are absent."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = fields
        super().__init__(f"Missing required fields: {', '.join(fields)}")


class UnknownReportTypeError(ValidationError):
    """report_type does not map to a report table."""

    def __init__(self, report_type: object) -> None:
        self.report_type = report_type
        super().__init__(f"Invalid report_type: {report_type}")


class NotFoundError(PolarisError):
    """No report row matches the delivery."""


class DeliveryError(PolarisError):
    """Outbound webhook replay could not be completed."""
