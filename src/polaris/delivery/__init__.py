# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Signed outbound delivery of completion payloads."""

from polaris.delivery.client import DeliveryClient

__all__ = ["DeliveryClient"]
