# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""HTTP API: inbound webhooks, retry control, and operator endpoints."""
