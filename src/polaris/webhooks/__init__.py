# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Inbound webhook pipeline: signing, validation, idempotency, and updates."""
