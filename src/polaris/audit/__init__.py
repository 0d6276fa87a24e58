# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Append-only audit trail of every inbound webhook delivery."""
