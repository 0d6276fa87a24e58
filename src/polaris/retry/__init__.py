# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Targeted and sweep retry of failed webhook deliveries."""
