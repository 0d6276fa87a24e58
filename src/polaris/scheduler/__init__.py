# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Background scheduling of the failed-webhook sweep."""
