# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""SQLite storage layer: connection, migrations, and repositories."""
