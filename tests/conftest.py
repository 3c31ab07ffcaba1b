"""Root test fixtures shared across all test types.

This conftest only prepares the environment; database fixtures live in
tests/integration/conftest.py.
"""

import os

# Settings are read at import time, so the environment goes first
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-the-simflow-suite")
os.environ.setdefault("ENABLE_METRICS", "false")
# Cheap hashing keeps the suite fast
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "8192")

# ruff: noqa: E402 - Imports must be after env var setup
from src.simflow.core.config import get_settings

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()
