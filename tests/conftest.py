"""
Test configuration and fixtures.

This module sets up test environment and provides shared fixtures for all tests.
"""

import os
import tempfile
from pathlib import Path

import pytest

# Point DATABASE_URL at a throwaway SQLite file instead of PostgreSQL.
# Must be set BEFORE any imports of database.connection or shared.config
os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / f'walkshare_test_{os.getpid()}.db'}"
)
os.environ["LOG_LEVEL"] = "DEBUG"


@pytest.fixture(scope="function", autouse=True)
async def cleanup_engine():
    """
    Dispose the database engine after each test.

    Each test runs on its own event loop; pooled connections must not leak
    into the next one.
    """
    yield
    from database.connection import engine
    await engine.dispose()
