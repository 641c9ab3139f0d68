"""
System initialization orchestrator for walkshare.

This script orchestrates the initialization of the system:
- Database connection check
- Schema creation (development; production uses `alembic upgrade head`)
- Seed data loading
- Verification of all tables

Designed to be idempotent and safe to run multiple times.
"""

import asyncio
import logging
import sys

from sqlalchemy import inspect, text

from database.connection import create_all, engine, get_async_session
from database.models import Base
from database.seeds import seed_all
from shared.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def check_database_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        logger.info("Checking database connection...")
        async with get_async_session() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
        logger.info("✓ Database connection successful")
        return True
    except Exception as e:
        logger.error(f"✗ Database connection failed: {e}")
        return False


async def check_tables_exist() -> dict[str, bool]:
    """
    Check which model tables exist in the database.

    Returns:
        dict: Mapping of table names to existence status
    """
    async with engine.connect() as conn:
        existing = set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))

    table_status = {table: table in existing for table in Base.metadata.tables}
    for table, exists in table_status.items():
        status_icon = "✓" if exists else "✗"
        logger.info(f"  {status_icon} Table '{table}': {'exists' if exists else 'missing'}")
    return table_status


async def run_system_initialization(create_schema: bool = True, seed: bool = True) -> bool:
    """
    Run connection check, optional schema creation and seeding, then verify tables.

    Returns:
        bool: True if every model table exists at the end
    """
    logger.info("=" * 60)
    logger.info("WALKSHARE - SYSTEM INITIALIZATION")
    logger.info("=" * 60)

    if not await check_database_connection():
        return False

    if create_schema:
        await create_all()

    table_status = await check_tables_exist()
    missing_tables = [t for t, exists in table_status.items() if not exists]
    if missing_tables:
        logger.error(f"Missing tables: {', '.join(missing_tables)}")
        return False

    if seed:
        await seed_all()

    logger.info("✓ SYSTEM INITIALIZATION PASSED")
    return True


async def main():
    """Main entry point for system initialization."""
    configure_logging()
    try:
        success = await run_system_initialization(seed="--no-seed" not in sys.argv)
        sys.exit(0 if success else 1)
    except Exception as e:
        logger.exception(f"Fatal error during system initialization: {e}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
