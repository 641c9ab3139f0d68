"""
Integration tests for seeding and system initialization.
"""

import pytest
from sqlalchemy import func, select

from database.connection import AsyncSessionLocal, drop_all
from database.models import Appointment, Base, Pet, User, WalkerConnection
from database.seeds import seed_all
from scripts.init_system import (
    check_database_connection,
    check_tables_exist,
    run_system_initialization,
)
from sharing.services.connection_service import are_connected


async def count(model) -> int:
    async with AsyncSessionLocal() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestSeeds:
    """Tests for the seed scripts."""

    @pytest.mark.asyncio
    async def test_seed_all_creates_demo_data(self):
        await seed_all()

        assert await count(User) == 2
        assert await count(WalkerConnection) == 1
        assert await count(Pet) == 1

        async with AsyncSessionLocal() as session:
            appointments = (await session.execute(select(Appointment))).scalars().all()
            dana = (
                await session.execute(select(User).where(User.username == "dana"))
            ).scalar_one()
            riley = (
                await session.execute(select(User).where(User.username == "riley"))
            ).scalar_one()
            assert await are_connected(session, riley.id, dana.id) is True

        assert sorted(a.recurring for a in appointments) == [False, True]

    @pytest.mark.asyncio
    async def test_seed_all_is_idempotent(self):
        await seed_all()
        await seed_all()

        assert await count(User) == 2
        assert await count(WalkerConnection) == 1
        assert await count(Appointment) == 2


class TestInitSystem:
    """Tests for scripts.init_system."""

    @pytest.mark.asyncio
    async def test_database_connection(self):
        assert await check_database_connection() is True

    @pytest.mark.asyncio
    async def test_missing_tables_are_reported(self):
        await drop_all()

        status = await check_tables_exist()

        assert set(status) == set(Base.metadata.tables)
        assert not any(status.values())

    @pytest.mark.asyncio
    async def test_initialization_from_empty_database(self):
        await drop_all()

        assert await run_system_initialization() is True
        assert all((await check_tables_exist()).values())
        assert await count(User) == 2

    @pytest.mark.asyncio
    async def test_initialization_without_seed(self):
        assert await run_system_initialization(seed=False) is True
        assert await count(User) == 0
