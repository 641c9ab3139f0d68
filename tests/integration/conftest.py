"""
Integration test fixtures.

Every test gets a freshly created schema on the SQLite database configured
in tests/conftest.py, plus factories for walkers, pets and appointments.
"""

from datetime import date, time
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from database.connection import AsyncSessionLocal, create_all, drop_all
from database.models import (
    Appointment,
    AppointmentShare,
    ConnectionStatus,
    Pet,
    User,
    WalkerConnection,
)

MONDAY = date(2025, 1, 6)


@pytest.fixture(autouse=True)
async def setup_database():
    """Recreate the schema before each test."""
    await drop_all()
    await create_all()
    yield


@pytest.fixture
async def walkers():
    """
    Three walkers: owner and cover are connected (accepted), stranger is not.
    """
    async with AsyncSessionLocal() as session:
        owner = User(name="Dana Brooks", username="dana", email="dana@example.com")
        cover = User(name="Riley Chen", username="riley", email="riley@example.com")
        stranger = User(name="Sam Ortiz", username="sam", email="sam@example.com")
        session.add_all([owner, cover, stranger])
        await session.flush()

        session.add(
            WalkerConnection(
                user_id=owner.id,
                connected_user_id=cover.id,
                status=ConnectionStatus.ACCEPTED,
            )
        )
        await session.commit()

    return SimpleNamespace(owner=owner, cover=cover, stranger=stranger)


@pytest.fixture
async def pet(walkers):
    """Pet owned by the owner walker."""
    async with AsyncSessionLocal() as session:
        biscuit = Pet(user_id=walkers.owner.id, name="Biscuit", address="12 Elm St")
        session.add(biscuit)
        await session.commit()
    return biscuit


@pytest.fixture
def make_appointment(walkers, pet):
    """
    Factory for appointments owned by the owner walker.

    Defaults to a one-time 60 minute walk on MONDAY priced at 5000 cents.
    """

    async def _make(**overrides) -> Appointment:
        data = {
            "user_id": walkers.owner.id,
            "pet_id": pet.id,
            "recurring": False,
            "appointment_date": MONDAY,
            "start_time": time(9, 0),
            "end_time": time(10, 0),
            "duration": 60,
            "price": 5000,
        }
        data.update(overrides)
        async with AsyncSessionLocal() as session:
            appointment = Appointment(**data)
            session.add(appointment)
            await session.commit()
        return appointment

    return _make


@pytest.fixture
async def one_time_appointment(make_appointment):
    return await make_appointment()


@pytest.fixture
async def recurring_template(make_appointment):
    """Monday/Wednesday recurring template."""
    return await make_appointment(
        recurring=True,
        appointment_date=None,
        monday=True,
        wednesday=True,
    )


@pytest.fixture
def fetch():
    """Re-read a row from the database by primary key."""

    async def _fetch(model, id_):
        async with AsyncSessionLocal() as session:
            return await session.get(model, id_)

    return _fetch


@pytest.fixture
def shares_for():
    """All shares of one appointment, oldest first."""

    async def _shares_for(appointment_id):
        async with AsyncSessionLocal() as session:
            result = await session.execute(
                select(AppointmentShare)
                .where(AppointmentShare.appointment_id == appointment_id)
                .order_by(AppointmentShare.created_at.asc())
            )
            return list(result.scalars().all())

    return _shares_for
