"""
Seed script for pets and appointments tables.

Creates one pet for the owner walker with:
- a recurring Monday/Wednesday template (60 minutes, $50.00)
- a one-time appointment next Friday (30 minutes, $30.00)
"""

import asyncio
from datetime import time, timedelta

from sqlalchemy import select

from database.connection import AsyncSessionLocal
from database.models import Appointment, Pet, User
from sharing.services.recurrence_service import local_today

PET_NAME = "Biscuit"


async def seed_appointments(owner_username: str = "dana") -> None:
    """Seed the demo pet and appointments for a walker (skips if the pet exists)."""
    async with AsyncSessionLocal() as session:
        async with session.begin():
            owner = (
                await session.execute(select(User).where(User.username == owner_username))
            ).scalar_one_or_none()
            if owner is None:
                print(f"⚠ Walker '{owner_username}' not found, run seed_walkers first")
                return

            existing = await session.execute(
                select(Pet).where(Pet.user_id == owner.id, Pet.name == PET_NAME)
            )
            if existing.scalar_one_or_none() is not None:
                print(f"⊙ Pet already exists: {PET_NAME}")
                return

            pet = Pet(user_id=owner.id, name=PET_NAME, address="12 Elm Street")
            session.add(pet)
            await session.flush()

            today = local_today()
            next_friday = today + timedelta(days=(4 - today.weekday()) % 7 or 7)

            session.add_all([
                Appointment(
                    user_id=owner.id,
                    pet_id=pet.id,
                    recurring=True,
                    monday=True,
                    wednesday=True,
                    start_time=time(9, 0),
                    end_time=time(10, 0),
                    duration=60,
                    price=5000,
                ),
                Appointment(
                    user_id=owner.id,
                    pet_id=pet.id,
                    recurring=False,
                    appointment_date=next_friday,
                    start_time=time(14, 0),
                    end_time=time(14, 30),
                    duration=30,
                    price=3000,
                ),
            ])
            print(f"✓ Created pet {PET_NAME} with a recurring and a one-time appointment")


if __name__ == "__main__":
    print("Seeding appointments...")
    print("=" * 60)
    asyncio.run(seed_appointments())
