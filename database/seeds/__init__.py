"""
Seed data orchestration module.

Provides seed_all() function to execute all seed scripts in dependency order.
Can be run standalone: python -m database.seeds
"""

import asyncio

from database.seeds.appointments import seed_appointments
from database.seeds.walkers import seed_walkers


async def seed_all() -> None:
    """
    Execute all seed scripts in dependency order.

    Order:
    1. walkers - users and their connection
    2. appointments - depends on walkers
    """
    print("Starting database seeding...")
    print("-" * 50)

    await seed_walkers()
    await seed_appointments()

    print("-" * 50)
    print(" Database seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_all())
