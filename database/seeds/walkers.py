"""
Seed script for users and walker_connections tables.

Populates the database with two demo walkers and an accepted connection
between them, so appointments can be shared out of the box:
- Dana (owns the client and the demo appointments)
- Riley (covering walker)
"""

import asyncio
from typing import Any

from sqlalchemy import select

from database.connection import AsyncSessionLocal
from database.models import ConnectionStatus, User, WalkerConnection

WALKERS_DATA: list[dict[str, Any]] = [
    {
        "name": "Dana Walker",
        "username": "dana",
        "email": "dana@example.com",
    },
    {
        "name": "Riley Cover",
        "username": "riley",
        "email": "riley@example.com",
    },
]


async def seed_walkers() -> dict[str, User]:
    """
    Seed the demo walkers and connect them.

    Existing users are matched by username; the connection is only created
    if neither direction exists yet.

    Returns:
        Mapping of username to User
    """
    walkers: dict[str, User] = {}

    async with AsyncSessionLocal() as session:
        async with session.begin():
            for walker_data in WALKERS_DATA:
                result = await session.execute(
                    select(User).where(User.username == walker_data["username"])
                )
                user = result.scalar_one_or_none()

                if user is None:
                    user = User(**walker_data)
                    session.add(user)
                    print(f"✓ Created walker: {walker_data['name']}")
                else:
                    print(f"⊙ Walker already exists: {walker_data['name']}")
                walkers[walker_data["username"]] = user

            await session.flush()

            owner, cover = walkers["dana"], walkers["riley"]
            result = await session.execute(
                select(WalkerConnection).where(
                    WalkerConnection.user_id.in_([owner.id, cover.id]),
                    WalkerConnection.connected_user_id.in_([owner.id, cover.id]),
                )
            )
            if result.scalars().first() is None:
                session.add(
                    WalkerConnection(
                        user_id=owner.id,
                        connected_user_id=cover.id,
                        status=ConnectionStatus.ACCEPTED,
                    )
                )
                print("✓ Connected dana <-> riley")

    return walkers


if __name__ == "__main__":
    print("Seeding walkers...")
    print("=" * 60)
    asyncio.run(seed_walkers())
