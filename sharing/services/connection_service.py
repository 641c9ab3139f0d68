"""
Walker connection lookup.

Sharing requires an accepted WalkerConnection between the two walkers, in
either direction. The check is exposed as a ConnectionCheck callable so the
share transaction can be given a different predicate.
"""

import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import ConnectionStatus, WalkerConnection

logger = logging.getLogger(__name__)

ConnectionCheck = Callable[[AsyncSession, UUID, UUID], Awaitable[bool]]


async def are_connected(session: AsyncSession, user_a: UUID, user_b: UUID) -> bool:
    """
    Return True if user_a and user_b have an accepted connection.

    Args:
        session: Active session
        user_a: First walker
        user_b: Second walker

    Returns:
        True if an ACCEPTED walker_connections row exists in either direction
    """
    stmt = (
        select(WalkerConnection.id)
        .where(WalkerConnection.status == ConnectionStatus.ACCEPTED)
        .where(
            or_(
                and_(
                    WalkerConnection.user_id == user_a,
                    WalkerConnection.connected_user_id == user_b,
                ),
                and_(
                    WalkerConnection.user_id == user_b,
                    WalkerConnection.connected_user_id == user_a,
                ),
            )
        )
        .limit(1)
    )
    result = await session.execute(stmt)
    connected = result.scalar_one_or_none() is not None

    logger.debug(
        f"Connection check {user_a} <-> {user_b}: {connected}",
        extra={"user_id": str(user_a)},
    )
    return connected
