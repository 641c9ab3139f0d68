"""
Read-side queries over shares.

Backs the "my shares" views: proposals a walker received (pending and
history), proposals they sent, and the appointments they agreed to cover.
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select

from database.connection import get_async_session
from database.models import (
    ACTIVE_SHARE_STATUSES,
    Appointment,
    AppointmentShare,
    ShareStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class ShareOverview:
    """Shares involving one walker, newest first."""

    received_pending: list[AppointmentShare] = field(default_factory=list)
    received_all: list[AppointmentShare] = field(default_factory=list)
    sent: list[AppointmentShare] = field(default_factory=list)


async def list_shares_for_user(user_id: UUID) -> ShareOverview:
    """
    Get shares received and sent by a walker.

    Returns:
        ShareOverview with received_pending (awaiting this walker's answer),
        received_all (every share sent to them) and sent (every share they
        proposed).
    """
    async with get_async_session() as session:
        received = await session.execute(
            select(AppointmentShare)
            .where(AppointmentShare.shared_with_user_id == user_id)
            .order_by(AppointmentShare.created_at.desc())
        )
        received_all = list(received.scalars().all())

        sent = await session.execute(
            select(AppointmentShare)
            .where(AppointmentShare.shared_by_user_id == user_id)
            .order_by(AppointmentShare.created_at.desc())
        )

    overview = ShareOverview(
        received_pending=[s for s in received_all if s.status == ShareStatus.PENDING],
        received_all=received_all,
        sent=list(sent.scalars().all()),
    )
    logger.debug(
        f"Share overview: {len(overview.received_pending)} pending, "
        f"{len(overview.received_all)} received, {len(overview.sent)} sent",
        extra={"user_id": str(user_id)},
    )
    return overview


async def list_covered_appointments(user_id: UUID) -> list[Appointment]:
    """Appointments a walker accepted to cover, ordered by appointment date."""
    async with get_async_session() as session:
        result = await session.execute(
            select(Appointment)
            .join(AppointmentShare, AppointmentShare.appointment_id == Appointment.id)
            .where(
                AppointmentShare.shared_with_user_id == user_id,
                AppointmentShare.status == ShareStatus.ACCEPTED,
            )
            .order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc())
        )
        return list(result.scalars().all())


async def get_active_share(appointment_id: UUID) -> AppointmentShare | None:
    """The pending or accepted share holding an appointment, if any."""
    async with get_async_session() as session:
        result = await session.execute(
            select(AppointmentShare).where(
                AppointmentShare.appointment_id == appointment_id,
                AppointmentShare.status.in_([ShareStatus(s) for s in ACTIVE_SHARE_STATUSES]),
            )
        )
        return result.scalars().first()
