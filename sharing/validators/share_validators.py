"""
Share Proposal Validators.

Validators that check business constraints before a share is created.
Used by ShareTransaction to ensure a proposal can be stored.

Each validator returns a dict:
    {
        "valid": bool,
        "error_code": ShareErrorCode | None,
        "error_message": str | None,
        "details": dict
    }
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import (
    ACTIVE_SHARE_STATUSES,
    Appointment,
    AppointmentShare,
    AppointmentStatus,
    ShareStatus,
)
from sharing.errors import ShareErrorCode
from sharing.services.connection_service import ConnectionCheck, are_connected

logger = logging.getLogger(__name__)

MIN_PERCENTAGE = 0
MAX_PERCENTAGE = 100


def _valid() -> dict[str, Any]:
    return {"valid": True, "error_code": None, "error_message": None, "details": {}}


def _invalid(code: ShareErrorCode, message: str, **details: Any) -> dict[str, Any]:
    return {"valid": False, "error_code": code, "error_message": message, "details": details}


def validate_split_percentage(covering_percentage: Any) -> dict[str, Any]:
    """
    Validate the covering walker percentage is an integer in 0-100.

    Example:
        >>> validate_split_percentage(60)["valid"]
        True
        >>> validate_split_percentage(101)["error_code"]
        <ShareErrorCode.INVALID_SPLIT: 'INVALID_SPLIT'>
    """
    if (
        isinstance(covering_percentage, bool)
        or not isinstance(covering_percentage, int)
        or not MIN_PERCENTAGE <= covering_percentage <= MAX_PERCENTAGE
    ):
        return _invalid(
            ShareErrorCode.INVALID_SPLIT,
            f"Covering walker percentage must be an integer between "
            f"{MIN_PERCENTAGE} and {MAX_PERCENTAGE}",
            covering_walker_percentage=covering_percentage,
        )
    return _valid()


def validate_share_participants(sharing_user_id: UUID, receiving_user_id: UUID) -> dict[str, Any]:
    """Validate a walker is not sharing with themself."""
    if sharing_user_id == receiving_user_id:
        return _invalid(
            ShareErrorCode.SELF_SHARE,
            "Cannot share an appointment with yourself",
            user_id=str(sharing_user_id),
        )
    return _valid()


def validate_shareable_appointment(appointment: Appointment) -> dict[str, Any]:
    """
    Validate the appointment is a one-time occurrence that can still be walked.

    Recurring templates are never shared directly; their dates are cloned
    into one-time appointments first.
    """
    if appointment.recurring:
        return _invalid(
            ShareErrorCode.RECURRING_NOT_SHAREABLE,
            "Recurring appointments cannot be shared directly; share a dated occurrence",
            appointment_id=str(appointment.id),
        )

    if appointment.status == AppointmentStatus.CANCELED:
        return _invalid(
            ShareErrorCode.APPOINTMENT_CANCELED,
            "Canceled appointments cannot be shared",
            appointment_id=str(appointment.id),
        )

    if appointment.status == AppointmentStatus.COMPLETED:
        return _invalid(
            ShareErrorCode.INVALID_STATE_TRANSITION,
            "Completed appointments cannot be shared",
            appointment_id=str(appointment.id),
        )

    return _valid()


async def validate_walkers_connected(
    session: AsyncSession,
    sharing_user_id: UUID,
    receiving_user_id: UUID,
    connection_check: ConnectionCheck = are_connected,
) -> dict[str, Any]:
    """Validate the two walkers have an accepted connection."""
    if not await connection_check(session, sharing_user_id, receiving_user_id):
        logger.warning(
            f"Share rejected: {sharing_user_id} is not connected with {receiving_user_id}",
            extra={"user_id": str(sharing_user_id)},
        )
        return _invalid(
            ShareErrorCode.NOT_CONNECTED,
            "You must be connected with this walker to share appointments",
            shared_by_user_id=str(sharing_user_id),
            shared_with_user_id=str(receiving_user_id),
        )
    return _valid()


async def validate_no_active_share(session: AsyncSession, appointment_id: UUID) -> dict[str, Any]:
    """
    Validate the appointment has no pending or accepted share.

    This is the application-level check; uq_appointment_shares_active enforces
    the same rule in storage for concurrent proposals.
    """
    stmt = select(AppointmentShare).where(
        AppointmentShare.appointment_id == appointment_id,
        AppointmentShare.status.in_([ShareStatus(s) for s in ACTIVE_SHARE_STATUSES]),
    )
    result = await session.execute(stmt)
    existing = result.scalars().first()

    if existing is not None:
        logger.warning(
            f"Double booking prevented: appointment {appointment_id} already has "
            f"a {existing.status.value} share",
            extra={"appointment_id": str(appointment_id), "share_id": str(existing.id)},
        )
        return _invalid(
            ShareErrorCode.ALREADY_DELEGATED,
            "This appointment is already shared with someone else",
            appointment_id=str(appointment_id),
            existing_share_id=str(existing.id),
            existing_status=existing.status.value,
        )
    return _valid()
