"""
Clone Generator - derive one-time occurrences from a recurring template.

Only one-time appointments can be shared, so sharing a date of a recurring
template starts by cloning that date into its own appointment. Clones copy
the template's schedule, price, pet and owner, and point back to the
template through cloned_from_appointment_id.

Batches are best-effort: each clone is committed in its own transaction and
failures are reported per date without rolling back earlier clones.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.connection import get_async_session
from database.models import Appointment, AppointmentStatus, DelegationStatus
from sharing.errors import OperationResult, ShareErrorCode
from sharing.services.recurrence_service import occurs_on

logger = logging.getLogger(__name__)


@dataclass
class CloneBatchResult(OperationResult):
    """
    Result of cloning a template for a list of dates.

    Attributes:
        template_id: Source template
        appointments: Clones that were committed, in input order
        failed: Dates whose clone could not be stored, with the error text
    """

    template_id: UUID | None = None
    appointments: list[Appointment] = field(default_factory=list)
    failed: dict[date, str] = field(default_factory=dict)


def build_clone(template: Appointment, on_date: date) -> Appointment:
    """
    Build (without persisting) a one-time occurrence of a template.

    Args:
        template: Recurring template to copy from
        on_date: Occurrence date

    Returns:
        New transient Appointment with recurring=False, appointment_date=on_date
        and cloned_from_appointment_id=template.id
    """
    return Appointment(
        user_id=template.user_id,
        pet_id=template.pet_id,
        recurring=False,
        appointment_date=on_date,
        start_time=template.start_time,
        end_time=template.end_time,
        duration=template.duration,
        price=template.price,
        walk_type=template.walk_type,
        status=AppointmentStatus.SCHEDULED,
        delegation_status=DelegationStatus.NONE,
        cloned_from_appointment_id=template.id,
    )


def warn_if_misaligned(template: Appointment, on_date: date) -> None:
    """Log dates that do not fall on one of the template's weekdays."""
    if not occurs_on(template, on_date):
        logger.warning(
            f"Cloning {on_date.isoformat()} which is not a scheduled weekday of template {template.id}",
            extra={"appointment_id": str(template.id)},
        )


async def find_live_clone(
    session: AsyncSession,
    template_id: UUID,
    on_date: date,
    for_update: bool = False,
) -> Appointment | None:
    """
    Find the non-canceled clone of a template for one date.

    uq_appointments_live_clone allows at most one, so every share of that
    walk goes through the same appointment and its active-share check.
    """
    stmt = select(Appointment).where(
        Appointment.cloned_from_appointment_id == template_id,
        Appointment.appointment_date == on_date,
        Appointment.status != AppointmentStatus.CANCELED,
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_template(template_id: UUID) -> Appointment | None:
    """Load a template appointment by id."""
    async with get_async_session() as session:
        result = await session.execute(
            select(Appointment).where(Appointment.id == template_id)
        )
        return result.scalar_one_or_none()


async def clone_recurring_for_dates(
    template_id: UUID,
    dates: Iterable[date],
) -> CloneBatchResult:
    """
    Create one one-time appointment per date from a recurring template.

    Args:
        template_id: Recurring template id
        dates: Occurrence dates. Repeated dates are cloned once, and a date
            that already has a live clone returns that appointment. Dates
            that do not match the template's weekdays are logged, not rejected.

    Returns:
        CloneBatchResult. success is False if the template is missing or not
        recurring (nothing cloned), or if any individual clone failed; the
        clones that did commit are still listed in appointments.

    Example:
        >>> result = await clone_recurring_for_dates(template.id, [d1, d2, d3])
        >>> [a.appointment_date for a in result.appointments]
        [d1, d2, d3]
    """
    trace_id = f"clone_{template_id}"
    unique_dates = list(dict.fromkeys(dates))

    template = await get_template(template_id)
    if template is None:
        logger.warning(f"[{trace_id}] Template not found", extra={"appointment_id": str(template_id)})
        return CloneBatchResult(
            success=False,
            error_code=ShareErrorCode.APPOINTMENT_NOT_FOUND,
            error_message="Appointment not found",
            details={"appointment_id": str(template_id)},
            template_id=template_id,
        )

    if not template.recurring:
        logger.warning(
            f"[{trace_id}] Refusing to clone a one-time appointment",
            extra={"appointment_id": str(template_id)},
        )
        return CloneBatchResult(
            success=False,
            error_code=ShareErrorCode.NOT_RECURRING,
            error_message="Only recurring appointments can be cloned",
            details={"appointment_id": str(template_id)},
            template_id=template_id,
        )

    logger.info(
        f"[{trace_id}] Cloning template for {len(unique_dates)} date(s)",
        extra={"appointment_id": str(template_id)},
    )

    result = CloneBatchResult(success=True, template_id=template_id)

    for on_date in unique_dates:
        warn_if_misaligned(template, on_date)

        async with get_async_session() as session:
            try:
                existing = await find_live_clone(session, template.id, on_date)
                if existing is not None:
                    logger.info(
                        f"[{trace_id}] {on_date.isoformat()} already cloned as {existing.id}",
                        extra={"appointment_id": str(existing.id)},
                    )
                    result.appointments.append(existing)
                    continue

                clone = build_clone(template, on_date)
                session.add(clone)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    f"[{trace_id}] Failed to clone {on_date.isoformat()}",
                    extra={"appointment_id": str(template_id), "error": str(e)},
                    exc_info=True,
                )
                result.failed[on_date] = str(e)
                continue

        result.appointments.append(clone)
        logger.info(
            f"[{trace_id}] Cloned {on_date.isoformat()} -> {clone.id}",
            extra={"appointment_id": str(clone.id)},
        )

    if result.failed:
        result.success = False
        result.error_code = ShareErrorCode.DATABASE_ERROR
        result.error_message = f"{len(result.failed)} of {len(unique_dates)} clone(s) failed"
        result.details = {"failed_dates": [d.isoformat() for d in result.failed]}

    return result
