"""
Settlement Transaction Handler - turns a completed walk into billing records.

For a walk covered through an accepted share:
- WalkerEarning: covering walker's part (what the owner owes the coverer)
- Invoice: owner's retained part, is_shared=True, completed_by = coverer

For a walk the owner did themself:
- Invoice only: full amount, is_shared=False, completed_by = owner

Both records are written in one transaction. The invoice unique constraint on
(appointment_id, date_completed) makes settlement of the same occurrence a
one-time event: a second call fails with ALREADY_SETTLED.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from database.connection import get_async_session
from database.models import (
    Appointment,
    AppointmentShare,
    AppointmentStatus,
    DelegationStatus,
    Invoice,
    PaymentStatus,
    ShareStatus,
    WalkerEarning,
)
from sharing.errors import OperationResult, ShareErrorCode
from sharing.services.recurrence_service import local_today
from sharing.services.split_service import SplitAmounts, calculate_split

logger = logging.getLogger(__name__)


@dataclass
class SettlementResult(OperationResult):
    """
    Result of settling one appointment occurrence.

    Attributes:
        invoice: Client-facing invoice (always present on success)
        earning: Covering walker's earning (None when the walk was not shared)
        appointment: The settled appointment
        share: The accepted share used for the split, if any
        split: Amounts used (covering=0 when not shared)
    """

    invoice: Invoice | None = None
    earning: WalkerEarning | None = None
    appointment: Appointment | None = None
    share: AppointmentShare | None = None
    split: SplitAmounts | None = None


def _failure(code: ShareErrorCode, message: str, **details: Any) -> SettlementResult:
    return SettlementResult(success=False, error_code=code, error_message=message, details=details)


def settlement_title(appointment: Appointment) -> str:
    """
    Title shown on invoices and earnings.

    Example:
        >>> settlement_title(Appointment(duration=60, walk_type="training"))
        '60 Minute Training Walk'
    """
    if appointment.walk_type:
        return f"{appointment.duration} Minute {appointment.walk_type.strip().title()} Walk"
    return f"{appointment.duration} Minute Walk"


class SettlementTransaction:
    """Atomic transaction handler for settling completed walks."""

    @staticmethod
    async def settle(
        appointment_id: UUID,
        total_compensation: int,
        completed_by_user_id: UUID | None = None,
        date_completed: date | None = None,
    ) -> SettlementResult:
        """
        Settle a completed appointment occurrence.

        Args:
            appointment_id: Appointment that was walked
            total_compensation: Amount billed for the walk, in cents (>= 0)
            completed_by_user_id: Who reported the walk. Informational: the
                performer is derived from the share (coverer) or the owner.
            date_completed: Occurrence date. Defaults to the appointment_date of
                a one-time appointment, else local today.

        Returns:
            SettlementResult. Failure codes: INVALID_AMOUNT,
            APPOINTMENT_NOT_FOUND, APPOINTMENT_CANCELED, ALREADY_SETTLED,
            DATABASE_ERROR.

        Example:
            Shared at 60% covering:
            >>> result = await SettlementTransaction.settle(apt.id, 5000)
            >>> result.earning.compensation, result.invoice.compensation
            (3000, 2000)
        """
        trace_id = f"settle_{appointment_id}"

        if isinstance(total_compensation, bool) or not isinstance(total_compensation, int) or total_compensation < 0:
            return _failure(
                ShareErrorCode.INVALID_AMOUNT,
                "Total compensation must be a non-negative integer amount in cents",
                total_compensation=total_compensation,
            )

        async with get_async_session() as session:
            try:
                stmt = (
                    select(Appointment)
                    .where(Appointment.id == appointment_id)
                    .with_for_update()
                )
                appointment = (await session.execute(stmt)).scalar_one_or_none()
                if appointment is None:
                    return _failure(
                        ShareErrorCode.APPOINTMENT_NOT_FOUND,
                        "Appointment not found",
                        appointment_id=str(appointment_id),
                    )

                if appointment.status == AppointmentStatus.CANCELED:
                    return _failure(
                        ShareErrorCode.APPOINTMENT_CANCELED,
                        "Canceled appointments cannot be settled",
                        appointment_id=str(appointment_id),
                    )

                occurrence_date = date_completed or appointment.appointment_date or local_today()

                if not appointment.recurring and appointment.status == AppointmentStatus.COMPLETED:
                    return _failure(
                        ShareErrorCode.ALREADY_SETTLED,
                        "This appointment was already settled",
                        appointment_id=str(appointment_id),
                    )

                existing = await session.execute(
                    select(Invoice.id).where(
                        Invoice.appointment_id == appointment_id,
                        Invoice.date_completed == occurrence_date,
                    )
                )
                if existing.scalar_one_or_none() is not None:
                    return _failure(
                        ShareErrorCode.ALREADY_SETTLED,
                        "This occurrence was already settled",
                        appointment_id=str(appointment_id),
                        date_completed=occurrence_date.isoformat(),
                    )

                share_stmt = (
                    select(AppointmentShare)
                    .where(
                        AppointmentShare.appointment_id == appointment_id,
                        AppointmentShare.status == ShareStatus.ACCEPTED,
                    )
                    .with_for_update()
                )
                share = (await session.execute(share_stmt)).scalars().first()

                title = settlement_title(appointment)
                earning: WalkerEarning | None = None

                if share is not None:
                    split = calculate_split(total_compensation, share.covering_walker_percentage)
                    performer_id = share.shared_with_user_id

                    earning = WalkerEarning(
                        appointment_id=appointment.id,
                        walker_id=share.shared_with_user_id,
                        appointment_share_id=share.id,
                        pet_id=appointment.pet_id,
                        date_completed=occurrence_date,
                        compensation=split.covering,
                        split_percentage=share.covering_walker_percentage,
                        payment_status=PaymentStatus.UNPAID,
                        title=title,
                    )
                    invoice = Invoice(
                        appointment_id=appointment.id,
                        pet_id=appointment.pet_id,
                        completed_by_user_id=performer_id,
                        date_completed=occurrence_date,
                        compensation=split.original,
                        is_shared=True,
                        split_percentage=share.original_walker_percentage,
                        payment_status=PaymentStatus.UNPAID,
                        title=title,
                    )
                    appointment.delegation_status = DelegationStatus.COMPLETED
                    session.add(earning)
                else:
                    split = calculate_split(total_compensation, 0)
                    performer_id = appointment.user_id

                    invoice = Invoice(
                        appointment_id=appointment.id,
                        pet_id=appointment.pet_id,
                        completed_by_user_id=performer_id,
                        date_completed=occurrence_date,
                        compensation=total_compensation,
                        is_shared=False,
                        split_percentage=100,
                        payment_status=PaymentStatus.UNPAID,
                        title=title,
                    )

                if completed_by_user_id is not None and completed_by_user_id != performer_id:
                    logger.warning(
                        f"[{trace_id}] Reported walker {completed_by_user_id} differs from "
                        f"{'covering walker' if share else 'owner'} {performer_id}",
                        extra={"appointment_id": str(appointment_id)},
                    )

                if not appointment.recurring:
                    appointment.status = AppointmentStatus.COMPLETED
                    appointment.completed_by_user_id = performer_id

                session.add(invoice)
                await session.commit()

                logger.info(
                    f"[{trace_id}] Settled {occurrence_date.isoformat()}: "
                    f"invoice={invoice.compensation} earning={earning.compensation if earning else 0}",
                    extra={
                        "appointment_id": str(appointment_id),
                        "invoice_id": str(invoice.id),
                        "earning_id": str(earning.id) if earning else None,
                        "share_id": str(share.id) if share else None,
                    },
                )

                return SettlementResult(
                    success=True,
                    invoice=invoice,
                    earning=earning,
                    appointment=appointment,
                    share=share,
                    split=split,
                )

            except IntegrityError as e:
                await session.rollback()
                logger.warning(
                    f"[{trace_id}] Settlement hit a uniqueness constraint",
                    extra={"appointment_id": str(appointment_id), "error": str(e)},
                )
                return _failure(
                    ShareErrorCode.ALREADY_SETTLED,
                    "This occurrence was already settled",
                    appointment_id=str(appointment_id),
                )

            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    f"[{trace_id}] Database error",
                    extra={"appointment_id": str(appointment_id), "error": str(e)},
                    exc_info=True,
                )
                return _failure(
                    ShareErrorCode.DATABASE_ERROR,
                    "Error storing the settlement",
                    error=str(e),
                )
