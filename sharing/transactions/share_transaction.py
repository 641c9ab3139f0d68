"""
Share Transaction Handler - the appointment delegation state machine.

States of an AppointmentShare:

    pending --accept--> accepted --cancel--> canceled
       |--reject--> rejected
       |--cancel--> canceled

Rules enforced here:
- Only one-time appointments can be shared; recurring templates are cloned
  per date first (share_recurring_dates does both in one unit of work).
- At most one pending/accepted share per appointment. Checked in the
  transaction and enforced in storage by uq_appointment_shares_active, so a
  racing proposal surfaces as ALREADY_DELEGATED instead of a raw IntegrityError.
- accept() flips the share and the appointment's delegation_status in the
  same transaction, with the appointment row locked (SELECT FOR UPDATE).

Authorization (who may propose, accept or cancel) is the caller's concern.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.connection import get_async_session
from database.models import (
    Appointment,
    AppointmentShare,
    AppointmentStatus,
    DelegationStatus,
    ShareStatus,
    utcnow,
)
from sharing.errors import OperationResult, ShareErrorCode
from sharing.services.clone_service import (
    build_clone,
    find_live_clone,
    get_template,
    warn_if_misaligned,
)
from sharing.services.connection_service import ConnectionCheck, are_connected
from sharing.validators.share_validators import (
    validate_no_active_share,
    validate_share_participants,
    validate_shareable_appointment,
    validate_split_percentage,
    validate_walkers_connected,
)
from shared.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class ShareResult(OperationResult):
    """Result of a single share operation."""

    share: AppointmentShare | None = None
    appointment: Appointment | None = None


@dataclass
class RecurringShareResult(OperationResult):
    """
    Result of sharing selected dates of a recurring template.

    Attributes:
        template_id: Source template
        shares: Pending shares created, one per successful date
        appointments: The one-time clones the shares point to
        failed: Per-date failure, {"error_code": ..., "error_message": ...}
    """

    template_id: UUID | None = None
    shares: list[AppointmentShare] = field(default_factory=list)
    appointments: list[Appointment] = field(default_factory=list)
    failed: dict[date, dict[str, Any]] = field(default_factory=dict)


def _failure(code: ShareErrorCode, message: str, **details: Any) -> ShareResult:
    return ShareResult(success=False, error_code=code, error_message=message, details=details)


def _from_validation(validation: dict[str, Any]) -> ShareResult:
    return ShareResult(
        success=False,
        error_code=validation["error_code"],
        error_message=validation["error_message"],
        details=validation["details"],
    )


async def _lock_appointment(session: AsyncSession, appointment_id: UUID) -> Appointment | None:
    stmt = (
        select(Appointment)
        .where(Appointment.id == appointment_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _lock_share(session: AsyncSession, share_id: UUID) -> AppointmentShare | None:
    stmt = (
        select(AppointmentShare)
        .where(AppointmentShare.id == share_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _load_for_transition(
    session: AsyncSession, share_id: UUID
) -> tuple[AppointmentShare, Appointment] | ShareResult:
    """
    Lock appointment then share, in that order, for a status transition.

    The appointment lock serializes every transition touching the same
    appointment, including accepts of different shares.
    """
    share = await session.get(AppointmentShare, share_id)
    if share is None:
        return _failure(
            ShareErrorCode.SHARE_NOT_FOUND, "Share not found", share_id=str(share_id)
        )

    appointment = await _lock_appointment(session, share.appointment_id)
    share = await _lock_share(session, share_id)
    if appointment is None or share is None:
        return _failure(
            ShareErrorCode.SHARE_NOT_FOUND, "Share not found", share_id=str(share_id)
        )
    return share, appointment


def _invalid_transition(share: AppointmentShare, action: str) -> ShareResult:
    return _failure(
        ShareErrorCode.INVALID_STATE_TRANSITION,
        f"Cannot {action} a share that is {share.status.value}",
        share_id=str(share.id),
        current_status=share.status.value,
    )


def _check_acceptable(share: AppointmentShare, appointment: Appointment) -> ShareResult | None:
    """Return the failure that blocks accepting this share, or None."""
    if share.status != ShareStatus.PENDING:
        return _invalid_transition(share, "accept")

    if appointment.status == AppointmentStatus.CANCELED:
        return _failure(
            ShareErrorCode.APPOINTMENT_CANCELED,
            "The appointment was canceled",
            appointment_id=str(appointment.id),
        )

    if appointment.status == AppointmentStatus.COMPLETED:
        return _failure(
            ShareErrorCode.INVALID_STATE_TRANSITION,
            "The appointment was already completed",
            appointment_id=str(appointment.id),
        )

    if appointment.delegation_status in (DelegationStatus.ACCEPTED, DelegationStatus.COMPLETED):
        return _failure(
            ShareErrorCode.ALREADY_DELEGATED,
            "This appointment is already covered by another walker",
            appointment_id=str(appointment.id),
        )

    return None


class ShareTransaction:
    """
    Atomic transaction handler for appointment shares.

    Every public method opens its own session, commits on success, rolls
    back on any failure, and returns a typed result instead of raising.
    """

    @staticmethod
    async def _propose_in_session(
        session: AsyncSession,
        appointment: Appointment,
        sharing_user_id: UUID,
        receiving_user_id: UUID,
        covering_percentage: int,
        recurring_share: bool = False,
        connection_check: ConnectionCheck | None = None,
    ) -> ShareResult:
        """Validate and flush a pending share. The caller commits or rolls back."""
        validation = validate_shareable_appointment(appointment)
        if not validation["valid"]:
            return _from_validation(validation)

        validation = await validate_no_active_share(session, appointment.id)
        if not validation["valid"]:
            return _from_validation(validation)

        validation = validate_split_percentage(covering_percentage)
        if not validation["valid"]:
            return _from_validation(validation)

        validation = validate_share_participants(sharing_user_id, receiving_user_id)
        if not validation["valid"]:
            return _from_validation(validation)

        if get_settings().REQUIRE_WALKER_CONNECTION:
            validation = await validate_walkers_connected(
                session,
                sharing_user_id,
                receiving_user_id,
                connection_check or are_connected,
            )
            if not validation["valid"]:
                return _from_validation(validation)

        share = AppointmentShare(
            appointment_id=appointment.id,
            shared_by_user_id=sharing_user_id,
            shared_with_user_id=receiving_user_id,
            covering_walker_percentage=covering_percentage,
            status=ShareStatus.PENDING,
            recurring_share=recurring_share,
        )
        session.add(share)
        await session.flush()

        return ShareResult(success=True, share=share, appointment=appointment)

    @staticmethod
    async def propose(
        appointment_id: UUID,
        sharing_user_id: UUID,
        receiving_user_id: UUID,
        covering_percentage: int,
        connection_check: ConnectionCheck | None = None,
    ) -> ShareResult:
        """
        Propose delegating a one-time appointment to a connected walker.

        Args:
            appointment_id: One-time appointment to delegate
            sharing_user_id: Original owner proposing the share
            receiving_user_id: Walker asked to cover it
            covering_percentage: Covering walker's share of the price, 0-100
            connection_check: Override for the connection predicate

        Returns:
            ShareResult with the pending share. Failure codes:
            RECURRING_NOT_SHAREABLE, ALREADY_DELEGATED, INVALID_SPLIT,
            SELF_SHARE, NOT_CONNECTED, APPOINTMENT_NOT_FOUND,
            APPOINTMENT_CANCELED, INVALID_STATE_TRANSITION, DATABASE_ERROR.

        Example:
            >>> result = await ShareTransaction.propose(apt.id, owner.id, friend.id, 60)
            >>> result.share.status
            <ShareStatus.PENDING: 'pending'>
        """
        trace_id = f"propose_{appointment_id}"
        logger.info(
            f"[{trace_id}] Proposing share to {receiving_user_id} at {covering_percentage}%",
            extra={"appointment_id": str(appointment_id), "user_id": str(sharing_user_id)},
        )

        async with get_async_session() as session:
            try:
                appointment = await _lock_appointment(session, appointment_id)
                if appointment is None:
                    return _failure(
                        ShareErrorCode.APPOINTMENT_NOT_FOUND,
                        "Appointment not found",
                        appointment_id=str(appointment_id),
                    )

                result = await ShareTransaction._propose_in_session(
                    session,
                    appointment,
                    sharing_user_id,
                    receiving_user_id,
                    covering_percentage,
                    connection_check=connection_check,
                )
                if not result.success:
                    await session.rollback()
                    logger.warning(
                        f"[{trace_id}] Proposal rejected: {result.error_code}",
                        extra={"appointment_id": str(appointment_id)},
                    )
                    return result

                await session.commit()

                logger.info(
                    f"[{trace_id}] Share created (pending)",
                    extra={"appointment_id": str(appointment_id), "share_id": str(result.share.id)},
                )
                return result

            except IntegrityError as e:
                await session.rollback()
                logger.warning(
                    f"[{trace_id}] Concurrent proposal hit the active-share constraint",
                    extra={"appointment_id": str(appointment_id), "error": str(e)},
                )
                return _failure(
                    ShareErrorCode.ALREADY_DELEGATED,
                    "This appointment is already shared with someone else",
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
                    "Error storing the share",
                    error=str(e),
                )

    @staticmethod
    async def accept(share_id: UUID) -> ShareResult:
        """
        Accept a pending share.

        Sets share.status = accepted and appointment.delegation_status =
        accepted in one transaction.

        Returns:
            ShareResult with the share and the updated appointment. Failure
            codes: SHARE_NOT_FOUND, INVALID_STATE_TRANSITION, ALREADY_DELEGATED,
            APPOINTMENT_CANCELED, DATABASE_ERROR.
        """
        trace_id = f"accept_{share_id}"

        async with get_async_session() as session:
            try:
                loaded = await _load_for_transition(session, share_id)
                if isinstance(loaded, ShareResult):
                    return loaded
                share, appointment = loaded

                failure = _check_acceptable(share, appointment)
                if failure is not None:
                    # Rollback expires share and appointment; failure is built first
                    await session.rollback()
                    logger.warning(
                        f"[{trace_id}] Accept refused: {failure.error_code}",
                        extra={"share_id": str(share_id)},
                    )
                    return failure

                share.status = ShareStatus.ACCEPTED
                share.responded_at = utcnow()
                appointment.delegation_status = DelegationStatus.ACCEPTED

                await session.commit()

                logger.info(
                    f"[{trace_id}] Share accepted",
                    extra={
                        "appointment_id": str(appointment.id),
                        "share_id": str(share_id),
                        "user_id": str(share.shared_with_user_id),
                    },
                )
                return ShareResult(success=True, share=share, appointment=appointment)

            except IntegrityError as e:
                await session.rollback()
                logger.warning(
                    f"[{trace_id}] Accept hit the active-share constraint",
                    extra={"share_id": str(share_id), "error": str(e)},
                )
                return _failure(
                    ShareErrorCode.ALREADY_DELEGATED,
                    "This appointment is already covered by another walker",
                    share_id=str(share_id),
                )

            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    f"[{trace_id}] Database error",
                    extra={"share_id": str(share_id), "error": str(e)},
                    exc_info=True,
                )
                return _failure(
                    ShareErrorCode.DATABASE_ERROR, "Error accepting the share", error=str(e)
                )

    @staticmethod
    async def reject(share_id: UUID) -> ShareResult:
        """
        Reject a pending share. The appointment is not modified.

        Failure codes: SHARE_NOT_FOUND, INVALID_STATE_TRANSITION, DATABASE_ERROR.
        """
        trace_id = f"reject_{share_id}"

        async with get_async_session() as session:
            try:
                loaded = await _load_for_transition(session, share_id)
                if isinstance(loaded, ShareResult):
                    return loaded
                share, appointment = loaded

                if share.status != ShareStatus.PENDING:
                    failure = _invalid_transition(share, "reject")
                    await session.rollback()
                    return failure

                share.status = ShareStatus.REJECTED
                share.responded_at = utcnow()
                await session.commit()

                logger.info(
                    f"[{trace_id}] Share rejected",
                    extra={"appointment_id": str(appointment.id), "share_id": str(share_id)},
                )
                return ShareResult(success=True, share=share, appointment=appointment)

            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    f"[{trace_id}] Database error",
                    extra={"share_id": str(share_id), "error": str(e)},
                    exc_info=True,
                )
                return _failure(
                    ShareErrorCode.DATABASE_ERROR, "Error rejecting the share", error=str(e)
                )

    @staticmethod
    async def cancel(share_id: UUID) -> ShareResult:
        """
        Cancel a pending or accepted share before the walk is settled.

        Canceling an accepted share releases the appointment back to
        delegation_status = none.

        Failure codes: SHARE_NOT_FOUND, INVALID_STATE_TRANSITION, DATABASE_ERROR.
        """
        trace_id = f"cancel_{share_id}"

        async with get_async_session() as session:
            try:
                loaded = await _load_for_transition(session, share_id)
                if isinstance(loaded, ShareResult):
                    return loaded
                share, appointment = loaded

                failure = None
                if share.status not in (ShareStatus.PENDING, ShareStatus.ACCEPTED):
                    failure = _invalid_transition(share, "cancel")
                elif (
                    share.status == ShareStatus.ACCEPTED
                    and appointment.delegation_status == DelegationStatus.COMPLETED
                ):
                    failure = _failure(
                        ShareErrorCode.INVALID_STATE_TRANSITION,
                        "Cannot cancel a share whose walk was already settled",
                        share_id=str(share_id),
                        current_status=share.status.value,
                    )
                if failure is not None:
                    await session.rollback()
                    return failure

                was_accepted = share.status == ShareStatus.ACCEPTED
                share.status = ShareStatus.CANCELED
                share.responded_at = utcnow()
                if was_accepted and appointment.delegation_status == DelegationStatus.ACCEPTED:
                    appointment.delegation_status = DelegationStatus.NONE

                await session.commit()

                logger.info(
                    f"[{trace_id}] Share canceled (was {'accepted' if was_accepted else 'pending'})",
                    extra={"appointment_id": str(appointment.id), "share_id": str(share_id)},
                )
                return ShareResult(success=True, share=share, appointment=appointment)

            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    f"[{trace_id}] Database error",
                    extra={"share_id": str(share_id), "error": str(e)},
                    exc_info=True,
                )
                return _failure(
                    ShareErrorCode.DATABASE_ERROR, "Error canceling the share", error=str(e)
                )

    @staticmethod
    async def share_recurring_dates(
        template_id: UUID,
        dates: Iterable[date],
        sharing_user_id: UUID,
        receiving_user_id: UUID,
        covering_percentage: int,
        connection_check: ConnectionCheck | None = None,
    ) -> RecurringShareResult:
        """
        Share selected dates of a recurring template.

        For each date, reuses the live clone of that date or clones the
        template into a new one-time appointment, then proposes a share over
        it (recurring_share=True). A date that is already shared therefore
        fails with ALREADY_DELEGATED. A new clone is committed together with
        its share; when the proposal fails the clone is rolled back with it.
        Dates are independent: earlier successes stay committed.

        Returns:
            RecurringShareResult listing created shares/clones and per-date
            failures. success is False if the template is missing or not
            recurring, or if any date failed.
        """
        trace_id = f"share_dates_{template_id}"
        unique_dates = list(dict.fromkeys(dates))

        template = await get_template(template_id)
        if template is None:
            return RecurringShareResult(
                success=False,
                error_code=ShareErrorCode.APPOINTMENT_NOT_FOUND,
                error_message="Appointment not found",
                details={"appointment_id": str(template_id)},
                template_id=template_id,
            )
        if not template.recurring:
            return RecurringShareResult(
                success=False,
                error_code=ShareErrorCode.NOT_RECURRING,
                error_message="Only recurring appointments can be shared by date",
                details={"appointment_id": str(template_id)},
                template_id=template_id,
            )

        logger.info(
            f"[{trace_id}] Sharing {len(unique_dates)} date(s) with {receiving_user_id}",
            extra={"appointment_id": str(template_id), "user_id": str(sharing_user_id)},
        )

        result = RecurringShareResult(success=True, template_id=template_id)

        for on_date in unique_dates:
            warn_if_misaligned(template, on_date)

            async with get_async_session() as session:
                try:
                    clone = await find_live_clone(session, template.id, on_date, for_update=True)
                    if clone is None:
                        clone = build_clone(template, on_date)
                        session.add(clone)
                        await session.flush()

                    proposal = await ShareTransaction._propose_in_session(
                        session,
                        clone,
                        sharing_user_id,
                        receiving_user_id,
                        covering_percentage,
                        recurring_share=True,
                        connection_check=connection_check,
                    )
                    if not proposal.success:
                        await session.rollback()
                        result.failed[on_date] = {
                            "error_code": proposal.error_code,
                            "error_message": proposal.error_message,
                        }
                        continue

                    await session.commit()

                except IntegrityError as e:
                    await session.rollback()
                    result.failed[on_date] = {
                        "error_code": ShareErrorCode.ALREADY_DELEGATED,
                        "error_message": str(e),
                    }
                    continue

                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error(
                        f"[{trace_id}] Database error sharing {on_date.isoformat()}",
                        extra={"appointment_id": str(template_id), "error": str(e)},
                        exc_info=True,
                    )
                    result.failed[on_date] = {
                        "error_code": ShareErrorCode.DATABASE_ERROR,
                        "error_message": str(e),
                    }
                    continue

            result.appointments.append(clone)
            result.shares.append(proposal.share)
            logger.info(
                f"[{trace_id}] Shared {on_date.isoformat()} as {clone.id}",
                extra={"appointment_id": str(clone.id), "share_id": str(proposal.share.id)},
            )

        if result.failed:
            first_failure = next(iter(result.failed.values()))
            result.success = False
            result.error_code = first_failure["error_code"]
            result.error_message = f"{len(result.failed)} of {len(unique_dates)} date(s) could not be shared"
            result.details = {
                "failed_dates": {d.isoformat(): f["error_code"].value for d, f in result.failed.items()}
            }

        return result
