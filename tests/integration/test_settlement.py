"""
Integration tests for SettlementTransaction.settle.

Tests cover:
- Shared walk: earning for the covering walker, invoice for the owner's part
- Unshared walk: single invoice for the full amount
- Idempotency per occurrence (ALREADY_SETTLED)
- Recurring templates settled per date
- Canceled appointments and pending (not accepted) shares
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import select

from database.connection import AsyncSessionLocal
from database.models import (
    Appointment,
    AppointmentShare,
    AppointmentStatus,
    DelegationStatus,
    Invoice,
    PaymentStatus,
    WalkerEarning,
)
from sharing.errors import ShareErrorCode
from sharing.transactions.settlement_transaction import SettlementTransaction
from sharing.transactions.share_transaction import ShareTransaction

MONDAY = date(2025, 1, 6)
WEDNESDAY = date(2025, 1, 8)


async def all_rows(model):
    async with AsyncSessionLocal() as session:
        return list((await session.execute(select(model))).scalars().all())


@pytest.fixture
def accepted_share(walkers):
    """Factory: propose and accept a share over an appointment."""

    async def _accepted_share(appointment, percentage=60):
        proposal = await ShareTransaction.propose(
            appointment.id, walkers.owner.id, walkers.cover.id, percentage
        )
        accepted = await ShareTransaction.accept(proposal.share.id)
        assert accepted.success is True
        return accepted.share

    return _accepted_share


# ============================================================================
# Shared walks
# ============================================================================


class TestSettleSharedWalk:
    """Settlement of a walk covered through an accepted share."""

    @pytest.mark.asyncio
    async def test_sixty_percent_split_of_fifty_dollars(
        self, walkers, pet, one_time_appointment, accepted_share
    ):
        share = await accepted_share(one_time_appointment, 60)

        result = await SettlementTransaction.settle(one_time_appointment.id, 5000)

        assert result.success is True

        earning = result.earning
        assert earning.walker_id == walkers.cover.id
        assert earning.compensation == 3000
        assert earning.split_percentage == 60
        assert earning.appointment_share_id == share.id
        assert earning.pet_id == pet.id
        assert earning.date_completed == one_time_appointment.appointment_date
        assert earning.payment_status == PaymentStatus.UNPAID
        assert earning.title == "60 Minute Walk"

        invoice = result.invoice
        assert invoice.compensation == 2000
        assert invoice.is_shared is True
        assert invoice.split_percentage == 40
        assert invoice.completed_by_user_id == walkers.cover.id
        assert invoice.payment_status == PaymentStatus.UNPAID

        assert earning.compensation + invoice.compensation == 5000

    @pytest.mark.asyncio
    async def test_appointment_is_marked_completed(
        self, walkers, one_time_appointment, accepted_share, fetch
    ):
        await accepted_share(one_time_appointment)

        await SettlementTransaction.settle(one_time_appointment.id, 5000)

        appointment = await fetch(Appointment, one_time_appointment.id)
        assert appointment.status == AppointmentStatus.COMPLETED
        assert appointment.completed is True
        assert appointment.completed_by_user_id == walkers.cover.id
        assert appointment.delegation_status == DelegationStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_odd_amount_reconciles(self, one_time_appointment, accepted_share):
        await accepted_share(one_time_appointment, 33)

        result = await SettlementTransaction.settle(one_time_appointment.id, 999)

        assert result.earning.compensation == 329
        assert result.invoice.compensation == 670

    @pytest.mark.asyncio
    async def test_full_coverage_leaves_zero_invoice(self, one_time_appointment, accepted_share):
        await accepted_share(one_time_appointment, 100)

        result = await SettlementTransaction.settle(one_time_appointment.id, 5000)

        assert result.earning.compensation == 5000
        assert result.invoice.compensation == 0
        assert result.invoice.split_percentage == 0

    @pytest.mark.asyncio
    async def test_training_walk_earning_is_flagged(self, make_appointment, accepted_share):
        appointment = await make_appointment(walk_type="training")
        await accepted_share(appointment, 50)

        result = await SettlementTransaction.settle(appointment.id, 4000)

        assert result.earning.title == "60 Minute Training Walk"
        assert result.earning.is_training_walk is True

    @pytest.mark.asyncio
    async def test_settled_share_cannot_be_canceled(self, one_time_appointment, accepted_share):
        share = await accepted_share(one_time_appointment)
        await SettlementTransaction.settle(one_time_appointment.id, 5000)

        result = await ShareTransaction.cancel(share.id)

        assert result.error_code == ShareErrorCode.INVALID_STATE_TRANSITION

    @pytest.mark.asyncio
    async def test_reported_walker_mismatch_is_logged_not_rejected(
        self, walkers, one_time_appointment, accepted_share, caplog
    ):
        await accepted_share(one_time_appointment)

        result = await SettlementTransaction.settle(
            one_time_appointment.id, 5000, completed_by_user_id=walkers.stranger.id
        )

        assert result.success is True
        assert result.invoice.completed_by_user_id == walkers.cover.id
        assert "differs from covering walker" in caplog.text


# ============================================================================
# Unshared walks
# ============================================================================


class TestSettleUnsharedWalk:
    """Settlement of a walk the owner did themself."""

    @pytest.mark.asyncio
    async def test_full_amount_invoice_and_no_earning(self, walkers, one_time_appointment):
        result = await SettlementTransaction.settle(one_time_appointment.id, 5000)

        assert result.success is True
        assert result.earning is None
        assert result.invoice.compensation == 5000
        assert result.invoice.is_shared is False
        assert result.invoice.split_percentage == 100
        assert result.invoice.completed_by_user_id == walkers.owner.id
        assert await all_rows(WalkerEarning) == []

    @pytest.mark.asyncio
    async def test_pending_share_is_ignored(self, walkers, one_time_appointment, fetch):
        await ShareTransaction.propose(
            one_time_appointment.id, walkers.owner.id, walkers.cover.id, 60
        )

        result = await SettlementTransaction.settle(one_time_appointment.id, 5000)

        assert result.earning is None
        assert result.invoice.compensation == 5000
        appointment = await fetch(Appointment, one_time_appointment.id)
        assert appointment.delegation_status == DelegationStatus.NONE

    @pytest.mark.asyncio
    async def test_walk_type_in_title(self, make_appointment):
        appointment = await make_appointment(duration=45, walk_type="training")

        result = await SettlementTransaction.settle(appointment.id, 4000)

        assert result.invoice.title == "45 Minute Training Walk"

    @pytest.mark.asyncio
    async def test_zero_amount(self, one_time_appointment):
        result = await SettlementTransaction.settle(one_time_appointment.id, 0)

        assert result.success is True
        assert result.invoice.compensation == 0


# ============================================================================
# Guards
# ============================================================================


class TestSettleGuards:
    """Idempotency and state guards."""

    @pytest.mark.asyncio
    async def test_second_settlement_is_rejected(self, one_time_appointment, accepted_share):
        await accepted_share(one_time_appointment)
        first = await SettlementTransaction.settle(one_time_appointment.id, 5000)
        assert first.success is True

        second = await SettlementTransaction.settle(one_time_appointment.id, 5000)

        assert second.success is False
        assert second.error_code == ShareErrorCode.ALREADY_SETTLED
        assert len(await all_rows(Invoice)) == 1
        assert len(await all_rows(WalkerEarning)) == 1

    @pytest.mark.asyncio
    async def test_canceled_appointment(self, make_appointment):
        appointment = await make_appointment(status=AppointmentStatus.CANCELED)

        result = await SettlementTransaction.settle(appointment.id, 5000)

        assert result.error_code == ShareErrorCode.APPOINTMENT_CANCELED
        assert await all_rows(Invoice) == []

    @pytest.mark.asyncio
    async def test_unknown_appointment(self, walkers):
        result = await SettlementTransaction.settle(uuid4(), 5000)

        assert result.error_code == ShareErrorCode.APPOINTMENT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_negative_amount_writes_nothing(self, one_time_appointment):
        result = await SettlementTransaction.settle(one_time_appointment.id, -100)

        assert result.error_code == ShareErrorCode.INVALID_AMOUNT
        assert await all_rows(Invoice) == []


# ============================================================================
# Recurring templates
# ============================================================================


class TestSettleRecurringTemplate:
    """Templates are settled per occurrence date and stay scheduled."""

    @pytest.mark.asyncio
    async def test_each_date_settles_once(self, recurring_template, fetch):
        monday = await SettlementTransaction.settle(
            recurring_template.id, 5000, date_completed=MONDAY
        )
        wednesday = await SettlementTransaction.settle(
            recurring_template.id, 5000, date_completed=WEDNESDAY
        )
        monday_again = await SettlementTransaction.settle(
            recurring_template.id, 5000, date_completed=MONDAY
        )

        assert monday.success is True
        assert wednesday.success is True
        assert monday_again.error_code == ShareErrorCode.ALREADY_SETTLED

        template = await fetch(Appointment, recurring_template.id)
        assert template.status == AppointmentStatus.SCHEDULED
        assert template.completed is False

    @pytest.mark.asyncio
    async def test_shared_clone_settles_with_split(
        self, walkers, recurring_template, fetch
    ):
        shared = await ShareTransaction.share_recurring_dates(
            recurring_template.id, [MONDAY], walkers.owner.id, walkers.cover.id, 60
        )
        await ShareTransaction.accept(shared.shares[0].id)
        clone = shared.appointments[0]

        result = await SettlementTransaction.settle(clone.id, 5000)

        assert result.earning.compensation == 3000
        assert result.invoice.compensation == 2000
        assert result.invoice.date_completed == MONDAY

        share = await fetch(AppointmentShare, shared.shares[0].id)
        assert share.recurring_share is True
