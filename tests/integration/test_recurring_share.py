"""
Integration tests for ShareTransaction.share_recurring_dates.
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import select

from database.connection import AsyncSessionLocal
from database.models import Appointment, AppointmentShare, ShareStatus
from sharing.errors import ShareErrorCode
from sharing.services.clone_service import clone_recurring_for_dates
from sharing.transactions.share_transaction import ShareTransaction

MONDAY = date(2025, 1, 6)
WEDNESDAY = date(2025, 1, 8)
NEXT_MONDAY = date(2025, 1, 13)


async def count_clones(template_id) -> int:
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(Appointment).where(Appointment.cloned_from_appointment_id == template_id)
        )
        return len(result.scalars().all())


class TestShareRecurringDates:
    """Tests for share_recurring_dates."""

    @pytest.mark.asyncio
    async def test_clones_and_shares_each_date(self, walkers, recurring_template, shares_for):
        result = await ShareTransaction.share_recurring_dates(
            recurring_template.id,
            [MONDAY, WEDNESDAY],
            walkers.owner.id,
            walkers.cover.id,
            60,
        )

        assert result.success is True
        assert len(result.shares) == 2
        assert [a.appointment_date for a in result.appointments] == [MONDAY, WEDNESDAY]

        for clone, share in zip(result.appointments, result.shares):
            assert clone.cloned_from_appointment_id == recurring_template.id
            assert share.appointment_id == clone.id
            assert share.status == ShareStatus.PENDING
            assert share.recurring_share is True
            assert share.covering_walker_percentage == 60

        # The template itself never carries a share
        assert await shares_for(recurring_template.id) == []

    @pytest.mark.asyncio
    async def test_shared_dates_can_be_accepted_independently(self, walkers, recurring_template):
        result = await ShareTransaction.share_recurring_dates(
            recurring_template.id,
            [MONDAY, NEXT_MONDAY],
            walkers.owner.id,
            walkers.cover.id,
            50,
        )

        accepted = await ShareTransaction.accept(result.shares[0].id)
        rejected = await ShareTransaction.reject(result.shares[1].id)

        assert accepted.success is True
        assert rejected.success is True

    @pytest.mark.asyncio
    async def test_failed_proposal_discards_the_clone(self, walkers, recurring_template):
        result = await ShareTransaction.share_recurring_dates(
            recurring_template.id,
            [MONDAY],
            walkers.owner.id,
            walkers.stranger.id,
            50,
        )

        assert result.success is False
        assert result.error_code == ShareErrorCode.NOT_CONNECTED
        assert result.failed[MONDAY]["error_code"] == ShareErrorCode.NOT_CONNECTED
        assert result.details == {"failed_dates": {MONDAY.isoformat(): "NOT_CONNECTED"}}
        assert await count_clones(recurring_template.id) == 0

        async with AsyncSessionLocal() as session:
            shares = (await session.execute(select(AppointmentShare))).scalars().all()
        assert shares == []

    @pytest.mark.asyncio
    async def test_invalid_split_fails_every_date(self, walkers, recurring_template):
        result = await ShareTransaction.share_recurring_dates(
            recurring_template.id,
            [MONDAY, WEDNESDAY],
            walkers.owner.id,
            walkers.cover.id,
            120,
        )

        assert result.success is False
        assert set(result.failed) == {MONDAY, WEDNESDAY}
        assert result.shares == []
        assert await count_clones(recurring_template.id) == 0

    @pytest.mark.asyncio
    async def test_one_time_appointment_is_rejected(self, walkers, one_time_appointment):
        result = await ShareTransaction.share_recurring_dates(
            one_time_appointment.id,
            [MONDAY],
            walkers.owner.id,
            walkers.cover.id,
            50,
        )

        assert result.error_code == ShareErrorCode.NOT_RECURRING

    @pytest.mark.asyncio
    async def test_unknown_template(self, walkers):
        result = await ShareTransaction.share_recurring_dates(
            uuid4(), [MONDAY], walkers.owner.id, walkers.cover.id, 50
        )

        assert result.error_code == ShareErrorCode.APPOINTMENT_NOT_FOUND


class TestShareRecurringDatesReusesClones:
    """A date of a template maps to one occurrence, shared at most once."""

    @pytest.mark.asyncio
    async def test_same_date_cannot_be_shared_twice(self, walkers, recurring_template):
        first = await ShareTransaction.share_recurring_dates(
            recurring_template.id, [WEDNESDAY], walkers.owner.id, walkers.cover.id, 60
        )
        second = await ShareTransaction.share_recurring_dates(
            recurring_template.id, [WEDNESDAY], walkers.owner.id, walkers.cover.id, 40
        )

        assert first.success is True
        assert second.success is False
        assert second.failed[WEDNESDAY]["error_code"] == ShareErrorCode.ALREADY_DELEGATED
        assert await count_clones(recurring_template.id) == 1

        accepted = await ShareTransaction.accept(first.shares[0].id)
        assert accepted.success is True

        third = await ShareTransaction.share_recurring_dates(
            recurring_template.id, [WEDNESDAY], walkers.owner.id, walkers.cover.id, 40
        )
        assert third.failed[WEDNESDAY]["error_code"] == ShareErrorCode.ALREADY_DELEGATED

        async with AsyncSessionLocal() as session:
            active = (
                await session.execute(
                    select(AppointmentShare).where(
                        AppointmentShare.status.in_([ShareStatus.PENDING, ShareStatus.ACCEPTED])
                    )
                )
            ).scalars().all()
        assert [s.id for s in active] == [first.shares[0].id]

    @pytest.mark.asyncio
    async def test_rejected_date_is_shared_again_on_the_same_clone(
        self, walkers, recurring_template
    ):
        first = await ShareTransaction.share_recurring_dates(
            recurring_template.id, [MONDAY], walkers.owner.id, walkers.cover.id, 60
        )
        await ShareTransaction.reject(first.shares[0].id)

        again = await ShareTransaction.share_recurring_dates(
            recurring_template.id, [MONDAY], walkers.owner.id, walkers.cover.id, 50
        )

        assert again.success is True
        assert again.appointments[0].id == first.appointments[0].id
        assert again.shares[0].covering_walker_percentage == 50
        assert await count_clones(recurring_template.id) == 1

    @pytest.mark.asyncio
    async def test_date_cloned_earlier_is_shared_on_that_clone(self, walkers, recurring_template):
        cloned = await clone_recurring_for_dates(recurring_template.id, [MONDAY])

        result = await ShareTransaction.share_recurring_dates(
            recurring_template.id, [MONDAY], walkers.owner.id, walkers.cover.id, 60
        )

        assert result.success is True
        assert result.shares[0].appointment_id == cloned.appointments[0].id
        assert await count_clones(recurring_template.id) == 1
