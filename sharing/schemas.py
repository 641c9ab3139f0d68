"""Pydantic request/response models for the sharing operations."""

from datetime import date, datetime, time
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from database.models import DelegationStatus, ShareStatus
from sharing.errors import OperationResult, ShareErrorCode
from shared.config import get_settings


def _default_covering_percentage() -> int:
    return get_settings().DEFAULT_COVERING_PERCENTAGE


# ============================================================================
# Requests
# ============================================================================


class ProposeShareRequest(BaseModel):
    """Share one one-time appointment with a connected walker."""

    appointment_id: UUID
    shared_by_user_id: UUID
    shared_with_user_id: UUID
    # Range is checked by the share validators so it surfaces as INVALID_SPLIT
    covering_walker_percentage: int = Field(default_factory=_default_covering_percentage)


class ShareRecurringDatesRequest(BaseModel):
    """Share selected dates of a recurring template."""

    appointment_id: UUID
    shared_by_user_id: UUID
    shared_with_user_id: UUID
    share_dates: list[date] = Field(min_length=1)
    covering_walker_percentage: int = Field(default_factory=_default_covering_percentage)


class ShareActionRequest(BaseModel):
    """Accept, reject or cancel a share."""

    share_id: UUID


class CloneRecurringRequest(BaseModel):
    """Clone a recurring template into one-time appointments."""

    template_appointment_id: UUID
    dates: list[date] = Field(min_length=1)


class SettleAppointmentRequest(BaseModel):
    """Settle a completed walk."""

    appointment_id: UUID
    total_compensation: int
    completed_by_user_id: UUID | None = None
    date_completed: date | None = None


# ============================================================================
# Responses
# ============================================================================


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    pet_id: UUID
    recurring: bool
    appointment_date: date | None
    start_time: time
    end_time: time
    duration: int
    price: int
    completed: bool
    canceled: bool
    delegation_status: DelegationStatus
    cloned_from_appointment_id: UUID | None


class ShareOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    appointment_id: UUID
    shared_by_user_id: UUID
    shared_with_user_id: UUID
    covering_walker_percentage: int
    original_walker_percentage: int
    status: ShareStatus
    recurring_share: bool
    created_at: datetime


class WalkerEarningOut(BaseModel):
    """Earning with payment status flattened to paid/pending flags."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    appointment_id: UUID
    walker_id: UUID
    appointment_share_id: UUID
    pet_id: UUID
    date_completed: date
    compensation: int
    split_percentage: int
    paid: bool
    pending: bool
    title: str | None


class InvoiceOut(BaseModel):
    """Invoice with payment status flattened to paid/pending/cancelled flags."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    appointment_id: UUID
    pet_id: UUID
    date_completed: date
    compensation: int
    is_shared: bool
    split_percentage: int
    completed_by_user_id: UUID | None
    paid: bool
    pending: bool
    cancelled: bool
    title: str


class SettlementOut(BaseModel):
    earning: WalkerEarningOut | None = None
    invoice: InvoiceOut


class ErrorOut(BaseModel):
    error_code: ShareErrorCode
    error_message: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: OperationResult) -> "ErrorOut":
        return cls(
            error_code=result.error_code or ShareErrorCode.DATABASE_ERROR,
            error_message=result.error_message,
            details=result.details,
        )
