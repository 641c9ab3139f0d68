"""
SQLAlchemy ORM models for the walk scheduling and sharing tables.

This module defines:
- users / pets: walkers and the pets they walk
- walker_connections: accepted connections gate who may share with whom
- appointments: recurring templates and one-time occurrences
- appointment_shares: delegation proposals between connected walkers
- walker_earnings / invoices: append-only settlement records

All models use:
- UUID primary keys (auto-generated)
- TIMESTAMP WITH TIME ZONE for audit fields
- Integer minor currency units (cents) for money
- Status enums stored as plain strings (portable across PostgreSQL and SQLite)
"""

from datetime import UTC, date, datetime, time
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    DATE,
    TIME,
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# ============================================================================
# Base Class
# ============================================================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def utcnow() -> datetime:
    return datetime.now(UTC)


# Weekday flag columns in date.weekday() order (0=Monday)
WEEKDAY_FIELDS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

# Share statuses that hold an appointment. At most one share per appointment
# may be in one of these (enforced by uq_appointment_shares_active).
ACTIVE_SHARE_STATUSES = ("pending", "accepted")
_ACTIVE_SHARE_PREDICATE = "status IN ('pending', 'accepted')"

# One live (not canceled) clone per template and date
_LIVE_CLONE_PREDICATE = "cloned_from_appointment_id IS NOT NULL AND status <> 'canceled'"


# ============================================================================
# Enums
# ============================================================================


class AppointmentStatus(str, PyEnum):
    """Appointment lifecycle status (replaces completed/canceled booleans)."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELED = "canceled"

    def __str__(self):
        return self.value


class DelegationStatus(str, PyEnum):
    """Delegation state of an appointment."""

    NONE = "none"
    SHARED = "shared"          # Representable, not written by the sharing core
    ACCEPTED = "accepted"      # A covering walker accepted the share
    COMPLETED = "completed"    # Shared walk settled

    def __str__(self):
        return self.value


class ShareStatus(str, PyEnum):
    """AppointmentShare state machine."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELED = "canceled"

    def __str__(self):
        return self.value


class PaymentStatus(str, PyEnum):
    """Payment state of an invoice or walker earning (replaces paid/pending/cancelled flags)."""

    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"

    def __str__(self):
        return self.value


class ConnectionStatus(str, PyEnum):
    """Walker-to-walker connection status."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    BLOCKED = "blocked"


def _string_enum(enum_cls: type[PyEnum], name: str) -> SQLEnum:
    # values_callable stores .value ("pending") instead of .name ("PENDING")
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda x: [e.value for e in x],
    )


# ============================================================================
# Core Models
# ============================================================================


class User(Base):
    """
    User model - Walkers who own appointments and cover shared walks.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    pets: Mapped[list["Pet"]] = relationship(
        "Pet", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"


class Pet(Base):
    """
    Pet model - The dog being walked. Belongs to the walker who owns the client.
    """

    __tablename__ = "pets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    behavioral_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="pets")

    def __repr__(self) -> str:
        return f"<Pet(id={self.id}, name='{self.name}')>"


class WalkerConnection(Base):
    """
    WalkerConnection model - Peer relationship between two walkers.

    Sharing is only allowed between walkers with an ACCEPTED connection,
    in either direction.
    """

    __tablename__ = "walker_connections"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    connected_user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[ConnectionStatus] = mapped_column(
        _string_enum(ConnectionStatus, "connection_status"),
        default=ConnectionStatus.PENDING,
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "connected_user_id", name="uq_walker_connections_pair"),
        CheckConstraint("user_id <> connected_user_id", name="check_connection_not_self"),
    )

    def __repr__(self) -> str:
        return (
            f"<WalkerConnection(user_id={self.user_id}, "
            f"connected_user_id={self.connected_user_id}, status='{self.status.value}')>"
        )


# ============================================================================
# Scheduling Models
# ============================================================================


class Appointment(Base):
    """
    Appointment model - Recurring templates and one-time occurrences.

    A recurring appointment is a template: its weekday flags define when it
    happens and it can never be shared directly. One-time appointments carry
    a fixed appointment_date; clones of a template point back to it through
    cloned_from_appointment_id.
    """

    __tablename__ = "appointments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pet_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Scheduling
    recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    appointment_date: Mapped[date | None] = mapped_column(DATE, nullable=True)
    monday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    tuesday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    wednesday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    thursday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    friday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    saturday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sunday: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    start_time: Mapped[time] = mapped_column(TIME, nullable=False)
    end_time: Mapped[time] = mapped_column(TIME, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)

    # Money in cents
    price: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    walk_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Status tracking
    status: Mapped[AppointmentStatus] = mapped_column(
        _string_enum(AppointmentStatus, "appointment_status"),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )
    delegation_status: Mapped[DelegationStatus] = mapped_column(
        _string_enum(DelegationStatus, "delegation_status"),
        default=DelegationStatus.NONE,
        nullable=False,
        index=True,
    )
    completed_by_user_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Lineage: set once at clone time, never updated
    cloned_from_appointment_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", foreign_keys=[user_id])
    pet: Mapped["Pet"] = relationship("Pet")
    shares: Mapped[list["AppointmentShare"]] = relationship(
        "AppointmentShare",
        back_populates="appointment",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("duration > 0", name="check_appointment_duration_positive"),
        CheckConstraint("price >= 0", name="check_appointment_price_non_negative"),
        # Templates are never clones
        CheckConstraint(
            "NOT (recurring AND cloned_from_appointment_id IS NOT NULL)",
            name="check_template_not_cloned",
        ),
        Index("idx_appointments_user_date", "user_id", "appointment_date"),
        Index(
            "uq_appointments_live_clone",
            "cloned_from_appointment_id",
            "appointment_date",
            unique=True,
            postgresql_where=text(_LIVE_CLONE_PREDICATE),
            sqlite_where=text(_LIVE_CLONE_PREDICATE),
        ),
    )

    @property
    def completed(self) -> bool:
        return self.status == AppointmentStatus.COMPLETED

    @property
    def canceled(self) -> bool:
        return self.status == AppointmentStatus.CANCELED

    @property
    def weekday_flags(self) -> tuple[bool, ...]:
        """Weekday flags in date.weekday() order."""
        return tuple(bool(getattr(self, field)) for field in WEEKDAY_FIELDS)

    def __repr__(self) -> str:
        kind = "recurring" if self.recurring else f"one-time {self.appointment_date}"
        return f"<Appointment(id={self.id}, {kind}, delegation='{self.delegation_status}')>"


class AppointmentShare(Base):
    """
    AppointmentShare model - Proposal to delegate one appointment occurrence.

    State machine: pending -> accepted | rejected | canceled,
    accepted -> canceled (before the walk is settled).
    """

    __tablename__ = "appointment_shares"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    appointment_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    shared_by_user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    shared_with_user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    covering_walker_percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ShareStatus] = mapped_column(
        _string_enum(ShareStatus, "share_status"),
        default=ShareStatus.PENDING,
        nullable=False,
        index=True,
    )
    # Informational: produced by sharing dates of a recurring template
    recurring_share: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    # Relationships
    appointment: Mapped["Appointment"] = relationship("Appointment", back_populates="shares")
    shared_by_user: Mapped["User"] = relationship("User", foreign_keys=[shared_by_user_id])
    shared_with_user: Mapped["User"] = relationship("User", foreign_keys=[shared_with_user_id])

    __table_args__ = (
        CheckConstraint(
            "covering_walker_percentage >= 0 AND covering_walker_percentage <= 100",
            name="check_covering_percentage_range",
        ),
        CheckConstraint(
            "shared_by_user_id <> shared_with_user_id",
            name="check_share_not_self",
        ),
        # One active (pending/accepted) share per appointment
        Index(
            "uq_appointment_shares_active",
            "appointment_id",
            unique=True,
            postgresql_where=text(_ACTIVE_SHARE_PREDICATE),
            sqlite_where=text(_ACTIVE_SHARE_PREDICATE),
        ),
    )

    @property
    def original_walker_percentage(self) -> int:
        return 100 - self.covering_walker_percentage

    @property
    def is_active(self) -> bool:
        return self.status.value in ACTIVE_SHARE_STATUSES

    def __repr__(self) -> str:
        return (
            f"<AppointmentShare(id={self.id}, appointment_id={self.appointment_id}, "
            f"status='{self.status.value}', covering={self.covering_walker_percentage}%)>"
        )


# ============================================================================
# Settlement Models
# ============================================================================


class WalkerEarning(Base):
    """
    WalkerEarning model - What the original walker owes the covering walker.

    Created once per settled shared occurrence. Only payment_status changes
    after creation.
    """

    __tablename__ = "walker_earnings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    appointment_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("appointments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    walker_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    appointment_share_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("appointment_shares.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    pet_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("pets.id", ondelete="RESTRICT"), nullable=False
    )

    date_completed: Mapped[date] = mapped_column(DATE, nullable=False, index=True)
    compensation: Mapped[int] = mapped_column(Integer, nullable=False)
    split_percentage: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _string_enum(PaymentStatus, "payment_status"),
        default=PaymentStatus.UNPAID,
        nullable=False,
    )
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("compensation >= 0", name="check_earning_compensation_non_negative"),
        CheckConstraint(
            "split_percentage >= 0 AND split_percentage <= 100",
            name="check_earning_split_range",
        ),
        UniqueConstraint(
            "appointment_id", "date_completed", name="uq_walker_earnings_appointment_date"
        ),
        Index("idx_walker_earnings_walker_payment", "walker_id", "payment_status"),
    )

    @property
    def paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def pending(self) -> bool:
        return self.payment_status == PaymentStatus.PENDING

    @property
    def is_training_walk(self) -> bool:
        return "training" in (self.title or "").lower()

    def __repr__(self) -> str:
        return (
            f"<WalkerEarning(id={self.id}, walker_id={self.walker_id}, "
            f"compensation={self.compensation})>"
        )


class Invoice(Base):
    """
    Invoice model - Client-facing bill for one completed occurrence.

    For a shared walk the compensation is the original owner's retained part
    and completed_by_user_id is the covering walker.
    """

    __tablename__ = "invoices"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    appointment_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("appointments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    pet_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("pets.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    completed_by_user_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    date_completed: Mapped[date] = mapped_column(DATE, nullable=False)
    compensation: Mapped[int] = mapped_column(Integer, nullable=False)
    is_shared: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    split_percentage: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _string_enum(PaymentStatus, "payment_status"),
        default=PaymentStatus.UNPAID,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("compensation >= 0", name="check_invoice_compensation_non_negative"),
        CheckConstraint(
            "split_percentage >= 0 AND split_percentage <= 100",
            name="check_invoice_split_range",
        ),
        # Settlement idempotency key
        UniqueConstraint(
            "appointment_id", "date_completed", name="uq_invoices_appointment_date"
        ),
        Index("idx_invoices_pet_payment", "pet_id", "payment_status"),
    )

    @property
    def paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def pending(self) -> bool:
        return self.payment_status == PaymentStatus.PENDING

    @property
    def cancelled(self) -> bool:
        return self.payment_status == PaymentStatus.CANCELLED

    def __repr__(self) -> str:
        return (
            f"<Invoice(id={self.id}, appointment_id={self.appointment_id}, "
            f"compensation={self.compensation}, shared={self.is_shared})>"
        )
