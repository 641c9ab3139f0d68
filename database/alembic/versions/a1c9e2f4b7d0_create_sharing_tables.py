"""Create scheduling, sharing and settlement tables

Revision ID: a1c9e2f4b7d0
Revises:
Create Date: 2025-11-14

Creates:
- users, pets, walker_connections
- appointments (recurring templates and one-time occurrences)
- appointment_shares with the partial unique index that allows at most one
  pending/accepted share per appointment
- walker_earnings, invoices with the (appointment_id, date_completed)
  settlement keys
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = 'a1c9e2f4b7d0'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    op.create_table('users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email'),
    )

    op.create_table('pets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('behavioral_notes', sa.Text(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pets_user_id', 'pets', ['user_id'])

    op.create_table('walker_connections',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('connected_user_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        *_timestamps(),
        sa.CheckConstraint('user_id <> connected_user_id', name='check_connection_not_self'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['connected_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'connected_user_id', name='uq_walker_connections_pair'),
    )
    op.create_index('ix_walker_connections_user_id', 'walker_connections', ['user_id'])
    op.create_index('ix_walker_connections_connected_user_id', 'walker_connections', ['connected_user_id'])
    op.create_index('ix_walker_connections_status', 'walker_connections', ['status'])

    op.create_table('appointments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('pet_id', sa.Uuid(), nullable=False),
        sa.Column('recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('appointment_date', sa.DATE(), nullable=True),
        *[
            sa.Column(day, sa.Boolean(), nullable=False, server_default=sa.false())
            for day in ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')
        ],
        sa.Column('start_time', sa.TIME(), nullable=False),
        sa.Column('end_time', sa.TIME(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('walk_type', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='scheduled'),
        sa.Column('delegation_status', sa.String(length=20), nullable=False, server_default='none'),
        sa.Column('completed_by_user_id', sa.Uuid(), nullable=True),
        sa.Column('cloned_from_appointment_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('duration > 0', name='check_appointment_duration_positive'),
        sa.CheckConstraint('price >= 0', name='check_appointment_price_non_negative'),
        sa.CheckConstraint(
            'NOT (recurring AND cloned_from_appointment_id IS NOT NULL)',
            name='check_template_not_cloned',
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['completed_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['cloned_from_appointment_id'], ['appointments.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_appointments_user_id', 'appointments', ['user_id'])
    op.create_index('ix_appointments_pet_id', 'appointments', ['pet_id'])
    op.create_index('ix_appointments_delegation_status', 'appointments', ['delegation_status'])
    op.create_index('ix_appointments_cloned_from_appointment_id', 'appointments', ['cloned_from_appointment_id'])
    op.create_index('idx_appointments_user_date', 'appointments', ['user_id', 'appointment_date'])
    # At most one live clone of a template per date
    op.create_index(
        'uq_appointments_live_clone',
        'appointments',
        ['cloned_from_appointment_id', 'appointment_date'],
        unique=True,
        postgresql_where=sa.text("cloned_from_appointment_id IS NOT NULL AND status <> 'canceled'"),
    )

    op.create_table('appointment_shares',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('appointment_id', sa.Uuid(), nullable=False),
        sa.Column('shared_by_user_id', sa.Uuid(), nullable=False),
        sa.Column('shared_with_user_id', sa.Uuid(), nullable=False),
        sa.Column('covering_walker_percentage', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('recurring_share', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('responded_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            'covering_walker_percentage >= 0 AND covering_walker_percentage <= 100',
            name='check_covering_percentage_range',
        ),
        sa.CheckConstraint('shared_by_user_id <> shared_with_user_id', name='check_share_not_self'),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['shared_by_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['shared_with_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_appointment_shares_appointment_id', 'appointment_shares', ['appointment_id'])
    op.create_index('ix_appointment_shares_shared_by_user_id', 'appointment_shares', ['shared_by_user_id'])
    op.create_index('ix_appointment_shares_shared_with_user_id', 'appointment_shares', ['shared_with_user_id'])
    op.create_index('ix_appointment_shares_status', 'appointment_shares', ['status'])
    # At most one pending/accepted share per appointment
    op.create_index(
        'uq_appointment_shares_active',
        'appointment_shares',
        ['appointment_id'],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'accepted')"),
    )

    op.create_table('walker_earnings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('appointment_id', sa.Uuid(), nullable=False),
        sa.Column('walker_id', sa.Uuid(), nullable=False),
        sa.Column('appointment_share_id', sa.Uuid(), nullable=False),
        sa.Column('pet_id', sa.Uuid(), nullable=False),
        sa.Column('date_completed', sa.DATE(), nullable=False),
        sa.Column('compensation', sa.Integer(), nullable=False),
        sa.Column('split_percentage', sa.Integer(), nullable=False),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='unpaid'),
        sa.Column('title', sa.String(length=200), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('compensation >= 0', name='check_earning_compensation_non_negative'),
        sa.CheckConstraint('split_percentage >= 0 AND split_percentage <= 100', name='check_earning_split_range'),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['walker_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['appointment_share_id'], ['appointment_shares.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('appointment_id', 'date_completed', name='uq_walker_earnings_appointment_date'),
    )
    op.create_index('ix_walker_earnings_appointment_id', 'walker_earnings', ['appointment_id'])
    op.create_index('ix_walker_earnings_walker_id', 'walker_earnings', ['walker_id'])
    op.create_index('ix_walker_earnings_appointment_share_id', 'walker_earnings', ['appointment_share_id'])
    op.create_index('ix_walker_earnings_date_completed', 'walker_earnings', ['date_completed'])
    op.create_index('idx_walker_earnings_walker_payment', 'walker_earnings', ['walker_id', 'payment_status'])

    op.create_table('invoices',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('appointment_id', sa.Uuid(), nullable=False),
        sa.Column('pet_id', sa.Uuid(), nullable=False),
        sa.Column('completed_by_user_id', sa.Uuid(), nullable=True),
        sa.Column('date_completed', sa.DATE(), nullable=False),
        sa.Column('compensation', sa.Integer(), nullable=False),
        sa.Column('is_shared', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('split_percentage', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='unpaid'),
        sa.Column('title', sa.String(length=200), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('compensation >= 0', name='check_invoice_compensation_non_negative'),
        sa.CheckConstraint('split_percentage >= 0 AND split_percentage <= 100', name='check_invoice_split_range'),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['pet_id'], ['pets.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['completed_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('appointment_id', 'date_completed', name='uq_invoices_appointment_date'),
    )
    op.create_index('ix_invoices_appointment_id', 'invoices', ['appointment_id'])
    op.create_index('ix_invoices_pet_id', 'invoices', ['pet_id'])
    op.create_index('ix_invoices_completed_by_user_id', 'invoices', ['completed_by_user_id'])
    op.create_index('ix_invoices_is_shared', 'invoices', ['is_shared'])
    op.create_index('idx_invoices_pet_payment', 'invoices', ['pet_id', 'payment_status'])


def downgrade() -> None:
    op.drop_table('invoices')
    op.drop_table('walker_earnings')
    op.drop_index('uq_appointment_shares_active', table_name='appointment_shares')
    op.drop_table('appointment_shares')
    op.drop_index('uq_appointments_live_clone', table_name='appointments')
    op.drop_table('appointments')
    op.drop_table('walker_connections')
    op.drop_table('pets')
    op.drop_table('users')
