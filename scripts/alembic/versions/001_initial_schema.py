"""Initial schema with parking locations, reservations, transactions

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create reservation core schema."""
    op.execute("CREATE TYPE pricingmode AS ENUM ('hourly', 'slab', 'daily')")
    op.execute("CREATE TYPE reservationstatus AS ENUM ('pending', 'confirmed', 'cancelled', 'completed')")
    op.execute("CREATE TYPE paymentmethod AS ENUM ('upi', 'cash', 'card')")
    op.execute("CREATE TYPE transactionstatus AS ENUM ('initiated', 'paid', 'failed')")

    op.create_table(
        'parking_locations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_user_id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('total_slots', sa.Integer(), nullable=False),
        sa.Column('available_slots', sa.Integer(), nullable=False),
        sa.Column('pricing_mode', postgresql.ENUM('hourly', 'slab', 'daily', name='pricingmode', create_type=False), nullable=False),
        sa.Column('base_price_per_hour_paise', sa.Integer(), nullable=False),
        sa.Column('slab_json', sa.JSON(), nullable=True),
        sa.Column('approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('total_slots >= 1', name='check_positive_total_slots'),
        sa.CheckConstraint('available_slots >= 0', name='check_nonnegative_available_slots'),
        sa.CheckConstraint('available_slots <= total_slots', name='check_available_le_total'),
        sa.CheckConstraint('base_price_per_hour_paise >= 0', name='check_nonnegative_base_price'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_parking_locations_owner_user_id', 'parking_locations', ['owner_user_id'])
    op.create_index('ix_parking_locations_approved', 'parking_locations', ['approved'])

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('customer_user_id', sa.String(length=64), nullable=False),
        sa.Column('vehicle_number', sa.String(length=32), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price_paise', sa.BigInteger(), nullable=False),
        sa.Column('status', postgresql.ENUM('pending', 'confirmed', 'cancelled', 'completed', name='reservationstatus', create_type=False), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('start_time < end_time', name='check_time_range'),
        sa.CheckConstraint('duration_minutes > 0', name='check_positive_duration'),
        sa.CheckConstraint('price_paise >= 0', name='check_nonnegative_price'),
        sa.ForeignKeyConstraint(['location_id'], ['parking_locations.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_reservations_location_status_window',
        'reservations',
        ['location_id', 'status', 'start_time', 'end_time'],
    )
    op.create_index(
        'ix_reservations_customer_created',
        'reservations',
        ['customer_user_id', sa.text('created_at DESC')],
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('reservation_id', sa.Integer(), nullable=False),
        sa.Column('amount_paise', sa.BigInteger(), nullable=False),
        sa.Column('payment_method', postgresql.ENUM('upi', 'cash', 'card', name='paymentmethod', create_type=False), nullable=False),
        sa.Column('upi_vpa', sa.String(length=100), nullable=True),
        sa.Column('qr_payload', sa.Text(), nullable=True),
        sa.Column('status', postgresql.ENUM('initiated', 'paid', 'failed', name='transactionstatus', create_type=False), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('amount_paise >= 0', name='check_nonnegative_amount'),
        sa.ForeignKeyConstraint(['reservation_id'], ['reservations.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transactions_reservation_id', 'transactions', ['reservation_id'])


def downgrade() -> None:
    """Drop all tables and types."""
    op.drop_table('transactions')
    op.drop_table('reservations')
    op.drop_table('parking_locations')

    op.execute('DROP TYPE IF EXISTS transactionstatus')
    op.execute('DROP TYPE IF EXISTS paymentmethod')
    op.execute('DROP TYPE IF EXISTS reservationstatus')
    op.execute('DROP TYPE IF EXISTS pricingmode')
