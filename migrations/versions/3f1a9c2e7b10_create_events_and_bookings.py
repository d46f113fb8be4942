"""create events and bookings

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19 09:12:40.218533

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('event_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_seats', sa.Integer(), nullable=False),
        sa.Column('available_seats', sa.Integer(), nullable=False),
        sa.Column(
            'created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('total_seats > 0', name='ck_events_total_seats_positive'),
        sa.CheckConstraint('available_seats >= 0', name='ck_events_available_seats_non_negative'),
        sa.CheckConstraint('available_seats <= total_seats', name='ck_events_seats_consistency'),
    )
    op.create_index('ix_events_name', 'events', ['name'])
    op.create_index('ix_events_event_date', 'events', ['event_date'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('seats_booked', sa.Integer(), nullable=False),
        sa.Column(
            'created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id']),
        sa.CheckConstraint('seats_booked > 0', name='ck_bookings_seats_booked_positive'),
    )
    op.create_index('ix_bookings_event_id', 'bookings', ['event_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_bookings_event_id', table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('ix_events_event_date', table_name='events')
    op.drop_index('ix_events_name', table_name='events')
    op.drop_table('events')
