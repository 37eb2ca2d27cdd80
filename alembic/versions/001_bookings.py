"""
Create bookings table

Revision ID: 001_bookings
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_bookings'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('client_name', sa.String(100), nullable=False),
        sa.Column('client_email', sa.String(255), nullable=False),
        sa.Column('client_phone', sa.String(20), nullable=False),
        sa.Column('client_phone_country_code', sa.String(10), nullable=False),
        sa.Column('client_country', sa.String(100), nullable=False),
        sa.Column('client_language', sa.String(50), nullable=False),
        sa.Column('client_selected_date', sa.Date(), nullable=False),
        sa.Column('client_message', sa.Text(), nullable=True),
        sa.Column('tour_id', sa.String(100), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('payment_method', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        # Soft delete tombstone
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_index('ix_booking_selected_date', 'bookings', ['client_selected_date'])
    op.create_index('ix_booking_status', 'bookings', ['status'])
    op.create_index('ix_booking_deleted_at', 'bookings', ['deleted_at'])
    op.create_index('ix_booking_created_at', 'bookings', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_booking_created_at', table_name='bookings')
    op.drop_index('ix_booking_deleted_at', table_name='bookings')
    op.drop_index('ix_booking_status', table_name='bookings')
    op.drop_index('ix_booking_selected_date', table_name='bookings')
    op.drop_table('bookings')
