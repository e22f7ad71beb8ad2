"""add delivery_holidays (platform and city delivery restrictions per date)

Revision ID: add_delivery_holidays
Revises: initial_schema
Create Date: 2026-10-20
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'add_delivery_holidays'
down_revision: Union[str, None] = 'initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'delivery_holidays',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('city_id', sa.Integer(), nullable=True),
        sa.Column('mode', sa.String(20), nullable=False, server_default='FULL_BLOCK'),
        sa.Column('slot_overrides', sa.JSON(), nullable=True),
        sa.Column('reason', sa.String(255), nullable=False),
        sa.Column('customer_message', sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('date', 'city_id', name='uq_delivery_holidays_date_city'),
    )
    op.create_index('ix_delivery_holidays_date', 'delivery_holidays', ['date'])


def downgrade() -> None:
    op.drop_index('ix_delivery_holidays_date', table_name='delivery_holidays')
    op.drop_table('delivery_holidays')
