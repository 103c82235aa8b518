"""create_staging_contract_events

Revision ID: 2026_10_18_120000
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '2026_10_18_120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE SCHEMA IF NOT EXISTS staging')
    op.create_table(
        'contract_events',
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column('transaction_hash', postgresql.BYTEA(), nullable=False),
        sa.Column('address', postgresql.BYTEA(), nullable=False),
        sa.Column('event_name', sa.String(length=128), nullable=False),
        sa.Column('topic0', postgresql.BYTEA(), nullable=True),
        sa.Column('args', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('data', postgresql.BYTEA(), nullable=False),
        sa.PrimaryKeyConstraint('chain_id', 'block_number', 'log_index'),
        schema='staging',
    )
    op.create_index(
        'ix_contract_events_chain_address_event_block',
        'contract_events',
        ['chain_id', 'address', 'event_name', 'block_number'],
        unique=False,
        schema='staging',
    )
    op.create_index(
        'ix_contract_events_chain_txhash',
        'contract_events',
        ['chain_id', 'transaction_hash'],
        unique=False,
        schema='staging',
    )


def downgrade() -> None:
    op.drop_index('ix_contract_events_chain_txhash', table_name='contract_events', schema='staging')
    op.drop_index('ix_contract_events_chain_address_event_block', table_name='contract_events', schema='staging')
    op.drop_table('contract_events', schema='staging')
