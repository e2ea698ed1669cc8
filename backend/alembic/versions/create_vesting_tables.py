"""Create vesting engine tables

Revision ID: create_vesting_tables
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_vesting_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Amounts are unsigned integers stored as decimal text (see tokenvest.models.database.Amount)
AMOUNT = sa.String(78)

vesting_event_type = sa.Enum(
    'TOKEN_SUPPORTED',
    'TOKEN_UNSUPPORTED',
    'TOKENS_LOCKED',
    'TOKENS_CLAIMED',
    'VESTING_REVOKED',
    'PAUSED',
    'UNPAUSED',
    'ADMINISTRATION_TRANSFERRED',
    name='vestingeventtype',
)


def upgrade() -> None:
    op.create_table(
        'engine_state',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('admin_address', sa.String(64), nullable=False),
        sa.Column('paused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('paused_by', sa.String(64), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'supported_assets',
        sa.Column('asset', sa.String(64), nullable=False),
        sa.Column('supported', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('updated_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('asset'),
    )

    op.create_table(
        'vesting_schedules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('beneficiary', sa.String(64), nullable=False),
        sa.Column('schedule_index', sa.Integer(), nullable=False),
        sa.Column('asset', sa.String(64), nullable=False),
        sa.Column('total_amount', AMOUNT, nullable=False),
        sa.Column('claimed_amount', AMOUNT, nullable=False, server_default='0'),
        sa.Column('start_time', sa.BigInteger(), nullable=False),
        sa.Column('end_time', sa.BigInteger(), nullable=False),
        sa.Column('revocable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('policy_kind', sa.String(10), nullable=False, server_default='linear'),
        sa.Column('release_interval', sa.BigInteger(), nullable=True),
        sa.Column('release_percentage_bps', sa.Integer(), nullable=True),
        sa.Column('next_release_time', sa.BigInteger(), nullable=True),
        sa.Column('vested_at_revocation', AMOUNT, nullable=True),
        sa.Column('revoked_at', sa.BigInteger(), nullable=True),
        sa.Column('revoked_by', sa.String(64), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('beneficiary', 'schedule_index', name='uq_vesting_schedules_beneficiary_index'),
    )
    op.create_index('ix_vesting_schedules_beneficiary', 'vesting_schedules', ['beneficiary'])
    op.create_index('ix_vesting_schedules_asset', 'vesting_schedules', ['asset'])

    op.create_table(
        'vesting_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_type', vesting_event_type, nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('beneficiary', sa.String(64), nullable=True),
        sa.Column('asset', sa.String(64), nullable=True),
        sa.Column('amount', AMOUNT, nullable=True),
        sa.Column('schedule_index', sa.Integer(), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('triggered_by', sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vesting_events_event_type', 'vesting_events', ['event_type'])
    op.create_index('ix_vesting_events_timestamp', 'vesting_events', ['timestamp'])
    op.create_index('ix_vesting_events_beneficiary', 'vesting_events', ['beneficiary'])
    op.create_index('ix_vesting_events_asset', 'vesting_events', ['asset'])
    op.create_index('ix_vesting_events_beneficiary_index', 'vesting_events', ['beneficiary', 'schedule_index'])


def downgrade() -> None:
    op.drop_index('ix_vesting_events_beneficiary_index', table_name='vesting_events')
    op.drop_index('ix_vesting_events_asset', table_name='vesting_events')
    op.drop_index('ix_vesting_events_beneficiary', table_name='vesting_events')
    op.drop_index('ix_vesting_events_timestamp', table_name='vesting_events')
    op.drop_index('ix_vesting_events_event_type', table_name='vesting_events')
    op.drop_table('vesting_events')
    vesting_event_type.drop(op.get_bind(), checkfirst=True)

    op.drop_index('ix_vesting_schedules_asset', table_name='vesting_schedules')
    op.drop_index('ix_vesting_schedules_beneficiary', table_name='vesting_schedules')
    op.drop_table('vesting_schedules')

    op.drop_table('supported_assets')
    op.drop_table('engine_state')
