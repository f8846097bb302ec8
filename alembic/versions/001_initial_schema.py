"""initial wallet tracking and referral schema

Revision ID: 001
Revises: 
Create Date: 2025-11-18 07:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    # Create wallet_users table
    op.create_table(
        'wallet_users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('wallet_address', sa.String(42), nullable=False),
        sa.Column('last_seen', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_wallet_users_id'), 'wallet_users', ['id'], unique=False)
    op.create_index(op.f('ix_wallet_users_wallet_address'), 'wallet_users', ['wallet_address'], unique=True)

    # Create tracking_events table
    op.create_table(
        'tracking_events',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('wallet_address', sa.String(42), nullable=False),
        sa.Column('tracked_address', sa.String(42), nullable=False),
        sa.Column(
            'event_type',
            sa.Enum('input', 'track', name='tracking_event_type', native_enum=False, length=10),
            nullable=False,
        ),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('chain_id', sa.String(32), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('ip', sa.String(45), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_tracking_events_id'), 'tracking_events', ['id'], unique=False)
    op.create_index(
        'idx_tracking_wallet_tracked_type',
        'tracking_events',
        ['wallet_address', 'tracked_address', 'event_type'],
        unique=False,
    )
    op.create_index(
        'uq_tracking_track_pair',
        'tracking_events',
        ['wallet_address', 'tracked_address'],
        unique=True,
        postgresql_where=sa.text("event_type = 'track'"),
        sqlite_where=sa.text("event_type = 'track'"),
    )

    # Create referrals table
    op.create_table(
        'referrals',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('referrer', sa.String(42), nullable=False),
        sa.Column('referee', sa.String(42), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('pending', 'completed', name='referral_status', native_enum=False, length=10),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referrer', 'referee', name='uq_referral_pair'),
        sa.CheckConstraint('referrer <> referee', name='ck_referral_not_self'),
    )
    op.create_index(op.f('ix_referrals_id'), 'referrals', ['id'], unique=False)
    op.create_index(op.f('ix_referrals_referrer'), 'referrals', ['referrer'], unique=False)
    op.create_index(op.f('ix_referrals_referee'), 'referrals', ['referee'], unique=False)

    # Create auth_challenges table
    op.create_table(
        'auth_challenges',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('wallet_address', sa.String(42), nullable=False),
        sa.Column('nonce', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nonce'),
    )
    op.create_index(op.f('ix_auth_challenges_id'), 'auth_challenges', ['id'], unique=False)
    op.create_index(
        'idx_auth_challenges_wallet_created', 'auth_challenges', ['wallet_address', 'created_at'], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_auth_challenges_wallet_created', table_name='auth_challenges')
    op.drop_index(op.f('ix_auth_challenges_id'), table_name='auth_challenges')
    op.drop_table('auth_challenges')

    op.drop_index(op.f('ix_referrals_referee'), table_name='referrals')
    op.drop_index(op.f('ix_referrals_referrer'), table_name='referrals')
    op.drop_index(op.f('ix_referrals_id'), table_name='referrals')
    op.drop_table('referrals')

    op.drop_index('uq_tracking_track_pair', table_name='tracking_events')
    op.drop_index('idx_tracking_wallet_tracked_type', table_name='tracking_events')
    op.drop_index(op.f('ix_tracking_events_id'), table_name='tracking_events')
    op.drop_table('tracking_events')

    op.drop_index(op.f('ix_wallet_users_wallet_address'), table_name='wallet_users')
    op.drop_index(op.f('ix_wallet_users_id'), table_name='wallet_users')
    op.drop_table('wallet_users')
