"""Initial EchoWrite schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

Users, anonymous sessions, subscription plans and subscriptions,
conversations with their messages, one-time passcodes, known devices
and processed Stripe webhook events.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('is_email_verified', sa.Boolean, server_default='false', nullable=False),
        sa.Column('email_verified_at', sa.DateTime(timezone=True)),

        # Monthly free quota
        sa.Column('free_quota_used', sa.Integer, server_default='0', nullable=False),
        sa.Column('free_quota_limit', sa.Integer, server_default='3', nullable=False),
        sa.Column('last_quota_reset', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),

        sa.Column('stripe_customer_id', sa.String(255), unique=True),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'anonymous_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('conversations_used', sa.Integer, server_default='0', nullable=False),
        sa.Column('conversations_limit', sa.Integer, server_default='3', nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_anonymous_sessions_expires_at', 'anonymous_sessions', ['expires_at'])

    op.create_table(
        'subscription_plans',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tier', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('max_messages', sa.Integer, nullable=False),
        sa.Column('monthly_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('yearly_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('features', sa.JSON, nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_subscription_plans_tier', 'subscription_plans', ['tier'], unique=True)
    op.create_index('ix_subscription_plans_is_active', 'subscription_plans', ['is_active'])

    op.create_table(
        'subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('plan_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('subscription_plans.id'), nullable=False),

        # Plan snapshot
        sa.Column('tier', sa.String(50), nullable=False),
        sa.Column('max_messages', sa.Integer, nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('billing_cycle', sa.String(20), server_default='monthly', nullable=False),

        # Usage tracking
        sa.Column('used_messages', sa.Integer, server_default='0', nullable=False),

        # Lifecycle
        sa.Column('auto_renew', sa.Boolean, server_default='true', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('renewal_date', sa.DateTime(timezone=True)),

        sa.Column('stripe_subscription_id', sa.String(255)),
        *_timestamps(),
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])
    op.create_index('ix_subscriptions_is_active', 'subscriptions', ['is_active'])
    op.create_index('ix_subscriptions_renewal_date', 'subscriptions', ['renewal_date'])
    op.create_index(
        'ix_subscriptions_stripe_subscription_id',
        'subscriptions',
        ['stripe_subscription_id'],
        unique=True,
    )

    op.create_table(
        'conversations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE')),
        # No foreign key: conversations outlive the expired-session sweep
        sa.Column('session_id', postgresql.UUID(as_uuid=True)),
        sa.Column('title', sa.String(255), server_default='New Conversation', nullable=False),
        sa.Column('is_anonymous', sa.Boolean, server_default='false', nullable=False),
        sa.Column('message_count', sa.Integer, server_default='0', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_conversations_user_id', 'conversations', ['user_id'])
    op.create_index('ix_conversations_session_id', 'conversations', ['session_id'])

    op.create_table(
        'chat_messages',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'conversation_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('conversations.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('user_id', postgresql.UUID(as_uuid=True)),
        sa.Column('session_id', postgresql.UUID(as_uuid=True)),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('tokens', sa.Integer),
        sa.Column('language', sa.String(50), server_default='english', nullable=False),
        sa.Column('input_type', sa.String(20), server_default='text', nullable=False),
        sa.Column('iterations', sa.JSON),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_chat_messages_conversation_id', 'chat_messages', ['conversation_id'])
    op.create_index('ix_chat_messages_user_id', 'chat_messages', ['user_id'])
    op.create_index('ix_chat_messages_session_id', 'chat_messages', ['session_id'])

    op.create_table(
        'one_time_passwords',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('otp', sa.String(6), nullable=False),
        sa.Column('purpose', sa.String(30), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_used', sa.Boolean, server_default='false', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_one_time_passwords_user_id', 'one_time_passwords', ['user_id'])
    op.create_index('ix_one_time_passwords_purpose', 'one_time_passwords', ['purpose'])
    op.create_index('ix_one_time_passwords_expires_at', 'one_time_passwords', ['expires_at'])

    op.create_table(
        'user_devices',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('device_id', sa.String(255), nullable=False),
        sa.Column('device_name', sa.String(100), nullable=False),
        sa.Column('user_agent', sa.String(512), server_default='', nullable=False),
        sa.Column('ip_address', sa.String(64)),
        sa.Column('is_trusted', sa.Boolean, server_default='false', nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'device_id', name='uq_user_devices_user_device'),
    )
    op.create_index('ix_user_devices_user_id', 'user_devices', ['user_id'])

    op.create_table(
        'processed_webhook_events',
        sa.Column('event_id', sa.String(255), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column(
            'processed_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
    )
    # Index for cleanup queries (delete events older than X days)
    op.create_index(
        'ix_processed_webhook_events_processed_at',
        'processed_webhook_events',
        ['processed_at'],
    )


def downgrade() -> None:
    op.drop_table('processed_webhook_events')
    op.drop_table('user_devices')
    op.drop_table('one_time_passwords')
    op.drop_table('chat_messages')
    op.drop_table('conversations')
    op.drop_table('subscriptions')
    op.drop_table('subscription_plans')
    op.drop_table('anonymous_sessions')
    op.drop_table('users')
