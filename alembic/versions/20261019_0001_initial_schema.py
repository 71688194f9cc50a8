"""Initial schema - CoachDesk

Revision ID: 0001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('last_name', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('role', sa.String(50), nullable=False, server_default='user', index=True),
        sa.Column('reset_token', sa.String(64), nullable=True, index=True),
        sa.Column('reset_token_expires', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Profiles table
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), unique=True, nullable=False),
        sa.Column('telephone', sa.String(50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('progression_profile', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('progression_documents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('progression_form', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('progression_rdv_phone', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('progression_rdv_strategy', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )

    # Revocation ledger
    op.create_table(
        'revoked_tokens',
        sa.Column('token_hash', sa.String(64), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('token_type', sa.String(20), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_revoked_tokens_expires_at', 'revoked_tokens', ['expires_at'])

    # Internal messages
    op.create_table(
        'internal_messages',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('sender_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('receiver_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'ix_internal_messages_pair_created',
        'internal_messages',
        ['sender_id', 'receiver_id', 'created_at'],
    )
    op.create_index(
        'ix_internal_messages_receiver_unread',
        'internal_messages',
        ['receiver_id', 'is_admin', 'read'],
    )

    # Time slots and appointments
    op.create_table(
        'time_slots',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('start_datetime', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('end_datetime', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='available'),
        sa.Column('type', sa.String(20), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('time_slot_id', sa.Integer(), sa.ForeignKey('time_slots.id'), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='scheduled'),
        sa.Column('reminder_sent_24h', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminder_sent_2h', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    # Visio links
    op.create_table(
        'visio_links',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('visio_url', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_visio_links_user_active', 'visio_links', ['user_id', 'is_active'])

    # Documents and form submissions
    op.create_table(
        'documents',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('type', sa.String(100), nullable=True),
        sa.Column('url', sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        'form_submissions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('type', sa.String(50), nullable=False, server_default='situation'),
        sa.Column('data', sa.JSON(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table('form_submissions')
    op.drop_table('documents')
    op.drop_index('ix_visio_links_user_active', table_name='visio_links')
    op.drop_table('visio_links')
    op.drop_table('appointments')
    op.drop_table('time_slots')
    op.drop_index('ix_internal_messages_receiver_unread', table_name='internal_messages')
    op.drop_index('ix_internal_messages_pair_created', table_name='internal_messages')
    op.drop_table('internal_messages')
    op.drop_index('ix_revoked_tokens_expires_at', table_name='revoked_tokens')
    op.drop_table('revoked_tokens')
    op.drop_table('profiles')
    op.drop_table('users')
