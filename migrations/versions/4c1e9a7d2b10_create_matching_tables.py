"""create_matching_tables

Revision ID: 4c1e9a7d2b10
Revises:
Create Date: 2026-10-19 09:12:44.381207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4c1e9a7d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, scent_profiles, matches and messages tables."""
    # users and scent_profiles are written by the account and profile services
    op.create_table('users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('photos', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table('scent_profiles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('scent_notes', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('intensity', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('preferred_notes', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('avoid_notes', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('intensity BETWEEN 1 AND 10', name='ck_scent_profiles_intensity'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    # One row per unordered pair, stored with the lower user ID first
    op.create_table('matches',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user1_id', sa.UUID(), nullable=False),
        sa.Column('user2_id', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('compatibility_score', sa.Integer(), nullable=True),
        sa.Column('score_breakdown', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('user1_liked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('user2_liked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('matched_at', sa.DateTime(), nullable=True),
        sa.Column('unmatched_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('last_activity_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('user1_id < user2_id', name='ck_matches_canonical_pair'),
        sa.CheckConstraint(
            "status IN ('pending', 'mutual', 'passed', 'unmatched', 'expired')",
            name='ck_matches_status',
        ),
        sa.ForeignKeyConstraint(['user1_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user2_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user1_id', 'user2_id', name='uq_matches_pair'),
    )
    op.create_index('ix_matches_user2_status', 'matches', ['user2_id', 'status'], unique=False)
    op.create_index('ix_matches_status_expires', 'matches', ['status', 'expires_at'], unique=False)

    op.create_table('messages',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('match_id', sa.UUID(), nullable=False),
        sa.Column('sender_id', sa.UUID(), nullable=False),
        sa.Column('receiver_id', sa.UUID(), nullable=False),
        sa.Column('iv', sa.String(length=64), nullable=False),
        sa.Column('ciphertext', sa.Text(), nullable=False),
        sa.Column('auth_tag', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False, server_default='text'),
        sa.Column('media_url', sa.String(length=500), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("kind IN ('text', 'image', 'voice', 'video')", name='ck_messages_kind'),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_messages_match_sent', 'messages', ['match_id', 'sent_at'], unique=False)
    op.create_index('ix_messages_receiver_unread', 'messages', ['receiver_id', 'read_at'], unique=False)


def downgrade() -> None:
    """Drop the matching tables."""
    op.drop_index('ix_messages_receiver_unread', table_name='messages')
    op.drop_index('ix_messages_match_sent', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_matches_status_expires', table_name='matches')
    op.drop_index('ix_matches_user2_status', table_name='matches')
    op.drop_table('matches')
    op.drop_table('scent_profiles')
    op.drop_table('users')
