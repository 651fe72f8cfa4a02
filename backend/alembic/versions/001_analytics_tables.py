"""Create analytics session and event tables

Revision ID: 001_analytics
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_analytics'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Sessions: one row per pseudonymous browser
    op.create_table(
        'analytics_session',
        sa.Column('session_id', sa.String(255), primary_key=True),
        sa.Column('user_agent', sa.String(500)),
        sa.Column('language', sa.String(35)),
        sa.Column('timezone', sa.String(64)),
        sa.Column('ip_hash', sa.String(64), index=True),
        sa.Column('country', sa.String(64), index=True),
        sa.Column('region', sa.String(128)),
        sa.Column('city', sa.String(128)),
        sa.Column('is_internal', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('first_seen', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('last_seen', sa.DateTime(timezone=True), nullable=False, index=True),
    )

    # Events: append-only
    op.create_table(
        'analytics_event',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'session_id',
            sa.String(255),
            sa.ForeignKey('analytics_session.session_id', ondelete='CASCADE'),
            nullable=False,
            index=True,
        ),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('path', sa.String(1024), nullable=False, server_default='/'),
        sa.Column('page_title', sa.String(512)),
        sa.Column('referrer', sa.String(2048)),
        sa.Column('utm', postgresql.JSONB),
        sa.Column('channel', sa.String(16), nullable=False),
        sa.Column('screen_w', sa.Integer),
        sa.Column('screen_h', sa.Integer),
        sa.Column('duration_ms', sa.Integer),
        sa.Column('meta', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_index('idx_analytics_event_created_at', 'analytics_event', ['created_at'])
    op.create_index('idx_analytics_event_type_created_at', 'analytics_event', ['type', 'created_at'])
    op.create_index('idx_analytics_event_session_created_at', 'analytics_event', ['session_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_analytics_event_session_created_at', table_name='analytics_event')
    op.drop_index('idx_analytics_event_type_created_at', table_name='analytics_event')
    op.drop_index('idx_analytics_event_created_at', table_name='analytics_event')
    op.drop_table('analytics_event')
    op.drop_table('analytics_session')
