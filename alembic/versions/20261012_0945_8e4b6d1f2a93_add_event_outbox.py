"""add_event_outbox

Revision ID: 8e4b6d1f2a93
Revises: 3f1a9c2d7b10
Create Date: 2026-10-12 09:45:00.000000

"""
from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8e4b6d1f2a93'
down_revision: str | None = '3f1a9c2d7b10'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create event_outbox table for transactional outbox pattern."""
    op.create_table(
        'event_outbox',
        # Primary key (the domain event id)
        sa.Column('id', sa.Uuid(), nullable=False),

        # Event identification and routing
        sa.Column('type_tag', sa.String(length=200), nullable=False),
        sa.Column('routing_key', sa.String(length=255), nullable=False),

        # Serialized payload
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('content_type', sa.String(length=100), nullable=False, server_default='application/json'),

        # Logical event time
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),

        # Delivery state
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),

        sa.PrimaryKeyConstraint('id', name=op.f('pk_event_outbox'))
    )

    # Composite index for fetching pending events in creation order
    op.create_index(
        'ix_event_outbox_processed_created_at',
        'event_outbox',
        ['processed', 'created_at'],
        unique=False,
    )


def downgrade() -> None:
    """Drop event_outbox table."""
    op.drop_index('ix_event_outbox_processed_created_at', table_name='event_outbox')
    op.drop_table('event_outbox')
