"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the key registry tables:
- api_keys: Issued API keys with usage counters and domain metadata
- key_usage_records: Bounded, append-only usage log per key
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create api_keys table
    op.create_table(
        'api_keys',
        sa.Column('id', sa.String(36), primary_key=True, comment='UUID primary key'),
        sa.Column('key', sa.String(128), nullable=False, unique=True, index=True, comment='Opaque API token ({prefix}_{hex})'),
        sa.Column('user_id', sa.String(255), nullable=False, index=True, comment='Owner of the key'),
        sa.Column('project_id', sa.String(100), nullable=True, index=True, comment='Bound project, if any'),
        sa.Column('project_name', sa.String(255), nullable=True),
        sa.Column('project_url', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('features', sa.JSON(), nullable=False, comment='Granted feature names, in grant order'),
        sa.Column('rate_limit', sa.Integer(), nullable=False, comment='Requests per hour'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('usage', sa.JSON(), nullable=False, comment='Usage counters and hour-window reset timestamp'),
        sa.Column('key_metadata', sa.JSON(), nullable=False, comment='Allowed domains and data namespace'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_used', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_api_key_project_active', 'api_keys', ['project_id', 'is_active'])

    # Create key_usage_records table
    op.create_table(
        'key_usage_records',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('key', sa.String(128), sa.ForeignKey('api_keys.key', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('endpoint', sa.String(255), nullable=False),
        sa.Column('feature', sa.String(50), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
    )


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign keys)
    op.drop_table('key_usage_records')
    op.drop_index('idx_api_key_project_active', table_name='api_keys')
    op.drop_table('api_keys')
