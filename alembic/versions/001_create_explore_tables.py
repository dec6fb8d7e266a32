"""Create trips, itineraries and explore_sessions tables.

Revision ID: 001_create_explore_tables
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_create_explore_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create explore tables."""
    op.create_table(
        'trips',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('destination_country', sa.String(), nullable=True),
        sa.Column('city_center_lat', sa.Float(), nullable=True),
        sa.Column('city_center_lon', sa.Float(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_pro', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_trips_user_id', 'trips', ['user_id'])

    op.create_table(
        'itineraries',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('trip_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False),
        sa.Column('trip_segment_id', sa.String(), nullable=True),
        sa.Column('days', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_itineraries_trip_id', 'itineraries', ['trip_id'])
    op.create_unique_constraint('uq_itineraries_trip_segment', 'itineraries', ['trip_id', 'trip_segment_id'])

    op.create_table(
        'explore_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('trip_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('trip_segment_id', sa.String(), nullable=True),
        sa.Column('liked_place_ids', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('discarded_place_ids', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('swipe_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_swipe_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_explore_sessions_trip_id', 'explore_sessions', ['trip_id'])
    op.create_index('ix_explore_sessions_user_id', 'explore_sessions', ['user_id'])
    op.create_unique_constraint(
        'uq_explore_sessions_scope', 'explore_sessions', ['trip_id', 'user_id', 'trip_segment_id']
    )


def downgrade() -> None:
    """Drop explore tables."""
    op.drop_table('explore_sessions')
    op.drop_table('itineraries')
    op.drop_index('ix_trips_user_id', table_name='trips')
    op.drop_table('trips')
