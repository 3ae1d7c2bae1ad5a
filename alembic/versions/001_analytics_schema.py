"""Analytics ingestion, aggregation, funnel, alert and report tables.

Revision ID: 001_analytics
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001_analytics'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ### Sessions ###
    op.create_table(
        'analytics_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('session_id', sa.String(255), unique=True, nullable=False),
        sa.Column('identity_hash', sa.String(64), nullable=False, index=True),
        sa.Column('user_agent', sa.Text()),
        sa.Column('device', sa.String(20), nullable=False),
        sa.Column('browser', sa.String(20), nullable=False),
        sa.Column('referrer_category', sa.String(50), nullable=False),
        sa.Column('country', sa.String(2)),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('page_count', sa.Integer(), nullable=False, server_default='0'),
    )

    # ### Raw events (append-only) ###
    op.create_table(
        'analytics_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('session_id', sa.String(255), nullable=False),
        sa.Column('identity_hash', sa.String(64), nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('page_path', sa.String(1024), nullable=False),
        sa.Column('page_title', sa.String(512)),
        sa.Column('element_id', sa.String(255)),
        sa.Column('element_class', sa.String(512)),
        sa.Column('click_x', sa.Float()),
        sa.Column('click_y', sa.Float()),
        sa.Column('viewport_width', sa.Integer()),
        sa.Column('viewport_height', sa.Integer()),
        sa.Column('scroll_depth', sa.Float()),
        sa.Column('referrer_category', sa.String(50), nullable=False),
        sa.Column('utm_source', sa.String(255)),
        sa.Column('utm_medium', sa.String(255)),
        sa.Column('utm_campaign', sa.String(255)),
        sa.Column('device', sa.String(20), nullable=False),
        sa.Column('browser', sa.String(20), nullable=False),
        sa.Column('metadata', postgresql.JSONB(), server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_events_created_path', 'analytics_events', ['created_at', 'page_path'])
    op.create_index('idx_events_session_created', 'analytics_events', ['session_id', 'created_at'])
    op.create_index('idx_events_type_created', 'analytics_events', ['event_type', 'created_at'])

    # ### Unique visits ###
    op.create_table(
        'page_unique_visits',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('identity_hash', sa.String(64), nullable=False),
        sa.Column('page_slug', sa.String(1024), nullable=False),
        sa.Column('visit_date', sa.Date(), nullable=False, index=True),
        sa.Column('session_id', sa.String(255), nullable=False),
        sa.Column('device', sa.String(20), nullable=False),
        sa.Column('browser', sa.String(20), nullable=False),
        sa.Column('referrer_category', sa.String(50), nullable=False),
        sa.Column('country', sa.String(2)),
        sa.UniqueConstraint('identity_hash', 'page_slug', 'visit_date', name='uq_unique_visits_identity_page_date'),
    )

    # ### Heatmap buckets ###
    op.create_table(
        'analytics_heatmap_buckets',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('page_slug', sa.String(1024), nullable=False),
        sa.Column('aggregate_date', sa.Date(), nullable=False),
        sa.Column('bucket_x', sa.Integer(), nullable=False),
        sa.Column('bucket_y', sa.Integer(), nullable=False),
        sa.Column('viewport_width', sa.Integer(), nullable=False),
        sa.Column('click_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('element_id', sa.String(255)),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            'page_slug', 'aggregate_date', 'bucket_x', 'bucket_y', 'viewport_width',
            name='uq_heatmap_bucket',
        ),
    )
    op.create_index('idx_heatmap_page_date', 'analytics_heatmap_buckets', ['page_slug', 'aggregate_date'])

    # ### Geo rollup ###
    op.create_table(
        'analytics_geo_aggregates',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('aggregate_date', sa.Date(), nullable=False),
        sa.Column('country', sa.String(16), nullable=False),
        sa.Column('unique_visitors', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sessions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('page_visits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('aggregate_date', 'country', name='uq_geo_date_country'),
    )

    # ### Funnels ###
    op.create_table(
        'analytics_funnels',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('steps', postgresql.JSONB(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'analytics_funnel_results',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('funnel_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('analytics_funnels.id', ondelete='CASCADE'), nullable=False),
        sa.Column('result_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), server_default='running'),
        sa.Column('total_sessions', sa.Integer(), server_default='0'),
        sa.Column('step_results', postgresql.JSONB(), server_default='[]'),
        sa.Column('conversion_rate', sa.Float(), server_default='0'),
        sa.Column('error_message', sa.Text()),
        sa.Column('computed_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('funnel_id', 'result_date', name='uq_funnel_results_funnel_date'),
    )

    # ### Alerts ###
    op.create_table(
        'analytics_alert_configs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('metric', sa.String(50), nullable=False),
        sa.Column('condition', sa.String(30), nullable=False),
        sa.Column('threshold', sa.Float(), nullable=False),
        sa.Column('comparison_period', sa.String(30), server_default='previous_day'),
        sa.Column('page_filter', sa.String(1024)),
        sa.Column('notification_channels', postgresql.JSONB(), server_default='[]'),
        sa.Column('recipients', postgresql.JSONB(), server_default='{}'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'analytics_alert_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('alert_config_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('analytics_alert_configs.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('triggered_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('metric_value', sa.Float(), nullable=False),
        sa.Column('threshold_value', sa.Float(), nullable=False),
        sa.Column('comparison_value', sa.Float(), nullable=False),
        sa.Column('notification_status', postgresql.JSONB(), server_default='{}'),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True)),
    )

    # ### Scheduled reports ###
    op.create_table(
        'analytics_scheduled_reports',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('report_type', sa.String(20), nullable=False),
        sa.Column('schedule', sa.String(20), nullable=False),
        sa.Column('time_of_day', sa.Time(), nullable=False),
        sa.Column('day_of_week', sa.Integer()),
        sa.Column('day_of_month', sa.Integer()),
        sa.Column('date_range', sa.String(20), server_default='last_7_days'),
        sa.Column('filters', postgresql.JSONB(), server_default='{}'),
        sa.Column('delivery_method', sa.String(20), nullable=False),
        sa.Column('recipients', postgresql.JSONB(), server_default='[]'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('run_status', sa.String(20), server_default='idle'),
        sa.Column('last_run_at', sa.DateTime(timezone=True)),
        sa.Column('next_run_at', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        'analytics_report_history',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('scheduled_report_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('analytics_scheduled_reports.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('status', sa.String(20), server_default='running'),
        sa.Column('records_count', sa.Integer(), server_default='0'),
        sa.Column('file_url', sa.Text()),
        sa.Column('file_size', sa.Integer()),
        sa.Column('duration_ms', sa.Integer()),
        sa.Column('error_message', sa.Text()),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ### Warehouse exports ###
    op.create_table(
        'analytics_warehouse_exports',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('export_type', sa.String(20), nullable=False),
        sa.Column('date_from', sa.Date(), nullable=False),
        sa.Column('date_to', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('records_exported', sa.Integer(), server_default='0'),
        sa.Column('error_message', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
    )


def downgrade() -> None:
    op.drop_table('analytics_warehouse_exports')
    op.drop_table('analytics_report_history')
    op.drop_table('analytics_scheduled_reports')
    op.drop_table('analytics_alert_logs')
    op.drop_table('analytics_alert_configs')
    op.drop_table('analytics_funnel_results')
    op.drop_table('analytics_funnels')
    op.drop_table('analytics_geo_aggregates')
    op.drop_table('analytics_heatmap_buckets')
    op.drop_table('page_unique_visits')
    op.drop_table('analytics_events')
    op.drop_table('analytics_sessions')
