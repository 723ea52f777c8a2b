"""Initial venue booking schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Creates venues (with blocked dates, packages and agent config), booking
requests, modifications, agent conversations and actions, inquiries and
notifications. Two partial unique indexes carry the booking invariants:
- uq_booking_requests_active_date: one pending/accepted booking per venue and date
- uq_booking_modifications_pending: one pending modification per booking
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        'venues',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('area', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),

        # Capacity
        sa.Column('capacity_standing', sa.Integer(), nullable=True),
        sa.Column('capacity_seated', sa.Integer(), nullable=True),
        sa.Column('capacity_conference', sa.Integer(), nullable=True),
        sa.Column('min_guests', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('max_guests', sa.Integer(), nullable=True),
        sa.Column('amenities', sa.JSON(), nullable=False),
        sa.Column('venue_types', sa.JSON(), nullable=False),

        # Price tiers
        sa.Column('price_per_hour', sa.Integer(), nullable=True),
        sa.Column('price_half_day', sa.Integer(), nullable=True),
        sa.Column('price_full_day', sa.Integer(), nullable=True),
        sa.Column('price_evening', sa.Integer(), nullable=True),
        sa.Column('price_notes', sa.Text(), nullable=True),

        sa.Column('contact_email', sa.String(), nullable=True),
        sa.Column('contact_phone', sa.String(), nullable=True),
        sa.Column('website', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='draft'),
        *_timestamps(),
    )
    op.create_index('ix_venues_owner_id', 'venues', ['owner_id'])

    op.create_table(
        'venue_blocked_dates',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('venue_id', sa.String(), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('blocked_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('venue_id', 'blocked_date', name='uq_venue_blocked_date'),
    )
    op.create_index('ix_venue_blocked_dates_venue_id', 'venue_blocked_dates', ['venue_id'])

    op.create_table(
        'venue_packages',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('venue_id', sa.String(), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_per_person', sa.Integer(), nullable=True),
        sa.Column('base_price', sa.Integer(), nullable=True),
        sa.Column('min_guests', sa.Integer(), nullable=True),
        sa.Column('max_guests', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_venue_packages_venue_id', 'venue_packages', ['venue_id'])

    op.create_table(
        'venue_agent_configs',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('venue_id', sa.String(), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('tone', sa.String(), nullable=True),
        sa.Column('custom_instructions', sa.Text(), nullable=True),
        sa.Column('pricing_notes', sa.Text(), nullable=True),
        sa.Column('minimum_spend', sa.Integer(), nullable=True),
        sa.Column('house_rules', sa.Text(), nullable=True),
        sa.Column('faq_entries', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'inquiries',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('venue_id', sa.String(), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('event_date', sa.Date(), nullable=True),
        sa.Column('event_type', sa.String(), nullable=True),
        sa.Column('guest_count', sa.Integer(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='open'),
        sa.Column('booking_request_id', sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_inquiries_venue_id', 'inquiries', ['venue_id'])

    op.create_table(
        'booking_requests',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('venue_id', sa.String(), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('customer_id', sa.String(), nullable=True),
        sa.Column('inquiry_id', sa.String(), sa.ForeignKey('inquiries.id'), nullable=True),
        sa.Column('event_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('event_description', sa.Text(), nullable=True),
        sa.Column('guest_count', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('customer_email', sa.String(), nullable=False),
        sa.Column('customer_phone', sa.String(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('base_price', sa.Integer(), nullable=False),
        sa.Column('platform_fee', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Integer(), nullable=False),
        sa.Column('venue_payout', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('verification_token', sa.String(32), nullable=False, unique=True),
        sa.Column('decline_reason', sa.Text(), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_booking_requests_venue_id', 'booking_requests', ['venue_id'])
    op.create_index('ix_booking_requests_customer_id', 'booking_requests', ['customer_id'])
    op.create_index('ix_booking_requests_venue_status', 'booking_requests', ['venue_id', 'status'])
    op.create_index(
        'uq_booking_requests_active_date',
        'booking_requests',
        ['venue_id', 'event_date'],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'accepted')"),
        sqlite_where=sa.text("status IN ('pending', 'accepted')"),
    )

    op.create_table(
        'booking_modifications',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('booking_request_id', sa.String(), sa.ForeignKey('booking_requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('proposed_by', sa.String(), nullable=False),
        sa.Column('proposer_role', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('proposed_event_date', sa.Date(), nullable=True),
        sa.Column('proposed_start_time', sa.String(5), nullable=True),
        sa.Column('proposed_end_time', sa.String(5), nullable=True),
        sa.Column('proposed_guest_count', sa.Integer(), nullable=True),
        sa.Column('proposed_base_price', sa.Integer(), nullable=True),
        sa.Column('proposed_platform_fee', sa.Integer(), nullable=True),
        sa.Column('proposed_total_price', sa.Integer(), nullable=True),
        sa.Column('proposed_venue_payout', sa.Integer(), nullable=True),
        sa.Column('reason', sa.String(500), nullable=True),
        sa.Column('response_reason', sa.String(500), nullable=True),
        sa.Column('responded_by', sa.String(), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_booking_modifications_booking_request_id', 'booking_modifications', ['booking_request_id'])
    op.create_index(
        'uq_booking_modifications_pending',
        'booking_modifications',
        ['booking_request_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'agent_conversations',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('venue_id', sa.String(), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('customer_id', sa.String(), nullable=True),
        sa.Column('messages', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_agent_conversations_venue_id', 'agent_conversations', ['venue_id'])
    op.create_index('ix_agent_conversations_customer_id', 'agent_conversations', ['customer_id'])
    op.create_index('ix_agent_conversations_customer_venue', 'agent_conversations', ['customer_id', 'venue_id'])

    op.create_table(
        'agent_actions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('conversation_id', sa.String(), sa.ForeignKey('agent_conversations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('venue_id', sa.String(), sa.ForeignKey('venues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('customer_id', sa.String(), nullable=True),
        sa.Column('action_type', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('summary', sa.JSON(), nullable=False),
        sa.Column('owner_response', sa.JSON(), nullable=True),
        sa.Column('booking_request_id', sa.String(), sa.ForeignKey('booking_requests.id', ondelete='SET NULL'), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_agent_actions_conversation_id', 'agent_actions', ['conversation_id'])
    op.create_index('ix_agent_actions_venue_id', 'agent_actions', ['venue_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('recipient_id', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('headline', sa.String(), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('reference_kind', sa.String(), nullable=True),
        sa.Column('reference_id', sa.String(), nullable=True),
        sa.Column('author_id', sa.String(), nullable=True),
        sa.Column('extra', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_recipient_read', 'notifications', ['recipient_id', 'is_read'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('agent_actions')
    op.drop_table('agent_conversations')
    op.drop_index('uq_booking_modifications_pending', table_name='booking_modifications')
    op.drop_table('booking_modifications')
    op.drop_index('uq_booking_requests_active_date', table_name='booking_requests')
    op.drop_table('booking_requests')
    op.drop_table('inquiries')
    op.drop_table('venue_agent_configs')
    op.drop_table('venue_packages')
    op.drop_table('venue_blocked_dates')
    op.drop_table('venues')
