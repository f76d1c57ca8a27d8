"""Create loyalty portal tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create accounts, clients, loyalty ledger, referrals, bookings, and reference data."""
    # Accounts
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100)),
        sa.Column('last_name', sa.String(100)),
        sa.Column('reset_token', sa.String(100)),
        sa.Column('reset_token_expires_at', sa.DateTime()),
        sa.Column('last_login_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reset_token')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'clients',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36)),
        sa.Column('email', sa.String(255)),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('date_of_birth', sa.Date()),
        sa.Column('address', sa.JSON()),
        sa.Column('preferences', sa.JSON()),
        sa.Column('status', sa.String(20)),
        sa.Column('points_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lifetime_points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('loyalty_enrolled', sa.Boolean()),
        sa.Column('loyalty_enrolled_at', sa.DateTime()),
        sa.Column('loyalty_signup_source', sa.String(30)),
        sa.Column('first_loyalty_booking_at', sa.DateTime()),
        sa.Column('referral_code', sa.String(20)),
        sa.Column('referred_by_id', sa.String(36)),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_clients_user'),
        sa.ForeignKeyConstraint(['referred_by_id'], ['clients.id'], name='fk_clients_referred_by'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clients_user_id', 'clients', ['user_id'], unique=True)
    op.create_index('ix_clients_email', 'clients', ['email'])
    op.create_index('ix_clients_referral_code', 'clients', ['referral_code'], unique=True)

    op.create_table(
        'team_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('role', sa.String(30)),
        sa.Column('status', sa.String(20)),
        sa.Column('created_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_team_members_user'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_team_members_user_id', 'team_members', ['user_id'])

    op.create_table(
        'portal_access',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('portal_type', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_portal_access_user'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'portal_type', name='uq_portal_access_user_type')
    )
    op.create_index('ix_portal_access_user_id', 'portal_access', ['user_id'])

    # Loyalty program
    op.create_table(
        'loyalty_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='GBP'),
        sa.Column('point_value', sa.Numeric(10, 4)),
        sa.Column('points_per_currency_unit', sa.Numeric(10, 4)),
        sa.Column('min_redemption_points', sa.Integer()),
        sa.Column('redemption_increment', sa.Integer()),
        sa.Column('points_expire_after_days', sa.Integer()),
        sa.Column('referral_bonus_referee', sa.Integer()),
        sa.Column('referral_bonus_referrer', sa.Integer()),
        sa.Column('referral_program_enabled', sa.Boolean()),
        sa.Column('updated_at', sa.DateTime()),
        sa.PrimaryKeyConstraint('id')
    )

    # Events and bookings
    op.create_table(
        'venues',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('city', sa.String(100)),
        sa.Column('country', sa.String(100)),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('venue_id', sa.Integer()),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('location', sa.String(200)),
        sa.Column('start_date', sa.DateTime()),
        sa.Column('end_date', sa.DateTime()),
        sa.Column('event_image', sa.String(500)),
        sa.ForeignKeyConstraint(['venue_id'], ['venues.id'], name='fk_events_venue'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('event_id', sa.Integer()),
        sa.Column('quote_id', sa.String(36)),
        sa.Column('booking_reference', sa.String(30), nullable=False),
        sa.Column('status', sa.String(30)),
        sa.Column('total_price', sa.Numeric(12, 2)),
        sa.Column('currency', sa.String(3)),
        sa.Column('points_earned', sa.Integer()),
        sa.Column('points_used', sa.Integer()),
        sa.Column('discount_applied', sa.Numeric(12, 2)),
        sa.Column('is_first_loyalty_booking', sa.Boolean()),
        sa.Column('confirmed_at', sa.DateTime()),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('deleted_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_bookings_client'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], name='fk_bookings_event'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_reference')
    )
    op.create_index('ix_bookings_client_id', 'bookings', ['client_id'])

    op.create_table(
        'booking_travelers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.String(36), nullable=False),
        sa.Column('is_lead_traveler', sa.Boolean()),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('date_of_birth', sa.Date()),
        sa.Column('address_line1', sa.String(200)),
        sa.Column('address_line2', sa.String(200)),
        sa.Column('city', sa.String(100)),
        sa.Column('state', sa.String(100)),
        sa.Column('postal_code', sa.String(20)),
        sa.Column('country', sa.String(100)),
        sa.Column('dietary_restrictions', sa.String(500)),
        sa.Column('accessibility_needs', sa.String(500)),
        sa.Column('special_requests', sa.String(1000)),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], name='fk_booking_travelers_booking'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_booking_travelers_booking_id', 'booking_travelers', ['booking_id'])

    op.create_table(
        'booking_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.String(36), nullable=False),
        sa.Column('payment_type', sa.String(30)),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3)),
        sa.Column('status', sa.String(20)),
        sa.Column('due_date', sa.Date()),
        sa.Column('paid_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], name='fk_booking_payments_booking'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_booking_payments_booking_id', 'booking_payments', ['booking_id'])

    op.create_table(
        'booking_components',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.String(36), nullable=False),
        sa.Column('component_type', sa.String(30)),
        sa.Column('name', sa.String(200)),
        sa.Column('description', sa.Text()),
        sa.Column('quantity', sa.Integer()),
        sa.Column('unit_price', sa.Numeric(12, 2)),
        sa.Column('total_price', sa.Numeric(12, 2)),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], name='fk_booking_components_booking'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_booking_components_booking_id', 'booking_components', ['booking_id'])

    op.create_table(
        'bookings_flights',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.String(36), nullable=False),
        sa.Column('flight_type', sa.String(20)),
        sa.Column('flight_details', sa.JSON()),
        sa.Column('outbound_airline_code', sa.String(3)),
        sa.Column('inbound_airline_code', sa.String(3)),
        sa.Column('quantity', sa.Integer()),
        sa.Column('unit_price', sa.Numeric(12, 2)),
        sa.Column('total_price', sa.Numeric(12, 2)),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], name='fk_bookings_flights_booking'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bookings_flights_booking_id', 'bookings_flights', ['booking_id'])

    # Points ledger
    op.create_table(
        'loyalty_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('transaction_type', sa.String(20), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('source_type', sa.String(30), nullable=False),
        sa.Column('source_reference_id', sa.String(64)),
        sa.Column('description', sa.String(500)),
        sa.Column('purchase_amount', sa.Numeric(12, 2)),
        sa.Column('purchase_currency', sa.String(3)),
        sa.Column('created_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_loyalty_transactions_client'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_loyalty_transactions_client_id', 'loyalty_transactions', ['client_id'])
    op.create_index('ix_loyalty_transactions_source_reference_id', 'loyalty_transactions', ['source_reference_id'])
    op.create_index('ix_loyalty_transactions_created_at', 'loyalty_transactions', ['created_at'])

    op.create_table(
        'redemptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('booking_id', sa.String(36)),
        sa.Column('transaction_id', sa.Integer()),
        sa.Column('points_redeemed', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(20)),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('applied_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_redemptions_client'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], name='fk_redemptions_booking'),
        sa.ForeignKeyConstraint(['transaction_id'], ['loyalty_transactions.id'], name='fk_redemptions_transaction'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_redemptions_client_id', 'redemptions', ['client_id'])
    op.create_index('ix_redemptions_booking_id', 'redemptions', ['booking_id'])

    # Referrals
    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('referrer_client_id', sa.String(36), nullable=False),
        sa.Column('referee_email', sa.String(255), nullable=False),
        sa.Column('referee_client_id', sa.String(36)),
        sa.Column('referral_code', sa.String(20), nullable=False),
        sa.Column('referral_link', sa.String(500)),
        sa.Column('status', sa.String(20)),
        sa.Column('referee_signup_points', sa.Integer()),
        sa.Column('referrer_booking_points', sa.Integer()),
        sa.Column('booking_id', sa.String(36)),
        sa.Column('invited_at', sa.DateTime()),
        sa.Column('signed_up_at', sa.DateTime()),
        sa.Column('completed_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['referrer_client_id'], ['clients.id'], name='fk_referrals_referrer'),
        sa.ForeignKeyConstraint(['referee_client_id'], ['clients.id'], name='fk_referrals_referee'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], name='fk_referrals_booking'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referrer_client_id', 'referee_email', name='uq_referrer_referee_email')
    )
    op.create_index('ix_referrals_referrer_client_id', 'referrals', ['referrer_client_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.String(36), nullable=False),
        sa.Column('notification_type', sa.String(30)),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text()),
        sa.Column('link', sa.String(500)),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], name='fk_notifications_client'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_client_id', 'notifications', ['client_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    # Reference data for flight details
    op.create_table(
        'airports',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('iata_code', sa.String(3), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('city', sa.String(100)),
        sa.Column('country', sa.String(100)),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_airports_iata_code', 'airports', ['iata_code'], unique=True)
    op.create_index('ix_airports_name', 'airports', ['name'])

    op.create_table(
        'airlines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('country', sa.String(100)),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_airlines_name', 'airlines', ['name'])

    op.create_table(
        'airline_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('airline_id', sa.Integer(), nullable=False),
        sa.Column('iata_code', sa.String(2)),
        sa.Column('icao_code', sa.String(3)),
        sa.Column('is_primary', sa.Boolean()),
        sa.ForeignKeyConstraint(['airline_id'], ['airlines.id'], name='fk_airline_codes_airline'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_airline_codes_airline_id', 'airline_codes', ['airline_id'])
    op.create_index('ix_airline_codes_iata_code', 'airline_codes', ['iata_code'])
    op.create_index('ix_airline_codes_icao_code', 'airline_codes', ['icao_code'])


def downgrade():
    """Drop all portal tables."""
    for table in (
        'airline_codes', 'airlines', 'airports',
        'notifications', 'referrals', 'redemptions', 'loyalty_transactions',
        'bookings_flights', 'booking_components', 'booking_payments', 'booking_travelers',
        'bookings', 'events', 'venues',
        'loyalty_settings', 'portal_access', 'team_members', 'clients', 'users',
    ):
        op.drop_table(table)
