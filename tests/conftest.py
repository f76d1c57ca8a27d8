"""
Shared pytest fixtures for the loyalty portal.

Each test gets a fresh app on in-memory SQLite with its app context pushed,
so fixtures and assertions share one session.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app import create_app
from app.extensions import db
from app.models import (
    Booking,
    BookingTraveler,
    Client,
    Event,
    LoyaltySettings,
    User,
    Venue,
)
from app.services.auth_service import create_access_token

PASSWORD = 'Secret-123!'


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def loyalty_settings(app):
    settings = LoyaltySettings(
        id=1,
        currency='GBP',
        point_value=Decimal('1'),
        points_per_currency_unit=Decimal('1'),
        min_redemption_points=100,
        redemption_increment=100,
        referral_bonus_referee=100,
        referral_bonus_referrer=100,
        referral_program_enabled=True,
    )
    db.session.add(settings)
    db.session.commit()
    return settings


@pytest.fixture
def sample_user(app):
    user = User(email='jane@example.com', first_name='Jane', last_name='Doe')
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def sample_client(app, sample_user):
    portal_client = Client(
        user_id=sample_user.id,
        email=sample_user.email,
        first_name='Jane',
        last_name='Doe',
        status='active',
        points_balance=0,
        lifetime_points_earned=0,
        loyalty_enrolled=True,
        loyalty_enrolled_at=datetime(2024, 3, 1),
        loyalty_signup_source='self_signup',
        preferences={},
    )
    db.session.add(portal_client)
    db.session.commit()
    return portal_client


@pytest.fixture
def auth_headers(sample_client):
    token = create_access_token(sample_client.user_id)
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def sample_booking(sample_client):
    venue = Venue(name='Yas Marina Circuit', city='Abu Dhabi', country='UAE')
    event = Event(
        venue=venue,
        name='Abu Dhabi Grand Prix',
        start_date=datetime.now() + timedelta(days=30),
        end_date=datetime.now() + timedelta(days=33),
    )
    booking = Booking(
        client_id=sample_client.id,
        event=event,
        booking_reference='BK-1001',
        status='confirmed',
        total_price=Decimal('1500.00'),
        currency='GBP',
        confirmed_at=datetime.utcnow(),
    )
    booking.travelers.append(BookingTraveler(
        first_name='Jane',
        last_name='Doe',
        email='jane@example.com',
        is_lead_traveler=True,
    ))
    db.session.add_all([venue, event, booking])
    db.session.commit()
    return booking


@pytest.fixture
def make_client(app):
    """Factory for extra client rows in tests that need more than one."""
    def _make_client(email, first_name='Sam', last_name='Smith', **kwargs):
        portal_client = Client(
            email=email,
            first_name=first_name,
            last_name=last_name,
            status=kwargs.pop('status', 'active'),
            points_balance=kwargs.pop('points_balance', 0),
            lifetime_points_earned=kwargs.pop('lifetime_points_earned', 0),
            preferences=kwargs.pop('preferences', {}),
            **kwargs
        )
        db.session.add(portal_client)
        db.session.commit()
        return portal_client
    return _make_client
