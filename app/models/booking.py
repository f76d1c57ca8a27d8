"""
Booking models.

Bookings are created by the operator's back office; the portal reads them and
lets customers maintain traveller details and their own flight information.
"""
from datetime import datetime
from decimal import Decimal

from ..extensions import db
from .client import generate_uuid


def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return float(value) if value is not None else None


class Venue(db.Model):
    __tablename__ = 'venues'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    city = db.Column(db.String(100))
    country = db.Column(db.String(100))

    def __repr__(self):
        return f'<Venue {self.name}>'

    def to_dict(self):
        return {'name': self.name, 'city': self.city, 'country': self.country}


class Event(db.Model):
    __tablename__ = 'events'

    id = db.Column(db.Integer, primary_key=True)
    venue_id = db.Column(db.Integer, db.ForeignKey('venues.id'))
    name = db.Column(db.String(200), nullable=False)
    location = db.Column(db.String(200))
    start_date = db.Column(db.DateTime)
    end_date = db.Column(db.DateTime)
    event_image = db.Column(db.String(500))

    venue = db.relationship('Venue', backref='events')

    def __repr__(self):
        return f'<Event {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'event_image': self.event_image,
            'venue': self.venue.to_dict() if self.venue else None,
        }


class Booking(db.Model):
    """
    Customer booking.
    Status values: draft, provisional, pending_payment, confirmed, completed,
    cancelled, refunded.
    """
    __tablename__ = 'bookings'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id'), nullable=False, index=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'))
    quote_id = db.Column(db.String(36))

    booking_reference = db.Column(db.String(30), nullable=False, unique=True)
    status = db.Column(db.String(30), default='draft')

    total_price = db.Column(db.Numeric(12, 2), default=Decimal('0'))
    currency = db.Column(db.String(3), default='GBP')

    # Loyalty columns (NULL when not yet synced from the ledger)
    points_earned = db.Column(db.Integer)
    points_used = db.Column(db.Integer)
    discount_applied = db.Column(db.Numeric(12, 2))
    is_first_loyalty_booking = db.Column(db.Boolean, default=False)

    confirmed_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)
    deleted_at = db.Column(db.DateTime)  # Soft delete
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    event = db.relationship('Event', backref='bookings')
    travelers = db.relationship('BookingTraveler', backref='booking', lazy='select',
                                cascade='all, delete-orphan')
    payments = db.relationship('BookingPayment', backref='booking', lazy='select',
                               cascade='all, delete-orphan')
    components = db.relationship('BookingComponent', backref='booking', lazy='select',
                                 cascade='all, delete-orphan')
    flights = db.relationship('BookingFlight', backref='booking', lazy='select',
                              cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Booking {self.booking_reference} {self.status}>'


class BookingTraveler(db.Model):
    __tablename__ = 'booking_travelers'

    # Fields a customer may edit from the portal
    EDITABLE_FIELDS = (
        'first_name', 'last_name', 'email', 'phone', 'date_of_birth',
        'address_line1', 'address_line2', 'city', 'state', 'postal_code', 'country',
        'dietary_restrictions', 'accessibility_needs', 'special_requests',
    )

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id'), nullable=False, index=True)
    is_lead_traveler = db.Column(db.Boolean, default=False)

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    date_of_birth = db.Column(db.Date)

    address_line1 = db.Column(db.String(200))
    address_line2 = db.Column(db.String(200))
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    postal_code = db.Column(db.String(20))
    country = db.Column(db.String(100))

    dietary_restrictions = db.Column(db.String(500))
    accessibility_needs = db.Column(db.String(500))
    special_requests = db.Column(db.String(1000))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        data = {'id': self.id, 'booking_id': self.booking_id, 'is_lead_traveler': bool(self.is_lead_traveler)}
        for field in self.EDITABLE_FIELDS:
            value = getattr(self, field)
            data[field] = _iso(value) if field == 'date_of_birth' else value
        return data


class BookingPayment(db.Model):
    __tablename__ = 'booking_payments'

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id'), nullable=False, index=True)
    payment_type = db.Column(db.String(30))  # deposit, instalment, balance
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), default='GBP')
    status = db.Column(db.String(20), default='scheduled')  # scheduled, paid, overdue, refunded
    due_date = db.Column(db.Date)
    paid_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'payment_type': self.payment_type,
            'amount': _money(self.amount),
            'currency': self.currency,
            'status': self.status,
            'due_date': _iso(self.due_date),
            'paid_at': _iso(self.paid_at),
        }


class BookingComponent(db.Model):
    __tablename__ = 'booking_components'

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id'), nullable=False, index=True)
    component_type = db.Column(db.String(30))  # hotel, ticket, transfer, experience
    name = db.Column(db.String(200))
    description = db.Column(db.Text)
    quantity = db.Column(db.Integer, default=1)
    unit_price = db.Column(db.Numeric(12, 2))
    total_price = db.Column(db.Numeric(12, 2))

    def to_dict(self):
        return {
            'id': self.id,
            'component_type': self.component_type,
            'name': self.name,
            'description': self.description,
            'quantity': self.quantity,
            'unit_price': _money(self.unit_price),
            'total_price': _money(self.total_price),
        }


class BookingFlight(db.Model):
    """
    Flight attached to a booking.
    flight_type 'customer' rows hold details the customer entered themselves.
    """
    __tablename__ = 'bookings_flights'

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id'), nullable=False, index=True)
    flight_type = db.Column(db.String(20), default='package')  # package, customer
    # {origin, destination, departureDate, returnDate, outboundSegments: [...], returnSegments: [...]}
    flight_details = db.Column(db.JSON, default=dict)
    outbound_airline_code = db.Column(db.String(3))
    inbound_airline_code = db.Column(db.String(3))
    quantity = db.Column(db.Integer, default=1)
    unit_price = db.Column(db.Numeric(12, 2), default=Decimal('0'))
    total_price = db.Column(db.Numeric(12, 2), default=Decimal('0'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'flight_type': self.flight_type,
            'flight_details': self.flight_details or {},
            'outbound_airline_code': self.outbound_airline_code,
            'inbound_airline_code': self.inbound_airline_code,
            'quantity': self.quantity,
            'unit_price': _money(self.unit_price),
            'total_price': _money(self.total_price),
        }
