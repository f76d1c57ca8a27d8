"""
User, Client, and portal access models.

A User is a login identity. A Client is the customer record bookings and the
loyalty ledger hang off; it may exist before the customer ever signs up and is
linked to a User on first login or signup.
"""
import uuid
from datetime import datetime

from werkzeug.security import generate_password_hash, check_password_hash

from ..extensions import db


def generate_uuid() -> str:
    return str(uuid.uuid4())


class User(db.Model):
    """Portal login account."""
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Signup metadata
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))

    # Password reset
    reset_token = db.Column(db.String(100), unique=True)
    reset_token_expires_at = db.Column(db.DateTime)

    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = db.relationship('Client', backref='user', uselist=False)

    def __repr__(self):
        return f'<User {self.email}>'

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'last_login_at': self.last_login_at.isoformat() if self.last_login_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Client(db.Model):
    """
    Customer record.
    Holds the cached points balance; LoyaltyTransaction is the ledger of record.
    """
    __tablename__ = 'clients'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), unique=True, index=True)

    email = db.Column(db.String(255), index=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(50))  # E.164
    date_of_birth = db.Column(db.Date)
    address = db.Column(db.JSON)  # {street, city, state, postal_code, country}

    # {"preferred_currency": "USD", "currency_updated_at": "..."}
    preferences = db.Column(db.JSON, default=dict)

    status = db.Column(db.String(20), default='active')  # active, inactive

    # Loyalty
    points_balance = db.Column(db.Integer, default=0, nullable=False)
    lifetime_points_earned = db.Column(db.Integer, default=0, nullable=False)
    loyalty_enrolled = db.Column(db.Boolean, default=False)
    loyalty_enrolled_at = db.Column(db.DateTime)
    loyalty_signup_source = db.Column(db.String(30))  # self_signup, referral, imported
    first_loyalty_booking_at = db.Column(db.DateTime)

    # Referrals
    referral_code = db.Column(db.String(20), unique=True, index=True)
    referred_by_id = db.Column(db.String(36), db.ForeignKey('clients.id'))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    referred_by = db.relationship('Client', remote_side=[id], backref='referred_clients')
    transactions = db.relationship('LoyaltyTransaction', backref='client', lazy='dynamic')
    bookings = db.relationship('Booking', backref='client', lazy='dynamic')
    notifications = db.relationship('Notification', backref='client', lazy='dynamic')

    def __repr__(self):
        return f'<Client {self.email}>'

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone': self.phone,
            'date_of_birth': self.date_of_birth.isoformat() if self.date_of_birth else None,
            'address': self.address,
            'preferences': self.preferences or {},
            'status': self.status,
            'points_balance': self.points_balance or 0,
            'lifetime_points_earned': self.lifetime_points_earned or 0,
            'loyalty_enrolled': bool(self.loyalty_enrolled),
            'loyalty_enrolled_at': self.loyalty_enrolled_at.isoformat() if self.loyalty_enrolled_at else None,
            'referral_code': self.referral_code,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class TeamMember(db.Model):
    """Staff account with access to the team portal."""
    __tablename__ = 'team_members'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    role = db.Column(db.String(30), default='agent')
    status = db.Column(db.String(20), default='active')  # active, invited, inactive
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<TeamMember {self.user_id} {self.status}>'


class PortalAccess(db.Model):
    """Which portals (client, team) a user may land on."""
    __tablename__ = 'portal_access'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    portal_type = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'portal_type', name='uq_portal_access_user_type'),
    )
