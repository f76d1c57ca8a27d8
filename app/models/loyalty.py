"""
Loyalty program models: settings, points ledger, and redemptions.
"""
from datetime import datetime
from decimal import Decimal

from ..extensions import db


class TransactionType:
    EARN = 'earn'
    SPEND = 'spend'
    REFUND = 'refund'
    ADJUSTMENT = 'adjustment'
    EXPIRE = 'expire'

    ALL = (EARN, SPEND, REFUND, ADJUSTMENT, EXPIRE)


class SourceType:
    PURCHASE = 'purchase'
    REFERRAL = 'referral'
    REFUND = 'refund'
    MANUAL_ADJUSTMENT = 'manual_adjustment'
    REDEMPTION = 'redemption'
    SIGNUP_BONUS = 'signup_bonus'
    EXPIRY = 'expiry'

    ALL = (PURCHASE, REFERRAL, REFUND, MANUAL_ADJUSTMENT, REDEMPTION, SIGNUP_BONUS, EXPIRY)


class LoyaltySettings(db.Model):
    """
    Program-wide settings. Single row with id=1.
    """
    __tablename__ = 'loyalty_settings'

    DEFAULTS = {
        'currency': 'GBP',
        'point_value': 1.0,
        'points_per_currency_unit': 1.0,
        'min_redemption_points': 100,
        'redemption_increment': 100,
        'points_expire_after_days': None,
        'referral_bonus_referee': 100,
        'referral_bonus_referrer': 100,
        'referral_program_enabled': True,
    }

    id = db.Column(db.Integer, primary_key=True)
    currency = db.Column(db.String(3), default='GBP', nullable=False)
    point_value = db.Column(db.Numeric(10, 4), default=Decimal('1'))  # Discount per point, base currency
    points_per_currency_unit = db.Column(db.Numeric(10, 4), default=Decimal('1'))
    min_redemption_points = db.Column(db.Integer, default=100)
    redemption_increment = db.Column(db.Integer, default=100)
    points_expire_after_days = db.Column(db.Integer)  # NULL = never
    referral_bonus_referee = db.Column(db.Integer, default=100)
    referral_bonus_referrer = db.Column(db.Integer, default=100)
    referral_program_enabled = db.Column(db.Boolean, default=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<LoyaltySettings {self.currency} value={self.point_value}>'

    def to_dict(self):
        return {
            'currency': self.currency or 'GBP',
            'point_value': float(self.point_value) if self.point_value is not None else 1.0,
            'points_per_currency_unit': float(self.points_per_currency_unit) if self.points_per_currency_unit is not None else 1.0,
            'min_redemption_points': self.min_redemption_points or 100,
            'redemption_increment': self.redemption_increment or 100,
            'points_expire_after_days': self.points_expire_after_days,
            'referral_bonus_referee': self.referral_bonus_referee if self.referral_bonus_referee is not None else 100,
            'referral_bonus_referrer': self.referral_bonus_referrer if self.referral_bonus_referrer is not None else 100,
            'referral_program_enabled': self.referral_program_enabled is not False,
        }


class LoyaltyTransaction(db.Model):
    """
    Points ledger entry. Points are signed: earn is positive, spend/expire negative.
    """
    __tablename__ = 'loyalty_transactions'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id'), nullable=False, index=True)

    transaction_type = db.Column(db.String(20), nullable=False)
    points = db.Column(db.Integer, nullable=False)
    balance_after = db.Column(db.Integer, nullable=False)

    source_type = db.Column(db.String(30), nullable=False)
    source_reference_id = db.Column(db.String(64), index=True)  # Booking id for purchase/redemption
    description = db.Column(db.String(500))

    purchase_amount = db.Column(db.Numeric(12, 2))
    purchase_currency = db.Column(db.String(3))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<LoyaltyTransaction {self.transaction_type} {self.points:+d}>'

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'transaction_type': self.transaction_type,
            'points': self.points,
            'balance_after': self.balance_after,
            'source_type': self.source_type,
            'source_reference_id': self.source_reference_id,
            'description': self.description,
            'purchase_amount': float(self.purchase_amount) if self.purchase_amount is not None else None,
            'purchase_currency': self.purchase_currency,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Redemption(db.Model):
    """Points redeemed against a booking."""
    __tablename__ = 'redemptions'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id'), nullable=False, index=True)
    booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id'), index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey('loyalty_transactions.id'))

    points_redeemed = db.Column(db.Integer, nullable=False)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    status = db.Column(db.String(20), default='pending')  # pending, applied, cancelled

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    applied_at = db.Column(db.DateTime)

    def __repr__(self):
        return f'<Redemption {self.points_redeemed} {self.status}>'

    def to_dict(self):
        return {
            'id': self.id,
            'booking_id': self.booking_id,
            'points_redeemed': self.points_redeemed,
            'discount_amount': float(self.discount_amount or 0),
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'applied_at': self.applied_at.isoformat() if self.applied_at else None,
        }
