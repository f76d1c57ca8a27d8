"""
Referral model.
Tracks invitations sent by clients and what happened to them.
"""
from datetime import datetime
from ..extensions import db


class ReferralStatus:
    PENDING = 'pending'        # Invited, not signed up yet
    SIGNED_UP = 'signed_up'    # Referee created an account
    COMPLETED = 'completed'    # Referee's first booking confirmed
    EXPIRED = 'expired'

    # Statuses counted as successful referrals
    SUCCESSFUL = (SIGNED_UP, COMPLETED)


class Referral(db.Model):
    """
    Individual referral record.
    One row per (referrer, invited email).
    """
    __tablename__ = 'referrals'

    id = db.Column(db.Integer, primary_key=True)

    # Referrer (existing client who made the referral)
    referrer_client_id = db.Column(db.String(36), db.ForeignKey('clients.id'), nullable=False, index=True)

    # Referee (known by email until they sign up)
    referee_email = db.Column(db.String(255), nullable=False)
    referee_client_id = db.Column(db.String(36), db.ForeignKey('clients.id'))

    referral_code = db.Column(db.String(20), nullable=False)
    referral_link = db.Column(db.String(500))

    status = db.Column(db.String(20), default=ReferralStatus.PENDING)

    # Points awarded
    referee_signup_points = db.Column(db.Integer, default=0)
    referrer_booking_points = db.Column(db.Integer, default=0)
    booking_id = db.Column(db.String(36), db.ForeignKey('bookings.id'))

    # Timestamps
    invited_at = db.Column(db.DateTime, default=datetime.utcnow)
    signed_up_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)

    referrer = db.relationship('Client', foreign_keys=[referrer_client_id], backref='referrals_made')
    referee = db.relationship('Client', foreign_keys=[referee_client_id], backref='referral_received')

    __table_args__ = (
        db.UniqueConstraint('referrer_client_id', 'referee_email', name='uq_referrer_referee_email'),
    )

    def __repr__(self):
        return f'<Referral {self.referral_code} -> {self.referee_email}>'

    def to_dict(self):
        return {
            'id': self.id,
            'referee_email': self.referee_email,
            'referral_code': self.referral_code,
            'referral_link': self.referral_link,
            'status': self.status,
            'referee_signup_points': self.referee_signup_points or 0,
            'referrer_booking_points': self.referrer_booking_points or 0,
            'invited_at': self.invited_at.isoformat() if self.invited_at else None,
            'signed_up_at': self.signed_up_at.isoformat() if self.signed_up_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }
