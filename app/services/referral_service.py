"""
Referral Service for the loyalty portal.

Handles the refer-a-friend flow:
- Persistent referral codes per client
- Email invitations with signup links
- Referee signup (bonus points for the new client)
- Completion on the referee's first confirmed booking (bonus for the referrer)
"""
import logging
import re
import secrets
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Booking, Client, Referral, ReferralStatus, SourceType, TransactionType, User
from ..utils.cache_invalidation import revalidate_path
from ..utils.exceptions import ConfigurationError, DuplicateError, PortalError, ValidationError
from ..utils.urls import referral_link
from ..utils.validation import is_valid_email
from .client_service import create_or_link_signup_client
from .points_service import PointsService

logger = logging.getLogger(__name__)

# No 0/O, 1/I/L
CODE_ALPHABET = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'
CODE_PREFIX_LENGTH = 6
CODE_SUFFIX_LENGTH = 4
MAX_CODE_ATTEMPTS = 10


def generate_referral_code(first_name: Optional[str]) -> str:
    """
    Up to 6 letters of the first name plus 4 random characters, e.g. 'SARAH7K2P'.
    """
    prefix = re.sub(r'[^A-Z]', '', (first_name or '').upper())[:CODE_PREFIX_LENGTH]
    suffix = ''.join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    return f'{prefix}{suffix}'


class ReferralService:
    """
    Usage:
        service = ReferralService()

        code = service.get_or_create_referral_code(client)
        referral = service.submit_invite(client, 'friend@example.com')
    """

    def __init__(self, points_service: Optional[PointsService] = None):
        self.points_service = points_service or PointsService()

    @property
    def settings(self) -> Dict[str, Any]:
        return self.points_service.settings

    # ==================== Codes ====================

    def get_or_create_referral_code(self, client: Client) -> str:
        if client.referral_code:
            return client.referral_code

        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_referral_code(client.first_name)
            if not Client.query.filter_by(referral_code=code).first():
                client.referral_code = code
                db.session.commit()
                logger.info('Assigned referral code %s to client %s', code, client.id)
                return code

        raise PortalError('Could not generate a unique referral code', 'REFERRAL_CODE_FAILED')

    def get_referral_link(self, client: Client) -> Optional[str]:
        return referral_link(self.get_or_create_referral_code(client))

    def validate_code(self, code: str) -> Optional[Dict[str, Any]]:
        """Referrer's display info for a code, or None if the code is unknown."""
        code = (code or '').strip().upper()
        if not code:
            return None
        referrer = Client.query.filter_by(referral_code=code, status='active').first()
        if not referrer:
            return None
        return {
            'code': code,
            'referrer_first_name': referrer.first_name,
            'referee_bonus': self.settings['referral_bonus_referee'],
        }

    # ==================== Invites ====================

    def submit_invite(self, client: Client, email: str) -> Referral:
        """
        Record an invitation to a friend.

        Raises:
            ValidationError: invalid email
            ConfigurationError: no public site URL to build the link
            DuplicateError: this client already invited this email
        """
        email = (email or '').strip().lower()
        if not is_valid_email(email):
            raise ValidationError('Please enter a valid email address.', field='email')

        code = self.get_or_create_referral_code(client)
        link = referral_link(code)
        if not link:
            raise ConfigurationError('Referral links are unavailable: site URL is not configured')

        if Referral.query.filter_by(referrer_client_id=client.id, referee_email=email).first():
            raise DuplicateError('Referral', message='Looks like you already invited this email.')

        referral = Referral(
            referrer_client_id=client.id,
            referee_email=email,
            referral_code=code,
            referral_link=link,
            status=ReferralStatus.PENDING,
            invited_at=datetime.utcnow(),
        )
        db.session.add(referral)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateError('Referral', message='Looks like you already invited this email.')

        revalidate_path('/', client.user_id)
        revalidate_path('/refer', client.user_id)
        logger.info('Client %s invited %s', client.id, email)
        return referral

    # ==================== Signup & completion ====================

    def process_referral_signup(
        self,
        code: str,
        user: User,
        email: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None
    ) -> Client:
        """
        Set up a new client who signed up with a referral code and award the
        referee bonus.

        Raises:
            ValidationError: unknown code, program disabled, or self-referral
        """
        code = (code or '').strip().upper()
        email = (email or '').strip().lower()

        referrer = Client.query.filter_by(referral_code=code).first() if code else None
        if not referrer:
            raise ValidationError('Invalid referral code', field='referral_code')
        if not self.settings['referral_program_enabled']:
            raise ValidationError('The referral program is not currently available', field='referral_code')
        if (referrer.email or '').lower() == email or referrer.user_id == user.id:
            raise ValidationError('You cannot use your own referral code', field='referral_code')

        now = datetime.utcnow()
        try:
            client = create_or_link_signup_client(user, first_name, last_name, phone, source='referral')
            client.referred_by_id = referrer.id
            db.session.flush()

            referral = Referral.query.filter_by(referrer_client_id=referrer.id, referee_email=email).first()
            if not referral:
                referral = Referral(
                    referrer_client_id=referrer.id,
                    referee_email=email,
                    referral_code=code,
                    referral_link=referral_link(code),
                    invited_at=now,
                )
                db.session.add(referral)

            bonus = self.settings['referral_bonus_referee'] or 0
            referral.status = ReferralStatus.SIGNED_UP
            referral.signed_up_at = now
            referral.referee_client_id = client.id
            referral.referee_signup_points = bonus

            if bonus > 0:
                self.points_service.update_client_points(
                    client.id,
                    bonus,
                    TransactionType.EARN,
                    SourceType.REFERRAL,
                    reference=referrer.id,
                    description=f'Welcome bonus for joining with {referrer.first_name}\'s referral',
                    commit=False,
                )

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Referral signup: client %s referred by %s (+%d)', client.id, referrer.id, bonus)
        return client

    def complete_referral_for_booking(self, booking: Booking) -> Optional[Referral]:
        """
        Award the referrer bonus on the referee's first confirmed booking.

        Returns the completed referral, or None when nothing applies.
        """
        if booking.status not in ('confirmed', 'completed'):
            return None

        referral = Referral.query.filter_by(
            referee_client_id=booking.client_id,
            status=ReferralStatus.SIGNED_UP
        ).first()
        if not referral:
            return None

        bonus = self.settings['referral_bonus_referrer'] or 0
        referral.status = ReferralStatus.COMPLETED
        referral.completed_at = datetime.utcnow()
        referral.booking_id = booking.id
        referral.referrer_booking_points = bonus

        try:
            if bonus > 0:
                self.points_service.update_client_points(
                    referral.referrer_client_id,
                    bonus,
                    TransactionType.EARN,
                    SourceType.REFERRAL,
                    reference=booking.id,
                    description=f'Referral bonus: {referral.referee_email} made their first booking',
                    commit=False,
                )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Referral %s completed by booking %s', referral.id, booking.booking_reference)
        return referral

    # ==================== Stats ====================

    def get_referral_counts(self, client_id: str, now: Optional[datetime] = None) -> Dict[str, int]:
        """Successful referrals (signed up or completed): total, this year, last year."""
        now = now or datetime.utcnow()

        def count(*criteria):
            return Referral.query.filter(
                Referral.referrer_client_id == client_id,
                Referral.status.in_(ReferralStatus.SUCCESSFUL),
                *criteria
            ).count()

        this_year = datetime(now.year, 1, 1)
        last_year = datetime(now.year - 1, 1, 1)
        # signed_up_at is set for both successful statuses
        return {
            'total': count(),
            'current_year': count(Referral.signed_up_at >= this_year),
            'last_year': count(Referral.signed_up_at >= last_year, Referral.signed_up_at < this_year),
        }

    def get_referral_summary(self, client: Client) -> Dict[str, Any]:
        referrals = Referral.query.filter_by(referrer_client_id=client.id).order_by(
            Referral.invited_at.desc()
        ).all()

        by_status = {status: 0 for status in (ReferralStatus.PENDING, ReferralStatus.SIGNED_UP, ReferralStatus.COMPLETED)}
        for referral in referrals:
            if referral.status in by_status:
                by_status[referral.status] += 1

        points_earned = db.session.query(
            func.coalesce(func.sum(Referral.referrer_booking_points), 0)
        ).filter(
            Referral.referrer_client_id == client.id,
            Referral.status == ReferralStatus.COMPLETED
        ).scalar()

        code = self.get_or_create_referral_code(client)
        return {
            'referral_code': code,
            'referral_link': referral_link(code),
            'program_enabled': self.settings['referral_program_enabled'],
            'referee_bonus': self.settings['referral_bonus_referee'],
            'referrer_bonus': self.settings['referral_bonus_referrer'],
            'total_invites': len(referrals),
            'pending': by_status[ReferralStatus.PENDING],
            'signed_up': by_status[ReferralStatus.SIGNED_UP],
            'completed': by_status[ReferralStatus.COMPLETED],
            'total_points_earned': int(points_earned or 0),
            'referrals': [r.to_dict() for r in referrals],
        }

    def get_recent_referrals(self, client_id: str, limit: int = 3):
        return Referral.query.filter_by(referrer_client_id=client_id).order_by(
            Referral.invited_at.desc()
        ).limit(limit).all()
