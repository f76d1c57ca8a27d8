"""
Authentication service.

Local email/password accounts with stateless JWT sessions:
- Access tokens (1 hour) authorize API calls
- Refresh tokens (30 days) mint new access tokens
- Password reset tokens are single use and expire after 1 hour
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import jwt
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import PortalAccess, TeamMember, User
from ..utils.cache_invalidation import invalidate_all_caches
from ..utils.exceptions import AuthenticationError, DuplicateError, PortalError, ValidationError
from ..utils.phone import to_e164
from ..utils.portal_access import landing_portal, normalize_portal_types
from ..utils.signup_errors import get_signup_error_message
from .client_service import create_or_link_signup_client, find_client_by_email
from .referral_service import ReferralService

logger = logging.getLogger(__name__)

JWT_ALGORITHM = 'HS256'
JWT_ACCESS_EXPIRY = timedelta(hours=1)
JWT_REFRESH_EXPIRY = timedelta(days=30)
RESET_TOKEN_EXPIRY = timedelta(hours=1)

ALREADY_REGISTERED_MESSAGE = 'This email is already registered. You can log in instead.'


def _secret() -> str:
    return current_app.config['JWT_SECRET_KEY']


def create_access_token(user_id: str) -> str:
    """Create a short-lived access token."""
    payload = {
        'user_id': user_id,
        'type': 'access',
        'exp': datetime.utcnow() + JWT_ACCESS_EXPIRY,
        'iat': datetime.utcnow()
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def create_refresh_token(user_id: str) -> str:
    """Create a long-lived refresh token."""
    payload = {
        'user_id': user_id,
        'type': 'refresh',
        'exp': datetime.utcnow() + JWT_REFRESH_EXPIRY,
        'iat': datetime.utcnow()
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str, expected_type: str = 'access') -> Dict[str, Any]:
    """
    Decode and verify a JWT token.

    Raises:
        AuthenticationError: expired, malformed, or wrong token type
    """
    try:
        payload = jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError('Token has expired', 'INVALID_TOKEN')
    except jwt.InvalidTokenError:
        raise AuthenticationError('Invalid token', 'INVALID_TOKEN')

    if payload.get('type') != expected_type:
        raise AuthenticationError('Invalid token type', 'INVALID_TOKEN')
    return payload


def issue_tokens(user: User) -> Dict[str, str]:
    return {
        'access_token': create_access_token(user.id),
        'refresh_token': create_refresh_token(user.id),
    }


def is_team_member(user: Optional[User]) -> bool:
    if user is None:
        return False
    return TeamMember.query.filter(
        TeamMember.user_id == user.id,
        TeamMember.status != 'inactive'
    ).first() is not None


def get_portal_types(user: User):
    rows = PortalAccess.query.filter_by(user_id=user.id).all()
    return normalize_portal_types(rows)


class AuthService:
    """
    Usage:
        service = AuthService()

        result = service.signup(cleaned_form_data)
        result = service.login('jane@example.com', 'secret-1!')
    """

    def __init__(self, referral_service: Optional[ReferralService] = None):
        self.referral_service = referral_service or ReferralService()

    def signup(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an account and its client record.

        Args:
            data: Validated signup fields (email, password, first_name,
                last_name, referral_code, phone)

        Returns:
            Dict with user, client, tokens, and referral_applied flag

        Raises:
            DuplicateError: email already registered
            ValidationError: referral code rejected for a new customer
            PortalError: client setup failed (the new account is removed)
        """
        email = data['email']
        if User.query.filter_by(email=email).first():
            raise DuplicateError('User', message=ALREADY_REGISTERED_MESSAGE)

        phone = to_e164(data['phone']) if data.get('phone') else None

        user = User(email=email, first_name=data['first_name'], last_name=data['last_name'])
        user.set_password(data['password'])
        db.session.add(user)
        db.session.commit()

        referral_applied = False
        referral_error = None
        try:
            if data.get('referral_code'):
                try:
                    client = self.referral_service.process_referral_signup(
                        data['referral_code'], user, email,
                        data['first_name'], data['last_name'], phone
                    )
                    referral_applied = True
                except ValidationError as e:
                    logger.warning('Referral signup failed for %s: %s', email, e.message)
                    if not find_client_by_email(email):
                        self._cleanup_user(user)
                        raise
                    # Known customer: link the record, report the code as not applied
                    referral_error = e.message
                    client = create_or_link_signup_client(user, data['first_name'], data['last_name'], phone)
                    db.session.commit()
            else:
                client = create_or_link_signup_client(user, data['first_name'], data['last_name'], phone)
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            self._cleanup_user(user)
            display = get_signup_error_message(e)
            logger.error('Client setup failed for %s: %s', email, e)
            raise PortalError(display['description'], 'SETUP_FAILED')

        invalidate_all_caches(user.id)
        logger.info('User %s signed up (client %s, referral=%s)', user.id, client.id, referral_applied)
        return {
            'user': user,
            'client': client,
            'tokens': issue_tokens(user),
            'referral_applied': referral_applied,
            'referral_error': referral_error,
        }

    def _cleanup_user(self, user: User) -> None:
        try:
            db.session.delete(user)
            db.session.commit()
            logger.info('Removed user %s after failed signup', user.id)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Failed to clean up user %s: %s', user.id, e)

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Raises:
            AuthenticationError: unknown email or wrong password
        """
        user = User.query.filter_by(email=email.lower()).first()
        if not user or not user.check_password(password):
            raise AuthenticationError('Invalid email or password', 'INVALID_CREDENTIALS')

        user.last_login_at = datetime.utcnow()
        db.session.commit()

        return {
            'user': user,
            'tokens': issue_tokens(user),
            'portal': landing_portal(get_portal_types(user)),
        }

    def refresh(self, refresh_token: str) -> Dict[str, str]:
        payload = decode_token(refresh_token, expected_type='refresh')
        user = db.session.get(User, payload['user_id'])
        if not user:
            raise AuthenticationError('User not found', 'INVALID_TOKEN')
        return {'access_token': create_access_token(user.id)}

    def request_password_reset(self, email: str) -> Optional[str]:
        """
        Issue a reset token when the account exists.

        Returns the token (None for unknown emails); callers must not reveal which.
        """
        user = User.query.filter_by(email=email.lower()).first()
        if not user:
            return None

        user.reset_token = secrets.token_urlsafe(32)
        user.reset_token_expires_at = datetime.utcnow() + RESET_TOKEN_EXPIRY
        db.session.commit()

        # TODO: deliver the reset link by email once an email provider is configured
        logger.info('Password reset requested for user %s', user.id)
        return user.reset_token

    def reset_password(self, token: str, password: str) -> User:
        user = User.query.filter_by(reset_token=token).first() if token else None
        if not user or not user.reset_token_expires_at or user.reset_token_expires_at < datetime.utcnow():
            raise ValidationError('Invalid or expired reset token', field='token')

        user.set_password(password)
        user.reset_token = None
        user.reset_token_expires_at = None
        db.session.commit()
        return user

    def change_password(self, user: User, password: str) -> None:
        user.set_password(password)
        db.session.commit()
        logger.info('Password changed for user %s', user.id)
