"""
Profile Service: profile details, display preferences, and password changes.

Every update returns a form-state dict the frontend renders directly:
    {'status': 'success' | 'error', 'message': str, 'errors': {field: message}}
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Client, User
from ..utils.cache_invalidation import invalidate_currency_caches, invalidate_profile_caches
from ..utils.currency import get_client_preferred_currency, is_valid_currency, parse_preferences
from ..utils.dates import parse_date_of_birth
from ..utils.phone import is_valid_phone, to_e164
from ..utils.validation import validate_new_password
from .auth_service import AuthService

logger = logging.getLogger(__name__)

FIX_FIELDS_MESSAGE = 'Please fix the highlighted fields.'

ADDRESS_FIELDS = ('address_line1', 'address_line2', 'city', 'state', 'postal_code', 'country')


def form_state(status: str, message: str, errors: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    return {'status': status, 'message': message, 'errors': errors or {}}


def _is_uuid(value: Any) -> bool:
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError):
        return False
    return True


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _own_client(user: User, client_id: str) -> Optional[Client]:
    return Client.query.filter_by(id=client_id, user_id=user.id).first()


class ProfileService:
    """
    Usage:
        service = ProfileService(g.user)
        state = service.update_preferences({'client_id': client.id, 'preferred_currency': 'USD'})
    """

    def __init__(self, user: User):
        self.user = user

    def update_profile(self, data: Dict[str, Any]) -> Dict[str, Any]:
        client_id = data.get('client_id') or ''
        first_name = _clean(data.get('first_name'))
        last_name = _clean(data.get('last_name'))
        phone = _clean(data.get('phone'))
        date_of_birth = _clean(data.get('date_of_birth'))

        address_source = data.get('address') if isinstance(data.get('address'), dict) else data
        address = {field: _clean(address_source.get(field)) for field in ADDRESS_FIELDS}

        errors = {}
        if not _is_uuid(client_id):
            errors['client_id'] = 'Invalid client reference'
        if not first_name:
            errors['first_name'] = 'First name is required'
        if not last_name:
            errors['last_name'] = 'Last name is required'
        if phone and not is_valid_phone(phone):
            errors['phone'] = 'Enter a valid phone number with country code (e.g. +44 7123 456789)'

        dob = None
        if date_of_birth:
            dob = parse_date_of_birth(date_of_birth)
            if not dob:
                errors['date_of_birth'] = 'Enter a valid date'

        if errors:
            return form_state('error', FIX_FIELDS_MESSAGE, errors)

        client = _own_client(self.user, client_id)
        if not client:
            return form_state('error', 'We could not update your profile. Please try again.')

        client.first_name = first_name
        client.last_name = last_name
        client.phone = to_e164(phone) if phone else None
        client.date_of_birth = dob
        client.address = address if any(address.values()) else None
        client.updated_at = datetime.utcnow()

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Profile update failed for client %s: %s', client.id, e)
            return form_state('error', 'We could not update your profile. Please try again.')

        invalidate_profile_caches(self.user.id)
        logger.info('Profile updated for client %s', client.id)
        return form_state('success', 'Profile updated successfully.')

    def get_preferences(self, client: Client) -> Dict[str, Any]:
        """Current display currency and when it last changed."""
        prefs = parse_preferences(client.preferences)
        return {
            'preferred_currency': get_client_preferred_currency(client),
            'currency_updated_at': prefs.get('currency_updated_at'),
        }

    def update_preferences(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Change the display currency.

        Existing preference keys are kept. currency_updated_at lets other open
        sessions notice the change and refetch.
        """
        client_id = data.get('client_id') or ''
        currency = _clean(data.get('preferred_currency')) or ''

        errors = {}
        if not _is_uuid(client_id):
            errors['client_id'] = 'Invalid client reference'
        if not currency:
            errors['preferred_currency'] = 'Currency is required'
        elif not is_valid_currency(currency):
            errors['preferred_currency'] = 'Invalid currency code'
        if errors:
            return form_state('error', FIX_FIELDS_MESSAGE, errors)

        client = _own_client(self.user, client_id)
        if not client:
            return form_state('error', 'We could not update your preferences. Please try again.')

        preferences = parse_preferences(client.preferences)
        preferences['preferred_currency'] = currency.upper()
        preferences['currency_updated_at'] = datetime.utcnow().isoformat()

        client.preferences = preferences
        client.updated_at = datetime.utcnow()

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Preference update failed for client %s: %s', client.id, e)
            return form_state('error', 'We could not update your preferences. Please try again.')

        invalidate_currency_caches(self.user.id)
        logger.info('Client %s switched display currency to %s', client.id, currency.upper())
        return form_state('success', 'Preferences updated successfully.')

    def change_password(self, data: Dict[str, Any]) -> Dict[str, Any]:
        cleaned, errors = validate_new_password({
            'password': data.get('new_password'),
            'confirm_password': data.get('confirm_password'),
        })
        if not data.get('confirm_password'):
            errors.setdefault('confirm_password', 'Please confirm your new password')
        if errors:
            # Form fields are named new_password/confirm_password
            if 'password' in errors:
                errors['new_password'] = errors.pop('password')
            return form_state('error', FIX_FIELDS_MESSAGE, errors)

        try:
            AuthService().change_password(self.user, cleaned['password'])
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Password change failed for user %s: %s', self.user.id, e)
            return form_state('error', 'Unable to update your password. Please try again.')

        return form_state('success', 'Your password has been updated successfully.')
