"""
Form validation for auth and profile requests.

Each validator takes the raw JSON payload and returns (cleaned, errors) where
errors maps field name to a user-facing message. An empty errors dict means
the payload is valid.
"""
import re
from typing import Any, Dict, Tuple

from .phone import is_valid_phone

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
REFERRAL_CODE_RE = re.compile(r'^[A-Z0-9]{1,20}$', re.IGNORECASE)

MIN_PASSWORD_LENGTH = 8

Errors = Dict[str, str]


def _str(data: Dict[str, Any], key: str) -> str:
    return _text(data, key).strip()


def _text(data: Dict[str, Any], key: str) -> str:
    """Raw string value, '' for missing or non-string values."""
    value = data.get(key)
    return value if isinstance(value, str) else ''


def is_valid_email(email: str) -> bool:
    return isinstance(email, str) and bool(EMAIL_RE.match(email))


def password_error(password: str, symbol_message: str = 'Password must include a symbol (e.g. ! @ # $ %)'):
    """First strength rule the password breaks, or None."""
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return f'Password must be at least {MIN_PASSWORD_LENGTH} characters'
    if not re.search(r'[0-9]', password):
        return 'Password must contain at least one number'
    if not re.search(r'[^a-zA-Z0-9]', password):
        return symbol_message
    return None


def validate_signup(data: Dict[str, Any]) -> Tuple[Dict[str, Any], Errors]:
    errors: Errors = {}

    email = _str(data, 'email').lower()
    password = _text(data, 'password')
    first_name = _str(data, 'first_name')
    last_name = _str(data, 'last_name')
    referral_code = _str(data, 'referral_code')
    phone = _str(data, 'phone')

    if not is_valid_email(email):
        errors['email'] = 'Invalid email address'

    error = password_error(password)
    if error:
        errors['password'] = error

    if not first_name:
        errors['first_name'] = 'First name is required'
    if not last_name:
        errors['last_name'] = 'Last name is required'

    if referral_code and not REFERRAL_CODE_RE.match(referral_code):
        errors['referral_code'] = 'Referral code must be alphanumeric (up to 20 characters)'

    if phone and not is_valid_phone(phone):
        errors['phone'] = 'Enter a valid phone number with country code (e.g. +44 7123 456789)'

    cleaned = {
        'email': email,
        'password': password,
        'first_name': first_name,
        'last_name': last_name,
        'referral_code': referral_code.upper() or None,
        'phone': phone or None,
    }
    return cleaned, errors


def validate_login(data: Dict[str, Any]) -> Tuple[Dict[str, Any], Errors]:
    errors: Errors = {}

    email = _str(data, 'email').lower()
    password = _text(data, 'password')

    if not is_valid_email(email):
        errors['email'] = 'Invalid email address'
    if not password:
        errors['password'] = 'Password is required'

    return {'email': email, 'password': password}, errors


def validate_forgot_password(data: Dict[str, Any]) -> Tuple[Dict[str, Any], Errors]:
    email = _str(data, 'email').lower()
    errors: Errors = {}
    if not is_valid_email(email):
        errors['email'] = 'Invalid email address'
    return {'email': email}, errors


def validate_new_password(data: Dict[str, Any]) -> Tuple[Dict[str, Any], Errors]:
    """Reset and change password share the same rules."""
    errors: Errors = {}

    password = _text(data, 'password')
    confirm_password = _text(data, 'confirm_password')

    error = password_error(password, 'Password must contain at least one special character')
    if error:
        errors['password'] = error

    if password != confirm_password:
        errors['confirm_password'] = "Passwords don't match"

    return {'password': password}, errors
