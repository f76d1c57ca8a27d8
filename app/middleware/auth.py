"""
Bearer token authentication for portal API routes.

    @bp.route('/points')
    @require_auth
    def points():
        g.user    # User
        g.client  # Client for the user (linked or created on first access)
"""
from functools import wraps
from typing import Optional

from flask import g, request

from ..extensions import db
from ..models import User
from ..services.auth_service import decode_token
from ..services.client_service import get_client
from ..utils.errors import ErrorCode, error_response, unauthorized
from ..utils.exceptions import AuthenticationError


def get_bearer_token() -> Optional[str]:
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    token = auth_header.split(' ', 1)[1].strip()
    return token or None


def get_current_user() -> Optional[User]:
    """
    User for the request's access token, or None.

    Raises:
        AuthenticationError: a token was sent but is invalid or expired
    """
    token = get_bearer_token()
    if not token:
        return None
    payload = decode_token(token, expected_type='access')
    return db.session.get(User, payload.get('user_id'))


def _authenticate():
    """Set g.user, or return an error response."""
    try:
        user = get_current_user()
    except AuthenticationError as e:
        return unauthorized(e.message, ErrorCode.INVALID_TOKEN)

    if not user:
        if get_bearer_token():
            return unauthorized('User not found', ErrorCode.INVALID_TOKEN)
        return unauthorized()

    g.user = user
    return None


def require_user(f):
    """Require a valid access token; sets g.user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        error = _authenticate()
        if error:
            return error
        return f(*args, **kwargs)
    return decorated_function


def require_auth(f):
    """Require a valid access token and a client record; sets g.user and g.client."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        error = _authenticate()
        if error:
            return error

        client, client_error = get_client(g.user)
        if not client:
            return error_response(
                'We could not set up your account. Please contact support.',
                ErrorCode.SETUP_FAILED,
                500,
                details={'reason': client_error, 'user_id': g.user.id}
            )

        g.client = client
        return f(*args, **kwargs)
    return decorated_function
