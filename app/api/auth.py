"""
Authentication API endpoints.
Handles client signup, login, JWT tokens, and password reset.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..middleware.auth import get_current_user, require_user
from ..middleware.rate_limit import ratelimit_login, ratelimit_signup
from ..services.auth_service import AuthService, is_team_member
from ..services.referral_service import ReferralService
from ..utils.errors import ErrorCode, bad_request
from ..utils.exceptions import AuthenticationError
from ..utils.validation import (
    REFERRAL_CODE_RE,
    validate_forgot_password,
    validate_login,
    validate_new_password,
    validate_signup,
)

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/signup', methods=['POST'])
@ratelimit_signup
def signup():
    """
    Create a portal account.

    Request body:
        email: string (required)
        password: string (required, 8+ chars with a number and a symbol)
        first_name: string (required)
        last_name: string (required)
        referral_code: string (optional)
        phone: string (optional, international format)
    """
    data = request.get_json(silent=True) or {}
    cleaned, errors = validate_signup(data)
    if errors:
        return bad_request('Please fix the highlighted fields.', ErrorCode.VALIDATION_ERROR, errors=errors)

    result = AuthService().signup(cleaned)

    return jsonify({
        'success': True,
        'user': result['user'].to_dict(),
        'client': result['client'].to_dict(),
        'referral_applied': result['referral_applied'],
        'referral_error': result['referral_error'],
        **result['tokens'],
    }), 201


@auth_bp.route('/login', methods=['POST'])
@ratelimit_login
def login():
    data = request.get_json(silent=True) or {}
    cleaned, errors = validate_login(data)
    if errors:
        return bad_request('Please fix the highlighted fields.', ErrorCode.VALIDATION_ERROR, errors=errors)

    result = AuthService().login(cleaned['email'], cleaned['password'])

    return jsonify({
        'success': True,
        'user': result['user'].to_dict(),
        'portal': result['portal'],
        **result['tokens'],
    })


@auth_bp.route('/refresh', methods=['POST'])
def refresh():
    """Exchange a refresh token for a new access token."""
    data = request.get_json(silent=True) or {}
    refresh_token = data.get('refresh_token')
    if not refresh_token:
        return bad_request('refresh_token is required', ErrorCode.MISSING_FIELD)

    return jsonify(AuthService().refresh(refresh_token))


@auth_bp.route('/signout', methods=['POST'])
def signout():
    # Tokens are stateless; the client discards them
    return jsonify({'success': True})


@auth_bp.route('/forgot-password', methods=['POST'])
@ratelimit_login
def forgot_password():
    """
    Start a password reset.

    Always answers 200 for a well-formed email so account existence is not
    revealed.
    """
    data = request.get_json(silent=True) or {}
    cleaned, errors = validate_forgot_password(data)
    if errors:
        return bad_request('Please fix the highlighted fields.', ErrorCode.VALIDATION_ERROR, errors=errors)

    AuthService().request_password_reset(cleaned['email'])

    return jsonify({
        'success': True,
        'message': 'If an account exists for that email, a reset link is on its way.'
    })


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    data = request.get_json(silent=True) or {}
    cleaned, errors = validate_new_password(data)
    if errors:
        return bad_request('Please fix the highlighted fields.', ErrorCode.VALIDATION_ERROR, errors=errors)

    AuthService().reset_password(data.get('token'), cleaned['password'])
    return jsonify({'success': True, 'message': 'Your password has been reset. You can log in now.'})


@auth_bp.route('/change-password', methods=['POST'])
@require_user
def change_password():
    data = request.get_json(silent=True) or {}
    cleaned, errors = validate_new_password(data)
    if errors:
        return bad_request('Please fix the highlighted fields.', ErrorCode.VALIDATION_ERROR, errors=errors)

    AuthService().change_password(g.user, cleaned['password'])
    return jsonify({'success': True, 'message': 'Your password has been updated successfully.'})


@auth_bp.route('/me', methods=['GET'])
@require_user
def me():
    return jsonify({'user': g.user.to_dict()})


@auth_bp.route('/role', methods=['GET'])
def role():
    """Whether the caller is signed in and a team member. Never fails."""
    try:
        user = get_current_user()
    except AuthenticationError:
        user = None

    return jsonify({
        'is_authenticated': user is not None,
        'is_team_member': is_team_member(user),
    })


@auth_bp.route('/validate-referral-code', methods=['GET'])
def validate_referral_code():
    """Check a ?code= before signup and show who referred the visitor."""
    code = (request.args.get('code') or '').strip().upper()
    if not code or not REFERRAL_CODE_RE.match(code):
        return jsonify({'valid': False})

    details = ReferralService().validate_code(code)
    if not details:
        current_app.logger.info(f"Unknown referral code at signup: {code}")
        return jsonify({'valid': False})

    return jsonify({'valid': True, **details})
