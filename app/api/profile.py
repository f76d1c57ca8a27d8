"""
Profile API endpoints.

Updates answer with a form state: {status, message, errors}. Validation
problems come back as 400 with per-field errors.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth
from ..services.profile_service import ProfileService
from ..utils.currency import get_currency_info

profile_bp = Blueprint('profile', __name__)


def _form_response(state):
    return jsonify(state), (200 if state['status'] == 'success' else 400)


@profile_bp.route('', methods=['GET'])
@require_auth
def get_profile():
    return jsonify({
        'user': g.user.to_dict(),
        'client': g.client.to_dict(),
    })


@profile_bp.route('', methods=['PUT'])
@require_auth
def update_profile():
    """
    Request body:
        first_name, last_name: string (required)
        phone: string (optional, international format)
        date_of_birth: YYYY-MM-DD (optional)
        address: {address_line1, address_line2, city, state, postal_code, country}
    """
    data = dict(request.get_json(silent=True) or {})
    data.setdefault('client_id', g.client.id)
    return _form_response(ProfileService(g.user).update_profile(data))


@profile_bp.route('/preferences', methods=['GET'])
@require_auth
def get_preferences():
    """
    Display currency and when it last changed.

    Other sessions compare currency_updated_at with what they loaded and
    refetch when it moves.
    """
    prefs = ProfileService(g.user).get_preferences(g.client)
    prefs['currency'] = get_currency_info(prefs['preferred_currency'])
    return jsonify(prefs)


@profile_bp.route('/preferences', methods=['PUT'])
@require_auth
def update_preferences():
    data = dict(request.get_json(silent=True) or {})
    data.setdefault('client_id', g.client.id)

    service = ProfileService(g.user)
    state = service.update_preferences(data)
    if state['status'] == 'success':
        state['preferences'] = service.get_preferences(g.client)
    return _form_response(state)


@profile_bp.route('/password', methods=['POST'])
@require_auth
def change_password():
    """
    Request body:
        new_password: string
        confirm_password: string
    """
    data = request.get_json(silent=True) or {}
    return _form_response(ProfileService(g.user).change_password(data))
