"""
Referral program API endpoints.

Member routes require a bearer token. Code validation is public so the
signup page can show who sent the visitor.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth
from ..middleware.rate_limit import ratelimit_referral_invite
from ..services.referral_service import ReferralService
from ..utils.errors import ErrorCode, bad_request

referrals_bp = Blueprint('referrals', __name__)


@referrals_bp.route('', methods=['GET'])
@require_auth
def get_referral_summary():
    """Code, link, bonuses, per-status counts, and invite history."""
    service = ReferralService()
    summary = service.get_referral_summary(g.client)
    summary['counts'] = service.get_referral_counts(g.client.id)
    return jsonify(summary)


@referrals_bp.route('/invite', methods=['POST'])
@require_auth
@ratelimit_referral_invite
def invite():
    """
    Invite a friend by email.

    Request body:
        email: string (required)
    """
    data = request.get_json(silent=True) or {}
    referral = ReferralService().submit_invite(g.client, data.get('email'))

    return jsonify({
        'success': True,
        'message': f"Invitation recorded for {referral.referee_email}. Share your link to get them started.",
        'referral': referral.to_dict(),
    }), 201


@referrals_bp.route('/validate', methods=['GET'])
def validate_code():
    code = request.args.get('code', '')
    if not code.strip():
        return bad_request('code is required', ErrorCode.MISSING_FIELD)

    details = ReferralService().validate_code(code)
    if not details:
        return jsonify({'valid': False})
    return jsonify({'valid': True, **details})
