"""
Points API endpoints for the loyalty portal.

Handles:
- Points overview (balance, yearly stats, breakdown, history)
- Statement (full ledger)
- Redeem and earn information
- Redemption calculator
"""
import math

from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth
from ..services.currency_service import convert_discount_to_preferred_currency, get_display_currency
from ..services.points_service import PointsService
from ..services.referral_service import ReferralService
from ..services.trip_service import TripService
from ..utils.errors import ErrorCode, bad_request

points_bp = Blueprint('points', __name__)

STATEMENT_MAX_PAGE_SIZE = 100
EXAMPLE_REDEMPTION_POINTS = 100


# ==============================================================================
# OVERVIEW
# ==============================================================================

@points_bp.route('', methods=['GET'])
@require_auth
def get_points_overview():
    """
    Points page payload.

    Query params:
        page: Transaction history page (default 1, 10 per page)
    """
    client = g.client
    page = max(1, request.args.get('page', 1, type=int) or 1)

    points = PointsService()
    referrals = ReferralService(points)

    discount = points.calculate_available_discount(client)
    stats = points.get_points_stats(client.id)
    total_bookings = TripService(client).count_bookings()
    purchase_points = stats['lifetime_breakdown']['purchase']

    return jsonify({
        'summary': {
            **discount,
            'lifetime_points_earned': client.lifetime_points_earned or 0,
            'next_threshold': points.next_redemption_threshold(discount['available_points']),
        },
        'stats': stats,
        'bookings': {
            'total': total_bookings,
            'average_points_per_booking': round(purchase_points / total_bookings) if total_bookings else 0,
        },
        'referral': {
            'code': referrals.get_or_create_referral_code(client),
            'link': referrals.get_referral_link(client),
        },
        'expiring_points': points.get_expiring_points(client),
        'monthly_activity': points.get_monthly_activity(client.id),
        'history': points.get_transactions_paginated(client.id, page=page),
    })


@points_bp.route('/statement', methods=['GET'])
@require_auth
def get_statement():
    """
    Full ledger, newest first.

    Query params:
        page: Page number (default 1)
        page_size: Items per page (default 50, max 100)
    """
    page = max(1, request.args.get('page', 1, type=int) or 1)
    page_size = min(request.args.get('page_size', 50, type=int) or 50, STATEMENT_MAX_PAGE_SIZE)

    statement = PointsService().get_transactions_paginated(g.client.id, page=page, page_size=max(1, page_size))
    statement['points_balance'] = g.client.points_balance or 0
    return jsonify(statement)


# ==============================================================================
# REDEEM & EARN
# ==============================================================================

@points_bp.route('/redeem', methods=['GET'])
@require_auth
def get_redeem_info():
    """Available discount in base and preferred currency, plus total saved."""
    client = g.client
    points = PointsService()
    settings = points.settings

    base_currency = settings['currency']
    preferred_currency = get_display_currency(client, base_currency)

    discount = points.calculate_available_discount(client)
    total_saved = points.get_total_saved(client.id)
    example_amount = points.points_to_discount(EXAMPLE_REDEMPTION_POINTS)

    return jsonify({
        **discount,
        'min_redemption_points': settings['min_redemption_points'],
        'redemption_increment': settings['redemption_increment'],
        'next_threshold': points.next_redemption_threshold(discount['available_points']),
        'preferred_currency': preferred_currency,
        'discount': convert_discount_to_preferred_currency(
            discount['discount_amount'], base_currency, preferred_currency
        ),
        'example': {
            'points': EXAMPLE_REDEMPTION_POINTS,
            **convert_discount_to_preferred_currency(example_amount, base_currency, preferred_currency),
        },
        'total_saved': convert_discount_to_preferred_currency(total_saved, base_currency, preferred_currency),
    })


@points_bp.route('/earn', methods=['GET'])
@require_auth
def get_earn_info():
    client = g.client
    points = PointsService()
    settings = points.settings

    return jsonify({
        'points_per_currency_unit': settings['points_per_currency_unit'],
        'point_value': settings['point_value'],
        'currency': settings['currency'],
        'referral_bonus_referrer': settings['referral_bonus_referrer'],
        'referral_bonus_referee': settings['referral_bonus_referee'],
        'referral_program_enabled': settings['referral_program_enabled'],
        'total_bookings': TripService(client).count_bookings(),
        'total_referrals': ReferralService(points).get_referral_counts(client.id)['total'],
    })


@points_bp.route('/calculator/redemption', methods=['POST'])
@require_auth
def calculate_redemption():
    """
    Preview a booking total after redeeming points.

    Request body:
        booking_amount: number (required)
        points: integer (required)
    """
    data = request.get_json(silent=True) or {}

    try:
        booking_amount = float(data.get('booking_amount'))
        points = int(data.get('points'))
        if not math.isfinite(booking_amount):
            raise ValueError(booking_amount)
    except (TypeError, ValueError, OverflowError):
        return bad_request('booking_amount and points must be numbers', ErrorCode.VALIDATION_ERROR)

    return jsonify(PointsService().calculate_redemption(booking_amount, points))
