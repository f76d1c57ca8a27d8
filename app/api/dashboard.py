"""
Dashboard API endpoint.
"""
from flask import Blueprint, jsonify, g

from ..middleware.auth import require_auth
from ..services.currency_service import convert_discount_to_preferred_currency, get_display_currency
from ..services.notification_service import NotificationService
from ..services.points_service import PointsService
from ..services.referral_service import ReferralService
from ..services.trip_service import TripService
from ..utils.cache_invalidation import CLIENT_DATA, LOYALTY_DATA, cached_page
from ..utils.dates import format_calendar_date

dashboard_bp = Blueprint('dashboard', __name__)

RECENT_ACTIVITY_LIMIT = 5
RECENT_REFERRALS_LIMIT = 3


def build_dashboard(client):
    """Everything the home page shows for one client."""
    points = PointsService()
    referrals = ReferralService(points)
    trips = TripService(client)
    settings = points.settings

    base_currency = settings['currency']
    preferred_currency = get_display_currency(client, base_currency)
    discount = points.calculate_available_discount(client)
    upcoming = trips.upcoming_trips(limit=3)

    return {
        'greeting': {
            'first_name': client.first_name or 'Customer',
            'member_since': format_calendar_date(client.loyalty_enrolled_at, '%b %Y', fallback='N/A'),
        },
        'points': {
            'balance': client.points_balance or 0,
            'lifetime_earned': client.lifetime_points_earned or 0,
            'available_points': discount['available_points'],
            'next_threshold': points.next_redemption_threshold(discount['available_points']),
            'discount': convert_discount_to_preferred_currency(
                discount['discount_amount'], base_currency, preferred_currency
            ),
            'expiring': points.get_expiring_points(client),
        },
        'next_trip': upcoming[0] if upcoming else None,
        'upcoming_trips': upcoming,
        'recent_activity': points.get_transactions_paginated(
            client.id, page=1, page_size=RECENT_ACTIVITY_LIMIT
        )['transactions'],
        'referrals': {
            'code': referrals.get_or_create_referral_code(client),
            'link': referrals.get_referral_link(client),
            'referrer_bonus': settings['referral_bonus_referrer'],
            'recent': [r.to_dict() for r in referrals.get_recent_referrals(client.id, RECENT_REFERRALS_LIMIT)],
        },
        'unread_notifications': NotificationService(client.id).unread_count(),
        'preferred_currency': preferred_currency,
    }


@dashboard_bp.route('', methods=['GET'])
@require_auth
def get_dashboard():
    payload = cached_page(
        g.user.id, '/',
        lambda: build_dashboard(g.client),
        tags=(CLIENT_DATA, LOYALTY_DATA),
    )
    return jsonify(payload)
