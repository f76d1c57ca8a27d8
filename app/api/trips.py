"""
Trips API endpoints.

Lists and detail pages are cached per user and invalidated when the
client edits a traveller or flight.
"""
from flask import Blueprint, request, jsonify, g

from ..middleware.auth import require_auth
from ..services.trip_service import TABS, TripService
from ..utils.cache_invalidation import BOOKING_DATA, CLIENT_DATA, TRIP_DETAIL_PATH, cached_page

trips_bp = Blueprint('trips', __name__)

TRIP_TAGS = (CLIENT_DATA, BOOKING_DATA)


@trips_bp.route('', methods=['GET'])
@require_auth
def list_trips():
    """
    Query params:
        tab: upcoming (default), past, or cancelled
    """
    tab = request.args.get('tab', 'upcoming')
    if tab not in TABS:
        tab = 'upcoming'

    service = TripService(g.client)
    payload = cached_page(
        g.user.id, '/trips',
        lambda: service.list_trips(tab),
        tags=TRIP_TAGS,
        variant=tab,
    )
    return jsonify(payload)


@trips_bp.route('/<booking_id>', methods=['GET'])
@require_auth
def get_trip(booking_id):
    service = TripService(g.client)
    payload = cached_page(
        g.user.id, TRIP_DETAIL_PATH,
        lambda: service.get_trip(booking_id),
        tags=TRIP_TAGS,
        variant=booking_id,
    )
    return jsonify(payload)


@trips_bp.route('/<booking_id>/travelers/<int:traveler_id>', methods=['PUT'])
@require_auth
def update_traveler(booking_id, traveler_id):
    """
    Request body (any subset):
        first_name, last_name, email, phone, date_of_birth, passport_number, ...
    """
    data = request.get_json(silent=True) or {}
    traveler = TripService(g.client).update_traveler(booking_id, traveler_id, data)
    return jsonify({
        'success': True,
        'message': 'Traveler details updated.',
        'traveler': traveler.to_dict(),
    })


@trips_bp.route('/<booking_id>/flights', methods=['POST'])
@require_auth
def create_flight(booking_id):
    """
    Request body:
        direction: outbound | return
        airline_code, flight_number: string
        departure_airport, arrival_airport: IATA code
        departure_datetime: ISO date or datetime
        arrival_datetime: optional
    """
    data = request.get_json(silent=True) or {}
    flight = TripService(g.client).save_flight(booking_id, data)
    return jsonify({'success': True, 'flight': flight.to_dict()}), 201


@trips_bp.route('/<booking_id>/flights/<int:flight_id>', methods=['PUT'])
@require_auth
def update_flight(booking_id, flight_id):
    data = request.get_json(silent=True) or {}
    flight = TripService(g.client).save_flight(booking_id, data, flight_id=flight_id)
    return jsonify({'success': True, 'flight': flight.to_dict()})
